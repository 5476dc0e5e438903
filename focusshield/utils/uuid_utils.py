import uuid


def generate_id() -> str:
    """Random UUID4 string for client-generated record ids."""
    return str(uuid.uuid4())
