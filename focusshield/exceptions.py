"""Error taxonomy shared by the client core and the API."""


class FocusShieldError(Exception):
    """Base class for all FocusShield errors."""


class ValidationError(FocusShieldError):
    """User input rejected before any record is created or changed."""


class RemoteStoreError(FocusShieldError):
    """The remote store could not be reached or refused the operation."""


class SyncError(FocusShieldError):
    """Push-sync failed. Local records stay unsynced so the sync can be retried."""

    def __init__(self, message: str = "Failed to sync data. Please try again.", cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class RecordNotFoundError(RemoteStoreError):
    """No remote record with the given key for this user."""


class RecordOwnershipError(RemoteStoreError):
    """The record id already exists for a different user."""
