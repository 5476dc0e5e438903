"""
Remote Store

The remote-authoritative side of reconciliation: a generic per-kind interface
(select by user, upsert by id, update by key, subscription lookup) with a
SQLAlchemy implementation used by the API and an HTTP implementation used by
local clients.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests
from pydantic import BaseModel, ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import RemoteStoreError, RecordNotFoundError, RecordOwnershipError
from ..models import models
from ..schemas.billing import SubscriptionStatus
from ..schemas.records import RecordBase, RecordKind, RECORD_MODELS
from ..schemas.user import AuthUser

logger = logging.getLogger(__name__)

ORM_MODELS = {
    RecordKind.SESSIONS: models.FocusSession,
    RecordKind.SHIP_NOTES: models.ShipNote,
    RecordKind.MEETING_BLOCKS: models.MeetingBlock,
}

# Never changed through update_by_key
PROTECTED_FIELDS = {"id", "user_id"}


class RemoteStore(Protocol):
    def select_by_user(self, kind: RecordKind, user_id: str) -> List[RecordBase]: ...

    def upsert(self, kind: RecordKind, records: Iterable[RecordBase], conflict_key: str = "id") -> None: ...

    def update_by_key(self, kind: RecordKind, key: str, patch: Dict[str, Any]) -> RecordBase: ...

    def get_subscription(self, user_id: str) -> Optional[SubscriptionStatus]: ...


def _to_utc(value):
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def _column_values(model, payload: Dict[str, Any]) -> Dict[str, Any]:
    columns = model.__table__.columns.keys()
    return {key: _to_utc(value) for key, value in payload.items() if key in columns}


class SqlRemoteStore:
    """Remote store backed by the application database"""

    def __init__(self, db: Session, user_id: Optional[str] = None):
        self.db = db
        # When set, every operation is restricted to this owner
        self.user_id = user_id

    def _to_schema(self, kind: RecordKind, row) -> RecordBase:
        return RECORD_MODELS[kind].model_validate(row).model_copy(update={"synced": True})

    def select_by_user(self, kind: RecordKind, user_id: str) -> List[RecordBase]:
        kind = RecordKind(kind)
        model = ORM_MODELS[kind]
        try:
            rows = (self.db.query(model)
                    .filter(model.user_id == user_id)
                    .order_by(model.created_at.asc())
                    .all())
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Failed to select {kind.value}: {e}") from e
        return [self._to_schema(kind, row) for row in rows]

    def upsert(self, kind: RecordKind, records: Iterable[RecordBase], conflict_key: str = "id") -> None:
        """
        Insert or update every record by id, all in one transaction.

        Args:
            kind: Record kind
            records: Records carrying the owning user_id
            conflict_key: Only "id" is supported

        Raises:
            RemoteStoreError: An id belongs to another user, or the database failed
        """
        if conflict_key != "id":
            raise ValueError(f"Unsupported conflict key: {conflict_key}")

        kind = RecordKind(kind)
        model = ORM_MODELS[kind]
        try:
            for record in records:
                owner = self.user_id or record.user_id
                if not owner:
                    raise RemoteStoreError(f"Record {record.id} has no user_id")

                existing = self.db.get(model, record.id)
                if existing is not None and existing.user_id != owner:
                    raise RecordOwnershipError(f"Record {record.id} belongs to another user")

                self.db.merge(model(**_column_values(model, record.to_remote(owner))))
            self.db.commit()
        except RemoteStoreError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteStoreError(f"Failed to upsert {kind.value}: {e}") from e

    def update_by_key(self, kind: RecordKind, key: str, patch: Dict[str, Any]) -> RecordBase:
        kind = RecordKind(kind)
        model = ORM_MODELS[kind]
        row = self.db.get(model, key)
        if row is None or (self.user_id and row.user_id != self.user_id):
            raise RecordNotFoundError(f"{kind.value} record {key} not found")

        # Validate the patched record as a whole so values are typed like on insert
        patched = RECORD_MODELS[kind].model_validate({**self._to_schema(kind, row).model_dump(), **patch})
        values = _column_values(model, patched.model_dump(include=set(patch)))
        for field, value in values.items():
            if field not in PROTECTED_FIELDS:
                setattr(row, field, value)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteStoreError(f"Failed to update {kind.value} record {key}: {e}") from e
        self.db.refresh(row)
        return self._to_schema(kind, row)

    def get_subscription(self, user_id: str) -> Optional[SubscriptionStatus]:
        row = self.db.get(models.Subscription, user_id)
        if row is None:
            return None
        return SubscriptionStatus.model_validate(row)


class HttpRemoteStore:
    """Client of the FocusShield API, authenticated with the auth provider's bearer token"""

    def __init__(self, base_url: str, token: str, session=None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {"Authorization": f"Bearer {token}"}

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}/api{path}"
        try:
            response = self.session.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise RecordNotFoundError(f"{method} {path} returned 404")
        if response.status_code >= 400:
            raise RemoteStoreError(f"{method} {path} returned {response.status_code}: {response.text}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(f"{method} {path} returned a body that is not JSON") from e

    @staticmethod
    def _validate(model: type[BaseModel], payload: Any) -> BaseModel:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise RemoteStoreError(f"Unexpected {model.__name__} payload: {e}") from e

    def current_user(self) -> Optional[AuthUser]:
        """The signed-in user, or None when the token is rejected or the API is unreachable."""
        try:
            return self._validate(AuthUser, self._request("GET", "/auth/me"))
        except RemoteStoreError as e:
            logger.info("No authenticated user: %s", e)
            return None

    def track_sign_in(self, timezone_name: Optional[str] = None) -> None:
        self._request("POST", "/auth/signed-in", json={"timezone": timezone_name})

    def select_by_user(self, kind: RecordKind, user_id: str) -> List[RecordBase]:
        kind = RecordKind(kind)
        payload = self._request("GET", f"/records/{kind.value}")
        if not isinstance(payload, list):
            raise RemoteStoreError(f"Expected a list of {kind.value}, got {type(payload).__name__}")
        return [self._validate(RECORD_MODELS[kind], item).model_copy(update={"synced": True}) for item in payload]

    def upsert(self, kind: RecordKind, records: Iterable[RecordBase], conflict_key: str = "id") -> None:
        if conflict_key != "id":
            raise ValueError(f"Unsupported conflict key: {conflict_key}")
        kind = RecordKind(kind)
        body = [record.to_remote(record.user_id, mode="json") for record in records]
        self._request("PUT", f"/records/{kind.value}", json=body)

    def update_by_key(self, kind: RecordKind, key: str, patch: Dict[str, Any]) -> RecordBase:
        kind = RecordKind(kind)
        payload = self._request("PATCH", f"/records/{kind.value}/{key}", json=to_jsonable_python(patch))
        return self._validate(RECORD_MODELS[kind], payload).model_copy(update={"synced": True})

    def get_subscription(self, user_id: str) -> Optional[SubscriptionStatus]:
        payload = self._request("GET", "/subscription")
        return self._validate(SubscriptionStatus, payload) if payload else None
