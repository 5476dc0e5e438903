"""
Record schemas shared by the local document, the remote store and the API.

Timestamps are always timezone-aware. Naive values (SQLite, old documents)
are read as UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordKind(str, Enum):
    SESSIONS = "sessions"
    SHIP_NOTES = "ship_notes"
    MEETING_BLOCKS = "meeting_blocks"


@dataclass(frozen=True)
class LocalOnly:
    """Record exists only in the local document."""


@dataclass(frozen=True)
class Synced:
    """Record has been pushed to the account identified by user_id."""
    user_id: str


SyncState = Union[LocalOnly, Synced]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordBase(BaseModel):
    id: str
    user_id: Optional[str] = None
    synced: Optional[bool] = None
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

    @field_validator("*")
    @classmethod
    def _ensure_aware(cls, value):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def sync_state(self) -> SyncState:
        if self.synced and self.user_id:
            return Synced(user_id=self.user_id)
        return LocalOnly()

    def mark_synced(self, user_id: Optional[str] = None):
        update = {"synced": True}
        if user_id:
            update["user_id"] = user_id
        return self.model_copy(update=update)

    def to_document(self) -> dict:
        """JSON-ready dict for the local document; absent optionals are omitted."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_remote(self, user_id: str, mode: str = "python") -> dict:
        """Payload for the remote store: owned by user_id, without the local sync flag."""
        payload = self.model_dump(mode=mode, exclude={"synced"})
        payload["user_id"] = user_id
        return payload


class FocusSession(RecordBase):
    started_at: datetime
    ended_at: Optional[datetime] = None
    # Planned duration while running, actual elapsed seconds once ended
    duration_sec: int = Field(ge=0)
    task_title: str
    artifact_url: Optional[str] = None
    interrupted: bool = False

    @property
    def is_completed(self) -> bool:
        return self.ended_at is not None and not self.interrupted


class ShipNote(RecordBase):
    session_id: str
    note: str
    blocked_reason: Optional[str] = None


class MeetingBlock(RecordBase):
    start_at: datetime
    end_at: datetime
    title: Optional[str] = None

    @property
    def duration_hours(self) -> float:
        return (self.end_at - self.start_at).total_seconds() / 3600


class SessionWithNote(FocusSession):
    ship_note: Optional[ShipNote] = None


RECORD_MODELS = {
    RecordKind.SESSIONS: FocusSession,
    RecordKind.SHIP_NOTES: ShipNote,
    RecordKind.MEETING_BLOCKS: MeetingBlock,
}


class LocalStorageData(BaseModel):
    """The single client-side document. Unknown fields are ignored on read."""
    model_config = ConfigDict(populate_by_name=True)

    sessions: List[FocusSession] = Field(default_factory=list)
    ship_notes: List[ShipNote] = Field(default_factory=list)
    meeting_blocks: List[MeetingBlock] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow, alias="lastUpdated")

    def records(self, kind: RecordKind) -> list:
        return getattr(self, RecordKind(kind).value)

    def set_records(self, kind: RecordKind, records: list) -> None:
        setattr(self, RecordKind(kind).value, records)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
