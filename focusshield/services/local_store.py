"""
Local Record Store

Owns the single client-side document (sessions, ship notes, meeting blocks)
and the synced/unsynced flag lifecycle. Every mutation reads, modifies and
writes the whole document. Storage failures never reach the caller.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from ..constants import LOCAL_STORAGE_KEY
from ..schemas.records import LocalStorageData, RecordKind, RECORD_MODELS, utcnow
from ..utils.uuid_utils import generate_id as _generate_id

logger = logging.getLogger(__name__)


class StoragePrimitive(Protocol):
    """Key/value storage with atomic per-call writes."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """One JSON file per key inside directory. Writes go through a temp file and rename."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key.replace(':', '_').replace('/', '_')}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class LocalRecordStore:
    def __init__(self, storage: StoragePrimitive, key: str = LOCAL_STORAGE_KEY):
        self.storage = storage
        self.key = key

    def load(self) -> LocalStorageData:
        """
        Current document, or a fresh empty one when storage is absent or corrupt.

        Records are validated one by one: a record that no longer parses is
        logged and skipped, the rest of the document is kept.
        """
        try:
            stored = self.storage.get(self.key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read local data: %s", e)
            return LocalStorageData()

        if not stored:
            return LocalStorageData()

        try:
            document = json.loads(stored)
        except ValueError as e:
            logger.warning("Local data is corrupt, starting from an empty document: %s", e)
            return LocalStorageData()
        if not isinstance(document, dict):
            logger.warning("Local data is not a JSON object, starting from an empty document")
            return LocalStorageData()

        data = LocalStorageData()
        for kind in RecordKind:
            data.set_records(kind, self._parse_records(kind, document.get(kind.value)))

        if document.get("lastUpdated"):
            try:
                data.last_updated = LocalStorageData.model_validate(
                    {"lastUpdated": document["lastUpdated"]}
                ).last_updated
            except PydanticValidationError:
                logger.warning("Ignoring unreadable lastUpdated: %r", document["lastUpdated"])
        return data

    @staticmethod
    def _parse_records(kind: RecordKind, items: Any) -> list:
        if items is None:
            return []
        if not isinstance(items, list):
            logger.warning("Local %s is not a list, ignoring it", kind.value)
            return []

        model = RECORD_MODELS[kind]
        records = []
        for item in items:
            try:
                records.append(model.model_validate(item))
            except PydanticValidationError as e:
                logger.warning("Skipping unreadable %s record: %s", kind.value, e)
        return records

    def save(self, data: LocalStorageData) -> None:
        """Stamp lastUpdated and persist. Failures are logged, not raised."""
        data.last_updated = utcnow()
        try:
            self.storage.set(self.key, json.dumps(data.to_document()))
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save local data: %s", e)

    def append(self, kind: RecordKind, record) -> None:
        data = self.load()
        data.records(kind).append(record)
        self.save(data)

    def find(self, kind: RecordKind, record_id: str):
        return next((r for r in self.load().records(kind) if r.id == record_id), None)

    def update_partial(self, kind: RecordKind, record_id: str, patch: Dict[str, Any]) -> None:
        """Shallow-merge patch over the record with record_id. No-op if it does not exist."""
        data = self.load()
        records = data.records(kind)
        model = RECORD_MODELS[RecordKind(kind)]
        for index, record in enumerate(records):
            if record.id == record_id:
                merged = {**record.model_dump(), **patch}
                records[index] = model.model_validate(merged)
                self.save(data)
                return

    def update_session(self, session_id: str, patch: Dict[str, Any]) -> None:
        self.update_partial(RecordKind.SESSIONS, session_id, patch)

    def remove(self, kind: RecordKind, record_id: str) -> None:
        data = self.load()
        data.set_records(kind, [r for r in data.records(kind) if r.id != record_id])
        self.save(data)

    def remove_meeting_block(self, block_id: str) -> None:
        self.remove(RecordKind.MEETING_BLOCKS, block_id)

    def mark_all_synced(self, user_id: Optional[str] = None) -> None:
        data = self.load()
        for kind in RecordKind:
            data.set_records(kind, [r.mark_synced(user_id) for r in data.records(kind)])
        self.save(data)

    def has_unsynced(self) -> bool:
        data = self.load()
        return any(not r.synced for kind in RecordKind for r in data.records(kind))

    def unsynced(self, kind: RecordKind) -> list:
        return [r for r in self.load().records(kind) if not r.synced]

    def completed_sessions_count(self) -> int:
        return sum(1 for s in self.load().sessions if s.is_completed)

    def ship_notes_count(self) -> int:
        return len(self.load().ship_notes)

    def clear(self) -> None:
        try:
            self.storage.remove(self.key)
        except OSError as e:
            logger.error("Failed to clear local data: %s", e)

    @staticmethod
    def generate_id() -> str:
        return _generate_id()
