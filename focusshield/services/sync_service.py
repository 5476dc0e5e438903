"""
Sync Service

Reconciles the local document with the remote-authoritative record set.
Reads merge both sides with the remote copy winning on id collision; pushes
send every unsynced local record upstream with upsert-by-id, so a push can
always be retried in full.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..exceptions import RemoteStoreError, SyncError
from ..schemas.billing import SubscriptionStatus
from ..schemas.records import (
    FocusSession, MeetingBlock, RecordKind, SessionWithNote, ShipNote,
)
from ..schemas.user import AuthUser
from .entitlement import is_pro_subscription
from .local_store import LocalRecordStore
from .remote_store import RemoteStore

logger = logging.getLogger(__name__)

HISTORY_FILTERS = ("all", "completed", "interrupted")


@dataclass
class HistoryView:
    sessions: List[SessionWithNote]
    has_unsynced: bool
    from_remote: bool = False


@dataclass
class ReportData:
    sessions: List[FocusSession]
    meeting_blocks: List[MeetingBlock]
    subscription: Optional[SubscriptionStatus] = None
    from_remote: bool = False

    @property
    def is_pro(self) -> bool:
        return is_pro_subscription(self.subscription)


@dataclass
class SyncResult:
    pushed: Dict[RecordKind, int] = field(default_factory=dict)
    history: Optional[HistoryView] = None


class SyncService:
    """Read-merge and push-sync between a LocalRecordStore and a RemoteStore"""

    def __init__(self, store: LocalRecordStore, remote: Optional[RemoteStore] = None, user: Optional[AuthUser] = None):
        self.store = store
        self.remote = remote
        self.user = user

    @property
    def remote_enabled(self) -> bool:
        return self.user is not None and self.remote is not None

    @staticmethod
    def merge_records(local: Sequence, remote: Sequence) -> list:
        """
        All remote records followed by the local records whose id is not remote.

        Ids are client-generated and unique, so an id present remotely means the
        record is synced and the remote version is authoritative.
        """
        remote_ids = {record.id for record in remote}
        return list(remote) + [record for record in local if record.id not in remote_ids]

    @staticmethod
    def attach_ship_notes(sessions: Iterable[FocusSession], notes: Iterable[ShipNote]) -> List[SessionWithNote]:
        """Attach the first note found for each session, if any."""
        first_note: Dict[str, ShipNote] = {}
        for note in notes:
            first_note.setdefault(note.session_id, note)

        return [
            SessionWithNote.model_validate({**session.model_dump(exclude={"ship_note"}), "ship_note": first_note.get(session.id)})
            for session in sessions
        ]

    @staticmethod
    def filter_sessions(sessions: Iterable[FocusSession], status: str = "all") -> list:
        if status not in HISTORY_FILTERS:
            raise ValueError(f"Unknown history filter: {status}")
        if status == "completed":
            return [s for s in sessions if s.is_completed]
        if status == "interrupted":
            return [s for s in sessions if s.interrupted]
        return list(sessions)

    def _fetch_remote(self, kinds: Sequence[RecordKind]) -> Optional[Dict[RecordKind, list]]:
        """Remote records per kind, or None when remote is disabled or unreachable."""
        if not self.remote_enabled:
            return None
        try:
            return {kind: self.remote.select_by_user(kind, self.user.id) for kind in kinds}
        except RemoteStoreError as e:
            logger.error("Failed to load cloud data, showing local data only: %s", e)
            return None

    def load_history(self) -> HistoryView:
        """Merged sessions with their ship note, newest first."""
        local = self.store.load()
        sessions: list = local.sessions
        notes: list = local.ship_notes

        remote = self._fetch_remote([RecordKind.SESSIONS, RecordKind.SHIP_NOTES])
        if remote is not None:
            sessions = self.merge_records(local.sessions, remote[RecordKind.SESSIONS])
            notes = self.merge_records(local.ship_notes, remote[RecordKind.SHIP_NOTES])

        merged = self.attach_ship_notes(sessions, notes)
        merged.sort(key=lambda s: s.started_at, reverse=True)

        has_unsynced = any(not r.synced for kind in RecordKind for r in local.records(kind))
        return HistoryView(sessions=merged, has_unsynced=has_unsynced, from_remote=remote is not None)

    def load_report_data(self) -> ReportData:
        """Merged sessions and meeting blocks plus the subscription used for gating."""
        local = self.store.load()
        data = ReportData(sessions=list(local.sessions), meeting_blocks=list(local.meeting_blocks))

        remote = self._fetch_remote([RecordKind.SESSIONS, RecordKind.MEETING_BLOCKS])
        if remote is None:
            return data

        data.sessions = self.merge_records(local.sessions, remote[RecordKind.SESSIONS])
        data.meeting_blocks = self.merge_records(local.meeting_blocks, remote[RecordKind.MEETING_BLOCKS])
        data.from_remote = True

        try:
            data.subscription = self.remote.get_subscription(self.user.id)
        except RemoteStoreError as e:
            logger.warning("Failed to load subscription status: %s", e)
        return data

    def push_sync(self) -> Optional[SyncResult]:
        """
        Upsert every unsynced local record, then mark the whole document synced.

        Returns:
            SyncResult with per-kind counts and the reloaded history, or None
            when there is no signed-in user or no remote store.

        Raises:
            SyncError: Any upsert failed. Nothing is marked synced, so retrying
            resends everything that is still unsynced.
        """
        if not self.remote_enabled:
            logger.debug("Push-sync skipped: no authenticated user or remote store")
            return None

        local = self.store.load()
        pushed: Dict[RecordKind, int] = {}
        try:
            # Sessions go first so ship notes can reference them
            for kind in RecordKind:
                unsynced = [r for r in local.records(kind) if not r.synced]
                if unsynced:
                    owned = [r.model_copy(update={"user_id": self.user.id}) for r in unsynced]
                    self.remote.upsert(kind, owned, conflict_key="id")
                pushed[kind] = len(unsynced)
        except RemoteStoreError as e:
            logger.exception("Sync failed after %s", {k.value: v for k, v in pushed.items()})
            raise SyncError(cause=e) from e

        self.store.mark_all_synced(self.user.id)
        logger.info("Synced %s", {k.value: v for k, v in pushed.items()})
        return SyncResult(pushed=pushed, history=self.load_history())
