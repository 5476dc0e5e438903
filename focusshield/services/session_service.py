from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..constants import MIN_SHIP_NOTE_LENGTH, TIMER_DURATIONS
from ..exceptions import ValidationError
from ..schemas.records import FocusSession, MeetingBlock, RecordKind, ShipNote, utcnow
from ..schemas.user import AuthUser
from ..utils.time_utils import elapsed_seconds
from .local_store import LocalRecordStore

logger = logging.getLogger(__name__)


def resolve_duration(preset: str = "pomodoro", custom_minutes: Optional[int] = None) -> int:
    """Planned duration in seconds for a timer preset"""
    if preset == "custom":
        if not custom_minutes or custom_minutes < 1:
            raise ValidationError("Custom duration must be at least 1 minute")
        return custom_minutes * 60
    if preset not in TIMER_DURATIONS:
        raise ValidationError(f"Unknown timer preset: {preset}")
    return TIMER_DURATIONS[preset]


class SessionService:
    """User actions that create or update local records. Input is validated before any write."""

    def __init__(self, store: LocalRecordStore):
        self.store = store

    def start_session(
        self,
        task_title: str,
        duration_sec: int,
        artifact_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> FocusSession:
        """
        Start a focus session

        Args:
            task_title: What the session is for, required
            duration_sec: Planned duration
            artifact_url: Optional link to what is being produced
            now: Start time, defaults to the current time

        Returns:
            The appended FocusSession
        """
        title = (task_title or "").strip()
        if not title:
            raise ValidationError("Please enter a task title")
        if duration_sec <= 0:
            raise ValidationError("Duration must be positive")

        now = now or utcnow()
        session = FocusSession(
            id=self.store.generate_id(),
            started_at=now,
            duration_sec=duration_sec,
            task_title=title,
            artifact_url=(artifact_url or "").strip() or None,
            interrupted=False,
            created_at=now,
        )
        self.store.append(RecordKind.SESSIONS, session)
        logger.debug("Started session %s", session.id)
        return session

    def end_session(self, session_id: str, interrupted: bool, now: Optional[datetime] = None) -> Optional[FocusSession]:
        """
        End a session, replacing the planned duration with the elapsed one.

        Returns:
            The updated session, or None if it does not exist or already ended
        """
        session = self.store.find(RecordKind.SESSIONS, session_id)
        if session is None or session.ended_at is not None:
            return None

        now = now or utcnow()
        self.store.update_session(session_id, {
            "ended_at": now,
            "duration_sec": elapsed_seconds(session.started_at, now),
            "interrupted": interrupted,
        })
        return self.store.find(RecordKind.SESSIONS, session_id)

    def save_ship_note(self, session_id: str, note: str, blocked_reason: Optional[str] = None) -> ShipNote:
        text = (note or "").strip()
        if len(text) < MIN_SHIP_NOTE_LENGTH:
            raise ValidationError(f"Ship note must be at least {MIN_SHIP_NOTE_LENGTH} characters")

        data = self.store.load()
        if not any(s.id == session_id for s in data.sessions):
            raise ValidationError(f"Unknown session: {session_id}")
        if any(n.session_id == session_id for n in data.ship_notes):
            raise ValidationError("This session already has a ship note")

        ship_note = ShipNote(
            id=self.store.generate_id(),
            session_id=session_id,
            note=text,
            blocked_reason=(blocked_reason or "").strip() or None,
            created_at=utcnow(),
        )
        self.store.append(RecordKind.SHIP_NOTES, ship_note)
        return ship_note

    def add_meeting_block(
        self,
        start_at: Optional[datetime],
        end_at: Optional[datetime],
        title: Optional[str] = None,
    ) -> MeetingBlock:
        if start_at is None or end_at is None:
            raise ValidationError("Please select start and end times")
        if end_at <= start_at:
            raise ValidationError("End time must be after start time")

        block = MeetingBlock(
            id=self.store.generate_id(),
            start_at=start_at,
            end_at=end_at,
            title=(title or "").strip() or None,
            created_at=utcnow(),
        )
        self.store.append(RecordKind.MEETING_BLOCKS, block)
        return block

    def remove_meeting_block(self, block_id: str) -> None:
        self.store.remove_meeting_block(block_id)

    def active_session(self) -> Optional[FocusSession]:
        running = [s for s in self.store.load().sessions if s.ended_at is None]
        return max(running, key=lambda s: s.started_at) if running else None

    def should_prompt_sign_in(self, user: Optional[AuthUser]) -> bool:
        """Anonymous users who completed a session and wrote a note are asked to sign in."""
        if user is not None:
            return False
        return self.store.completed_sessions_count() >= 1 and self.store.ship_notes_count() >= 1
