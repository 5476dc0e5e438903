from __future__ import annotations

from sqlalchemy import String, DateTime, Integer, Boolean, ForeignKey, UniqueConstraint, Index, Enum, Text
from sqlalchemy.orm import relationship, declarative_base, Mapped, mapped_column
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


Base = declarative_base()


class FocusSession(Base):
    __tablename__ = 'focus_sessions'

    # Ids are generated on the client, so there is no server default
    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_sec: Mapped[int] = mapped_column(Integer)
    task_title: Mapped[str] = mapped_column(String)
    artifact_url: Mapped[str | None] = mapped_column(String)
    interrupted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    ship_notes: Mapped[list[ShipNote]] = relationship(
        'ShipNote', back_populates='session', cascade='all, delete-orphan', order_by='ShipNote.created_at'
    )

    __table_args__ = (
        Index('ix_focus_sessions_user_started', 'user_id', 'started_at'),
    )


class ShipNote(Base):
    __tablename__ = 'ship_notes'

    id: Mapped[str] = mapped_column(String, primary_key=True)
    session_id: Mapped[str] = mapped_column(String, ForeignKey('focus_sessions.id'), index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    note: Mapped[str] = mapped_column(Text)
    blocked_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    session: Mapped[FocusSession] = relationship('FocusSession', back_populates='ship_notes')


class MeetingBlock(Base):
    __tablename__ = 'meeting_blocks'

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    title: Mapped[str | None] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('ix_meeting_blocks_user_start', 'user_id', 'start_at'),
    )


class Subscription(Base):
    """Written only by the payment webhook."""
    __tablename__ = 'subscriptions'

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String)
    status: Mapped[str | None] = mapped_column(
        Enum('active', 'canceled', 'past_due', 'trialing', 'incomplete',
             'incomplete_expired', 'unpaid', 'paused', name='subscription_status_enum'),
        nullable=True
    )
    price_id: Mapped[str | None] = mapped_column(String)
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Profile(Base):
    __tablename__ = 'profiles'

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    timezone: Mapped[str | None] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class UserTracking(Base):
    __tablename__ = 'user_tracking'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String)
    email: Mapped[str | None] = mapped_column(String)
    app: Mapped[str] = mapped_column(String)
    last_login_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    login_cnt: Mapped[int] = mapped_column(Integer, default=1)

    __table_args__ = (
        UniqueConstraint('user_id', 'app', name='uq_user_tracking_user_app'),
    )
