"""SQLAlchemy ORM models for arena-core."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True, unique=True)
    api_key_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    role: Mapped[str] = mapped_column(
        Enum("admin", "player", "spectator", name="user_role"), default="player"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    encounters: Mapped[list[Encounter]] = relationship(back_populates="creator")

    def __str__(self) -> str:
        return f"{self.username} ({self.id[:8]})"


class Encounter(Base):
    """A combat scenario and its run status.

    ``status`` never holds a failure state: a failed run goes back to
    "setup" so it can be retried.
    """

    __tablename__ = "encounters"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum("setup", "active", "completed", name="encounter_status"),
        default="setup",
    )
    created_by: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    creator: Mapped[User] = relationship(back_populates="encounters")
    messages: Mapped[list[ChatMessage]] = relationship(
        back_populates="encounter", cascade="all, delete-orphan"
    )

    def __str__(self) -> str:
        return self.name

    __table_args__ = (
        Index("ix_encounter_creator", "created_by"),
    )


class ChatMessage(Base):
    """A stored transcript. A completed encounter has exactly one assistant message."""

    __tablename__ = "chat_messages"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_uuid)
    encounter_id: Mapped[str] = mapped_column(String(32), ForeignKey("encounters.id"))
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"))
    role: Mapped[str] = mapped_column(
        Enum("user", "assistant", name="message_role"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    encounter: Mapped[Encounter] = relationship(back_populates="messages")

    def __str__(self) -> str:
        return f"{self.role} ({self.id[:8]} in {self.encounter_id[:8]})"

    __table_args__ = (
        Index("ix_message_encounter", "encounter_id"),
    )
