"""Meeting persistence models -- one meeting row per civil date.

- MeetingModel: the conferencing session of a day; ``meeting_date`` is
  UNIQUE and is the only guard against duplicate rows for a date
- meeting_attendees: append-only join of meetings and users
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.clubmeet.core.database import Base
from src.clubmeet.subscriptions.models import UserModel

meeting_attendees = Table(
    "meeting_attendees",
    Base.metadata,
    Column("meeting_id", Uuid, ForeignKey("meetings.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey(UserModel.id, ondelete="CASCADE"), primary_key=True),
    Column("added_at", DateTime(timezone=True), server_default=func.now()),
)


class MeetingModel(Base):
    """The conferencing session of one civil date."""

    __tablename__ = "meetings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    meeting_date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    meeting_link: Mapped[str] = mapped_column(String(1000), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    remote_event_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    host_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[str] = mapped_column(String(32), nullable=False, default="admin")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
