from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class Match(Base):
    """Cricket match between two teams."""

    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    tournament_external_id: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    format: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    venue: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    team_a_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    team_b_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)

    result: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    score_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_match_status_start", "status", "start_time"),)
