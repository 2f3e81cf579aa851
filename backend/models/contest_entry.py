from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class ContestEntry(Base):
    """One fantasy team entered in one contest."""

    __tablename__ = "contest_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    contest_id: Mapped[str] = mapped_column(ForeignKey("contests.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    fantasy_team_id: Mapped[str] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("contest_id", "fantasy_team_id", name="uq_contest_entry_team"),
    )
