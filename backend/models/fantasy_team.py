from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class FantasyTeam(Base):
    """A user's 11-player roster for one match."""

    __tablename__ = "fantasy_teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    match_external_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    player_ids_json: Mapped[str] = mapped_column(Text, nullable=False)
    captain_id: Mapped[str] = mapped_column(String(128), nullable=False)
    vice_captain_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role_counts_json: Mapped[str] = mapped_column(Text, nullable=False)
    credits_used: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
