from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PlayerCareerStats(Base):
    """Career aggregates per format, stored as canonical CareerStats JSON."""

    __tablename__ = "player_career_stats"

    player_external_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    stats_json: Mapped[str] = mapped_column(Text, nullable=False)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
