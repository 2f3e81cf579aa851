from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PlayerMatchStats(Base):
    """One player's figures in one match; frozen once `finalized`."""

    __tablename__ = "player_match_stats"

    match_external_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    player_external_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    runs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    balls_faced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sixes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    strike_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dismissal: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    overs: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    maidens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    runs_conceded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wickets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    economy: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    dot_balls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    catches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stumpings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    run_outs_direct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    run_outs_assisted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
