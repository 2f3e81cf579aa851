from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class Contest(Base):
    __tablename__ = "contests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    match_external_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Per-league ScoringRules as JSON; NULL means the default rules.
    scoring_rules_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
