"""Leaderboard ranking (pure)."""

from .ranker import RankChange, RankedEntry, RankInput, TieBreak, rank_entries

__all__ = ["RankChange", "RankInput", "RankedEntry", "TieBreak", "rank_entries"]
