"""Per-kind staleness thresholds tied to match and tournament lifecycle."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ingestion.schema import BasicMatch, MatchStatus, RateLimitInfo, TeamRef, Tournament, TournamentStatus
from ingestion.staleness import EntityKind, StalenessPolicy

T0 = datetime(2026, 4, 10, 14, 0, tzinfo=timezone.utc)
POLICY = StalenessPolicy()


def _match(status: MatchStatus) -> BasicMatch:
    return BasicMatch(
        id="m1",
        status=status,
        start_time=T0,
        team_a=TeamRef(id="a", name="A", short_name="A"),
        team_b=TeamRef(id="b", name="B", short_name="B"),
    )


def _quota(remaining: int) -> RateLimitInfo:
    return RateLimitInfo(remaining=remaining, limit=100, reset_at=T0 + timedelta(hours=10))


@pytest.mark.parametrize(
    "status, expected",
    [
        (MatchStatus.UPCOMING, timedelta(hours=1)),
        (MatchStatus.LIVE, timedelta(seconds=30)),
        (MatchStatus.INNINGS_BREAK, timedelta(seconds=30)),
        (MatchStatus.COMPLETED, None),
        (MatchStatus.ABANDONED, None),
    ],
)
def test_match_thresholds(status, expected):
    assert POLICY.for_match(_match(status), _quota(100)) == expected


def test_live_threshold_backs_off_when_quota_is_low():
    assert POLICY.for_match(_match(MatchStatus.LIVE), _quota(20)) == timedelta(seconds=30)
    assert POLICY.for_match(_match(MatchStatus.LIVE), _quota(19)) == timedelta(hours=1)
    assert POLICY.for_match(_match(MatchStatus.LIVE), None) == timedelta(seconds=30)
    assert StalenessPolicy(live_quota_headroom=0).live(_quota(0)) == timedelta(seconds=30)


def test_match_list_follows_most_volatile_match():
    matches = [_match(MatchStatus.COMPLETED), _match(MatchStatus.UPCOMING), _match(MatchStatus.LIVE)]
    assert POLICY.for_match_list(matches, _quota(100)) == timedelta(seconds=30)
    assert POLICY.for_match_list([_match(MatchStatus.COMPLETED)]) is None
    assert POLICY.for_match_list([]) == timedelta(hours=1)


def test_tournament_thresholds():
    active = Tournament(id="t", name="T", short_name="T", start_date=T0, end_date=T0, status=TournamentStatus.ACTIVE)
    done = active.model_copy(update={"status": TournamentStatus.COMPLETED})
    assert POLICY.for_tournament(active) == timedelta(hours=6)
    assert POLICY.for_tournament(done) is None
    assert POLICY.for_tournament_list([active, done]) == timedelta(hours=6)


def test_match_stats_thresholds():
    assert POLICY.for_match_stats(True, MatchStatus.COMPLETED) is None
    assert POLICY.for_match_stats(False, MatchStatus.COMPLETED) == timedelta(0)
    assert POLICY.for_match_stats(False, MatchStatus.LIVE, _quota(100)) == timedelta(seconds=30)
    assert POLICY.for_match_stats(False, None) == timedelta(hours=1)


def test_fixed_thresholds():
    assert POLICY.for_kind(EntityKind.PLAYER) == timedelta(hours=24)
    assert POLICY.for_kind(EntityKind.SQUAD) == timedelta(hours=24)
    assert POLICY.for_kind(EntityKind.TEAM) == timedelta(days=7)
    with pytest.raises(ValueError):
        POLICY.for_kind(EntityKind.MATCH)
