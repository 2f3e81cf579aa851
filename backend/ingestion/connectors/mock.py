"""
Deterministic in-process provider for development and tests.

Fixtures are plain attributes so tests can edit them between calls; every call
is charged against the quota and counted in `calls`, like a real provider.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ingestion.connectors.base import CricketAPIProvider, utc_now
from ingestion.schema import (
    BasicMatch,
    CareerStats,
    FormatBatting,
    FormatBowling,
    LiveBatsman,
    LiveBowler,
    LiveMatch,
    MatchFormat,
    MatchScore,
    MatchStatus,
    Player,
    PlayerMatchStats,
    PlayerRole,
    ScoreSnapshot,
    TeamRef,
    Tournament,
    TournamentStatus,
)


def _team(id_: str, name: str, short: str) -> TeamRef:
    return TeamRef(id=id_, name=name, short_name=short, country="India", logo_url=f"/teams/{id_}.png")


def _player(id_, name, team_id, role, batting=None, bowling=None, country="India") -> Player:
    return Player(
        id=id_,
        name=name,
        role=role,
        team_id=team_id,
        batting_style=batting,
        bowling_style=bowling,
        country=country,
    )


def default_teams() -> Dict[str, TeamRef]:
    teams = [
        _team("mi", "Mumbai Indians", "MI"),
        _team("csk", "Chennai Super Kings", "CSK"),
        _team("rcb", "Royal Challengers Bangalore", "RCB"),
        _team("kkr", "Kolkata Knight Riders", "KKR"),
        _team("dc", "Delhi Capitals", "DC"),
        _team("pbks", "Punjab Kings", "PBKS"),
        _team("rr", "Rajasthan Royals", "RR"),
        _team("srh", "Sunrisers Hyderabad", "SRH"),
        _team("gt", "Gujarat Titans", "GT"),
        _team("lsg", "Lucknow Super Giants", "LSG"),
    ]
    return {t.id: t for t in teams}


def default_players() -> Dict[str, Player]:
    B, BO, AR, WK = PlayerRole.BATSMAN, PlayerRole.BOWLER, PlayerRole.ALL_ROUNDER, PlayerRole.WICKET_KEEPER
    players = [
        _player("rohit", "Rohit Sharma", "mi", B, "Right-hand"),
        _player("bumrah", "Jasprit Bumrah", "mi", BO, bowling="Right-arm fast"),
        _player("hardik", "Hardik Pandya", "mi", AR, "Right-hand", "Right-arm medium"),
        _player("kishan", "Ishan Kishan", "mi", WK, "Left-hand"),
        _player("surya", "Suryakumar Yadav", "mi", B, "Right-hand"),
        _player("dhoni", "MS Dhoni", "csk", WK, "Right-hand"),
        _player("jadeja", "Ravindra Jadeja", "csk", AR, "Left-hand", "Left-arm orthodox"),
        _player("gaikwad", "Ruturaj Gaikwad", "csk", B, "Right-hand"),
        _player("chahar", "Deepak Chahar", "csk", BO, bowling="Right-arm medium"),
        _player("kohli", "Virat Kohli", "rcb", B, "Right-hand"),
        _player("faf", "Faf du Plessis", "rcb", B, "Right-hand", country="South Africa"),
        _player("siraj", "Mohammed Siraj", "rcb", BO, bowling="Right-arm fast"),
        _player("dk", "Dinesh Karthik", "rcb", WK, "Right-hand"),
        _player("shreyas", "Shreyas Iyer", "kkr", B, "Right-hand"),
        _player("narine", "Sunil Narine", "kkr", AR, "Left-hand", "Off-spin", country="West Indies"),
        _player("russell", "Andre Russell", "kkr", AR, "Right-hand", "Right-arm fast", country="West Indies"),
    ]
    return {p.id: p for p in players}


class MockCricketProvider(CricketAPIProvider):
    name = "mock"

    def __init__(
        self,
        daily_limit: int = 1000,
        clock: Callable[[], datetime] = utc_now,
        delay_seconds: float = 0.0,
    ) -> None:
        super().__init__(daily_limit=daily_limit, clock=clock)
        self.delay_seconds = delay_seconds
        self.calls: Counter = Counter()
        # Set to an exception instance to make every subsequent call raise it.
        self.fail_with: Optional[Exception] = None

        anchor = clock()
        self.teams = default_teams()
        self.players = default_players()
        self.tournaments: Dict[str, Tournament] = {
            "ipl-2026": Tournament(
                id="ipl-2026",
                name="Indian Premier League 2026",
                short_name="IPL",
                start_date=datetime(2026, 3, 22, tzinfo=anchor.tzinfo),
                end_date=datetime(2026, 5, 28, tzinfo=anchor.tzinfo),
                format=MatchFormat.T20,
                team_count=10,
                match_count=74,
                status=TournamentStatus.ACTIVE,
            ),
            "t20-wc-2026": Tournament(
                id="t20-wc-2026",
                name="T20 World Cup 2026",
                short_name="T20WC",
                start_date=datetime(2026, 10, 1, tzinfo=anchor.tzinfo),
                end_date=datetime(2026, 10, 30, tzinfo=anchor.tzinfo),
                format=MatchFormat.T20,
                team_count=0,
                match_count=45,
                status=TournamentStatus.ACTIVE,
            ),
        }
        t = self.teams
        self.matches: Dict[str, BasicMatch] = {
            "match-1": BasicMatch(
                id="match-1",
                name="Mumbai Indians vs Chennai Super Kings",
                status=MatchStatus.LIVE,
                venue="Wankhede Stadium, Mumbai",
                start_time=anchor - timedelta(minutes=30),
                team_a=t["mi"],
                team_b=t["csk"],
                tournament_id="ipl-2026",
                score=MatchScore(
                    team_a=ScoreSnapshot(runs=145, wickets=3, overs=15.2, run_rate=9.46, innings=1),
                    team_b=ScoreSnapshot(innings=0),
                ),
            ),
            "match-2": BasicMatch(
                id="match-2",
                name="Royal Challengers Bangalore vs Kolkata Knight Riders",
                status=MatchStatus.UPCOMING,
                venue="M. Chinnaswamy Stadium, Bangalore",
                start_time=anchor + timedelta(hours=2),
                team_a=t["rcb"],
                team_b=t["kkr"],
                tournament_id="ipl-2026",
            ),
            "match-3": BasicMatch(
                id="match-3",
                name="Delhi Capitals vs Punjab Kings",
                status=MatchStatus.COMPLETED,
                venue="Arun Jaitley Stadium, Delhi",
                start_time=anchor - timedelta(days=1),
                team_a=t["dc"],
                team_b=t["pbks"],
                tournament_id="ipl-2026",
                result="Delhi Capitals won by 5 wickets",
                score=MatchScore(
                    team_a=ScoreSnapshot(runs=189, wickets=4, overs=20, run_rate=9.45, innings=2),
                    team_b=ScoreSnapshot(runs=185, wickets=8, overs=20, run_rate=9.25, innings=1),
                ),
            ),
        }
        self.match_stats: Dict[str, List[PlayerMatchStats]] = {}
        self.career_stats: Dict[str, CareerStats] = {
            "rohit": CareerStats(
                player_id="rohit",
                batting={
                    "t20": FormatBatting(matches=240, innings=235, runs=6200, average=30.0, strike_rate=131.0, fours=550, sixes=270),
                    "t20i": FormatBatting(matches=150, innings=142, runs=4200, average=32.0, strike_rate=140.0, fours=380, sixes=200),
                },
            ),
            "bumrah": CareerStats(
                player_id="bumrah",
                bowling={
                    "t20": FormatBowling(matches=130, wickets=160, economy=7.3, average=22.0, strike_rate=18.0),
                    "t20i": FormatBowling(matches=70, wickets=89, economy=6.3, average=18.0, strike_rate=17.0),
                },
            ),
        }

    async def _call(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.fail_with is not None:
            raise self.fail_with
        self._consume_quota()
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

    async def get_tournaments(self) -> List[Tournament]:
        await self._call("get_tournaments")
        return [t.model_copy() for t in self.tournaments.values()]

    async def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        await self._call("get_tournament")
        t = self.tournaments.get(tournament_id)
        return t.model_copy() if t else None

    async def get_matches(
        self,
        tournament_id: Optional[str] = None,
        status: Optional[MatchStatus] = None,
    ) -> List[BasicMatch]:
        await self._call("get_matches")
        matches = [m.model_copy(deep=True) for m in self.matches.values()]
        if tournament_id:
            matches = [m for m in matches if m.tournament_id == tournament_id]
        if status is not None:
            matches = [m for m in matches if m.status == status]
        return matches

    async def get_match(self, match_id: str) -> Optional[BasicMatch]:
        await self._call("get_match")
        m = self.matches.get(match_id)
        return m.model_copy(deep=True) if m else None

    async def get_live_score(self, match_id: str) -> Optional[LiveMatch]:
        await self._call("get_live_score")
        m = self.matches.get(match_id)
        if m is None:
            return None
        return LiveMatch(
            **m.model_dump(exclude={"kind"}),
            current_batsmen=[
                LiveBatsman(player_id="rohit", name="Rohit Sharma", runs=67, balls=45, fours=6, sixes=4,
                            strike_rate=148.89, on_strike=True),
                LiveBatsman(player_id="surya", name="Suryakumar Yadav", runs=42, balls=28, fours=3, sixes=2,
                            strike_rate=150.0),
            ],
            current_bowler=LiveBowler(player_id="chahar", name="Deepak Chahar", overs=3.2, runs=28,
                                      wickets=1, economy=8.4),
            recent_balls=["1", "4", "0", "6", "1", "2"],
        )

    async def get_team(self, team_id: str) -> Optional[TeamRef]:
        await self._call("get_team")
        t = self.teams.get(team_id)
        return t.model_copy() if t else None

    async def get_players(
        self,
        team_id: Optional[str] = None,
        role: Optional[PlayerRole] = None,
        search: Optional[str] = None,
    ) -> List[Player]:
        await self._call("get_players")
        players = [p.model_copy() for p in self.players.values()]
        if team_id:
            players = [p for p in players if p.team_id == team_id]
        if role is not None:
            players = [p for p in players if p.role == role]
        if search:
            needle = search.lower()
            players = [p for p in players if needle in p.name.lower()]
        return players

    async def get_player(self, player_id: str) -> Optional[Player]:
        await self._call("get_player")
        p = self.players.get(player_id)
        return p.model_copy() if p else None

    async def get_squad(self, team_id: str, tournament_id: Optional[str] = None) -> List[Player]:
        await self._call("get_squad")
        return [p.model_copy() for p in self.players.values() if p.team_id == team_id]

    async def get_player_career_stats(self, player_id: str) -> Optional[CareerStats]:
        await self._call("get_player_career_stats")
        stats = self.career_stats.get(player_id)
        return stats.model_copy(deep=True) if stats else None

    async def get_all_player_match_stats(self, match_id: str) -> List[PlayerMatchStats]:
        await self._call("get_all_player_match_stats")
        if match_id in self.match_stats:
            return [s.model_copy() for s in self.match_stats[match_id]]
        return [
            PlayerMatchStats(
                player_id="rohit",
                match_id=match_id,
                runs=67,
                balls_faced=45,
                fours=6,
                sixes=4,
                strike_rate=148.89,
                catches=1,
            ),
            PlayerMatchStats(
                player_id="bumrah",
                match_id=match_id,
                overs=4,
                maidens=1,
                runs_conceded=22,
                wickets=3,
                economy=5.5,
                dot_balls=12,
            ),
        ]
