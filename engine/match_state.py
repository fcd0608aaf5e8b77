"""
engine/match_state.py
=====================

The live state of one match, held in the cache between requests.

``MatchState`` is the aggregate root: the delivery processor and the innings
lifecycle manager are the only code that mutates it. The striker, non-striker
and bowler snapshots mirror ledger entries for quick display; they are
re-synced from the ledger at the end of every transition rather than being
updated on their own.

Encoding
--------
``to_dict`` produces the cache blob using camelCase keys (``matchId``,
``currentOver``, ``battingStats`` ...). ``from_dict`` is its inverse.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from engine.ledger import (
    BattingEntry,
    BattingLedger,
    BowlingEntry,
    BowlingLedger,
    batting_entry,
    bowling_entry,
)


class MatchStatus(str, Enum):
    CREATED = "CREATED"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"


class TossDecision(str, Enum):
    BAT = "BAT"
    FIELD = "FIELD"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass
class Score:
    runs: int = 0
    wickets: int = 0
    balls: int = 0

    def to_dict(self):
        return {"runs": self.runs, "wickets": self.wickets, "balls": self.balls}

    @staticmethod
    def from_dict(data):
        return Score(int(data.get("runs", 0)), int(data.get("wickets", 0)), int(data.get("balls", 0)))


@dataclass
class Extras:
    wides: int = 0       # runs conceded through wides
    no_balls: int = 0    # count of no-balls

    def to_dict(self):
        return {"wides": self.wides, "noBalls": self.no_balls}

    @staticmethod
    def from_dict(data):
        return Extras(int(data.get("wides", 0)), int(data.get("noBalls", 0)))


@dataclass
class PlayerSnapshot:
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0

    @staticmethod
    def from_ledger(name: str, entry: BattingEntry) -> "PlayerSnapshot":
        return PlayerSnapshot(name, entry.runs, entry.balls, entry.fours, entry.sixes)

    def to_dict(self):
        return {"name": self.name, "runs": self.runs, "balls": self.balls,
                "fours": self.fours, "sixes": self.sixes}

    @staticmethod
    def from_dict(data):
        if not data:
            return None
        return PlayerSnapshot(data["name"], int(data.get("runs", 0)), int(data.get("balls", 0)),
                              int(data.get("fours", 0)), int(data.get("sixes", 0)))


@dataclass
class BowlerSnapshot:
    name: str
    balls: int = 0
    runs: int = 0
    wickets: int = 0

    @staticmethod
    def from_ledger(name: str, entry: BowlingEntry) -> "BowlerSnapshot":
        return BowlerSnapshot(name, entry.balls, entry.runs, entry.wickets)

    def to_dict(self):
        return {"name": self.name, "balls": self.balls, "runs": self.runs, "wickets": self.wickets}

    @staticmethod
    def from_dict(data):
        if not data:
            return None
        return BowlerSnapshot(data["name"], int(data.get("balls", 0)), int(data.get("runs", 0)),
                              int(data.get("wickets", 0)))


@dataclass
class FallOfWicket:
    wicket_no: int
    batsman: str
    score_at_wicket: int
    balls: int
    wicket_type: str
    bowler: str

    def to_dict(self):
        return {
            "wicketNo": self.wicket_no,
            "batsman": self.batsman,
            "scoreAtWicket": self.score_at_wicket,
            "balls": self.balls,
            "wicketType": self.wicket_type,
            "bowler": self.bowler,
        }

    @staticmethod
    def from_dict(data):
        return FallOfWicket(
            wicket_no=int(data["wicketNo"]),
            batsman=data["batsman"],
            score_at_wicket=int(data["scoreAtWicket"]),
            balls=int(data["balls"]),
            wicket_type=data.get("wicketType") or "unknown",
            bowler=data.get("bowler", ""),
        )


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

@dataclass
class MatchState:
    match_id: str
    team_a: str
    team_b: str
    overs_limit: int
    toss_winner: str
    toss_decision: TossDecision
    squads: Dict[str, List[str]]
    batting_stats: BattingLedger
    bowling_stats: BowlingLedger
    status: MatchStatus = MatchStatus.LIVE
    innings: int = 1
    target: Optional[int] = None
    score: Score = field(default_factory=Score)
    extras: Extras = field(default_factory=Extras)
    current_over: List[str] = field(default_factory=list)
    striker: Optional[PlayerSnapshot] = None
    non_striker: Optional[PlayerSnapshot] = None
    bowler: Optional[BowlerSnapshot] = None
    fall_of_wickets: List[FallOfWicket] = field(default_factory=list)

    # ------------------------------------------------------------------ #
    # Squad helpers
    # ------------------------------------------------------------------ #

    def squad_union(self) -> List[str]:
        return list(self.squads.get(self.team_a, [])) + list(self.squads.get(self.team_b, []))

    def in_squads(self, name: Optional[str]) -> bool:
        return bool(name) and any(name in players for players in self.squads.values())

    @property
    def batting_team(self) -> str:
        bats_first = self.toss_winner if self.toss_decision == TossDecision.BAT else self.other_team(self.toss_winner)
        return bats_first if self.innings == 1 else self.other_team(bats_first)

    @property
    def bowling_team(self) -> str:
        return self.other_team(self.batting_team)

    def other_team(self, team: str) -> str:
        return self.team_b if team == self.team_a else self.team_a

    @property
    def batting_squad_size(self) -> int:
        return len(self.squads.get(self.batting_team, []))

    # ------------------------------------------------------------------ #
    # Snapshots
    # ------------------------------------------------------------------ #

    def batsman_snapshot(self, name: str) -> PlayerSnapshot:
        return PlayerSnapshot.from_ledger(name, batting_entry(self.batting_stats, name))

    def bowler_snapshot(self, name: str) -> BowlerSnapshot:
        return BowlerSnapshot.from_ledger(name, bowling_entry(self.bowling_stats, name))

    def sync_snapshots(self) -> None:
        """Refresh striker, non-striker and bowler from the ledger."""
        if self.striker is not None:
            self.striker = self.batsman_snapshot(self.striker.name)
        if self.non_striker is not None:
            self.non_striker = self.batsman_snapshot(self.non_striker.name)
        if self.bowler is not None:
            self.bowler = self.bowler_snapshot(self.bowler.name)

    def on_field_names(self) -> List[str]:
        return [p.name for p in (self.striker, self.non_striker, self.bowler) if p is not None]

    # ------------------------------------------------------------------ #
    # Encoding
    # ------------------------------------------------------------------ #

    def to_dict(self):
        return {
            "matchId": self.match_id,
            "teamA": self.team_a,
            "teamB": self.team_b,
            "oversLimit": self.overs_limit,
            "tossWinner": self.toss_winner,
            "tossDecision": self.toss_decision.value,
            "status": self.status.value,
            "innings": self.innings,
            "target": self.target,
            "squads": {team: list(players) for team, players in self.squads.items()},
            "score": self.score.to_dict(),
            "extras": self.extras.to_dict(),
            "currentOver": list(self.current_over),
            "striker": self.striker.to_dict() if self.striker else None,
            "nonStriker": self.non_striker.to_dict() if self.non_striker else None,
            "bowler": self.bowler.to_dict() if self.bowler else None,
            "battingStats": {name: e.to_dict() for name, e in self.batting_stats.items()},
            "bowlingStats": {name: e.to_dict() for name, e in self.bowling_stats.items()},
            "fallOfWickets": [f.to_dict() for f in self.fall_of_wickets],
        }

    @staticmethod
    def from_dict(data):
        return MatchState(
            match_id=str(data["matchId"]),
            team_a=data["teamA"],
            team_b=data["teamB"],
            overs_limit=int(data["oversLimit"]),
            toss_winner=data["tossWinner"],
            toss_decision=TossDecision(data["tossDecision"]),
            squads={team: list(players) for team, players in data["squads"].items()},
            batting_stats={n: BattingEntry.from_dict(e) for n, e in data.get("battingStats", {}).items()},
            bowling_stats={n: BowlingEntry.from_dict(e) for n, e in data.get("bowlingStats", {}).items()},
            status=MatchStatus(data.get("status", MatchStatus.LIVE.value)),
            innings=int(data.get("innings", 1)),
            target=data.get("target"),
            score=Score.from_dict(data.get("score") or {}),
            extras=Extras.from_dict(data.get("extras") or {}),
            current_over=list(data.get("currentOver") or []),
            striker=PlayerSnapshot.from_dict(data.get("striker")),
            non_striker=PlayerSnapshot.from_dict(data.get("nonStriker")),
            bowler=BowlerSnapshot.from_dict(data.get("bowler")),
            fall_of_wickets=[FallOfWicket.from_dict(f) for f in data.get("fallOfWickets") or []],
        )
