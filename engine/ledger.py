"""
engine/ledger.py

Per-player batting and bowling accumulators for a live match.

Both maps are keyed by player name and cover every player in both squads.
They are created once when the match starts and carry over into the second
innings, so a player's figures accumulate across the whole match.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, Tuple

from engine.errors import AlreadyOut, DuplicatePlayer, MissingLedgerEntry


@dataclass
class BattingEntry:
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    out: bool = False

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(data):
        return BattingEntry(
            runs=int(data.get("runs", 0)),
            balls=int(data.get("balls", 0)),
            fours=int(data.get("fours", 0)),
            sixes=int(data.get("sixes", 0)),
            out=bool(data.get("out", False)),
        )


@dataclass
class BowlingEntry:
    balls: int = 0
    runs: int = 0
    wickets: int = 0

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(data):
        return BowlingEntry(
            balls=int(data.get("balls", 0)),
            runs=int(data.get("runs", 0)),
            wickets=int(data.get("wickets", 0)),
        )


BattingLedger = Dict[str, BattingEntry]
BowlingLedger = Dict[str, BowlingEntry]


def init_ledger(squad_union: Iterable[str]) -> Tuple[BattingLedger, BowlingLedger]:
    """Create zeroed batting and bowling entries for every player, once."""
    batting: BattingLedger = {}
    bowling: BowlingLedger = {}
    for name in squad_union:
        if name in batting:
            raise DuplicatePlayer(f"Player '{name}' appears more than once across the squads", player=name)
        batting[name] = BattingEntry()
        bowling[name] = BowlingEntry()
    return batting, bowling


def batting_entry(batting: BattingLedger, player: str) -> BattingEntry:
    try:
        return batting[player]
    except KeyError:
        raise MissingLedgerEntry(f"No batting record for '{player}'", player=player) from None


def bowling_entry(bowling: BowlingLedger, player: str) -> BowlingEntry:
    try:
        return bowling[player]
    except KeyError:
        raise MissingLedgerEntry(f"No bowling record for '{player}'", player=player) from None


def apply_batting_delta(batting: BattingLedger, player: str, runs_off_bat: int, is_legal_ball: bool) -> BattingEntry:
    entry = batting_entry(batting, player)
    if is_legal_ball:
        entry.balls += 1
    entry.runs += runs_off_bat
    if runs_off_bat == 4:
        entry.fours += 1
    elif runs_off_bat == 6:
        entry.sixes += 1
    return entry


def apply_bowling_delta(bowling: BowlingLedger, bowler: str, runs_conceded: int,
                        is_legal_ball: bool, wicket_taken: bool) -> BowlingEntry:
    # Every dismissal is credited to the bowler, run-outs included.
    entry = bowling_entry(bowling, bowler)
    if is_legal_ball:
        entry.balls += 1
    entry.runs += runs_conceded
    if wicket_taken:
        entry.wickets += 1
    return entry


def mark_out(batting: BattingLedger, player: str) -> BattingEntry:
    entry = batting_entry(batting, player)
    if entry.out:
        raise AlreadyOut(f"{player} is already out", player=player)
    entry.out = True
    return entry
