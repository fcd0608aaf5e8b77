"""
engine/innings_manager.py
=========================

Match-level state machine and innings handover.

Match status moves CREATED -> LIVE -> COMPLETED and never back. While LIVE
the state tracks which innings (1 or 2) is in progress. These functions take
and return ``MatchState`` objects; loading and storing them, and writing the
innings archive, is left to the caller.

Usage
-----
    state = start_match(record, "Lions", "BAT", openers, squads)
    state = change_bowler(state, "Ravi")
    result = end_innings(state, force_end=False)
    state = start_innings2(result.state, openers)
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from engine.errors import (
    BatsmanAlreadyOut,
    ConflictError,
    InningsNotComplete,
    InvalidBowler,
    InvalidPlayer,
    InvalidTransition,
    MatchNotLive,
    OpenersNotSet,
    SameBowler,
    ValidationError,
)
from engine.ledger import init_ledger
from engine.match_state import Extras, MatchState, MatchStatus, Score, TossDecision
from engine.over_tracker import innings_over, overs_played

logger = logging.getLogger(__name__)

MIN_SQUAD_SIZE = 2

# Allowed status moves. Anything else is a conflict.
TRANSITIONS = {
    MatchStatus.CREATED: {MatchStatus.LIVE},
    MatchStatus.LIVE: {MatchStatus.COMPLETED},
    MatchStatus.COMPLETED: set(),
}


def ensure_transition(current, target) -> MatchStatus:
    current = MatchStatus(current)
    target = MatchStatus(target)
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move match from {current.value} to {target.value}",
                                status=current.value)
    return target


@dataclass
class Openers:
    striker: str
    non_striker: str
    bowler: str

    @staticmethod
    def from_payload(payload) -> "Openers":
        payload = payload or {}
        names = [str(payload.get(key) or "").strip()
                 for key in ("openingBatsman1", "openingBatsman2", "openingBowler")]
        if not all(names):
            raise ValidationError("openingBatsman1, openingBatsman2 and openingBowler are required")
        return Openers(*names)

    def names(self) -> List[str]:
        return [self.striker, self.non_striker, self.bowler]


@dataclass
class InningsResult:
    innings_no: int
    batting_team: str
    totals: Score
    overs_text: str
    summary: dict
    state: MatchState

    @property
    def match_completed(self) -> bool:
        return self.state.status == MatchStatus.COMPLETED


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _clean_squads(squads, team_a: str, team_b: str) -> Dict[str, List[str]]:
    if not isinstance(squads, dict):
        raise ValidationError("squads must map each team name to a list of players")
    if set(squads.keys()) != {team_a, team_b}:
        raise ValidationError(f"squads must contain exactly '{team_a}' and '{team_b}'")

    cleaned = {}
    for team in (team_a, team_b):
        players = squads[team]
        if not isinstance(players, list):
            raise ValidationError(f"Squad for {team} must be a list")
        names = [str(p).strip() for p in players if p is not None and str(p).strip()]
        if len(names) != len(players):
            raise ValidationError(f"Squad for {team} contains blank player names")
        if len(names) < MIN_SQUAD_SIZE:
            raise ValidationError(f"Squad for {team} needs at least {MIN_SQUAD_SIZE} players")
        cleaned[team] = names
    return cleaned


def _check_openers(state: MatchState, openers: Openers) -> None:
    for name in openers.names():
        if not state.in_squads(name):
            raise InvalidPlayer(f"{name} is not in either squad", player=name)
    if len(set(openers.names())) != 3:
        raise ValidationError("Striker, non-striker and bowler must be three different players")
    for name in (openers.striker, openers.non_striker):
        if state.batting_stats[name].out:
            raise BatsmanAlreadyOut(f"{name} is already out", player=name)


def _ensure_live(state: MatchState) -> None:
    if state.status != MatchStatus.LIVE:
        raise MatchNotLive(f"Match is {state.status.value}, not LIVE")


def _seat_openers(state: MatchState, openers: Openers) -> None:
    state.striker = state.batsman_snapshot(openers.striker)
    state.non_striker = state.batsman_snapshot(openers.non_striker)
    state.bowler = state.bowler_snapshot(openers.bowler)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def start_match(match_record, toss_winner, toss_decision, openers: Openers, squads) -> MatchState:
    """
    Build the opening live state for a CREATED match.

    ``match_record`` is anything with ``id``, ``status``, ``overs``,
    ``team_a_name`` and ``team_b_name`` attributes. The caller is responsible
    for moving the stored record to LIVE once the state has been cached.
    """
    ensure_transition(match_record.status, MatchStatus.LIVE)

    team_a, team_b = match_record.team_a_name, match_record.team_b_name
    toss_winner = str(toss_winner or "").strip()
    if toss_winner not in (team_a, team_b):
        raise ValidationError(f"tossWinner must be '{team_a}' or '{team_b}'")
    try:
        decision = TossDecision(str(toss_decision or "").strip().upper())
    except ValueError:
        raise ValidationError("tossDecision must be BAT or FIELD") from None

    cleaned = _clean_squads(squads, team_a, team_b)
    batting, bowling = init_ledger(cleaned[team_a] + cleaned[team_b])

    state = MatchState(
        match_id=str(match_record.id),
        team_a=team_a,
        team_b=team_b,
        overs_limit=int(match_record.overs),
        toss_winner=toss_winner,
        toss_decision=decision,
        squads=cleaned,
        batting_stats=batting,
        bowling_stats=bowling,
    )
    _check_openers(state, openers)
    _seat_openers(state, openers)

    logger.info(f"[Lifecycle] {state.match_id}: started, {state.batting_team} batting, "
                f"{state.overs_limit} overs")
    return state


def change_bowler(state: MatchState, new_bowler: Optional[str]) -> MatchState:
    _ensure_live(state)
    if state.striker is None or state.non_striker is None:
        raise OpenersNotSet("Seat the openers before changing the bowler")
    name = str(new_bowler or "").strip()
    if not name:
        raise ValidationError("newBowler is required")
    if not state.in_squads(name):
        raise InvalidBowler(f"{name} is not in either squad", player=name)
    # Checked on every change, not only at over boundaries.
    if state.bowler is not None and state.bowler.name == name:
        raise SameBowler(f"{name} is already bowling", player=name)
    if name in (p.name for p in (state.striker, state.non_striker) if p is not None):
        raise InvalidBowler(f"{name} is currently batting", player=name)

    state.bowler = state.bowler_snapshot(name)
    logger.info(f"[Lifecycle] {state.match_id}: bowler changed to {name}")
    return state


def innings_summary(state: MatchState) -> dict:
    """The archive blob for the innings currently in progress."""
    return {
        "inningsNo": state.innings,
        "battingTeam": state.batting_team,
        "bowlingTeam": state.bowling_team,
        "score": state.score.to_dict(),
        "overs": overs_played(state.score.balls),
        "extras": state.extras.to_dict(),
        "target": state.target,
        "battingOrder": list(state.squads[state.batting_team]),
        "bowlingOrder": list(state.squads[state.bowling_team]),
        "fallOfWickets": [f.to_dict() for f in state.fall_of_wickets],
        "battingStats": {n: e.to_dict() for n, e in state.batting_stats.items()},
        "bowlingStats": {n: e.to_dict() for n, e in state.bowling_stats.items()},
    }


def end_innings(state: MatchState, force_end: bool = False) -> InningsResult:
    _ensure_live(state)
    if not innings_over(state) and not force_end:
        raise InningsNotComplete()

    innings_no = state.innings
    batting_team = state.batting_team
    totals = replace(state.score)
    overs_text = overs_played(totals.balls)
    summary = innings_summary(state)

    if innings_no == 1:
        # Ledgers carry over; everything innings-scoped starts fresh.
        next_state = replace(
            state,
            innings=2,
            target=totals.runs + 1,
            score=Score(),
            extras=Extras(),
            current_over=[],
            striker=None,
            non_striker=None,
            bowler=None,
            fall_of_wickets=[],
        )
        logger.info(f"[Lifecycle] {state.match_id}: innings 1 closed at {totals.runs}/{totals.wickets} "
                    f"({overs_text}), target {next_state.target}")
    else:
        next_state = replace(state, status=ensure_transition(state.status, MatchStatus.COMPLETED))
        logger.info(f"[Lifecycle] {state.match_id}: innings 2 closed at {totals.runs}/{totals.wickets} "
                    f"({overs_text}), match completed")

    return InningsResult(innings_no, batting_team, totals, overs_text, summary, next_state)


def start_innings2(state: MatchState, openers: Openers) -> MatchState:
    _ensure_live(state)
    if state.innings != 2 or state.striker is not None or state.bowler is not None:
        raise ConflictError("Second innings can only start after the first innings has ended")
    _check_openers(state, openers)
    _seat_openers(state, openers)
    logger.info(f"[Lifecycle] {state.match_id}: innings 2 started, {state.batting_team} need {state.target}")
    return state
