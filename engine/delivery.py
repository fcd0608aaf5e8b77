"""
engine/delivery.py

The per-ball transition of a live match.

``process_delivery`` applies one delivery to a ``MatchState`` in place and
returns it. Every check that can reject the delivery runs before the first
mutation, so a rejected ball leaves the state exactly as it was loaded.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from engine.errors import (
    BatsmanAlreadyOut,
    BatsmanRequired,
    InningsAlreadyComplete,
    InvalidBatsman,
    MatchNotLive,
    OpenersNotSet,
    ValidationError,
)
from engine.ledger import (
    apply_batting_delta,
    apply_bowling_delta,
    batting_entry,
    bowling_entry,
    mark_out,
)
from engine.match_state import FallOfWicket, MatchState, MatchStatus, Score
from engine.over_tracker import (
    EXTRA_TYPES,
    NO_BALL,
    WIDE,
    chase_complete,
    innings_complete,
    innings_over,
    is_legal_ball,
    record_ball,
    rotate_on_over_complete,
    rotate_on_runs,
)

logger = logging.getLogger(__name__)

MAX_RUNS_PER_BALL = 7


@dataclass
class Delivery:
    runs: int = 0
    is_wicket: bool = False
    extra_type: Optional[str] = None
    wicket_type: Optional[str] = None
    new_batsman: Optional[str] = None

    @staticmethod
    def from_payload(payload, max_runs=MAX_RUNS_PER_BALL) -> "Delivery":
        """Build a Delivery from a request body (camelCase keys)."""
        if not isinstance(payload, dict):
            raise ValidationError("Delivery payload must be a JSON object")

        runs = payload.get("runs", 0)
        if runs is None:
            runs = 0
        if isinstance(runs, bool) or not isinstance(runs, int):
            raise ValidationError("runs must be an integer")
        if runs < 0 or runs > max_runs:
            raise ValidationError(f"runs must be between 0 and {max_runs}")

        is_wicket = payload.get("isWicket", False)
        if is_wicket is None:
            is_wicket = False
        if not isinstance(is_wicket, bool):
            raise ValidationError("isWicket must be true or false")

        extra_type = payload.get("extraType")
        if extra_type is not None and str(extra_type).strip() != "":
            extra_type = str(extra_type).strip().upper()
            if extra_type not in EXTRA_TYPES:
                raise ValidationError("extraType must be WD or NB")
        else:
            extra_type = None

        wicket_type = payload.get("wicketType")
        new_batsman = payload.get("newBatsman")
        return Delivery(
            runs=runs,
            is_wicket=is_wicket,
            extra_type=extra_type,
            wicket_type=str(wicket_type).strip() if wicket_type else None,
            new_batsman=str(new_batsman).strip() if new_batsman else None,
        )


def _ensure_open(state: MatchState) -> None:
    if state.status != MatchStatus.LIVE:
        raise MatchNotLive(f"Match is {state.status.value}, not LIVE")
    if innings_over(state):
        raise InningsAlreadyComplete()
    if state.striker is None or state.non_striker is None or state.bowler is None:
        raise OpenersNotSet()


def _resolve_incoming(state: MatchState, delivery: Delivery, legal: bool) -> Optional[str]:
    """
    Work out who replaces the dismissed striker.

    Returns None when no replacement is needed: the wicket ends the innings,
    or nobody eligible is left to come in.
    """
    after = Score(
        runs=state.score.runs + delivery.runs,
        wickets=state.score.wickets + 1,
        balls=state.score.balls + (1 if legal else 0),
    )
    if innings_complete(after, state.overs_limit, state.batting_squad_size):
        return None
    if state.innings == 2 and chase_complete(after, state.target):
        return None

    on_field = set(state.on_field_names())
    candidates = [name for name in state.squad_union()
                  if name not in on_field and not state.batting_stats[name].out]
    if not candidates:
        return None

    name = delivery.new_batsman
    if not name:
        raise BatsmanRequired()
    if not state.in_squads(name):
        raise InvalidBatsman(f"{name} is not in either squad", player=name)
    if name == state.striker.name or batting_entry(state.batting_stats, name).out:
        raise BatsmanAlreadyOut(f"{name} is already out", player=name)
    if name in on_field:
        raise InvalidBatsman(f"{name} is already on the field", player=name)
    return name


def process_delivery(state: MatchState, delivery: Delivery) -> MatchState:
    _ensure_open(state)

    legal = is_legal_ball(delivery.extra_type)
    striker = state.striker.name
    bowler = state.bowler.name
    batting_entry(state.batting_stats, striker)
    bowling_entry(state.bowling_stats, bowler)

    incoming = _resolve_incoming(state, delivery, legal) if delivery.is_wicket else None

    state.score.runs += delivery.runs
    if legal:
        state.score.balls += 1

    # A wide never reaches the bat; a no-ball's runs do.
    runs_off_bat = delivery.runs if delivery.extra_type in (None, NO_BALL) else 0
    apply_batting_delta(state.batting_stats, striker, runs_off_bat, legal)
    apply_bowling_delta(state.bowling_stats, bowler, delivery.runs, legal, delivery.is_wicket)
    if delivery.extra_type == WIDE:
        state.extras.wides += delivery.runs
    elif delivery.extra_type == NO_BALL:
        state.extras.no_balls += 1

    record_ball(state.current_over, delivery.is_wicket, delivery.runs, delivery.extra_type)

    if delivery.is_wicket:
        state.score.wickets += 1
        mark_out(state.batting_stats, striker)
        state.fall_of_wickets.append(FallOfWicket(
            wicket_no=state.score.wickets,
            batsman=striker,
            score_at_wicket=state.score.runs,
            balls=state.score.balls,
            wicket_type=delivery.wicket_type or "unknown",
            bowler=bowler,
        ))
        state.striker = state.batsman_snapshot(incoming) if incoming else None
        logger.info(f"[Delivery] {state.match_id}: {striker} out ({delivery.wicket_type or 'unknown'}), "
                    f"{state.score.runs}/{state.score.wickets}, in: {incoming or '-'}")
    elif legal:
        state.striker, state.non_striker = rotate_on_runs(state.striker, state.non_striker, delivery.runs)

    if legal:
        state.striker, state.non_striker, over_done = rotate_on_over_complete(
            state.striker, state.non_striker, state.current_over, state.score.balls)
        if over_done:
            logger.debug(f"[Delivery] {state.match_id}: over {state.score.balls // 6} complete")

    state.sync_snapshots()
    logger.debug(f"[Delivery] {state.match_id}: runs={delivery.runs} extra={delivery.extra_type} "
                 f"-> {state.score.runs}/{state.score.wickets} ({state.score.balls} balls)")
    return state
