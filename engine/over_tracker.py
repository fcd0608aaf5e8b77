"""
engine/over_tracker.py

Ball accounting for the innings in progress: legal-ball test, the per-over
display tokens, strike rotation, over boundaries and the end-of-innings test.
"""

from typing import List, Optional, Tuple

BALLS_PER_OVER = 6
MAX_WICKETS = 10

WIDE = "WD"
NO_BALL = "NB"
EXTRA_TYPES = (WIDE, NO_BALL)


def is_legal_ball(extra_type: Optional[str]) -> bool:
    return extra_type not in EXTRA_TYPES


def record_ball(current_over: List[str], is_wicket: bool, runs: int, extra_type: Optional[str]) -> str:
    """Append the display token for one delivery and return it."""
    if is_wicket:
        token = "W"
    elif extra_type in EXTRA_TYPES:
        token = f"{runs}{extra_type}"
    else:
        token = str(runs)
    current_over.append(token)
    return token


def rotate_on_runs(striker, non_striker, runs: int) -> Tuple:
    if runs % 2 == 1:
        return non_striker, striker
    return striker, non_striker


def rotate_on_over_complete(striker, non_striker, current_over: List[str], balls: int) -> Tuple:
    """
    Swap ends and clear the over when ``balls`` lands on an over boundary.

    Returns (striker, non_striker, over_completed).
    """
    if balls > 0 and balls % BALLS_PER_OVER == 0:
        current_over.clear()
        return non_striker, striker, True
    return striker, non_striker, False


def wicket_threshold(squad_size: int) -> int:
    """Wickets needed to bowl a side out: ten, or fewer for a short squad."""
    return max(1, min(MAX_WICKETS, squad_size - 1))


def innings_complete(score, overs_limit: int, squad_size: int) -> bool:
    return (score.wickets >= wicket_threshold(squad_size)
            or score.balls >= overs_limit * BALLS_PER_OVER)


def chase_complete(score, target: Optional[int]) -> bool:
    return target is not None and score.runs >= target


def innings_over(state) -> bool:
    """Innings is done: bowled out, overs used up, or the chase is won."""
    if innings_complete(state.score, state.overs_limit, state.batting_squad_size):
        return True
    return state.innings == 2 and chase_complete(state.score, state.target)


def overs_played(balls: int) -> str:
    # Display string, not a decimal: 5 balls -> "0.5", 6 balls -> "1.0"
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"
