import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from tabulate import tabulate

from database.models import InningsSummary
from engine.errors import ConflictError, InfrastructureError
from engine.over_tracker import overs_played, wicket_threshold

logger = logging.getLogger(__name__)


def _strike_rate(runs, balls):
    return round(runs * 100.0 / balls, 2) if balls else 0.0


def _economy(runs, balls):
    return round(runs * 6.0 / balls, 2) if balls else 0.0


def format_scorecard(summary: Dict[str, Any]) -> str:
    """Plain-text scorecard for one innings summary blob."""
    batting_stats = summary.get("battingStats", {})
    bowling_stats = summary.get("bowlingStats", {})
    dismissals = {f["batsman"]: f for f in summary.get("fallOfWickets", [])}

    batting_rows = []
    for name in summary.get("battingOrder", []):
        entry = batting_stats.get(name, {})
        if not entry.get("balls") and not entry.get("runs") and not entry.get("out"):
            continue
        fow = dismissals.get(name)
        status = f"{fow['wicketType']} b {fow['bowler']}" if fow else ("out" if entry.get("out") else "not out")
        batting_rows.append([
            name, status, entry.get("runs", 0), entry.get("balls", 0),
            entry.get("fours", 0), entry.get("sixes", 0),
            _strike_rate(entry.get("runs", 0), entry.get("balls", 0)),
        ])

    bowling_rows = []
    for name in summary.get("bowlingOrder", []):
        entry = bowling_stats.get(name, {})
        if not entry.get("balls") and not entry.get("runs"):
            continue
        bowling_rows.append([
            name, overs_played(entry.get("balls", 0)), entry.get("runs", 0),
            entry.get("wickets", 0), _economy(entry.get("runs", 0), entry.get("balls", 0)),
        ])

    score = summary.get("score", {})
    extras = summary.get("extras", {})
    lines = [
        f"Innings {summary.get('inningsNo')}: {summary.get('battingTeam')} "
        f"{score.get('runs', 0)}/{score.get('wickets', 0)} ({summary.get('overs', '0.0')} ov)",
        "",
        tabulate(batting_rows, headers=["Batsman", "Status", "R", "B", "4s", "6s", "SR"], tablefmt="github"),
        "",
        f"Extras: {extras.get('wides', 0)} (wd {extras.get('wides', 0)}, nb {extras.get('noBalls', 0)})",
        "",
        tabulate(bowling_rows, headers=["Bowler", "O", "R", "W", "Econ"], tablefmt="github"),
    ]
    fall = summary.get("fallOfWickets", [])
    if fall:
        lines.append("")
        lines.append("Fall of wickets: " + ", ".join(
            f"{f['scoreAtWicket']}-{f['wicketNo']} ({f['batsman']}, {overs_played(f['balls'])})" for f in fall
        ))
    return "\n".join(lines)


def describe_result(first: InningsSummary, second: InningsSummary,
                    chasing_squad_size: int) -> Tuple[Optional[str], str]:
    """Return (winner, result_text) from the two archived innings."""
    if second.runs > first.runs:
        margin = wicket_threshold(chasing_squad_size) - second.wickets
        unit = "wicket" if margin == 1 else "wickets"
        return second.batting_team, f"{second.batting_team} won by {margin} {unit}"
    if second.runs == first.runs:
        return None, "Match tied"
    margin = first.runs - second.runs
    unit = "run" if margin == 1 else "runs"
    return first.batting_team, f"{first.batting_team} won by {margin} {unit}"


class MatchArchiver:
    def __init__(self, db):
        self.db = db

    def append_innings(self, match_id: str, innings_no: int, batting_team: str,
                       totals, overs_text: str, summary: Dict[str, Any],
                       resume: bool = False) -> InningsSummary:
        """
        Write one finished innings. Each innings number may be written once.

        With ``resume=True`` a row already archived for this innings (left by
        a request that failed after archiving) is rewritten from the current
        live state instead of raising ConflictError.
        """
        record = None
        if resume:
            record = InningsSummary.query.filter_by(match_id=match_id, innings_number=innings_no).first()
            if record is not None:
                logger.info(f"[Archive] Match {match_id} innings {innings_no} already archived, rewriting")
        if record is None:
            record = InningsSummary(match_id=match_id, innings_number=innings_no)

        record.batting_team = batting_team
        record.runs = totals.runs
        record.wickets = totals.wickets
        record.balls = totals.balls
        record.overs = overs_text
        record.summary_json = summary
        record.scorecard_text = format_scorecard(summary)
        try:
            self.db.session.add(record)
            self.db.session.commit()
        except IntegrityError as e:
            self.db.session.rollback()
            raise ConflictError(f"Innings {innings_no} is already archived for this match") from e
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"[Archive] Failed to archive innings {innings_no} of {match_id}: {e}", exc_info=True)
            raise InfrastructureError("Database error while archiving innings") from e

        logger.info(f"[Archive] Match {match_id} innings {innings_no}: {batting_team} "
                    f"{totals.runs}/{totals.wickets} ({overs_text})")
        return record

    def list_innings(self, match_id: str) -> List[InningsSummary]:
        return (
            InningsSummary.query
            .filter_by(match_id=match_id)
            .order_by(InningsSummary.innings_number)
            .all()
        )

    def complete_match(self, match_id: str, state) -> Tuple[Optional[str], str]:
        """Work out the result once both innings are archived."""
        innings = self.list_innings(match_id)
        if len(innings) < 2:
            raise ConflictError("Both innings must be archived before the match can complete")
        first, second = innings[0], innings[1]
        winner, text = describe_result(first, second, len(state.squads.get(second.batting_team, [])))
        logger.info(f"[Archive] Match {match_id} result: {text}")
        return winner, text
