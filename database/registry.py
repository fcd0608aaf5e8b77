"""Match and squad records backed by SQLAlchemy."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from database import db
from database.models import Match, SquadPlayer
from engine.errors import InfrastructureError, MatchNotFound, ValidationError
from engine.match_state import MatchStatus

logger = logging.getLogger(__name__)


@contextmanager
def committing(action):
    """Commit on success; roll back and raise InfrastructureError on database failure."""
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"[DB] {action} failed: {e}", exc_info=True)
        raise InfrastructureError(f"Database error while trying to {action}") from e


class MatchRegistry:
    def get(self, match_id):
        try:
            match = db.session.get(Match, str(match_id))
        except SQLAlchemyError as e:
            logger.error(f"[DB] load match {match_id} failed: {e}", exc_info=True)
            raise InfrastructureError("Database error while loading match") from e
        if match is None:
            raise MatchNotFound(f"Match {match_id} not found")
        return match

    def create(self, owner_id, team_a_name, team_b_name, overs):
        team_a_name = str(team_a_name or "").strip()
        team_b_name = str(team_b_name or "").strip()
        if not team_a_name or not team_b_name or overs in (None, ""):
            raise ValidationError("teamAName, teamBName and overs are required")
        if team_a_name == team_b_name:
            raise ValidationError("Team names must be different")
        try:
            overs = int(overs)
        except (TypeError, ValueError):
            raise ValidationError("Overs must be a whole number") from None
        if overs <= 0:
            raise ValidationError("Overs must be greater than 0")

        match = Match(
            created_by=owner_id,
            team_a_name=team_a_name,
            team_b_name=team_b_name,
            overs=overs,
            status=MatchStatus.CREATED.value,
        )
        with committing("create match"):
            db.session.add(match)
        logger.info(f"[DB] Match {match.id} created by {owner_id}: {team_a_name} vs {team_b_name}, {overs} overs")
        return match

    def set_status(self, match_id, status, **fields):
        match = self.get(match_id)
        with committing(f"set match status to {MatchStatus(status).value}"):
            match.status = MatchStatus(status).value
            for key, value in fields.items():
                setattr(match, key, value)
        return match

    def delete(self, match_id):
        match = self.get(match_id)
        with committing("delete match"):
            db.session.delete(match)
        logger.info(f"[DB] Match {match_id} deleted")

    def list_by_status(self, status):
        try:
            return (
                Match.query
                .filter_by(status=MatchStatus(status).value)
                .order_by(Match.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"[DB] listing {status} matches failed: {e}", exc_info=True)
            raise InfrastructureError("Database error while listing matches") from e


class SquadRegistry:
    def replace_squad(self, match_id, team_name, players):
        """Bulk replace a team's squad for a match. Safe to repeat."""
        with committing("replace squad"):
            SquadPlayer.query.filter_by(match_id=match_id, team_name=team_name).delete()
            for position, name in enumerate(players, start=1):
                db.session.add(SquadPlayer(
                    match_id=match_id,
                    team_name=team_name,
                    player_name=name,
                    position=position,
                ))

    def get_squads(self, match_id):
        squads = {}
        rows = (
            SquadPlayer.query
            .filter_by(match_id=match_id)
            .order_by(SquadPlayer.team_name, SquadPlayer.position)
            .all()
        )
        for row in rows:
            squads.setdefault(row.team_name, []).append(row.player_name)
        return squads
