from datetime import datetime
from flask_login import UserMixin
from sqlalchemy.orm import relationship
from database import db
import uuid


class User(UserMixin, db.Model):
    """Scorer account

    Accounts are created and authenticated elsewhere; this service only
    loads them by id to identify the caller.
    """
    __tablename__ = 'users'

    id = db.Column(db.String(120), primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    display_name = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Deleting a user removes the matches they own
    matches = relationship('Match', backref='owner', lazy=True, cascade="all, delete-orphan")


class Match(db.Model):
    """Match record: ownership, status and result"""
    __tablename__ = 'matches'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_by = db.Column(db.String(120), db.ForeignKey('users.id'), nullable=False, index=True)

    team_a_name = db.Column(db.String(100), nullable=False)
    team_b_name = db.Column(db.String(100), nullable=False)
    overs = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default='CREATED', nullable=False, index=True)  # CREATED, LIVE, COMPLETED

    # Toss (set when the match starts)
    toss_winner = db.Column(db.String(100), nullable=True)
    toss_decision = db.Column(db.String(10), nullable=True)  # 'BAT' or 'FIELD'

    # Result (set when the match completes)
    winner = db.Column(db.String(100), nullable=True)
    result_text = db.Column(db.String(200), nullable=True)  # e.g. "Lions won by 4 wickets"

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    squad_players = relationship('SquadPlayer', backref='match', cascade="all, delete-orphan",
                                 order_by='SquadPlayer.position')
    innings = relationship('InningsSummary', backref='match', cascade="all, delete-orphan",
                           order_by='InningsSummary.innings_number')

    def to_dict(self):
        return {
            "id": self.id,
            "created_by": self.created_by,
            "team_a_name": self.team_a_name,
            "team_b_name": self.team_b_name,
            "overs": self.overs,
            "status": self.status,
            "toss_winner": self.toss_winner,
            "toss_decision": self.toss_decision,
            "winner": self.winner,
            "result_text": self.result_text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SquadPlayer(db.Model):
    """One player in a team's squad for a specific match"""
    __tablename__ = 'squad_players'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.String(36), db.ForeignKey('matches.id', ondelete='CASCADE'), nullable=False, index=True)
    team_name = db.Column(db.String(100), nullable=False)
    player_name = db.Column(db.String(100), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint('match_id', 'team_name', 'player_name', name='uq_squad_match_team_player'),
    )


class InningsSummary(db.Model):
    """Archived totals and scorecard for a finished innings (append-only)"""
    __tablename__ = 'innings_summaries'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.String(36), db.ForeignKey('matches.id', ondelete='CASCADE'), nullable=False, index=True)
    innings_number = db.Column(db.Integer, nullable=False)   # 1 or 2
    batting_team = db.Column(db.String(100), nullable=False)

    runs = db.Column(db.Integer, default=0, nullable=False)
    wickets = db.Column(db.Integer, default=0, nullable=False)
    balls = db.Column(db.Integer, default=0, nullable=False)
    overs = db.Column(db.String(10), default='0.0', nullable=False)

    summary_json = db.Column(db.JSON, nullable=False)
    scorecard_text = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('match_id', 'innings_number', name='uq_innings_match_number'),
    )

    def to_dict(self):
        return {
            "innings_number": self.innings_number,
            "batting_team": self.batting_team,
            "runs": self.runs,
            "wickets": self.wickets,
            "balls": self.balls,
            "overs": self.overs,
        }
