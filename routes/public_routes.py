"""Public read-only match listings and live scoreboard."""

from flask import jsonify

from engine.errors import LiveStateMissing, MatchNotLive
from engine.match_state import MatchStatus
from engine.over_tracker import BALLS_PER_OVER, innings_over, overs_played


def _listing(match, with_result=False):
    row = {
        "id": match.id,
        "team_a_name": match.team_a_name,
        "team_b_name": match.team_b_name,
        "overs": match.overs,
        "status": match.status,
        "created_at": match.created_at.isoformat() if match.created_at else None,
    }
    if with_result:
        row["winner"] = match.winner
        row["result_text"] = match.result_text
    return row


def build_scoreboard(state):
    board = {
        "matchId": state.match_id,
        "teamA": state.team_a,
        "teamB": state.team_b,
        "innings": state.innings,
        "battingTeam": state.batting_team,
        "bowlingTeam": state.bowling_team,
        "score": state.score.to_dict(),
        "overs": overs_played(state.score.balls),
        "oversLimit": state.overs_limit,
        "extras": state.extras.to_dict(),
        "currentOver": list(state.current_over),
        "striker": state.striker.to_dict() if state.striker else None,
        "nonStriker": state.non_striker.to_dict() if state.non_striker else None,
        "bowler": state.bowler.to_dict() if state.bowler else None,
        "fallOfWickets": [f.to_dict() for f in state.fall_of_wickets],
        "inningsComplete": innings_over(state),
        "target": state.target,
    }
    if state.target is not None:
        board["runsNeeded"] = max(0, state.target - state.score.runs)
        board["ballsRemaining"] = max(0, state.overs_limit * BALLS_PER_OVER - state.score.balls)
    return board


def register_public_routes(app, *, match_registry, live_cache):
    @app.route("/api/public/matches/live")
    def get_live_matches():
        matches = match_registry.list_by_status(MatchStatus.LIVE)
        return jsonify({"ok": True, "matches": [_listing(m) for m in matches]}), 200

    @app.route("/api/public/matches/upcoming")
    def get_upcoming_matches():
        matches = match_registry.list_by_status(MatchStatus.CREATED)
        return jsonify({"ok": True, "matches": [_listing(m) for m in matches]}), 200

    @app.route("/api/public/matches/completed")
    def get_completed_matches():
        matches = match_registry.list_by_status(MatchStatus.COMPLETED)
        return jsonify({"ok": True, "matches": [_listing(m, with_result=True) for m in matches]}), 200

    @app.route("/api/public/matches/<match_id>/scoreboard")
    def get_scoreboard(match_id):
        match = match_registry.get(match_id)
        if match.status != MatchStatus.LIVE.value:
            raise MatchNotLive(f"Match is {match.status}, not LIVE")
        state = live_cache.load(match.id)
        if state is None:
            raise LiveStateMissing(f"No live state for match {match.id}")
        return jsonify({"ok": True, "scoreboard": build_scoreboard(state)}), 200
