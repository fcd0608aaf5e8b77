"""Match scoring route registration (owner-only)."""

from flask import jsonify, request
from flask_login import current_user, login_required

from engine.delivery import Delivery, process_delivery
from engine.errors import ForbiddenError, InfrastructureError, LiveStateMissing, MatchNotLive
from engine.innings_manager import Openers, change_bowler, end_innings, start_innings2, start_match
from engine.match_state import MatchStatus
from engine.over_tracker import innings_over, overs_played


def register_match_routes(
    app,
    *,
    match_registry,
    squad_registry,
    live_cache,
    archiver,
    max_runs_per_ball,
):
    def _owned_match(match_id):
        match = match_registry.get(match_id)
        if match.created_by != current_user.id:
            app.logger.warning(f"[Match] {current_user.id} tried to modify match {match_id} owned by {match.created_by}")
            raise ForbiddenError("You do not own this match")
        return match

    def _live_state(match):
        if match.status != MatchStatus.LIVE.value:
            raise MatchNotLive(f"Match is {match.status}, not LIVE")
        state = live_cache.load(match.id)
        if state is None:
            raise LiveStateMissing(f"No live state for match {match.id}")
        return state

    def _state_payload(state, **extra):
        body = {
            "ok": True,
            "state": state.to_dict(),
            "overs": overs_played(state.score.balls),
            "inningsComplete": innings_over(state),
        }
        body.update(extra)
        return body

    @app.route("/api/matches/create", methods=["POST"])
    @login_required
    def create_match():
        data = request.get_json(silent=True) or {}
        live_cache.purge_expired()
        match = match_registry.create(
            current_user.id,
            data.get("teamAName"),
            data.get("teamBName"),
            data.get("overs"),
        )
        return jsonify({
            "ok": True,
            "message": "Match created successfully",
            "match": match.to_dict(),
        }), 201

    @app.route("/api/matches/<match_id>/start", methods=["POST"])
    @login_required
    def start_match_route(match_id):
        data = request.get_json(silent=True) or {}
        match = _owned_match(match_id)

        openers = Openers.from_payload(data)
        state = start_match(match, data.get("tossWinner"), data.get("tossDecision"), openers, data.get("squads"))

        for team_name, players in state.squads.items():
            squad_registry.replace_squad(match.id, team_name, players)
        live_cache.store(match.id, state)
        try:
            match_registry.set_status(
                match.id,
                MatchStatus.LIVE,
                toss_winner=state.toss_winner,
                toss_decision=state.toss_decision.value,
            )
        except InfrastructureError:
            live_cache.delete(match.id)
            raise

        app.logger.info(f"[Match] {match.id} is LIVE ({state.team_a} vs {state.team_b})")
        return jsonify(_state_payload(state, message="Match started")), 200

    @app.route("/api/matches/<match_id>/ball", methods=["POST"])
    @login_required
    def add_ball(match_id):
        data = request.get_json(silent=True)
        match = _owned_match(match_id)
        state = _live_state(match)

        delivery = Delivery.from_payload(data, max_runs=max_runs_per_ball)
        state = process_delivery(state, delivery)
        live_cache.store(match.id, state)
        return jsonify(_state_payload(state)), 200

    @app.route("/api/matches/<match_id>/change-bowler", methods=["POST"])
    @login_required
    def change_bowler_route(match_id):
        data = request.get_json(silent=True) or {}
        match = _owned_match(match_id)
        state = _live_state(match)

        state = change_bowler(state, data.get("newBowler"))
        live_cache.store(match.id, state)
        return jsonify(_state_payload(state, message="Bowler changed")), 200

    @app.route("/api/matches/<match_id>/end-innings", methods=["POST"])
    @login_required
    def end_innings_route(match_id):
        data = request.get_json(silent=True) or {}
        match = _owned_match(match_id)
        state = _live_state(match)

        result = end_innings(state, force_end=data.get("forceEnd") is True)
        # The live state still holds this innings, so any archived row is from a failed earlier attempt.
        archiver.append_innings(
            match.id,
            result.innings_no,
            result.batting_team,
            result.totals,
            result.overs_text,
            result.summary,
            resume=True,
        )
        innings_body = {
            "inningsNo": result.innings_no,
            "battingTeam": result.batting_team,
            "score": result.totals.to_dict(),
            "overs": result.overs_text,
        }

        if result.match_completed:
            winner, result_text = archiver.complete_match(match.id, result.state)
            match_registry.set_status(match.id, MatchStatus.COMPLETED, winner=winner, result_text=result_text)
            live_cache.delete(match.id)
            app.logger.info(f"[Match] {match.id} COMPLETED: {result_text}")
            return jsonify({
                "ok": True,
                "message": "Match completed",
                "innings": innings_body,
                "winner": winner,
                "resultText": result_text,
            }), 200

        live_cache.store(match.id, result.state)
        return jsonify(_state_payload(
            result.state,
            message="Innings 1 completed",
            innings=innings_body,
            target=result.state.target,
        )), 200

    @app.route("/api/matches/<match_id>/start-innings2", methods=["POST"])
    @login_required
    def start_innings2_route(match_id):
        data = request.get_json(silent=True) or {}
        match = _owned_match(match_id)
        state = _live_state(match)

        state = start_innings2(state, Openers.from_payload(data))
        live_cache.store(match.id, state)
        return jsonify(_state_payload(state, message="Innings 2 started")), 200

    @app.route("/api/matches/<match_id>/live", methods=["GET"])
    @login_required
    def get_live_state(match_id):
        match = _owned_match(match_id)
        state = _live_state(match)
        return jsonify(_state_payload(state)), 200

    @app.route("/api/matches/<match_id>", methods=["DELETE"])
    @login_required
    def delete_match(match_id):
        match = _owned_match(match_id)
        live_cache.delete(match.id)
        match_registry.delete(match.id)
        return jsonify({"ok": True, "message": "Match deleted successfully"}), 200
