"""Tests for engine/innings_manager.py"""

import pytest

from conftest import FakeRecord, LIONS, TIGERS, make_state
from engine.delivery import Delivery, process_delivery
from engine.errors import (
    BatsmanAlreadyOut,
    ConflictError,
    DomainError,
    DuplicatePlayer,
    InningsNotComplete,
    InvalidBowler,
    InvalidPlayer,
    InvalidTransition,
    MatchNotLive,
    OpenersNotSet,
    SameBowler,
    ValidationError,
)
from engine.innings_manager import (
    Openers,
    change_bowler,
    end_innings,
    ensure_transition,
    start_innings2,
    start_match,
)
from engine.match_state import MatchState, MatchStatus, TossDecision


pytestmark = pytest.mark.unit


def squads(lions=None, tigers=None):
    return {"Lions": list(lions or LIONS), "Tigers": list(tigers or TIGERS)}


class TestTransitions:
    def test_allowed_transitions(self):
        assert ensure_transition("CREATED", "LIVE") == MatchStatus.LIVE
        assert ensure_transition(MatchStatus.LIVE, MatchStatus.COMPLETED) == MatchStatus.COMPLETED

    @pytest.mark.parametrize("current, target", [
        ("CREATED", "COMPLETED"),
        ("LIVE", "LIVE"),
        ("LIVE", "CREATED"),
        ("COMPLETED", "LIVE"),
    ])
    def test_forbidden_transitions(self, current, target):
        with pytest.raises(InvalidTransition):
            ensure_transition(current, target)


class TestStartMatch:
    def test_start_builds_innings_one_state(self):
        state = make_state()

        assert state.status == MatchStatus.LIVE
        assert state.innings == 1
        assert state.target is None
        assert state.toss_decision == TossDecision.BAT
        assert state.batting_team == "Lions"
        assert state.bowling_team == "Tigers"
        assert state.striker.name == "L1"
        assert state.non_striker.name == "L2"
        assert state.bowler.name == "T1"
        assert set(state.batting_stats) == set(LIONS + TIGERS)
        assert set(state.bowling_stats) == set(LIONS + TIGERS)
        assert state.score.to_dict() == {"runs": 0, "wickets": 0, "balls": 0}

    def test_fielding_toss_winner_bowls_first(self):
        state = make_state(toss_decision="field", openers=("T1", "T2", "L1"))
        assert state.toss_decision == TossDecision.FIELD
        assert state.batting_team == "Tigers"

    def test_only_created_matches_can_start(self):
        with pytest.raises(InvalidTransition):
            start_match(FakeRecord(status="LIVE"), "Lions", "BAT", Openers("L1", "L2", "T1"), squads())

    def test_toss_winner_must_be_a_team(self):
        with pytest.raises(ValidationError):
            start_match(FakeRecord(), "Bears", "BAT", Openers("L1", "L2", "T1"), squads())

    def test_toss_decision_must_be_bat_or_field(self):
        with pytest.raises(ValidationError):
            start_match(FakeRecord(), "Lions", "BOWL", Openers("L1", "L2", "T1"), squads())

    def test_squads_need_two_players(self):
        with pytest.raises(ValidationError):
            start_match(FakeRecord(), "Lions", "BAT", Openers("L1", "L2", "T1"),
                        squads(tigers=["T1"]))

    def test_squads_must_name_both_teams(self):
        with pytest.raises(ValidationError):
            start_match(FakeRecord(), "Lions", "BAT", Openers("L1", "L2", "T1"),
                        {"Lions": LIONS, "Bears": TIGERS})

    def test_player_in_both_squads(self):
        with pytest.raises(DuplicatePlayer):
            start_match(FakeRecord(), "Lions", "BAT", Openers("L1", "L2", "T1"),
                        squads(tigers=["T1", "L3"]))

    def test_openers_must_be_in_squads(self):
        with pytest.raises(InvalidPlayer):
            start_match(FakeRecord(), "Lions", "BAT", Openers("L1", "X9", "T1"), squads())
        assert issubclass(InvalidPlayer, DomainError)

    def test_openers_must_be_distinct(self):
        with pytest.raises(ValidationError):
            start_match(FakeRecord(), "Lions", "BAT", Openers("L1", "L1", "T1"), squads())

    def test_openers_payload_requires_all_three(self):
        with pytest.raises(ValidationError):
            Openers.from_payload({"openingBatsman1": "L1", "openingBatsman2": "L2"})
        assert Openers.from_payload({
            "openingBatsman1": " L1", "openingBatsman2": "L2", "openingBowler": "T1 ",
        }) == Openers("L1", "L2", "T1")


class TestChangeBowler:
    def test_change_bowler_seeds_from_ledger(self):
        state = make_state()
        for _ in range(6):
            state = process_delivery(state, Delivery(runs=1))
        state = change_bowler(state, "T2")
        state = process_delivery(state, Delivery(runs=4))
        state = change_bowler(state, "T1")

        assert state.bowler.name == "T1"
        assert state.bowler.balls == 6
        assert state.bowler.runs == 6

    def test_same_bowler_rejected_even_mid_over(self):
        state = make_state()
        with pytest.raises(SameBowler):
            change_bowler(state, "T1")

    def test_unknown_bowler(self):
        state = make_state()
        with pytest.raises(InvalidBowler):
            change_bowler(state, "Nobody")

    def test_batsman_cannot_bowl(self):
        state = make_state()
        with pytest.raises(InvalidBowler):
            change_bowler(state, "L2")

    def test_rejected_after_handover_until_openers_seated(self):
        state = end_innings(make_state(), force_end=True).state
        with pytest.raises(OpenersNotSet):
            change_bowler(state, "L3")
        assert state.bowler is None

        state = start_innings2(state, Openers("T1", "T2", "L1"))
        state = change_bowler(state, "L3")
        assert state.bowler.name == "L3"

    def test_requires_live_match(self):
        state = make_state()
        state.status = MatchStatus.COMPLETED
        with pytest.raises(MatchNotLive):
            change_bowler(state, "T2")


class TestEndInnings:
    def test_incomplete_innings_needs_force(self):
        state = make_state()
        with pytest.raises(InningsNotComplete):
            end_innings(state)

    def test_first_innings_handover(self):
        state = make_state()
        state = process_delivery(state, Delivery(runs=4))
        state = process_delivery(state, Delivery(is_wicket=True, wicket_type="bowled", new_batsman="L3"))
        state.score.runs, state.score.wickets, state.score.balls = 45, 3, 12

        result = end_innings(state)
        new = result.state

        assert result.innings_no == 1
        assert result.batting_team == "Lions"
        assert result.totals.to_dict() == {"runs": 45, "wickets": 3, "balls": 12}
        assert result.overs_text == "2.0"
        assert result.match_completed is False
        assert result.summary["score"] == {"runs": 45, "wickets": 3, "balls": 12}
        assert len(result.summary["fallOfWickets"]) == 1

        assert new.innings == 2
        assert new.target == 46
        assert new.score.to_dict() == {"runs": 0, "wickets": 0, "balls": 0}
        assert new.current_over == []
        assert new.fall_of_wickets == []
        assert new.striker is None and new.non_striker is None and new.bowler is None
        assert new.batting_team == "Tigers"
        # Ledgers carry over
        assert new.batting_stats["L1"].runs == 4
        assert new.batting_stats["L1"].out is True

    def test_forced_end(self):
        state = make_state()
        state = process_delivery(state, Delivery(runs=2))
        result = end_innings(state, force_end=True)
        assert result.state.target == 3

    def test_second_innings_completes_match(self):
        state = make_state()
        state = end_innings(state, force_end=True).state
        state = start_innings2(state, Openers("T1", "T2", "L1"))
        state = process_delivery(state, Delivery(runs=1))

        result = end_innings(state)
        assert result.innings_no == 2
        assert result.batting_team == "Tigers"
        assert result.match_completed is True
        assert result.state.status == MatchStatus.COMPLETED

    def test_no_third_innings(self):
        state = make_state()
        state = end_innings(state, force_end=True).state
        state = start_innings2(state, Openers("T1", "T2", "L1"))
        completed = end_innings(state, force_end=True).state
        with pytest.raises(MatchNotLive):
            end_innings(completed, force_end=True)


class TestStartInnings2:
    def _innings_two(self):
        state = make_state()
        state = process_delivery(state, Delivery(is_wicket=True, new_batsman="L3"))
        return end_innings(state, force_end=True).state

    def test_seeds_snapshots_from_ledger(self):
        state = make_state()
        state = process_delivery(state, Delivery(runs=6))
        state = end_innings(state, force_end=True).state

        # Figures accumulate across the match rather than resetting per innings.
        state = start_innings2(state, Openers("L1", "T2", "T1"))
        assert state.striker.name == "L1"
        assert state.striker.runs == 6
        assert state.striker.balls == 1
        assert state.bowler.name == "T1"
        assert state.bowler.runs == 6

    def test_cannot_start_twice(self):
        state = start_innings2(self._innings_two(), Openers("T1", "T2", "L1"))
        with pytest.raises(ConflictError):
            start_innings2(state, Openers("T3", "T4", "L2"))

    def test_only_in_second_innings(self):
        state = make_state()
        state.striker = state.non_striker = state.bowler = None
        with pytest.raises(ConflictError):
            start_innings2(state, Openers("T1", "T2", "L1"))

    def test_dismissed_player_cannot_open(self):
        with pytest.raises(BatsmanAlreadyOut):
            start_innings2(self._innings_two(), Openers("L1", "T2", "L2"))

    def test_openers_must_be_in_squads(self):
        with pytest.raises(InvalidPlayer):
            start_innings2(self._innings_two(), Openers("T1", "Ghost", "L1"))


def test_state_survives_dict_round_trip_mid_innings():
    state = make_state()
    for kwargs in (dict(runs=1), dict(runs=2, extra_type="WD"),
                   dict(is_wicket=True, wicket_type="lbw", new_batsman="L3")):
        state = process_delivery(state, Delivery(**kwargs))
    assert MatchState.from_dict(state.to_dict()) == state
