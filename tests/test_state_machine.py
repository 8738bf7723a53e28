import pytest

from workout_engine import cursor as nav
from workout_engine import state_machine as sm
from workout_engine.cursor import Cursor
from workout_engine.errors import InvalidCursorError, InvalidStateError, ValidationError
from workout_engine.models import ExerciseInSession, new_session
from workout_engine.rest_timer import TimerPhase
from workout_engine.settings import EngineConfig
from workout_engine.state_machine import EngineState, SessionStatus
from workout_engine.validation import validate_set_values


def _names(transition):
    return [e.name for e in transition.events]


def _started(session, now=0.0):
    return sm.start_session(EngineState(session), now=now).state


def _rest_and_move(state, now):
    return sm.skip_rest(state, now=now).state


def test_start_places_cursor_on_first_set(bench_session):
    tr = sm.start_session(EngineState(bench_session), now=100.0)
    assert tr.state.status is SessionStatus.ACTIVE
    assert tr.state.cursor == Cursor(0, 0)
    assert tr.state.session.start_time == 100.0
    assert tr.state.session.exercises[0].sets[0].start_time == 100.0
    assert "session_started" in _names(tr)
    # input is left untouched
    assert bench_session.start_time is None


def test_start_twice_fails(bench_session):
    state = _started(bench_session)
    with pytest.raises(InvalidStateError):
        sm.start_session(state, now=1.0)


def test_start_without_sets_fails():
    session = new_session([ExerciseInSession(name="Stretch")])
    with pytest.raises(InvalidCursorError):
        sm.start_session(EngineState(session), now=0.0)


def test_complete_set_records_values_and_starts_rest(leg_session):
    state = _started(leg_session)
    tr = sm.complete_set(
        state, {"actual_reps": 5, "actual_weight": 105, "rpe": 8}, now=30.0
    )
    new = tr.state
    set_ = new.session.exercises[0].sets[0]
    assert set_.completed and not set_.failed
    assert set_.actual_weight == 105
    assert set_.end_time == 30.0
    assert new.cursor == Cursor(0, 0)
    assert new.timer.is_active
    assert new.timer.initial_time == 120
    assert new.advance_on_rest_complete
    assert new.session.metrics.total_volume == 525
    assert _names(tr)[:3] == ["set_completed", "metrics_updated", "rest_timer_started"]


def test_rest_uses_finished_exercise_rest_time(leg_session):
    state = _started(leg_session)
    state = sm.complete_set(state, now=1.0).state
    state = _rest_and_move(state, 2.0)
    state = sm.complete_set(state, now=3.0).state
    # last Squat set: rest comes from Squat (120 s), not Pull-up (60 s)
    assert state.cursor == Cursor(0, 1)
    assert state.timer.initial_time == 120


def test_rest_completion_advances_cursor(bench_session):
    state = sm.complete_set(_started(bench_session), now=1.0).state
    for _ in range(89):
        state = sm.tick(state, now=2.0).state
    assert state.cursor == Cursor(0, 0)
    tr = sm.tick(state, now=3.0)
    assert tr.state.cursor == Cursor(0, 1)
    assert "rest_timer_complete" in _names(tr)
    assert "cursor_moved" in _names(tr)
    assert tr.state.session.exercises[0].sets[1].start_time == 3.0


def test_last_set_does_not_start_rest(bench_session):
    state = _started(bench_session)
    for _ in range(2):
        state = sm.complete_set(state, {"actual_reps": 10, "actual_weight": 50}, now=1.0).state
        state = _rest_and_move(state, 2.0)
    assert state.cursor == Cursor(0, 2)

    tr = sm.complete_set(state, {"actual_reps": 10, "actual_weight": 50}, now=3.0)
    assert nav.advance(tr.state.session, tr.state.cursor).is_terminal
    assert "rest_timer_started" not in _names(tr)
    assert not tr.state.timer.is_active
    assert "workout_complete_eligible" in _names(tr)
    assert tr.state.all_sets_visited
    assert tr.state.status is SessionStatus.ACTIVE
    assert tr.state.session.metrics.total_volume == 1500
    assert tr.state.session.metrics.completion_rate == 100
    assert tr.state.session.exercises[0].completed


def test_fail_set_does_not_start_rest(bench_session):
    tr = sm.fail_set(_started(bench_session), {"actual_reps": 6, "failure_point": 7}, now=5.0)
    set_ = tr.state.session.exercises[0].sets[0]
    assert set_.failed is True
    assert set_.completed is False
    assert set_.failure_point == 7
    assert tr.state.timer.phase is TimerPhase.IDLE
    assert tr.state.cursor == Cursor(0, 0)
    assert "set_failed" in _names(tr)


def test_completing_after_failure_clears_failed_flag(bench_session):
    state = sm.fail_set(_started(bench_session), now=1.0).state
    state = sm.complete_set(state, now=2.0).state
    set_ = state.session.exercises[0].sets[0]
    assert set_.completed and not set_.failed


def test_editing_another_set_keeps_cursor_and_timer(leg_session):
    state = _started(leg_session)
    state = sm.complete_set(state, now=1.0).state
    state = _rest_and_move(state, 2.0)
    tr = sm.complete_set(state, {"actual_reps": 6}, cursor=Cursor(0, 0), now=3.0)
    assert tr.state.cursor == Cursor(0, 1)
    assert "rest_timer_started" not in _names(tr)
    assert tr.state.session.exercises[0].sets[0].actual_reps == 6


def test_retreat_keeps_completion(bench_session):
    state = sm.complete_set(_started(bench_session), now=1.0).state
    state = sm.advance(state, now=2.0).state
    assert state.cursor == Cursor(0, 1)
    assert not state.advance_on_rest_complete
    state = sm.retreat(state, now=3.0).state
    assert state.cursor == Cursor(0, 0)
    assert state.session.exercises[0].sets[0].completed


def test_manual_advance_cancels_rest_driven_move(bench_session):
    state = sm.complete_set(_started(bench_session), now=1.0).state
    state = sm.advance(state, now=2.0).state
    state = sm.skip_rest(state, now=3.0).state
    assert state.cursor == Cursor(0, 1)


def test_advance_past_last_set_flags_completion(bench_session):
    state = sm.jump_to_exercise(_started(bench_session), 0, now=1.0).state
    state = sm.advance(sm.advance(state, now=1.0).state, now=1.0).state
    tr = sm.advance(state, now=2.0)
    assert tr.state.cursor == Cursor(0, 2)
    assert _names(tr) == ["workout_complete_eligible"]


def test_pause_pauses_rest_timer(bench_session):
    state = sm.complete_set(_started(bench_session), now=1.0).state
    state = sm.tick(state, now=2.0).state
    tr = sm.pause_session(state, now=3.0)
    paused = tr.state
    assert paused.status is SessionStatus.PAUSED
    assert paused.session.paused_at == 3.0
    assert paused.timer.phase is TimerPhase.PAUSED
    assert not paused.timer.is_active
    assert "rest_timer_paused" in _names(tr)

    for _ in range(100):
        paused = sm.tick(paused, now=4.0).state
    assert paused.timer.time_remaining == 89

    resumed = sm.resume_session(paused, now=63.0).state
    assert resumed.status is SessionStatus.ACTIVE
    assert resumed.session.paused_at is None
    assert resumed.session.resumed_at == 63.0
    assert resumed.session.paused_duration == 60.0
    assert resumed.timer.is_active


def test_pause_and_resume_require_matching_state(bench_session):
    state = _started(bench_session)
    with pytest.raises(InvalidStateError):
        sm.resume_session(state, now=1.0)
    paused = sm.pause_session(state, now=1.0).state
    with pytest.raises(InvalidStateError):
        sm.pause_session(paused, now=2.0)
    with pytest.raises(InvalidStateError):
        sm.complete_set(paused, now=2.0)


def test_finish_sets_terminal_fields(bench_session):
    state = sm.complete_set(_started(bench_session, now=0.0), now=60.0).state
    paused = sm.pause_session(state, now=600.0).state
    tr = sm.finish_session(paused, now=900.0)
    session = tr.state.session
    assert session.completed and not session.abandoned
    assert session.end_time == 900.0
    assert session.paused_at is None
    assert session.paused_duration == 300.0
    assert tr.state.cursor is None
    assert tr.state.timer.phase is TimerPhase.IDLE
    # ten active minutes at 3.5 MET and 70 kg
    assert session.metrics.estimated_calories == 41
    assert "session_finished" in _names(tr)


def test_abandon_is_exclusive_with_finish(bench_session):
    state = sm.abandon_session(_started(bench_session), now=10.0).state
    session = state.session
    assert session.abandoned and not session.completed
    assert session.end_time == 10.0
    with pytest.raises(InvalidStateError):
        sm.finish_session(state, now=11.0)


@pytest.mark.parametrize(
    "operation",
    [
        lambda s: sm.complete_set(s, now=1.0),
        lambda s: sm.fail_set(s, now=1.0),
        lambda s: sm.advance(s, now=1.0),
        lambda s: sm.retreat(s, now=1.0),
        lambda s: sm.pause_session(s, now=1.0),
        lambda s: sm.resume_session(s, now=1.0),
        lambda s: sm.abandon_session(s, now=1.0),
        lambda s: sm.tick(s, now=1.0),
        lambda s: sm.skip_rest(s, now=1.0),
        lambda s: sm.update_notes(s, "late"),
        lambda s: sm.start_session(s, now=1.0),
    ],
)
def test_terminal_session_rejects_operations(bench_session, operation):
    finished = sm.finish_session(_started(bench_session), now=5.0).state
    before = finished.to_dict()
    with pytest.raises(InvalidStateError):
        operation(finished)
    assert finished.to_dict() == before


def test_terminal_flags_invariants(leg_session):
    state = _started(leg_session)
    assert state.session.end_time is None
    for closer in (sm.finish_session, sm.abandon_session):
        session = closer(state, now=50.0).state.session
        assert not (session.completed and session.abandoned)
        assert session.end_time is not None
    assert not (state.session.completed or state.session.abandoned)


def test_validation_failure_keeps_state(bench_session):
    state = _started(bench_session)
    before = state.to_dict()
    with pytest.raises(ValidationError) as exc:
        sm.complete_set(state, {"rpe": 11, "actual_reps": -1}, now=1.0, validator=validate_set_values)
    assert len(exc.value.errors) == 2
    assert state.to_dict() == before


def test_unknown_value_keys_rejected(bench_session):
    with pytest.raises(ValidationError):
        sm.complete_set(_started(bench_session), {"mood": 3}, now=1.0)


def test_invalid_cursor_rejected(bench_session):
    with pytest.raises(InvalidCursorError):
        sm.complete_set(_started(bench_session), cursor=Cursor(0, 9), now=1.0)


def test_skip_exercise_moves_to_next(leg_session):
    tr = sm.skip_exercise(_started(leg_session), "machine taken", now=4.0)
    exercise = tr.state.session.exercises[0]
    assert exercise.skipped
    assert exercise.skip_reason == "machine taken"
    assert tr.state.cursor == Cursor(1, 0)
    assert _names(tr)[:2] == ["exercise_skipped", "cursor_moved"]


def test_skip_last_exercise_flags_completion(bench_session):
    tr = sm.skip_exercise(_started(bench_session), now=4.0)
    assert tr.state.all_sets_visited
    assert tr.state.cursor == Cursor(0, 0)


def test_adjust_rest_uses_config_floor(bench_session):
    config = EngineConfig(adjust_floor=5)
    state = sm.complete_set(_started(bench_session), now=1.0, config=config).state
    state = sm.adjust_rest(state, -200, now=2.0, config=config).state
    assert state.timer.time_remaining == 5
    assert state.timer.is_active


def test_config_drives_rest_defaults(bench_session):
    bench_session.exercises[0].rest_time = 0
    config = EngineConfig(default_rest_time=45, warning_time=3)
    state = sm.complete_set(_started(bench_session), now=1.0, config=config).state
    assert state.timer.initial_time == 45
    assert state.timer.warning_threshold == 3


def test_personal_records_survive_recompute(bench_session):
    state = sm.add_personal_record(
        _started(bench_session), {"exerciseId": "bench", "type": "weight", "value": 60}
    ).state
    state = sm.complete_set(state, now=1.0).state
    assert state.session.metrics.personal_records == [
        {"exerciseId": "bench", "type": "weight", "value": 60}
    ]


def test_engine_state_round_trip_through_dict(leg_session):
    state = sm.complete_set(_started(leg_session), now=1.0).state
    restored = EngineState.from_dict(state.to_dict())
    assert restored == state


def test_from_session_resumes_at_first_open_set(leg_session):
    state = sm.complete_set(_started(leg_session), now=1.0).state
    restored = EngineState.from_session(state.session)
    assert restored.cursor == Cursor(0, 1)
    assert EngineState.from_session(leg_session).cursor is None


def test_skip_exercise_without_sets_raises_cursor_error():
    session = new_session([ExerciseInSession(name="Stretch")], start_time=0.0)
    state = EngineState.from_session(session)
    assert state.cursor is None
    with pytest.raises(InvalidCursorError):
        sm.skip_exercise(state, now=1.0)


def test_start_and_finish_stamp_date_and_duration(bench_session):
    state = _started(bench_session, now=500.0)
    assert state.session.date == 500.0
    session = sm.finish_session(state, now=500.0 + 25 * 60).state.session
    assert session.duration == 25
    assert session.to_dict()["duration"] == 25
