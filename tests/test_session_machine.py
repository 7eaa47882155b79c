"""
Tests for the interview session state machine.

Tests:
1. Loading transitions and stale question responses
2. Navigation keeps the index in range
3. Answer recording is an idempotent upsert
4. The timer auto-submits exactly once with every answer present
5. Submission guards, failure and resume
6. Retake and reset
"""
import pytest

from mockprep.errors import InputValidationError, InvalidTransitionError
from mockprep.interview import HeuristicScorer, InterviewSession, SessionConfig, SessionPhase


@pytest.fixture
def timed_config():
    return SessionConfig(
        topic="JavaScript", difficulty="easy",
        mcq_count=2, coding_count=1, voice_count=0, time_limit_seconds=5
    )


@pytest.fixture
def active_session(timed_config, scenario_questions):
    session = InterviewSession(session_id="s-1")
    token = session.begin_loading(timed_config)
    assert session.questions_loaded(token, scenario_questions)
    return session


class TestLoading:
    """SETUP -> LOADING -> ACTIVE / ERROR."""

    def test_questions_loaded_starts_countdown(self, active_session):
        assert active_session.phase == SessionPhase.ACTIVE
        assert active_session.current_index == 0
        assert active_session.remaining_seconds == 5
        assert active_session.answers == {}

    def test_begin_loading_requires_config(self):
        session = InterviewSession()
        with pytest.raises(InputValidationError):
            session.begin_loading()

    def test_cannot_load_while_active(self, active_session):
        with pytest.raises(InvalidTransitionError):
            active_session.begin_loading()

    def test_wrong_question_count_fails_loading(self, timed_config, scenario_questions):
        session = InterviewSession()
        token = session.begin_loading(timed_config)

        assert session.questions_loaded(token, scenario_questions[:2])

        assert session.phase == SessionPhase.ERROR
        assert session.error_origin == SessionPhase.LOADING
        assert "Expected 3 questions" in session.error_message

    def test_stale_response_after_reset_is_ignored(self, timed_config, scenario_questions):
        session = InterviewSession()
        token = session.begin_loading(timed_config)
        session.reset()

        assert not session.questions_loaded(token, scenario_questions)
        assert session.phase == SessionPhase.SETUP

    def test_superseded_request_is_ignored(self, timed_config, scenario_questions):
        session = InterviewSession()
        old = session.begin_loading(timed_config)
        session.loading_failed(old, "network down")
        new = session.begin_loading()

        assert not session.questions_loaded(old, scenario_questions)
        assert session.phase == SessionPhase.LOADING
        assert session.questions_loaded(new, scenario_questions)

    def test_loading_error_cannot_be_resumed(self, timed_config):
        session = InterviewSession()
        token = session.begin_loading(timed_config)
        session.loading_failed(token, "down")

        with pytest.raises(InvalidTransitionError):
            session.resume()
        assert session.snapshot()["can_resume"] is False


class TestNavigation:
    """current_index stays within [0, len(questions))."""

    def test_next_and_previous_are_clamped(self, active_session):
        assert active_session.previous() == 0
        active_session.next()
        active_session.next()
        assert active_session.next() == 2
        assert active_session.is_last_question

    def test_go_to_is_clamped(self, active_session):
        assert active_session.go_to(10) == 2
        assert active_session.go_to(-3) == 0

    def test_navigation_requires_active(self):
        with pytest.raises(InvalidTransitionError):
            InterviewSession().next()


class TestAnswers:
    """Upserts keyed by question id."""

    def test_record_answer_is_idempotent(self, active_session):
        assert active_session.record_answer("q-1-1", "answer q-1-1")
        assert not active_session.record_answer("q-1-1", "answer q-1-1")
        assert active_session.answers == {"q-1-1": "answer q-1-1"}

    def test_record_answer_replaces(self, active_session):
        active_session.record_answer("q-1-1", "wrong one")
        active_session.record_answer("q-1-1", "answer q-1-1")
        assert active_session.answers["q-1-1"] == "answer q-1-1"

    def test_focus_stays_on_current_question(self, active_session):
        active_session.record_answer("q-1-3", "code")
        assert active_session.current_index == 0

    def test_unknown_question_is_rejected(self, active_session):
        with pytest.raises(InputValidationError):
            active_session.record_answer("nope", "x")
        assert active_session.answers == {}

    def test_transcript_fragments_are_appended(self, active_session):
        active_session.append_transcript("q-1-3", "first part")
        active_session.append_transcript("q-1-3", "  second part ")
        assert active_session.answers["q-1-3"] == "first part second part"


class TestTimer:
    """Countdown and auto-submission."""

    def test_tick_counts_down(self, active_session):
        assert active_session.tick() is None
        assert active_session.remaining_seconds == 4
        assert active_session.elapsed_seconds == 1

    def test_auto_submit_exactly_once(self, active_session):
        active_session.record_answer("q-1-1", "answer q-1-1")
        tokens = [active_session.tick() for _ in range(8)]

        submitted = [t for t in tokens if t is not None]
        assert len(submitted) == 1
        assert active_session.phase == SessionPhase.SUBMITTING
        assert active_session.submissions == 1
        assert active_session.submission_answers() == {"q-1-1": "answer q-1-1", "q-1-2": "", "q-1-3": ""}

    def test_tick_ignored_outside_active(self):
        session = InterviewSession()
        assert session.tick() is None
        assert session.elapsed_seconds == 0

    def test_resume_after_failed_auto_submit_allows_user_submit(self, active_session):
        token = None
        while token is None:
            token = active_session.tick()
        active_session.evaluation_failed(token, "grader down")
        active_session.resume()

        assert active_session.current_index == 0
        assert active_session.begin_submission() is not None


class TestSubmission:
    """SUBMITTING -> RESULTS / ERROR."""

    def test_user_submit_requires_last_question(self, active_session):
        with pytest.raises(InputValidationError):
            active_session.begin_submission()
        assert active_session.phase == SessionPhase.ACTIVE

    def test_duplicate_submit_is_ignored(self, active_session):
        active_session.go_to(2)
        first = active_session.begin_submission()

        assert first is not None
        assert active_session.begin_submission() is None
        assert active_session.submissions == 1

    def test_evaluation_completed_shows_results(self, active_session, scenario_questions):
        active_session.go_to(2)
        token = active_session.begin_submission()
        result = HeuristicScorer().evaluate(scenario_questions, active_session.submission_answers())

        assert active_session.evaluation_completed(token, result)

        snapshot = active_session.snapshot()
        assert snapshot["phase"] == "results"
        assert snapshot["result"]["overall_score"] == 0
        assert snapshot["questions"][0]["expected_answer"] == "answer q-1-1"

    def test_expected_answers_hidden_while_active(self, active_session):
        snapshot = active_session.snapshot()
        assert "expected_answer" not in snapshot["current_question"]
        assert all("expected_answer" not in q for q in snapshot["questions"])

    def test_failed_submission_keeps_answers_and_can_resume(self, active_session):
        active_session.record_answer("q-1-2", "wrong one")
        active_session.go_to(2)
        token = active_session.begin_submission()

        active_session.evaluation_failed(token, "Grading is unavailable")

        assert active_session.phase == SessionPhase.ERROR
        assert active_session.snapshot()["can_resume"] is True
        active_session.resume()
        assert active_session.phase == SessionPhase.ACTIVE
        assert active_session.answers == {"q-1-2": "wrong one"}
        assert active_session.current_index == 2

    def test_stale_evaluation_is_ignored(self, active_session, scenario_questions):
        active_session.go_to(2)
        old = active_session.begin_submission()
        active_session.evaluation_failed(old, "down")
        active_session.resume()
        new = active_session.begin_submission()
        result = HeuristicScorer().evaluate(scenario_questions, {})

        assert not active_session.evaluation_completed(old, result)
        assert active_session.evaluation_completed(new, result)


class TestRecovery:
    """Retake and reset."""

    def test_retake_clears_progress(self, active_session, scenario_questions):
        active_session.record_answer("q-1-1", "answer q-1-1")
        active_session.go_to(2)
        token = active_session.begin_submission()
        active_session.evaluation_completed(token, HeuristicScorer().evaluate(scenario_questions, {}))

        active_session.retake()

        assert active_session.phase == SessionPhase.LOADING
        assert active_session.answers == {}
        assert active_session.result is None
        assert active_session.remaining_seconds == 5

    def test_retake_not_allowed_while_active(self, active_session):
        with pytest.raises(InvalidTransitionError):
            active_session.retake()

    def test_reset_returns_to_setup(self, active_session):
        active_session.reset()
        assert active_session.phase == SessionPhase.SETUP
        assert active_session.questions == ()
