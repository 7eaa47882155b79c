"""
Tests for the session actor (event serialization, timer, capture).

Tests:
1. Full scenario: remote questions, answers, offline grading scores 67
2. Timer ticks auto-submit exactly once
3. Stale question responses after a reset are dropped
4. Failed grading can be resumed and resubmitted
5. Voice capture: live fragments, exclusive modes, recording transcription
6. Transcripts that arrive after a reset never reach the next session
"""
import asyncio
import json
import threading

import pytest

from mockprep.errors import CapabilityUnavailableError, InvalidTransitionError
from mockprep.interview import AnswerEvaluator, InterviewSession, SessionActor, SessionConfig
from mockprep.interview.session_actor import (
    AudioChunk,
    GetSnapshot,
    GoToQuestion,
    NextQuestion,
    RecordAnswer,
    Reset,
    Resume,
    Retake,
    StartCapture,
    StartSession,
    StopCapture,
    Submit,
    Tick,
    TranscriptFragment,
    TranscriptReceived
)
from mockprep.voice import CaptureManager, CaptureMode
from mockprep.voice.capture import TranscriptEvent

from conftest import FakeChain, generator_reply


class FakeSTT:
    available = True

    def transcribe_bytes(self, audio, suffix=".webm"):
        return f"spoken answer ({len(audio)} bytes)"


class GatedSupply:
    """Supply whose generate() blocks until the test opens the gate."""

    def __init__(self, supply):
        self.supply = supply
        self.gate = threading.Event()

    def generate(self, config, remember=True):
        self.gate.wait(timeout=5)
        return self.supply.generate(config, remember=remember)

    def remember(self, questions):
        self.supply.remember(questions)

    def reset_history(self):
        self.supply.reset_history()


class FixedSupply:
    """Supply that hands out the same questions for every session."""

    def __init__(self, questions):
        self.questions = list(questions)

    def generate(self, config, remember=True):
        return list(self.questions)

    def remember(self, questions):
        pass

    def reset_history(self):
        pass


class GatedSTT:
    """Whisper stand-in that finishes only when the test opens the gate."""

    available = True

    def __init__(self):
        self.gate = threading.Event()

    def transcribe_bytes(self, audio, suffix=".webm"):
        self.gate.wait(timeout=5)
        return "spoken words"


@pytest.fixture
def make_actor(make_generator, make_supply, scenario_items, down_evaluator):
    def _make(evaluator=None, capture=None, supply=None):
        generator, _ = make_generator([generator_reply(scenario_items)])
        return SessionActor(
            InterviewSession(session_id="s-1"),
            supply or make_supply(generator),
            evaluator or down_evaluator,
            capture=capture,
            tick_interval=None
        )
    return _make


async def start_active(actor, config):
    await actor.start()
    await actor.ask(StartSession(config))
    await actor.settle()
    return actor.snapshot()


async def wait_for_phase(actor, phase):
    for _ in range(500):
        if actor.snapshot()["phase"] == phase:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"session never reached {phase}")


class TestSessionScenario:
    """End-to-end flow through the actor."""

    @pytest.mark.asyncio
    async def test_answer_and_submit_with_offline_grading(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            snapshot = await start_active(actor, scenario_config)
            assert snapshot["phase"] == "active"
            assert snapshot["total_questions"] == 3

            await actor.ask(RecordAnswer("q-1-1", "answer q-1-1"))
            await actor.ask(NextQuestion())
            await actor.ask(RecordAnswer("q-1-2", "answer q-1-2"))
            await actor.ask(NextQuestion())
            await actor.ask(Submit())
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "results"
            assert snapshot["result"]["overall_score"] == 67
            assert snapshot["result"]["graded_by"] == "fallback"
            assert snapshot["performance_message"] == "Good effort! Keep practicing."
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_rejected_event_raises_and_keeps_state(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)

            with pytest.raises(InvalidTransitionError):
                await actor.ask(Resume())

            snapshot = await actor.ask(GetSnapshot())
            assert snapshot["phase"] == "active"
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_retake_loads_new_questions(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)
            await actor.ask(GoToQuestion(2))
            await actor.ask(Submit())
            await actor.settle()

            await actor.ask(Retake(fresh=False))
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "active"
            assert snapshot["answers"] == {}
            # The remote ids are now excluded, so the retake comes from the fallback bank
            assert all(q["id"].startswith("fallback-js-") for q in snapshot["questions"])
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_fresh_retake_forgets_used_questions(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)
            await actor.ask(GoToQuestion(2))
            await actor.ask(Submit())
            await actor.settle()

            await actor.ask(Retake(fresh=True))
            await actor.settle()

            assert [q["id"] for q in actor.snapshot()["questions"]] == ["q-1-1", "q-1-2", "q-1-3"]
        finally:
            await actor.stop()


class TestTimer:
    """Tick events drive the countdown."""

    @pytest.mark.asyncio
    async def test_expiry_submits_once(self, make_actor):
        config = SessionConfig(
            topic="JavaScript", difficulty="easy",
            mcq_count=2, coding_count=1, voice_count=0, time_limit_seconds=3
        )
        actor = make_actor()
        try:
            await start_active(actor, config)
            await actor.ask(RecordAnswer("q-1-1", "answer q-1-1"))

            for _ in range(6):
                actor.post(Tick())
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "results"
            assert actor.session.submissions == 1
            assert snapshot["remaining_seconds"] == 0
            assert snapshot["elapsed_seconds"] == 3
            assert [r["user_answer"] for r in snapshot["result"]["results"]] == ["answer q-1-1", "", ""]
        finally:
            await actor.stop()


class TestStaleResponses:
    """Responses for superseded requests are dropped."""

    @pytest.mark.asyncio
    async def test_reset_during_loading(self, make_actor, make_generator, make_supply, scenario_items, scenario_config):
        generator, _ = make_generator([generator_reply(scenario_items)])
        gated = GatedSupply(make_supply(generator))
        actor = make_actor(supply=gated)
        try:
            await actor.start()
            await actor.ask(StartSession(scenario_config))
            snapshot = await actor.ask(Reset())
            assert snapshot["phase"] == "setup"

            gated.gate.set()
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "setup"
            assert snapshot["total_questions"] == 0
            assert len(gated.supply.used_ids) == 0
        finally:
            gated.gate.set()
            await actor.stop()


class TestFailedSubmission:
    """Grading failure surfaces an error that can be resumed."""

    @pytest.mark.asyncio
    async def test_resume_and_resubmit(self, make_actor, scenario_config):
        reply = json.dumps({
            "overallScore": 100,
            "overallFeedback": "Perfect.",
            "perQuestion": [{"id": f"q-1-{n}", "isCorrect": True} for n in (1, 2, 3)],
        })
        evaluator = AnswerEvaluator(
            chain=FakeChain([ConnectionError("unreachable"), reply], "grading"),
            use_fallback=False,
            sleep=lambda _: None
        )
        actor = make_actor(evaluator=evaluator)
        try:
            await start_active(actor, scenario_config)
            await actor.ask(RecordAnswer("q-1-1", "answer q-1-1"))
            await actor.ask(GoToQuestion(2))
            await actor.ask(Submit())
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "error"
            assert snapshot["can_resume"] is True
            assert "Your answers are safe" in snapshot["error_message"]

            await actor.ask(Resume())
            assert actor.snapshot()["answers"] == {"q-1-1": "answer q-1-1"}
            await actor.ask(Submit())
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "results"
            assert snapshot["result"]["graded_by"] == "remote"
            assert actor.session.submissions == 2
        finally:
            await actor.stop()


class TestVoiceCapture:
    """Live transcription and recordings routed through the actor."""

    @pytest.mark.asyncio
    async def test_live_fragments_fill_the_answer(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.LIVE, "q-1-3"))

            await actor.ask(TranscriptFragment("add the two", is_final=False))
            await actor.settle()
            assert actor.snapshot()["interim_transcript"] == "add the two"

            await actor.ask(TranscriptFragment("add the two numbers"))
            await actor.ask(TranscriptFragment("and return the sum"))
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["answers"]["q-1-3"] == "add the two numbers and return the sum"
            assert snapshot["interim_transcript"] == ""
            assert snapshot["capture_mode"] == "live"
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_recording_stops_live_transcription(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.LIVE))
            live = actor.capture.live

            snapshot = await actor.ask(StartCapture(CaptureMode.RECORDING))

            assert snapshot["capture_mode"] == "recording"
            assert live.active is False
            with pytest.raises(InvalidTransitionError):
                await actor.ask(TranscriptFragment("late words"))
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_navigation_stops_capture(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.RECORDING))
            await actor.ask(AudioChunk(b"\x00\x01"))

            snapshot = await actor.ask(NextQuestion())

            assert snapshot["capture_mode"] is None
            assert snapshot["recorded_questions"] == ["q-1-1"]
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_recording_is_transcribed_into_the_answer(self, make_actor, scenario_config):
        actor = make_actor(capture=CaptureManager(stt_service=FakeSTT()))
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.RECORDING, "q-1-3"))
            await actor.ask(AudioChunk(b"abc"))
            await actor.ask(AudioChunk(b"def"))

            await actor.ask(StopCapture(transcribe=True))
            await actor.settle()

            assert actor.snapshot()["answers"]["q-1-3"] == "spoken answer (6 bytes)"
            assert actor.capture.last_recording("q-1-3") == b"abcdef"
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_transcription_without_whisper_is_reported(self, make_actor, scenario_config):
        actor = make_actor()
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.RECORDING))
            await actor.ask(AudioChunk(b"abc"))

            with pytest.raises(CapabilityUnavailableError):
                await actor.ask(StopCapture(transcribe=True))

            snapshot = await actor.ask(StopCapture())
            assert snapshot["recorded_questions"] == ["q-1-1"]
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_capture_requires_active_session(self, make_actor):
        actor = make_actor()
        try:
            await actor.start()
            with pytest.raises(InvalidTransitionError):
                await actor.ask(StartCapture(CaptureMode.LIVE))
        finally:
            await actor.stop()


class TestLateTranscripts:
    """Transcripts started before a reset are dropped by the next session."""

    @pytest.mark.asyncio
    async def test_recording_transcription_after_reset(self, make_actor, scenario_config, scenario_questions):
        stt = GatedSTT()
        actor = make_actor(
            capture=CaptureManager(stt_service=stt),
            supply=FixedSupply(scenario_questions)
        )
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.RECORDING, "q-1-3"))
            await actor.ask(AudioChunk(b"abc"))
            await actor.ask(StopCapture(transcribe=True))

            await actor.ask(Reset())
            await actor.ask(StartSession(scenario_config))
            await wait_for_phase(actor, "active")

            stt.gate.set()
            await actor.settle()

            snapshot = actor.snapshot()
            assert snapshot["phase"] == "active"
            assert snapshot["answers"] == {}
        finally:
            stt.gate.set()
            await actor.stop()

    @pytest.mark.asyncio
    async def test_live_fragment_after_reset(self, make_actor, scenario_config, scenario_questions):
        actor = make_actor(supply=FixedSupply(scenario_questions))
        try:
            await start_active(actor, scenario_config)
            old_epoch = actor.epoch

            await actor.ask(Reset())
            await actor.ask(StartSession(scenario_config))
            await actor.settle()
            assert actor.epoch != old_epoch

            actor.post(TranscriptReceived(old_epoch, TranscriptEvent("q-1-3", "stale words")))
            await actor.settle()

            assert actor.snapshot()["answers"] == {}
        finally:
            await actor.stop()

    @pytest.mark.asyncio
    async def test_transcription_within_session_is_kept(self, make_actor, scenario_config, scenario_questions):
        stt = GatedSTT()
        actor = make_actor(
            capture=CaptureManager(stt_service=stt),
            supply=FixedSupply(scenario_questions)
        )
        try:
            await start_active(actor, scenario_config)
            await actor.ask(StartCapture(CaptureMode.RECORDING, "q-1-3"))
            await actor.ask(AudioChunk(b"abc"))
            await actor.ask(StopCapture(transcribe=True))
            await actor.ask(NextQuestion())

            stt.gate.set()
            await actor.settle()

            assert actor.snapshot()["answers"] == {"q-1-3": "spoken words"}
        finally:
            stt.gate.set()
            await actor.stop()
