"""
Session Actor.

Serializes every event of one interview session through a single
asyncio queue: user actions, timer ticks, network responses and speech
transcripts. The InterviewSession state machine therefore never sees two
transitions at once.

Blocking calls (question generation, grading, Whisper) run in worker
threads and report back by posting an event tagged with the token they
were started with. A response for a superseded request is dropped by
the state machine. Transcripts are tagged with the capture epoch they
started in, and an epoch ends whenever the session resets or asks for a
new question set.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from ..errors import CapabilityUnavailableError, InterviewError, InvalidTransitionError
from ..utils.config import TICK_INTERVAL_SECONDS
from ..utils.logger import setup_logger
from ..voice.capture import CaptureManager, CaptureMode, LiveTranscription, TranscriptEvent
from .answer_evaluator import AnswerEvaluator
from .models import AggregateResult, Question, SessionConfig
from .question_supply import QuestionSupply
from .session_machine import InterviewSession, SessionPhase

logger = setup_logger("session_actor")


# User actions

@dataclass(frozen=True)
class StartSession:
    config: Optional[SessionConfig] = None


@dataclass(frozen=True)
class NextQuestion:
    pass


@dataclass(frozen=True)
class PreviousQuestion:
    pass


@dataclass(frozen=True)
class GoToQuestion:
    index: int


@dataclass(frozen=True)
class RecordAnswer:
    question_id: str
    value: str


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Retake:
    fresh: bool = False


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class StartCapture:
    mode: CaptureMode
    question_id: Optional[str] = None


@dataclass(frozen=True)
class StopCapture:
    transcribe: bool = False


@dataclass(frozen=True)
class TranscriptFragment:
    text: str
    is_final: bool = True


@dataclass(frozen=True)
class AudioChunk:
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class GetSnapshot:
    pass


# Timer and network responses

@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class QuestionsLoaded:
    token: int
    questions: Tuple[Question, ...]


@dataclass(frozen=True)
class LoadingFailed:
    token: int
    message: str


@dataclass(frozen=True)
class EvaluationCompleted:
    token: int
    result: AggregateResult


@dataclass(frozen=True)
class EvaluationFailed:
    token: int
    message: str


@dataclass(frozen=True)
class TranscriptReceived:
    epoch: int
    event: TranscriptEvent


@dataclass(frozen=True)
class RecordingTranscribed:
    epoch: int
    question_id: str
    text: str


_STOP = object()


class SessionActor:
    """
    Owns one InterviewSession plus its timer and capture resources.

    Usage:
        actor = SessionActor(session, supply, evaluator)
        await actor.start()
        snapshot = await actor.ask(StartSession(config))
        await actor.settle()
        await actor.stop()
    """

    def __init__(
        self,
        session: InterviewSession,
        supply: QuestionSupply,
        evaluator: AnswerEvaluator,
        capture: Optional[CaptureManager] = None,
        tick_interval: Optional[float] = TICK_INTERVAL_SECONDS
    ):
        """
        Args:
            session: State machine driven by this actor
            supply: Question source
            evaluator: Grader
            capture: Capture resources. Defaults to a manager without Whisper.
            tick_interval: Seconds between timer ticks; None disables the timer
        """
        self.session = session
        self.supply = supply
        self.evaluator = evaluator
        self.capture = capture or CaptureManager()
        self.tick_interval = tick_interval

        self._queue: "asyncio.Queue[Tuple[Any, Optional[asyncio.Future]]]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._pumps: Dict[asyncio.Task, LiveTranscription] = {}
        self._epoch = 0

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def epoch(self) -> int:
        """Counter bumped whenever a new question set is requested or the session is reset."""
        return self._epoch

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run())
        if self.tick_interval:
            self._timer = asyncio.create_task(self._run_timer())
        logger.info(f"Actor started for session {self.session_id}")

    async def stop(self) -> None:
        """Stop the timer and capture, drop in-flight work and end the worker."""
        self.capture.close()
        background = [task for task in [self._timer, *self._tasks, *self._pumps] if task is not None]
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        self._tasks.clear()
        self._pumps.clear()
        if self.running:
            self._queue.put_nowait((_STOP, None))
            await self._worker
        logger.info(f"Actor stopped for session {self.session_id}")

    def post(self, event: Any) -> None:
        """Queue an event without waiting for it."""
        self._queue.put_nowait((event, None))

    async def ask(self, event: Any) -> Dict[str, Any]:
        """
        Queue an event and wait until it is handled.

        Returns:
            Session snapshot after the event

        Raises:
            InterviewError: When the event is rejected by the state machine
        """
        reply = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((event, reply))
        return await reply

    async def settle(self) -> None:
        """Wait until no event is queued and no network call or transcript is pending."""
        while True:
            await self._queue.join()
            pending = [task for task in self._tasks if not task.done()]
            if pending:
                await asyncio.wait(pending)
                continue
            if any(stream.pending for task, stream in self._pumps.items() if not task.done()):
                await asyncio.sleep(0)
                continue
            if self._queue.empty():
                return

    def snapshot(self) -> Dict[str, Any]:
        data = self.session.snapshot()
        mode = self.capture.mode
        data["capture_mode"] = mode.value if mode else None
        data["recorded_questions"] = sorted(self.capture.recordings)
        return data

    # Event loop

    async def _run(self) -> None:
        while True:
            event, reply = await self._queue.get()
            try:
                if event is _STOP:
                    return
                result = self._handle(event)
                if reply is not None and not reply.done():
                    reply.set_result(result)
            except InterviewError as e:
                logger.info(f"Session {self.session_id}: {type(event).__name__} rejected: {e}")
                if reply is not None and not reply.done():
                    reply.set_exception(e)
            except Exception as e:
                logger.error(f"Session {self.session_id}: error handling {type(event).__name__}: {e}")
                if reply is not None and not reply.done():
                    reply.set_exception(e)
            finally:
                self._queue.task_done()

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.post(Tick())

    def _handle(self, event: Any) -> Dict[str, Any]:
        handler = getattr(self, f"_on_{type(event).__name__}", None)
        if handler is None:
            raise InvalidTransitionError(f"Unknown event {type(event).__name__}")
        handler(event)
        return self.snapshot()

    # Handlers

    def _on_StartSession(self, event: StartSession) -> None:
        token = self.session.begin_loading(event.config)
        self._new_epoch()
        self._spawn(self._load_questions(token, self.session.config))

    def _on_NextQuestion(self, event: NextQuestion) -> None:
        self.capture.stop()
        self.session.next()

    def _on_PreviousQuestion(self, event: PreviousQuestion) -> None:
        self.capture.stop()
        self.session.previous()

    def _on_GoToQuestion(self, event: GoToQuestion) -> None:
        self.capture.stop()
        self.session.go_to(event.index)

    def _on_RecordAnswer(self, event: RecordAnswer) -> None:
        self.session.record_answer(event.question_id, event.value)

    def _on_Submit(self, event: Submit) -> None:
        self._submit(auto=False)

    def _on_Tick(self, event: Tick) -> None:
        if self.session.phase != SessionPhase.ACTIVE:
            return
        token = self.session.tick()
        if token is not None:
            self._start_evaluation(token)

    def _on_Resume(self, event: Resume) -> None:
        self.session.resume()

    def _on_Retake(self, event: Retake) -> None:
        if self.session.phase not in (SessionPhase.RESULTS, SessionPhase.ERROR):
            raise InvalidTransitionError("Retake is available from results or after an error")
        self._new_epoch()
        if event.fresh:
            self.supply.reset_history()
        token = self.session.retake()
        self._spawn(self._load_questions(token, self.session.config))

    def _on_Reset(self, event: Reset) -> None:
        self._new_epoch()
        self.session.reset()

    def _on_GetSnapshot(self, event: GetSnapshot) -> None:
        pass

    def _on_StartCapture(self, event: StartCapture) -> None:
        if self.session.phase != SessionPhase.ACTIVE:
            raise InvalidTransitionError("Voice input is only available during the interview")
        question_id = event.question_id or self.session.current_question.id
        if question_id not in {q.id for q in self.session.questions}:
            raise InvalidTransitionError(f"Unknown question: {question_id}")

        if event.mode == CaptureMode.LIVE:
            stream = self.capture.start_live(question_id)
            pump = asyncio.create_task(self._pump_transcripts(stream, self._epoch))
            self._pumps[pump] = stream
            pump.add_done_callback(lambda task: self._pumps.pop(task, None))
        else:
            self.capture.start_recording(question_id)

    def _on_StopCapture(self, event: StopCapture) -> None:
        if event.transcribe and self.capture.mode == CaptureMode.RECORDING \
                and not self.capture.can_transcribe_recordings:
            raise CapabilityUnavailableError("Recording transcription is not available")
        recording = self.capture.stop()
        if event.transcribe and recording is not None:
            self._spawn(self._transcribe_recording(self._epoch, recording.question_id))

    def _on_TranscriptFragment(self, event: TranscriptFragment) -> None:
        self.capture.feed_transcript(event.text, event.is_final)

    def _on_AudioChunk(self, event: AudioChunk) -> None:
        self.capture.write_audio(event.data)

    def _on_TranscriptReceived(self, event: TranscriptReceived) -> None:
        if event.epoch != self._epoch or self.session.phase != SessionPhase.ACTIVE:
            logger.debug(f"Session {self.session_id}: dropping transcript from epoch {event.epoch}")
            return
        transcript = event.event
        if transcript.is_final:
            self.session.append_transcript(transcript.question_id, transcript.text)
        else:
            self.session.set_interim_transcript(transcript.text)

    def _on_RecordingTranscribed(self, event: RecordingTranscribed) -> None:
        if event.epoch != self._epoch or self.session.phase != SessionPhase.ACTIVE:
            logger.info(f"Session {self.session_id}: dropping late transcription of {event.question_id}")
            return
        self.session.append_transcript(event.question_id, event.text)

    def _on_QuestionsLoaded(self, event: QuestionsLoaded) -> None:
        accepted = self.session.questions_loaded(event.token, event.questions)
        if accepted and self.session.phase == SessionPhase.ACTIVE:
            self.supply.remember(event.questions)

    def _on_LoadingFailed(self, event: LoadingFailed) -> None:
        self.session.loading_failed(event.token, event.message)

    def _on_EvaluationCompleted(self, event: EvaluationCompleted) -> None:
        self.session.evaluation_completed(event.token, event.result)

    def _on_EvaluationFailed(self, event: EvaluationFailed) -> None:
        self.session.evaluation_failed(event.token, event.message)

    # Background work

    def _submit(self, auto: bool) -> None:
        token = self.session.begin_submission(auto=auto)
        if token is not None:
            self._start_evaluation(token)

    def _start_evaluation(self, token: int) -> None:
        self.capture.stop()
        questions = list(self.session.questions)
        answers = self.session.submission_answers()
        self._spawn(self._evaluate(token, questions, answers))

    def _new_epoch(self) -> None:
        self.capture.stop()
        self._epoch += 1

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load_questions(self, token: int, config: SessionConfig) -> None:
        try:
            questions = await asyncio.to_thread(self.supply.generate, config, remember=False)
        except InterviewError as e:
            logger.error(f"Session {self.session_id}: question generation failed: {e}")
            self.post(LoadingFailed(token, e.user_message))
            return
        except Exception as e:
            logger.error(f"Session {self.session_id}: unexpected generation error: {e}")
            self.post(LoadingFailed(token, InterviewError.user_message))
            return
        self.post(QuestionsLoaded(token, tuple(questions)))

    async def _evaluate(self, token: int, questions: List[Question], answers: Dict[str, str]) -> None:
        try:
            result = await asyncio.to_thread(self.evaluator.evaluate, questions, answers)
        except InterviewError as e:
            logger.error(f"Session {self.session_id}: grading failed: {e}")
            self.post(EvaluationFailed(token, e.user_message))
            return
        except Exception as e:
            logger.error(f"Session {self.session_id}: unexpected grading error: {e}")
            self.post(EvaluationFailed(token, InterviewError.user_message))
            return
        self.post(EvaluationCompleted(token, result))

    async def _transcribe_recording(self, epoch: int, question_id: str) -> None:
        try:
            text = await asyncio.to_thread(self.capture.transcribe_recording, question_id)
        except CapabilityUnavailableError as e:
            logger.warning(f"Session {self.session_id}: recording not transcribed: {e}")
            return
        self.post(RecordingTranscribed(epoch, question_id, text))

    async def _pump_transcripts(self, stream: LiveTranscription, epoch: int) -> None:
        async for transcript in stream.events():
            self.post(TranscriptReceived(epoch, transcript))
