"""
Audio capture for spoken answers.

Two capture modes exist per question:
- LIVE: continuous speech-to-text, delivered as a stream of interim and
  final TranscriptEvents
- RECORDING: a discrete audio recording kept for playback and, when
  Whisper is installed, transcription

Only one mode is active at a time. Starting one stops the other first.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional

from ..errors import CapabilityUnavailableError, InvalidTransitionError
from ..utils.logger import setup_logger
from .stt_service import STTService

logger = setup_logger("capture")


class CaptureMode(str, Enum):
    LIVE = "live"
    RECORDING = "recording"


@dataclass(frozen=True)
class TranscriptEvent:
    question_id: str
    text: str
    is_final: bool = True


class LiveTranscription:
    """
    Cancellable stream of transcript fragments for one question.

    Fragments arrive through feed() (from the client's recognizer) and are
    consumed with ``async for event in stream.events()``. stop() ends the
    stream after already-queued fragments are delivered.
    """

    def __init__(self, question_id: str):
        self.question_id = question_id
        self.active = True
        self._queue: "asyncio.Queue[Optional[TranscriptEvent]]" = asyncio.Queue()

    def feed(self, text: str, is_final: bool = True) -> None:
        if not self.active:
            raise InvalidTransitionError("Live transcription is not running")
        self._queue.put_nowait(TranscriptEvent(self.question_id, text, is_final))

    @property
    def pending(self) -> int:
        """Fragments fed but not yet consumed."""
        return self._queue.qsize()

    def stop(self) -> None:
        if self.active:
            self.active = False
            self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event


class AudioRecording:
    """Discrete recording for one question, built from uploaded chunks."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        self.active = True
        self._chunks: List[bytes] = []

    def write(self, chunk: bytes) -> None:
        if not self.active:
            raise InvalidTransitionError("Recording is not running")
        self._chunks.append(chunk)

    def stop(self) -> bytes:
        self.active = False
        return b"".join(self._chunks)


class CaptureManager:
    """
    Owns the capture resources of one session.

    Args:
        live_available: Whether the client offers speech recognition
        recording_available: Whether the client can record audio
        stt_service: Whisper service for transcribing recordings
    """

    def __init__(
        self,
        live_available: bool = True,
        recording_available: bool = True,
        stt_service: Optional[STTService] = None
    ):
        self.live_available = live_available
        self.recording_available = recording_available
        self.stt_service = stt_service
        self.live: Optional[LiveTranscription] = None
        self.recording: Optional[AudioRecording] = None
        self.recordings: Dict[str, bytes] = {}

    @property
    def mode(self) -> Optional[CaptureMode]:
        if self.live is not None:
            return CaptureMode.LIVE
        if self.recording is not None:
            return CaptureMode.RECORDING
        return None

    @property
    def can_transcribe_recordings(self) -> bool:
        return self.stt_service is not None and self.stt_service.available

    def start_live(self, question_id: str) -> LiveTranscription:
        """Start live transcription, stopping any recording first."""
        if not self.live_available:
            raise CapabilityUnavailableError("Speech recognition is not available")
        self.stop()
        self.live = LiveTranscription(question_id)
        logger.info(f"Live transcription started for {question_id}")
        return self.live

    def start_recording(self, question_id: str) -> AudioRecording:
        """Start a recording, stopping live transcription first."""
        if not self.recording_available:
            raise CapabilityUnavailableError("Audio recording is not available")
        self.stop()
        self.recording = AudioRecording(question_id)
        logger.info(f"Recording started for {question_id}")
        return self.recording

    def feed_transcript(self, text: str, is_final: bool = True) -> None:
        if self.live is None:
            raise InvalidTransitionError("Live transcription is not running")
        self.live.feed(text, is_final)

    def write_audio(self, chunk: bytes) -> None:
        if self.recording is None:
            raise InvalidTransitionError("Recording is not running")
        self.recording.write(chunk)

    def stop(self) -> Optional[AudioRecording]:
        """
        Stop whichever capture is active.

        Returns:
            The finished recording, when a recording was stopped
        """
        finished = None
        if self.live is not None:
            self.live.stop()
            logger.info(f"Live transcription stopped for {self.live.question_id}")
            self.live = None
        if self.recording is not None:
            finished = self.recording
            audio = finished.stop()
            if audio:
                self.recordings[finished.question_id] = audio
            logger.info(f"Recording stopped for {finished.question_id} ({len(audio)} bytes)")
            self.recording = None
        return finished

    def last_recording(self, question_id: str) -> Optional[bytes]:
        """Most recent recording for playback."""
        return self.recordings.get(question_id)

    def transcribe_recording(self, question_id: str) -> str:
        """
        Transcribe the last recording of a question.

        Raises:
            CapabilityUnavailableError: No recording or no Whisper
        """
        audio = self.recordings.get(question_id)
        if not audio:
            raise CapabilityUnavailableError(f"No recording for question {question_id}")
        if not self.can_transcribe_recordings:
            raise CapabilityUnavailableError("Recording transcription is not available")
        return self.stt_service.transcribe_bytes(audio)

    def close(self) -> None:
        self.stop()
        self.recordings.clear()
