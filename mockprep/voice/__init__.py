"""
Voice services for the interview system.

Includes:
- Text-to-Speech (TTS): Read questions aloud
- Speech-to-Text (STT): Transcribe recorded answers
- Capture: Exclusive live transcription / recording per session
"""

from .tts_service import TTSService, get_tts_service
from .stt_service import STTService, get_stt_service
from .capture import (
    AudioRecording,
    CaptureManager,
    CaptureMode,
    LiveTranscription,
    TranscriptEvent
)

__all__ = [
    'TTSService',
    'get_tts_service',
    'STTService',
    'get_stt_service',
    'AudioRecording',
    'CaptureManager',
    'CaptureMode',
    'LiveTranscription',
    'TranscriptEvent'
]
