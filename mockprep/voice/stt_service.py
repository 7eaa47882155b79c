"""
Speech-to-Text Service for recorded answers.

Uses OpenAI Whisper for accurate speech recognition. Live transcription
happens on the client; this service transcribes discrete recordings.
"""
import os
import tempfile
from typing import Optional, Dict, Any

from ..errors import CapabilityUnavailableError
from ..utils.config import WHISPER_MODEL
from ..utils.logger import setup_logger

logger = setup_logger("stt_service")

# Try to import Whisper
try:
    import whisper
    WHISPER_AVAILABLE = True
except ImportError:
    WHISPER_AVAILABLE = False
    logger.warning("Whisper not installed. Install with: pip install openai-whisper")


class STTService:
    """
    Speech-to-Text service for voice answers.

    The Whisper model is loaded on first use.
    """

    def __init__(self, model_name: str = WHISPER_MODEL):
        """Initialize STT service."""
        self.whisper_available = WHISPER_AVAILABLE
        self.model_name = model_name
        self.model = None

    def _load_model(self):
        if self.model is None and self.whisper_available:
            try:
                self.model = whisper.load_model(self.model_name)
                logger.info(f"Whisper model '{self.model_name}' loaded successfully")
            except Exception as e:
                logger.error(f"Error loading Whisper model: {e}")
                self.whisper_available = False
        return self.model

    @property
    def available(self) -> bool:
        return self.whisper_available

    def speech_to_text(
        self,
        audio_file_path: str,
        language: Optional[str] = "en"
    ) -> Dict[str, Any]:
        """
        Convert speech audio to text.

        Args:
            audio_file_path: Path to audio file
            language: Optional language code (e.g., "en" for English)

        Returns:
            Dictionary with:
            - text: Transcribed text
            - language: Detected language
            - error: Present when transcription failed
        """
        if not self._load_model():
            return {
                "text": "",
                "error": "Whisper not available"
            }

        try:
            result = self.model.transcribe(
                audio_file_path,
                language=language,
                task="transcribe"
            )

            return {
                "text": result.get("text", "").strip(),
                "language": result.get("language", "unknown")
            }
        except Exception as e:
            logger.error(f"Whisper transcription error: {e}")
            return {
                "text": "",
                "error": str(e)
            }

    def transcribe_bytes(self, audio: bytes, suffix: str = ".webm") -> str:
        """
        Transcribe an in-memory recording.

        Raises:
            CapabilityUnavailableError: Whisper is not installed or failed
        """
        if not self.available:
            raise CapabilityUnavailableError("Whisper is not installed")

        temp_file = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
        try:
            temp_file.write(audio)
            temp_file.close()
            result = self.speech_to_text(temp_file.name)
        finally:
            os.unlink(temp_file.name)

        if "error" in result:
            raise CapabilityUnavailableError(f"Transcription failed: {result['error']}")
        return result["text"]


# Singleton instance
_stt_service = None


def get_stt_service() -> STTService:
    """Get or create STT service instance (singleton)."""
    global _stt_service
    if _stt_service is None:
        _stt_service = STTService()
    return _stt_service
