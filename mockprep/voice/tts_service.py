"""
Text-to-Speech Service for question prompts.

Engines are tried in order until one produces audio:
1. edge-tts with the default voice, then the fallback voice
2. gTTS
Neither is required: without them the prompt is simply not spoken and
the candidate reads it on screen.

Synthesized prompts are cached by content hash, since the same question
is usually requested again when the candidate navigates back to it.
"""
import asyncio
import hashlib
import io
import threading
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from ..utils.config import TTS_DEFAULT_VOICE, TTS_FALLBACK_VOICE, TTS_RATE, TTS_CACHE_SIZE
from ..utils.logger import setup_logger

logger = setup_logger("tts_service")

# Try to import edge-tts (no API key needed)
try:
    import edge_tts
    EDGE_TTS_AVAILABLE = True
except ImportError:
    EDGE_TTS_AVAILABLE = False
    logger.warning("edge-tts not installed. Install with: pip install edge-tts")

# Try to import gTTS
try:
    from gtts import gTTS
    GTTS_AVAILABLE = True
except ImportError:
    GTTS_AVAILABLE = False
    logger.warning("gTTS not installed. Install with: pip install gtts")

# gTTS rejects very long inputs
GTTS_MAX_CHARS = 5000


class TTSService:
    """Reads interview questions aloud, slightly slower than normal speech."""

    def __init__(self, cache_size: int = TTS_CACHE_SIZE):
        self.edge_tts_available = EDGE_TTS_AVAILABLE
        self.gtts_available = GTTS_AVAILABLE
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, bytes]" = OrderedDict()
        self._lock = threading.Lock()

        engines = [name for name, _ in self._engines(TTS_DEFAULT_VOICE)]
        if engines:
            logger.info(f"TTS Service initialized with engines: {', '.join(engines)}")
        else:
            logger.warning("No TTS engine available - question prompts will not be spoken")

    @property
    def available(self) -> bool:
        return self.edge_tts_available or self.gtts_available

    def _engines(self, voice_id: str) -> List[Tuple[str, Callable[[str], Optional[bytes]]]]:
        engines = []
        if self.edge_tts_available:
            for voice in dict.fromkeys([voice_id, TTS_FALLBACK_VOICE]):
                engines.append((f"edge-tts:{voice}", lambda text, v=voice: asyncio.run(self._edge_tts(text, v))))
        if self.gtts_available:
            engines.append(("gtts", self._gtts))
        return engines

    def text_to_speech(self, text: str, voice_id: Optional[str] = None) -> Optional[bytes]:
        """
        Convert text to MP3 audio.

        Runs edge-tts with asyncio.run, so call it from a worker thread
        (asyncio.to_thread) when inside an event loop.

        Args:
            text: Text to speak
            voice_id: edge-tts voice, defaults to TTS_DEFAULT_VOICE

        Returns:
            MP3 bytes, or None when no engine produced audio
        """
        text = (text or "").strip()
        if not text:
            logger.warning("Empty text provided to TTS")
            return None

        voice_id = voice_id or TTS_DEFAULT_VOICE
        key = hashlib.sha1(f"{voice_id}|{text}".encode("utf-8")).hexdigest()
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]

        for name, engine in self._engines(voice_id):
            audio = engine(text)
            if audio:
                logger.info(f"{name} produced {len(audio)} bytes for {len(text)} chars")
                self._remember(key, audio)
                return audio
            logger.warning(f"{name} produced no audio, trying next engine")

        logger.error("No TTS engine produced audio")
        return None

    def speak_question(self, prompt: str) -> Optional[bytes]:
        """Audio for a question prompt, introduced the way an interviewer reads it."""
        return self.text_to_speech(f"Here is your question. {prompt}")

    def _remember(self, key: str, audio: bytes) -> None:
        with self._lock:
            self._cache[key] = audio
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def _gtts(self, text: str) -> Optional[bytes]:
        if len(text) > GTTS_MAX_CHARS:
            logger.warning(f"Prompt too long for gTTS ({len(text)} chars), truncating")
            text = text[:GTTS_MAX_CHARS]
        try:
            buffer = io.BytesIO()
            gTTS(text=text, lang="en", slow=False).write_to_fp(buffer)
        except Exception as e:
            logger.error(f"gTTS error: {e}")
            return None
        return buffer.getvalue() or None

    async def _edge_tts(self, text: str, voice_id: str) -> Optional[bytes]:
        chunks = []
        try:
            communicate = edge_tts.Communicate(text, voice_id, rate=TTS_RATE)
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    chunks.append(chunk["data"])
        except Exception as e:
            logger.warning(f"edge-tts ({voice_id}) failed: {e}")
            return None
        return b"".join(chunks) or None


# Singleton instance
_tts_service = None


def get_tts_service() -> TTSService:
    """Get or create TTS service instance (singleton)."""
    global _tts_service
    if _tts_service is None:
        _tts_service = TTSService()
    return _tts_service
