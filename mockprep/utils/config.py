"""
Configuration settings for the interview practice system.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent.parent

# LLM configuration
GROQ_API_KEY = os.environ.get("GROQ_API_KEY")
GROQ_MODEL_NAME = os.environ.get("GROQ_MODEL_NAME", "llama-3.3-70b-versatile")
GROQ_GENERATION_TEMPERATURE = 0.7  # Question generation wants variety
GROQ_GRADING_TEMPERATURE = 0.3  # Grading wants consistency
GROQ_TOP_P = 0.95
GROQ_MAX_TOKENS = 8192

# Retry configuration for transient (overloaded / 503) failures
MAX_RETRIES = 3
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_MAX_JITTER_SECONDS = 1.0
TRANSIENT_STATUS_CODES = (502, 503, 504)

# Session defaults
DEFAULT_TOPIC = "All"
DEFAULT_DIFFICULTY = "all"
DEFAULT_MCQ_COUNT = 5
DEFAULT_CODING_COUNT = 3
DEFAULT_VOICE_COUNT = 0
DEFAULT_TIME_LIMIT_SECONDS = 30 * 60
TICK_INTERVAL_SECONDS = 1.0

DIFFICULTIES = ["easy", "medium", "hard"]

# Heuristic scorer configuration
SHORT_REFERENCE_KEYWORDS = 4  # References with at most this many keywords are "short"
SHORT_REFERENCE_COVERAGE = 0.5  # Share of keywords needed for short references
LONG_REFERENCE_COVERAGE = 0.3  # Share of keywords needed for longer references
CODE_KEYWORD_COVERAGE = 0.25  # Share of reference keywords a code answer must reuse

# Practice conversation configuration
PRACTICE_MAX_QUESTIONS = 5
PRACTICE_SHORT_ANSWER_CHARS = 50
PRACTICE_DETAILED_ANSWER_CHARS = 200

# Authentication configuration
MIN_PASSWORD_LENGTH = 6
BCRYPT_ROUNDS = int(os.environ.get("MOCKPREP_BCRYPT_ROUNDS", "12"))

# Voice configuration
WHISPER_MODEL = "base"
TTS_DEFAULT_VOICE = "en-US-AriaNeural"
TTS_FALLBACK_VOICE = "en-US-JennyNeural"
TTS_RATE = "-20%"  # Questions are read slightly slower than normal speech
TTS_CACHE_SIZE = 64  # Synthesized prompts kept in memory

# Logging
LOG_LEVEL = os.environ.get("MOCKPREP_LOG_LEVEL", "INFO")
LOG_TO_FILE = os.environ.get("MOCKPREP_LOG_TO_FILE", "false").lower() == "true"
