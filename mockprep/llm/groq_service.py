"""
Groq Cloud LLM service for question generation and answer grading.

Both remote collaborators of the interview workflow (the question
generator and the grader) are prompts run against the same chat model,
with different sampling temperatures.

Key Features:
- Fast inference (optimized for production)
- Configurable model parameters (temperature, top_p, max tokens)
- Error handling and logging
"""
import os
from typing import Optional

from langchain_groq import ChatGroq

from ..utils.config import (
    GROQ_API_KEY,
    GROQ_MODEL_NAME,
    GROQ_GENERATION_TEMPERATURE,
    GROQ_TOP_P,
    GROQ_MAX_TOKENS
)
from ..utils.logger import setup_logger

logger = setup_logger("groq_service")


def is_llm_configured() -> bool:
    """True when an API key is available from the environment or config."""
    return bool(os.environ.get("GROQ_API_KEY", GROQ_API_KEY))


def initialize_llm(
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None
) -> ChatGroq:
    """
    Initialize Groq Cloud LLM.

    Args:
        api_key: Groq API key. If None, uses environment variable or config.
        model_name: Model name. If None, uses config default.
        temperature: Temperature setting. If None, uses the generation default.
        top_p: Top-p setting. If None, uses config default.
        max_tokens: Max tokens. If None, uses config default.

    Returns:
        ChatGroq LLM instance
    """
    if api_key is None:
        api_key = os.environ.get("GROQ_API_KEY", GROQ_API_KEY)

    if not api_key:
        raise ValueError("GROQ_API_KEY not found. Please set it in environment or .env file.")

    if model_name is None:
        model_name = GROQ_MODEL_NAME
    if temperature is None:
        temperature = GROQ_GENERATION_TEMPERATURE
    if top_p is None:
        top_p = GROQ_TOP_P
    if max_tokens is None:
        max_tokens = GROQ_MAX_TOKENS

    try:
        llm = ChatGroq(
            groq_api_key=api_key,
            model_name=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            model_kwargs={"top_p": top_p}
        )
        logger.info(
            f"Groq Cloud LLM initialized: {model_name} "
            f"(temp={temperature}, top_p={top_p}, max_tokens={max_tokens})"
        )
        return llm
    except Exception as e:
        logger.error(f"Groq initialization failed: {e}")
        raise
