"""
LLM service modules for Groq Cloud integration.
"""
from .groq_service import initialize_llm, is_llm_configured

__all__ = ['initialize_llm', 'is_llm_configured']
