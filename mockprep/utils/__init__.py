"""
Utility modules for configuration, logging, text processing and retries.
"""
from .logger import setup_logger
from .retry import retry_with_backoff, is_transient_error
from .text_utils import (
    clean_text,
    extract_keywords,
    round_half_up,
    extract_json_block
)

__all__ = [
    'setup_logger',
    'retry_with_backoff',
    'is_transient_error',
    'clean_text',
    'extract_keywords',
    'round_half_up',
    'extract_json_block'
]
