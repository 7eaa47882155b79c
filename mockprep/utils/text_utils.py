"""
Text processing utilities for answer comparison and LLM output handling.
"""
import json
import math
import re
from typing import Any, Set

# Common English function words ignored when comparing answers
STOP_WORDS = frozenset("""
a about above after again against all am an and any are as at be because been
before being below between both but by can could did do does doing down during
each few for from further had has have having he her here hers herself him
himself his how i if in into is it its itself just me more most my myself no
nor not now of off on once only or other our ours ourselves out over own same
she should so some such than that the their theirs them themselves then there
these they this those through to too under until up very was we were what when
where which while who whom why will with would you your yours yourself
yourselves also using use used like one way get
""".split())

_TOKEN_RE = re.compile(r"[a-z0-9_]+")


def clean_text(text: str) -> str:
    """
    Clean and normalize text for comparison.
    
    Args:
        text: Raw text to clean
        
    Returns:
        Lower-cased text with punctuation collapsed to single spaces
    """
    if not text:
        return ""
    
    text = text.lower()
    text = re.sub(r'http\S+|www\S+', '', text)  # remove URLs
    text = re.sub(r'[^a-z0-9_\s]', ' ', text)  # remove punctuation/special chars
    text = re.sub(r'\s+', ' ', text).strip()  # remove extra whitespace
    return text


def extract_keywords(text: str) -> Set[str]:
    """
    Extract the set of meaningful words from a text.
    
    Stop words and single characters are dropped.
    
    Args:
        text: Text to tokenize
        
    Returns:
        Set of lower-cased keywords
    """
    return {
        token for token in _TOKEN_RE.findall(clean_text(text))
        if len(token) > 1 and token not in STOP_WORDS
    }


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def extract_json_block(text: str, opener: str = "[") -> Any:
    """
    Extract and parse the first JSON array or object embedded in LLM output.
    
    Args:
        text: Raw LLM output, possibly wrapped in prose or code fences
        opener: "[" for an array, "{" for an object
        
    Returns:
        Parsed JSON value
        
    Raises:
        ValueError: If no block is found or it does not parse
    """
    closer = "]" if opener == "[" else "}"
    start = text.find(opener) if text else -1
    end = text.rfind(closer) if text else -1
    if start == -1 or end <= start:
        raise ValueError(f"No JSON {'array' if opener == '[' else 'object'} found in response")
    
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in response: {e}") from e
