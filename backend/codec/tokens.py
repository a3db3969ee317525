"""
Token counting helpers.

`estimate_tokens` is a rough length/4 heuristic, not a tokenizer. Use
`count_tokens` (tiktoken) when an exact count for a specific model matters.
"""

import math
from collections.abc import Callable

import tiktoken

from config import TOKEN_COUNT_MODEL

# Cache tiktoken encoding at module level (expensive to load)
_TOKEN_ENCODING = None


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def count_tokens(text: str, model: str = TOKEN_COUNT_MODEL) -> int:
    """Count tokens for a given text using tiktoken (cached encoding)."""
    global _TOKEN_ENCODING
    if _TOKEN_ENCODING is None:
        try:
            _TOKEN_ENCODING = tiktoken.encoding_for_model(model)
        except KeyError:
            _TOKEN_ENCODING = tiktoken.get_encoding("cl100k_base")
    return len(_TOKEN_ENCODING.encode(text))


def token_savings_percent(
    json_str: str, toon_str: str, counter: Callable[[str], int] = estimate_tokens
) -> float | None:
    """
    Percentage of tokens saved by the TOON text relative to the JSON text.

    Returns None when the JSON side counts zero tokens.
    """
    json_tokens = counter(json_str)
    if json_tokens == 0:
        return None
    toon_tokens = counter(toon_str)
    return (json_tokens - toon_tokens) / json_tokens * 100


def estimate_token_savings(
    json_str: str, toon_str: str, counter: Callable[[str], int] = estimate_tokens
) -> str:
    """
    Human-readable savings estimate, e.g. "~42.9% token reduction".

    Args:
        json_str: Compact JSON rendering of the input
        toon_str: TOON rendering of the same input
        counter: Token counting function (defaults to the length/4 heuristic)

    Returns:
        Formatted percentage with one decimal place, or "N/A" for empty JSON
    """
    savings = token_savings_percent(json_str, toon_str, counter)
    if savings is None:
        return "N/A"
    return f"~{savings:.1f}% token reduction"
