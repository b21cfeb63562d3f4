"""Token estimation utilities for prompt sizing."""

from __future__ import annotations


def estimate_tokens(text: str) -> int:
    """
    Estimate token count using simple heuristic.

    Args:
        text: Text to estimate

    Returns:
        Estimated token count
    """
    # ~4 characters per token
    return len(text) // 4


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    """
    Truncate text to fit within token limit.

    Args:
        text: Text to truncate
        max_tokens: Maximum tokens allowed

    Returns:
        Truncated text
    """
    if estimate_tokens(text) <= max_tokens:
        return text

    char_limit = max_tokens * 4
    return text[:char_limit] + "\n... [truncated]"
