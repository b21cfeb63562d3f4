"""Utility modules for the brief assembler."""

from .logger import get_logger, get_progress_logger, setup_logger, setup_logging
from .token_counter import estimate_tokens, truncate_to_token_limit

__all__ = [
    "get_logger",
    "get_progress_logger",
    "setup_logger",
    "setup_logging",
    "estimate_tokens",
    "truncate_to_token_limit",
]
