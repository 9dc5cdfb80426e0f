"""
Rich-based display system for webbook.

This module provides terminal output using the Rich library: result
tables, book information panels and logging setup.
"""

from .constants import EMOJI_MAP, STYLES
from .rich_display import RichDisplay
from .rich_logger import get_valid_log_levels, setup_rich_logger


__all__ = [
    "EMOJI_MAP",
    "STYLES",
    "RichDisplay",
    "get_valid_log_levels",
    "setup_rich_logger",
]
