"""
webbook CLI module.

This module provides a Click-based command-line interface for webbook.
"""

from .commands import cli


__all__ = ["cli"]
