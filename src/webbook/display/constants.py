"""Constants for Rich display system."""

# Emoji mappings for output sections
EMOJI_MAP = {
    "success": "✓",
    "warning": "⚠️",
    "error": "✗",
    "search": "🔍",
    "book": "📚",
    "author": "👤",
    "kind": "🏷️",
    "chapters": "📑",
    "latest": "🆕",
    "link": "🔗",
}

# Rich markup styles for different message types
STYLES = {
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "book_title": "bold cyan",
    "book_info": "white",
    "volume": "bold magenta",
    "dim": "dim",
}

# Log format
LOG_FORMAT = "%(message)s"
FILE_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
