"""
Rich UI components for console output and log rendering in shipwright.
"""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def is_rich_enabled() -> bool:
    """Check if Rich log rendering should be enabled based on environment"""
    return os.environ.get("SHIPWRIGHT_RICH_UI", "false").lower() in ("true", "1", "yes")


class RichUIManager:
    """Central holder for the shared Rich console"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def get_console(self) -> Console:
        return self.console


# Global Rich UI manager instance
rich_ui = RichUIManager()


class RichLoggingFilter(logging.Filter):
    """Filter to suppress chatty asyncio selector logs under Rich output"""

    def filter(self, record):
        if record.name == "asyncio" and "selector" in record.getMessage().lower():
            return False
        return True


def get_rich_handler() -> logging.Handler:
    """Get Rich logging handler bound to the shared console"""
    handler = RichHandler(
        console=rich_ui.console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.addFilter(RichLoggingFilter())
    return handler
