"""Periodic console dots while a long engine step runs."""

import asyncio
from typing import Optional

from rich.console import Console

from .. import config
from ..core.utils.rich_ui import rich_ui


class ProgressIndicator:
    """Print a dot every ``interval`` seconds until stopped."""

    def __init__(
        self,
        enabled: bool = True,
        interval: float = config.PROGRESS_INTERVAL_SECONDS,
        console: Optional[Console] = None,
    ):
        self.enabled = enabled
        self.interval = interval
        self.console = console or rich_ui.get_console()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.console.print(".", end="", soft_wrap=True)

    def start(self) -> None:
        if self.enabled and self._task is None:
            self._task = asyncio.create_task(self._tick())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "ProgressIndicator":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
