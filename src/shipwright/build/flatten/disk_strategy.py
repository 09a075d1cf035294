"""
Disk-mediated flattening.

The container filesystem is exported to a temporary file so the export never
has to be held in memory.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..changes import CommitInstructions
from ..engine import ContainerEngine
from .base import FlattenStrategy, StrategyType

log = logging.getLogger(__name__)


class DiskFlattenStrategy(FlattenStrategy):
    """Flatten through a temporary tarball on disk."""

    strategy_type = StrategyType.DISK

    def __init__(
        self,
        engine: ContainerEngine,
        container_name: Optional[str] = None,
        temp_dir: Optional[str] = None,
    ):
        super().__init__(engine, container_name)
        self.temp_dir = temp_dir

    async def flatten(
        self, tag: str, final_image: str, instructions: CommitInstructions
    ) -> str:
        await self.engine.create(tag, name=self.container_name)
        try:
            fd, name = tempfile.mkstemp(
                prefix="shipwright-", suffix=".tar", dir=self.temp_dir
            )
            os.close(fd)
            file_name = Path(name)
            try:
                log.info(f"Exporting container to file '{file_name}'.")
                await self.engine.export(self.container_name, output=file_name)
                await self.engine.import_image(
                    file_name, final_image, changes=instructions.changes
                )
            finally:
                file_name.unlink(missing_ok=True)
        finally:
            await self._remove_container()
        return final_image
