"""Stream-mediated flattening: ``export`` piped straight into ``import``."""

import logging

from ..changes import CommitInstructions
from ...core.exceptions import ShipwrightError
from .base import FlattenStrategy, StrategyType

log = logging.getLogger(__name__)


class PipeFlattenStrategy(FlattenStrategy):
    """Flatten without touching disk."""

    strategy_type = StrategyType.PIPE

    async def flatten(
        self, tag: str, final_image: str, instructions: CommitInstructions
    ) -> str:
        await self.engine.create(tag, name=self.container_name)
        try:
            log.info("Exporting container via pipe.")
            pipe = await self.engine.export(self.container_name)
            if pipe is None:
                raise ShipwrightError(
                    f"export of container '{self.container_name}' returned no stream"
                )
            await self.engine.import_image(
                "-", final_image, changes=instructions.changes, pipe=pipe
            )
        finally:
            await self._remove_container()
        return final_image
