"""
Base flatten strategy interface.

Flattening collapses a multi-layer image into a single layer by exporting a
throwaway container's filesystem and importing it back with the original
runtime configuration applied as commit instructions.
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from ..changes import CommitInstructions
from ..engine import ContainerEngine

log = logging.getLogger(__name__)

MB = 1048576

# Images larger than a tenth of free memory are buffered through a file
MEMORY_HEADROOM_FACTOR = 10


class StrategyType(str, Enum):
    """Available flatten strategy types."""

    DISK = "disk"  # export to a temporary file, import from it
    PIPE = "pipe"  # export piped straight into import


def select_strategy(image_size: int, free_memory: Optional[int]) -> StrategyType:
    """
    Pick the flatten mechanism for an image.

    Args:
        image_size: Image size in bytes
        free_memory: Currently free system memory in bytes, None if unknown

    Returns:
        StrategyType.DISK when the image is too large to stream comfortably
        or free memory is unknown
    """
    if free_memory is None:
        return StrategyType.DISK
    if image_size * MEMORY_HEADROOM_FACTOR > free_memory:
        return StrategyType.DISK
    return StrategyType.PIPE


def get_free_memory() -> Optional[int]:
    """
    Return the currently available physical memory in bytes.

    Returns:
        Free memory, or None where the platform does not report it (macOS
        has no SC_AVPHYS_PAGES)
    """
    try:
        return os.sysconf("SC_AVPHYS_PAGES") * os.sysconf("SC_PAGE_SIZE")
    except (ValueError, OSError) as e:
        log.warning(f"Free memory is not available on this platform: {e}")
        return None


def new_container_name() -> str:
    """Short random name for the throwaway flatten container."""
    return uuid.uuid4().hex[-12:]


class FlattenStrategy(ABC):
    """
    Abstract base class for flatten strategies.

    Strategy Pattern:
    - DiskFlattenStrategy: buffers the exported filesystem in a temp file
    - PipeFlattenStrategy: streams export output directly into import
    """

    strategy_type: StrategyType

    def __init__(self, engine: ContainerEngine, container_name: Optional[str] = None):
        """
        Initialize strategy with the engine it drives.

        Args:
            engine: Container engine used for create/export/import/remove
            container_name: Name for the throwaway container (random if omitted)
        """
        self.engine = engine
        self.container_name = container_name or new_container_name()

    @abstractmethod
    async def flatten(
        self, tag: str, final_image: str, instructions: CommitInstructions
    ) -> str:
        """
        Flatten ``tag`` into ``final_image``.

        Args:
            tag: Source image reference
            final_image: Name of the single-layer image to create
            instructions: Commit instructions applied on import

        Returns:
            The final image name

        Raises:
            EngineCommandError: If any engine sub-step fails
        """
        pass

    async def _remove_container(self) -> None:
        log.debug(f"Removing flatten container '{self.container_name}'")
        await self.engine.remove_container(self.container_name, force=True)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(strategy={self.strategy_type.value}, container={self.container_name})"
