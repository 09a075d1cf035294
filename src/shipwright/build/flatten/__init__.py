"""
Image flattening.

Usage:
    from shipwright.build.flatten import flatten_image

    await flatten_image(engine, "shipwright-temp", "myorg/app")
"""

import logging
from typing import Optional

from ..changes import get_changes_for_import
from ..engine import ContainerEngine
from .base import (
    MB,
    FlattenStrategy,
    StrategyType,
    get_free_memory,
    new_container_name,
    select_strategy,
)
from .disk_strategy import DiskFlattenStrategy
from .pipe_strategy import PipeFlattenStrategy

log = logging.getLogger(__name__)

STRATEGIES = {
    StrategyType.DISK: DiskFlattenStrategy,
    StrategyType.PIPE: PipeFlattenStrategy,
}


def create_strategy(
    strategy_type: StrategyType,
    engine: ContainerEngine,
    container_name: Optional[str] = None,
) -> FlattenStrategy:
    """Instantiate the strategy class registered for ``strategy_type``."""
    return STRATEGIES[strategy_type](engine, container_name=container_name)


async def flatten_image(
    engine: ContainerEngine,
    initial_image: str,
    final_image: str,
    free_memory: Optional[int] = None,
) -> str:
    """
    Flatten ``initial_image:latest`` into ``final_image``.

    Args:
        engine: Container engine
        initial_image: Temporary image produced by the build
        final_image: Name for the flattened image
        free_memory: Free memory in bytes (read from the OS if omitted)

    Returns:
        The final image name
    """
    tag = f"{initial_image}:latest"
    instructions = get_changes_for_import(await engine.inspect(tag))
    log.info(f"Flattening temporary image '{initial_image}' into '{final_image}'.")

    if free_memory is None:
        free_memory = get_free_memory()
    strategy_type = select_strategy(instructions.size, free_memory)
    free = f"{free_memory / MB:.2f} MB" if free_memory is not None else "unknown"
    log.info(
        f"image size {instructions.size / MB:.2f} MB, free memory {free}, "
        f"flattening via {strategy_type.value}"
    )

    strategy = create_strategy(strategy_type, engine, new_container_name())
    return await strategy.flatten(tag, final_image, instructions)


__all__ = [
    "DiskFlattenStrategy",
    "FlattenStrategy",
    "PipeFlattenStrategy",
    "StrategyType",
    "create_strategy",
    "flatten_image",
    "get_free_memory",
    "select_strategy",
]
