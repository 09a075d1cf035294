"""Async subprocess helpers."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from ..exceptions import EngineCommandError

log = logging.getLogger(__name__)

OutputHandler = Callable[[str], None]


@dataclass
class CommandOutput:
    """Captured result of a finished command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str


def _decode(data: Optional[bytes]) -> str:
    return data.decode("utf-8", errors="replace") if data is not None else ""


async def run_command(
    command: Sequence[str],
    cwd: Optional[Union[str, Path]] = None,
    stdin: Optional[int] = None,
    on_output: Optional[OutputHandler] = None,
    check: bool = True,
) -> CommandOutput:
    """
    Run a command to completion and capture its output.

    Args:
        command: Program and arguments
        cwd: Working directory for the command
        stdin: File descriptor to use as the command's stdin
        on_output: Called with stdout and stderr text after the command exits
        check: Raise EngineCommandError on a non-zero exit code

    Returns:
        CommandOutput with decoded stdout/stderr

    Raises:
        EngineCommandError: If the command fails (and ``check`` is set) or
            the program cannot be found
    """
    log.debug(f"Executing command: {' '.join(command)} (cwd={cwd})")
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd) if cwd else None,
            stdin=stdin,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise EngineCommandError(command, None, f"Command not found: {command[0]}") from e

    stdout_b, stderr_b = await process.communicate()
    output = CommandOutput(
        command=command,
        returncode=process.returncode,
        stdout=_decode(stdout_b),
        stderr=_decode(stderr_b),
    )

    if on_output:
        if output.stdout:
            on_output(output.stdout)
        if output.stderr:
            on_output(output.stderr)

    if check and output.returncode != 0:
        raise EngineCommandError(command, output.returncode, output.stderr or output.stdout)

    return output
