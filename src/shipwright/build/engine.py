"""
Container engine operations.

``ContainerEngine`` is the capability set the build pipeline needs;
``DockerEngine`` implements it on top of the docker CLI.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Sequence, Union

from ..core.exceptions import EngineCommandError
from ..core.utils.process import run_command

log = logging.getLogger(__name__)

DOCKER_LOG_PREFIX = "\U0001f433  "


def docker_log(lines: str) -> None:
    """Log engine output line by line."""
    for line in lines.split("\n"):
        if line:
            log.info(f"{DOCKER_LOG_PREFIX}{line}")


class ExportStream:
    """
    Read end of a running ``export`` whose stdout feeds an ``import``.

    The exporter's stderr goes to an unnamed temporary file, so it can never
    block on a full pipe while the import consumes stdout.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        fd: int,
        command: Sequence[str],
        stderr: Optional[IO[bytes]] = None,
    ):
        self.process = process
        self.command = list(command)
        self.stderr = stderr
        self._fd: Optional[int] = fd

    def fileno(self) -> int:
        if self._fd is None:
            raise ValueError("export stream is closed")
        return self._fd

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def _read_stderr(self) -> str:
        if self.stderr is None:
            return ""
        try:
            self.stderr.seek(0)
            return self.stderr.read().decode("utf-8", errors="replace")
        finally:
            self.stderr.close()
            self.stderr = None

    async def abort(self) -> None:
        """Stop the exporting process after the consumer has failed."""
        self.close()
        if self.process.returncode is None:
            self.process.kill()
        await self.process.wait()
        self._read_stderr()

    async def wait(self) -> None:
        """Wait for the exporting process and raise if it failed."""
        self.close()
        await self.process.wait()
        stderr = self._read_stderr()
        if self.process.returncode != 0:
            raise EngineCommandError(self.command, self.process.returncode, stderr)


class ContainerEngine(ABC):
    """Abstract interface for the engine operations used by the pipeline."""

    @abstractmethod
    async def pull(self, ref: str) -> None:
        pass

    @abstractmethod
    async def build(
        self,
        image_name: str,
        working: Union[str, Path],
        file: Union[str, Path],
        args: Optional[Sequence[str]] = None,
        cache_from: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    async def create(self, tag: str, name: str) -> str:
        """Create a stopped container from ``tag`` and return its handle."""
        pass

    @abstractmethod
    async def export(
        self, container: str, output: Optional[Union[str, Path]] = None
    ) -> Optional[ExportStream]:
        """Export a container filesystem to ``output``, or as a stream."""
        pass

    @abstractmethod
    async def import_image(
        self,
        source: Union[str, Path],
        final_image: str,
        changes: Sequence[str],
        pipe: Optional[ExportStream] = None,
    ) -> None:
        pass

    @abstractmethod
    async def inspect(self, tag: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def tag_image(self, image_name: str, tags: Sequence[str]) -> None:
        """Apply every tag in ``tags`` to ``image_name``."""
        pass

    @abstractmethod
    async def push_tags(self, image_name: str, tags: Sequence[str]) -> None:
        """Push ``image_name`` for every tag in ``tags``."""
        pass

    @abstractmethod
    async def remove_container(self, container: str, force: bool = True) -> None:
        pass


class DockerEngine(ContainerEngine):
    """Drive the docker CLI through asyncio subprocesses."""

    def __init__(self, sudo: bool = False, verbose: bool = False, executable: str = "docker"):
        """
        Initialize the docker engine.

        Args:
            sudo: Prefix every docker invocation with ``sudo``
            verbose: Log docker's output line by line
            executable: Name or path of the docker binary
        """
        self.sudo = sudo
        self.verbose = verbose
        self.executable = executable

    def _command(self, *args: str) -> List[str]:
        prefix = ["sudo", self.executable] if self.sudo else [self.executable]
        return prefix + list(args)

    async def _run(self, *args: str, stdin: Optional[int] = None) -> str:
        output = await run_command(
            self._command(*args),
            stdin=stdin,
            on_output=docker_log if self.verbose else None,
        )
        return output.stdout

    async def pull(self, ref: str) -> None:
        log.debug(f"Pulling image: {ref}")
        await self._run("pull", ref)

    async def build(
        self,
        image_name: str,
        working: Union[str, Path],
        file: Union[str, Path],
        args: Optional[Sequence[str]] = None,
        cache_from: Optional[str] = None,
    ) -> None:
        command = ["build", "-t", image_name, "-f", str(file)]
        for arg in args or []:
            command.extend(["--build-arg", arg])
        if cache_from:
            command.extend(["--cache-from", cache_from])
        command.append(str(working))

        log.debug(f"Building image {image_name} from {file}")
        await self._run(*command)

    async def create(self, tag: str, name: str) -> str:
        await self._run("create", "--name", name, tag)
        return name

    async def export(
        self, container: str, output: Optional[Union[str, Path]] = None
    ) -> Optional[ExportStream]:
        if output is not None:
            await self._run("export", "-o", str(output), container)
            return None

        command = self._command("export", container)
        stderr = tempfile.TemporaryFile()
        read_fd, write_fd = os.pipe()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=write_fd,
                stderr=stderr,
            )
        except FileNotFoundError as e:
            os.close(read_fd)
            stderr.close()
            raise EngineCommandError(command, None, f"Command not found: {command[0]}") from e
        finally:
            os.close(write_fd)
        return ExportStream(process, read_fd, command, stderr=stderr)

    async def import_image(
        self,
        source: Union[str, Path],
        final_image: str,
        changes: Sequence[str],
        pipe: Optional[ExportStream] = None,
    ) -> None:
        command = ["import"]
        for change in changes:
            command.extend(["--change", change])

        if pipe is None:
            await self._run(*command, str(source), final_image)
            return

        try:
            await self._run(*command, "-", final_image, stdin=pipe.fileno())
        except BaseException:
            await pipe.abort()
            raise
        await pipe.wait()

    async def inspect(self, tag: str) -> Dict[str, Any]:
        stdout = await self._run("image", "inspect", tag)
        records = json.loads(stdout or "[]")
        if not records:
            raise EngineCommandError(
                self._command("image", "inspect", tag), 0, f"no image found for '{tag}'"
            )
        return records[0]

    async def tag_image(self, image_name: str, tags: Sequence[str]) -> None:
        for tag in tags:
            target = f"{image_name}:{tag}"
            log.debug(f"Tagging image: {image_name} -> {target}")
            await self._run("tag", image_name, target)

    async def push_tags(self, image_name: str, tags: Sequence[str]) -> None:
        for tag in tags:
            target = f"{image_name}:{tag}"
            log.debug(f"Pushing {target}")
            await self._run("push", target)

    async def remove_container(self, container: str, force: bool = True) -> None:
        args = ["rm", "-f", container] if force else ["rm", container]
        await self._run(*args)
