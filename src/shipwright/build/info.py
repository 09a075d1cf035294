"""
Build information resolution.

Resolves the branch, CI context, version and tag list for a checkout from CI
environment variables and git metadata.
"""

import logging
import os
import re
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.utils.process import run_command
from .models import BuildContext, BuildInfo, CIContext

log = logging.getLogger(__name__)

DEFAULT_VERSION = "0.0.0"

BRANCH_ENV_VARS = (
    "GITHUB_HEAD_REF",
    "GITHUB_REF_NAME",
    "TRAVIS_BRANCH",
    "CI_COMMIT_REF_NAME",
    "BRANCH_NAME",
)

_REMOTE_PATTERN = re.compile(r"[:/](?P<owner>[^/:]+)/(?P<repository>[^/]+?)(?:\.git)?/?$")


def is_lts_runtime() -> bool:
    """Treat final (non pre-release) interpreter builds as long-term support."""
    return sys.version_info.releaselevel == "final"


def detect_ci(env: Mapping[str, str]) -> CIContext:
    """Derive pull request / tagged state from CI environment variables."""
    pull_request = (
        env.get("GITHUB_EVENT_NAME") in ("pull_request", "pull_request_target")
        or env.get("TRAVIS_PULL_REQUEST", "false") not in ("", "false")
        or bool(env.get("CI_MERGE_REQUEST_IID"))
        or bool(env.get("CHANGE_ID"))
    )
    tagged = (
        env.get("GITHUB_REF", "").startswith("refs/tags/")
        or bool(env.get("TRAVIS_TAG"))
        or bool(env.get("CI_COMMIT_TAG"))
    )
    return CIContext(pull_request=pull_request, tagged=tagged)


def parse_remote_url(url: str) -> Tuple[Optional[str], Optional[str]]:
    """Split a git remote URL into (owner, repository)."""
    match = _REMOTE_PATTERN.search(url.strip())
    if not match:
        return None, None
    return match.group("owner"), match.group("repository")


def version_parts(version: str) -> List[str]:
    return version.split("-", 1)[0].split(".")


def expand_tag_spec(spec: str, values: Mapping[str, str]) -> str:
    """
    Expand one tag specification.

    Segments are joined with ``_``: ``lt`` latest, ``b`` branch, ``v`` version,
    ``miv`` major.minor, ``ma`` major, ``c`` commit count, ``s`` short sha.
    Unknown segments are used literally; empty segments are dropped.
    """
    parts = []
    for segment in spec.split("_"):
        value = values.get(segment, segment)
        if value:
            parts.append(value)
    return "_".join(parts)


def expand_tag_specs(specs: Sequence[str], info: BuildInfo) -> List[str]:
    """Expand tag specs in order, skipping duplicates."""
    version = info.version or DEFAULT_VERSION
    numbers = version_parts(version)
    values: Dict[str, str] = {
        "lt": "latest",
        "b": info.branch,
        "v": version,
        "miv": ".".join(numbers[:2]),
        "ma": numbers[0],
        "c": info.build or "",
        "s": info.slug or "",
    }

    tags: List[str] = []
    for spec in specs:
        for part in spec.split(","):
            part = part.strip()
            if not part:
                continue
            tag = expand_tag_spec(part, values)
            if tag and tag not in tags:
                tags.append(tag)
    return tags


class BuildInfoResolver(ABC):
    """Resolve build metadata for a working path."""

    @abstractmethod
    async def get_context(self, working_path: Union[str, Path]) -> BuildContext:
        """Branch and CI context known before building."""
        pass

    @abstractmethod
    async def get_info(
        self, working_path: Union[str, Path], tags: Sequence[str]
    ) -> BuildInfo:
        """Resolve the full build info, expanding ``tags`` specs."""
        pass


class GitBuildInfoResolver(BuildInfoResolver):
    """Build info from CI environment variables and the git checkout."""

    def __init__(self, env: Optional[Mapping[str, str]] = None, git: str = "git"):
        self.env = env if env is not None else os.environ
        self.git = git

    async def _git(self, working_path: Union[str, Path], *args: str) -> str:
        output = await run_command([self.git, *args], cwd=working_path, check=False)
        if output.returncode != 0:
            log.debug(f"git {' '.join(args)} failed: {output.stderr.strip()}")
            return ""
        return output.stdout.strip()

    async def get_branch(self, working_path: Union[str, Path]) -> str:
        for name in BRANCH_ENV_VARS:
            value = self.env.get(name)
            if value:
                return value
        branch = await self._git(working_path, "rev-parse", "--abbrev-ref", "HEAD")
        return "" if branch == "HEAD" else branch

    async def get_version(self, working_path: Union[str, Path]) -> str:
        described = await self._git(working_path, "describe", "--tags", "--abbrev=0")
        return described.lstrip("vV") or DEFAULT_VERSION

    async def get_context(self, working_path: Union[str, Path]) -> BuildContext:
        return BuildContext(
            branch=await self.get_branch(working_path),
            ci=detect_ci(self.env),
            is_lts=is_lts_runtime(),
        )

    async def get_info(
        self, working_path: Union[str, Path], tags: Sequence[str]
    ) -> BuildInfo:
        owner, repository = parse_remote_url(
            await self._git(working_path, "config", "--get", "remote.origin.url")
        )
        info = BuildInfo(
            owner=owner,
            repository=repository,
            branch=await self.get_branch(working_path),
            version=await self.get_version(working_path),
            build=await self._git(working_path, "rev-list", "--count", "HEAD") or None,
            slug=await self._git(working_path, "rev-parse", "--short=8", "HEAD") or None,
            ci=detect_ci(self.env),
        )
        info.tag = expand_tag_specs(tags, info)
        log.debug(f"Resolved build info for {working_path}: {info.tag}")
        return info
