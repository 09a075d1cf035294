"""Configuration defaults for shipwright builds."""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

# Files
DEFAULT_DOCKERFILE = "Dockerfile"
DEFAULT_OUTPUT_FILE = ".image.json"
BUILD_INFO_FILE = ".buildinfo.json"

# Registry
DEFAULT_REGISTRY = "hub.docker.com"
DOCKER_HUB_REGISTRIES = frozenset(
    {"hub.docker.com", "https://hub.docker.com", "docker.io", "index.docker.io"}
)

# Branches whose builds are tagged and pushed by default
DEFAULT_BUILD_BRANCHES = ("main", "master")
DEFAULT_TAG_SPECS = ("lt", "v", "v_c_s")

# Name the build step uses when the image is flattened afterwards
TEMPORARY_IMAGE_NAME = "shipwright-temp"

PROGRESS_INTERVAL_SECONDS = 3.0  # seconds

# Exit codes
EXIT_SUCCESS = 0
EXIT_COMMAND_FAILED = 1
EXIT_PIPELINE_FAILED = 100


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable (true/1/yes)."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def get_env_registry() -> Optional[str]:
    """Registry override from SHIPWRIGHT_REGISTRY."""
    return os.getenv("SHIPWRIGHT_REGISTRY") or None


def is_default_registry(registry: Optional[str]) -> bool:
    """True when images for ``registry`` need no registry prefix."""
    return not registry or registry.rstrip("/") in DOCKER_HUB_REGISTRIES


def get_default_working_path() -> Path:
    return Path.cwd()


def get_default_name(working_path: Union[str, Path]) -> str:
    """Image name defaults to the working directory's name."""
    return Path(working_path).resolve().name


def get_default_dockerfile(working_path: Union[str, Path]) -> Path:
    return Path(working_path) / DEFAULT_DOCKERFILE


def split_list(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten repeated and comma separated option values."""
    result: List[str] = []
    for value in values or []:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


def get_default_tag_specs(build_branches: Iterable[str], branch: str) -> List[str]:
    """
    Default tag specs for a branch.

    Args:
        build_branches: Branches whose builds are published
        branch: Branch being built

    Returns:
        DEFAULT_TAG_SPECS for a build branch, otherwise an empty list
    """
    if branch and branch in set(build_branches):
        return list(DEFAULT_TAG_SPECS)
    return []
