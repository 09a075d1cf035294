"""
Data models for an image build run.

``BuildRequest`` is the immutable input of a pipeline run, ``BuildInfo`` the
resolved tag/branch/CI metadata persisted to ``.buildinfo.json``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .. import config
from .tags import sanitize_tag


class CIContext(BaseModel):
    """CI state of the current checkout."""

    model_config = ConfigDict(populate_by_name=True)

    pull_request: bool = Field(
        default=False, alias="pullRequest", description="Build runs for a pull request"
    )
    tagged: bool = Field(default=False, description="Commit is a tagged release")


class BuildContext(BaseModel):
    """Branch and CI context known before the build starts."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    branch: str = ""
    ci: CIContext = Field(default_factory=CIContext)
    is_lts: bool = Field(
        default=True, alias="isLTS", description="Running interpreter is a final release"
    )


class BuildInfo(BaseModel):
    """Tags, branch and CI metadata resolved for a build."""

    model_config = ConfigDict(populate_by_name=True)

    owner: Optional[str] = None
    repository: Optional[str] = None
    branch: str = ""
    version: Optional[str] = None
    build: Optional[str] = None
    slug: Optional[str] = None
    tag: List[str] = Field(default_factory=list)
    ci: CIContext = Field(default_factory=CIContext)
    continue_: bool = Field(
        default=True,
        alias="continue",
        description="Whether the tag and push steps should run",
    )

    @classmethod
    def skipped(cls) -> "BuildInfo":
        """Info for a run whose tag and push steps are skipped."""
        return cls(continue_=False)


class BuildRequest(BaseModel):
    """Options for one build-and-publish run."""

    model_config = ConfigDict(frozen=True)

    repo: str = Field(..., description="Repository (namespace) the image belongs to")
    name: str = Field(..., description="Base name of the image")
    working_path: Path = Field(default_factory=Path.cwd)
    docker_file: Optional[Path] = None
    name_prefix: str = ""
    name_postfix: str = ""
    tags: List[str] = Field(default_factory=list, description="Tag specifications")
    build_branches: List[str] = Field(
        default_factory=lambda: list(config.DEFAULT_BUILD_BRANCHES)
    )
    always_build: bool = False
    registry: Optional[str] = None
    output: str = config.DEFAULT_OUTPUT_FILE
    build_args: List[str] = Field(default_factory=list)
    skip_prs: bool = True
    lts_only: bool = True
    no_push: bool = False
    flatten: bool = False
    verbose: bool = False
    sudo: bool = False
    cache_from: Optional[str] = None
    cache_from_latest: bool = False
    indicate_progress: bool = False
    default_info: BuildContext = Field(default_factory=BuildContext)

    @property
    def build_file(self) -> Path:
        return self.docker_file or config.get_default_dockerfile(self.working_path)

    @property
    def image_file(self) -> Path:
        """Where the image metadata file is written."""
        return self.working_path / self.output

    def tag_specs(self) -> List[str]:
        """Configured tag specs, or the defaults for the current branch."""
        if self.tags:
            return list(self.tags)
        branches = (
            [self.default_info.branch] if self.always_build else self.build_branches
        )
        return config.get_default_tag_specs(branches, self.default_info.branch)


@dataclass(frozen=True)
class ImageIdentity:
    """Names of the image produced by a run."""

    repo: str
    base_image_name: str
    registry: Optional[str] = None
    temporary: Optional[str] = None

    @classmethod
    def from_request(cls, request: BuildRequest) -> "ImageIdentity":
        base = "".join(
            [request.name_prefix, sanitize_tag(request.name), request.name_postfix]
        )
        registry = None if config.is_default_registry(request.registry) else request.registry
        return cls(
            repo=request.repo,
            base_image_name=base,
            registry=registry,
            temporary=config.TEMPORARY_IMAGE_NAME if request.flatten else None,
        )

    @property
    def final(self) -> str:
        parts = [self.repo, self.base_image_name]
        if self.registry:
            parts.insert(0, self.registry)
        return "/".join(parts)

    @property
    def build_name(self) -> str:
        """Name the build step tags: the temporary name when flattening."""
        return self.temporary or self.final

    @property
    def cache_latest(self) -> str:
        return f"{self.final}:latest"
