"""
Image build pipeline.

Runs cache pull, build, flatten, build-info resolution, tag, push and the
image metadata write strictly in sequence. Each step takes the current
``PipelineState`` and returns the next one; a fatal step raises a
``PipelineStepError`` which ends the run with a failed ``PipelineResult``.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional

from .. import config
from ..core.exceptions import (
    BuildFailure,
    FlattenFailure,
    ImageFileWriteFailure,
    InfoWriteFailure,
    PipelineStepError,
    PushFailure,
    ShipwrightError,
    TagFailure,
)
from ..core.utils.json import write_json_file
from .engine import ContainerEngine, DockerEngine
from .flatten import flatten_image
from .info import BuildInfoResolver, GitBuildInfoResolver
from .models import BuildInfo, BuildRequest, ImageIdentity
from .progress import ProgressIndicator
from .tags import sanitize_tag, sanitize_tags

log = logging.getLogger(__name__)


class PipelineStatus(str, Enum):
    """Terminal outcome of a pipeline run."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineState:
    """Value threaded between pipeline steps."""

    image_name: str
    cache_from: Optional[str] = None
    info: Optional[BuildInfo] = None

    @property
    def should_continue(self) -> bool:
        return self.info is None or self.info.continue_


@dataclass
class PipelineResult:
    """Outcome of ``ImagePipeline.run``."""

    status: PipelineStatus
    state: Optional[PipelineState] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.status != PipelineStatus.FAILED

    @property
    def info(self) -> Optional[BuildInfo]:
        return self.state.info if self.state else None

    @property
    def exit_code(self) -> int:
        if self.status == PipelineStatus.FAILED:
            return config.EXIT_PIPELINE_FAILED
        return config.EXIT_SUCCESS


def _format_tags(info: Optional[BuildInfo]) -> str:
    return ", ".join(info.tag) if info else ""


class ImagePipeline:
    """
    Orchestrate building and publishing one image.

    This class coordinates:
    1. Runtime gate (LTS-only builds)
    2. Optional cache image pull
    3. Image build
    4. Optional flatten into a single layer
    5. Build info resolution and ``.buildinfo.json``
    6. Tagging, unless gated
    7. Pushing, unless gated or disabled
    8. Image metadata file
    """

    def __init__(
        self,
        request: BuildRequest,
        engine: Optional[ContainerEngine] = None,
        resolver: Optional[BuildInfoResolver] = None,
        progress: Optional[ProgressIndicator] = None,
        build_info_path: Optional[Path] = None,
        free_memory: Optional[int] = None,
    ):
        """
        Initialize the pipeline with its collaborators.

        Args:
            request: Build options for this run
            engine: Container engine (docker CLI by default)
            resolver: Build info resolver (git/CI environment by default)
            progress: Progress indicator shown while building
            build_info_path: Where to write build info (cwd/.buildinfo.json)
            free_memory: Free memory override for flatten strategy selection
        """
        self.request = request
        self.engine = engine or DockerEngine(sudo=request.sudo, verbose=request.verbose)
        self.resolver = resolver or GitBuildInfoResolver()
        self.progress = progress or ProgressIndicator(enabled=request.indicate_progress)
        self.build_info_path = build_info_path
        self.free_memory = free_memory
        self.identity = ImageIdentity.from_request(request)

    @property
    def final_image(self) -> str:
        return self.identity.final

    def cache_reference(self) -> Optional[str]:
        if self.request.cache_from_latest:
            return self.identity.cache_latest
        return self.request.cache_from or None

    async def run(self) -> PipelineResult:
        """Run every step and report the terminal outcome."""
        context = self.request.default_info
        if self.request.lts_only and not context.is_lts:
            log.info("Skipping build - runtime is not an LTS release")
            return PipelineResult(status=PipelineStatus.SKIPPED)

        state = PipelineState(
            image_name=self.identity.build_name, cache_from=self.cache_reference()
        )
        log.info(f"Building Docker image '{self.final_image}'.")

        try:
            async with self.progress:
                state = await self.pull_cache(state)
                state = await self.build(state)
            state = await self.flatten(state)
            state = await self.resolve_info(state)
            state = await self.tag(state)
            state = await self.push(state)
            state = await self.write_image_file(state)
        except PipelineStepError as e:
            log.error(f"shipwright failed during {e.step} - exiting: {e}")
            return PipelineResult(status=PipelineStatus.FAILED, state=state, error=e)
        except Exception as e:
            log.exception(f"shipwright failed - exiting: {e}")
            return PipelineResult(status=PipelineStatus.FAILED, state=state, error=e)

        return PipelineResult(status=PipelineStatus.SUCCEEDED, state=state)

    async def pull_cache(self, state: PipelineState) -> PipelineState:
        """Pull the cache image; a failed pull drops the cache argument."""
        if not state.cache_from:
            return state

        log.info(f"Attempting to pull image '{state.cache_from}' to use as cache baseline.")
        try:
            await self.engine.pull(state.cache_from)
        except ShipwrightError as e:
            log.warning(
                f"Docker failed to pull cache image '{state.cache_from}', "
                f"building without cache argument: {e}"
            )
            return replace(state, cache_from=None)

        log.info(f"Pull from '{state.cache_from}' complete.")
        return state

    async def build(self, state: PipelineState) -> PipelineState:
        try:
            await self.engine.build(
                state.image_name,
                working=self.request.working_path,
                file=self.request.build_file,
                args=self.request.build_args,
                cache_from=state.cache_from,
            )
        except ShipwrightError as e:
            log.error(f"Docker build for image '{state.image_name}' failed: {e}")
            raise BuildFailure(
                f"Docker build for image '{state.image_name}' failed: {e}",
                image=state.image_name,
            ) from e

        log.info(f"Docker image '{self.final_image}' built successfully.")
        return state

    async def flatten(self, state: PipelineState) -> PipelineState:
        if not self.request.flatten:
            return state

        try:
            await flatten_image(
                self.engine, state.image_name, self.final_image, free_memory=self.free_memory
            )
        except ShipwrightError as e:
            log.error(f"Flattening image '{state.image_name}' failed: {e}")
            raise FlattenFailure(
                f"Flattening '{state.image_name}' into '{self.final_image}' failed: {e}",
                image=self.final_image,
            ) from e

        log.info(f"Image flattened into '{self.final_image}' successfully.")
        return replace(state, image_name=self.final_image)

    async def resolve_info(self, state: PipelineState) -> PipelineState:
        """Resolve tags for the image and write ``.buildinfo.json``."""
        specs = self.request.tag_specs()
        context = self.request.default_info

        if not specs:
            log.info("No tags were specified, skipping tag and push.")
            log.info(
                f"branch - {context.branch}, PR - {context.ci.pull_request}, "
                f"tagged - {context.ci.tagged}"
            )
            return replace(state, info=BuildInfo.skipped())

        try:
            info = await self.resolver.get_info(self.request.working_path, specs)
            info.tag = sanitize_tags(info.tag)
            if not info.tag:
                log.info("Tag specification resulted in an empty tag set, skipping tag and push.")
                log.info(
                    f"branch - '{context.branch}', PR - '{context.ci.pull_request}', "
                    f"tag spec - '{','.join(specs)}'"
                )
                info.continue_ = False
            else:
                info.continue_ = True
            if info.branch:
                info.branch = sanitize_tag(info.branch)

            path = self.build_info_path or Path.cwd() / config.BUILD_INFO_FILE
            write_json_file(path, info, indent=2)
        except (ShipwrightError, OSError) as e:
            log.error(f"Failed to acquire and write build information due to error: {e}")
            raise InfoWriteFailure(
                f"Failed to acquire and write build information: {e}",
                image=self.final_image,
            ) from e

        return replace(state, info=info)

    async def tag(self, state: PipelineState) -> PipelineState:
        info = state.info or BuildInfo.skipped()
        is_skipped_pr = self.request.skip_prs and info.ci.pull_request
        if is_skipped_pr or not info.continue_:
            log.info("Skipping tag & push.")
            return replace(state, info=info.model_copy(update={"continue_": False}))

        log.info("Tagging image.")
        try:
            await self.engine.tag_image(self.final_image, info.tag)
        except ShipwrightError as e:
            log.error(
                f"Tagging image '{self.final_image}' with tags, '{_format_tags(info)}', "
                f"failed with error:\n {e}"
            )
            raise TagFailure(
                f"Tagging image '{self.final_image}' failed: {e}",
                image=self.final_image,
                tags=info.tag,
            ) from e
        return state

    async def push(self, state: PipelineState) -> PipelineState:
        if not state.should_continue or self.request.no_push:
            log.info("Skipping push image.")
            return state

        log.info("Pushing image.")
        try:
            await self.engine.push_tags(self.final_image, state.info.tag)
        except ShipwrightError as e:
            log.error(
                f"Pushing the image '{self.final_image}' failed for some or all tags:\n {e}"
            )
            raise PushFailure(
                f"Pushing the image '{self.final_image}' failed: {e}",
                image=self.final_image,
            ) from e

        log.info(
            f"Docker image '{self.final_image}' was pushed successfully with tags: "
            f"{_format_tags(state.info)}"
        )
        return state

    async def write_image_file(self, state: PipelineState) -> PipelineState:
        """Write ``{"image": ..., "tags": [...]}`` next to the build."""
        if not state.should_continue:
            log.info("Skipping write of image file information.")
            return state

        image_file = self.request.image_file
        log.info(f"Writing image file to '{image_file}'.")
        try:
            write_json_file(
                image_file, {"image": self.final_image, "tags": state.info.tag}
            )
        except OSError as e:
            log.error(f"Failed to write image file to '{image_file}' with error: {e}")
            raise ImageFileWriteFailure(
                f"Failed to write image file to '{image_file}': {e}",
                image=self.final_image,
            ) from e

        log.info(f"Image file written to '{image_file}' successfully.")
        return state
