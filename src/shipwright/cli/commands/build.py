"""shipwright build command - build, flatten, tag and push an image."""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ... import config
from ...build.info import BuildInfoResolver, GitBuildInfoResolver
from ...build.models import BuildRequest, ImageIdentity
from ...build.pipeline import ImagePipeline, PipelineResult, PipelineStatus
from ...core.exceptions import ShipwrightError
from ...logger import set_verbose

console = Console()


def build_command(
    repo: str = typer.Option(..., "--repo", "-r", help="The repository to build for"),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="The name of the image (default: working directory name)"
    ),
    working_path: Optional[Path] = typer.Option(
        None, "--working-path", "-p", help="The working path for the build"
    ),
    docker_file: Optional[Path] = typer.Option(
        None, "--docker-file", "-d", help="The Dockerfile for the image build"
    ),
    name_prefix: str = typer.Option(
        "", "--name-prefix", help="Optional prefix for the image name"
    ),
    name_postfix: str = typer.Option(
        "", "--name-postfix", help="Optional postfix for the image name"
    ),
    tags: Optional[List[str]] = typer.Option(
        None, "--tags", "-t", help="Tag specifications (repeatable or comma separated)"
    ),
    build_branches: str = typer.Option(
        ",".join(config.DEFAULT_BUILD_BRANCHES),
        "--build-branches",
        help="Branches that get the default tag specs",
    ),
    always_build: bool = typer.Option(
        False, "--always-build", help="Apply the default tag specs on any branch"
    ),
    registry: Optional[str] = typer.Option(
        None, "--registry", help="The image registry to build for"
    ),
    output: str = typer.Option(
        config.DEFAULT_OUTPUT_FILE, "--output", "-o", help="Where to write image metadata"
    ),
    build_args: Optional[List[str]] = typer.Option(
        None, "--build-arg", help="Build argument KEY=VALUE (repeatable)"
    ),
    skip_prs: bool = typer.Option(
        True, "--skip-prs/--no-skip-prs", "-s", help="Skip tag and push for CI pull requests"
    ),
    lts_only: bool = typer.Option(
        True, "--lts-only/--no-lts-only", help="Only build on a final Python release"
    ),
    no_push: bool = typer.Option(
        False, "--no-push", help="Prevent pushing the image to the registry"
    ),
    flatten: bool = typer.Option(
        False, "--flatten", help="Flatten the built image into a single layer"
    ),
    cache_from: Optional[str] = typer.Option(
        None, "--cache-from", help="Image to pull and use as build cache"
    ),
    cache_from_latest: bool = typer.Option(
        False, "--cache-from-latest", help="Use the image's own latest tag as build cache"
    ),
    indicate_progress: bool = typer.Option(
        False, "--progress", help="Print progress dots while building"
    ),
    sudo: bool = typer.Option(
        False, "--sudo", help="Run docker commands with sudo"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Include docker output"
    ),
):
    """
    Build an image and publish it according to the options.

    Examples:
      shipwright build -r myorg                     # Build ./Dockerfile as myorg/<dir>
      shipwright build -r myorg -t lt -t v_c_s      # Explicit tag specs
      shipwright build -r myorg --flatten --no-push # Single-layer local image
    """
    set_verbose(verbose)

    try:
        request = create_build_request(
            repo=repo,
            name=name,
            working_path=working_path,
            docker_file=docker_file,
            name_prefix=name_prefix,
            name_postfix=name_postfix,
            tags=tags,
            build_branches=build_branches,
            always_build=always_build,
            registry=registry,
            output=output,
            build_args=build_args,
            skip_prs=skip_prs,
            lts_only=lts_only,
            no_push=no_push,
            flatten=flatten,
            cache_from=cache_from,
            cache_from_latest=cache_from_latest,
            indicate_progress=indicate_progress,
            sudo=sudo or config.env_flag("SHIPWRIGHT_SUDO"),
            verbose=verbose,
        )
    except (ShipwrightError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(config.EXIT_COMMAND_FAILED)

    _display_build_config(request)

    result = asyncio.run(ImagePipeline(request).run())
    _display_build_result(result)
    raise typer.Exit(result.exit_code)


def create_build_request(
    repo: str,
    working_path: Optional[Path] = None,
    name: Optional[str] = None,
    tags: Optional[List[str]] = None,
    build_branches: str = "",
    registry: Optional[str] = None,
    build_args: Optional[List[str]] = None,
    resolver: Optional[BuildInfoResolver] = None,
    **options,
) -> BuildRequest:
    """
    Fill in defaults and resolve the branch/CI context for a build.

    Args:
        repo: Repository (namespace) for the image
        working_path: Build context directory (default: cwd)
        name: Image name (default: working directory name)
        tags: Tag specifications
        build_branches: Comma separated branches that get default tag specs
        registry: Registry host (default: SHIPWRIGHT_REGISTRY or Docker Hub)
        build_args: KEY=VALUE build arguments
        resolver: Build info resolver used for the default context
        **options: Remaining BuildRequest fields

    Returns:
        Validated BuildRequest
    """
    working = Path(working_path or config.get_default_working_path()).resolve()
    if not working.is_dir():
        raise ValueError(f"working path '{working}' is not a directory")

    resolver = resolver or GitBuildInfoResolver()
    context = asyncio.run(resolver.get_context(working))

    return BuildRequest(
        repo=repo,
        name=name or config.get_default_name(working),
        working_path=working,
        tags=config.split_list(tags),
        build_branches=config.split_list([build_branches]),
        registry=registry or config.get_env_registry() or config.DEFAULT_REGISTRY,
        build_args=list(build_args or []),
        default_info=context,
        **options,
    )


def _display_build_config(request: BuildRequest):
    """Display build configuration."""
    identity = ImageIdentity.from_request(request)
    console.print(
        Panel(
            f"[bold]Image:[/bold] {identity.final}\n"
            f"[bold]Directory:[/bold] {request.working_path}\n"
            f"[bold]Dockerfile:[/bold] {request.build_file}\n"
            f"[bold]Branch:[/bold] {request.default_info.branch or 'unknown'}\n"
            f"[bold]Tag specs:[/bold] {', '.join(request.tag_specs()) or 'none'}\n"
            f"[bold]Flatten:[/bold] {request.flatten}\n"
            f"[bold]Push:[/bold] {not request.no_push}",
            title="shipwright Build Configuration",
            expand=False,
        )
    )


def _display_build_result(result: PipelineResult):
    """Display the outcome of the pipeline run."""
    if result.status == PipelineStatus.FAILED:
        console.print(f"\n[red]Build failed:[/red] {result.error}")
        return

    if result.status == PipelineStatus.SKIPPED:
        console.print("[yellow]Build skipped[/yellow]")
        return

    summary = Table(show_header=False, box=None)
    summary.add_column("Item", style="bold")
    summary.add_column("Value", style="cyan")

    info = result.info
    summary.add_row("Image", result.state.image_name if result.state else "")
    summary.add_row("Tags", ", ".join(info.tag) if info and info.continue_ else "none")

    console.print("\n")
    console.print(summary)
    console.print(
        Panel(
            "Image built successfully!",
            title="✓ Build Complete",
            expand=False,
            border_style="green",
        )
    )
