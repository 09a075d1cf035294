"""Main CLI entry point for shipwright."""

import typer
from importlib import metadata
from rich.console import Console

from .commands import build


def get_version() -> str:
    """Get the package version from metadata."""
    try:
        return metadata.version("shipwright")
    except metadata.PackageNotFoundError:
        return "unknown"


console = Console()

# command: shipwright
app = typer.Typer(
    name="shipwright",
    help="Build, flatten, tag and push container images from CI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# command: shipwright <command>
app.command("build")(build.build_command)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
):
    """shipwright - build and publish container images from CI."""
    if version:
        console.print(f"shipwright v{get_version()}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


if __name__ == "__main__":
    app()
