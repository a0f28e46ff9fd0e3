"""Thin CLI wrapper for container_build.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console

from container_build import __version__
from container_build.config import get_settings, print_settings_json

app = typer.Typer(
    name="container-build",
    help="Container Build - build container images with docker, buildx or podman",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"container-build version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """Container Build - build container images with docker, buildx or podman."""
    from container_build.log import configure_logging

    configure_logging((log_level or get_settings().log_level).upper())


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
        return

    tmp_dir_display = str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
    output_display = str(settings.output_file) if settings.output_file else "(none)"
    timeout_display = (
        str(settings.build_timeout) if settings.build_timeout else "(unlimited)"
    )
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Engine:[/bold]")
    console.print(f"  Default engine:      {settings.engine}")
    console.print(f"  Metadata generator:  {settings.metadata_entry_point}")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Temp directory:      {tmp_dir_display}")
    console.print(f"  Output file:         {output_display}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Build timeout:       {timeout_display}")


@app.command()
def engines(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List available build engines."""
    from container_build.engines.factory import DEFAULT_PROVIDER, EngineFactory

    providers = EngineFactory.providers()
    if json_output:
        console.print(
            json.dumps({"engines": providers, "default": DEFAULT_PROVIDER.value}, indent=2),
            soft_wrap=True,
        )
        return
    console.print("[bold]Available engines:[/bold]")
    for provider in providers:
        marker = " (default)" if provider == DEFAULT_PROVIDER.value else ""
        console.print(f"  - {provider}{marker}")


def _parse_engine_options(items: list[str] | None) -> dict[str, str]:
    options: dict[str, str] = {}
    for item in items or []:
        key, _, value = item.partition("=")
        if not key:
            raise typer.BadParameter(f"expected KEY[=VALUE], got '{item}'")
        options[key] = value
    return options


@app.command()
def build(
    file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Path to the Dockerfile"),
    ] = None,
    context: Annotated[
        str | None,
        typer.Option("--context", "-c", help="Build context (defaults to the project root)"),
    ] = None,
    tags: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Image tag (can be repeated)"),
    ] = None,
    labels: Annotated[
        list[str] | None,
        typer.Option("--label", help="Image label KEY=VALUE (can be repeated)"),
    ] = None,
    build_args: Annotated[
        list[str] | None,
        typer.Option("--build-arg", help="Build argument KEY=VALUE (can be repeated)"),
    ] = None,
    platforms: Annotated[
        list[str] | None,
        typer.Option("--platform", help="Target platform (can be repeated)"),
    ] = None,
    outputs: Annotated[
        list[str] | None,
        typer.Option("--output", "-o", help="Output destination (can be repeated)"),
    ] = None,
    engine: Annotated[
        str | None,
        typer.Option("--engine", "-e", help="Build engine: docker, buildx or podman"),
    ] = None,
    engine_options: Annotated[
        list[str] | None,
        typer.Option("--engine-opt", help="Engine flag KEY[=VALUE] (can be repeated)"),
    ] = None,
    target: Annotated[
        str | None,
        typer.Option("--target", help="Target build stage"),
    ] = None,
    builder: Annotated[
        str | None,
        typer.Option("--builder", help="buildx builder instance"),
    ] = None,
    cache_from: Annotated[
        list[str] | None,
        typer.Option("--cache-from", help="External cache source (can be repeated)"),
    ] = None,
    cache_to: Annotated[
        list[str] | None,
        typer.Option("--cache-to", help="Cache export destination (can be repeated)"),
    ] = None,
    push: Annotated[
        bool,
        typer.Option("--push", help="Push the image after building"),
    ] = False,
    load: Annotated[
        bool,
        typer.Option("--load", help="Load the image into the local image store"),
    ] = False,
    pull: Annotated[
        bool,
        typer.Option("--pull", help="Always attempt to pull base images"),
    ] = False,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Do not use cache when building"),
    ] = False,
    options_file: Annotated[
        Path | None,
        typer.Option("--options-file", help="YAML/JSON file with build options"),
    ] = None,
    project: Annotated[
        str | None,
        typer.Option("--project", "-p", help="Project name (scopes env overrides)"),
    ] = None,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", help="Project directory relative to the workspace"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build a container image.

    Flags override values read from --options-file. Outputs (image id,
    digest, metadata) are printed and, when CONTAINER_BUILD_OUTPUT_FILE is
    set, appended to that file.
    """
    from container_build.context import ProjectContext
    from container_build.errors import ContainerBuildError
    from container_build.io import load_options
    from container_build.orchestrator import run
    from container_build.outputs import FileOutputs
    from container_build.schema import BuildOptions

    overrides: dict[str, Any] = {
        "file": file,
        "context": context,
        "tags": tags,
        "labels": labels,
        "build_args": build_args,
        "platforms": platforms,
        "outputs": outputs,
        "engine": engine,
        "engine_options": _parse_engine_options(engine_options) or None,
        "target": target,
        "builder": builder,
        "cache_from": cache_from,
        "cache_to": cache_to,
        "push": push or None,
        "load": load or None,
        "pull": pull or None,
        "no_cache": no_cache or None,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    try:
        if options_file is not None:
            options = load_options(options_file, overrides)
        else:
            options = BuildOptions.model_validate(overrides)
    except ValidationError as e:
        err_console.print(f"[red]Invalid build options:[/red]\n{e}")
        raise typer.Exit(code=1) from None
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Cannot read options file: {e}[/red]")
        raise typer.Exit(code=1) from None

    settings = get_settings()
    reporter = FileOutputs(settings.output_file) if settings.output_file else None

    try:
        result = run(
            options,
            ProjectContext.from_cwd(project_name=project, project_root=project_root),
            settings=settings,
            reporter=reporter,
        )
    except ContainerBuildError as e:
        if json_output:
            console.print(
                json.dumps({"success": False, "code": e.code, "message": str(e)}, indent=2),
                soft_wrap=True,
            )
        else:
            err_console.print(f"[red]Build failed ({e.code}): {e}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(
            json.dumps({"success": result.success, "outputs": result.outputs}, indent=2),
            soft_wrap=True,
        )
        return

    console.print("[green]Build succeeded[/green]")
    for key, value in result.outputs.items():
        console.print(f"  {key}: {value}", markup=False, highlight=False)


__all__ = ["app"]
