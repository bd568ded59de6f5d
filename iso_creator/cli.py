"""Thin CLI wrapper for iso_creator.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from iso_creator import __version__
from iso_creator.config import Settings, get_settings, print_settings_json
from iso_creator.types import BuildMode, BuildStatus, MessageType

app = typer.Typer(
    name="iso-creator",
    help="Linux ISO Creator - build custom live images for Linux distributions",
    no_args_is_help=True,
)
console = Console()


def _print_json(data: Any) -> None:
    console.print(
        json.dumps(data, indent=2), soft_wrap=True, markup=False, highlight=False
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"iso-creator version {__version__}")
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
) -> None:
    """Linux ISO Creator - build custom live images for Linux distributions."""


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
        console.print(print_settings_json(settings), soft_wrap=True, markup=False)
        return

    work_dir_display = str(settings.work_dir) if settings.work_dir else "(system default)"
    storage_display = settings.storage_url or f"(local) {settings.artifacts_dir}"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Work directory:      {work_dir_display}")
    console.print(f"  Artifacts directory: {settings.artifacts_dir}")
    console.print(f"  Keep build trees:    {settings.keep_build_dir}")
    console.print()
    console.print("[bold]Storage:[/bold]")
    console.print(f"  Endpoint:            {storage_display}")
    console.print(f"  Public URL:          {settings.storage_public_url or '(none)'}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Max builds:          {settings.max_concurrent_builds}")
    console.print(f"  Status poll:         {settings.status_poll_interval}s")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Tool timeout:        {settings.tool_timeout}")
    console.print(f"  Upload timeout:      {settings.upload_timeout}")


@app.command()
def distros(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List built-in distribution templates."""
    from iso_creator.catalog.distros import list_distros

    templates = list_distros()
    if json_output:
        _print_json([t.model_dump(mode="json") for t in templates])
        return

    table = Table(title="Distributions")
    table.add_column("ID", style="green")
    table.add_column("Name")
    table.add_column("Family")
    table.add_column("Package manager")
    table.add_column("Supported")
    for t in templates:
        table.add_row(
            t.id,
            t.name,
            t.category.value,
            t.package_manager or "-",
            "yes" if t.supported else "[red]no[/red]",
        )
    console.print(table)


@app.command()
def overlays(
    manager: Annotated[
        str,
        typer.Option("--manager", "-m", help="Package manager (apt, dnf, yum, pacman)"),
    ] = "apt",
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List software overlays and their packages for a package manager."""
    from iso_creator.catalog.overlays import OVERLAY_PACKAGES, overlay_packages

    if manager not in OVERLAY_PACKAGES:
        console.print(f"[red]Unknown package manager: {manager}[/red]")
        console.print(f"Valid values: {', '.join(sorted(OVERLAY_PACKAGES))}")
        raise typer.Exit(code=1)

    catalog = {
        overlay: overlay_packages(overlay, manager) or []
        for overlay in sorted(OVERLAY_PACKAGES[manager])
    }
    if json_output:
        _print_json(catalog)
        return

    console.print(f"[bold]Overlays for {manager}:[/bold]")
    console.print()
    for overlay, packages in catalog.items():
        display = ", ".join(packages) if packages else "[yellow](external script)[/yellow]"
        console.print(f"  [green]{overlay}[/green]: {display}")


@app.command()
def detect(
    source: Annotated[
        str,
        typer.Argument(help="File with lspci-style output, or '-' for stdin"),
    ] = "-",
    mode: Annotated[
        BuildMode,
        typer.Option("--mode", help="Build mode used for the kernel config"),
    ] = BuildMode.DESKTOP,
    kernel_config: Annotated[
        bool,
        typer.Option("--kernel-config", help="Print the kernel config fragment"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Recommend kernel modules for hardware enumeration output."""
    from iso_creator.hardware.classifier import classify_modules, parse_devices
    from iso_creator.hardware.kernel_config import generate_kernel_config

    if source == "-":
        raw_text = sys.stdin.read()
    else:
        try:
            raw_text = Path(source).read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Cannot read {source}: {e}[/red]")
            raise typer.Exit(code=1) from None

    devices = parse_devices(raw_text)
    modules = classify_modules(devices)

    if json_output:
        output: dict[str, Any] = {
            "devices": [asdict(d) for d in devices],
            "modules": [asdict(m) for m in modules],
        }
        if kernel_config:
            output["kernel_config"] = generate_kernel_config(mode, modules)
        _print_json(output)
        return

    if kernel_config:
        console.print(
            generate_kernel_config(mode, modules), end="", markup=False, highlight=False
        )
        return

    console.print(f"[bold]Parsed {len(devices)} device(s)[/bold]")
    if not modules:
        console.print("[yellow]No kernel modules recommended[/yellow]")
        return

    table = Table(title="Kernel modules")
    table.add_column("Module", style="green")
    table.add_column("Enabled")
    table.add_column("Reason")
    for m in modules:
        table.add_row(m.module_name, "yes" if m.enabled else "[red]no[/red]", m.reason)
    console.print(table)


builds_app = typer.Typer(help="Build images")
app.add_typer(builds_app, name="build")


async def _run_build(config_path: Path, settings: Settings, json_output: bool) -> Any:
    from iso_creator.builds.io import load_build_config
    from iso_creator.builds.service import BuildService

    build_config = load_build_config(config_path)
    service = BuildService(settings)
    job = await service.create_build(build_config)
    if not json_output:
        console.print(f"[bold]Build {job.id} queued[/bold]")

    stream = await service.open_status_stream(job.id)
    async for message in stream.stream():
        if json_output:
            continue
        data = message.data
        if message.type is MessageType.LOG_MESSAGE:
            console.print(f"  [{data['level']}] {data['message']}", markup=False)
        elif message.type is MessageType.PROGRESS_UPDATE:
            console.print(f"[blue]Progress: {data['progress']}%[/blue]")
        elif message.type is MessageType.STATUS_UPDATE:
            console.print(f"[bold]Status: {data['status']}[/bold]")
        elif message.type is MessageType.COMPLETED:
            console.print(f"[green]Completed: {data['download_url']}[/green]")
        else:
            console.print(f"Error: {data['error']}", style="red", markup=False)

    await service.drain()
    return await service.get_build(job.id)


@builds_app.command("run")
def build_run(
    config_file: Annotated[
        Path,
        typer.Argument(help="Build configuration file (YAML or JSON)"),
    ],
    keep_build_dir: Annotated[
        bool,
        typer.Option("--keep-build-dir", help="Keep the build tree afterwards"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the final job as JSON"),
    ] = False,
) -> None:
    """Run a build in-process and stream its progress."""
    from pydantic import ValidationError

    settings = get_settings()
    if keep_build_dir:
        settings = settings.model_copy(update={"keep_build_dir": True})

    try:
        job = asyncio.run(_run_build(config_file, settings, json_output))
    except FileNotFoundError:
        console.print(f"[red]File not found: {config_file}[/red]")
        raise typer.Exit(code=1) from None
    except ValidationError as e:
        console.print("[red]Invalid build configuration:[/red]")
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            console.print(f"  {loc}: {error['msg']}", markup=False)
        raise typer.Exit(code=1) from None
    except (ValueError, yaml.YAMLError) as e:
        console.print(str(e), style="red", markup=False)
        raise typer.Exit(code=1) from None

    if json_output:
        _print_json(job.model_dump(mode="json"))

    if job.status is not BuildStatus.COMPLETED:
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Annotated[
        str,
        typer.Option("--host", help="Bind address"),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Bind port"),
    ] = 8000,
) -> None:
    """Run the HTTP and WebSocket server."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "web.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
