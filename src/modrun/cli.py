"""modrun command-line interface."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from . import __version__
from .config import Config, ConfigError, load_config
from .errors import ModrunError
from .logging import configure_logging
from .runtime import Runtime, build_runtime
from .types import Bindings

app = typer.Typer(help="Load registry-resolved modules by identifier.")
LOGGER = logging.getLogger(__name__)


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None


@app.callback()
def _modrun(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to modrun config (env MODRUN_CONFIG or ~/.config/modrun/config.yaml).",
        ),
    ] = None,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(config_path=resolved)


@app.command()
def version() -> None:
    """Print the installed modrun version."""

    typer.echo(__version__)


@app.command()
def packages(ctx: typer.Context) -> None:
    """List the configured package registry."""

    config = _load_environment(_state(ctx))
    typer.echo(f"Root: {config.root}")
    if not config.packages:
        typer.echo("No packages configured.")
        return
    for prefix, package in sorted(config.packages.items()):
        details = [f"path={package.path}"]
        if package.main:
            details.append(f"main={package.main}")
        if package.src_dir:
            details.append(f"src_dir={package.src_dir}")
        if package.dist_dir:
            details.append(f"dist_dir={package.dist_dir}")
        typer.echo(f"  {prefix or '<root>'}: {' '.join(details)}")


@app.command()
def resolve(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(..., help="Module identifier to resolve.")],
    source: Annotated[
        bool,
        typer.Option("--source", help="Resolve the original-source location instead."),
    ] = False,
) -> None:
    """Print the physical location of a module."""

    runtime = _build(_state(ctx))
    try:
        location = (
            runtime.resolve_source(identifier) if source else runtime.resolve(identifier)
        )
    except ModrunError as exc:
        _failure(exc)
    typer.echo(location)


@app.command("source")
def show_source(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(..., help="Module identifier to load.")],
) -> None:
    """Print the source text of a module."""

    runtime = _build(_state(ctx))
    text = _run(runtime.load_source(identifier))
    typer.echo(text, nl=not text.endswith("\n"))


@app.command()
def load(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(..., help="Module identifier to load.")],
) -> None:
    """Load a module and list the names it exports."""

    runtime = _build(_state(ctx))
    bindings = _run(runtime.load_module(identifier))
    typer.echo(f"Module: {identifier}")
    typer.echo(f"Strategy: {runtime.dispatcher.strategy.value}")
    _echo_exports(bindings)


@app.command()
def run(
    ctx: typer.Context,
    script: Annotated[Path, typer.Argument(..., help="File whose text is run as a module body.")],
) -> None:
    """Invoke a file directly as a module body."""

    runtime = _build(_state(ctx))
    path = script.expanduser()
    if not path.is_file():
        typer.secho(f"File not found: {path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None
    bindings = _run(runtime.invoke_code(path.read_text(encoding="utf-8")))
    _echo_exports(bindings)


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _load_environment(state: CLIState) -> Config:
    try:
        config = load_config(state.config_path)
        configure_logging(config.logging)
    except ConfigError as exc:
        _config_failure(exc)
    return config


def _build(state: CLIState) -> Runtime:
    return build_runtime(_load_environment(state))


def _run(awaitable: Any) -> Any:
    try:
        return asyncio.run(awaitable)
    except ModrunError as exc:
        _failure(exc)
    except Exception as exc:
        LOGGER.debug("Module evaluation failed", exc_info=True)
        _failure(exc)


def _echo_exports(bindings: Bindings) -> None:
    names = _exported_names(bindings)
    if names is None:
        typer.echo(f"Exports: {bindings!r}")
        return
    typer.echo("Exports:")
    for name in names:
        typer.echo(f"  - {name}")


def _exported_names(bindings: Bindings) -> list[str] | None:
    if isinstance(bindings, dict):
        return sorted(str(key) for key in bindings)
    try:
        namespace = vars(bindings)
    except TypeError:
        return None
    return sorted(name for name in namespace if not name.startswith("__"))


def _failure(exc: BaseException) -> NoReturn:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1) from exc


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


__all__ = ["app"]
