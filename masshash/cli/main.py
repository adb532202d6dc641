"""MassHash CLI - Main application entry point.

Commands:
    masshash scan ROOT      Hash every file under ROOT and report groups
    masshash verify ROOT M  Check ROOT against a JSON manifest {path: hash}
    masshash version        Show version

Every command loads configuration (masshash.yaml, MASSHASH_* variables),
lets its own options override it, and renders MassHash errors as panels
with "Why it happened" and "How to fix" sections.
"""

from __future__ import annotations

import json
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer

from masshash.cli.console import (
    ErrorRenderer,
    get_console,
    render_index,
    set_verbose_mode,
    success,
    tip,
)
from masshash.core.config import HashingConfig, MassHashConfig
from masshash.core.config_loaders import load_config
from masshash.core.exceptions import ConfigurationError
from masshash.core.logging import configure_logging, get_logger
from masshash.core.pipeline import ParallelHasher, relativize, verify_index
from masshash.core.pipeline.index import HashIndex

logger = get_logger(__name__)


def _handle_cli_error(e: Exception, operation_name: str, show_debug: bool) -> None:
    """
    Render a failed command for the user.

    Args:
        e: The exception that occurred
        operation_name: Human-readable operation name
        show_debug: Whether to show the traceback
    """
    ErrorRenderer.render(
        e,
        context=f"While running {operation_name}",
        show_traceback=show_debug,
    )
    logger.debug(
        "Command failed",
        operation=operation_name,
        error=f"{type(e).__name__}: {e}",
    )


def safe_cli_command(
    operation_name: str,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to wrap CLI commands with user-friendly error handling.

    Any exception becomes an error panel and exit code 1.

    Args:
        operation_name: Human-readable operation name for error context
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except typer.Exit:
                raise
            except Exception as e:
                _handle_cli_error(e, operation_name, kwargs.get("debug", False))
                raise typer.Exit(code=1)

        return wrapper

    return decorator


# Create main Typer application
app = typer.Typer(
    name="masshash",
    help="Parallel content hashing and duplicate detection",
    add_completion=False,
    pretty_exceptions_enable=False,
)


def _setup(
    config_path: Optional[Path], debug: bool, quiet: bool = False
) -> MassHashConfig:
    """
    Load configuration and configure logging for one command.

    ``quiet`` raises the console log level to WARNING (unless debugging),
    for commands whose stdout is machine readable.
    """
    set_verbose_mode(debug)
    config = load_config(config_path)

    level = "DEBUG" if debug else config.logging.level
    if quiet and not debug and level in ("DEBUG", "INFO"):
        level = "WARNING"
    configure_logging(
        level=level,
        log_file=config.logging.file_path,
        console=config.logging.console,
    )
    return config


def _with_overrides(
    config: MassHashConfig,
    workers: Optional[int] = None,
    extensions: Optional[List[str]] = None,
) -> MassHashConfig:
    """Apply command line options on top of the loaded configuration."""
    overrides: Dict[str, Any] = {}
    if workers is not None:
        overrides["workers"] = workers
    if extensions:
        overrides["extensions"] = extensions
    if not overrides:
        return config

    hashing = HashingConfig.model_validate(
        {**config.hashing.model_dump(), **overrides}
    )
    return config.model_copy(update={"hashing": hashing})


def _scan(root: Path, config: MassHashConfig, relative: bool) -> HashIndex:
    """Hash every file below root."""
    callback = relativize(root) if relative else None
    options = config.to_options(
        callback=callback,
        logger=get_logger("masshash.scan").bind(root=root),
    )
    return ParallelHasher(options).hash_files(root.rglob("*"))


def _read_manifest(manifest: Path) -> Dict[str, str]:
    """
    Load a JSON manifest of ``{relative path: hash}``.

    Raises:
        ConfigurationError: If the file is not a JSON object of strings.
    """
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in manifest {manifest}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Manifest {manifest} must be a JSON object")
    for path, hash in data.items():
        if not isinstance(hash, str) or not hash:
            raise ConfigurationError(
                f"Manifest entry {path!r} must map to a non-empty hash string"
            )
    return data


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from masshash import __version__

        typer.echo(f"MassHash {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """MassHash - parallel content hashing and duplicate detection."""


@app.command("scan")
@safe_cli_command("scan")
def scan_command(
    root: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Directory to scan recursively",
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Worker count (default: available CPUs)"
    ),
    ext: Optional[List[str]] = typer.Option(
        None, "--ext", "-e", help="Only hash files with this extension (repeatable)"
    ),
    duplicates_only: bool = typer.Option(
        False, "--duplicates-only", "-d", help="Only report hashes shared by several files"
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print {hash: [paths]} as JSON"
    ),
    relative: bool = typer.Option(
        True, "--relative/--absolute", help="Report paths relative to ROOT"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (YAML)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logs and tracebacks"),
) -> None:
    """Hash every file under ROOT and group paths by identical content."""
    settings = _with_overrides(_setup(config, debug, quiet=as_json), workers, ext)
    index = _scan(root, settings, relative)
    total_files = index.path_count
    total_hashes = len(index)

    if duplicates_only:
        index = index.duplicates()

    if as_json:
        typer.echo(json.dumps(index.to_dict(), indent=2))
        return

    if duplicates_only and not index:
        success(f"No duplicates among {total_files} files")
        return

    render_index(index, title="Duplicate groups" if duplicates_only else "Hash groups")
    success(f"Hashed {total_files} files into {total_hashes} unique hashes")
    if duplicates_only:
        wasted = index.path_count - len(index)
        tip(f"{wasted} files are redundant copies")


@app.command("verify")
@safe_cli_command("verify")
def verify_command(
    root: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Directory to verify",
    ),
    manifest: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        help="JSON manifest mapping relative paths to expected hashes",
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Also fail on files missing from the manifest"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Worker count (default: available CPUs)"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (YAML)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logs and tracebacks"),
) -> None:
    """Check every file under ROOT against a manifest of expected hashes."""
    settings = _with_overrides(_setup(config, debug), workers)
    expected = _read_manifest(manifest)
    index = _scan(root, settings, relative=True)

    checked = verify_index(index, expected, strict=strict)
    success(f"{checked} files match {manifest.name}")


@app.command("version")
def version_command() -> None:
    """Show version."""
    from masshash import __version__

    get_console().print(f"MassHash [bold]{__version__}[/bold]")


def cli_main() -> None:
    """Entry point for console_scripts."""
    app()


if __name__ == "__main__":
    cli_main()
