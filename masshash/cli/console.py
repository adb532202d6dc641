"""Console output helpers.

Provides consistent formatting for CLI output, including ErrorRenderer for
helpful error panels and the hash group table.
"""

from __future__ import annotations

import traceback
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from masshash.core.exceptions import MassHashError, get_root_cause
from masshash.core.pipeline.index import HashIndex

# Shared console instances (stdout for results, stderr for errors)
_console: Console | None = None
_error_console: Console | None = None

# Verbose mode flag (set by CLI --debug flag)
_verbose_mode: bool = False


def get_console() -> Console:
    """Get shared console instance (lazy-loaded)."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_error_console() -> Console:
    """Get shared stderr console, so errors never mix with piped output."""
    global _error_console
    if _error_console is None:
        _error_console = Console(stderr=True)
    return _error_console


def set_verbose_mode(enabled: bool) -> None:
    """Enable or disable full tracebacks in error output."""
    global _verbose_mode
    _verbose_mode = enabled


def is_verbose_mode() -> bool:
    return _verbose_mode


def success(message: str) -> None:
    get_console().print(f"[green]✓[/green] {message}")


def tip(message: str) -> None:
    """Display a dim tip line."""
    get_console().print(f"  [dim]Tip: {message}[/dim]")


def render_index(index: HashIndex, title: str = "Hash groups") -> None:
    """Print an index as a table: one row per hash, paths stacked."""
    table = Table(title=title, show_lines=True)
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("Files", justify="right")
    table.add_column("Paths", overflow="fold")

    for identity, paths in index.items():
        table.add_row(
            identity.hash,
            str(len(paths)),
            Text("\n".join(str(path) for path in paths)),
        )
    get_console().print(table)


class ErrorRenderer:
    """Renders helpful error messages with "Why" and "How to fix" sections.

    Example
    -------
        try:
            hash_files(paths)
        except MassHashError as e:
            ErrorRenderer.render(e)
            raise SystemExit(1)
    """

    @staticmethod
    def render(
        exc: BaseException,
        context: str = "",
        show_traceback: Optional[bool] = None,
    ) -> None:
        """Render an exception as an error panel.

        Args:
            exc: Exception to render
            context: Optional context message (e.g., "While scanning ./mods")
            show_traceback: Override for verbose mode (None = use global setting)
        """
        if isinstance(exc, MassHashError):
            error_code = exc.error_code
            why = exc.why_it_happened
            how_to_fix = exc.how_to_fix
        else:
            error_code = "MH-ERR-999"
            why = "An unexpected error occurred"
            how_to_fix = ["Run with --debug for the full traceback"]

        root_cause = get_root_cause(exc)
        root_message = (
            f"{type(root_cause).__name__}: {root_cause}" if root_cause is not exc else None
        )

        content = ErrorRenderer._build_error_content(
            message=str(exc),
            context=context,
            why=why,
            how_to_fix=how_to_fix,
            root_message=root_message,
        )
        panel = Panel(
            content,
            title=f"[bold red]Error: {error_code}[/bold red]",
            border_style="red",
            padding=(1, 2),
        )
        console = get_error_console()
        console.print(panel)

        should_show_traceback = (
            show_traceback if show_traceback is not None else is_verbose_mode()
        )
        if should_show_traceback:
            tb_text = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
            console.print("[dim]--- Traceback (--debug mode) ---[/dim]")
            console.print(Text(tb_text, style="dim"))

    @staticmethod
    def _build_error_content(
        message: str,
        context: str,
        why: str,
        how_to_fix: List[str],
        root_message: Optional[str],
    ) -> Text:
        """Build the error panel content."""
        text = Text()

        if context:
            text.append(f"{context}\n\n", style="dim")

        text.append(message, style="bold red")
        text.append("\n\n")

        if root_message and root_message != message:
            text.append("Root cause: ", style="bold yellow")
            text.append(root_message, style="yellow")
            text.append("\n\n")

        text.append("Why it happened:\n", style="bold cyan")
        text.append(f"  {why}\n", style="cyan")
        text.append("\n")

        text.append("How to fix:\n", style="bold green")
        for fix in how_to_fix:
            text.append(f"  - {fix}\n", style="green")

        return text
