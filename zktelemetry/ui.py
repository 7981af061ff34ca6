"""Shared console, terminal I/O, and display helpers for zktelemetry."""
from __future__ import annotations

import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.theme import Theme

# ── Theme ──
ZKTELEMETRY_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "yellow",
    "error": "bold red",
    "muted": "dim",
})

console = Console(theme=ZKTELEMETRY_THEME)

# ── Status Icons ──
ICONS = {
    "ok": "[green]✔[/green]",     # checkmark
    "error": "[red]✘[/red]",      # cross
    "info": "[cyan]•[/cyan]",     # bullet
}


class TerminalIO:
    """Standard input/output as an injectable collaborator.

    The consent prompt writes through a rich console bound to ``stdout``
    and reads one line from ``stdin``. Tests pass ``io.StringIO`` objects.
    """

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._console = Console(file=self._stdout, markup=False, highlight=False)

    def is_tty(self) -> bool:
        """True when both streams are attached to a terminal."""
        return _isatty(self._stdin) and _isatty(self._stdout)

    def write(self, text: str = "") -> None:
        self._console.print(text)

    def readline(self) -> Optional[str]:
        """Read one line, or None at EOF or when the stream cannot be read."""
        try:
            line = self._stdin.readline()
        except (OSError, ValueError):
            return None
        if not line:
            return None
        return line


def _isatty(stream) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def disclosure_panel(title: str, lines: list[str], enabled: bool) -> None:
    """Display a bordered panel coloured by consent state."""
    border = "green" if enabled else "red"
    console.print(Panel("\n".join(lines), title=title, border_style=border))
