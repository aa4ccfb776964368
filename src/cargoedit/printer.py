"""User-facing status output.

Commands report progress through the :class:`Printer` protocol so the
editing core never writes to a terminal itself. Two implementations ship
with the package:

- :class:`ShellPrinter` - right-aligned, coloured status lines on stderr via rich
- :class:`LogPrinter` - the same messages routed to :mod:`logging`
"""
from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Protocol, Sequence

from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    from typing import IO

logger = logging.getLogger("cargoedit")

FEATURE_INDENT = " " * 13


class Tone(enum.Enum):
    """Colour hint attached to a status line."""

    ACTION = "bold green"
    WARN = "bold yellow"
    NOTE = "bold cyan"
    DEPRECATED = "bold red"


class Printer(Protocol):
    """Where commands send their status messages."""

    def status(self, verb: str, message: str, tone: Tone = Tone.ACTION) -> None:
        """Print ``{verb:>12} {message}``."""

    def warn(self, message: str) -> None:
        """Print a ``warning:`` line."""

    def note(self, message: str) -> None:
        """Print a ``note:`` line."""

    def deprecated(self, message: str) -> None:
        """Print a deprecation notice."""

    def feature_list(self, activated: Sequence[str], deactivated: Sequence[str]) -> None:
        """Print the ``Features:`` listing of an added dependency."""


class ShellPrinter:
    """Render status lines with rich.

    Parameters
    ----------
    file : IO[str] | None
        Stream to write to; stderr by default.
    color : bool
        Set False to drop all styling.

    Examples
    --------
    >>> printer = ShellPrinter(color=False)
    >>> printer.status("Adding", "serde v1.0.0 to dependencies.")  # doctest: +SKIP
          Adding serde v1.0.0 to dependencies.
    """

    def __init__(self, file: IO[str] | None = None, color: bool = True) -> None:
        self.console = Console(
            file=file,
            stderr=file is None,
            highlight=False,
            no_color=not color,
            soft_wrap=True,
        )

    def _line(self, prefix: str, message: str, tone: Tone) -> None:
        text = Text()
        text.append(prefix, style=tone.value)
        text.append(f" {message}")
        self.console.print(text)

    def status(self, verb: str, message: str, tone: Tone = Tone.ACTION) -> None:
        self._line(f"{verb:>12}", message, tone)

    def warn(self, message: str) -> None:
        self._line("warning:", message, Tone.WARN)

    def note(self, message: str) -> None:
        self._line("note:", message, Tone.NOTE)

    def deprecated(self, message: str) -> None:
        self.console.print(Text(message, style=Tone.DEPRECATED.value))

    def feature_list(self, activated: Sequence[str], deactivated: Sequence[str]) -> None:
        if not activated and not deactivated:
            return
        self.console.print(Text(f"{FEATURE_INDENT}Features:"))
        for marker, features, tone in (("+", activated, Tone.ACTION), ("-", deactivated, Tone.DEPRECATED)):
            for feature in features:
                text = Text(FEATURE_INDENT)
                text.append(marker, style=tone.value)
                text.append(f" {feature}")
                self.console.print(text)


class LogPrinter:
    """Send status messages to a logger instead of a terminal."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def status(self, verb: str, message: str, tone: Tone = Tone.ACTION) -> None:
        level = logging.WARNING if tone is Tone.WARN else logging.INFO
        self.log.log(level, "%12s %s", verb, message)

    def warn(self, message: str) -> None:
        self.log.warning("warning: %s", message)

    def note(self, message: str) -> None:
        self.log.info("note: %s", message)

    def deprecated(self, message: str) -> None:
        self.log.warning(message)

    def feature_list(self, activated: Sequence[str], deactivated: Sequence[str]) -> None:
        for feature in activated:
            self.log.info("%s+ %s", FEATURE_INDENT, feature)
        for feature in deactivated:
            self.log.info("%s- %s", FEATURE_INDENT, feature)
