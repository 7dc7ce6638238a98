"""Terminal output helpers for the CLI plus CI workflow annotations."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def _supports_color(stream: TextIO | None = None) -> bool:
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return True


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    """Apply color to text if terminal supports it."""
    if not _supports_color(stream):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def print_error(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    print(colorize("✗", Colors.RED, bold=True, stream=stream) + " " + message, file=stream)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(
        colorize("⚠", Colors.YELLOW, bold=True, stream=stream) + " " + message,
        file=stream,
    )


def print_annotation(level: str, message: str, stream: TextIO | None = None) -> None:
    """Emit a workflow command such as ``::warning::msg``.

    CI runners that understand the syntax surface it on the run page; other
    environments just see the line in the log.
    """
    stream = stream or sys.stdout
    flat = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::{level}::{flat}", file=stream)
    stream.flush()


def print_summary_box(
    title: str, items: Sequence[tuple[str, str | int]], stream: TextIO | None = None
) -> None:
    """Print a formatted summary box with key-value pairs."""
    stream = stream or sys.stdout
    max_key_len = max((len(k) for k, _ in items), default=0)

    print(colorize(f"\n{title}", Colors.CYAN, bold=True, stream=stream), file=stream)
    print(colorize("─" * 60, Colors.DIM, stream=stream), file=stream)

    for key, value in items:
        key_formatted = key.ljust(max_key_len)
        value_str = str(value)
        if isinstance(value, int) and value > 0:
            value_colored = colorize(value_str, Colors.GREEN, bold=True, stream=stream)
        else:
            value_colored = value_str
        print(f"  {key_formatted}  {value_colored}", file=stream)

    print(colorize("─" * 60, Colors.DIM, stream=stream), file=stream)


def print_operation_status(
    operation: str, status: str, details: str = "", stream: TextIO | None = None
) -> None:
    """Print operation status with appropriate coloring.

    Args:
        operation: Operation name (e.g., "sync", "status")
        status: Status (e.g., "created", "failed", "skipped")
        details: Optional additional details
        stream: Output stream
    """
    stream = stream or sys.stdout

    status_lower = status.lower()
    if status_lower in ("success", "ok", "created", "completed"):
        icon = colorize("✓", Colors.GREEN, bold=True, stream=stream)
        status_colored = colorize(status, Colors.GREEN, stream=stream)
    elif status_lower in ("failed", "error"):
        icon = colorize("✗", Colors.RED, bold=True, stream=stream)
        status_colored = colorize(status, Colors.RED, bold=True, stream=stream)
    elif status_lower.startswith("skipped") or status_lower == "unchanged":
        icon = colorize("○", Colors.YELLOW, stream=stream)
        status_colored = colorize(status, Colors.YELLOW, stream=stream)
    else:
        icon = colorize("•", Colors.BLUE, stream=stream)
        status_colored = status

    operation_colored = colorize(operation, Colors.BOLD, stream=stream)
    message = f"{icon} {operation_colored}: {status_colored}"
    if details:
        message += f" {colorize(f'({details})', Colors.DIM, stream=stream)}"

    print(message, file=stream)


__all__ = [
    "Colors",
    "colorize",
    "print_annotation",
    "print_error",
    "print_operation_status",
    "print_summary_box",
    "print_warning",
]
