"""Colored terminal output for the maintenance commands."""

import sys

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
DIM = "\033[2m"
RESET = "\033[0m"
CHECK = "\u2713"  # ✓
BULLET = "\u2022"  # •
CROSS = "\u2717"  # ✗


def _supports_color() -> bool:
    """Check if stdout is a terminal."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _colorize(text: str, color: str) -> str:
    if _supports_color():
        return f"{color}{text}{RESET}"
    return text


def success(message: str) -> None:
    """Print success message with green checkmark."""
    print(f"{_colorize(CHECK, GREEN)} {message}")


def info(message: str, indent: int = 0) -> None:
    """Print info message with yellow bullet, optionally indented."""
    print(f"{'  ' * indent}{_colorize(BULLET, YELLOW)} {message}")


def header(message: str) -> None:
    """Print header message in blue."""
    print(_colorize(message, BLUE))


def muted(message: str, indent: int = 0) -> None:
    """Print secondary detail, dimmed."""
    print(f"{'  ' * indent}{_colorize(message, DIM)}")


def error(message: str) -> None:
    """Print error message with red cross to stderr."""
    print(f"{_colorize(CROSS, RED)} {message}", file=sys.stderr)
