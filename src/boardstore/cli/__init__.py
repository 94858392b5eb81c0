"""Command line helpers."""

from .commands import run_list, run_migrate, run_reset

__all__ = ["run_list", "run_migrate", "run_reset"]
