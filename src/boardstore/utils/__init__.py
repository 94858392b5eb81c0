"""Utility helpers."""

from .datetime import from_iso, now_iso, now_utc, to_iso
from .text import clean_labels, new_id, truncate

__all__ = [
    "clean_labels",
    "from_iso",
    "new_id",
    "now_iso",
    "now_utc",
    "to_iso",
    "truncate",
]
