"""Helpers for cleaning user-supplied text."""

import uuid


def new_id() -> str:
    """Generate a new record id."""
    return str(uuid.uuid4())


def truncate(value: str | None, max_length: int) -> str:
    """Cut a string to at most max_length characters. None becomes ''."""
    if not value:
        return ""
    return value[:max_length]


def clean_labels(labels: list[str] | None, max_labels: int, max_length: int) -> list[str]:
    """
    Normalize a label list.

    Blank entries are dropped and each label is stripped and cut to
    max_length. Duplicates are kept, but the list is capped at max_labels.
    """
    if not labels or max_labels <= 0:
        return []
    cleaned: list[str] = []
    for label in labels:
        if not isinstance(label, str):
            continue
        label = label.strip()[:max_length]
        if label:
            cleaned.append(label)
        if len(cleaned) >= max_labels:
            break
    return cleaned
