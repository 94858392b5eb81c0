"""Maintenance commands run from the command line."""

import logging

from ..errors import BoardStoreError
from ..services import CURRENT_VERSION, BoardStore
from .output import error, header, info, muted, success

logger = logging.getLogger(__name__)


async def run_list(store: BoardStore) -> int:
    """Print every board as a tree of columns and cards."""
    try:
        boards = await store.get_boards()
    except BoardStoreError as e:
        error(str(e))
        return 1

    if not boards:
        info("No boards")
        return 0

    for board in boards:
        header(f"{board.title} [{board.id}]")
        if board.description:
            muted(board.description, indent=1)
        for column in board.columns:
            suffix = " (collapsed)" if column.collapsed else ""
            info(f"{column.title} ({len(column.cards)}){suffix}", indent=1)
            for card in column.cards:
                labels = f" [{', '.join(card.labels)}]" if card.labels else ""
                assignee = f" @{card.assignee}" if card.assignee else ""
                muted(f"- {card.title}{labels}{assignee}", indent=2)
    return 0


async def run_migrate(store: BoardStore) -> int:
    """Bring stored data to the current schema version."""
    try:
        await store.initialize()
        version = await store.get_version()
    except BoardStoreError as e:
        error(f"Migration failed: {e}")
        return 1
    success(f"Store is at version {version} (current {CURRENT_VERSION})")
    return 0


async def run_reset(store: BoardStore) -> int:
    """Delete all boards, columns and cards."""
    try:
        await store.clear()
    except BoardStoreError as e:
        error(f"Reset failed: {e}")
        return 1
    logger.info("All data cleared")
    success("All boards, columns and cards deleted")
    return 0
