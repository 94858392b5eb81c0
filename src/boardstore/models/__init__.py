"""Data models."""

from .records import (
    COLLECTION_SLOTS,
    SLOT_BOARDS,
    SLOT_CARDS,
    SLOT_COLUMNS,
    SLOT_VERSION,
    BoardMetadata,
    CardData,
    ColumnData,
    Record,
    Snapshot,
)
from .validators import is_board_metadata, is_card_data, is_column_data
from .views import Board, Card, Column

__all__ = [
    "COLLECTION_SLOTS",
    "SLOT_BOARDS",
    "SLOT_CARDS",
    "SLOT_COLUMNS",
    "SLOT_VERSION",
    "Board",
    "BoardMetadata",
    "Card",
    "CardData",
    "Column",
    "ColumnData",
    "Record",
    "Snapshot",
    "is_board_metadata",
    "is_card_data",
    "is_column_data",
]
