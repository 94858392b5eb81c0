"""Normalized record schema and the snapshot that holds all three collections.

Records are kept in their persisted shape: plain dicts with camelCase keys
and ISO-8601 timestamp strings. The pydantic models below describe that
shape and are what the validators check records against; the store itself
moves plain dicts around so a malformed record can still be carried up to
the integrity check and rejected there.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Persisted slot names
SLOT_BOARDS = "boards"
SLOT_COLUMNS = "columns"
SLOT_CARDS = "cards"
SLOT_VERSION = "version"

COLLECTION_SLOTS = (SLOT_BOARDS, SLOT_COLUMNS, SLOT_CARDS)

Record = dict[str, Any]


class _RecordSchema(BaseModel):
    """Base for persisted record shapes (strict types, camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, strict=True)


class BoardMetadata(_RecordSchema):
    """A board without its children; columns are referenced by id."""

    id: str
    title: str
    description: str
    column_ids: list[str]
    created_at: str
    updated_at: str


class ColumnData(_RecordSchema):
    """A column; owned by one board, references its cards by id."""

    id: str
    title: str
    board_id: str
    card_ids: list[str]
    order: int
    created_at: str
    updated_at: str
    collapsed: bool = False


class CardData(_RecordSchema):
    """A card; owned by one column of one board."""

    id: str
    title: str
    description: str
    labels: list[str]
    assignee: str
    column_id: str
    board_id: str
    order: int
    created_at: str
    updated_at: str


@dataclass
class Snapshot:
    """The three normalized collections, each keyed by record id."""

    boards: dict[str, Record] = field(default_factory=dict)
    columns: dict[str, Record] = field(default_factory=dict)
    cards: dict[str, Record] = field(default_factory=dict)

    def copy(self) -> Snapshot:
        """Return a deep copy that shares no records with this snapshot."""
        return copy.deepcopy(self)

    def collections(self) -> dict[str, dict[str, Record]]:
        """Collections keyed by their slot name."""
        return {
            SLOT_BOARDS: self.boards,
            SLOT_COLUMNS: self.columns,
            SLOT_CARDS: self.cards,
        }

    def is_empty(self) -> bool:
        return not (self.boards or self.columns or self.cards)

    def to_slots(self) -> dict[str, list[Record]]:
        """Convert to the persisted layout: one plain list per collection."""
        return {name: list(records.values()) for name, records in self.collections().items()}

    @classmethod
    def from_records(
        cls,
        boards: list[Record] | None = None,
        columns: list[Record] | None = None,
        cards: list[Record] | None = None,
    ) -> Snapshot:
        """Build a snapshot from record lists, keyed by each record's id."""
        return cls(
            boards={r["id"]: r for r in boards or []},
            columns={r["id"]: r for r in columns or []},
            cards={r["id"]: r for r in cards or []},
        )


def new_board_record(board_id: str, title: str, description: str, now: str) -> Record:
    """Build a board record with an empty column sequence."""
    return {
        "id": board_id,
        "title": title,
        "description": description,
        "columnIds": [],
        "createdAt": now,
        "updatedAt": now,
    }


def new_column_record(column_id: str, title: str, board_id: str, order: int, now: str) -> Record:
    """Build a column record with an empty card sequence."""
    return {
        "id": column_id,
        "title": title,
        "boardId": board_id,
        "cardIds": [],
        "order": order,
        "collapsed": False,
        "createdAt": now,
        "updatedAt": now,
    }


def new_card_record(
    card_id: str,
    title: str,
    column_id: str,
    board_id: str,
    order: int,
    now: str,
    description: str = "",
    labels: list[str] | None = None,
    assignee: str = "",
) -> Record:
    """Build a card record."""
    return {
        "id": card_id,
        "title": title,
        "description": description,
        "labels": list(labels or []),
        "assignee": assignee,
        "columnId": column_id,
        "boardId": board_id,
        "order": order,
        "createdAt": now,
        "updatedAt": now,
    }
