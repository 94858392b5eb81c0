"""Schema migrations for persisted board data.

The persisted data carries a version marker. On startup the stored version
is compared with CURRENT_VERSION and the chain of registered migrations is
walked from one to the other. Each migration is a pure function from the
raw stored slots to a normalized Snapshot.

Raw data may arrive in one of several layouts. Decoding tries each known
layout in turn:
- normalized: "boards", "columns" and "cards" are plain lists of records
- nested (legacy): "boards" is a mapping of board id to a board that embeds
  its columns, which embed their cards
Anything else is refused with MigrationError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import MigrationError
from ..models.records import (
    COLLECTION_SLOTS,
    SLOT_BOARDS,
    SLOT_VERSION,
    Record,
    Snapshot,
)
from ..utils import now_iso

if TYPE_CHECKING:
    from ..storage import KeyValueStore
    from .integrity import IntegrityChecker

logger = logging.getLogger(__name__)

CURRENT_VERSION = "1.1.0"
# Version assumed for data written before the marker existed
BASELINE_VERSION = "1.0.0"

MigrationFunction = Callable[[Mapping[str, Any]], Snapshot]
Decoder = Callable[[Mapping[str, Any], str], Snapshot | None]


@dataclass(frozen=True)
class Migration:
    """One step of the migration chain."""

    from_version: str
    to_version: str
    name: str
    migrate: MigrationFunction


# --- Field defaults ---


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) and value else default


def _order(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def _id_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _labels(raw: Mapping[str, Any]) -> list[str]:
    labels = raw.get("labels")
    if labels is None:
        labels = raw.get("tags")
    return _id_list(labels)


# --- Decoders ---


def _decode_normalized(raw: Mapping[str, Any], now: str) -> Snapshot | None:
    """
    Decode the flat layout, defaulting fields added since 1.0.0.

    A missing order is taken from the record's position in its list.
    """
    slots = [raw.get(slot) for slot in COLLECTION_SLOTS]
    if not all(slot is None or isinstance(slot, list) for slot in slots):
        return None
    boards, columns, cards = (slot or [] for slot in slots)

    snapshot = Snapshot()
    for board in boards:
        if not isinstance(board, Mapping) or not all(
            _text(board.get(key)) for key in ("id", "title")
        ):
            logger.warning("Dropping unreadable board during migration: %r", board)
            continue
        snapshot.boards[board["id"]] = {
            "id": board["id"],
            "title": board["title"],
            "description": _text(board.get("description")),
            "columnIds": _id_list(board.get("columnIds")),
            "createdAt": _text(board.get("createdAt"), now),
            "updatedAt": _text(board.get("updatedAt"), now),
        }

    for position, column in enumerate(columns):
        if not isinstance(column, Mapping) or not all(
            _text(column.get(key)) for key in ("id", "title", "boardId")
        ):
            logger.warning("Dropping unreadable column during migration: %r", column)
            continue
        snapshot.columns[column["id"]] = {
            "id": column["id"],
            "title": column["title"],
            "boardId": column["boardId"],
            "cardIds": _id_list(column.get("cardIds")),
            "order": _order(column.get("order"), position),
            "collapsed": column.get("collapsed") is True,
            "createdAt": _text(column.get("createdAt"), now),
            "updatedAt": _text(column.get("updatedAt"), now),
        }

    for position, card in enumerate(cards):
        if not isinstance(card, Mapping) or not all(
            _text(card.get(key)) for key in ("id", "title", "columnId", "boardId")
        ):
            logger.warning("Dropping unreadable card during migration: %r", card)
            continue
        snapshot.cards[card["id"]] = {
            "id": card["id"],
            "title": card["title"],
            "description": _text(card.get("description")),
            "labels": _labels(card),
            "assignee": _text(card.get("assignee")),
            "columnId": card["columnId"],
            "boardId": card["boardId"],
            "order": _order(card.get("order"), position),
            "createdAt": _text(card.get("createdAt"), now),
            "updatedAt": _text(card.get("updatedAt"), now),
        }
    return snapshot


def _decode_nested(raw: Mapping[str, Any], now: str) -> Snapshot | None:
    """
    Decode the legacy nested layout.

    Example input:
        {"boards": {"b1": {"title": "Work", "columns": [
            {"title": "Todo", "cards": [{"title": "Write docs"}]}]}}}

    Columns and cards without an id get one derived from their parent and
    position ("b1-col-0", "b1-col-0-card-0"), so decoding the same data
    twice yields the same snapshot.
    """
    boards = raw.get(SLOT_BOARDS)
    if not isinstance(boards, Mapping):
        return None

    snapshot = Snapshot()
    for key, board in boards.items():
        if not isinstance(board, Mapping):
            logger.warning("Dropping unreadable legacy board %s", key)
            continue
        board_id = _text(board.get("id"), str(key))
        board_record: Record = {
            "id": board_id,
            "title": _text(board.get("title"), "Untitled Board"),
            "description": _text(board.get("description")),
            "columnIds": [],
            "createdAt": _text(board.get("createdAt"), now),
            "updatedAt": _text(board.get("updatedAt"), now),
        }
        snapshot.boards[board_id] = board_record

        columns = board.get("columns")
        for column_index, column in enumerate(columns if isinstance(columns, list) else []):
            if not isinstance(column, Mapping):
                continue
            column_id = _text(column.get("id"), f"{board_id}-col-{column_index}")
            column_record: Record = {
                "id": column_id,
                "title": _text(column.get("title"), "Untitled Column"),
                "boardId": board_id,
                "cardIds": [],
                "order": _order(column.get("order"), column_index),
                "collapsed": column.get("collapsed") is True,
                "createdAt": _text(column.get("createdAt"), now),
                "updatedAt": _text(column.get("updatedAt"), now),
            }
            board_record["columnIds"].append(column_id)
            snapshot.columns[column_id] = column_record

            cards = column.get("cards")
            for card_index, card in enumerate(cards if isinstance(cards, list) else []):
                if not isinstance(card, Mapping):
                    continue
                card_id = _text(card.get("id"), f"{column_id}-card-{card_index}")
                column_record["cardIds"].append(card_id)
                snapshot.cards[card_id] = {
                    "id": card_id,
                    "title": _text(card.get("title"), "Untitled Card"),
                    "description": _text(card.get("description")),
                    "labels": _labels(card),
                    "assignee": _text(card.get("assignee")),
                    "columnId": column_id,
                    "boardId": board_id,
                    "order": _order(card.get("order"), card_index),
                    "createdAt": _text(card.get("createdAt"), now),
                    "updatedAt": _text(card.get("updatedAt"), now),
                }
    return snapshot


DECODERS: list[Decoder] = [_decode_normalized, _decode_nested]


def decode_raw(raw: Mapping[str, Any], now: str | None = None) -> Snapshot:
    """
    Decode raw stored slots of any known layout into a normalized snapshot.

    Raises:
        MigrationError: No decoder recognizes the layout.
    """
    now = now or now_iso()
    for decoder in DECODERS:
        snapshot = decoder(raw, now)
        if snapshot is not None:
            logger.debug("Decoded stored data with %s", decoder.__name__)
            return snapshot
    raise MigrationError("Stored data is in an unrecognized layout")


def add_ordering(raw: Mapping[str, Any]) -> Snapshot:
    """1.0.0 -> 1.1.0: order fields on columns and cards, labels on cards."""
    return decode_raw(raw)


MIGRATIONS: list[Migration] = [
    Migration(
        from_version="1.0.0",
        to_version="1.1.0",
        name="add_ordering",
        migrate=add_ordering,
    ),
]


class MigrationPipeline:
    """Walks the migration chain and brings the substrate up to date."""

    def __init__(
        self,
        migrations: list[Migration] | None = None,
        current_version: str = CURRENT_VERSION,
        checker: IntegrityChecker | None = None,
    ) -> None:
        self.migrations = MIGRATIONS if migrations is None else migrations
        self.current_version = current_version
        self._checker = checker

    def plan(self, from_version: str) -> list[Migration]:
        """
        Get the migrations leading from from_version to the current version.

        Raises:
            MigrationError: The chain does not reach the current version.
        """
        steps: list[Migration] = []
        version = from_version
        while version != self.current_version and len(steps) <= len(self.migrations):
            step = next((m for m in self.migrations if m.from_version == version), None)
            if step is None:
                break
            steps.append(step)
            version = step.to_version

        if version != self.current_version:
            raise MigrationError(
                f"Failed to migrate to current version {self.current_version}. "
                f"Last version: {version}"
            )
        return steps

    def migrate(self, from_version: str, raw: Mapping[str, Any]) -> Snapshot:
        """Apply every step from from_version to the current version."""
        steps = self.plan(from_version)
        if not steps:
            return decode_raw(raw)
        data: Mapping[str, Any] = raw
        snapshot = Snapshot()
        for step in steps:
            logger.info(
                "Applying migration %s (%s -> %s)", step.name, step.from_version, step.to_version
            )
            snapshot = step.migrate(data)
            data = snapshot.to_slots()
        return snapshot

    async def initialize(self, substrate: KeyValueStore) -> str:
        """
        Bring the substrate to the current version.

        Returns:
            The version the substrate was found at.

        Raises:
            MigrationError: The stored data cannot be migrated.
        """
        version = await substrate.get(SLOT_VERSION)
        raw = {slot: await substrate.get(slot) for slot in COLLECTION_SLOTS}

        if version is None:
            if not any(raw.values()):
                logger.info("Initializing empty store at version %s", self.current_version)
                await substrate.set_many({**Snapshot().to_slots(), SLOT_VERSION: self.current_version})
                return self.current_version
            logger.info("Found unversioned data, assuming version %s", BASELINE_VERSION)
            version = BASELINE_VERSION

        if not isinstance(version, str):
            raise MigrationError(f"Stored version marker is not a string: {version!r}")

        if version == self.current_version:
            return version

        snapshot = self.migrate(version, raw)
        if self._checker is not None:
            snapshot = self._checker.check(snapshot).snapshot

        await substrate.set_many({**snapshot.to_slots(), SLOT_VERSION: self.current_version})
        logger.info(
            "Migrated store from %s to %s (%d boards, %d columns, %d cards)",
            version,
            self.current_version,
            len(snapshot.boards),
            len(snapshot.columns),
            len(snapshot.cards),
        )
        return version
