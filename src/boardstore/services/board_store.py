"""Board store: the public operation surface over the normalized collections."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from ..config import Settings
from ..errors import MigrationError, SchemaViolationError
from ..models.records import (
    SLOT_BOARDS,
    SLOT_CARDS,
    SLOT_COLUMNS,
    SLOT_VERSION,
    Record,
    Snapshot,
    new_board_record,
    new_card_record,
    new_column_record,
)
from ..models.validators import VALIDATORS
from ..models.views import Board, Card, Column
from ..storage import KeyValueStore, YamlFileStore
from ..utils import clean_labels, new_id, now_iso, truncate
from .assembler import (
    assemble_board,
    assemble_boards,
    assemble_card,
    assemble_column,
    display_card_ids,
)
from .integrity import IntegrityChecker, IntegrityReport
from .migrations import MigrationPipeline
from .save_queue import SaveQueue

logger = logging.getLogger(__name__)

RecordInput = BaseModel | Mapping[str, Any]


class BoardStore:
    """
    Async store for boards, columns and cards.

    The three collections are persisted as flat slots of a key-value
    substrate. Every mutation copies the last committed snapshot, changes
    the copy and hands it to the save queue, which checks and writes it.
    Reads are served from the last committed snapshot and never see saves
    that are still queued.

    The substrate is migrated to the current schema version on first use.
    If that fails, every later call raises the same MigrationError.
    """

    def __init__(
        self,
        substrate: KeyValueStore,
        settings: Settings | None = None,
        checker: IntegrityChecker | None = None,
        pipeline: MigrationPipeline | None = None,
    ) -> None:
        self.substrate = substrate
        self.settings = settings or Settings()
        self._checker = checker or IntegrityChecker()
        self._pipeline = pipeline or MigrationPipeline(checker=self._checker)
        self._queue = SaveQueue(self._write, self._checker)
        self._committed = Snapshot()
        self._ready: asyncio.Future[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> BoardStore:
        """Create a store persisting to YAML files under settings.data_dir."""
        return cls(YamlFileStore(settings.data_dir), settings)

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """
        Run migrations and load committed data. Safe to call repeatedly.

        A MigrationError is kept and re-raised by every later call. Any other
        failure (a storage error, say) is raised once and retried next time.
        """
        if self._ready is None:
            self._ready = asyncio.ensure_future(self._initialize())
        ready = self._ready
        try:
            await asyncio.shield(ready)
        except MigrationError:
            raise
        except Exception:
            if self._ready is ready:
                self._ready = None
            raise

    async def reload(self) -> None:
        """Re-read committed data from the substrate."""
        await self.initialize()
        self._committed = await self._load()

    async def flush(self) -> None:
        """Wait until every queued save has been written."""
        await self._queue.join()

    async def get_version(self) -> str | None:
        """Get the schema version stored in the substrate."""
        await self.initialize()
        return await self.substrate.get(SLOT_VERSION)

    async def _initialize(self) -> None:
        found = await self._pipeline.initialize(self.substrate)
        self._committed = await self._load()
        logger.info(
            "Board store ready (found version %s, %d boards)", found, len(self._committed.boards)
        )

    async def _load(self) -> Snapshot:
        """Read all collections, dropping records that fail validation."""
        snapshot = Snapshot()
        for slot, records in snapshot.collections().items():
            raw = await self.substrate.get(slot, [])
            if not isinstance(raw, list):
                logger.warning("Ignoring %s slot: expected a list, got %s", slot, type(raw).__name__)
                continue
            is_valid = VALIDATORS[slot]
            for record in raw:
                if not is_valid(record):
                    logger.warning("Dropping invalid %s record: %r", slot, record)
                    continue
                records[record["id"]] = record
        return snapshot

    async def _write(self, snapshot: Snapshot) -> None:
        await self.substrate.set_many(snapshot.to_slots())
        self._committed = snapshot

    async def _commit(self, snapshot: Snapshot) -> IntegrityReport:
        return await self._queue.save(snapshot)

    async def _working_copy(self) -> Snapshot:
        await self.initialize()
        return self._committed.copy()

    # --- Board Operations ---

    async def get_boards(self) -> list[Board]:
        """Get every board with its columns and cards."""
        await self.initialize()
        return assemble_boards(self._committed)

    async def get_board(self, board_id: str) -> Board | None:
        await self.initialize()
        return assemble_board(self._committed, board_id)

    async def create_board(
        self, title: str, description: str = "", board_id: str | None = None
    ) -> Board:
        """Create an empty board."""
        snapshot = await self._working_copy()
        board_id = board_id or new_id()
        snapshot.boards[board_id] = new_board_record(
            board_id,
            truncate(title, self.settings.title_max_length),
            truncate(description, self.settings.description_max_length),
            now_iso(),
        )
        report = await self._commit(snapshot)
        logger.info("Board created: %s", board_id)
        return assemble_board(report.snapshot, board_id)

    async def save_board(self, board: RecordInput) -> Board:
        """
        Create or replace a board together with its columns and cards.

        Columns and cards that belonged to the board before but are not in
        the given tree are deleted. Columns and cards in the tree are owned
        by it: they are taken out of any other board or column that listed
        them. An existing board keeps its position among the boards.

        Raises:
            SchemaViolationError: A record in the tree is malformed. Nothing
                is written.
        """
        raw = _as_mapping(board)
        board_id = _require_id(raw, SLOT_BOARDS)
        snapshot = await self._working_copy()
        previous = self._committed
        now = now_iso()

        self._remove_board_children(snapshot, board_id, snapshot.boards.get(board_id))

        column_ids: list[str] = []
        for column_index, column_input in enumerate(raw.get("columns") or []):
            column_raw = {**_as_mapping(column_input), "boardId": board_id}
            column_id = _require_id(column_raw, SLOT_COLUMNS)
            self._detach_column(snapshot, column_id, board_id, now)
            card_ids: list[str] = []
            for card_index, card_input in enumerate(column_raw.get("cards") or []):
                card_raw = {**_as_mapping(card_input), "columnId": column_id, "boardId": board_id}
                card_id = _require_id(card_raw, SLOT_CARDS)
                self._detach_card(snapshot, card_id, now)
                snapshot.cards[card_id] = self._card_record(
                    card_raw, previous.cards.get(card_id), card_index, now
                )
                card_ids.append(card_id)
            column = self._column_record(
                column_raw, previous.columns.get(column_id), column_index, now
            )
            column["cardIds"] = card_ids
            snapshot.columns[column_id] = column
            column_ids.append(column_id)

        # Assigning to an existing key keeps the board's place in the collection
        record = self._board_record(raw, previous.boards.get(board_id), now)
        record["columnIds"] = column_ids
        snapshot.boards[board_id] = record

        report = await self._commit(snapshot)
        logger.info("Board saved: %s (%d columns)", board_id, len(column_ids))
        return assemble_board(report.snapshot, board_id)

    async def delete_board(self, board_id: str) -> None:
        """Delete a board with all of its columns and cards."""
        snapshot = await self._working_copy()
        if board_id not in snapshot.boards:
            logger.debug("delete_board: board not found: %s", board_id)
            return
        self._remove_board_tree(snapshot, board_id)
        await self._commit(snapshot)
        logger.info("Board deleted: %s", board_id)

    # --- Column Operations ---

    async def get_column(self, column_id: str) -> Column | None:
        await self.initialize()
        return assemble_column(self._committed, column_id)

    async def get_columns(self, board_id: str) -> list[Column]:
        """Get a board's columns in display order; empty if the board is unknown."""
        await self.initialize()
        board = assemble_board(self._committed, board_id)
        return [] if board is None else board.columns

    async def add_column(
        self, board_id: str, title: str, column_id: str | None = None
    ) -> Column | None:
        """Append a new empty column to a board. Returns None if the board is unknown."""
        snapshot = await self._working_copy()
        board = snapshot.boards.get(board_id)
        if board is None:
            logger.debug("add_column: board not found: %s", board_id)
            return None
        now = now_iso()
        column_id = column_id or new_id()
        order = self._next_order(snapshot.columns, board["columnIds"])
        snapshot.columns[column_id] = new_column_record(
            column_id, truncate(title, self.settings.title_max_length), board_id, order, now
        )
        board["columnIds"].append(column_id)
        board["updatedAt"] = now
        report = await self._commit(snapshot)
        logger.info("Column added: %s (board=%s)", column_id, board_id)
        return assemble_column(report.snapshot, column_id)

    async def save_column(self, column: RecordInput) -> Column | None:
        """
        Create or update a column.

        Cards listed on the column are saved too; cards it already holds
        are kept. Changing boardId moves the column to that board.

        Returns None without writing anything if boardId names no board.

        Raises:
            SchemaViolationError: The column or one of its cards is malformed.
        """
        raw = _as_mapping(column)
        column_id = _require_id(raw, SLOT_COLUMNS)
        snapshot = await self._working_copy()
        existing = snapshot.columns.get(column_id)
        now = now_iso()

        board_id = raw.get("boardId")
        if isinstance(board_id, str) and board_id not in snapshot.boards:
            logger.debug("save_column: board not found: %s", board_id)
            return None
        if existing is not None and existing["boardId"] != board_id:
            self._unlink(snapshot.boards.get(existing["boardId"]), "columnIds", column_id, now)
        target_board = snapshot.boards.get(board_id) if isinstance(board_id, str) else None
        if existing is not None:
            default_order = existing["order"]
        elif target_board is not None:
            default_order = self._next_order(snapshot.columns, target_board["columnIds"])
        else:
            default_order = 0

        record = self._column_record(raw, existing, default_order, now)
        card_ids = list(existing["cardIds"]) if existing is not None else []
        for card_index, card_input in enumerate(raw.get("cards") or []):
            card_raw = _as_mapping(card_input)
            card_id = _require_id(card_raw, SLOT_CARDS)
            snapshot.cards[card_id] = self._card_record(
                card_raw, snapshot.cards.get(card_id), card_index, now
            )
            if card_id not in card_ids:
                card_ids.append(card_id)
        record["cardIds"] = card_ids
        snapshot.columns[column_id] = record

        if target_board is not None:
            if column_id not in target_board["columnIds"]:
                target_board["columnIds"].append(column_id)
            target_board["updatedAt"] = now

        report = await self._commit(snapshot)
        logger.info("Column saved: %s (board=%s)", column_id, board_id)
        return assemble_column(report.snapshot, column_id)

    async def set_column_collapsed(self, column_id: str, collapsed: bool) -> Column | None:
        """Persist whether a column is shown collapsed."""
        snapshot = await self._working_copy()
        column = snapshot.columns.get(column_id)
        if column is None:
            logger.debug("set_column_collapsed: column not found: %s", column_id)
            return None
        now = now_iso()
        column["collapsed"] = collapsed
        column["updatedAt"] = now
        self._touch_board(snapshot, column["boardId"], now)
        report = await self._commit(snapshot)
        logger.debug("Column %s collapsed=%s", column_id, collapsed)
        return assemble_column(report.snapshot, column_id)

    async def delete_column(self, column_id: str) -> None:
        """Delete a column and its cards, and remove it from its board."""
        snapshot = await self._working_copy()
        column = snapshot.columns.get(column_id)
        if column is None:
            logger.debug("delete_column: column not found: %s", column_id)
            return
        now = now_iso()
        self._remove_column(snapshot, column_id)
        self._unlink(snapshot.boards.get(column["boardId"]), "columnIds", column_id, now)
        self._touch_board(snapshot, column["boardId"], now)
        await self._commit(snapshot)
        logger.info("Column deleted: %s", column_id)

    # --- Card Operations ---

    async def get_card(self, card_id: str) -> Card | None:
        await self.initialize()
        return assemble_card(self._committed, card_id)

    async def get_cards(self, column_id: str) -> list[Card]:
        """Get a column's cards in display order; empty if the column is unknown."""
        await self.initialize()
        column = assemble_column(self._committed, column_id)
        return [] if column is None else column.cards

    async def add_card(
        self,
        column_id: str,
        title: str,
        description: str = "",
        labels: list[str] | None = None,
        assignee: str = "",
        card_id: str | None = None,
    ) -> Card | None:
        """Append a new card to a column. Returns None if the column is unknown."""
        snapshot = await self._working_copy()
        column = snapshot.columns.get(column_id)
        if column is None:
            logger.debug("add_card: column not found: %s", column_id)
            return None
        now = now_iso()
        card_id = card_id or new_id()
        snapshot.cards[card_id] = new_card_record(
            card_id,
            truncate(title, self.settings.title_max_length),
            column_id,
            column["boardId"],
            len(column["cardIds"]),
            now,
            description=truncate(description, self.settings.description_max_length),
            labels=self._clean_labels(labels),
            assignee=assignee or "",
        )
        column["cardIds"].append(card_id)
        column["updatedAt"] = now
        self._touch_board(snapshot, column["boardId"], now)
        report = await self._commit(snapshot)
        logger.info("Card added: %s (column=%s)", card_id, column_id)
        return assemble_card(report.snapshot, card_id)

    async def save_card(self, card: RecordInput) -> Card | None:
        """
        Create or update a card.

        Changing columnId moves the card to the end of that column.

        Returns None without writing anything if columnId names no column.

        Raises:
            SchemaViolationError: The card is malformed.
        """
        raw = _as_mapping(card)
        card_id = _require_id(raw, SLOT_CARDS)
        snapshot = await self._working_copy()
        existing = snapshot.cards.get(card_id)
        now = now_iso()

        column_id = raw.get("columnId")
        if isinstance(column_id, str) and column_id not in snapshot.columns:
            logger.debug("save_card: column not found: %s", column_id)
            return None
        if existing is not None and existing["columnId"] != column_id:
            old_column = snapshot.columns.get(existing["columnId"])
            self._unlink(old_column, "cardIds", card_id, now)
            if old_column is not None:
                self._touch_board(snapshot, old_column["boardId"], now)
        column = snapshot.columns.get(column_id) if isinstance(column_id, str) else None
        if existing is not None and existing["columnId"] == column_id:
            default_order = existing["order"]
        else:
            default_order = len(column["cardIds"]) if column is not None else 0
            if existing is not None:
                # The old position means nothing in the new column
                raw = {**raw, "order": default_order}

        snapshot.cards[card_id] = self._card_record(raw, existing, default_order, now)
        if column is not None:
            if card_id not in column["cardIds"]:
                column["cardIds"].append(card_id)
            self._touch_board(snapshot, column["boardId"], now)

        report = await self._commit(snapshot)
        logger.info("Card saved: %s (column=%s)", card_id, column_id)
        return assemble_card(report.snapshot, card_id)

    async def delete_card(self, card_id: str) -> None:
        """Delete a card and remove it from its column."""
        snapshot = await self._working_copy()
        card = snapshot.cards.pop(card_id, None)
        if card is None:
            logger.debug("delete_card: card not found: %s", card_id)
            return
        now = now_iso()
        column = snapshot.columns.get(card["columnId"])
        self._unlink(column, "cardIds", card_id, now)
        self._touch_board(snapshot, card["boardId"], now)
        await self._commit(snapshot)
        logger.info("Card deleted: %s", card_id)

    async def move_card(
        self,
        card_id: str,
        from_column_id: str,
        to_column_id: str,
        position: int,
    ) -> Card | None:
        """
        Move a card to a position in a column.

        Position counts in the target column's display order and is clamped
        to its bounds. Both columns are renumbered so their order fields run
        0, 1, 2, ... and their cardIds match the display order.

        Returns:
            The moved card, or None if the card is not in from_column_id or
            either column does not exist.
        """
        snapshot = await self._working_copy()
        card = snapshot.cards.get(card_id)
        source = snapshot.columns.get(from_column_id)
        target = snapshot.columns.get(to_column_id)
        if card is None or source is None or target is None or card["columnId"] != from_column_id:
            logger.debug(
                "move_card: card %s not found in column %s (target %s)",
                card_id,
                from_column_id,
                to_column_id,
            )
            return None

        now = now_iso()
        source_ids = [cid for cid in display_card_ids(snapshot, from_column_id) if cid != card_id]
        if from_column_id == to_column_id:
            target_ids = source_ids
        else:
            target_ids = [cid for cid in display_card_ids(snapshot, to_column_id) if cid != card_id]
        position = max(0, min(position, len(target_ids)))
        target_ids.insert(position, card_id)

        card["columnId"] = to_column_id
        card["boardId"] = target["boardId"]
        card["updatedAt"] = now
        self._renumber(snapshot, target, target_ids, now)
        if from_column_id != to_column_id:
            self._renumber(snapshot, source, source_ids, now)
            self._touch_board(snapshot, source["boardId"], now)
        self._touch_board(snapshot, target["boardId"], now)

        report = await self._commit(snapshot)
        logger.info(
            "Card moved: %s (%s -> %s @ %d)", card_id, from_column_id, to_column_id, position
        )
        return assemble_card(report.snapshot, card_id)

    # --- Data Management ---

    async def clear(self) -> None:
        """Delete every board, column and card."""
        await self.initialize()
        await self._commit(Snapshot())
        logger.info("Store cleared")

    # --- Record Building ---

    def _board_record(self, raw: Mapping[str, Any], existing: Record | None, now: str) -> Record:
        return _drop_missing(
            {
                "id": raw.get("id"),
                "title": self._text(raw.get("title"), self.settings.title_max_length),
                "description": self._text(
                    raw.get("description", ""), self.settings.description_max_length
                ),
                "columnIds": [],
                "createdAt": _created_at(raw, existing, now),
                "updatedAt": now,
            }
        )

    def _column_record(
        self, raw: Mapping[str, Any], existing: Record | None, default_order: int, now: str
    ) -> Record:
        return _drop_missing(
            {
                "id": raw.get("id"),
                "title": self._text(raw.get("title"), self.settings.title_max_length),
                "boardId": raw.get("boardId"),
                "cardIds": [],
                "order": raw.get("order", default_order),
                "collapsed": raw.get(
                    "collapsed", existing.get("collapsed", False) if existing else False
                ),
                "createdAt": _created_at(raw, existing, now),
                "updatedAt": now,
            }
        )

    def _card_record(
        self, raw: Mapping[str, Any], existing: Record | None, default_order: int, now: str
    ) -> Record:
        labels = raw.get("labels", raw.get("tags", []))
        if isinstance(labels, list):
            labels = self._clean_labels(labels)
        return _drop_missing(
            {
                "id": raw.get("id"),
                "title": self._text(raw.get("title"), self.settings.title_max_length),
                "description": self._text(
                    raw.get("description", ""), self.settings.description_max_length
                ),
                "labels": labels,
                "assignee": raw.get("assignee") or "",
                "columnId": raw.get("columnId"),
                "boardId": raw.get("boardId"),
                "order": raw.get("order", default_order),
                "createdAt": _created_at(raw, existing, now),
                "updatedAt": now,
            }
        )

    def _text(self, value: Any, max_length: int) -> Any:
        # Non-strings pass through untouched and fail validation at commit
        return truncate(value, max_length) if isinstance(value, str) else value

    def _clean_labels(self, labels: list[str] | None) -> list[str]:
        return clean_labels(labels, self.settings.max_labels, self.settings.label_max_length)

    # --- Snapshot Editing ---

    @staticmethod
    def _next_order(records: dict[str, Record], ids: list[str]) -> int:
        orders = [records[i]["order"] for i in ids if i in records]
        return max(orders) + 1 if orders else 0

    @staticmethod
    def _touch_board(snapshot: Snapshot, board_id: str, now: str) -> None:
        board = snapshot.boards.get(board_id)
        if board is not None:
            board["updatedAt"] = now

    @staticmethod
    def _unlink(parent: Record | None, sequence: str, child_id: str, now: str) -> None:
        """Remove child_id from a parent's id sequence."""
        if parent is None or child_id not in parent[sequence]:
            return
        parent[sequence] = [cid for cid in parent[sequence] if cid != child_id]
        parent["updatedAt"] = now

    @staticmethod
    def _renumber(snapshot: Snapshot, column: Record, card_ids: list[str], now: str) -> None:
        column["cardIds"] = list(card_ids)
        column["updatedAt"] = now
        for index, cid in enumerate(card_ids):
            snapshot.cards[cid]["order"] = index

    @staticmethod
    def _remove_column(snapshot: Snapshot, column_id: str) -> None:
        column = snapshot.columns.pop(column_id, None)
        listed = set(column["cardIds"]) if column is not None else set()
        for card_id, card in list(snapshot.cards.items()):
            if card_id in listed or card["columnId"] == column_id:
                del snapshot.cards[card_id]

    @classmethod
    def _remove_board_tree(cls, snapshot: Snapshot, board_id: str) -> None:
        board = snapshot.boards.pop(board_id, None)
        cls._remove_board_children(snapshot, board_id, board)

    @classmethod
    def _remove_board_children(
        cls, snapshot: Snapshot, board_id: str, board: Record | None
    ) -> None:
        """Remove a board's columns and cards, leaving the board record alone."""
        listed = set(board["columnIds"]) if board is not None else set()
        for column_id, column in list(snapshot.columns.items()):
            if column_id in listed or column["boardId"] == board_id:
                cls._remove_column(snapshot, column_id)
        for card_id, card in list(snapshot.cards.items()):
            if card["boardId"] == board_id:
                del snapshot.cards[card_id]

    @classmethod
    def _detach_column(cls, snapshot: Snapshot, column_id: str, board_id: str, now: str) -> None:
        """Take a column, with its cards, away from every board other than board_id."""
        for other_id, other in snapshot.boards.items():
            if other_id != board_id and column_id in other["columnIds"]:
                cls._unlink(other, "columnIds", column_id, now)
        if column_id in snapshot.columns:
            cls._remove_column(snapshot, column_id)

    @classmethod
    def _detach_card(cls, snapshot: Snapshot, card_id: str, now: str) -> None:
        """Take a card out of every column that lists it."""
        for column in snapshot.columns.values():
            if card_id in column["cardIds"]:
                cls._unlink(column, "cardIds", card_id, now)
                cls._touch_board(snapshot, column["boardId"], now)


def _as_mapping(value: RecordInput) -> Mapping[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, Mapping):
        return value
    raise TypeError(f"Expected a model or mapping, got {type(value).__name__}")


def _require_id(raw: Mapping[str, Any], collection: str) -> str:
    record_id = raw.get("id")
    if not isinstance(record_id, str) or not record_id:
        raise SchemaViolationError(collection, repr(record_id), "id must be a non-empty string")
    return record_id


def _created_at(raw: Mapping[str, Any], existing: Record | None, now: str) -> Any:
    if existing is not None:
        return existing["createdAt"]
    return raw.get("createdAt") or now


def _drop_missing(record: Record) -> Record:
    """Leave absent fields out so the validator reports them as missing."""
    return {key: value for key, value in record.items() if value is not None}

