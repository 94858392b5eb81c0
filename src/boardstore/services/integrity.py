"""Referential integrity checks for snapshots about to be committed.

Two tiers:
- hard: a record does not match its schema. The commit is aborted with
  SchemaViolationError and nothing is written.
- soft: records are well-formed but their cross-references disagree. The
  snapshot is healed, a diagnostic is recorded and the commit goes ahead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..errors import SchemaViolationError
from ..models.records import SLOT_BOARDS, SLOT_CARDS, SLOT_COLUMNS, Record, Snapshot
from ..models.validators import SCHEMAS, schema_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """One soft violation that was healed."""

    collection: str
    record_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.collection}/{self.record_id}: {self.message}"


@dataclass
class IntegrityReport:
    """Result of a check: the healed snapshot plus what was fixed."""

    snapshot: Snapshot
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def healed(self) -> bool:
        """Whether any soft violation was fixed."""
        return len(self.diagnostics) > 0


class IntegrityChecker:
    """Validates and heals the cross-references between the three collections."""

    def check(self, snapshot: Snapshot) -> IntegrityReport:
        """
        Check a complete proposed snapshot.

        The input is left untouched; healing happens on a copy.

        Raises:
            SchemaViolationError: A record fails its schema (hard tier).
        """
        self._check_schema(snapshot)

        healed = snapshot.copy()
        diagnostics: list[Diagnostic] = []
        self._heal_columns(healed, diagnostics)
        self._heal_cards(healed, diagnostics)

        for diagnostic in diagnostics:
            logger.warning("Healed: %s", diagnostic)
        return IntegrityReport(snapshot=healed, diagnostics=diagnostics)

    # --- Hard tier ---

    def _check_schema(self, snapshot: Snapshot) -> None:
        for collection, records in snapshot.collections().items():
            schema = SCHEMAS[collection]
            for key, record in records.items():
                errors = schema_errors(schema, record)
                if errors:
                    logger.error("Rejecting %s record %s: %s", collection, key, "; ".join(errors))
                    raise SchemaViolationError(collection, key, "; ".join(errors))
                if record["id"] != key:
                    raise SchemaViolationError(
                        collection, key, f"record id {record['id']!r} does not match its key"
                    )

    # --- Soft tier ---

    def _heal_columns(self, snapshot: Snapshot, diagnostics: list[Diagnostic]) -> None:
        """Make board.columnIds and column.boardId agree."""
        owner_of: dict[str, str] = {}  # column_id -> board_id

        for board_id, board in snapshot.boards.items():
            kept: list[str] = []
            for column_id in board["columnIds"]:
                if column_id in owner_of:
                    if owner_of[column_id] == board_id:
                        message = f"duplicate column {column_id} dropped from columnIds"
                    else:
                        message = (
                            f"column {column_id} already belongs to board "
                            f"{owner_of[column_id]}, dropped from columnIds"
                        )
                    diagnostics.append(Diagnostic(SLOT_BOARDS, board_id, message))
                    continue
                column = snapshot.columns.get(column_id)
                if column is None:
                    diagnostics.append(
                        Diagnostic(
                            SLOT_BOARDS, board_id, f"missing column {column_id} dropped from columnIds"
                        )
                    )
                    continue
                if column["boardId"] != board_id:
                    diagnostics.append(
                        Diagnostic(
                            SLOT_COLUMNS,
                            column_id,
                            f"boardId {column['boardId']} rewritten to {board_id}",
                        )
                    )
                    column["boardId"] = board_id
                owner_of[column_id] = board_id
                kept.append(column_id)
            board["columnIds"] = kept

        for column_id, column in list(snapshot.columns.items()):
            if column_id in owner_of:
                continue
            board = snapshot.boards.get(column["boardId"])
            if board is None:
                diagnostics.append(
                    Diagnostic(
                        SLOT_COLUMNS,
                        column_id,
                        f"orphan removed (board {column['boardId']} does not exist)",
                    )
                )
                del snapshot.columns[column_id]
                continue
            board["columnIds"].append(column_id)
            owner_of[column_id] = board["id"]
            diagnostics.append(
                Diagnostic(SLOT_BOARDS, board["id"], f"column {column_id} appended to columnIds")
            )

    def _heal_cards(self, snapshot: Snapshot, diagnostics: list[Diagnostic]) -> None:
        """Make column.cardIds, card.columnId and card.boardId agree."""
        owner_of: dict[str, str] = {}  # card_id -> column_id

        for column_id, column in snapshot.columns.items():
            kept: list[str] = []
            for card_id in column["cardIds"]:
                if card_id in owner_of:
                    if owner_of[card_id] == column_id:
                        message = f"duplicate card {card_id} dropped from cardIds"
                    else:
                        message = (
                            f"card {card_id} already belongs to column "
                            f"{owner_of[card_id]}, dropped from cardIds"
                        )
                    diagnostics.append(Diagnostic(SLOT_COLUMNS, column_id, message))
                    continue
                card = snapshot.cards.get(card_id)
                if card is None:
                    diagnostics.append(
                        Diagnostic(
                            SLOT_COLUMNS, column_id, f"missing card {card_id} dropped from cardIds"
                        )
                    )
                    continue
                if card["columnId"] != column_id:
                    diagnostics.append(
                        Diagnostic(
                            SLOT_CARDS,
                            card_id,
                            f"columnId {card['columnId']} rewritten to {column_id}",
                        )
                    )
                    card["columnId"] = column_id
                owner_of[card_id] = column_id
                kept.append(card_id)
            column["cardIds"] = kept

        for card_id, card in list(snapshot.cards.items()):
            if card_id not in owner_of:
                column = snapshot.columns.get(card["columnId"])
                if column is None:
                    diagnostics.append(
                        Diagnostic(
                            SLOT_CARDS,
                            card_id,
                            f"orphan removed (column {card['columnId']} does not exist)",
                        )
                    )
                    del snapshot.cards[card_id]
                    continue
                column["cardIds"].append(card_id)
                owner_of[card_id] = column["id"]
                diagnostics.append(
                    Diagnostic(SLOT_COLUMNS, column["id"], f"card {card_id} appended to cardIds")
                )
            self._align_card_board(snapshot.columns[owner_of[card_id]], card, diagnostics)

    @staticmethod
    def _align_card_board(column: Record, card: Record, diagnostics: list[Diagnostic]) -> None:
        if card["boardId"] != column["boardId"]:
            diagnostics.append(
                Diagnostic(
                    SLOT_CARDS,
                    card["id"],
                    f"boardId {card['boardId']} rewritten to {column['boardId']}",
                )
            )
            card["boardId"] = column["boardId"]
