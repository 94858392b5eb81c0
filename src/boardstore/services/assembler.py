"""Rebuilds the board -> column -> card hierarchy from normalized records."""

from __future__ import annotations

from ..models.records import Record, Snapshot
from ..models.views import Board, Card, Column


def _by_order(records: list[Record]) -> list[Record]:
    # sorted() is stable, so equal order values keep their sequence position
    return sorted(records, key=lambda record: record["order"])


def assemble_card(snapshot: Snapshot, card_id: str) -> Card | None:
    """Build the view of a single card."""
    record = snapshot.cards.get(card_id)
    if record is None:
        return None
    return Card.model_validate(record)


def assemble_column(snapshot: Snapshot, column_id: str) -> Column | None:
    """
    Build the view of a column with its cards.

    Cards are resolved from cardIds, skipping ids with no record, then
    sorted by their order field.
    """
    record = snapshot.columns.get(column_id)
    if record is None:
        return None
    card_records = [snapshot.cards[cid] for cid in record["cardIds"] if cid in snapshot.cards]
    cards = [Card.model_validate(card) for card in _by_order(card_records)]
    return Column.model_validate(
        {**record, "cardIds": [card.id for card in cards], "cards": cards},
    )


def assemble_board(snapshot: Snapshot, board_id: str) -> Board | None:
    """Build the full view of a board; columns and cards sorted by order."""
    record = snapshot.boards.get(board_id)
    if record is None:
        return None
    column_records = [
        snapshot.columns[cid] for cid in record["columnIds"] if cid in snapshot.columns
    ]
    columns = [assemble_column(snapshot, column["id"]) for column in _by_order(column_records)]
    return Board.model_validate(
        {**record, "columnIds": [column.id for column in columns], "columns": columns},
    )


def assemble_boards(snapshot: Snapshot) -> list[Board]:
    """Build every board, in collection order."""
    boards: list[Board] = []
    for board_id in snapshot.boards:
        board = assemble_board(snapshot, board_id)
        if board is not None:
            boards.append(board)
    return boards


def display_card_ids(snapshot: Snapshot, column_id: str) -> list[str]:
    """Card ids of a column in the order they are shown."""
    column = assemble_column(snapshot, column_id)
    return [] if column is None else column.card_ids
