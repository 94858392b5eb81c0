"""Schema validators for raw records.

Each predicate answers whether a decoded value can be trusted as a record
of its kind. They never raise and never modify their input.
"""

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from .records import SLOT_BOARDS, SLOT_CARDS, SLOT_COLUMNS, BoardMetadata, CardData, ColumnData

SCHEMAS: dict[str, type[BaseModel]] = {
    SLOT_BOARDS: BoardMetadata,
    SLOT_COLUMNS: ColumnData,
    SLOT_CARDS: CardData,
}


def schema_errors(schema: type[BaseModel], value: Any) -> list[str]:
    """
    List what is wrong with value as an instance of schema.

    Returns an empty list when value conforms.
    Example: ["columnId: Field required", "order: Input should be a valid integer"]
    """
    if not isinstance(value, Mapping):
        return [f"expected a mapping, got {type(value).__name__}"]
    try:
        schema.model_validate(dict(value))
    except ValidationError as e:
        return [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
    return []


def is_board_metadata(value: Any) -> bool:
    """True if value has the shape of a board record."""
    return not schema_errors(BoardMetadata, value)


def is_column_data(value: Any) -> bool:
    """True if value has the shape of a column record."""
    return not schema_errors(ColumnData, value)


def is_card_data(value: Any) -> bool:
    """True if value has the shape of a card record."""
    return not schema_errors(CardData, value)


VALIDATORS: dict[str, Callable[[Any], bool]] = {
    SLOT_BOARDS: is_board_metadata,
    SLOT_COLUMNS: is_column_data,
    SLOT_CARDS: is_card_data,
}
