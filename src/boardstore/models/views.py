"""Hierarchical read models: a board with its columns and their cards."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Card(_View):
    """A card as returned to callers."""

    id: str
    title: str
    description: str = ""
    labels: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("labels", "tags"),
    )
    assignee: str = ""
    column_id: str
    board_id: str
    order: int = 0
    created_at: str | None = None
    updated_at: str | None = None


class Column(_View):
    """A column with its cards in display order."""

    id: str
    title: str
    board_id: str
    order: int = 0
    collapsed: bool = False
    card_ids: list[str] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None


class Board(_View):
    """A board with its columns in display order."""

    id: str
    title: str
    description: str = ""
    column_ids: list[str] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    def find_column(self, column_id: str) -> Column | None:
        """Get a column of this board by id."""
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def find_card(self, card_id: str) -> Card | None:
        """Get a card anywhere on this board by id."""
        for column in self.columns:
            for card in column.cards:
                if card.id == card_id:
                    return card
        return None

    @property
    def card_count(self) -> int:
        return sum(len(column.cards) for column in self.columns)
