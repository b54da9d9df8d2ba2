"""Pydantic values for cards and the filters used to find them.

Persisted cards are frozen: ``card_id`` is assigned by storage once and
never changes. ``CardCreate`` is the transient shape (no identity yet) and
``CardUpdate`` is the allow-listed patch applied to a persisted card.
"""

from __future__ import annotations

from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    field_validator,
)


class TagRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str = Field(..., min_length=1)


def unique_labels(labels: list[str]) -> list[str]:
    """Collapse duplicate labels, keeping first-seen order."""
    return list(dict.fromkeys(labels))


class Card(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    card_id: int = Field(..., alias="cardId")
    front: str
    back: str
    hint: Optional[str] = None
    tags: list[TagRef] = Field(default_factory=list)

    def tag_labels(self) -> list[str]:
        return unique_labels([t.tag for t in self.tags])


class CardCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    hint: Optional[str] = None
    tags: list[TagRef] = Field(default_factory=list)

    def tag_labels(self) -> list[str]:
        return unique_labels([t.tag for t in self.tags])


class CardUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    front: Optional[str] = Field(None, min_length=1)
    back: Optional[str] = Field(None, min_length=1)
    hint: Optional[str] = None
    tags: Optional[list[TagRef]] = None

    @field_validator("front", "back")
    @classmethod
    def not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


# Fields a patch may write onto a persisted card, besides tags
UPDATABLE_FIELDS = ("front", "back", "hint")


class CardFindFilter(BaseModel):
    """Exact-match predicates; every supplied field must match."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    card_id: Optional[int] = Field(None, alias="cardId")
    front: Optional[str] = None
    back: Optional[str] = None
    hint: Optional[str] = None


class CardFindOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    tags_all: list[str] = Field(default_factory=list, alias="tagsAll")
    tags_none: list[str] = Field(default_factory=list, alias="tagsNone")
    limit: Optional[PositiveInt] = None
    offset: NonNegativeInt = 0


__all__ = [
    "TagRef",
    "Card",
    "CardCreate",
    "CardUpdate",
    "CardFindFilter",
    "CardFindOptions",
    "UPDATABLE_FIELDS",
    "unique_labels",
]
