"""Query building and row mapping for card lookups."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.db.schemas.cards import Card as DBCard, CardTag, Tag
from app.core.errors import NotFoundError
from app.modules.cards.models import (
    Card,
    CardFindFilter,
    CardFindOptions,
    TagRef,
    unique_labels,
)
from app.modules.cards.validation import validate_schema


# Filter field -> column. Field names are never rendered into SQL.
FILTER_COLUMNS = {
    "card_id": DBCard.card_id,
    "front": DBCard.front,
    "back": DBCard.back,
    "hint": DBCard.hint,
}


def to_card(row: DBCard) -> Card:
    return Card(
        card_id=row.card_id,
        front=row.front,
        back=row.back,
        hint=row.hint,
        tags=[TagRef(tag=t.tag) for t in row.tags],
    )


def _matching_tag_sets(tags_all: list[str], tags_none: list[str]) -> Select:
    """Card ids whose tag set holds every label in ``tags_all`` and none in ``tags_none``."""
    stmt = (
        select(DBCard.card_id)
        .outerjoin(CardTag, CardTag.card_id == DBCard.card_id)
        .outerjoin(Tag, Tag.tag_id == CardTag.tag_id)
        .group_by(DBCard.card_id)
    )
    if tags_all:
        stmt = stmt.having(
            func.count(case((Tag.tag.in_(tags_all), Tag.tag_id))) == len(tags_all)
        )
    if tags_none:
        stmt = stmt.having(
            func.count(case((Tag.tag.in_(tags_none), Tag.tag_id))) == 0
        )
    return stmt


def build_find_query(card_filter: CardFindFilter, options: CardFindOptions) -> Select:
    stmt = (
        select(DBCard)
        .options(selectinload(DBCard.tags))
        .order_by(DBCard.card_id)
        .execution_options(populate_existing=True)
    )

    tags_all = unique_labels(options.tags_all)
    tags_none = unique_labels(options.tags_none)
    if tags_all or tags_none:
        stmt = stmt.where(DBCard.card_id.in_(_matching_tag_sets(tags_all, tags_none)))

    for name, value in card_filter.model_dump(exclude_unset=True).items():
        stmt = stmt.where(FILTER_COLUMNS[name] == value)

    if options.offset:
        stmt = stmt.offset(options.offset)
    if options.limit is not None:
        stmt = stmt.limit(options.limit)
    return stmt


class CardFinder:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(
        self,
        card_filter: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> list[Card]:
        """Cards matching ``card_filter`` and the tag/pagination ``options``.

        Both mappings are validated before any query runs; unknown keys
        raise ``ClientError``.
        """
        parsed_filter = validate_schema(card_filter, CardFindFilter, what="find filter")
        parsed_options = validate_schema(options, CardFindOptions, what="find options")

        rows = await self.session.execute(build_find_query(parsed_filter, parsed_options))
        return [to_card(row) for row in rows.scalars().all()]

    async def find_by_id(self, card_id: int) -> Card:
        result = await self.session.execute(
            select(DBCard)
            .options(selectinload(DBCard.tags))
            .where(DBCard.card_id == card_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Unable to find card with id of {card_id}")
        return to_card(row)
