"""Database service classes for card and tag operations."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.schemas.cards import Card as DBCard, Tag
from app.core.errors import NotFoundError, ServerError
from app.core.logging import get_logger
from app.modules.cards.finder import CardFinder
from app.modules.cards.models import (
    Card,
    CardCreate,
    CardUpdate,
    UPDATABLE_FIELDS,
)
from app.modules.cards.tags import TagSetReconciler


logger = get_logger(__name__)


class CardService:
    """Card lifecycle on one session: each mutation is its own transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.finder = CardFinder(session)
        self.reconciler = TagSetReconciler(session)

    @asynccontextmanager
    async def _transaction(self, card_id: Optional[int] = None) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.warning(
                f"Card transaction rolled back: {e!r}",
                extra={"card_id": "-" if card_id is None else card_id},
            )
            raise

    async def _lock_existing(self, card_id: int) -> DBCard:
        # FOR UPDATE serializes concurrent writers of the same card on Postgres
        result = await self.session.execute(
            select(DBCard)
            .where(DBCard.card_id == card_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Unable to find card with id of {card_id}")
        return row

    async def create(self, data: CardCreate) -> Card:
        """Insert a card and its tags in one transaction."""
        async with self._transaction():
            row = DBCard(front=data.front, back=data.back, hint=data.hint)
            self.session.add(row)
            await self.session.flush()
            card_id = row.card_id

            await self.reconciler.reconcile(card_id, data.tag_labels())
            card = await self.finder.find_by_id(card_id)

        logger.info(
            f"Created card {card.card_id} with tags {card.tag_labels()}",
            extra={"card_id": card.card_id},
        )
        return card

    async def get(self, card_id: int) -> Card:
        return await self.finder.find_by_id(card_id)

    async def find(
        self,
        card_filter: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> list[Card]:
        return await self.finder.find(card_filter, options)

    async def update(self, card_id: int, patch: CardUpdate) -> Card:
        """Apply ``patch`` to an existing card and reconcile its tags.

        Only ``front``/``back``/``hint`` and ``tags`` are ever written. When
        the patch carries no ``tags`` the card keeps its current set.
        """
        async with self._transaction(card_id):
            row = await self._lock_existing(card_id)
            supplied = patch.model_dump(exclude_unset=True)
            values = {
                name: supplied[name] if name in supplied else getattr(row, name)
                for name in UPDATABLE_FIELDS
            }

            result = await self.session.execute(
                update(DBCard)
                .where(DBCard.card_id == card_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ServerError(
                    f"Updating card {card_id} affected {result.rowcount} rows"
                )

            if patch.tags is not None:
                labels = [t.tag for t in patch.tags]
            else:
                labels = await self.reconciler.current_labels(card_id)
            await self.reconciler.reconcile(card_id, labels)
            card = await self.finder.find_by_id(card_id)

        logger.info(f"Updated card {card_id}", extra={"card_id": card_id})
        return card

    async def delete(self, card_id: int) -> int:
        """Delete a card; its associations go with it via the FK cascade."""
        async with self._transaction(card_id):
            await self._lock_existing(card_id)
            result = await self.session.execute(
                delete(DBCard)
                .where(DBCard.card_id == card_id)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                raise ServerError(f"Card {card_id} vanished before delete")
            count = result.rowcount

        logger.info(f"Deleted card {card_id}", extra={"card_id": card_id})
        return count

    async def list_tags(self) -> list[Tag]:
        rows = await self.session.execute(select(Tag).order_by(Tag.tag))
        return list(rows.scalars().all())
