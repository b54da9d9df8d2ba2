"""Tag set reconciliation for a single card.

Brings the ``card_tags`` rows of one card in line with a target list of
labels. Steps run strictly in this order inside the caller's transaction:

1. resolve labels to tag ids (insert-if-absent, race-safe upsert)
2. ensure an association exists for every resolved tag
3. delete associations whose tag is outside the target set

Tags left without any card are kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.schemas.cards import CardTag, Tag
from app.core.errors import ServerError
from app.core.logging import get_logger
from app.modules.cards.models import unique_labels


logger = get_logger(__name__)


@dataclass
class TagDiff:
    created: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def upsert_insert(session: AsyncSession, table):
    """Dialect insert supporting ``ON CONFLICT DO NOTHING``."""
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise ServerError(f"Upsert not supported for dialect {dialect!r}")


class TagSetReconciler:
    """Reconciles card/tag associations on a session the caller owns."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def current_labels(self, card_id: int) -> list[str]:
        rows = await self.session.execute(
            select(Tag.tag)
            .join(CardTag, CardTag.tag_id == Tag.tag_id)
            .where(CardTag.card_id == card_id)
            .order_by(Tag.tag)
        )
        return list(rows.scalars().all())

    async def resolve_tags(self, labels: list[str]) -> tuple[dict[str, int], list[str]]:
        """Return ``label -> tag_id`` for every label, creating missing tags.

        Also returns the labels that had no tag row before this call.
        """
        if not labels:
            return {}, []

        existing = await self.session.execute(
            select(Tag.tag).where(Tag.tag.in_(labels))
        )
        known = set(existing.scalars().all())

        # Sorted so concurrent upserts take unique-index locks in the same order
        await self.session.execute(
            upsert_insert(self.session, Tag)
            .values([{"tag": label} for label in sorted(labels)])
            .on_conflict_do_nothing(index_elements=["tag"])
        )

        rows = await self.session.execute(
            select(Tag.tag, Tag.tag_id).where(Tag.tag.in_(labels))
        )
        resolved = {tag: tag_id for tag, tag_id in rows.all()}
        if len(resolved) != len(labels):
            missing = [label for label in labels if label not in resolved]
            raise ServerError(f"Unable to resolve tags {missing}")

        return resolved, [label for label in labels if label not in known]

    async def sync_associations(self, card_id: int, tag_ids: list[int]) -> None:
        if not tag_ids:
            return

        await self.session.execute(
            upsert_insert(self.session, CardTag)
            .values([{"card_id": card_id, "tag_id": tag_id} for tag_id in sorted(tag_ids)])
            .on_conflict_do_nothing(index_elements=["card_id", "tag_id"])
        )

        linked = await self._count_associations(card_id, tag_ids)
        if linked != len(tag_ids):
            raise ServerError(
                f"Card {card_id} expected {len(tag_ids)} tag associations, found {linked}"
            )

    async def _count_associations(self, card_id: int, tag_ids: list[int]) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(CardTag)
            .where(CardTag.card_id == card_id, CardTag.tag_id.in_(tag_ids))
        )
        return result.scalar_one()

    async def prune_associations(self, card_id: int, keep_tag_ids: list[int]) -> None:
        stmt = delete(CardTag).where(CardTag.card_id == card_id)
        if keep_tag_ids:
            stmt = stmt.where(CardTag.tag_id.not_in(keep_tag_ids))
        await self.session.execute(stmt, execution_options={"synchronize_session": False})

    async def reconcile(self, card_id: int, labels: list[str]) -> TagDiff:
        """Make ``card_id`` carry exactly ``labels``."""
        target = unique_labels(labels)
        before = await self.current_labels(card_id)

        resolved, created = await self.resolve_tags(target)
        tag_ids = [resolved[label] for label in target]
        await self.sync_associations(card_id, tag_ids)
        await self.prune_associations(card_id, tag_ids)

        diff = TagDiff(
            created=created,
            added=[label for label in target if label not in before],
            removed=[label for label in before if label not in resolved],
        )
        if diff.changed:
            logger.info(
                f"Reconciled tags for card {card_id}: "
                f"+{diff.added} -{diff.removed} (new tags {diff.created})",
                extra={"card_id": card_id},
            )
        return diff
