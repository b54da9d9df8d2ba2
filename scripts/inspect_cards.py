"""Quick DB inspector for cards and tags.

Summarizes card/tag counts, the most used tags and tags no card carries
anymore (reconciliation never deletes tag rows).

Usage:
  uv run scripts/inspect_cards.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path so `app` package imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import select, func

from app.core.config import settings
from app.core.db.base import create_engine, create_session_maker
from app.core.db.schemas.cards import Card, Tag, CardTag


async def main() -> int:
    engine = create_engine(settings.database_dsn)
    session_maker = create_session_maker(engine)
    try:
        async with session_maker() as session:
            total_cards = (
                await session.execute(select(func.count(Card.card_id)))
            ).scalar() or 0
            total_tags = (
                await session.execute(select(func.count(Tag.tag_id)))
            ).scalar() or 0
            untagged = (
                await session.execute(
                    select(func.count(Card.card_id)).where(
                        ~Card.card_id.in_(select(CardTag.card_id))
                    )
                )
            ).scalar() or 0

            print("Cards DB summary:")
            print(f"- Cards: {total_cards} ({untagged} without tags)")
            print(f"- Tags: {total_tags}")

            usage_q = (
                select(Tag.tag, func.count(CardTag.card_id).label("uses"))
                .outerjoin(CardTag, CardTag.tag_id == Tag.tag_id)
                .group_by(Tag.tag)
                .order_by(func.count(CardTag.card_id).desc(), Tag.tag)
            )
            usage = (await session.execute(usage_q)).all()

            if not usage:
                print("- No tags found.")
                return 0

            print("\nMost used tags:")
            for tag, uses in usage[:10]:
                print(f"  - {tag}: {uses}")

            orphans = [tag for tag, uses in usage if uses == 0]
            if orphans:
                print(f"\nTags without cards ({len(orphans)}): {', '.join(orphans)}")
    finally:
        await engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
