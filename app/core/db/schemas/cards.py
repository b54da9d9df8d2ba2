from __future__ import annotations

from typing import Optional
from sqlalchemy import (
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.base import Base


class Card(Base):
    __tablename__ = "cards"

    card_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Read-only view; associations are written by the tag reconciler only
    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        secondary="card_tags",
        order_by="Tag.tag",
        viewonly=True,
    )


class Tag(Base):
    __tablename__ = "tags"

    tag_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tag: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)


class CardTag(Base):
    __tablename__ = "card_tags"

    card_id: Mapped[int] = mapped_column(
        ForeignKey("cards.card_id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        ForeignKey("tags.tag_id", ondelete="RESTRICT"), primary_key=True, index=True
    )


__all__ = [
    "Card",
    "Tag",
    "CardTag",
]
