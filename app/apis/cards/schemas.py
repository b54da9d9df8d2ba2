from __future__ import annotations

from pydantic import BaseModel, Field

from app.modules.cards.models import Card


class CardResponse(BaseModel):
    card: Card


class CardListResponse(BaseModel):
    cards: list[Card] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    count: int
