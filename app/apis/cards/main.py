from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from starlette.datastructures import QueryParams

from app.apis.deps import get_card_service
from app.core.db_services import CardService
from app.modules.cards.models import CardCreate, CardUpdate
from .schemas import CardResponse, CardListResponse, DeleteResponse


router = APIRouter()

# Query keys that are find options rather than equality filters
LIST_OPTIONS = ("tagsAll", "tagsNone")
SCALAR_OPTIONS = ("limit", "offset")


def split_query(params: QueryParams) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a query string into ``(filter, options)`` mappings.

    ``tagsAll``/``tagsNone`` may repeat; anything that is not an option is
    handed to the finder as a filter field and validated there.
    """
    card_filter: dict[str, Any] = {}
    options: dict[str, Any] = {}
    for key in params.keys():
        if key in LIST_OPTIONS:
            options[key] = params.getlist(key)
        elif key in SCALAR_OPTIONS:
            options[key] = params[key]
        else:
            card_filter[key] = params[key]
    return card_filter, options


@router.post(
    "/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["cards"],
)
async def create_card(
    data: CardCreate,
    service: CardService = Depends(get_card_service),
) -> CardResponse:
    card = await service.create(data)
    return CardResponse(card=card)


@router.get(
    "/cards",
    response_model=CardListResponse,
    tags=["cards"],
)
async def list_cards(
    request: Request,
    service: CardService = Depends(get_card_service),
) -> CardListResponse:
    card_filter, options = split_query(request.query_params)
    cards = await service.find(card_filter, options)
    return CardListResponse(cards=cards)


@router.get(
    "/cards/{card_id:int}",
    response_model=CardResponse,
    tags=["cards"],
)
async def get_card(
    card_id: int,
    service: CardService = Depends(get_card_service),
) -> CardResponse:
    card = await service.get(card_id)
    return CardResponse(card=card)


@router.patch(
    "/cards/{card_id:int}",
    response_model=CardResponse,
    tags=["cards"],
)
async def update_card(
    card_id: int,
    patch: CardUpdate,
    service: CardService = Depends(get_card_service),
) -> CardResponse:
    card = await service.update(card_id, patch)
    return CardResponse(card=card)


@router.delete(
    "/cards/{card_id:int}",
    response_model=DeleteResponse,
    tags=["cards"],
)
async def delete_card(
    card_id: int,
    service: CardService = Depends(get_card_service),
) -> DeleteResponse:
    count = await service.delete(card_id)
    return DeleteResponse(count=count)
