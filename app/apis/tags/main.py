from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.apis.deps import get_card_service
from app.core.db_services import CardService


router = APIRouter()


class TagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    tag_id: int = Field(..., alias="tagId")
    tag: str


class TagListResponse(BaseModel):
    tags: list[TagRead] = Field(default_factory=list)


@router.get(
    "/tags",
    response_model=TagListResponse,
    tags=["tags"],
)
async def list_tags(
    service: CardService = Depends(get_card_service),
) -> TagListResponse:
    rows = await service.list_tags()
    return TagListResponse(
        tags=[TagRead(tag_id=t.tag_id, tag=t.tag) for t in rows]
    )
