"""Magazine content routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging_config import get_logger
from app.core.response import ResponseModel, success_response
from app.db.deps import get_db
from app.models.magazine import Magazine as MagazineModel
from app.schemas.magazines import MagazineCreate, MagazineListItem, MagazineOut, parse_tags

logger = get_logger(__name__)

router = APIRouter(prefix="/magazines", tags=["magazines"])


@router.get("", response_model=ResponseModel)
async def list_magazines(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List magazines, newest first."""
    limit = limit or settings.MAGAZINE_LIST_DEFAULT_LIMIT
    result = await db.execute(
        select(MagazineModel).order_by(MagazineModel.created_at.desc()).limit(limit)
    )
    items = [
        MagazineListItem.model_validate(m).model_dump(mode="json")
        for m in result.scalars().all()
    ]
    return success_response(data=items)


@router.get("/{magazine_id}", response_model=ResponseModel)
async def get_magazine(magazine_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    magazine = await db.get(MagazineModel, magazine_id)
    if not magazine:
        raise HTTPException(status_code=404, detail="매거진을 찾을 수 없습니다.")
    return success_response(data=MagazineOut.model_validate(magazine).model_dump(mode="json"))


@router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_magazine(payload: MagazineCreate, db: AsyncSession = Depends(get_db)):
    """Create a magazine.

    ``tags`` is a whitespace separated string stored as a list, or NULL when empty.
    ``image_url`` is stored as given.
    """
    magazine = MagazineModel(
        category=payload.category,
        title=payload.title,
        description=payload.description,
        content=payload.content,
        image_url=payload.image_url,
        tags=parse_tags(payload.tags),
    )
    try:
        db.add(magazine)
        await db.commit()
        await db.refresh(magazine)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Magazine insert failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"등록 실패: {e}")

    logger.info(f"Magazine created: id={magazine.id}, category={magazine.category}")
    return success_response(status_code=status.HTTP_201_CREATED, id=str(magazine.id))
