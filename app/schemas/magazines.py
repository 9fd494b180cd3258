from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError


def parse_tags(raw: Optional[str]) -> Optional[List[str]]:
    """Split a whitespace separated tag string. ``"React  #Node"`` -> ``["React", "#Node"]``."""
    if not raw or not raw.strip():
        return None
    tags = [tag for tag in raw.split() if tag]
    return tags or None


class MagazineCreate(BaseModel):
    category: str = Field("", validate_default=True, description="Magazine category")
    title: str = Field("", validate_default=True)
    description: str = ""
    content: str = ""
    image_url: str = Field("", description="Image path or URL; uploads are handled elsewhere")
    tags: Optional[str] = Field(None, description="Whitespace separated tags")

    @field_validator("category")
    @classmethod
    def _require_category(cls, value: str) -> str:
        if not value or not value.strip():
            raise PydanticCustomError("category_required", "카테고리를 선택해주세요.")
        return value.strip()

    @field_validator("title")
    @classmethod
    def _require_title(cls, value: str) -> str:
        if not value or not value.strip():
            raise PydanticCustomError("title_required", "제목을 입력해주세요.")
        return value.strip()

    @field_validator("description", "content", "image_url")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class MagazineListItem(BaseModel):
    id: UUID
    category: str
    title: str
    description: str
    image_url: str
    tags: Optional[List[str]] = None

    model_config = ConfigDict(from_attributes=True)


class MagazineOut(MagazineListItem):
    content: str
    created_at: Optional[datetime] = None
