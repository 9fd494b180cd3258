from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from app.models.magazine import Magazine
from app.utils.datetime_utils import get_current_utc_datetime

pytestmark = pytest.mark.anyio


async def _seed_magazines(db_session, count: int):
    now = get_current_utc_datetime()
    magazines = [
        Magazine(
            category="frontend",
            title=f"Issue {i}",
            description=f"desc {i}",
            content=f"content {i}",
            image_url=f"/images/{i}.png",
            tags=["React"] if i % 2 else None,
            created_at=now - timedelta(minutes=count - i),
        )
        for i in range(count)
    ]
    db_session.add_all(magazines)
    await db_session.commit()
    return magazines


async def test_list_magazines_newest_first_with_default_limit(client, db_session):
    await _seed_magazines(db_session, 12)

    resp = await client.get("/api/v1/magazines")
    assert resp.status_code == 200
    payload = resp.json()

    assert payload["success"] is True
    assert "checklist" not in payload
    titles = [m["title"] for m in payload["data"]]
    assert titles == [f"Issue {i}" for i in range(11, 1, -1)]
    assert set(payload["data"][0]) == {"id", "category", "title", "description", "image_url", "tags"}


async def test_list_magazines_respects_limit(client, db_session):
    await _seed_magazines(db_session, 3)

    resp = await client.get("/api/v1/magazines", params={"limit": 2})
    assert [m["title"] for m in resp.json()["data"]] == ["Issue 2", "Issue 1"]


@pytest.mark.parametrize("limit", [0, 101])
async def test_list_magazines_rejects_out_of_range_limit(client, limit):
    resp = await client.get("/api/v1/magazines", params={"limit": limit})
    assert resp.status_code == 422
    assert resp.json()["success"] is False


async def test_get_magazine(client, db_session):
    magazines = await _seed_magazines(db_session, 1)

    resp = await client.get(f"/api/v1/magazines/{magazines[0].id}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == str(magazines[0].id)
    assert data["content"] == "content 0"
    assert data.get("tags") is None


async def test_get_missing_magazine_returns_404(client):
    resp = await client.get(f"/api/v1/magazines/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "매거진을 찾을 수 없습니다."}


async def test_create_magazine_trims_fields_and_parses_tags(client, db_session):
    resp = await client.post(
        "/api/v1/magazines",
        json={
            "category": " backend ",
            "title": "  FastAPI in production ",
            "description": " short ",
            "content": "body",
            "image_url": "/images/cover.png",
            "tags": "  Python   #FastAPI ",
        },
    )
    assert resp.status_code == 201
    payload = resp.json()
    assert payload["success"] is True

    saved = await db_session.get(Magazine, uuid.UUID(payload["id"]))
    assert saved.category == "backend"
    assert saved.title == "FastAPI in production"
    assert saved.description == "short"
    assert saved.tags == ["Python", "#FastAPI"]


async def test_create_magazine_stores_null_for_blank_tags(client, db_session):
    resp = await client.post("/api/v1/magazines", json={"category": "ai", "title": "LLMs", "tags": "   "})
    assert resp.status_code == 201

    saved = await db_session.get(Magazine, uuid.UUID(resp.json()["id"]))
    assert saved.tags is None
    assert saved.content == ""


@pytest.mark.parametrize(
    "body, field, message",
    [
        ({"title": "No category"}, "category", "카테고리를 선택해주세요."),
        ({"category": "ai", "title": "   "}, "title", "제목을 입력해주세요."),
    ],
)
async def test_create_magazine_requires_category_and_title(client, body, field, message):
    resp = await client.post("/api/v1/magazines", json=body)
    assert resp.status_code == 422
    payload = resp.json()

    assert payload["success"] is False
    assert payload["error_code"] == "VALIDATION_ERROR"
    detail = payload["details"][0]
    assert detail["field"] == field
    assert detail["message"] == message
