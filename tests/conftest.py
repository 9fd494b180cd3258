from __future__ import annotations

import json
import os
import re
import tempfile
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "it-magazine-api-test.log"))
os.environ.pop("PORTONE_WEBHOOK_SECRET", None)

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.db.deps import Base, get_db
from app.main import app as main_app
from app.models import Magazine, Payment  # noqa: F401  registers tables
from app.services.payments.portone_client import PortOneClient, get_portone_client

PORTONE_BASE_URL = "https://api.portone.test"

Responder = Callable[[httpx.Request], httpx.Response]


@dataclass
class RecordedCall:
    method: str
    path: str
    headers: Dict[str, str]
    body: Any


@dataclass
class FakePortOne:
    """Routes PortOneClient traffic to canned responses and records every call."""

    routes: List[Tuple[str, "re.Pattern[str]", Responder]] = field(default_factory=list)
    calls: List[RecordedCall] = field(default_factory=list)

    def on(self, method: str, path_pattern: str, response: Responder) -> None:
        """Register a responder; ``path_pattern`` is a regex matched against the whole path.

        Later registrations take precedence.
        """
        self.routes.insert(0, (method.upper(), re.compile(path_pattern), response))

    def reply(self, method: str, path_pattern: str, status_code: int = 200, body: Any = None) -> None:
        payload = body if body is not None else {}
        self.on(method, path_pattern, lambda request: httpx.Response(status_code, json=payload))

    def calls_to(self, method: str, path_pattern: str) -> List[RecordedCall]:
        pattern = re.compile(path_pattern)
        return [c for c in self.calls if c.method == method.upper() and pattern.fullmatch(c.path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        raw = request.content
        body = json.loads(raw) if raw else None
        self.calls.append(
            RecordedCall(
                method=request.method,
                path=request.url.path,
                headers=dict(request.headers),
                body=body,
            )
        )
        responder = next(
            (r for m, p, r in self.routes if m == request.method and p.fullmatch(request.url.path)),
            None,
        )
        if responder is None:
            return httpx.Response(404, json={"type": "NOT_FOUND", "message": "no route"})
        return responder(request)

    def client(self) -> PortOneClient:
        return PortOneClient(
            "test-secret",
            base_url=PORTONE_BASE_URL,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Ensure pytest-anyio uses asyncio for all async tests."""
    return "asyncio"


@pytest.fixture()
def test_app() -> FastAPI:
    return main_app


@pytest.fixture()
def test_db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test_payments.sqlite'}"


@pytest.fixture()
async def engine(test_db_url: str):
    engine = create_async_engine(test_db_url, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def portone() -> FakePortOne:
    return FakePortOne()


@pytest.fixture()
def portone_client_override(portone: FakePortOne) -> Optional[Callable[[], Optional[PortOneClient]]]:
    """Override in a test module (or parametrize) to simulate a missing secret."""
    return portone.client


@pytest.fixture()
async def client(
    test_app: FastAPI,
    db_session: AsyncSession,
    portone_client_override,
) -> AsyncGenerator[AsyncClient, None]:
    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    test_app.dependency_overrides[get_db] = _get_test_db
    test_app.dependency_overrides[get_portone_client] = portone_client_override

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client

    test_app.dependency_overrides.clear()
