"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import copy

import httpx
import pytest

from app.clients import InstagramProvider, LinkedInProvider, SQLiteStore, TwitterProvider
from app.core.config import AppSettings, get_settings
from app.services import AccountService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


def _without_query(url: httpx.URL) -> str:
    return str(url).split("?", 1)[0]


class RecordingTransport(httpx.AsyncBaseTransport):
    """Serve canned provider responses and remember every outbound request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], httpx.Response] = {}

    def add(self, method: str, url: str, response: httpx.Response) -> None:
        self.routes[(method, url)] = response

    def urls(self) -> list[str]:
        return [f"{request.method} {_without_query(request.url)}" for request in self.requests]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _without_query(request.url))
        response = self.routes.get(key)
        if response is None:
            return httpx.Response(404, json={"error": f"no route for {key}"})
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            content=response.content,
        )


@pytest.fixture
def settings() -> AppSettings:
    return copy.deepcopy(get_settings())


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def providers(settings: AppSettings, transport: RecordingTransport) -> dict:
    return {
        cls.name: cls(
            settings.provider_settings(cls.name),
            base_url=settings.base_url,
            transport=transport,
        )
        for cls in (TwitterProvider, LinkedInProvider, InstagramProvider)
    }


@pytest.fixture
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "documents.db"))


@pytest.fixture
def account_service(store: SQLiteStore) -> AccountService:
    return AccountService(store)
