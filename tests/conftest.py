from __future__ import annotations

import logging
from typing import Callable, Iterable

import httpx
import pytest

RETRY_LOGGER = "newsapi_client.utils.retry"

ARTICLES_PAYLOAD = {
    "status": "ok",
    "totalResults": 2,
    "articles": [
        {
            "source": {"id": "bbc-news", "name": "BBC News"},
            "author": "BBC News",
            "title": "Markets rally as chipmakers surge",
            "description": "Shares in chipmakers climbed on Tuesday.",
            "url": "https://www.bbc.co.uk/news/business-1",
            "urlToImage": "https://ichef.bbci.co.uk/news/1.jpg",
            "publishedAt": "2025-03-18T09:15:00Z",
            "content": "Shares in chipmakers climbed... [+1200 chars]",
        },
        {
            "source": {"id": None, "name": "Example Wire"},
            "author": None,
            "title": "Second story",
            "description": None,
            "url": "https://example.com/second",
            "urlToImage": None,
            "publishedAt": "2025-03-18T08:00:00Z",
            "content": None,
        },
    ],
}

SOURCES_PAYLOAD = {
    "status": "ok",
    "sources": [
        {
            "id": "bbc-news",
            "name": "BBC News",
            "description": "Use BBC News for up-to-the-minute news.",
            "url": "https://www.bbc.co.uk/news",
            "category": "general",
            "language": "en",
            "country": "gb",
        }
    ],
}

API_KEY_INVALID_PAYLOAD = {
    "status": "error",
    "code": "apiKeyInvalid",
    "message": "Your API key is invalid or incorrect.",
}


class Upstream:
    """Scripted stand-in for the NewsAPI server.

    Each entry in ``script`` is either an ``httpx.Response`` or an exception
    to raise; the last entry repeats once the script runs out.
    """

    def __init__(self, script: Iterable[httpx.Response | Exception]) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        return step

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "NEWS_API_KEY",
        "NEWS_API_BASE_URL",
        "NEWS_API_TIMEOUT",
        "NEWS_API_RETRY_STRATEGY",
        "NEWS_API_RETRY_DELAY",
        "NEWS_API_MAX_RETRIES",
        "NEWS_API_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def upstream() -> Callable[..., Upstream]:
    def make(*script: httpx.Response | Exception) -> Upstream:
        return Upstream(script)

    return make


@pytest.fixture
def retry_log(caplog: pytest.LogCaptureFixture) -> Callable[[], list[float]]:
    """Delays announced by the retry hook, in order."""
    caplog.set_level(logging.WARNING, logger=RETRY_LOGGER)

    def delays() -> list[float]:
        return [
            record.args[2]
            for record in caplog.records
            if record.name == RETRY_LOGGER
        ]

    return delays
