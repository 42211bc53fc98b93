from __future__ import annotations

import logging
import os
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from newsapi_client.config import (
    EVERYTHING_ENDPOINT,
    NEWS_API_KEY_ENV,
    SOURCES_ENDPOINT,
    TOP_HEADLINES_ENDPOINT,
    Settings,
)
from newsapi_client.errors import (
    ApiError,
    ConfigurationError,
    DecodeError,
    ErrorCode,
    RequestValidationError,
    ServerError,
    TransportError,
)
from newsapi_client.models.requests import (
    EverythingRequest,
    QueryParams,
    SourcesRequest,
    TopHeadlinesRequest,
    _RequestModel,
)
from newsapi_client.models.responses import ArticlesResponse, ErrorBody, SourcesResponse
from newsapi_client.utils.retry import RETRYABLE_STATUS_CODES, RetryPolicy

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
Q = TypeVar("Q", bound=_RequestModel)

_RATE_LIMIT_MESSAGE = "You have made too many requests. Rate limit exceeded."


def resolve_api_key(explicit: str | None, configured: str | None = None) -> str:
    """Pick the API key: explicit argument, then settings, then the environment."""
    for candidate in (explicit, configured, os.environ.get(NEWS_API_KEY_ENV)):
        if candidate and candidate.strip():
            return candidate.strip()
    raise ConfigurationError(
        "API key must be provided either explicitly or via the "
        f"{NEWS_API_KEY_ENV} environment variable"
    )


def _error_code(raw: str | None, status_code: int) -> ErrorCode:
    if raw:
        try:
            return ErrorCode(raw)
        except ValueError:
            logger.debug("Unrecognised error code from upstream: %s", raw)
    if status_code == 429:
        return ErrorCode.RATE_LIMITED
    return ErrorCode.UNEXPECTED_ERROR


def parse_error_response(text: str, status_code: int) -> ApiError:
    """Map a failed response body to ``ApiError`` (``ServerError`` for 5xx)."""
    error_cls = ServerError if status_code in RETRYABLE_STATUS_CODES else ApiError
    try:
        body = ErrorBody.model_validate_json(text)
    except ValidationError:
        lowered = text.lower()
        if "too many requests" in lowered or "rate limit" in lowered:
            message = _RATE_LIMIT_MESSAGE
        else:
            message = "Failed to parse error response"
        return error_cls(_error_code(None, status_code), message, status_code=status_code)

    return error_cls(
        _error_code(body.code, status_code),
        body.message or "Unknown error",
        status_code=status_code,
        status=body.status,
    )


def coerce_request(request_cls: type[Q], request: Q | None, filters: dict[str, Any]) -> Q:
    """Accept a built request or keyword filters, never both."""
    if request is None:
        return request_cls(**filters)
    if filters:
        raise RequestValidationError(
            "pass either a request object or keyword filters, not both"
        )
    if not isinstance(request, request_cls):
        raise RequestValidationError(
            f"expected {request_cls.__name__}, got {type(request).__name__}"
        )
    return request


class _NewsApiBase:
    """State and response handling shared by the blocking and async clients."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        settings: Settings | None = None,
        retry: RetryPolicy | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = settings or Settings()
        self._api_key = resolve_api_key(api_key, settings.api_key)
        self._base_url = (base_url or settings.base_url).rstrip("/")
        try:
            url = httpx.URL(self._base_url)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"Invalid base URL: {self._base_url!r}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(f"Invalid base URL: {self._base_url!r}")
        self._timeout = settings.timeout if timeout is None else timeout
        self._retry = retry or settings.retry_policy()
        self._headers = {
            "Authorization": f"Bearer {self._api_key}",
            "User-Agent": settings.user_agent,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(base_url={self._base_url!r}, "
            f"retry={self._retry!r})"
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @staticmethod
    def _handle_response(response: httpx.Response, model: type[M]) -> M:
        logger.debug("Response status: %d", response.status_code)
        if not response.is_success:
            raise parse_error_response(response.text, response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(f"Response body is not valid JSON: {exc}") from exc

        # NewsAPI may report a logical failure with a 2xx status
        if isinstance(payload, dict) and payload.get("status") == "error":
            raise parse_error_response(response.text, response.status_code)

        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise DecodeError(
                f"Unexpected {model.__name__} payload: {exc.error_count()} error(s)"
            ) from exc


class NewsApiClient(_NewsApiBase):
    """Blocking client. The calling thread waits on I/O and retry delays."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        settings: Settings | None = None,
        retry: RetryPolicy | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_key, settings=settings, retry=retry, base_url=base_url, timeout=timeout
        )
        self._http = httpx.Client(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=transport,
        )

    @classmethod
    def from_env(cls, dotenv_path: str | None = None, **kwargs: Any) -> NewsApiClient:
        return cls(settings=Settings.from_env(dotenv_path), **kwargs)

    @classmethod
    def builder(cls) -> NewsApiClientBuilder:
        return NewsApiClientBuilder()

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> NewsApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Endpoints ────────────────────────────────────────────

    def get_top_headlines(
        self, request: TopHeadlinesRequest | None = None, **filters: Any
    ) -> ArticlesResponse:
        """Breaking-news headlines filtered by country, category, sources or query."""
        request = coerce_request(TopHeadlinesRequest, request, filters)
        return self._get(TOP_HEADLINES_ENDPOINT, request.to_query_params(), ArticlesResponse)

    def get_everything(
        self, request: EverythingRequest | None = None, **filters: Any
    ) -> ArticlesResponse:
        """Full-text search over the article archive."""
        request = coerce_request(EverythingRequest, request, filters)
        return self._get(EVERYTHING_ENDPOINT, request.to_query_params(), ArticlesResponse)

    def get_sources(
        self, request: SourcesRequest | None = None, **filters: Any
    ) -> SourcesResponse:
        """Publishers available to the top-headlines endpoint."""
        request = coerce_request(SourcesRequest, request, filters)
        return self._get(SOURCES_ENDPOINT, request.to_query_params(), SourcesResponse)

    # ── HTTP helpers ─────────────────────────────────────────

    def _get(self, path: str, params: QueryParams, model: type[M]) -> M:
        retrying = self._retry.retrying(label=path)
        return retrying(self._send, path, params, model)

    def _send(self, path: str, params: QueryParams, model: type[M]) -> M:
        logger.debug("GET %s%s params=%s", self._base_url, path, params)
        try:
            response = self._http.get(path, params=params)
        except httpx.TransportError as exc:
            raise TransportError(f"GET {path} failed: {exc!r}") from exc
        except httpx.DecodingError as exc:
            raise DecodeError(f"GET {path} returned an undecodable body: {exc}") from exc
        return self._handle_response(response, model)


class AsyncNewsApiClient(_NewsApiBase):
    """Asyncio client. Safe to share between concurrent tasks."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        settings: Settings | None = None,
        retry: RetryPolicy | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_key, settings=settings, retry=retry, base_url=base_url, timeout=timeout
        )
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=transport,
        )

    @classmethod
    def from_env(cls, dotenv_path: str | None = None, **kwargs: Any) -> AsyncNewsApiClient:
        return cls(settings=Settings.from_env(dotenv_path), **kwargs)

    @classmethod
    def builder(cls) -> NewsApiClientBuilder:
        return NewsApiClientBuilder()

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> AsyncNewsApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Endpoints ────────────────────────────────────────────

    async def get_top_headlines(
        self, request: TopHeadlinesRequest | None = None, **filters: Any
    ) -> ArticlesResponse:
        request = coerce_request(TopHeadlinesRequest, request, filters)
        return await self._get(
            TOP_HEADLINES_ENDPOINT, request.to_query_params(), ArticlesResponse
        )

    async def get_everything(
        self, request: EverythingRequest | None = None, **filters: Any
    ) -> ArticlesResponse:
        request = coerce_request(EverythingRequest, request, filters)
        return await self._get(EVERYTHING_ENDPOINT, request.to_query_params(), ArticlesResponse)

    async def get_sources(
        self, request: SourcesRequest | None = None, **filters: Any
    ) -> SourcesResponse:
        request = coerce_request(SourcesRequest, request, filters)
        return await self._get(SOURCES_ENDPOINT, request.to_query_params(), SourcesResponse)

    # ── HTTP helpers ─────────────────────────────────────────

    async def _get(self, path: str, params: QueryParams, model: type[M]) -> M:
        retrying = self._retry.async_retrying(label=path)
        return await retrying(self._send, path, params, model)

    async def _send(self, path: str, params: QueryParams, model: type[M]) -> M:
        logger.debug("GET %s%s params=%s", self._base_url, path, params)
        try:
            response = await self._http.get(path, params=params)
        except httpx.TransportError as exc:
            raise TransportError(f"GET {path} failed: {exc!r}") from exc
        except httpx.DecodingError as exc:
            raise DecodeError(f"GET {path} returned an undecodable body: {exc}") from exc
        return self._handle_response(response, model)


class NewsApiClientBuilder:
    """Fluent construction for either client flavour.

    >>> client = (
    ...     NewsApiClientBuilder()
    ...     .api_key("...")
    ...     .retry(RetryPolicy.exponential(0.5, max_retries=3))
    ...     .build()
    ... )
    """

    def __init__(self) -> None:
        self._api_key: str | None = None
        self._base_url: str | None = None
        self._retry: RetryPolicy | None = None
        self._timeout: float | None = None
        self._settings: Settings | None = None
        self._transport: Any = None

    def api_key(self, api_key: str) -> NewsApiClientBuilder:
        self._api_key = api_key
        return self

    def base_url(self, base_url: str) -> NewsApiClientBuilder:
        self._base_url = base_url
        return self

    def retry(self, policy: RetryPolicy) -> NewsApiClientBuilder:
        self._retry = policy
        return self

    def timeout(self, seconds: float) -> NewsApiClientBuilder:
        self._timeout = seconds
        return self

    def settings(self, settings: Settings) -> NewsApiClientBuilder:
        self._settings = settings
        return self

    def transport(self, transport: Any) -> NewsApiClientBuilder:
        """Custom httpx transport, e.g. ``httpx.MockTransport`` in tests."""
        self._transport = transport
        return self

    def _kwargs(self) -> dict[str, Any]:
        return {
            "settings": self._settings,
            "retry": self._retry,
            "base_url": self._base_url,
            "timeout": self._timeout,
            "transport": self._transport,
        }

    def build(self) -> NewsApiClient:
        return NewsApiClient(self._api_key, **self._kwargs())

    def build_async(self) -> AsyncNewsApiClient:
        return AsyncNewsApiClient(self._api_key, **self._kwargs())
