from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from conftest import API_KEY_INVALID_PAYLOAD, ARTICLES_PAYLOAD, SOURCES_PAYLOAD
from newsapi_client import (
    ApiError,
    ArticlesResponse,
    Category,
    ConfigurationError,
    Country,
    DecodeError,
    ErrorCode,
    EverythingRequest,
    NewsApiClient,
    RequestValidationError,
    RetryPolicy,
    ServerError,
    Settings,
    SourcesRequest,
    TopHeadlinesRequest,
    TransportError,
)


def make_client(upstream, retry: RetryPolicy | None = None, **kwargs) -> NewsApiClient:
    return NewsApiClient(
        "test-key", retry=retry, transport=upstream.transport(), **kwargs
    )


# ── Success paths ────────────────────────────────────────────


def test_top_headlines_success(upstream):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    request = TopHeadlinesRequest.builder().country(Country.US).page_size(2).build()

    with make_client(server) as client:
        response = client.get_top_headlines(request)

    assert isinstance(response, ArticlesResponse)
    assert response.status == "ok"
    assert response.total_results == 2
    first = response.articles[0]
    assert first.source.id == "bbc-news"
    assert first.url_to_image == "https://ichef.bbci.co.uk/news/1.jpg"
    assert first.published_at == datetime(2025, 3, 18, 9, 15, tzinfo=timezone.utc)
    assert response.articles[1].author is None

    sent = server.requests[0]
    assert sent.method == "GET"
    assert sent.url.path == "/v2/top-headlines"
    assert sent.url.params["country"] == "us"
    assert sent.url.params["pageSize"] == "2"
    assert sent.headers["Authorization"] == "Bearer test-key"
    assert sent.headers["User-Agent"].startswith("newsapi-client/")


def test_everything_with_keyword_filters(upstream):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    with make_client(server) as client:
        response = client.get_everything(q="nvidia", language="en", sort_by="relevancy")

    assert len(response.articles) == 2
    params = server.requests[0].url.params
    assert server.requests[0].url.path == "/v2/everything"
    assert params["q"] == "nvidia"
    assert params["language"] == "en"
    assert params["sortBy"] == "relevancy"
    assert "apiKey" not in params


def test_sources_success(upstream):
    server = upstream(httpx.Response(200, json=SOURCES_PAYLOAD))
    with make_client(server) as client:
        response = client.get_sources(SourcesRequest(category=Category.GENERAL))

    assert response.sources[0].id == "bbc-news"
    assert response.sources[0].country == "gb"
    assert server.requests[0].url.path == "/v2/top-headlines/sources"
    assert server.requests[0].url.params["category"] == "general"


def test_custom_base_url(upstream):
    server = upstream(httpx.Response(200, json=SOURCES_PAYLOAD))
    with make_client(server, base_url="https://proxy.internal/newsapi/") as client:
        client.get_sources()
    assert str(server.requests[0].url).startswith(
        "https://proxy.internal/newsapi/v2/top-headlines/sources"
    )


# ── Validation happens before the network ────────────────────


@pytest.mark.parametrize("page_size", [0, 101])
def test_page_size_rejected_without_network(upstream, page_size):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    with make_client(server) as client:
        with pytest.raises(RequestValidationError):
            client.get_top_headlines(country="us", page_size=page_size)
    assert server.calls == 0


def test_missing_top_headline_filters_rejected_without_network(upstream):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        with pytest.raises(RequestValidationError):
            client.get_top_headlines()
    assert server.calls == 0


def test_request_and_filters_together_rejected(upstream):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    with make_client(server) as client:
        with pytest.raises(RequestValidationError, match="not both"):
            client.get_top_headlines(TopHeadlinesRequest(q="ai"), country="us")
    assert server.calls == 0


def test_wrong_request_type_rejected(upstream):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    with make_client(server) as client:
        with pytest.raises(RequestValidationError, match="EverythingRequest"):
            client.get_everything(TopHeadlinesRequest(q="ai"))
    assert server.calls == 0


# ── Upstream errors ──────────────────────────────────────────


def test_api_key_invalid_not_retried(upstream, retry_log):
    server = upstream(httpx.Response(401, json=API_KEY_INVALID_PAYLOAD))
    with make_client(server, retry=RetryPolicy.constant(0.001, 5)) as client:
        with pytest.raises(ApiError) as exc_info:
            client.get_top_headlines(q="ai")

    err = exc_info.value
    assert not isinstance(err, ServerError)
    assert err.code is ErrorCode.API_KEY_INVALID
    assert err.status_code == 401
    assert err.message == "Your API key is invalid or incorrect."
    assert server.calls == 1
    assert retry_log() == []


def test_error_status_in_ok_response(upstream):
    server = upstream(httpx.Response(200, json=API_KEY_INVALID_PAYLOAD))
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        with pytest.raises(ApiError) as exc_info:
            client.get_sources()
    assert exc_info.value.code is ErrorCode.API_KEY_INVALID
    assert server.calls == 1


def test_rate_limited_without_code(upstream):
    server = upstream(httpx.Response(429, text="Too many requests, rate limit hit"))
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        with pytest.raises(ApiError) as exc_info:
            client.get_everything(q="ai")
    assert exc_info.value.code is ErrorCode.RATE_LIMITED
    assert "Rate limit exceeded" in exc_info.value.message
    assert server.calls == 1


def test_unrecognised_code_maps_to_unexpected(upstream):
    server = upstream(
        httpx.Response(400, json={"status": "error", "code": "brandNew", "message": "?"})
    )
    with make_client(server) as client:
        with pytest.raises(ApiError) as exc_info:
            client.get_everything(q="ai")
    assert exc_info.value.code is ErrorCode.UNEXPECTED_ERROR
    assert exc_info.value.message == "?"


def test_undocumented_4xx_is_terminal(upstream):
    server = upstream(httpx.Response(418, text="teapot"))
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        with pytest.raises(ApiError) as exc_info:
            client.get_everything(q="ai")
    assert exc_info.value.message == "Failed to parse error response"
    assert server.calls == 1


def test_invalid_json_is_decode_error(upstream):
    server = upstream(httpx.Response(200, text="<html>oops</html>"))
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        with pytest.raises(DecodeError):
            client.get_top_headlines(q="ai")
    assert server.calls == 1


def test_unexpected_shape_is_decode_error(upstream):
    server = upstream(httpx.Response(200, json={"status": "ok", "articles": "nope"}))
    with make_client(server) as client:
        with pytest.raises(DecodeError):
            client.get_top_headlines(q="ai")


# ── Retries ──────────────────────────────────────────────────


def test_server_errors_then_success_constant(upstream, retry_log):
    server = upstream(
        httpx.Response(500, json={"status": "error", "code": "unexpectedError", "message": "x"}),
        httpx.Response(500, text="Internal Server Error"),
        httpx.Response(200, json=ARTICLES_PAYLOAD),
    )
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        response = client.get_top_headlines(q="ai")

    assert response.total_results == 2
    assert server.calls == 3
    assert retry_log() == [0.001, 0.001]


def test_exponential_exhaustion(upstream, retry_log):
    server = upstream(httpx.Response(503, text="unavailable"))
    with make_client(server, retry=RetryPolicy.exponential(0.001, 3)) as client:
        with pytest.raises(ServerError) as exc_info:
            client.get_everything(q="ai")

    assert exc_info.value.status_code == 503
    assert server.calls == 4
    assert retry_log() == [0.001, 0.002, 0.004]


@pytest.mark.parametrize(
    "failure",
    [
        httpx.Response(500, text="boom"),
        httpx.ConnectError("connection refused"),
        httpx.Response(401, json=API_KEY_INVALID_PAYLOAD),
    ],
)
def test_none_strategy_single_attempt(upstream, retry_log, failure):
    server = upstream(failure)
    with make_client(server, retry=RetryPolicy.none()) as client:
        with pytest.raises((ApiError, TransportError)):
            client.get_top_headlines(q="ai")
    assert server.calls == 1
    assert retry_log() == []


def test_transport_errors_retried_then_raised(upstream, retry_log):
    server = upstream(httpx.ReadTimeout("timed out"))
    with make_client(server, retry=RetryPolicy.linear(0.001, 2)) as client:
        with pytest.raises(TransportError) as exc_info:
            client.get_sources()

    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
    assert server.calls == 3
    assert retry_log() == [0.001, 0.002]


# ── Construction ─────────────────────────────────────────────


def test_missing_api_key():
    with pytest.raises(ConfigurationError, match="NEWS_API_KEY"):
        NewsApiClient()


def test_api_key_precedence(monkeypatch, upstream):
    monkeypatch.setenv("NEWS_API_KEY", "env-key")
    settings = Settings(api_key="settings-key")

    def key_sent(*args, **kwargs) -> str:
        server = upstream(httpx.Response(200, json=SOURCES_PAYLOAD))
        with NewsApiClient(*args, transport=server.transport(), **kwargs) as client:
            client.get_sources()
        return server.requests[0].headers["Authorization"]

    assert key_sent("explicit-key", settings=settings) == "Bearer explicit-key"
    assert key_sent(settings=settings) == "Bearer settings-key"
    assert key_sent() == "Bearer env-key"


def test_from_env(monkeypatch):
    monkeypatch.setenv("NEWS_API_KEY", "env-key")
    monkeypatch.setenv("NEWS_API_RETRY_STRATEGY", "exponential")
    monkeypatch.setenv("NEWS_API_RETRY_DELAY", "0.25")
    monkeypatch.setenv("NEWS_API_MAX_RETRIES", "2")
    with NewsApiClient.from_env() as client:
        assert client.retry_policy == RetryPolicy.exponential(0.25, 2)


def test_invalid_base_url():
    with pytest.raises(ConfigurationError):
        NewsApiClient("k", base_url="not a url")


def test_builder(upstream):
    server = upstream(httpx.Response(200, json=ARTICLES_PAYLOAD))
    client = (
        NewsApiClient.builder()
        .api_key("builder-key")
        .retry(RetryPolicy.constant(0.001, 2))
        .timeout(5.0)
        .transport(server.transport())
        .build()
    )
    with client:
        client.get_everything(EverythingRequest(q="ai"))
        assert client.retry_policy.max_retries == 2
    assert server.requests[0].headers["Authorization"] == "Bearer builder-key"


def test_repr_hides_key():
    with NewsApiClient("super-secret") as client:
        assert "super-secret" not in repr(client)


def test_corrupt_compressed_body_is_decode_error(upstream):
    server = upstream(
        httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip at all"))
    )
    with make_client(server, retry=RetryPolicy.constant(0.001, 3)) as client:
        with pytest.raises(DecodeError) as exc_info:
            client.get_top_headlines(q="ai")

    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
    assert server.calls == 1
