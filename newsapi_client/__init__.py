"""Typed client for the NewsAPI REST service.

Example
-------
from newsapi_client import NewsApiClient, TopHeadlinesRequest, Category, Country

with NewsApiClient.from_env() as client:
    request = (
        TopHeadlinesRequest.builder()
        .country(Country.US)
        .category(Category.BUSINESS)
        .page_size(5)
        .build()
    )
    for article in client.get_top_headlines(request).articles:
        print(article.published_at, article.source.name, article.title)
"""
__version__ = "0.1.0"

from .client import AsyncNewsApiClient, NewsApiClient, NewsApiClientBuilder
from .config import Settings
from .errors import (
    ApiError,
    ConfigurationError,
    DecodeError,
    ErrorCode,
    NewsApiError,
    RequestValidationError,
    ServerError,
    TransportError,
)
from .models import (
    Article,
    ArticleSource,
    ArticlesResponse,
    Category,
    Country,
    EverythingRequest,
    Language,
    SearchIn,
    SortBy,
    SourceInfo,
    SourcesRequest,
    SourcesResponse,
    TopHeadlinesRequest,
)
from .utils.retry import RetryPolicy, RetryStrategy

__all__ = [
    "ApiError",
    "Article",
    "ArticleSource",
    "ArticlesResponse",
    "AsyncNewsApiClient",
    "Category",
    "ConfigurationError",
    "Country",
    "DecodeError",
    "ErrorCode",
    "EverythingRequest",
    "Language",
    "NewsApiClient",
    "NewsApiClientBuilder",
    "NewsApiError",
    "RequestValidationError",
    "RetryPolicy",
    "RetryStrategy",
    "SearchIn",
    "ServerError",
    "Settings",
    "SortBy",
    "SourceInfo",
    "SourcesRequest",
    "SourcesResponse",
    "TopHeadlinesRequest",
    "TransportError",
]
