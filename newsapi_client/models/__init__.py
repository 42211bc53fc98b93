from .enums import Category, Country, Language, SearchIn, SortBy
from .requests import (
    EverythingRequest,
    EverythingRequestBuilder,
    SourcesRequest,
    SourcesRequestBuilder,
    TopHeadlinesRequest,
    TopHeadlinesRequestBuilder,
)
from .responses import (
    Article,
    ArticleSource,
    ArticlesResponse,
    ErrorBody,
    SourceInfo,
    SourcesResponse,
)

__all__ = [
    "Article",
    "ArticleSource",
    "ArticlesResponse",
    "Category",
    "Country",
    "ErrorBody",
    "EverythingRequest",
    "EverythingRequestBuilder",
    "Language",
    "SearchIn",
    "SortBy",
    "SourceInfo",
    "SourcesRequest",
    "SourcesRequestBuilder",
    "SourcesResponse",
    "TopHeadlinesRequest",
    "TopHeadlinesRequestBuilder",
]
