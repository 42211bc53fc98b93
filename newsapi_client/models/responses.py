from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ResponseModel(BaseModel):
    # Upstream uses camelCase keys and may add fields at any time.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ArticleSource(_ResponseModel):
    id: str | None = None
    name: str = ""


class Article(_ResponseModel):
    source: ArticleSource = Field(default_factory=ArticleSource)
    author: str | None = None
    title: str = ""
    description: str | None = None
    url: str = ""
    url_to_image: str | None = None
    published_at: datetime | None = None
    content: str | None = None


class SourceInfo(_ResponseModel):
    id: str
    name: str
    description: str = ""
    url: str = ""
    category: str = ""
    language: str = ""
    country: str = ""


class ArticlesResponse(_ResponseModel):
    """Envelope returned by the top-headlines and everything endpoints."""

    status: str
    total_results: int = 0
    articles: list[Article] = Field(default_factory=list)


class SourcesResponse(_ResponseModel):
    status: str
    sources: list[SourceInfo] = Field(default_factory=list)


class ErrorBody(_ResponseModel):
    """Body of a failed call: ``{"status": "error", "code": ..., "message": ...}``."""

    status: str = "error"
    code: str | None = None
    message: str | None = None
