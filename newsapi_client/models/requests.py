from __future__ import annotations

from abc import abstractmethod
from datetime import date, datetime, time, timezone
from typing import Any, ClassVar, Generic, Iterable, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from newsapi_client.errors import RequestValidationError
from newsapi_client.models.enums import Category, Country, Language, SearchIn, SortBy

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100

QueryParams = list[tuple[str, str]]


def _split_ids(value: Any) -> tuple[str, ...] | None:
    """Accept ``"a,b"`` or ``["a", "b"]``; drop blanks."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    ids = tuple(str(v).strip() for v in value if str(v).strip())
    return ids or None


def _as_datetime(value: date) -> datetime:
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _to_request_error(exc: ValidationError) -> RequestValidationError:
    err = exc.errors()[0]
    cause = (err.get("ctx") or {}).get("error")
    if isinstance(cause, RequestValidationError):
        return cause
    field = ".".join(str(part) for part in err["loc"]) or None
    return RequestValidationError(err["msg"], field=field)


class _RequestModel(BaseModel):
    """Base for request filters.

    Every construction path raises ``RequestValidationError`` instead of
    pydantic's ``ValidationError``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise _to_request_error(exc) from exc

    @classmethod
    def model_validate(cls, obj: Any, **kwargs: Any) -> Any:
        try:
            return super().model_validate(obj, **kwargs)
        except ValidationError as exc:
            raise _to_request_error(exc) from exc

    @classmethod
    def model_validate_json(cls, json_data: str | bytes, **kwargs: Any) -> Any:
        try:
            return super().model_validate_json(json_data, **kwargs)
        except ValidationError as exc:
            raise _to_request_error(exc) from exc

    @abstractmethod
    def to_query_params(self) -> QueryParams:
        """Query pairs in the API's parameter names, unset fields omitted."""


class _PagedRequest(_RequestModel):
    page_size: int | None = Field(default=None, ge=MIN_PAGE_SIZE, le=MAX_PAGE_SIZE)
    page: int | None = Field(default=None, ge=1)

    def _paging_params(self) -> QueryParams:
        params: QueryParams = []
        if self.page_size is not None:
            params.append(("pageSize", str(self.page_size)))
        if self.page is not None:
            params.append(("page", str(self.page)))
        return params


class TopHeadlinesRequest(_PagedRequest):
    """Filters for ``/v2/top-headlines``.

    ``sources`` cannot be mixed with ``country`` or ``category``, and at
    least one filter must be set.
    """

    country: Country | None = None
    category: Category | None = None
    sources: tuple[str, ...] | None = None
    q: str | None = None

    @field_validator("sources", mode="before")
    @classmethod
    def split_sources(cls, value: Any) -> tuple[str, ...] | None:
        return _split_ids(value)

    @model_validator(mode="after")
    def check_filters(self) -> TopHeadlinesRequest:
        if self.sources and (self.country or self.category):
            raise RequestValidationError(
                "cannot specify sources with country or category", field="sources"
            )
        if not (self.country or self.category or self.sources or self.q):
            raise RequestValidationError(
                "at least one of category, country, q or sources is required"
            )
        return self

    @classmethod
    def builder(cls) -> TopHeadlinesRequestBuilder:
        return TopHeadlinesRequestBuilder()

    def to_query_params(self) -> QueryParams:
        params: QueryParams = []
        if self.country:
            params.append(("country", self.country.value))
        if self.category:
            params.append(("category", self.category.value))
        if self.sources:
            params.append(("sources", ",".join(self.sources)))
        if self.q:
            params.append(("q", self.q))
        return params + self._paging_params()


class EverythingRequest(_PagedRequest):
    """Filters for ``/v2/everything``.

    One of ``q``, ``sources`` or ``domains`` must be set. Dates without a
    timezone are taken as UTC when the range is checked.
    """

    q: str | None = None
    search_in: tuple[SearchIn, ...] | None = None
    sources: tuple[str, ...] | None = None
    domains: tuple[str, ...] | None = None
    exclude_domains: tuple[str, ...] | None = None
    from_date: datetime | date | None = None
    to_date: datetime | date | None = None
    language: Language | None = None
    sort_by: SortBy | None = None

    @field_validator("sources", "domains", "exclude_domains", mode="before")
    @classmethod
    def split_lists(cls, value: Any) -> tuple[str, ...] | None:
        return _split_ids(value)

    @field_validator("search_in", mode="before")
    @classmethod
    def split_search_in(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _split_ids(value)
        if isinstance(value, SearchIn):
            return (value,)
        return value

    @model_validator(mode="after")
    def check_filters(self) -> EverythingRequest:
        if not (self.q or self.sources or self.domains):
            raise RequestValidationError(
                "at least one of q, sources or domains is required"
            )
        if self.from_date and self.to_date:
            if _as_datetime(self.from_date) > _as_datetime(self.to_date):
                raise RequestValidationError(
                    "from_date must not be after to_date", field="from_date"
                )
        return self

    @classmethod
    def builder(cls) -> EverythingRequestBuilder:
        return EverythingRequestBuilder()

    def to_query_params(self) -> QueryParams:
        params: QueryParams = []
        if self.q:
            params.append(("q", self.q))
        if self.search_in:
            params.append(("searchIn", ",".join(s.value for s in self.search_in)))
        if self.sources:
            params.append(("sources", ",".join(self.sources)))
        if self.domains:
            params.append(("domains", ",".join(self.domains)))
        if self.exclude_domains:
            params.append(("excludeDomains", ",".join(self.exclude_domains)))
        if self.from_date:
            params.append(("from", self.from_date.isoformat()))
        if self.to_date:
            params.append(("to", self.to_date.isoformat()))
        if self.language:
            params.append(("language", self.language.value))
        if self.sort_by:
            params.append(("sortBy", self.sort_by.value))
        return params + self._paging_params()


class SourcesRequest(_RequestModel):
    """Filters for ``/v2/top-headlines/sources``. All optional."""

    category: Category | None = None
    language: Language | None = None
    country: Country | None = None

    @classmethod
    def builder(cls) -> SourcesRequestBuilder:
        return SourcesRequestBuilder()

    def to_query_params(self) -> QueryParams:
        params: QueryParams = []
        if self.category:
            params.append(("category", self.category.value))
        if self.language:
            params.append(("language", self.language.value))
        if self.country:
            params.append(("country", self.country.value))
        return params


# ── Builders ─────────────────────────────────────────────────

R = TypeVar("R", bound=_RequestModel)


class _RequestBuilder(Generic[R]):
    """Accumulates fields; ``build()`` validates and freezes them."""

    model: ClassVar[type[_RequestModel]]

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> Any:
        self._fields[name] = value
        return self

    def build(self) -> R:
        return self.model(**self._fields)  # type: ignore[return-value]


class TopHeadlinesRequestBuilder(_RequestBuilder[TopHeadlinesRequest]):
    model = TopHeadlinesRequest

    def country(self, country: Country | str) -> TopHeadlinesRequestBuilder:
        return self._set("country", country)

    def category(self, category: Category | str) -> TopHeadlinesRequestBuilder:
        return self._set("category", category)

    def sources(self, sources: str | Iterable[str]) -> TopHeadlinesRequestBuilder:
        return self._set("sources", sources)

    def search_term(self, q: str) -> TopHeadlinesRequestBuilder:
        return self._set("q", q)

    def page_size(self, page_size: int) -> TopHeadlinesRequestBuilder:
        return self._set("page_size", page_size)

    def page(self, page: int) -> TopHeadlinesRequestBuilder:
        return self._set("page", page)


class EverythingRequestBuilder(_RequestBuilder[EverythingRequest]):
    model = EverythingRequest

    def search_term(self, q: str) -> EverythingRequestBuilder:
        return self._set("q", q)

    def search_in(self, *fields: SearchIn | str) -> EverythingRequestBuilder:
        return self._set("search_in", fields)

    def sources(self, sources: str | Iterable[str]) -> EverythingRequestBuilder:
        return self._set("sources", sources)

    def domains(self, domains: str | Iterable[str]) -> EverythingRequestBuilder:
        return self._set("domains", domains)

    def exclude_domains(self, domains: str | Iterable[str]) -> EverythingRequestBuilder:
        return self._set("exclude_domains", domains)

    def from_date(self, start: datetime | date) -> EverythingRequestBuilder:
        return self._set("from_date", start)

    def to_date(self, end: datetime | date) -> EverythingRequestBuilder:
        return self._set("to_date", end)

    def language(self, language: Language | str) -> EverythingRequestBuilder:
        return self._set("language", language)

    def sort_by(self, sort_by: SortBy | str) -> EverythingRequestBuilder:
        return self._set("sort_by", sort_by)

    def page_size(self, page_size: int) -> EverythingRequestBuilder:
        return self._set("page_size", page_size)

    def page(self, page: int) -> EverythingRequestBuilder:
        return self._set("page", page)


class SourcesRequestBuilder(_RequestBuilder[SourcesRequest]):
    model = SourcesRequest

    def category(self, category: Category | str) -> SourcesRequestBuilder:
        return self._set("category", category)

    def language(self, language: Language | str) -> SourcesRequestBuilder:
        return self._set("language", language)

    def country(self, country: Country | str) -> SourcesRequestBuilder:
        return self._set("country", country)
