#!/usr/bin/env python3
"""Query NewsAPI from the command line.

Usage:
    python -m scripts.fetch_news headlines --country us --category business
    python -m scripts.fetch_news everything "nvidia stock" --from 2025-02-13 --language en
    python -m scripts.fetch_news sources --language en --async

Reads NEWS_API_KEY (and the other NEWS_API_* settings) from the environment or
from a .env file in the working directory.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from newsapi_client import (
    ArticlesResponse,
    AsyncNewsApiClient,
    NewsApiClient,
    NewsApiError,
    Settings,
    SourcesResponse,
)

logger = logging.getLogger(__name__)

FILTER_KEYS = (
    "country",
    "category",
    "sources",
    "q",
    "search_in",
    "domains",
    "exclude_domains",
    "from_date",
    "to_date",
    "language",
    "sort_by",
    "page_size",
    "page",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query the NewsAPI service")
    parser.add_argument("--async", dest="use_async", action="store_true",
                        help="use the asyncio client")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load")
    sub = parser.add_subparsers(dest="endpoint", required=True)

    headlines = sub.add_parser("headlines", help="top headlines")
    headlines.add_argument("q", nargs="?", default=None)
    headlines.add_argument("--country")
    headlines.add_argument("--category")
    headlines.add_argument("--sources")
    headlines.add_argument("--page-size", type=int)
    headlines.add_argument("--page", type=int)

    everything = sub.add_parser("everything", help="full-text article search")
    everything.add_argument("q", nargs="?", default=None)
    everything.add_argument("--search-in")
    everything.add_argument("--sources")
    everything.add_argument("--domains")
    everything.add_argument("--exclude-domains")
    everything.add_argument("--from", dest="from_date", type=date.fromisoformat)
    everything.add_argument("--to", dest="to_date", type=date.fromisoformat)
    everything.add_argument("--language")
    everything.add_argument("--sort-by")
    everything.add_argument("--page-size", type=int)
    everything.add_argument("--page", type=int)

    sources = sub.add_parser("sources", help="list publishers")
    sources.add_argument("--category")
    sources.add_argument("--language")
    sources.add_argument("--country")
    return parser


def _filters(args: argparse.Namespace) -> dict:
    return {
        key: getattr(args, key)
        for key in FILTER_KEYS
        if getattr(args, key, None) is not None
    }


def _call_blocking(settings: Settings, endpoint: str, filters: dict):
    with NewsApiClient(settings=settings) as client:
        if endpoint == "headlines":
            return client.get_top_headlines(**filters)
        if endpoint == "everything":
            return client.get_everything(**filters)
        return client.get_sources(**filters)


async def _call_async(settings: Settings, endpoint: str, filters: dict):
    async with AsyncNewsApiClient(settings=settings) as client:
        if endpoint == "headlines":
            return await client.get_top_headlines(**filters)
        if endpoint == "everything":
            return await client.get_everything(**filters)
        return await client.get_sources(**filters)


def print_response(response: ArticlesResponse | SourcesResponse) -> None:
    if isinstance(response, SourcesResponse):
        print(f"{len(response.sources)} sources")
        for source in response.sources:
            print(f"  {source.id:<28} {source.country:<3} {source.category:<14} {source.name}")
        return

    print(f"Total results: {response.total_results} (showing {len(response.articles)})")
    for article in response.articles:
        published = article.published_at.strftime("%Y-%m-%d %H:%M") if article.published_at else "?"
        print(f"  [{published}] {article.source.name}: {article.title}")
        print(f"      {article.url}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    env_file = Path(args.env_file)
    try:
        settings = Settings.from_env(env_file if env_file.exists() else None)
    except NewsApiError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )

    filters = _filters(args)
    try:
        if args.use_async:
            response = asyncio.run(_call_async(settings, args.endpoint, filters))
        else:
            response = _call_blocking(settings, args.endpoint, filters)
    except NewsApiError as exc:
        logger.error("%s", exc)
        return 1

    print_response(response)
    return 0


if __name__ == "__main__":
    sys.exit(main())
