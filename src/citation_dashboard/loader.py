"""Citation loading: cache gate → concurrent source fetch → merge → cache write."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

import httpx

from citation_dashboard.cache import CacheStore, MemoryCache, cache_key
from citation_dashboard.config import Config
from citation_dashboard.errors import LoadError, SourceError
from citation_dashboard.models import (
    HEADERS,
    SINGLE_SOURCE_HEADERS,
    CitationTable,
    RecordSchema,
)
from citation_dashboard.sources.csvsource import fetch_csv_table
from citation_dashboard.sources.deduplicator import merge_batches
from citation_dashboard.sources.openalexapi import OpenAlexSource
from citation_dashboard.sources.semantic_scholar import SemanticScholarSource

logger = logging.getLogger(__name__)


class CitationSource(Protocol):
    name: str
    schema: RecordSchema

    async def fetch(self, paper_doi: str) -> list[dict[str, Any]]: ...


class CitationLoader:
    """Load the merged citation table for one paper.

    A failure in any *required* source aborts the load. A failure in an
    *optional* source is logged and that source contributes no records.
    Sources are merged in order: required first, then optional.
    """

    def __init__(
        self,
        paper_doi: str,
        required: Sequence[CitationSource],
        optional: Sequence[CitationSource] = (),
        cache: CacheStore | None = None,
        headers: list[str] | None = None,
        mode: str | None = None,
    ) -> None:
        self.paper_doi = paper_doi
        self.required = list(required)
        self.optional = list(optional)
        self.cache = cache if cache is not None else MemoryCache()
        dual = len(self.required) + len(self.optional) > 1
        if headers is None:
            headers = HEADERS if dual else SINGLE_SOURCE_HEADERS
        self.headers = headers
        self.mode = mode or ("dual" if dual else "single")
        self._lock = asyncio.Lock()

    @property
    def cache_key(self) -> str:
        return cache_key(self.paper_doi, self.mode)

    def cached(self) -> CitationTable | None:
        data = self.cache.get(self.cache_key)
        return CitationTable.from_dict(data) if data else None

    async def load(self, force_refresh: bool = False) -> CitationTable:
        """Return the citation table, from cache unless *force_refresh*.

        Raises LoadError if a required source fails; the cache is left as is.
        """
        async with self._lock:
            if not force_refresh:
                table = self.cached()
                if table is not None:
                    logger.info("Using cached citations for %s", self.paper_doi)
                    return table

            try:
                table = await self._fetch_table()
            except SourceError as exc:
                raise LoadError(f"Failed to load citations: {exc}") from exc

            self.cache.set(self.cache_key, table.to_dict())
            logger.info("Loaded %d citations for %s", len(table.rows), self.paper_doi)
            return table

    async def _fetch_optional(self, source: CitationSource) -> list[dict[str, Any]]:
        try:
            return await source.fetch(self.paper_doi)
        except SourceError as exc:
            logger.warning("%s API failed: %s", source.name, exc)
            return []

    async def _fetch_table(self) -> CitationTable:
        sources = self.required + self.optional
        tasks = [
            *(asyncio.ensure_future(source.fetch(self.paper_doi)) for source in self.required),
            *(asyncio.ensure_future(self._fetch_optional(source)) for source in self.optional),
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # A required source failed: stop the others before the client closes
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return merge_batches(
            [(source.schema, records) for source, records in zip(sources, results)],
            self.headers,
        )


class CsvCitationLoader(CitationLoader):
    """Loads a ready-made table from the first reachable CSV URL."""

    def __init__(
        self,
        paper_doi: str,
        client: httpx.AsyncClient,
        urls: list[str],
        cache: CacheStore | None = None,
    ) -> None:
        super().__init__(paper_doi, required=[], cache=cache, headers=[], mode="csv")
        self.client = client
        self.urls = list(urls)

    async def _fetch_table(self) -> CitationTable:
        return await fetch_csv_table(self.client, self.urls)


def build_loader(
    cfg: Config,
    client: httpx.AsyncClient,
    cache: CacheStore | None = None,
    mode: str | None = None,
) -> CitationLoader:
    """Assemble the loader for the configured (or overridden) mode."""
    mode = mode or cfg.mode
    if mode == "csv":
        return CsvCitationLoader(cfg.paper_doi, client, cfg.csv_urls, cache=cache)

    openalex = OpenAlexSource(
        client,
        mailto=cfg.mailto,
        per_page=cfg.openalex.per_page,
        delay=cfg.openalex.page_delay,
        max_pages=cfg.openalex.max_pages,
    )
    if mode == "single":
        return CitationLoader(cfg.paper_doi, required=[openalex], cache=cache, mode="single")
    if mode == "dual":
        semantic_scholar = SemanticScholarSource(
            client,
            limit=cfg.semantic_scholar.limit,
            api_key=cfg.semantic_scholar.api_key,
        )
        return CitationLoader(
            cfg.paper_doi,
            required=[openalex],
            optional=[semantic_scholar],
            cache=cache,
            mode="dual",
        )
    raise ValueError(f"Unknown mode {mode!r}")
