"""OpenAlex API client: cursor-paginated citing works and row mapping."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from citation_dashboard.errors import PaginationLimitError, SourceError
from citation_dashboard.models import (
    UNKNOWN_YEAR,
    UNTITLED,
    CitationRecord,
    RecordSchema,
    Source,
    Status,
    doi_url,
    strip_doi_prefix,
)

logger = logging.getLogger(__name__)

OA_BASE = "https://api.openalex.org"
INITIAL_CURSOR = "*"
PER_PAGE = 200
PAGE_DELAY = 0.1
MAX_PAGES = 1000


def identity_key(work: dict[str, Any]) -> str:
    return strip_doi_prefix(work.get("doi")) or (work.get("display_name") or "")


def normalize_work(work: dict[str, Any]) -> CitationRecord:
    doi = strip_doi_prefix(work.get("doi"))
    primary = work.get("primary_location") or {}
    if doi:
        link = doi_url(doi)
    else:
        link = primary.get("landing_page_url") or work.get("id") or ""
    return CitationRecord(
        year=work.get("publication_year") or UNKNOWN_YEAR,
        title=work.get("display_name") or UNTITLED,
        doi=doi,
        link=link,
        status=Status.PEER_REVIEWED,
        source=Source.OPENALEX,
    )


SCHEMA = RecordSchema(Source.OPENALEX, identity_key, normalize_work)


async def _get(client: httpx.AsyncClient, url: str, params: dict[str, Any]) -> Any:
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise SourceError(f"OpenAlex request failed: {exc}") from exc
    if not resp.is_success:
        raise SourceError(f"OpenAlex HTTP {resp.status_code}", status_code=resp.status_code)
    try:
        return resp.json()
    except ValueError as exc:
        raise SourceError(f"OpenAlex returned invalid JSON for {url}") from exc


def _with_mailto(params: dict[str, Any], mailto: str) -> dict[str, Any]:
    if mailto:
        params["mailto"] = mailto
    return params


async def resolve_work_id(client: httpx.AsyncClient, doi: str, mailto: str = "") -> str:
    """Look up the OpenAlex short work ID (e.g. ``W123``) for *doi*."""
    data = await _get(
        client,
        f"{OA_BASE}/works/doi:{quote(doi, safe='/')}",
        _with_mailto({}, mailto),
    )
    work_id = str((data or {}).get("id") or "")
    if not work_id:
        raise SourceError(f"OpenAlex returned no work ID for DOI {doi}")
    return work_id.rstrip("/").split("/")[-1]


async def get_citing_works(
    client: httpx.AsyncClient,
    work_id: str,
    mailto: str = "",
    per_page: int = PER_PAGE,
    delay: float = PAGE_DELAY,
    max_pages: int = MAX_PAGES,
) -> list[dict[str, Any]]:
    """Fetch every work citing *work_id*, following ``meta.next_cursor``.

    Pages are requested one at a time with *delay* seconds between them.
    Any failed page aborts the whole fetch; nothing partial is returned.
    Raises PaginationLimitError if the API is still handing out cursors
    after *max_pages* pages.
    """
    works: list[dict[str, Any]] = []
    cursor: str | None = INITIAL_CURSOR
    pages = 0
    while cursor:
        if pages >= max_pages:
            raise PaginationLimitError(
                f"OpenAlex pagination exceeded {max_pages} pages for {work_id}"
            )
        page = await _get(
            client,
            f"{OA_BASE}/works",
            _with_mailto(
                {"filter": f"cites:{work_id}", "per_page": per_page, "cursor": cursor},
                mailto,
            ),
        ) or {}
        pages += 1
        works.extend(page.get("results") or [])
        cursor = (page.get("meta") or {}).get("next_cursor")
        logger.debug("OpenAlex page %d: %d works so far", pages, len(works))
        if cursor and delay:
            await asyncio.sleep(delay)
    return works


class OpenAlexSource:
    """Citing works of a DOI, via the OpenAlex works graph."""

    name = "OpenAlex"
    schema = SCHEMA

    def __init__(
        self,
        client: httpx.AsyncClient,
        mailto: str = "",
        per_page: int = PER_PAGE,
        delay: float = PAGE_DELAY,
        max_pages: int = MAX_PAGES,
    ) -> None:
        self.client = client
        self.mailto = mailto
        self.per_page = per_page
        self.delay = delay
        self.max_pages = max_pages

    async def fetch(self, paper_doi: str) -> list[dict[str, Any]]:
        work_id = await resolve_work_id(self.client, paper_doi, self.mailto)
        works = await get_citing_works(
            self.client,
            work_id,
            mailto=self.mailto,
            per_page=self.per_page,
            delay=self.delay,
            max_pages=self.max_pages,
        )
        logger.info("OpenAlex returned %d citing works for %s", len(works), paper_doi)
        return works
