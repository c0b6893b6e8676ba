"""Semantic Scholar API client for fetching paper citations."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from citation_dashboard.errors import SourceError
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

SS_BASE = "https://api.semanticscholar.org/graph/v1"
SS_PAPER_URL = "https://www.semanticscholar.org/paper"
FIELDS = (
    "title,year,authors,venue,publicationTypes,publicationDate,citationCount,"
    "influentialCitationCount,isOpenAccess,openAccessPdf,fieldsOfStudy,"
    "s2FieldsOfStudy,publicationVenue,externalIds"
)
LIMIT = 1000


def _paper_doi(paper: dict[str, Any]) -> str:
    return strip_doi_prefix((paper.get("externalIds") or {}).get("DOI"))


def is_preprint(paper: dict[str, Any]) -> bool:
    """True if the paper is typed as a preprint or published on arXiv."""
    if "Preprint" in (paper.get("publicationTypes") or []):
        return True
    if "arxiv" in (paper.get("venue") or "").lower():
        return True
    venue_name = (paper.get("publicationVenue") or {}).get("name") or ""
    return "arxiv" in venue_name.lower()


def normalize_paper(paper: dict[str, Any]) -> CitationRecord:
    doi = _paper_doi(paper)
    link = doi_url(doi) if doi else f"{SS_PAPER_URL}/{paper.get('paperId') or ''}"
    return CitationRecord(
        year=paper.get("year") or UNKNOWN_YEAR,
        title=paper.get("title") or UNTITLED,
        doi=doi,
        link=link,
        status=Status.PREPRINT if is_preprint(paper) else Status.PEER_REVIEWED,
        source=Source.SEMANTIC_SCHOLAR,
    )


# Citation items wrap the citing paper as {"citingPaper": {...}}.


def identity_key(item: dict[str, Any]) -> str:
    paper = item.get("citingPaper")
    if not paper:
        return ""
    return _paper_doi(paper) or (paper.get("title") or "")


def normalize_citation(item: dict[str, Any]) -> CitationRecord:
    return normalize_paper(item.get("citingPaper") or {})


SCHEMA = RecordSchema(Source.SEMANTIC_SCHOLAR, identity_key, normalize_citation)


async def _get(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any],
    api_key: str = "",
) -> Any:
    headers = {"x-api-key": api_key} if api_key else None
    try:
        resp = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise SourceError(f"Semantic Scholar request failed: {exc}") from exc
    if not resp.is_success:
        if resp.status_code == 429:
            logger.warning("Semantic Scholar rate limit (429) hit for %s", url)
        raise SourceError(
            f"Semantic Scholar HTTP {resp.status_code}", status_code=resp.status_code
        )
    try:
        return resp.json()
    except ValueError as exc:
        raise SourceError(f"Semantic Scholar returned invalid JSON for {url}") from exc


async def get_citations(
    client: httpx.AsyncClient, doi: str, limit: int = LIMIT, api_key: str = ""
) -> list[dict[str, Any]]:
    """Fetch the citation items (``{"citingPaper": ...}``) for *doi*."""
    data = await _get(
        client,
        f"{SS_BASE}/paper/DOI:{doi}/citations",
        {"fields": FIELDS, "limit": limit},
        api_key,
    )
    return (data or {}).get("data") or []


class SemanticScholarSource:
    """Citing papers of a DOI, via the Semantic Scholar graph API."""

    name = "Semantic Scholar"
    schema = SCHEMA

    def __init__(
        self, client: httpx.AsyncClient, limit: int = LIMIT, api_key: str = ""
    ) -> None:
        self.client = client
        self.limit = limit
        self.api_key = api_key

    async def fetch(self, paper_doi: str) -> list[dict[str, Any]]:
        items = await get_citations(self.client, paper_doi, self.limit, self.api_key)
        logger.info("Semantic Scholar returned %d citations for %s", len(items), paper_doi)
        return items
