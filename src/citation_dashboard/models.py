"""Canonical citation row, merged table, and per-schema record hooks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

DOI_URL_PREFIX = "https://doi.org/"
UNKNOWN_YEAR = "-"
UNTITLED = "Untitled"

HEADERS = ["year", "title", "doi", "link", "status", "source"]
SINGLE_SOURCE_HEADERS = ["year", "title", "doi", "link"]


class Status(str, Enum):
    PEER_REVIEWED = "Peer-reviewed"
    PREPRINT = "Pre-print"


class Source(str, Enum):
    OPENALEX = "OpenAlex"
    SEMANTIC_SCHOLAR = "Semantic Scholar"
    BOTH = "OpenAlex + Semantic Scholar"


def strip_doi_prefix(doi: str | None) -> str:
    """Return *doi* without a leading ``https://doi.org/``; empty for None."""
    if not doi:
        return ""
    if doi.startswith(DOI_URL_PREFIX):
        return doi[len(DOI_URL_PREFIX):]
    return doi


def doi_url(doi: str) -> str:
    return f"{DOI_URL_PREFIX}{doi}"


@dataclass
class CitationRecord:
    year: int | str
    title: str
    doi: str
    link: str
    status: Status = Status.PEER_REVIEWED
    source: Source = Source.OPENALEX

    def to_row(self, headers: list[str]) -> dict[str, Any]:
        """Project the record onto *headers*, flattening enums to their labels."""
        row: dict[str, Any] = {}
        for header in headers:
            value = getattr(self, header)
            row[header] = value.value if isinstance(value, Enum) else value
        return row


@dataclass
class CitationTable:
    headers: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"headers": list(self.headers), "rows": [dict(r) for r in self.rows]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CitationTable:
        return cls(
            headers=list(data.get("headers") or []),
            rows=[dict(r) for r in (data.get("rows") or [])],
        )


@dataclass(frozen=True)
class RecordSchema:
    """How one upstream API's raw records are keyed and normalised.

    *identity_key* must return an empty string for records that cannot be
    identified (no DOI and no title); the merger drops those.
    """

    source: Source
    identity_key: Callable[[dict[str, Any]], str]
    normalize: Callable[[dict[str, Any]], CitationRecord]
