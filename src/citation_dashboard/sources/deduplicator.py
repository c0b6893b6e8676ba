"""Deduplicator: merge citing-work lists from several sources into one table."""

from __future__ import annotations

from typing import Any, Iterable

from citation_dashboard.models import (
    HEADERS,
    SINGLE_SOURCE_HEADERS,
    CitationRecord,
    CitationTable,
    RecordSchema,
    Source,
)
from citation_dashboard.sources import openalexapi, semantic_scholar

Batch = tuple[RecordSchema, list[dict[str, Any]]]


def merge_batches(batches: Iterable[Batch], headers: list[str] = HEADERS) -> CitationTable:
    """
    Fold raw record batches into one table keyed by identity key.

    The identity key is the prefix-stripped DOI, or the exact title when the
    DOI is empty; records with neither are dropped. The first batch inserts
    every record it sees (a later duplicate within it replaces the earlier
    row in place). A later batch that hits a key already inserted by another
    source only re-tags that row's source as ``Source.BOTH``; unseen keys are
    inserted. Row order is first-seen key order.
    """
    citation_map: dict[str, CitationRecord] = {}

    for index, (schema, records) in enumerate(batches):
        for raw in records:
            key = schema.identity_key(raw)
            if not key:
                continue
            existing = citation_map.get(key)
            if index == 0 or existing is None:
                citation_map[key] = schema.normalize(raw)
            elif existing.source is not schema.source:
                existing.source = Source.BOTH

    return CitationTable(
        headers=list(headers),
        rows=[record.to_row(headers) for record in citation_map.values()],
    )


def merge_citations(
    openalex_works: list[dict[str, Any]], ss_items: list[dict[str, Any]]
) -> CitationTable:
    """Merge OpenAlex works with Semantic Scholar citation items."""
    return merge_batches(
        [(openalexapi.SCHEMA, openalex_works), (semantic_scholar.SCHEMA, ss_items)],
        HEADERS,
    )


def build_table(openalex_works: list[dict[str, Any]]) -> CitationTable:
    """Single-source table: OpenAlex works only, without status/source columns."""
    return merge_batches([(openalexapi.SCHEMA, openalex_works)], SINGLE_SOURCE_HEADERS)
