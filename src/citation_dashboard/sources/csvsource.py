"""Flat CSV citation table, fetched from the first reachable candidate URL."""

from __future__ import annotations

import csv
import io
import logging

import httpx

from citation_dashboard.errors import SourceError
from citation_dashboard.models import CitationTable

logger = logging.getLogger(__name__)


def parse_csv_table(text: str) -> CitationTable:
    """Parse CSV *text* with a header row into a table.

    Header names are stripped and lower-cased; blank rows are skipped and
    short rows padded with empty strings.
    """
    reader = csv.reader(io.StringIO(text))
    raw_headers = next(reader, None)
    if not raw_headers:
        return CitationTable(headers=[])
    headers = [h.strip().lower() for h in raw_headers]

    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        padded = values + [""] * (len(headers) - len(values))
        rows.append({h: padded[i].strip() for i, h in enumerate(headers)})
    return CitationTable(headers=headers, rows=rows)


async def fetch_csv_table(client: httpx.AsyncClient, urls: list[str]) -> CitationTable:
    """Try each URL in order; the first 2xx response is parsed and returned."""
    if not urls:
        raise SourceError("No CSV URLs configured")

    for url in urls:
        try:
            resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("CSV fetch from %s failed: %s", url, exc)
            continue
        if not resp.is_success:
            logger.warning("CSV fetch from %s returned HTTP %d", url, resp.status_code)
            continue
        logger.info("Loaded citation CSV from %s", url)
        return parse_csv_table(resp.text)

    raise SourceError(f"Could not fetch citation CSV from any of {len(urls)} URLs")
