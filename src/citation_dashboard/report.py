"""Citation table statistics, search filtering, and Markdown/HTML rendering."""

from __future__ import annotations

import html
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import markdown

from citation_dashboard.models import UNKNOWN_YEAR, CitationTable


def year_counts(rows: list[dict[str, Any]]) -> dict[str, int]:
    return dict(Counter(str(row.get("year") or UNKNOWN_YEAR) for row in rows))


def status_counts(rows: list[dict[str, Any]]) -> dict[str, int]:
    return dict(Counter(row.get("status") or "Unknown" for row in rows))


def filter_rows(table: CitationTable, term: str) -> CitationTable:
    """Rows whose title contains *term*, case-insensitively."""
    needle = term.lower()
    return CitationTable(
        headers=list(table.headers),
        rows=[r for r in table.rows if needle in str(r.get("title") or "").lower()],
    )


def _cell(value: Any) -> str:
    text = html.escape(str(value if value is not None else ""), quote=False)
    return text.replace("|", "\\|").replace("\n", " ")


def _bibtex_href(row: dict[str, Any]) -> str:
    query = urlencode(
        {
            "doi": row.get("doi") or "",
            "title": row.get("title") or "",
            "year": row.get("year") or "",
        }
    )
    return f"/bibtex?{query}"


def build_report(
    table: CitationTable,
    paper_doi: str,
    bibtex_links: bool = False,
) -> str:
    """
    Build a Markdown summary and table for *table*.

    With *bibtex_links*, each row gets a link to the dashboard's BibTeX
    download endpoint.
    """
    lines: list[str] = []
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    statuses = status_counts(table.rows)
    years = ", ".join(sorted(year_counts(table.rows)))

    lines.append(f"# Citation Analysis for {paper_doi}")
    lines.append(f"**Total Citations:** {len(table.rows)}  ")
    if "status" in table.headers:
        lines.append(
            f"**Peer-reviewed:** {statuses.get('Peer-reviewed', 0)} | "
            f"**Pre-prints:** {statuses.get('Pre-print', 0)}  "
        )
    lines.append(f"**Years:** {years or 'N/A'}  ")
    lines.append(f"**Last Updated:** {now}\n")

    if not table.rows:
        lines.append("No citations found.")
        return "\n".join(lines)

    columns = [h.capitalize() for h in table.headers]
    if bibtex_links:
        columns.append("Actions")
    lines.append("| " + " | ".join(columns) + " |")
    lines.append("|" + "---|" * len(columns))
    for row in table.rows:
        cells = []
        for header in table.headers:
            value = row.get(header)
            if header == "link" and value:
                cells.append(f"[View Paper]({value})")
            else:
                cells.append(_cell(value))
        if bibtex_links:
            cells.append(f"[Download BibTeX]({_bibtex_href(row)})")
        lines.append("| " + " | ".join(cells) + " |")

    return "\n".join(lines)


def render_report_html(markdown_content: str, search: str = "") -> str:
    """Render the Markdown report as a full HTML page with a search form."""
    html_body = markdown.markdown(markdown_content, extensions=["extra"])

    # Pre-print status cells get their own class for highlighting
    html_body = re.sub(r"<td>Pre-print</td>", '<td class="preprint">Pre-print</td>', html_body)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Citation Dashboard</title>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; max-width: 1100px; margin: 2rem auto; padding: 0 1rem; }}
        table {{ border-collapse: collapse; width: 100%; }}
        th, td {{ border-bottom: 1px solid #e5e7eb; padding: .4rem; text-align: left; }}
        td.preprint {{ color: #b45309; }}
    </style>
</head>
<body>
    <form method="get" action="/">
        <input name="q" value="{html.escape(search, quote=True)}" placeholder="Search titles">
        <button type="submit">Search</button>
        <a href="/?refresh=1">Refresh</a>
    </form>
    {html_body}
</body>
</html>
"""
