"""Click CLI entry point for citation-dashboard."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from citation_dashboard.bibtex import write_bibtex
from citation_dashboard.cache import SqliteCache, cache_key
from citation_dashboard.config import MODES, load_config
from citation_dashboard.dashboard import load_table, serve
from citation_dashboard.errors import LoadError
from citation_dashboard.models import CitationTable
from citation_dashboard.report import build_report, filter_rows, status_counts, year_counts

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _get_cache(cfg: Any) -> SqliteCache:
    return SqliteCache(cfg.cache_path)


def _print_table(
    table: CitationTable, paper_doi: str, last_updated: str | None = None
) -> None:
    statuses = status_counts(table.rows)
    console.print(f"[bold]Citation Analysis for {escape(paper_doi)}[/bold]")
    console.print(f"Total citations: {len(table.rows)}")
    if "status" in table.headers:
        console.print(
            f"Peer-reviewed: {statuses.get('Peer-reviewed', 0)} | "
            f"Pre-prints: {statuses.get('Pre-print', 0)}"
        )
    console.print(f"Years: {', '.join(sorted(year_counts(table.rows))) or 'N/A'}")
    if last_updated:
        console.print(f"Last updated: {last_updated}")

    if not table.rows:
        return

    rich_table = Table(title="Citations")
    for header in table.headers:
        rich_table.add_column(header.capitalize())
    for row in table.rows:
        cells = []
        for header in table.headers:
            value = str(row.get(header) or "")
            cells.append(escape(value[:60] if header == "title" else value))
        rich_table.add_row(*cells)
    console.print(rich_table)


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config.yaml")
@click.option("--env", "env_path", default=None, help="Path to .env file")
@click.option("--verbose", is_flag=True, default=False)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str | None,
    env_path: str | None,
    verbose: bool,
) -> None:
    """Citation Dashboard: collect, merge and export the citations of a paper."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    cfg = load_config(
        config_path=Path(config_path) if config_path else None,
        env_path=Path(env_path) if env_path else None,
    )
    ctx.obj["cfg"] = cfg


# ── load ───────────────────────────────────────────────────────────────────


@main.command("load")
@click.option("--refresh", is_flag=True, default=False, help="Ignore the cache and re-fetch")
@click.option("--doi", default=None, help="DOI of the cited paper (overrides config)")
@click.option("--mode", type=click.Choice(MODES), default=None, help="Source combination")
@click.option("--markdown", "as_markdown", is_flag=True, default=False,
              help="Print the table as Markdown")
@click.pass_context
def load_citations(
    ctx: click.Context,
    refresh: bool,
    doi: str | None,
    mode: str | None,
    as_markdown: bool,
) -> None:
    """Load citations (from cache unless --refresh) and print them."""
    cfg = ctx.obj["cfg"]
    if doi:
        cfg.paper_doi = doi
    if mode:
        cfg.mode = mode

    try:
        table = load_table(cfg, _get_cache(cfg), force_refresh=refresh)
    except LoadError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)

    if as_markdown:
        console.print(Markdown(build_report(table, cfg.paper_doi)))
    else:
        _print_table(table, cfg.paper_doi)


# ── show ───────────────────────────────────────────────────────────────────


@main.command("show")
@click.option("--doi", default=None, help="DOI of the cited paper (overrides config)")
@click.option("--mode", type=click.Choice(MODES), default=None, help="Source combination")
@click.option("--search", default="", help="Only show rows whose title contains this")
@click.pass_context
def show(ctx: click.Context, doi: str | None, mode: str | None, search: str) -> None:
    """Show the cached citation table without touching the network."""
    cfg = ctx.obj["cfg"]
    paper_doi = doi or cfg.paper_doi
    key = cache_key(paper_doi, mode or cfg.mode)
    cache = _get_cache(cfg)

    data = cache.get(key)
    if data is None:
        console.print(
            f"[yellow]No cached citations for {escape(paper_doi)}. Run `load` first.[/yellow]"
        )
        sys.exit(1)

    table = CitationTable.from_dict(data)
    if search:
        table = filter_rows(table, search)
    _print_table(table, paper_doi, last_updated=cache.stored_at(key))


# ── bibtex ─────────────────────────────────────────────────────────────────


@main.command("bibtex")
@click.argument("doi")
@click.option("--title", required=True, help="Title of the cited work")
@click.option("--year", required=True, help="Publication year")
@click.option("--out", "out_dir", default=".", show_default=True,
              type=click.Path(file_okay=False), help="Directory to write into")
def bibtex(doi: str, title: str, year: str, out_dir: str) -> None:
    """Export one citation as citation_<doi>.bib."""
    dest = write_bibtex(doi, title, year, Path(out_dir))
    console.print(f"[green]Saved BibTeX to {escape(str(dest))}[/green]")


# ── clear-cache ────────────────────────────────────────────────────────────


@main.command("clear-cache")
@click.option("--doi", default=None, help="DOI of the cited paper (overrides config)")
@click.option("--mode", type=click.Choice(MODES), default=None, help="Source combination")
@click.pass_context
def clear_cache(ctx: click.Context, doi: str | None, mode: str | None) -> None:
    """Forget the cached table for a paper."""
    cfg = ctx.obj["cfg"]
    paper_doi = doi or cfg.paper_doi
    _get_cache(cfg).delete(cache_key(paper_doi, mode or cfg.mode))
    console.print(f"[green]Cleared cached citations for {escape(paper_doi)}[/green]")


# ── serve ──────────────────────────────────────────────────────────────────


@main.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8765, show_default=True, type=int)
@click.pass_context
def serve_dashboard(ctx: click.Context, host: str, port: int) -> None:
    """Serve the dashboard page and JSON API locally."""
    serve(ctx.obj["cfg"], host=host, port=port)
