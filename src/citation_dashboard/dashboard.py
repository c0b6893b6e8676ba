"""Local dashboard server: citation table page, JSON API, and BibTeX downloads."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import httpx

from citation_dashboard.bibtex import build_bibtex, citation_filename
from citation_dashboard.cache import CacheStore, SqliteCache
from citation_dashboard.config import Config
from citation_dashboard.errors import LoadError
from citation_dashboard.loader import build_loader
from citation_dashboard.models import CitationTable
from citation_dashboard.report import build_report, filter_rows, render_report_html

logger = logging.getLogger(__name__)

_HEADERS = {"User-Agent": "citation-dashboard/0.1 (academic research tool)"}


def load_table(cfg: Config, cache: CacheStore, force_refresh: bool = False) -> CitationTable:
    """Run one load to completion on a fresh event loop and HTTP client."""

    async def _load() -> CitationTable:
        async with httpx.AsyncClient(timeout=cfg.timeout, headers=_HEADERS) as client:
            loader = build_loader(cfg, client, cache)
            return await loader.load(force_refresh=force_refresh)

    return asyncio.run(_load())


def make_handler(cfg: Config, cache: CacheStore) -> type[BaseHTTPRequestHandler]:
    # One load at a time; a second refresh waits for the first to finish
    load_lock = threading.Lock()

    class Handler(BaseHTTPRequestHandler):
        def _send(
            self,
            status: int,
            body: str,
            content_type: str,
            extra_headers: dict[str, str] | None = None,
        ) -> None:
            body_bytes = body.encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body_bytes)))
            for name, value in (extra_headers or {}).items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(body_bytes)

        def _load(self, params: dict[str, list[str]]) -> CitationTable:
            force = params.get("refresh", ["0"])[0] not in ("", "0", "false")
            with load_lock:
                table = load_table(cfg, cache, force_refresh=force)
            term = params.get("q", [""])[0]
            return filter_rows(table, term) if term else table

        def do_GET(self) -> None:  # noqa: N802
            parts = urlsplit(self.path)
            params = parse_qs(parts.query, keep_blank_values=True)
            try:
                if parts.path == "/":
                    table = self._load(params)
                    report_md = build_report(table, cfg.paper_doi, bibtex_links=True)
                    page = render_report_html(report_md, search=params.get("q", [""])[0])
                    self._send(200, page, "text/html; charset=utf-8")
                elif parts.path == "/api/citations":
                    table = self._load(params)
                    self._send(200, json.dumps(table.to_dict()), "application/json")
                elif parts.path == "/bibtex":
                    doi = params.get("doi", [""])[0]
                    title = params.get("title", [""])[0]
                    year = params.get("year", [""])[0]
                    self._send(
                        200,
                        build_bibtex(doi, title, year),
                        "text/plain; charset=utf-8",
                        {
                            "Content-Disposition": (
                                f'attachment; filename="{citation_filename(doi)}"'
                            )
                        },
                    )
                else:
                    self._send(404, "Not found", "text/plain; charset=utf-8")
            except LoadError as exc:
                logger.error("%s", exc)
                self._send(502, json.dumps({"error": str(exc)}), "application/json")

        def log_message(self, _format: str, *args: object) -> None:
            logger.debug("%s - %s", self.address_string(), _format % args)

    return Handler


def serve(cfg: Config, host: str = "127.0.0.1", port: int = 8765) -> None:
    cache = SqliteCache(cfg.cache_path)
    server = ThreadingHTTPServer((host, port), make_handler(cfg, cache))
    print(f"Citation dashboard running at http://{host}:{port}")
    server.serve_forever()
