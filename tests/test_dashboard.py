"""Tests for the local dashboard server, with loading stubbed out."""

import threading
from http.server import ThreadingHTTPServer

import httpx
import pytest

from citation_dashboard import dashboard
from citation_dashboard.cache import MemoryCache
from citation_dashboard.config import Config
from citation_dashboard.errors import LoadError
from citation_dashboard.models import HEADERS, CitationTable

TABLE = CitationTable(
    headers=HEADERS,
    rows=[
        {"year": 2020, "title": "Quasars", "doi": "10.1/x", "link": "https://doi.org/10.1/x",
         "status": "Peer-reviewed", "source": "OpenAlex"},
        {"year": 2023, "title": "Pulsars", "doi": "", "link": "https://example.org",
         "status": "Pre-print", "source": "Semantic Scholar"},
    ],
)


def _get(url, **kwargs):
    return httpx.get(url, trust_env=False, **kwargs)


@pytest.fixture
def base_url():
    server = ThreadingHTTPServer(
        ("127.0.0.1", 0), dashboard.make_handler(Config(paper_doi="10.1/cited"), MemoryCache())
    )
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    server.server_close()


def test_api_returns_table_json(mocker, base_url):
    load = mocker.patch.object(dashboard, "load_table", return_value=TABLE)

    resp = _get(f"{base_url}/api/citations")

    assert resp.status_code == 200
    assert resp.json() == TABLE.to_dict()
    assert load.call_args.kwargs == {"force_refresh": False}


def test_api_refresh_and_search(mocker, base_url):
    load = mocker.patch.object(dashboard, "load_table", return_value=TABLE)

    resp = _get(f"{base_url}/api/citations", params={"refresh": "1", "q": "PULSAR"})

    assert [r["title"] for r in resp.json()["rows"]] == ["Pulsars"]
    assert load.call_args.kwargs == {"force_refresh": True}


def test_index_page_renders_table(mocker, base_url):
    mocker.patch.object(dashboard, "load_table", return_value=TABLE)

    resp = _get(f"{base_url}/")

    assert resp.status_code == 200
    assert "text/html" in resp.headers["content-type"]
    assert "Citation Analysis for 10.1/cited" in resp.text
    assert "Download BibTeX" in resp.text


def test_load_error_returns_502(mocker, base_url):
    mocker.patch.object(
        dashboard, "load_table", side_effect=LoadError("Failed to load citations: OpenAlex HTTP 500")
    )

    resp = _get(f"{base_url}/api/citations")

    assert resp.status_code == 502
    assert resp.json() == {"error": "Failed to load citations: OpenAlex HTTP 500"}


def test_bibtex_download(base_url):
    resp = _get(
        f"{base_url}/bibtex", params={"doi": "10.1/ab:c", "title": "Paper", "year": "2020"}
    )

    assert resp.status_code == 200
    assert resp.headers["content-disposition"] == 'attachment; filename="citation_10_1_ab_c.bib"'
    assert resp.text.startswith("@article{10_1_ab_c_2020,")


def test_unknown_path_is_404(base_url):
    assert _get(f"{base_url}/nope").status_code == 404
