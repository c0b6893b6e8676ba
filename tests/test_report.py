import pytest

from citation_dashboard.models import HEADERS, SINGLE_SOURCE_HEADERS, CitationTable
from citation_dashboard.report import (
    build_report,
    filter_rows,
    render_report_html,
    status_counts,
    year_counts,
)


@pytest.fixture
def table():
    return CitationTable(
        headers=HEADERS,
        rows=[
            {"year": 2021, "title": "Graph Neural Networks", "doi": "10.1/a",
             "link": "https://doi.org/10.1/a", "status": "Peer-reviewed", "source": "OpenAlex"},
            {"year": 2022, "title": "A | piped title", "doi": "",
             "link": "https://www.semanticscholar.org/paper/p", "status": "Pre-print",
             "source": "Semantic Scholar"},
            {"year": "-", "title": "Neural Fields", "doi": "10.1/c",
             "link": "https://doi.org/10.1/c", "status": "Peer-reviewed",
             "source": "OpenAlex + Semantic Scholar"},
        ],
    )


def test_counts(table):
    assert year_counts(table.rows) == {"2021": 1, "2022": 1, "-": 1}
    assert status_counts(table.rows) == {"Peer-reviewed": 2, "Pre-print": 1}
    assert status_counts([{"title": "x"}]) == {"Unknown": 1}


def test_filter_rows_is_case_insensitive(table):
    filtered = filter_rows(table, "NEURAL")
    assert [r["title"] for r in filtered.rows] == ["Graph Neural Networks", "Neural Fields"]
    assert filtered.headers == table.headers
    assert len(table.rows) == 3


def test_filter_rows_empty_term_keeps_everything(table):
    assert filter_rows(table, "").rows == table.rows


def test_build_report(table):
    report = build_report(table, "10.1/cited", bibtex_links=True)
    assert "# Citation Analysis for 10.1/cited" in report
    assert "**Total Citations:** 3" in report
    assert "**Peer-reviewed:** 2 | **Pre-prints:** 1" in report
    assert "| Year | Title | Doi | Link | Status | Source | Actions |" in report
    assert "[View Paper](https://doi.org/10.1/a)" in report
    assert "A \\| piped title" in report
    assert "/bibtex?doi=10.1%2Fa&title=Graph+Neural+Networks&year=2021" in report


def test_build_report_single_source_has_no_status_line():
    table = CitationTable(headers=SINGLE_SOURCE_HEADERS, rows=[])
    report = build_report(table, "10.1/cited")
    assert "Peer-reviewed" not in report
    assert "No citations found." in report


def test_render_html(table):
    page = render_report_html(build_report(table, "10.1/cited"), search='a"b')
    assert "<title>Citation Dashboard</title>" in page
    assert "<table>" in page
    assert '<td class="preprint">Pre-print</td>' in page
    assert 'value="a&quot;b"' in page
