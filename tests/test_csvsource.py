import asyncio

import httpx
import pytest

from citation_dashboard.errors import SourceError
from citation_dashboard.sources.csvsource import fetch_csv_table, parse_csv_table


def test_parse_csv_normalises_headers_and_skips_blank_rows():
    table = parse_csv_table(' Year , TITLE,doi\n2020,"A, with comma",10.1/a\n,,\n2021,B\n')
    assert table.headers == ["year", "title", "doi"]
    assert table.rows == [
        {"year": "2020", "title": "A, with comma", "doi": "10.1/a"},
        {"year": "2021", "title": "B", "doi": ""},
    ]


def test_parse_empty_csv():
    table = parse_csv_table("")
    assert table.headers == []
    assert table.rows == []


def test_fetch_tries_urls_in_order():
    requested = []

    def handler(request):
        requested.append(str(request.url))
        if "first" in str(request.url):
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(200, text="title\nOnly\n")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_csv_table(
                client, ["https://first.example/a.csv", "https://second.example/a.csv",
                         "https://third.example/a.csv"]
            )

    table = asyncio.run(run())
    assert table.rows == [{"title": "Only"}]
    assert requested == ["https://first.example/a.csv", "https://second.example/a.csv"]


def test_fetch_all_failing_raises():
    async def run():
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        async with httpx.AsyncClient(transport=transport) as client:
            return await fetch_csv_table(client, ["https://a.example/x.csv",
                                                  "https://b.example/x.csv"])

    with pytest.raises(SourceError, match="any of 2 URLs"):
        asyncio.run(run())


def test_fetch_without_urls_raises():
    async def run():
        async with httpx.AsyncClient() as client:
            return await fetch_csv_table(client, [])

    with pytest.raises(SourceError, match="No CSV URLs"):
        asyncio.run(run())
