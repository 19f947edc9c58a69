"""
Tests for loading the export and calendar over HTTP and from disk.

The network is replaced with httpx.MockTransport.
"""

import asyncio

import httpx
import pytest

from school_directory.client import DirectoryClient, DirectoryLoadError

CSV_URL = "https://school.test/directory.csv"
ICS_URL = "https://school.test/calendar.ics"

ICS = "BEGIN:VEVENT\nSUMMARY:Picture Day\nDTSTART:20250410T080000\nDTEND:20250410T120000\nEND:VEVENT\n"


def _transport(routes):
    def handler(request):
        url = str(request.url)
        if url not in routes:
            return httpx.Response(404)
        body = routes[url]
        if isinstance(body, Exception):
            raise body
        return httpx.Response(200, text=body)

    return httpx.MockTransport(handler)


def _run(client, coro):
    async def runner():
        try:
            return await coro
        finally:
            await client.close()

    return asyncio.run(runner())


def test_load_directory_from_url(make_row, make_csv):
    text = make_csv([make_row("Alice", "Smith"), make_row("Bob", "Jones")])
    client = DirectoryClient(CSV_URL, transport=_transport({CSV_URL: text}))

    directory = _run(client, client.load_directory())

    assert [s.first_name for s in directory.students] == ["Alice", "Bob"]


def test_http_error_status_is_a_load_error():
    client = DirectoryClient(CSV_URL, transport=_transport({}))

    with pytest.raises(DirectoryLoadError, match="404 Not Found"):
        _run(client, client.load_students())


def test_connection_failure_is_a_load_error():
    request = httpx.Request("GET", CSV_URL)
    client = DirectoryClient(CSV_URL, transport=_transport({CSV_URL: httpx.ConnectError("refused", request=request)}))

    with pytest.raises(DirectoryLoadError, match="Failed to fetch data"):
        _run(client, client.fetch_csv_text())


def test_empty_export_is_a_load_error():
    client = DirectoryClient(CSV_URL, transport=_transport({CSV_URL: "  \n"}))

    with pytest.raises(DirectoryLoadError, match="No directory data"):
        _run(client, client.load_students())


def test_load_from_file_with_bom(tmp_path, make_row, make_csv):
    path = tmp_path / "directory.csv"
    path.write_text(make_csv([make_row("Alice", "Smith")]), encoding="utf-8-sig")
    client = DirectoryClient(path)

    students = _run(client, client.load_students())

    assert students[0].id == "student-1"
    assert students[0].first_name == "Alice"


def test_missing_file_is_a_load_error(tmp_path):
    client = DirectoryClient(tmp_path / "missing.csv")

    with pytest.raises(DirectoryLoadError, match="Failed to read"):
        _run(client, client.load_students())


def test_download_writes_once(tmp_path):
    dest = tmp_path / "out" / "directory.csv"
    client = DirectoryClient(CSV_URL, transport=_transport({CSV_URL: "First Name\nAlice\n"}))

    assert _run(client, client.download(dest)) is True
    assert dest.read_text(encoding="utf-8") == "First Name\nAlice\n"

    dest.write_text("local edits", encoding="utf-8")
    assert _run(client, client.download(dest)) is False
    assert dest.read_text(encoding="utf-8") == "local edits"

    assert _run(client, client.download(dest, overwrite=True)) is True
    assert dest.read_text(encoding="utf-8") == "First Name\nAlice\n"


def test_fetch_calendar():
    client = DirectoryClient(CSV_URL, transport=_transport({ICS_URL: ICS}))

    events = _run(client, client.fetch_calendar(ICS_URL))

    assert [e.title for e in events] == ["Picture Day"]


def test_calendar_failure_yields_no_events(caplog):
    client = DirectoryClient(CSV_URL, transport=_transport({}))

    events = _run(client, client.fetch_calendar(ICS_URL))

    assert events == []
    assert "Calendar fetch" in caplog.text
