from __future__ import annotations

import json
from pathlib import Path

import pytest

from folio.catalog.models import FetchResult
import folio.cli.ingest_book as ingest_book


_PAGE = """
<table class="bibrec">
  <tr><th>Author</th><td><a href="/ebooks/author/35">Carroll, Lewis</a></td></tr>
  <tr><th>Title</th><td>Alice's Adventures in Wonderland</td></tr>
  <tr><th>Language</th><td>English</td></tr>
</table>
"""


class _StubFetcher:
    instances: list["_StubFetcher"] = []

    def __init__(self, base_url: str, *, timeout_seconds: float) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        _StubFetcher.instances.append(self)

    async def __aenter__(self) -> "_StubFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def fetch_metadata(self, catalog_id: str) -> FetchResult:
        if catalog_id != "11":
            return FetchResult(404, "", f"{self.base_url}/ebooks/{catalog_id}")
        return FetchResult(200, _PAGE, f"{self.base_url}/ebooks/11")

    async def fetch_content(self, catalog_id: str) -> FetchResult:
        body = "\n\n".join(f"Paragraph {index} of the tale." for index in range(1, 6))
        return FetchResult(200, body, f"{self.base_url}/files/11/11-0.txt")


@pytest.fixture(autouse=True)
def _stub_fetcher(monkeypatch: pytest.MonkeyPatch) -> None:
    _StubFetcher.instances = []
    monkeypatch.setattr(ingest_book, "CatalogFetcher", _StubFetcher)


def test_cli_ingests_and_reports_chunks(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db_path = tmp_path / "folio.db"

    exit_code = ingest_book.main(
        [
            "--id",
            "11",
            "--db-path",
            str(db_path),
            "--catalog-base-url",
            "https://catalog.test",
            "--chunk-max-chars",
            "60",
            "--timeout",
            "5",
        ]
    )
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload == {
        "external_id": "11",
        "title": "Alice's Adventures in Wonderland",
        "author": "Carroll, Lewis",
        "language": "English",
        "chunk_count": 3,
    }
    assert _StubFetcher.instances[0].base_url == "https://catalog.test"
    assert _StubFetcher.instances[0].timeout_seconds == 5.0
    assert db_path.exists()


def test_cli_reports_missing_book(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = ingest_book.main(["--id", "404", "--db-path", str(tmp_path / "folio.db")])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["external_id"] == "404"
    assert "Catalog item not found (status=404)" in payload["error"]


def test_cli_rejects_non_numeric_id(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = ingest_book.main(["--id", "alice", "--db-path", str(tmp_path / "folio.db")])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert "must be numeric" in payload["error"]
