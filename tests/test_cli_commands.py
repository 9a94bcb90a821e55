"""Integration tests for the command handlers (cli/commands/*).

Commands run through :func:`candlekeep.cli.app.main` against a fake
service: ``LibraryApiClient`` and ``HttpStorageTransport`` are rebuilt
on top of ``httpx.MockTransport`` — no network access.

Coverage:
* Output routing: tables/content on stdout, JSON with ``--json``.
* Local validation fails before any request is sent.
* Confirmation prompts guard deletions.
* The full ``items add`` upload flow.
* Authentication state handling for ``auth`` commands, including the
  manual key prompt driven through a prompt_toolkit pipe.
"""

from __future__ import annotations

import io
import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from prompt_toolkit.application import create_app_session
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from candlekeep.cli import exit_codes
from candlekeep.cli.app import main
from candlekeep.exceptions import (
    CredentialInvalidError,
    InvalidInputError,
    ListenerBindFailedError,
    MissingSelectorError,
    NotAuthenticatedError,
    UnsupportedFileTypeError,
)
from candlekeep.infra.api_client import LibraryApiClient
from candlekeep.infra.config_store import ConfigStore
from candlekeep.infra.storage_transport import HttpStorageTransport


# ---------------------------------------------------------------------------
# Fake service
# ---------------------------------------------------------------------------

class FakeService:
    """Routes ``(method, path)`` to canned JSON bodies and records requests."""

    def __init__(self, routes: dict[tuple[str, str], Any]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"error": f"no route {key}"})
        status, body = self.routes[key]
        return httpx.Response(status, json=body)

    def json_of(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def service(monkeypatch: pytest.MonkeyPatch) -> FakeService:
    fake = FakeService({})
    transport = httpx.MockTransport(fake)

    def _client(base_url: str, api_key: str) -> LibraryApiClient:
        return LibraryApiClient(base_url, api_key, transport=transport)

    monkeypatch.setattr("candlekeep.cli.commands.LibraryApiClient", _client)
    return fake


def _ok(body: Any) -> tuple[int, Any]:
    return 200, body


# ---------------------------------------------------------------------------
# Authentication gate
# ---------------------------------------------------------------------------

class TestAuthGate:
    @pytest.mark.parametrize(
        "argv",
        [
            ["items", "list"],
            ["items", "toc", "a"],
            ["items", "remove", "a", "--yes"],
            ["sources", "list"],
            ["auth", "whoami"],
        ],
    )
    def test_requires_credential(self, argv: list[str], service: FakeService) -> None:
        with pytest.raises(NotAuthenticatedError):
            main(argv)
        assert service.requests == []


# ---------------------------------------------------------------------------
# items list / toc / read
# ---------------------------------------------------------------------------

class TestItemsRead:
    def test_list_renders_table(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("GET", "/api/v1/items")] = _ok({
            "items": [{"id": "i1", "title": "Dune", "pageCount": 412, "status": "READY"}],
        })

        assert main(["items", "list"]) == exit_codes.SUCCESS

        out = capsys.readouterr().out
        assert "Dune" in out
        assert "1 item" in out
        assert service.requests[0].headers["authorization"] == "Bearer ck_test"
        assert str(service.requests[0].url).startswith("https://ck.example/api/v1/")

    def test_list_json(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        body = {"items": [{"id": "i1", "title": "Dune"}]}
        service.routes[("GET", "/api/v1/items")] = _ok(body)

        main(["items", "list", "--json"])

        assert json.loads(capsys.readouterr().out) == body

    def test_empty_list(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("GET", "/api/v1/items")] = _ok({"items": []})
        main(["items", "list"])
        assert "No items found." in capsys.readouterr().out

    def test_toc(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("POST", "/api/v1/items/batch/toc")] = _ok({
            "items": [{"id": "i1", "title": "Dune", "toc": [{"title": "Book One", "page": 3, "level": 1}]}],
            "notFound": ["zz"],
        })

        main(["items", "toc", "i1, zz"])

        assert service.json_of() == {"ids": ["i1", "zz"]}
        out = capsys.readouterr().out
        assert "Book One" in out
        assert "zz" in out

    def test_read_sends_selectors_and_prints_pages(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("POST", "/api/v1/items/batch")] = _ok({
            "items": [{
                "id": "i1", "title": "Dune", "pageCount": 2,
                "pages": [{"pageNum": 1, "content": "# [Arrakis]"}],
            }],
        })

        main(["items", "read", "i1:1-2,i2:ALL"])

        assert service.json_of() == {"items": [{"id": "i1", "pages": "1-2"}, {"id": "i2"}]}
        assert "# [Arrakis]\n" in capsys.readouterr().out

    def test_read_rejects_missing_selector_before_request(
        self, logged_in: Path, service: FakeService,
    ) -> None:
        with pytest.raises(MissingSelectorError):
            main(["items", "read", "i1,i2:all"])
        assert service.requests == []


# ---------------------------------------------------------------------------
# items remove / sources delete
# ---------------------------------------------------------------------------

class TestDeletion:
    def test_remove_with_yes(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("DELETE", "/api/v1/items")] = _ok({"deleted": ["a"], "notFound": ["b"]})

        assert main(["items", "remove", "a,b", "-y"]) == exit_codes.SUCCESS

        assert service.json_of() == {"ids": ["a", "b"]}
        err = capsys.readouterr().err
        assert "Deleted 1 item: a" in err
        assert "Not found: b" in err

    def test_remove_cancelled(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch("candlekeep.cli.commands.items.confirm_deletion", return_value=False) as confirm:
            assert main(["items", "remove", "a"]) == exit_codes.SUCCESS

        confirm.assert_called_once_with("item", ["a"])
        assert service.requests == []
        assert "Cancelled." in capsys.readouterr().err

    def test_remove_confirmed(self, logged_in: Path, service: FakeService) -> None:
        service.routes[("DELETE", "/api/v1/items")] = _ok({"deleted": ["a"]})
        with patch("candlekeep.cli.commands.items.confirm_deletion", return_value=True):
            main(["items", "remove", "a"])
        assert len(service.requests) == 1

    def test_sources_delete(self, logged_in: Path, service: FakeService) -> None:
        service.routes[("DELETE", "/api/v1/sources")] = _ok({"deleted": ["s1"]})
        with patch("candlekeep.cli.commands.sources.confirm_deletion", return_value=True) as confirm:
            main(["sources", "delete", "s1"])
        confirm.assert_called_once_with("source", ["s1"])
        assert service.json_of() == {"ids": ["s1"]}


# ---------------------------------------------------------------------------
# items enrich / flag
# ---------------------------------------------------------------------------

class TestEnrich:
    def test_enrich_payload(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("PATCH", "/api/v1/items/enrich")] = _ok({
            "item": {"id": "i1", "title": "Dune", "author": "Frank Herbert", "enrichmentConfidence": 0.95},
        })

        main([
            "items", "enrich", "i1",
            "--author", "Frank Herbert",
            "--confidence", "0.95",
            "--toc", '[{"title":"Book One","page":3}]',
        ])

        assert service.json_of() == {
            "itemId": "i1",
            "author": "Frank Herbert",
            "confidence": 0.95,
            "toc": [{"title": "Book One", "page": 3}],
        }
        err = capsys.readouterr().err
        assert "Enriched: Dune" in err
        assert "TOC: 1 entries added" in err

    def test_enrich_validation_precedes_request(self, logged_in: Path, service: FakeService) -> None:
        with pytest.raises(InvalidInputError):
            main(["items", "enrich", "i1", "--confidence", "2"])
        assert service.requests == []

    def test_flag(self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str]) -> None:
        service.routes[("POST", "/api/v1/items/flag")] = _ok({"item": {"id": "i1", "title": "Dune"}})
        main(["items", "flag", "i1"])
        assert "Flagged for enrichment: Dune" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Markdown documents
# ---------------------------------------------------------------------------

class TestMarkdown:
    def test_create(self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str]) -> None:
        service.routes[("POST", "/api/v1/items/markdown")] = _ok({"id": "d1", "title": "Notes", "pageCount": 1})

        main(["items", "create", "Notes", "-d", "Scratch"])

        assert service.json_of() == {"title": "Notes", "description": "Scratch"}
        captured = capsys.readouterr()
        assert "Created: Notes" in captured.err
        assert "ck items put d1" in captured.out

    def test_get_writes_raw_content(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("GET", "/api/v1/items/d1/content")] = _ok({"content": "# [Title]\n\nbody\n"})

        main(["items", "get", "d1"])

        assert capsys.readouterr().out == "# [Title]\n\nbody\n"

    def test_put_from_file(self, logged_in: Path, service: FakeService, tmp_path: Path) -> None:
        service.routes[("PUT", "/api/v1/items/d1/content")] = _ok({"id": "d1", "title": "Notes", "version": 2})
        source = tmp_path / "notes.md"
        source.write_text("new body", encoding="utf-8")

        main(["items", "put", "d1", "--file", str(source)])

        assert service.json_of() == {"content": "new body"}

    def test_put_from_stdin(
        self, logged_in: Path, service: FakeService, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        service.routes[("PUT", "/api/v1/items/d1/content")] = _ok({"id": "d1"})
        monkeypatch.setattr("sys.stdin", io.StringIO("piped"))

        main(["items", "put", "d1"])

        assert service.json_of() == {"content": "piped"}

    def test_put_blank_rejected(
        self, logged_in: Path, service: FakeService, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("   "))
        with pytest.raises(InvalidInputError, match="No content provided"):
            main(["items", "put", "d1"])
        assert service.requests == []


# ---------------------------------------------------------------------------
# items add — full upload flow
# ---------------------------------------------------------------------------

class TestAdd:
    @pytest.fixture
    def storage(self, monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
        received: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(200)

        def _transport(*, filename: str = "") -> HttpStorageTransport:
            return HttpStorageTransport(filename=filename, transport=httpx.MockTransport(handler))

        monkeypatch.setattr("candlekeep.cli.commands.items.HttpStorageTransport", _transport)
        return received

    def test_upload_flow(
        self,
        logged_in: Path,
        service: FakeService,
        storage: list[httpx.Request],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("POST", "/api/v1/upload")] = _ok({
            "itemId": "i9",
            "uploadUrl": "https://storage.example/put?sig=1",
            "storageKey": "uploads/i9.pdf",
            "expiresAt": "2026-10-18T12:00:00Z",
        })
        service.routes[("POST", "/api/v1/upload/confirm")] = _ok({
            "item": {"id": "i9", "title": "paper"},
            "job": {"id": "j1", "status": "PENDING"},
        })
        pdf = tmp_path / "paper.pdf"
        pdf.write_bytes(b"%PDF-1.7 data")

        assert main(["items", "add", str(pdf)]) == exit_codes.SUCCESS

        assert service.json_of(0) == {"filename": "paper.pdf", "size": 13, "contentType": "application/pdf"}
        assert service.json_of(1) == {"itemId": "i9", "storageKey": "uploads/i9.pdf"}
        assert len(storage) == 1
        assert storage[0].content == b"%PDF-1.7 data"
        assert "authorization" not in storage[0].headers
        assert "Added: paper" in capsys.readouterr().err

    def test_unsupported_file_rejected_before_request(
        self, logged_in: Path, service: FakeService, tmp_path: Path,
    ) -> None:
        doc = tmp_path / "paper.docx"
        doc.write_bytes(b"PK")
        with pytest.raises(UnsupportedFileTypeError):
            main(["items", "add", str(doc)])
        assert service.requests == []


# ---------------------------------------------------------------------------
# sources list
# ---------------------------------------------------------------------------

class TestSources:
    def test_default_limit(self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str]) -> None:
        service.routes[("GET", "/api/v1/sources")] = _ok({
            "sources": [{"id": "s1", "authorHandle": "@ann", "content": "hi", "createdAt": "2026-01-02T03:04:05Z"}],
            "total": 1,
        })

        main(["sources", "list"])

        assert service.requests[0].url.params["limit"] == "50"
        out = capsys.readouterr().out
        assert "@ann" in out
        assert "2026-01-02" in out

    def test_custom_limit(self, logged_in: Path, service: FakeService) -> None:
        service.routes[("GET", "/api/v1/sources")] = _ok({"sources": []})
        main(["sources", "list", "--limit", "5"])
        assert service.requests[0].url.params["limit"] == "5"

    def test_invalid_limit(self, logged_in: Path, service: FakeService) -> None:
        with pytest.raises(InvalidInputError):
            main(["sources", "list", "--limit", "0"])
        assert service.requests == []


# ---------------------------------------------------------------------------
# auth
# ---------------------------------------------------------------------------

class TestAuthCommands:
    def test_whoami_json(
        self, logged_in: Path, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        user = {"id": "u1", "email": "r@example.com", "name": None, "tier": "pro", "itemLimit": 10, "itemCount": 3}
        service.routes[("GET", "/api/v1/auth/whoami")] = _ok(user)

        main(["--json", "auth", "whoami"])

        assert json.loads(capsys.readouterr().out) == user

    def test_logout_clears_key(self, logged_in: Path) -> None:
        assert main(["auth", "logout"]) == exit_codes.SUCCESS
        store = ConfigStore()
        assert store.api_key is None
        assert store.api_url == "https://ck.example"

    def test_logout_when_logged_out(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["auth", "logout"]) == exit_codes.SUCCESS
        assert "Not currently logged in." in capsys.readouterr().err

    def test_login_when_already_logged_in_binds_nothing(
        self, logged_in: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch("candlekeep.infra.callback_listener.CallbackListener.bind") as bind:
            assert main(["auth", "login"]) == exit_codes.SUCCESS
        bind.assert_not_called()
        assert "Already logged in" in capsys.readouterr().err

    def test_manual_login_persists_key(
        self, service: FakeService, capsys: pytest.CaptureFixture[str],
    ) -> None:
        service.routes[("GET", "/api/v1/auth/whoami")] = _ok({
            "id": "u1", "email": "r@example.com", "tier": "free", "itemLimit": 10, "itemCount": 0,
        })
        with _bind_fails(), _typed("ck_pasted\r"):
            assert main(["auth", "login", "--no-browser"]) == exit_codes.SUCCESS

        assert ConfigStore().api_key == "ck_pasted"
        assert service.requests[0].headers["authorization"] == "Bearer ck_pasted"
        err = capsys.readouterr().err
        assert "Browser authentication failed." in err
        assert "Logged in as r@example.com" in err

    def test_manual_login_blank_key_saves_nothing(self, service: FakeService) -> None:
        with _bind_fails(), _typed("   \r"):
            with pytest.raises(CredentialInvalidError, match="No API key provided"):
                main(["auth", "login", "--no-browser"])

        assert ConfigStore().api_key is None
        assert service.requests == []


@contextmanager
def _bind_fails() -> Iterator[None]:
    with patch(
        "candlekeep.cli.commands.auth.CallbackListener.bind",
        side_effect=ListenerBindFailedError("Failed to start local server"),
    ):
        yield


@contextmanager
def _typed(keys: str) -> Iterator[None]:
    """Feed *keys* to the real questionary prompt via a pipe."""
    with create_pipe_input() as pipe, create_app_session(input=pipe, output=DummyOutput()):
        pipe.send_text(keys)
        yield
