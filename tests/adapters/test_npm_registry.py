from __future__ import annotations

from typing import Any

import requests

from stencil.adapters.npm_registry import NpmRegistryClient
from stencil.app.versions import resolve_latest


class DummyResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class DummySession:
    def __init__(self, responses: list[Any]) -> None:
        self._responses = responses
        self.calls: list[tuple[str, dict[str, str] | None]] = []

    def get(self, url: str, headers: dict[str, str] | None = None, timeout: float | None = None) -> DummyResponse:
        self.calls.append((url, headers))
        if not self._responses:
            raise AssertionError("no more responses queued")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_fetch_versions_from_document() -> None:
    session = DummySession([DummyResponse(200, {"name": "tpl", "versions": {"1.0.0": {}, "1.1.0": {}}})])
    client = NpmRegistryClient("https://registry.example/", session=session)

    assert client.fetch_versions("tpl") == ["1.0.0", "1.1.0"]
    assert session.calls[0][0] == "https://registry.example/tpl"
    assert session.calls[0][1] == {"Accept": "application/json"}


def test_documents_are_cached_per_client() -> None:
    session = DummySession([DummyResponse(200, {"versions": {"2.0.0": {}}})])
    client = NpmRegistryClient("https://registry.example", session=session)

    assert resolve_latest(client, "tpl") == "2.0.0"
    assert resolve_latest(client, "tpl") == "2.0.0"
    assert len(session.calls) == 1


def test_scoped_package_url() -> None:
    client = NpmRegistryClient("https://registry.example", session=DummySession([]))

    assert client.package_url("@scope/tpl") == "https://registry.example/@scope/tpl"


def test_failures_degrade_to_unavailable() -> None:
    session = DummySession(
        [
            requests.ConnectionError("offline"),
            DummyResponse(404, {"error": "not_found"}),
            DummyResponse(200, ValueError("bad json")),
            DummyResponse(200, ["not", "a", "document"]),
        ]
    )
    client = NpmRegistryClient("https://registry.example", session=session)

    for name in ("a", "b", "c", "d"):
        assert client.fetch_package(name) is None
    assert client.fetch_versions("") == []
