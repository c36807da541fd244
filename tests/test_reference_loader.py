"""曲マスタ取得処理のテスト。"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
import requests

from dxrating.errors import ReferenceUnavailableError
from dxrating.reference_loader import (
    ReferenceStore,
    fetch_reference_table,
    load_reference_table_file,
)


class _FakeResponse:
    def __init__(self, payload=None, status_code=200, json_error=None):
        self._payload = payload
        self.status_code = status_code
        self._json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._json_error:
            raise self._json_error
        return self._payload


@pytest.mark.light
def test_fetch_returns_rows(monkeypatch: pytest.MonkeyPatch):
    calls = []

    def _get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse([{"title": "Foo"}])

    monkeypatch.setattr("dxrating.reference_loader.requests.get", _get)

    assert fetch_reference_table("https://example.invalid/db.json", timeout=5) == [{"title": "Foo"}]
    assert calls == [("https://example.invalid/db.json", 5)]


@pytest.mark.light
def test_fetch_http_error_is_converted(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "dxrating.reference_loader.requests.get",
        lambda url, timeout: _FakeResponse(status_code=503),
    )
    with pytest.raises(ReferenceUnavailableError, match="HTTP fetch failed"):
        fetch_reference_table("https://example.invalid/db.json")


@pytest.mark.light
def test_fetch_network_error_is_converted(monkeypatch: pytest.MonkeyPatch):
    def _raise(*_args, **_kwargs):
        raise requests.ConnectionError("network down")

    monkeypatch.setattr("dxrating.reference_loader.requests.get", _raise)
    with pytest.raises(ReferenceUnavailableError, match="network down"):
        fetch_reference_table("https://example.invalid/db.json")


@pytest.mark.light
def test_fetch_rejects_non_array(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "dxrating.reference_loader.requests.get",
        lambda url, timeout: _FakeResponse({"title": "Foo"}),
    )
    with pytest.raises(ReferenceUnavailableError, match="not a JSON array"):
        fetch_reference_table("https://example.invalid/db.json")


@pytest.mark.light
def test_fetch_rejects_invalid_json(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "dxrating.reference_loader.requests.get",
        lambda url, timeout: _FakeResponse(json_error=ValueError("Expecting value")),
    )
    with pytest.raises(ReferenceUnavailableError, match="not valid JSON"):
        fetch_reference_table("https://example.invalid/db.json")


@pytest.mark.light
def test_load_file(reference_table_path: Path):
    rows = load_reference_table_file(str(reference_table_path))
    assert rows[0]["title"] == "Foo"


@pytest.mark.light
def test_load_missing_file(tmp_path: Path):
    with pytest.raises(ReferenceUnavailableError):
        load_reference_table_file(str(tmp_path / "missing.json"))


@pytest.mark.light
def test_store_index_before_load_raises():
    """取得前に索引を参照すると ReferenceUnavailableError になることを確認する。"""
    store = ReferenceStore(lambda: [{"title": "Foo"}])
    assert store.is_loaded is False
    with pytest.raises(ReferenceUnavailableError):
        _ = store.index


@pytest.mark.light
def test_store_loads_once():
    calls = []

    def _loader():
        calls.append(1)
        return [{"title": "Foo", "version": 1}]

    store = ReferenceStore(_loader)
    first = store.load()
    second = store.load()

    assert first is second
    assert store.index is first
    assert len(calls) == 1


@pytest.mark.light
def test_store_concurrent_load_builds_once():
    calls = []
    barrier = threading.Barrier(4)

    def _loader():
        calls.append(1)
        return [{"title": "Foo"}]

    store = ReferenceStore(_loader)
    results = []

    def _worker():
        barrier.wait()
        results.append(store.load())

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert all(r is results[0] for r in results)


@pytest.mark.light
def test_store_failed_load_can_be_retried():
    attempts = []

    def _loader():
        attempts.append(1)
        if len(attempts) == 1:
            raise ReferenceUnavailableError("first attempt fails")
        return [{"title": "Foo"}]

    store = ReferenceStore(_loader)
    with pytest.raises(ReferenceUnavailableError):
        store.load()
    assert store.is_loaded is False
    assert len(store.load()) == 1


@pytest.mark.light
def test_store_from_file(reference_table_path: Path):
    store = ReferenceStore.from_file(str(reference_table_path))
    assert store.load().lookup_version("foo") == 25500
