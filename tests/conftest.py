"""Fakes compartidos: un almacén remoto en memoria detrás de requests."""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from timekeeper.day_identity import DayIdentity
from timekeeper.remote import DayRecordClient


def make_response(
    status: int, body: object = None, raw: bytes | None = None
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = raw if raw is not None else json.dumps(body).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    return resp


class FakeStoreSession:
    """Emulates GET/POST/DELETE on ``/`` over a dict keyed by date."""

    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None
        self.status_override: int | None = None
        self.raw_override: bytes | None = None

    def request(
        self,
        method: str,
        url: str,
        timeout: float | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        self.calls.append((method, {"url": url, "params": params, "json": json}))
        if self.fail_with is not None:
            raise self.fail_with
        if self.status_override is not None:
            return make_response(self.status_override, {"error": "boom"})
        if self.raw_override is not None:
            return make_response(200, raw=self.raw_override)
        if method == "GET":
            assert params is not None
            lo, hi = int(params["from"]), int(params["to"])
            body = [row for d, row in sorted(self.rows.items()) if lo <= d <= hi]
            return make_response(200, body)
        if method == "POST":
            assert json is not None
            self.rows[int(json["date"])] = dict(json)
            return make_response(200, json)
        if method == "DELETE":
            assert params is not None
            self.rows.pop(int(params["date"]), None)
            return make_response(200, {})
        return make_response(405, {})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


@pytest.fixture
def store() -> FakeStoreSession:
    return FakeStoreSession()


@pytest.fixture
def client(store: FakeStoreSession) -> DayRecordClient:
    return DayRecordClient(
        "http://store.test", session=store  # type: ignore[arg-type]
    )


@pytest.fixture
def identity() -> DayIdentity:
    # UTC-5, like the US east coast in winter.
    return DayIdentity(5 * 3600)
