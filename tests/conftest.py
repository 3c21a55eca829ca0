"""Shared fixtures for connector tests.

Everything runs against ``FakeSession``: responses are real
``requests.Response`` objects queued per (method, path), and every request
is recorded so tests can assert on what was sent.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

import pytest
import requests

from freshservice_connector.client import FreshServiceClient
from freshservice_connector.config import ConnectorConfig

BASE = "https://acme.freshservice.com/api/v2/"


def make_response(
    status: int = 200,
    body: Any = None,
    headers: Optional[dict[str, str]] = None,
    next_page: Optional[int] = None,
    path: str = "agents",
) -> requests.Response:
    """Build a real Response; ``body`` is JSON-encoded unless it is bytes."""
    resp = requests.Response()
    resp.status_code = status
    if body is None:
        resp._content = b""
    elif isinstance(body, bytes):
        resp._content = body
    else:
        resp._content = json.dumps(body).encode()
    resp.encoding = "utf-8"
    resp.headers.update(headers or {})
    if next_page is not None:
        resp.headers["Link"] = f'<{BASE}{path}?page={next_page}&per_page=100>; rel="next"'
    return resp


@dataclass
class Call:
    method: str
    path: str
    params: Optional[dict]
    json: Optional[dict]


class FakeSession:
    """Stands in for requests.Session. The last queued response per route repeats."""

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.auth = None
        self.calls: list[Call] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def add(self, method: str, path: str, *responses: Any) -> "FakeSession":
        self._routes.setdefault((method, path), []).extend(responses)
        return self

    def request(self, method, url, params=None, json=None, timeout=None):
        assert url.startswith(BASE), url
        path = url[len(BASE):]
        self.calls.append(Call(method, path, params, json))
        queue = self._routes.get((method, path))
        if not queue:
            raise AssertionError(f"unexpected request {method} {path}")
        resp = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(resp, Exception):
            raise resp
        return resp

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> FreshServiceClient:
    return FreshServiceClient("secret-key", "acme", session=session)


@pytest.fixture
def config() -> ConnectorConfig:
    return ConnectorConfig(api_key="secret-key", domain="acme", page_size=100)


def agent_record(agent_id: int, email: Optional[str] = None, role_ids: tuple = (), **extra) -> dict:
    record = {
        "id": agent_id,
        "first_name": f"Agent{agent_id}",
        "last_name": "Smith",
        "email": email or f"agent{agent_id}@acme.com",
        "active": True,
        "roles": [{"role_id": r, "assignment_scope": "entire_helpdesk"} for r in role_ids],
    }
    record.update(extra)
    return record


def group_record(group_id: int, members=(), leaders=(), **extra) -> dict:
    record = {
        "id": group_id,
        "name": f"Group {group_id}",
        "description": "Support team",
        "members": list(members),
        "leaders": list(leaders),
    }
    record.update(extra)
    return record


def requester_record(requester_id: int, **extra) -> dict:
    record = {
        "id": requester_id,
        "first_name": "Req",
        "last_name": str(requester_id),
        "primary_email": f"req{requester_id}@acme.com",
        "active": True,
    }
    record.update(extra)
    return record
