"""
Pytest configuration and shared fixtures.

The package lives under ``src/``; when it has not been installed (e.g. with
``pip install -e .``) the source directory is put on ``sys.path`` so the
tests still import it.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    try:
        import icf_server  # noqa: F401
        return
    except ModuleNotFoundError:
        pass

    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    sys.path.insert(0, str(src_dir))


_ensure_src_on_path()

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from icf_server.who_client import WHOICFClient

ICF_PATH = "/icd/release/11/2025-01/icf"


class FakeClock:
    """Controllable wall clock in epoch seconds"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeWHOApi:
    """
    In-memory stand-in for the WHO token endpoint and ICD-API.

    ``routes`` maps a request path to either a JSON payload or a
    ``(status_code, body)`` tuple. Unknown paths answer 404. ``after_serving``
    maps a path to a callback run once that path has been answered.
    """

    icf_path = ICF_PATH

    def __init__(self):
        self.routes: dict[str, Any] = {}
        self.after_serving: dict[str, Callable[[], None]] = {}
        self.token_error: Exception | None = None
        self.token_requests: list[httpx.Request] = []
        self.api_requests: list[httpx.Request] = []
        self.token_status = 200
        self.expires_in = 3600
        self.unauthorized = 0

    def add_entity(self, entity_id: str, code: str, title: Any, **fields) -> str:
        """Register an entity under the ICF linearization and its codeinfo"""
        uri = f"http://id.who.int{ICF_PATH}/{entity_id}"
        self.routes[f"{ICF_PATH}/{entity_id}"] = {
            "@id": uri,
            "code": code,
            "title": title,
            **fields,
        }
        self.routes[f"{ICF_PATH}/codeinfo/{code}"] = {"code": code, "stemId": uri}
        return uri

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "icdaccessmanagement.who.int":
            self.token_requests.append(request)
            if self.token_error is not None:
                raise self.token_error
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="invalid_client")
            return httpx.Response(
                200,
                json={
                    "access_token": f"token-{len(self.token_requests)}",
                    "expires_in": self.expires_in,
                    "token_type": "Bearer",
                },
            )

        self.api_requests.append(request)
        if self.unauthorized:
            self.unauthorized -= 1
            return httpx.Response(401, text="Unauthorized")

        route = self.routes.get(request.url.path)
        callback = self.after_serving.pop(request.url.path, None)
        if callback is not None:
            callback()
        if route is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, text=body)
        return httpx.Response(200, json=route)


@pytest.fixture
def who_api():
    return FakeWHOApi()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def who_client(who_api, clock):
    client = WHOICFClient(
        client_id="test-client",
        client_secret="test-secret",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(who_api)),
        clock=clock,
    )
    yield client
    await client.close()
