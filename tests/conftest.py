"""Shared fixtures for relay tests."""
import asyncio
import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_JSON", "false")

import httpx
import pytest
from starlette.requests import Request

from webhook_relay.config import ForwarderConfig
from webhook_relay.services.forwarder import Forwarder

CE_HEADERS = {
    "ce-id": "evt-1",
    "ce-source": "src-a",
    "ce-specversion": "1.0",
    "ce-type": "audit.log",
    "ce-time": "2024-01-01T00:00:00Z",
}


def make_request(headers: dict, body: bytes = b"", disconnect_after_body: bool = False) -> Request:
    """Build a Starlette request that delivers ``body`` in one chunk."""
    sent = False
    never = asyncio.Event()

    async def receive():
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        if disconnect_after_body:
            return {"type": "http.disconnect"}
        await never.wait()

    return Request(http_scope(headers), receive)


def http_scope(headers: dict, method: str = "POST", path: str = "/") -> dict:
    """ASGI HTTP scope for a request carrying ``headers``."""
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": b"",
        "root_path": "",
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("testclient", 50000),
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()],
    }


@pytest.fixture
def ce_headers():
    return dict(CE_HEADERS)


@pytest.fixture
def forwarder_config():
    return ForwarderConfig(
        endpoint="http://direktiv.test",
        namespace="ops",
        token="secret-token\n",
        timeout=5.0,
    )


@pytest.fixture
def captured():
    """Requests seen by the fake Direktiv endpoint."""
    return []


@pytest.fixture
def direktiv_transport(captured):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, content=b'{"status":"ok"}')

    return httpx.MockTransport(handler)


@pytest.fixture
def forwarder(forwarder_config, direktiv_transport):
    return Forwarder(forwarder_config, client=httpx.AsyncClient(transport=direktiv_transport))
