"""Tests for the Direktiv forwarder."""
from datetime import datetime, timezone
import httpx
import orjson
import pytest
from webhook_relay.config import ForwarderConfig
from webhook_relay.errors import (
    RequestConstructionError,
    ResponseReadError,
    SerializationError,
    TransportError,
)
from webhook_relay.event_models import OutboundEnvelope
from webhook_relay.metrics import Metrics
from webhook_relay.services.forwarder import Forwarder


@pytest.fixture
def envelope():
    return OutboundEnvelope(
        id="evt-1",
        source="src-a",
        specversion="1.0",
        type="audit.log",
        time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        payload=b'{"k":"v"}',
    )


def make_forwarder(handler, **config) -> Forwarder:
    settings = {"endpoint": "http://direktiv.test", "namespace": "ops", "token": "abc"}
    settings.update(config)
    return Forwarder(
        ForwarderConfig(**settings),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_posts_to_broadcast_endpoint(forwarder, captured, envelope):
    result = await forwarder.forward(envelope)

    assert result.status_code == 200
    assert result.body == b'{"status":"ok"}'

    assert len(captured) == 1
    sent = captured[0]
    assert sent.method == "POST"
    assert str(sent.url) == "http://direktiv.test/api/namespaces/ops/broadcast"
    assert sent.headers["direktiv-token"] == "secret-token"
    assert sent.headers["content-type"] == "application/cloudevents+json; charset=utf-8"

    body = orjson.loads(sent.content)
    assert body["id"] == "evt-1"
    assert body["data"] == {"k": "v"}


@pytest.mark.parametrize(
    "token,expected",
    [
        ("abc\n", "abc"),
        ("abc", "abc"),
        ("abc\n\n", "abc\n"),
        (" abc ", " abc "),
    ],
)
def test_token_strips_one_trailing_newline(token, expected):
    config = ForwarderConfig(endpoint="http://direktiv.test", namespace="ops", token=token)
    assert config.auth_token == expected


def test_auth_header_sent_without_newline(envelope):
    forwarder = make_forwarder(lambda r: httpx.Response(200), token="abc\n")
    request = forwarder.build_request(envelope)
    assert request.headers["direktiv-token"] == "abc"


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised(envelope):
    forwarder = make_forwarder(lambda r: httpx.Response(401, content=b"unauthorized"))
    result = await forwarder.forward(envelope)
    assert result.status_code == 401
    assert result.body == b"unauthorized"


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["", "direktiv.test", "ftp://direktiv.test", "http://"])
async def test_bad_endpoint_is_request_construction_error(envelope, endpoint):
    forwarder = make_forwarder(lambda r: httpx.Response(200), endpoint=endpoint)
    with pytest.raises(RequestConstructionError):
        await forwarder.forward(envelope)


@pytest.mark.asyncio
async def test_connection_refused_is_transport_error(envelope):
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    forwarder = make_forwarder(handler)
    with pytest.raises(TransportError) as exc_info:
        await forwarder.forward(envelope)
    assert "ConnectError" in exc_info.value.message


@pytest.mark.asyncio
async def test_timeout_is_transport_error(envelope):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError):
        await make_forwarder(handler).forward(envelope)


class BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b'{"partial'
        raise httpx.ReadError("connection reset")


@pytest.mark.asyncio
async def test_broken_response_body_is_read_error(envelope):
    forwarder = make_forwarder(lambda r: httpx.Response(200, stream=BrokenStream()))
    with pytest.raises(ResponseReadError):
        await forwarder.forward(envelope)


@pytest.mark.asyncio
async def test_forward_outcomes_recorded(envelope):
    metrics = Metrics()
    forwarder = make_forwarder(lambda r: httpx.Response(202))
    forwarder.metrics = metrics

    await forwarder.forward(envelope)

    value = metrics.registry.get_sample_value("relay_forward_total", {"outcome": "202"})
    assert value == 1.0


@pytest.mark.asyncio
async def test_construction_failure_recorded(envelope):
    metrics = Metrics()
    forwarder = make_forwarder(lambda r: httpx.Response(200), endpoint="")
    forwarder.metrics = metrics

    with pytest.raises(RequestConstructionError):
        await forwarder.forward(envelope)

    value = metrics.registry.get_sample_value("relay_forward_total", {"outcome": "request_error"})
    assert value == 1.0


@pytest.mark.asyncio
async def test_serialization_failure_recorded(envelope, monkeypatch):
    def unserializable(self):
        raise orjson.JSONEncodeError("Type is not JSON serializable")

    monkeypatch.setattr(OutboundEnvelope, "to_json", unserializable)
    metrics = Metrics()
    forwarder = make_forwarder(lambda r: httpx.Response(200))
    forwarder.metrics = metrics

    with pytest.raises(SerializationError):
        await forwarder.forward(envelope)

    value = metrics.registry.get_sample_value(
        "relay_forward_total", {"outcome": "serialization_error"}
    )
    assert value == 1.0
