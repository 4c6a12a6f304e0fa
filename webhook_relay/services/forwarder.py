"""Forward CloudEvents envelopes to the Direktiv namespace broadcast API."""
from dataclasses import dataclass
import time

import httpx
import orjson
import structlog

from ..config import ForwarderConfig
from ..errors import (
    RequestConstructionError,
    ResponseReadError,
    SerializationError,
    TransportError,
)
from ..event_models import OutboundEnvelope

log = structlog.get_logger()

CLOUDEVENTS_CONTENT_TYPE = "application/cloudevents+json; charset=utf-8"
TOKEN_HEADER = "direktiv-token"


@dataclass(frozen=True)
class ForwardResult:
    status_code: int
    body: bytes


class Forwarder:
    """
    Relays envelopes to Direktiv with a single POST per event.

    The underlying ``httpx.AsyncClient`` is shared by all requests and is not
    modified after construction. No retries are attempted.
    """

    def __init__(self, config: ForwarderConfig, client: httpx.AsyncClient | None = None, metrics=None):
        self.config = config
        self.metrics = metrics
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(config.timeout))

    def build_request(self, envelope: OutboundEnvelope) -> httpx.Request:
        """
        Build the broadcast request for an envelope.

        Raises:
            SerializationError: The envelope could not be encoded as JSON
            RequestConstructionError: The endpoint is empty or not an http(s) URL
        """
        try:
            body = envelope.to_json()
        except orjson.JSONEncodeError as e:
            raise SerializationError(f"could not serialize envelope {envelope.id!r}: {e}") from e

        if not self.config.endpoint:
            raise RequestConstructionError("DIREKTIV_ENDPOINT is not configured")
        try:
            url = httpx.URL(self.config.broadcast_url)
        except httpx.InvalidURL as e:
            raise RequestConstructionError(f"invalid broadcast URL: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise RequestConstructionError(f"invalid broadcast URL {self.config.broadcast_url!r}")

        return self._client.build_request(
            "POST",
            url,
            content=body,
            headers={
                TOKEN_HEADER: self.config.auth_token,
                "Content-Type": CLOUDEVENTS_CONTENT_TYPE,
            },
        )

    async def forward(self, envelope: OutboundEnvelope) -> ForwardResult:
        """
        POST the envelope and return the full downstream response.

        Raises:
            SerializationError, RequestConstructionError: see build_request
            TransportError: connection, DNS, TLS failure or timeout
            ResponseReadError: the response body could not be read in full
        """
        start_time = time.time()
        try:
            request = self.build_request(envelope)
        except SerializationError:
            self._record("serialization_error", start_time)
            raise
        except RequestConstructionError:
            self._record("request_error", start_time)
            raise

        try:
            response = await self._client.send(request, stream=True)
        except httpx.UnsupportedProtocol as e:
            self._record("request_error", start_time)
            raise RequestConstructionError(str(e)) from e
        except httpx.TransportError as e:
            self._record("transport_error", start_time)
            raise TransportError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e

        try:
            body = await response.aread()
        except httpx.HTTPError as e:
            self._record("read_error", start_time)
            raise ResponseReadError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e
        finally:
            await response.aclose()

        self._record(str(response.status_code), start_time)
        if response.is_error:
            log.warning(
                "direktiv.error_status",
                status_code=response.status_code,
                event_id=envelope.id,
                url=str(request.url),
            )
        return ForwardResult(status_code=response.status_code, body=body)

    def _record(self, outcome: str, start_time: float):
        if self.metrics is not None:
            self.metrics.record_forward(outcome, time.time() - start_time)

    async def aclose(self):
        await self._client.aclose()
