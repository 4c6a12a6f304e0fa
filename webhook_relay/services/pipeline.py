"""Extract -> build -> forward pipeline run once per inbound request."""
from dataclasses import dataclass
import asyncio

from fastapi import Request
import structlog

from ..errors import ClientDisconnected
from .envelope import build_envelope
from .extractor import extract_event
from .forwarder import Forwarder, ForwardResult

log = structlog.get_logger()

DISCONNECT_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class RelayResult:
    event_id: str
    downstream_status: int
    response_body: bytes


async def relay(
    request: Request,
    forwarder: Forwarder,
    max_size: int | None = None,
    require_fields: bool = False,
    metrics=None,
) -> RelayResult:
    """
    Relay one inbound CloudEvent to Direktiv.

    Every failure propagates as a RelayError for the HTTP layer to report.
    """
    event = await extract_event(request, max_size=max_size, require_fields=require_fields)
    log.info("cloud_event.received", cloud_event=event.log_view())
    if metrics is not None:
        metrics.record_event_received(event.type, len(event.payload))

    envelope = build_envelope(event)

    result = await _bound_to_request(request, forwarder.forward(envelope))
    log.info(
        "direktiv.response",
        event_id=event.id,
        status_code=result.status_code,
        body=result.body.decode("utf-8", errors="replace"),
    )
    return RelayResult(
        event_id=event.id,
        downstream_status=result.status_code,
        response_body=result.body,
    )


async def _bound_to_request(request: Request, call) -> ForwardResult:
    """Await the downstream call, cancelling it if the inbound client goes away."""
    forward_task = asyncio.ensure_future(call)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait(
            {forward_task, watcher}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        watcher.cancel()
        if not forward_task.done():
            forward_task.cancel()

    if forward_task in done:
        return forward_task.result()

    await asyncio.gather(forward_task, return_exceptions=True)
    # Watcher failed rather than observing a disconnect
    if not watcher.cancelled() and watcher.exception() is not None:
        raise watcher.exception()
    raise ClientDisconnected("client disconnected while forwarding to Direktiv")


async def _wait_for_disconnect(request: Request):
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)
