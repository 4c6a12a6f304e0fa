"""Read a CloudEvent delivered in binary mode (ce-* headers + raw body)."""
from fastapi import Request
from starlette.requests import ClientDisconnect
import structlog

from ..errors import BodyReadError, MissingField, PayloadTooLarge
from ..event_models import InboundEvent
from ..timestamps import parse_rfc3339

log = structlog.get_logger()

ATTRIBUTE_HEADERS = {
    "id": "ce-id",
    "source": "ce-source",
    "specversion": "ce-specversion",
    "type": "ce-type",
}
TIME_HEADER = "ce-time"


async def extract_event(
    request: Request,
    max_size: int | None = None,
    require_fields: bool = False,
) -> InboundEvent:
    """
    Build an InboundEvent from the request headers and body.

    Empty attribute headers pass through as empty strings unless
    ``require_fields`` is set.

    Raises:
        MalformedTimestamp: ce-time is missing or not RFC 3339
        MissingField: an attribute header is empty and require_fields is set
        BodyReadError: the body could not be read in full
        PayloadTooLarge: the body is larger than max_size
    """
    attributes = {
        name: request.headers.get(header, "") for name, header in ATTRIBUTE_HEADERS.items()
    }
    if require_fields:
        for name, header in ATTRIBUTE_HEADERS.items():
            if not attributes[name]:
                raise MissingField(header)

    event_time = parse_rfc3339(request.headers.get(TIME_HEADER, ""))

    payload = await _read_body(request, max_size)

    return InboundEvent(time=event_time, payload=payload, **attributes)


async def _read_body(request: Request, max_size: int | None) -> bytes:
    chunks = []
    size = 0
    try:
        async for chunk in request.stream():
            size += len(chunk)
            if max_size is not None and size > max_size:
                raise PayloadTooLarge(size, max_size)
            chunks.append(chunk)
    except ClientDisconnect as e:
        raise BodyReadError("client disconnected before the body was read") from e
    except (OSError, RuntimeError) as e:
        log.warning("body.read_failed", error=str(e), error_type=type(e).__name__)
        raise BodyReadError(f"could not read request body: {e}") from e
    return b"".join(chunks)
