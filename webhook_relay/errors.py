"""Relay error taxonomy and the structured error response handler."""
from fastapi import Request
from fastapi.responses import JSONResponse
import structlog

log = structlog.get_logger()


class RelayError(Exception):
    """Base class for every failure that aborts a relayed request."""

    stage = "relay"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


# Extraction stage

class MalformedTimestamp(RelayError):
    stage = "extract"
    status_code = 400


class MissingField(RelayError):
    stage = "extract"
    status_code = 400

    def __init__(self, field: str):
        super().__init__(f"required header {field} is empty")
        self.field = field


class BodyReadError(RelayError):
    stage = "extract"
    status_code = 400


class PayloadTooLarge(RelayError):
    stage = "extract"
    status_code = 413

    def __init__(self, size: int, max_size: int):
        super().__init__(f"payload of {size} bytes exceeds maximum size of {max_size} bytes")
        self.size = size
        self.max_size = max_size


# Build stage

class EnvelopeConstraintViolation(RelayError):
    stage = "build"
    status_code = 422


# Forward stage

class SerializationError(RelayError):
    stage = "forward"
    status_code = 500


class RequestConstructionError(RelayError):
    stage = "forward"
    status_code = 500


class TransportError(RelayError):
    stage = "forward"
    status_code = 502


class ResponseReadError(RelayError):
    stage = "forward"
    status_code = 502


class ClientDisconnected(RelayError):
    """The inbound client went away before the downstream call completed."""

    stage = "forward"
    status_code = 499


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Log a relay failure with request context and answer the caller."""
    correlation_id = getattr(request.state, "correlation_id", None)
    log.error(
        "relay.failed",
        error=exc.message,
        error_type=exc.__class__.__name__,
        stage=exc.stage,
        status_code=exc.status_code,
        path=request.url.path,
        correlation_id=correlation_id,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "stage": exc.stage,
            "correlation_id": correlation_id,
            "path": str(request.url.path),
        },
    )
