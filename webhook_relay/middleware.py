"""
ASGI middleware for request correlation and HTTP metrics.

Both wrap only ``send``; ``receive`` is handed to the route as-is so
``Request.is_disconnected()`` sees the client going away.
"""
import uuid
import time
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import structlog

CORRELATION_HEADER = "x-correlation-id"


class CorrelationIdMiddleware:
    """
    Tags every request with a correlation ID.

    - Reuses the X-Correlation-ID request header when present
    - Stores it on ``request.state`` and in the structlog context
    - Echoes it on the response
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        correlation_id = connection.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        connection.state.correlation_id = correlation_id

        # Every log line of this request carries these
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            http_method=connection.scope["method"],
            http_path=connection.url.path,
        )

        async def send_with_correlation_id(message: Message):
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[CORRELATION_HEADER] = correlation_id
            await send(message)

        await self.app(scope, receive, send_with_correlation_id)


class MetricsMiddleware:
    """
    Records Prometheus HTTP metrics and one ``http_request`` log per request.

    The status code is taken from the response start message; a request that
    raises before responding counts as 500.
    """

    def __init__(self, app: ASGIApp, metrics):
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        # /metrics scrapes are not counted
        if scope["type"] != "http" or scope["path"].startswith("/metrics"):
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]
        service = self.metrics.service_name
        status_code = 500
        active = self.metrics.http_requests_active.labels(service=service)
        logger = structlog.get_logger()

        async def send_capturing_status(message: Message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        active.inc()
        start_time = time.time()
        try:
            await self.app(scope, receive, send_capturing_status)
        except Exception as e:
            logger.error(
                "http_request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
            raise
        else:
            logger.info(
                "http_request",
                http_status=status_code,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
        finally:
            duration = time.time() - start_time
            self.metrics.http_requests_total.labels(
                service=service, method=method, path=path, status=status_code
            ).inc()
            self.metrics.http_request_duration.labels(
                service=service, method=method, path=path
            ).observe(duration)
            active.dec()
