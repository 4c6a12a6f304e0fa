"""
Direktiv webhook relay - receives CloudEvents and broadcasts them to Direktiv.

Features:
- Binary-mode CloudEvent extraction from ce-* headers
- Authenticated forwarding to the namespace broadcast API
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import Settings, get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .errors import RelayError, relay_error_handler
from .middleware import CorrelationIdMiddleware, MetricsMiddleware
from .metrics import Metrics
from .health import HealthChecker
from .services.forwarder import Forwarder

SERVICE_NAME = "webhook-relay"
VERSION = "0.1.0"

logger = get_logger()


def create_app(
    settings: Settings | None = None,
    forwarder: Forwarder | None = None,
    metrics: Metrics | None = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Configuration (defaults to the cached environment settings)
        forwarder: Downstream forwarder (defaults to one built from settings)
        metrics: Prometheus metrics (defaults to a fresh registry)
    """
    settings = settings or get_settings()
    metrics = metrics or Metrics(service_name=SERVICE_NAME, version=VERSION)
    forwarder_config = settings.forwarder_config()
    forwarder = forwarder or Forwarder(forwarder_config, metrics=metrics)
    health_checker = HealthChecker(forwarder_config, service_name=SERVICE_NAME, version=VERSION)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "service_starting",
            version=VERSION,
            env=settings.ENV,
            port=settings.PORT,
            direktiv_endpoint=settings.DIREKTIV_ENDPOINT,
            direktiv_namespace=settings.DIREKTIV_NAMESPACE,
        )
        if not forwarder_config.configured:
            logger.warning("direktiv.not_configured")

        yield

        logger.info("service_stopping")
        metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)
        await app.state.forwarder.aclose()

    app = FastAPI(
        title="Direktiv Webhook Relay",
        version=VERSION,
        description="Relays binary-mode CloudEvents to a Direktiv namespace",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.forwarder = forwarder

    # Correlation ID must wrap metrics so request logs carry it
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(RelayError, relay_error_handler)

    @app.get("/health")
    async def health():
        """
        Liveness probe - basic health check.

        Returns 200 if service is running.
        """
        logger.debug("health_check_liveness")
        return health_checker.liveness()

    @app.get("/health/ready")
    async def health_ready():
        """
        Readiness probe.

        Returns:
            200: Direktiv is configured and resources are available
            503: Service is not ready
        """
        result = health_checker.readiness()
        status_code = 200 if result["status"] == "ready" else 503
        return JSONResponse(result, status_code=status_code)

    app.include_router(router)

    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    return app


_settings = get_settings()
setup_logging(
    json_output=_settings.LOG_JSON,
    service_name=SERVICE_NAME,
    cache_loggers=_settings.ENV != "test",
)

app = create_app(_settings)


def main():
    import uvicorn

    logger.info("listening", port=_settings.PORT)
    uvicorn.run(app, host="0.0.0.0", port=_settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
