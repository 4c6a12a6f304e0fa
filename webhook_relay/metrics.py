"""
Prometheus metrics for the webhook relay.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry


class Metrics:
    """
    Centralized metrics for the webhook relay.
    """

    def __init__(self, service_name: str = "webhook-relay", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            ["service"],
            registry=self.registry,
        )
        self.http_requests_active.labels(service=service_name).set(0)

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Relay metrics
        self.events_received_total = Counter(
            "relay_events_received_total",
            "Total CloudEvents extracted from inbound requests",
            ["event_type"],
            registry=self.registry,
        )

        self.event_size_bytes = Histogram(
            "relay_event_size_bytes",
            "Event payload size in bytes",
            ["event_type"],
            buckets=(64, 256, 1024, 4096, 16384, 65536, 262144, 1048576),
            registry=self.registry,
        )

        # outcome is the downstream status code or the failure kind
        self.forward_total = Counter(
            "relay_forward_total",
            "Downstream forward attempts by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.forward_duration = Histogram(
            "relay_forward_duration_seconds",
            "Duration of the downstream broadcast call in seconds",
            registry=self.registry,
        )

    def record_event_received(self, event_type: str, size_bytes: int):
        """Record an extracted event."""
        self.events_received_total.labels(event_type=event_type).inc()
        self.event_size_bytes.labels(event_type=event_type).observe(size_bytes)

    def record_forward(self, outcome: str, duration: float):
        """Record one downstream call."""
        self.forward_total.labels(outcome=outcome).inc()
        self.forward_duration.observe(duration)
