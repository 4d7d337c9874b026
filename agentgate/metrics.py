"""
Prometheus metrics for the agentgate service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry


class Metrics:
    """
    Centralized metrics for agentgate, one registry per app instance.
    """

    def __init__(self, service_name: str = "agentgate", version: str = "0.1.0", registry=None):
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

        # Credential metrics
        self.credential_resolutions_total = Counter(
            "agentgate_credential_resolutions_total",
            "Credential resolutions by provenance",
            ["provenance"],
            registry=self.registry,
        )

        self.tokens_minted_total = Counter(
            "agentgate_tokens_minted_total",
            "Tokens minted through /connect",
            registry=self.registry,
        )

        # Tool dispatch
        self.tool_calls_total = Counter(
            "agentgate_tool_calls_total",
            "Tool calls by tool and outcome",
            ["tool", "status"],
            registry=self.registry,
        )

        self.tool_call_duration = Histogram(
            "agentgate_tool_call_duration_seconds",
            "Tool call duration in seconds, including the upstream request",
            ["tool"],
            registry=self.registry,
        )

    def record_resolution(self, provenance: str):
        """Record the outcome of one credential resolution."""
        self.credential_resolutions_total.labels(provenance=provenance).inc()

    def record_tool_call(self, tool: str, status: str, duration: float):
        """Record a tool dispatch."""
        self.tool_calls_total.labels(tool=tool, status=status).inc()
        self.tool_call_duration.labels(tool=tool).observe(duration)
