"""
agentgate - Gateway for the background coding agent API.

Features:
- Zero-storage connection tokens (AES-256-GCM wrapped API keys)
- Per-call credential resolution with a fixed precedence
- MCP JSON-RPC endpoint backed by a per-call upstream client
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from .config import Settings, get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .api.mcp_router import router as mcp_router
from .middleware.correlation import CorrelationMiddleware
from .middleware.error_handler import install_error_handlers
from .middleware.metrics import MetricsMiddleware
from .middleware.validation import PayloadLimitMiddleware
from .metrics import Metrics
from .health import HealthChecker
from .auth.resolver import CredentialResolver
from .services.crypto import KeyProvider, TokenCodec
from .tools import ToolRegistry

VERSION = "0.1.0"

logger = get_logger()


def create_app(
    settings: Optional[Settings] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application.

    The secret material is resolved here, once, and handed to the codec and
    resolver explicitly. A missing random source raises KeyMaterialError and
    aborts startup.

    Args:
        settings: Settings to use (defaults to environment settings)
        upstream_transport: Optional httpx transport for upstream calls
    """
    settings = settings or get_settings()

    key_provider = KeyProvider.from_settings(settings)
    secret = key_provider.get_secret()
    codec = TokenCodec.from_settings(secret, settings)
    resolver = CredentialResolver.from_settings(codec, settings)

    metrics = Metrics(service_name="agentgate", version=VERSION)
    health_checker = HealthChecker(key_provider, service_name="agentgate", version=VERSION)

    app = FastAPI(
        title="agentgate",
        version=VERSION,
        description="Gateway for the background coding agent API with zero-storage tokens",
    )

    app.state.settings = settings
    app.state.secret = secret
    app.state.codec = codec
    app.state.resolver = resolver
    app.state.metrics = metrics
    app.state.tools = ToolRegistry()
    app.state.upstream_transport = upstream_transport

    # Last added runs first: correlation ID, then metrics, then size limit
    app.add_middleware(PayloadLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(CorrelationMiddleware)
    install_error_handlers(app)

    app.include_router(router)
    app.include_router(mcp_router)

    # Mount Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

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
            200: Service is ready to handle traffic
            503: Service is not ready
        """
        logger.debug("health_check_readiness")
        result = health_checker.readiness()
        status_code = 200 if result["status"] == "ready" else 503
        return JSONResponse(result, status_code=status_code)

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "service_starting",
            version=VERSION,
            env=settings.ENV,
            persistent_sessions=not secret.is_ephemeral,
            default_credential=settings.default_api_key is not None,
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("service_stopping")
        metrics.app_up.labels(service="agentgate", version=VERSION).set(0)

    return app


def build_default_app() -> FastAPI:
    settings = get_settings()
    setup_logging(json_output=settings.LOG_JSON, level=settings.LOG_LEVEL)
    return create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agentgate.main:build_default_app",
        factory=True,
        host="0.0.0.0",
        port=get_settings().SERVICE_PORT,
    )
