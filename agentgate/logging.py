"""
Structured logging configuration using structlog.

Standardized log format:
{
    "ts": "2026-10-17T04:30:00.123456Z",
    "level": "info",
    "service": "agentgate",
    "correlation_id": "uuid-v4",
    "event": "auth.resolved",
    "module": "agentgate.auth.api_key",
    "function": "require_credential",
    "line": 42,
    ...additional context...
}

Credentials never reach the renderer: values under sensitive keys are
replaced before rendering.
"""
import structlog
import logging
from typing import Any

SERVICE_NAME = "agentgate"

SENSITIVE_MARKERS = ("secret", "token", "key", "authorization", "password")
REDACTED = "***REDACTED***"


def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Add service name to all log entries."""
    event_dict["service"] = SERVICE_NAME
    return event_dict


def is_sensitive(name: str) -> bool:
    lower = name.lower()
    return any(marker in lower for marker in SENSITIVE_MARKERS)


def redact(value: Any, depth: int = 0) -> Any:
    """Replace values stored under sensitive keys, recursing into containers."""
    if depth >= 4:
        return "[Truncated]"
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and is_sensitive(k) else redact(v, depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item, depth + 1) for item in value]
    return value


def redact_sensitive(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Scrub credential-looking fields from the event."""
    for name in list(event_dict):
        if name == "event":
            continue
        if is_sensitive(name):
            event_dict[name] = REDACTED
        else:
            event_dict[name] = redact(event_dict[name], depth=1)
    return event_dict


def setup_logging(json_output: bool = True, level: str = "INFO"):
    """
    Configure structured logging with standardized fields.

    Args:
        json_output: If True, output JSON logs. If False, use console format.
        level: Minimum log level name.
    """
    log_level = logging.getLevelName(level)

    shared_processors = [
        # Add contextvars (includes correlation_id from middleware)
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library loggers (crypto services, uvicorn) share the level
    logging.basicConfig(
        format="%(message)s",
        level=log_level,
    )

    # Silence uvicorn's default logging to avoid duplicate logs
    logging.getLogger("uvicorn.error").handlers = []
    logging.getLogger("uvicorn.access").handlers = []


def get_logger():
    """Get a configured structlog logger."""
    return structlog.get_logger()
