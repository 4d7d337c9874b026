"""
Health checks for liveness and readiness probes.
"""
from datetime import datetime, timezone
from typing import Dict, Any
import psutil
from .logging import get_logger
from .services.crypto import KeyProvider

logger = get_logger()


class HealthChecker:
    """
    Health checker for agentgate.

    Provides:
    - Liveness checks (is the service running?)
    - Readiness checks (can the service handle traffic?)
    """

    def __init__(
        self,
        key_provider: KeyProvider,
        service_name: str = "agentgate",
        version: str = "0.1.0",
    ):
        self.service_name = service_name
        self.version = version
        self.key_provider = key_provider
        self._started = datetime.now(timezone.utc)

    def _timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def liveness(self) -> Dict[str, Any]:
        """
        Liveness check - basic health check.

        Returns:
            dict: Health status with service info, timestamp and uptime
        """
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": self._timestamp(),
            "uptime_seconds": round((datetime.now(timezone.utc) - self._started).total_seconds(), 3),
        }

    def readiness(self) -> Dict[str, Any]:
        """
        Readiness check.

        Checks:
        - Token secret material is loaded
        - Memory availability

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "token_secret": self._check_secret(),
            "memory": self._check_memory(),
        }
        overall_status = "ready"
        if any(check["status"] == "error" for check in checks.values()):
            overall_status = "not_ready"

        return {
            "status": overall_status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": self._timestamp(),
            "checks": checks,
        }

    def _check_secret(self) -> Dict[str, Any]:
        # Provenance only; the key itself is never reported
        secret = self.key_provider.get_secret()
        result = {"status": "ok", "provenance": secret.provenance.value}
        if secret.is_ephemeral:
            result["status"] = "warning"
            result["message"] = "TOKEN_SECRET not set; tokens will not survive a restart"
        return result

    def _check_memory(self, threshold_mb: float = 50.0) -> Dict[str, Any]:
        """
        Check available memory.

        Args:
            threshold_mb: Minimum available memory in MB (default: 50.0)

        Returns:
            dict: Memory health check result
        """
        try:
            memory = psutil.virtual_memory()
        except (OSError, RuntimeError) as e:
            logger.warning("memory_health_check_failed", error=str(e))
            return {
                "status": "error",
                "error": str(e),
            }

        available_mb = memory.available / (1024**2)
        if available_mb < threshold_mb:
            status = "error"
        elif available_mb < threshold_mb * 2:
            status = "warning"
        else:
            status = "ok"

        return {
            "status": status,
            "available_mb": round(available_mb, 2),
            "total_mb": round(memory.total / (1024**2), 2),
            "used_percent": memory.percent,
        }
