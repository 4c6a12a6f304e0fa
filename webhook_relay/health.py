"""
Health checks for liveness and readiness probes.
"""
from datetime import datetime, timezone
from typing import Dict, Any
import psutil
from .config import ForwarderConfig
from .logging import get_logger

logger = get_logger()


class HealthChecker:
    """
    Health checker for the webhook relay.

    Provides:
    - Liveness checks (is the service running?)
    - Readiness checks (can events be relayed?)
    """

    def __init__(self, forwarder_config: ForwarderConfig, service_name: str = "webhook-relay", version: str = "0.1.0"):
        self.forwarder_config = forwarder_config
        self.service_name = service_name
        self.version = version

    def liveness(self) -> Dict[str, Any]:
        """
        Liveness check - basic health check.

        Returns:
            dict: Health status with service info and timestamp
        """
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": _utc_timestamp(),
        }

    def readiness(self) -> Dict[str, Any]:
        """
        Readiness check.

        Checks:
        - Direktiv endpoint and namespace are configured
        - Memory availability

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "direktiv": self._check_downstream(),
            "memory": self._check_memory(),
        }
        overall_status = "ready"
        if any(check["status"] == "error" for check in checks.values()):
            overall_status = "not_ready"

        return {
            "status": overall_status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": _utc_timestamp(),
            "checks": checks,
        }

    def _check_downstream(self) -> Dict[str, Any]:
        if not self.forwarder_config.configured:
            return {
                "status": "error",
                "message": "DIREKTIV_ENDPOINT and DIREKTIV_NAMESPACE must be set",
            }
        return {
            "status": "ok",
            "namespace": self.forwarder_config.namespace,
            "token_configured": bool(self.forwarder_config.auth_token),
        }

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
                "used_percent": memory.percent,
            }

        except Exception as e:
            logger.warning("memory_health_check_failed", error=str(e))
            return {
                "status": "error",
                "error": str(e),
            }


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
