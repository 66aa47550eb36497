"""Exception hierarchy for mohstats.

Upstream and persistence failures are recoverable per item inside the
snapshot sweep; resolution and not-found errors surface to query callers.
"""
from enum import Enum
from typing import Any, Dict, Optional


class MohStatsError(Exception):
    """Base exception for all mohstats errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class UpstreamErrorKind(str, Enum):
    NETWORK = "network"
    MALFORMED = "malformed"
    REMOTE_REJECTED = "remote_rejected"


class UpstreamError(MohStatsError):
    """A call to the 333networks API failed."""

    def __init__(self, kind: UpstreamErrorKind, detail: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(f"Upstream {kind.value} error: {detail}", payload)
        self.kind = kind
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind.value
        data["detail"] = self.detail
        return data


class PersistenceError(MohStatsError):
    """Storage layer failure."""
    pass


class ResolutionError(MohStatsError):
    """A caller-supplied hostname or IP could not be resolved."""

    def __init__(self, host: str, reason: str = ""):
        message = f"Unable to resolve hostname: {host}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"host": host})
        self.host = host


class ServerNotFound(MohStatsError):
    """No stored identity matches the requested server."""

    def __init__(self, ip: str, port: int):
        super().__init__(f"Server {ip}:{port} not found", {"ip": ip, "port": port})
        self.ip = ip
        self.port = port
