"""Shared utilities for mohstats services."""
from .errors import (
    MohStatsError,
    UpstreamError,
    UpstreamErrorKind,
    PersistenceError,
    ResolutionError,
    ServerNotFound,
)
from .dns import (
    is_ip_address,
    resolve_to_ip,
)
from .ttl_cache import TTLCache

__all__ = [
    'MohStatsError',
    'UpstreamError',
    'UpstreamErrorKind',
    'PersistenceError',
    'ResolutionError',
    'ServerNotFound',
    'is_ip_address',
    'resolve_to_ip',
    'TTLCache',
]
