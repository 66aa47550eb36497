"""DNS resolution utilities."""
import ipaddress
import threading
import time

import dns.exception
import dns.resolver

from mohstats.config import DNS_SERVER, DNS_TIMEOUT
from mohstats.services.shared.errors import ResolutionError

# DNS cache
_dns_cache = {}
_dns_ttl = {}
_dns_cache_ttl = 300  # 5 minutes
_dns_cache_max = 1000

_shared_resolver = None
_resolver_lock = threading.Lock()


def _get_resolver():
    """Build the shared resolver on first use."""
    global _shared_resolver
    if _shared_resolver is None:
        with _resolver_lock:
            if _shared_resolver is None:
                resolver = dns.resolver.Resolver()
                # Only override nameservers if DNS_SERVER is provided
                if DNS_SERVER:
                    resolver.nameservers = [DNS_SERVER]
                resolver.timeout = DNS_TIMEOUT
                resolver.lifetime = DNS_TIMEOUT
                _shared_resolver = resolver
    return _shared_resolver


def is_ip_address(host):
    """Check if a string is an IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address(str(host).strip())
        return True
    except ValueError:
        return False


def resolve_to_ip(host):
    """Resolve a hostname or IP literal to an IPv4 address.

    IP literals are returned unchanged. Names are resolved through the
    shared resolver and cached for 5 minutes.

    Raises:
        ResolutionError: if the name is empty or cannot be resolved.
    """
    host = (host or "").strip()
    if not host:
        raise ResolutionError(host, "empty host")
    if is_ip_address(host):
        return host

    key = host.lower()
    now = time.time()
    if key in _dns_cache and now - _dns_ttl.get(key, 0) < _dns_cache_ttl:
        return _dns_cache[key]

    try:
        answer = _get_resolver().resolve(key, "A")
        resolved = str(answer[0])
    except dns.exception.DNSException as e:
        raise ResolutionError(host, type(e).__name__) from e

    _dns_cache[key] = resolved
    _dns_ttl[key] = now
    # Prune cache if too large
    if len(_dns_cache) > _dns_cache_max:
        items = sorted(_dns_ttl.items(), key=lambda kv: kv[1])
        for k, _ in items[:max(1, _dns_cache_max // 20)]:
            _dns_cache.pop(k, None)
            _dns_ttl.pop(k, None)
    return resolved
