"""Client for the 333networks JSON API.

Server information upstream refreshes every 7.5 minutes, so every call goes
through the shared TTL cache and the API is never asked more often than
its data can change.
"""
import logging
import re

import requests

from mohstats.config import (
    MOH_GAMES,
    NETWORKS_API_BASE_URL,
    NETWORKS_USER_AGENT,
    SERVER_LIST_MAX_RESULTS,
    UPSTREAM_TIMEOUT,
)
from mohstats.services.networks.model import ServerListQuery
from mohstats.services.networks.parser import (
    parse_motd,
    parse_server_details,
    parse_server_list,
    raise_for_error_object,
)
from mohstats.services.shared.errors import UpstreamError, UpstreamErrorKind
from mohstats.services.shared.observability import instrument_service

logger = logging.getLogger(__name__)

_GAME_RE = re.compile(r"^[A-Za-z0-9_]{1,32}$")


def validate_game(game):
    if not game or not _GAME_RE.match(game):
        raise ValueError(f"Invalid game name: {game!r}")
    return game


class NetworksApiClient:
    def __init__(self, cache, session=None, base_url=NETWORKS_API_BASE_URL,
                 timeout=UPSTREAM_TIMEOUT, user_agent=NETWORKS_USER_AGENT):
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})

    def _get_json(self, url, params=None):
        logger.info("Fetching %s", url)
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(UpstreamErrorKind.NETWORK, f"{type(e).__name__}: {e}") from e

        try:
            payload = r.json()
        except ValueError:
            payload = None

        if r.status_code != 200:
            # Error objects may come with a non-200 status
            raise_for_error_object(payload)
            raise UpstreamError(UpstreamErrorKind.NETWORK, f"HTTP {r.status_code}")
        if payload is None:
            raise UpstreamError(UpstreamErrorKind.MALFORMED, "response body is not JSON")
        return payload

    @instrument_service("upstream_motd")
    def fetch_motd(self, game):
        validate_game(game)
        url = f"{self.base_url}/{game}/motd"
        return self.cache.get_or_fetch(f"motd:{game}", lambda: parse_motd(self._get_json(url)))

    @instrument_service("upstream_server_list")
    def fetch_server_list(self, game, query=None, ttl=None):
        validate_game(game)
        query = query or ServerListQuery()
        url = f"{self.base_url}/{game}"
        params = query.to_params()
        return self.cache.get_or_fetch(
            f"serverlist:{game}:{query.cache_key()}",
            lambda: parse_server_list(self._get_json(url, params=params or None)),
            ttl=ttl,
        )

    def fetch_full_server_list(self, game, ttl=None):
        """Server list for a game capped at the upstream's maximum page size."""
        return self.fetch_server_list(game, ServerListQuery(results=SERVER_LIST_MAX_RESULTS), ttl=ttl)

    @instrument_service("upstream_server_details")
    def fetch_server_details(self, game, ip, port, ttl=None):
        validate_game(game)
        port = int(port)
        if not 0 < port < 65536:
            raise ValueError(f"Invalid port: {port}")
        url = f"{self.base_url}/{game}/{ip}:{port}"
        return self.cache.get_or_fetch(
            f"server:{game}:{ip}:{port}",
            lambda: parse_server_details(self._get_json(url)),
            ttl=ttl,
        )

    def fetch_all_moh_servers(self, query=None):
        """Server lists for every Medal of Honor variant, keyed by game."""
        return {game: self.fetch_server_list(game, query) for game in MOH_GAMES}

    def clear_cache(self, key=None):
        return self.cache.clear(key)
