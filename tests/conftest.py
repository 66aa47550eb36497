"""Shared fixtures for mohstats tests."""
from datetime import datetime, timezone

import pytest

import mohstats.core.app_state as state
from mohstats.db.sqlite import SnapshotRepository
from mohstats.services.networks.model import (
    PlayerRecord,
    ServerDetails,
    ServerInfo,
    ServerList,
    ServerListMetadata,
)
from mohstats.services.shared.errors import UpstreamError, UpstreamErrorKind


def ts(hour, minute, day=1):
    """Epoch seconds for 2024-01-<day> <hour>:<minute> UTC."""
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc).timestamp()


def make_info(n, numplayers=0, maxplayers=32, game="mohaa", hostname=None, port=12203):
    return ServerInfo(
        id=1000 + n,
        ip=f"10.0.0.{n}",
        hostport=port,
        hostname=hostname or f"Server {n}",
        gamename=game,
        numplayers=numplayers,
        maxplayers=maxplayers,
        mapname="obj/obj_team2",
    )


def make_details(info, players=None, mapname="obj/obj_team2"):
    players = players if players is not None else [
        PlayerRecord(name=f"player{i}", frags=i, ping=50) for i in range(info.numplayers)
    ]
    return ServerDetails(
        id=info.id,
        ip=info.ip,
        hostport=info.hostport,
        hostname=info.hostname,
        gamename=info.gamename,
        mapname=mapname,
        gametype="obj",
        numplayers=info.numplayers,
        maxplayers=info.maxplayers,
        players=players,
    )


class FakeNetworksClient:
    """In-memory stand-in for NetworksApiClient used by the sweep."""

    def __init__(self, lists=None, failing_lists=(), failing_servers=()):
        self.lists = lists or {}
        self.failing_lists = set(failing_lists)
        self.failing_servers = set(failing_servers)
        self.detail_calls = []
        self.ttls = []

    def fetch_full_server_list(self, game, ttl=None):
        self.ttls.append(ttl)
        if game in self.failing_lists:
            raise UpstreamError(UpstreamErrorKind.NETWORK, "connection refused")
        servers = self.lists.get(game, [])
        return ServerList(
            servers=list(servers),
            metadata=ServerListMetadata(
                total_players=sum(s.numplayers for s in servers),
                total_servers=len(servers),
            ),
        )

    def fetch_server_details(self, game, ip, port, ttl=None):
        self.ttls.append(ttl)
        self.detail_calls.append((game, ip, port))
        if (ip, port) in self.failing_servers:
            raise UpstreamError(UpstreamErrorKind.MALFORMED, "server details lack ip/hostport")
        for info in self.lists.get(game, []):
            if info.ip == ip and info.hostport == port:
                return make_details(info)
        raise UpstreamError(UpstreamErrorKind.REMOTE_REJECTED, "server (code 404)")


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def repository(tmp_path):
    repo = SnapshotRepository(str(tmp_path / "snapshots.sqlite"))
    repo.init_db()
    return repo


@pytest.fixture
def clock():
    return FakeClock(ts(10, 0))


@pytest.fixture(autouse=True)
def reset_throttle():
    with state._throttle_lock:
        state._request_times.clear()
    yield
