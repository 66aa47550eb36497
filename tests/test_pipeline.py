import threading
from unittest.mock import MagicMock, patch

from mohstats.services.networks.client import NetworksApiClient
from mohstats.services.shared.errors import PersistenceError
from mohstats.services.shared.ttl_cache import TTLCache
from mohstats.services.snapshots.model import RunStatus
from mohstats.services.snapshots.pipeline import SnapshotPipeline
from tests.conftest import FakeNetworksClient, make_info


def _pipeline(client, repository, clock, games=("mohaa",)):
    return SnapshotPipeline(client, repository, games=games, max_workers=2, clock=clock)


def test_only_populated_servers_are_snapshotted(repository, clock):
    servers = [make_info(1, numplayers=4), make_info(2, numplayers=0), make_info(3, numplayers=1)]
    client = FakeNetworksClient(lists={"mohaa": servers})
    summary = _pipeline(client, repository, clock).run()

    assert summary.servers_listed == 3
    assert summary.servers_snapshotted == 2
    assert summary.players_recorded == 5
    assert summary.errors == 0
    assert summary.status == RunStatus.COMPLETED
    # Empty servers are still recorded as identities, but never deep-fetched
    assert repository.count_servers() == 3
    assert repository.count_snapshots() == 2
    assert ("mohaa", "10.0.0.2", 12203) not in client.detail_calls


def test_server_failure_does_not_abort_sweep(repository, clock):
    servers = [make_info(n, numplayers=2) for n in range(1, 6)]
    client = FakeNetworksClient(lists={"mohaa": servers}, failing_servers={("10.0.0.3", 12203)})
    pipeline = _pipeline(client, repository, clock)
    summary = pipeline.run()

    assert summary.servers_listed == 5
    assert summary.errors == 1
    assert summary.servers_snapshotted == 4
    assert summary.status == RunStatus.COMPLETED_WITH_ERRORS
    assert pipeline.state == RunStatus.COMPLETED_WITH_ERRORS
    assert pipeline.last_summary is summary

    failed = repository.find_server("10.0.0.3", 12203, "Server 3")
    assert failed is not None
    assert repository.count_snapshots(failed.id) == 0


def test_list_failure_skips_only_that_game(repository, clock):
    client = FakeNetworksClient(
        lists={"mohaas": [make_info(1, numplayers=2, game="mohaas")]},
        failing_lists={"mohaa"},
    )
    summary = _pipeline(client, repository, clock, games=("mohaa", "mohaas")).run()

    assert summary.errors == 1
    assert summary.servers_listed == 1
    assert summary.servers_snapshotted == 1


def test_identities_deduplicated_across_runs(repository, clock):
    client = FakeNetworksClient(lists={"mohaa": [make_info(1, numplayers=2), make_info(2, numplayers=0)]})
    pipeline = _pipeline(client, repository, clock)

    pipeline.run()
    clock.advance(450)
    pipeline.run()

    assert repository.count_servers() == 2
    server = repository.find_server("10.0.0.1", 12203, "Server 1")
    snapshots = repository.find_snapshots(server.id, 0, clock() + 1)
    assert [s.captured_at for s in snapshots] == [clock() - 450, clock()]


def test_concurrent_run_is_skipped(repository, clock):
    entered = threading.Event()
    release = threading.Event()

    class BlockingClient(FakeNetworksClient):
        def fetch_full_server_list(self, game, ttl=None):
            entered.set()
            release.wait(timeout=5)
            return super().fetch_full_server_list(game, ttl)

    pipeline = _pipeline(BlockingClient(lists={"mohaa": []}), repository, clock)
    results = []
    t = threading.Thread(target=lambda: results.append(pipeline.run()))
    t.start()
    assert entered.wait(timeout=5)

    assert pipeline.is_running
    assert pipeline.run() is None

    release.set()
    t.join(timeout=5)
    assert results[0].servers_listed == 0
    assert pipeline.state == RunStatus.COMPLETED


def test_empty_sweep(repository, clock):
    summary = _pipeline(FakeNetworksClient(), repository, clock, games=("mohaa", "mohaas", "mohaab")).run()
    assert summary.servers_listed == 0
    assert summary.errors == 0
    assert summary.to_dict()["status"] == "completed"


def test_persistence_failure_counts_one_error(repository, clock):
    servers = [make_info(n, numplayers=2) for n in range(1, 5)]
    client = FakeNetworksClient(lists={"mohaa": servers})
    record = repository.record_snapshot

    def record_or_fail(external_id, ip, *args):
        if ip == "10.0.0.2":
            raise PersistenceError("database is locked")
        return record(external_id, ip, *args)

    with patch.object(repository, "record_snapshot", side_effect=record_or_fail):
        summary = _pipeline(client, repository, clock).run()

    assert summary.servers_listed == 4
    assert summary.servers_snapshotted == 3
    assert summary.errors == 1
    assert summary.status == RunStatus.COMPLETED_WITH_ERRORS
    assert repository.find_server("10.0.0.2", 12203, "Server 2") is None
    assert repository.count_snapshots() == 3


def test_sweep_fetches_use_bounded_age(repository, clock):
    client = FakeNetworksClient(lists={"mohaa": [make_info(1, numplayers=2)]})
    pipeline = SnapshotPipeline(client, repository, games=("mohaa",), fetch_ttl=225, clock=clock)
    pipeline.run()
    assert client.ttls == [225, 225]


def test_next_sweep_does_not_reuse_cached_list(repository, clock):
    session = MagicMock()
    session.headers = {}
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = [
        [{"id": 1, "ip": "10.0.0.1", "hostport": 12203, "hostname": "Server 1", "gamename": "mohaa"}],
        {"players": 0, "total": 1},
    ]
    session.get.return_value = response
    cache = TTLCache(ttl=450, clock=clock)
    api = NetworksApiClient(cache, session=session, base_url="https://api.test/json")
    pipeline = SnapshotPipeline(api, repository, games=("mohaa",), fetch_ttl=225, clock=clock)

    pipeline.run()
    # Still fresh for ordinary readers, too old for the next sweep
    clock.advance(300)
    assert cache.get(cache.keys()[0]) is not None
    pipeline.run()

    assert session.get.call_count == 2
