"""Construction of the process-wide service components.

One TTLCache is built per process and handed to the upstream client; the
pipeline, history aggregator and statistics service share one repository.
"""
import threading
from dataclasses import dataclass

from mohstats.config import CACHE_TTL, SNAPSHOTS_DB_PATH
from mohstats.db.sqlite import SnapshotRepository
from mohstats.services.history.aggregator import HistoryAggregator
from mohstats.services.networks.client import NetworksApiClient
from mohstats.services.shared.ttl_cache import TTLCache
from mohstats.services.snapshots.pipeline import SnapshotPipeline
from mohstats.services.statistics import StatisticsService


@dataclass
class Services:
    cache: TTLCache
    client: NetworksApiClient
    repository: SnapshotRepository
    pipeline: SnapshotPipeline
    history: HistoryAggregator
    statistics: StatisticsService


def build_services(db_path=SNAPSHOTS_DB_PATH, cache=None, session=None, repository=None):
    cache = cache or TTLCache(ttl=CACHE_TTL)
    client = NetworksApiClient(cache, session=session)
    repository = repository or SnapshotRepository(db_path)
    return Services(
        cache=cache,
        client=client,
        repository=repository,
        pipeline=SnapshotPipeline(client, repository),
        history=HistoryAggregator(repository),
        statistics=StatisticsService(repository),
    )


_services = None
_services_lock = threading.Lock()


def get_services():
    global _services
    if _services is None:
        with _services_lock:
            if _services is None:
                _services = build_services()
    return _services
