"""Player-count history over fixed, epoch-aligned time buckets."""
import logging

from mohstats.config import HISTORY_BUCKET_SECONDS
from mohstats.services.shared.errors import ServerNotFound
from mohstats.services.shared.observability import instrument_service
from mohstats.services.snapshots.model import HistoryPoint

logger = logging.getLogger(__name__)


def bucket_snapshots(snapshots, bucket_seconds=HISTORY_BUCKET_SECONDS):
    """Reduce snapshots to one HistoryPoint per non-empty bucket, oldest first.

    A bucket's peak is the highest num_players in it; its capacity is the
    max_players of the earliest snapshot reaching that peak.
    """
    if bucket_seconds <= 0:
        raise ValueError("bucket_seconds must be positive")

    ordered = sorted(snapshots, key=lambda s: s.captured_at)
    peaks = {}
    for snap in ordered:
        index = int(snap.captured_at // bucket_seconds)
        best = peaks.get(index)
        if best is None or snap.num_players > best.num_players:
            peaks[index] = snap

    return [
        HistoryPoint(
            bucket_start=index * bucket_seconds,
            peak_players=peaks[index].num_players,
            max_capacity=peaks[index].max_players,
        )
        for index in sorted(peaks)
    ]


class HistoryAggregator:
    def __init__(self, repository):
        self.repository = repository

    @instrument_service("history_query")
    def get_history(self, server, start_ts, end_ts, bucket_seconds=HISTORY_BUCKET_SECONDS):
        """History points for server over [start_ts, end_ts)."""
        if end_ts <= start_ts:
            raise ValueError("end must be after start")
        if bucket_seconds <= 0:
            raise ValueError("bucket_seconds must be positive")
        snapshots = self.repository.find_snapshots(server.id, start_ts, end_ts)
        points = bucket_snapshots(snapshots, bucket_seconds)
        logger.debug(
            "History for server %s: %d snapshots -> %d points", server.id, len(snapshots), len(points)
        )
        return points

    def get_history_for_address(self, ip, port, start_ts, end_ts, bucket_seconds=HISTORY_BUCKET_SECONDS, game=None):
        """Like get_history, for the most recent identity seen at ip:port (for game, when given).

        Raises:
            ServerNotFound: if no identity was ever recorded at ip:port.
        """
        server = self.repository.find_latest_server_by_address(ip, port, game=game)
        if server is None:
            raise ServerNotFound(ip, port)
        return server, self.get_history(server, start_ts, end_ts, bucket_seconds)
