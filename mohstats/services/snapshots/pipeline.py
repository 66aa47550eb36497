"""Snapshot sweep over every tracked game.

Each tick lists the servers of every game, records an identity for each
one and snapshots only servers that report players. A failure on one
server or one game is counted and logged, and the sweep moves on.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from mohstats.config import MOH_GAMES, SNAPSHOT_FETCH_MAX_AGE, SNAPSHOT_MAX_WORKERS
from mohstats.services.shared.observability import instrument_service
from mohstats.services.snapshots.model import RunStatus, RunSummary

logger = logging.getLogger(__name__)


class SnapshotPipeline:
    def __init__(self, client, repository, games=MOH_GAMES, max_workers=SNAPSHOT_MAX_WORKERS,
                 fetch_ttl=SNAPSHOT_FETCH_MAX_AGE, clock=time.time):
        self.client = client
        self.repository = repository
        self.games = tuple(games)
        self.max_workers = max(1, int(max_workers))
        # Max age of cached upstream data a sweep may reuse
        self.fetch_ttl = fetch_ttl
        self._clock = clock
        self._run_lock = threading.Lock()
        self.state = RunStatus.IDLE
        self.last_summary = None

    @property
    def is_running(self):
        return self.state == RunStatus.RUNNING

    @instrument_service("snapshot_sweep")
    def run(self):
        """Run one sweep. Returns the RunSummary, or None if a sweep is already running."""
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Snapshot sweep already running, skipping this tick")
            return None
        try:
            self.state = RunStatus.RUNNING
            logger.info("Starting snapshot of all servers for games: %s", ", ".join(self.games))
            start = time.time()
            summary = RunSummary(started_at=self._clock())
            for game in self.games:
                try:
                    summary.merge(self.snapshot_game(game))
                except Exception:
                    logger.exception("Error processing game: %s", game)
                    summary.errors += 1
            summary.duration_ms = int((time.time() - start) * 1000)

            logger.info(
                "Snapshot completed in %dms. Listed: %d servers, snapshotted: %d, "
                "players recorded: %d, errors: %d",
                summary.duration_ms,
                summary.servers_listed,
                summary.servers_snapshotted,
                summary.players_recorded,
                summary.errors,
            )
            if summary.errors:
                logger.warning("Snapshot completed with %d errors. Check logs for details.", summary.errors)
            self.last_summary = summary
            self.state = summary.status
            return summary
        finally:
            if self.state == RunStatus.RUNNING:
                self.state = RunStatus.COMPLETED_WITH_ERRORS
            self._run_lock.release()

    def snapshot_game(self, game):
        """Sweep one game's server list. A list failure counts one error."""
        summary = RunSummary()
        try:
            server_list = self.client.fetch_full_server_list(game, ttl=self.fetch_ttl)
        except Exception as e:
            logger.error("Error fetching server list for %s: %s", game, e)
            summary.errors += 1
            return summary

        servers = server_list.servers
        summary.servers_listed = len(servers)
        logger.info("Found %d servers for %s", len(servers), game)
        if not servers:
            return summary

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(servers))) as executor:
            futures = {executor.submit(self.process_server, game, info): info for info in servers}
            for future in as_completed(futures):
                info = futures[future]
                try:
                    snapshot = future.result()
                except Exception:
                    logger.exception(
                        "Error processing server %s (%s:%s)", info.hostname, info.ip, info.hostport
                    )
                    summary.errors += 1
                    continue
                if snapshot is not None:
                    summary.servers_snapshotted += 1
                    summary.players_recorded += len(snapshot.players)
        return summary

    def process_server(self, game, info):
        """Record the identity of one listed server and snapshot it if it has players."""
        game_name = info.gamename or game
        if info.numplayers <= 0:
            self.repository.upsert_server(info.id, info.ip, info.hostport, info.hostname, game_name, info.country)
            return None

        try:
            details = self.client.fetch_server_details(game, info.ip, info.hostport, ttl=self.fetch_ttl)
        except Exception:
            # Listed servers are recorded even when their details are unavailable
            self.repository.upsert_server(info.id, info.ip, info.hostport, info.hostname, game_name, info.country)
            raise
        _, snapshot = self.repository.record_snapshot(
            info.id, info.ip, info.hostport, info.hostname, game_name, info.country, details, self._clock()
        )
        logger.debug("Saved snapshot for %s with %d players", info.hostname, len(snapshot.players))
        return snapshot
