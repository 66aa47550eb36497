from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from mohstats.services.networks.model import PlayerRecord


def iso_ts(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ServerIdentity:
    id: int
    external_id: int
    ip: str
    port: int
    hostname: str
    game: str
    country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "server_id": self.external_id,
            "ip": self.ip,
            "hostport": self.port,
            "hostname": self.hostname,
            "gamename": self.game,
            "country": self.country,
        }


@dataclass(frozen=True)
class Snapshot:
    id: Optional[int]
    server_id: int
    captured_at: float
    num_players: int
    max_players: int
    map: Optional[str] = None
    game_type: Optional[str] = None
    map_url: Optional[str] = None
    game_version: Optional[str] = None
    password: Optional[str] = None
    time_limit: Optional[str] = None
    frag_limit: Optional[str] = None
    upstream_updated: Optional[int] = None
    players: List[PlayerRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "server_id": self.server_id,
            "snapshot_time": iso_ts(self.captured_at),
            "mapname": self.map,
            "gametype": self.game_type,
            "mapurl": self.map_url,
            "gamever": self.game_version,
            "password": self.password,
            "timelimit": self.time_limit,
            "fraglimit": self.frag_limit,
            "num_players": self.num_players,
            "max_players": self.max_players,
            "dt_updated": self.upstream_updated,
            "players": [
                {"name": p.name, "frags": p.frags, "ping": p.ping} for p in self.players
            ],
        }


@dataclass(frozen=True)
class HistoryPoint:
    bucket_start: int
    peak_players: int
    max_capacity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": iso_ts(self.bucket_start),
            "bucket_start": self.bucket_start,
            "player_count": self.peak_players,
            "max_players": self.max_capacity,
        }


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass
class RunSummary:
    servers_listed: int = 0
    servers_snapshotted: int = 0
    players_recorded: int = 0
    errors: int = 0
    duration_ms: int = 0
    started_at: Optional[float] = None

    @property
    def status(self) -> RunStatus:
        return RunStatus.COMPLETED_WITH_ERRORS if self.errors else RunStatus.COMPLETED

    def merge(self, other: "RunSummary") -> None:
        self.servers_listed += other.servers_listed
        self.servers_snapshotted += other.servers_snapshotted
        self.players_recorded += other.players_recorded
        self.errors += other.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "servers_listed": self.servers_listed,
            "servers_snapshotted": self.servers_snapshotted,
            "players_recorded": self.players_recorded,
            "errors": self.errors,
            "duration_ms": self.duration_ms,
            "started_at": iso_ts(self.started_at),
            "status": self.status.value,
        }
