from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mohstats.config import (
    QUERY_FILTER_MAX_LEN,
    SERVER_LIST_MAX_RESULTS,
    SERVER_LIST_SORT_FIELDS,
)


@dataclass(frozen=True)
class PlayerRecord:
    name: str
    frags: int = 0
    ping: int = 0
    team: Optional[str] = None
    captured_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "frags": self.frags,
            "ping": self.ping,
            "team": self.team,
            "captured_at": self.captured_at,
        }


@dataclass(frozen=True)
class Motd:
    html: str
    servers: Optional[int] = None
    players: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"html": self.html, "servers": self.servers, "players": self.players}


@dataclass(frozen=True)
class ServerInfo:
    id: int
    ip: str
    hostport: int
    hostname: str
    gamename: str
    numplayers: int = 0
    maxplayers: int = 0
    gametype: Optional[str] = None
    label: Optional[str] = None
    country: Optional[str] = None
    maptitle: Optional[str] = None
    mapname: Optional[str] = None
    dt_added: Optional[int] = None
    dt_updated: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ip": self.ip,
            "hostport": self.hostport,
            "hostname": self.hostname,
            "gamename": self.gamename,
            "gametype": self.gametype,
            "label": self.label,
            "country": self.country,
            "numplayers": self.numplayers,
            "maxplayers": self.maxplayers,
            "maptitle": self.maptitle,
            "mapname": self.mapname,
            "dt_added": self.dt_added,
            "dt_updated": self.dt_updated,
        }


@dataclass(frozen=True)
class ServerListMetadata:
    total_players: int = 0
    total_servers: int = 0


@dataclass(frozen=True)
class ServerList:
    servers: List[ServerInfo]
    metadata: ServerListMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "servers": [s.to_dict() for s in self.servers],
            "metadata": {
                "players": self.metadata.total_players,
                "total": self.metadata.total_servers,
            },
        }


@dataclass(frozen=True)
class ServerDetails:
    id: int
    ip: str
    hostport: int
    hostname: str
    gamename: str
    mapname: Optional[str] = None
    maptitle: Optional[str] = None
    mapurl: Optional[str] = None
    gamever: Optional[str] = None
    gametype: Optional[str] = None
    country: Optional[str] = None
    numplayers: int = 0
    maxplayers: int = 0
    password: Optional[str] = None
    timelimit: Optional[str] = None
    fraglimit: Optional[str] = None
    dt_updated: Optional[int] = None
    players: List[PlayerRecord] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "ip": self.ip,
            "hostport": self.hostport,
            "hostname": self.hostname,
            "gamename": self.gamename,
            "mapname": self.mapname,
            "maptitle": self.maptitle,
            "mapurl": self.mapurl,
            "gamever": self.gamever,
            "gametype": self.gametype,
            "country": self.country,
            "numplayers": self.numplayers,
            "maxplayers": self.maxplayers,
            "password": self.password,
            "timelimit": self.timelimit,
            "fraglimit": self.fraglimit,
            "dt_updated": self.dt_updated,
            "players": [p.to_dict() for p in self.players],
        })
        return data


@dataclass(frozen=True)
class ServerListQuery:
    sort_by: Optional[str] = None  # one of SERVER_LIST_SORT_FIELDS
    order: Optional[str] = None  # 'a' ascending, 'd' descending
    results: Optional[int] = None  # 1-1000, upstream default 50
    page: Optional[int] = None
    query: Optional[str] = None
    gametype: Optional[str] = None
    hostname: Optional[str] = None
    mapname: Optional[str] = None
    country: Optional[str] = None  # 2 letter ISO 3166 code

    def to_params(self) -> Dict[str, str]:
        """Build upstream query parameters, dropping values the API would reject."""
        params: Dict[str, str] = {}
        if self.sort_by in SERVER_LIST_SORT_FIELDS:
            params["s"] = self.sort_by
        if self.order in ("a", "d"):
            params["o"] = self.order
        if self.results is not None:
            params["r"] = str(min(max(int(self.results), 1), SERVER_LIST_MAX_RESULTS))
        if self.page is not None and int(self.page) >= 0:
            params["p"] = str(int(self.page))
        for name in ("query", "gametype", "hostname", "mapname"):
            value = getattr(self, name)
            if value and len(value) <= QUERY_FILTER_MAX_LEN:
                params["q" if name == "query" else name] = value
        if self.country and len(self.country) == 2 and self.country.isalpha():
            params["country"] = self.country.upper()
        return params

    def cache_key(self) -> str:
        params = self.to_params()
        return "&".join(f"{k}={params[k]}" for k in sorted(params))
