"""Decoders for 333networks JSON payloads.

The list endpoint answers ``[[server, ...], {"players": n, "total": n}]``,
the detail endpoint a flat object with numbered ``player_N`` sub-objects.
Either may instead answer an error object ``{"error": n, "in": "..."}``.
"""
import re

from mohstats.services.networks.model import (
    Motd,
    PlayerRecord,
    ServerDetails,
    ServerInfo,
    ServerList,
    ServerListMetadata,
)
from mohstats.services.shared.errors import UpstreamError, UpstreamErrorKind

_PLAYER_KEY_RE = re.compile(r"^player_(\d+)$")

_DETAIL_FIELDS = {
    "id", "ip", "hostport", "hostname", "gamename", "mapname", "maptitle", "mapurl",
    "gamever", "gametype", "country", "numplayers", "maxplayers", "password",
    "timelimit", "fraglimit", "dt_updated",
}


def _as_int(value, default=0):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _as_opt_int(value):
    if value is None or value == "":
        return None
    return _as_int(value, default=None)


def _as_opt_str(value):
    if value is None:
        return None
    return str(value)


def _malformed(detail):
    return UpstreamError(UpstreamErrorKind.MALFORMED, detail)


def raise_for_error_object(payload):
    """Raise REMOTE_REJECTED when the payload is an explicit error object."""
    if isinstance(payload, dict) and "error" in payload:
        where = payload.get("in") or "unknown"
        raise UpstreamError(
            UpstreamErrorKind.REMOTE_REJECTED,
            f"{where} (code {payload.get('error')})",
            payload,
        )


def parse_motd(payload):
    raise_for_error_object(payload)
    if not isinstance(payload, dict):
        raise _malformed("MOTD payload is not an object")
    return Motd(
        html=str(payload.get("html") or ""),
        servers=_as_opt_int(payload.get("servers")),
        players=_as_opt_int(payload.get("players")),
    )


def _parse_server_info(item):
    if not isinstance(item, dict):
        raise _malformed("server entry is not an object")
    ip = item.get("ip")
    hostport = _as_opt_int(item.get("hostport"))
    if not ip or hostport is None:
        raise _malformed("server entry lacks ip/hostport")
    return ServerInfo(
        id=_as_int(item.get("id")),
        ip=str(ip),
        hostport=hostport,
        hostname=str(item.get("hostname") or ""),
        gamename=str(item.get("gamename") or ""),
        numplayers=max(0, _as_int(item.get("numplayers"))),
        maxplayers=max(0, _as_int(item.get("maxplayers"))),
        gametype=_as_opt_str(item.get("gametype")),
        label=_as_opt_str(item.get("label")),
        country=_as_opt_str(item.get("country")),
        maptitle=_as_opt_str(item.get("maptitle")),
        mapname=_as_opt_str(item.get("mapname")),
        dt_added=_as_opt_int(item.get("dt_added")),
        dt_updated=_as_opt_int(item.get("dt_updated")),
    )


def parse_server_list(payload):
    raise_for_error_object(payload)
    if not isinstance(payload, list) or len(payload) != 2:
        raise _malformed("expected [servers, metadata] array")
    servers_node, metadata_node = payload
    if not isinstance(servers_node, list) or not isinstance(metadata_node, dict):
        raise _malformed("unexpected server list layout")
    servers = [_parse_server_info(item) for item in servers_node]
    metadata = ServerListMetadata(
        total_players=_as_int(metadata_node.get("players")),
        total_servers=_as_int(metadata_node.get("total")),
    )
    return ServerList(servers=servers, metadata=metadata)


def extract_players(payload):
    """Collect ``player_N`` objects into an ordered list of PlayerRecord.

    Ordered by N; gaps are fine. Missing or invalid sub-fields default
    rather than failing the whole payload, non-object values are skipped.
    """
    numbered = []
    for key, value in payload.items():
        match = _PLAYER_KEY_RE.match(key)
        if not match or not isinstance(value, dict):
            continue
        numbered.append((int(match.group(1)), value))
    numbered.sort(key=lambda item: item[0])

    players = []
    for _, raw in numbered:
        name = raw.get("name")
        players.append(PlayerRecord(
            name=str(name) if name is not None else "",
            frags=_as_int(raw.get("frags")),
            ping=_as_int(raw.get("ping")),
            team=_as_opt_str(raw.get("team")),
        ))
    return players


def parse_server_details(payload):
    raise_for_error_object(payload)
    if not isinstance(payload, dict):
        raise _malformed("server details payload is not an object")
    ip = payload.get("ip")
    hostport = _as_opt_int(payload.get("hostport"))
    if not ip or hostport is None:
        raise _malformed("server details lack ip/hostport")

    extra = {
        k: v for k, v in payload.items()
        if k not in _DETAIL_FIELDS and not _PLAYER_KEY_RE.match(k)
    }
    return ServerDetails(
        id=_as_int(payload.get("id")),
        ip=str(ip),
        hostport=hostport,
        hostname=str(payload.get("hostname") or ""),
        gamename=str(payload.get("gamename") or ""),
        mapname=_as_opt_str(payload.get("mapname")),
        maptitle=_as_opt_str(payload.get("maptitle")),
        mapurl=_as_opt_str(payload.get("mapurl")),
        gamever=_as_opt_str(payload.get("gamever")),
        gametype=_as_opt_str(payload.get("gametype")),
        country=_as_opt_str(payload.get("country")),
        numplayers=max(0, _as_int(payload.get("numplayers"))),
        maxplayers=max(0, _as_int(payload.get("maxplayers"))),
        password=_as_opt_str(payload.get("password")),
        timelimit=_as_opt_str(payload.get("timelimit")),
        fraglimit=_as_opt_str(payload.get("fraglimit")),
        dt_updated=_as_opt_int(payload.get("dt_updated")),
        players=extract_players(payload),
        extra=extra,
    )
