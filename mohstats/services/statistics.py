"""Aggregate statistics over stored snapshots."""
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from mohstats.config import MAP_NAMES, MOH_GAMES, MOST_PLAYED_WINDOW


@dataclass(frozen=True)
class MapFrequency:
    mapname: str
    count: int
    map_full_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"mapname": self.mapname, "count": self.count, "mapFullName": self.map_full_name}


def lookup_map_name(mapname):
    """Human readable map name: exact code match first, then a code containing mapname."""
    if not mapname:
        return None
    exact = MAP_NAMES.get(mapname)
    if exact:
        return exact
    needle = mapname.lower()
    for code, name in MAP_NAMES.items():
        if needle in code.lower():
            return name
    return None


class StatisticsService:
    def __init__(self, repository, clock=time.time):
        self.repository = repository
        self._clock = clock

    def most_played_map(self, since_ts, game=None):
        rows = self.repository.most_played_maps(since_ts, game=game, limit=1)
        if not rows:
            return None
        mapname, count = rows[0]
        return MapFrequency(mapname=mapname, count=count, map_full_name=lookup_map_name(mapname))

    def most_played_maps_24h(self):
        """Most played map per game over the last 24 hours, plus across all games under 'all'."""
        since = self._clock() - MOST_PLAYED_WINDOW
        result = {game: self.most_played_map(since, game) for game in MOH_GAMES}
        result["all"] = self.most_played_map(since)
        return result
