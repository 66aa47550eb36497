"""Configuration module for the mohstats application."""
import os

# Application Metadata (Single Source of Truth)
APP_NAME = "mohstats"
APP_VERSION = "v1.0.0"
DEBUG_MODE = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'

# 333networks JSON API
NETWORKS_API_BASE_URL = os.getenv("NETWORKS_API_BASE_URL", "https://master.333networks.com/json").rstrip("/")
NETWORKS_USER_AGENT = os.getenv("NETWORKS_USER_AGENT", "mohstats - Data from 333networks")
UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", "10"))  # per request, seconds

# Games tracked by the snapshot sweep
MOH_GAMES = ("mohaa", "mohaas", "mohaab")

# Upstream refreshes server information every 7.5 minutes
CACHE_TTL = float(os.getenv("CACHE_TTL", "450"))

# Snapshot scheduler
SNAPSHOT_INTERVAL = float(os.getenv("SNAPSHOT_INTERVAL", str(CACHE_TTL)))
SNAPSHOT_INITIAL_DELAY = float(os.getenv("SNAPSHOT_INITIAL_DELAY", "30"))
SNAPSHOT_MAX_WORKERS = int(os.getenv("SNAPSHOT_MAX_WORKERS", "4"))
SNAPSHOT_ENABLED = os.getenv("SNAPSHOT_ENABLED", "true").lower() == "true"
# Max age of cached upstream data a sweep may reuse; must stay below SNAPSHOT_INTERVAL
SNAPSHOT_FETCH_MAX_AGE = float(os.getenv("SNAPSHOT_FETCH_MAX_AGE", str(SNAPSHOT_INTERVAL / 2)))

# Server list query limits
SERVER_LIST_MAX_RESULTS = 1000
QUERY_FILTER_MAX_LEN = 90
SERVER_LIST_SORT_FIELDS = ("country", "hostname", "gametype", "ip", "hostport", "numplayers", "mapname")

# History queries
HISTORY_BUCKET_SECONDS = int(os.getenv("HISTORY_BUCKET_SECONDS", "900"))  # 15 minutes
HISTORY_DEFAULT_RANGE = int(os.getenv("HISTORY_DEFAULT_RANGE", "86400"))  # 24 hours
HISTORY_MAX_RANGE = 31 * 86400
MOST_PLAYED_WINDOW = 86400

DEFAULT_RANGE_MAP = {
    "1h": 3600,
    "6h": 21600,
    "24h": 86400,
    "7d": 604800,
    "30d": 2592000,
}

# Database paths
SNAPSHOTS_DB_PATH = os.getenv("SNAPSHOTS_DB_PATH", "mohstats-snapshots.sqlite")

# DNS Configuration (empty = system resolver)
DNS_SERVER = os.getenv("DNS_SERVER", "")
DNS_TIMEOUT = float(os.getenv("DNS_TIMEOUT", "2"))

# Observability thresholds (configurable via environment variables)
OBS_ROUTE_SLOW_MS = float(os.getenv('OBS_ROUTE_SLOW_MS', '1000'))  # Flag route as slow if > 1s
OBS_ROUTE_SLOW_WARN_MS = float(os.getenv('OBS_ROUTE_SLOW_WARN_MS', '2000'))  # Warn if route > 2s
OBS_SERVICE_SLOW_MS = float(os.getenv('OBS_SERVICE_SLOW_MS', '5000'))  # Warn if service function > 5s

# Rate limiting for operational endpoints
THROTTLE_MAX_CALLS = int(os.getenv("THROTTLE_MAX_CALLS", "5"))
THROTTLE_WINDOW = int(os.getenv("THROTTLE_WINDOW", "60"))

# Map code -> human readable name
MAP_NAMES = {
    # Medal of Honor: Allied Assault
    "dm/mohdm1": "Southern France",
    "dm/mohdm2": "Destroyed Village",
    "dm/mohdm3": "Remagen",
    "dm/mohdm4": "The Crossroads",
    "dm/mohdm5": "Snowy Park",
    "dm/mohdm6": "Stalingrad",
    "dm/mohdm7": "Algiers",
    "obj/obj_team1": "The Hunt",
    "obj/obj_team2": "V2 Rocket Facility",
    "obj/obj_team3": "Omaha Beach",
    "obj/obj_team4": "The Bridge",
    # Medal of Honor: Spearhead
    "mp_bahnhof_dm": "Bahnhof",
    "mp_bazaar_dm": "Bazaar",
    "mp_brest_dm": "Brest",
    "mp_gewitter_dm": "Gewitter",
    "mp_holland_dm": "Holland",
    "mp_malta_dm": "Malta",
    "mp_stadt_dm": "Stadt",
    "mp_unterseite_dm": "Unterseite",
    "mp_verschneit_dm": "Verschneit",
    "mp_ardennes_tow": "Ardennes",
    "mp_berlin_tow": "Berlin",
    "mp_druckkammern_tow": "Druckkammern",
    "mp_flughafen_tow": "Flughafen",
    # Medal of Honor: Breakthrough
    "mp_anzio_lib": "Anzio",
    "mp_bizerteharbor_lib": "Bizerte Harbor",
    "mp_ship_lib": "Ship (Stuckguter)",
    "mp_tunisia_lib": "Tunisia",
    "mp_bizertefort_obj": "Bizerte Fort",
    "mp_bologna_obj": "Bologna",
    "mp_castello_obj": "Castello",
    "mp_palermo_obj": "Palermo",
    "mp_kasserline_tow": "Kasserine Pass",
    "mp_montebattaglia_tow": "Monte Battaglia",
    "mp_montecassino_tow": "Monte Cassino",
}
