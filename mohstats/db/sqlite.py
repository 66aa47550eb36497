"""SQLite storage for server identities, snapshots and player rosters."""
import sqlite3
import threading
from contextlib import contextmanager

from mohstats.config import SNAPSHOTS_DB_PATH
from mohstats.services.networks.model import PlayerRecord
from mohstats.services.shared.errors import PersistenceError
from mohstats.services.snapshots.model import ServerIdentity, Snapshot

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS servers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        server_id INTEGER NOT NULL,
        ip TEXT NOT NULL,
        hostport INTEGER NOT NULL,
        hostname TEXT NOT NULL,
        gamename TEXT NOT NULL,
        country TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_servers_identity ON servers(ip, hostport, hostname)",
    """
    CREATE TABLE IF NOT EXISTS server_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        server_id INTEGER NOT NULL REFERENCES servers(id),
        snapshot_time REAL NOT NULL,
        mapname TEXT,
        gametype TEXT,
        mapurl TEXT,
        gamever TEXT,
        password TEXT,
        timelimit TEXT,
        fraglimit TEXT,
        num_players INTEGER NOT NULL,
        max_players INTEGER NOT NULL,
        dt_updated INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_snapshots_server_time ON server_snapshots(server_id, snapshot_time)",
    "CREATE INDEX IF NOT EXISTS idx_snapshots_time ON server_snapshots(snapshot_time)",
    """
    CREATE TABLE IF NOT EXISTS players (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        server_snapshot_id INTEGER NOT NULL REFERENCES server_snapshots(id) ON DELETE CASCADE,
        player_name TEXT NOT NULL,
        frags INTEGER NOT NULL,
        ping INTEGER NOT NULL,
        snapshot_time REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_players_snapshot ON players(server_snapshot_id)",
)

_IDENTITY_COLUMNS = "id, server_id, ip, hostport, hostname, gamename, country"

_SNAPSHOT_COLUMNS = (
    "id, server_id, snapshot_time, num_players, max_players, mapname, gametype, "
    "mapurl, gamever, password, timelimit, fraglimit, dt_updated"
)


def _row_to_identity(row):
    return ServerIdentity(
        id=row[0], external_id=row[1], ip=row[2], port=row[3],
        hostname=row[4], game=row[5], country=row[6],
    )


def _row_to_snapshot(row, players=None):
    return Snapshot(
        id=row[0], server_id=row[1], captured_at=row[2], num_players=row[3],
        max_players=row[4], map=row[5], game_type=row[6], map_url=row[7],
        game_version=row[8], password=row[9], time_limit=row[10],
        frag_limit=row[11], upstream_updated=row[12], players=players or [],
    )


class SnapshotRepository:
    def __init__(self, db_path=SNAPSHOTS_DB_PATH):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._initialized = False

    def _connect(self):
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    @contextmanager
    def _session(self):
        """One connection, one transaction. sqlite errors become PersistenceError."""
        with self._lock:
            try:
                conn = self._connect()
            except sqlite3.Error as e:
                raise PersistenceError(f"Cannot open {self.db_path}: {e}") from e
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError(str(e)) from e
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def init_db(self):
        if self._initialized:
            return
        with self._session() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        self._initialized = True

    # ==================== Identities ====================

    def find_server(self, ip, port, hostname):
        self.init_db()
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_IDENTITY_COLUMNS} FROM servers WHERE ip = ? AND hostport = ? AND hostname = ?",
                (ip, port, hostname),
            ).fetchone()
        return _row_to_identity(row) if row else None

    def find_latest_server_by_address(self, ip, port, game=None):
        """Most recently created identity at ip:port, whatever its hostname.

        With game set, only identities recorded for that game match.
        """
        self.init_db()
        params = [ip, port]
        game_clause = ""
        if game:
            game_clause = " AND gamename = ?"
            params.append(game)
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_IDENTITY_COLUMNS} FROM servers "
                f"WHERE ip = ? AND hostport = ?{game_clause} ORDER BY id DESC LIMIT 1",
                params,
            ).fetchone()
        return _row_to_identity(row) if row else None

    def _upsert_server(self, conn, external_id, ip, port, hostname, game, country):
        conn.execute(
            "INSERT OR IGNORE INTO servers (server_id, ip, hostport, hostname, gamename, country) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (external_id, ip, port, hostname, game, country),
        )
        row = conn.execute(
            f"SELECT {_IDENTITY_COLUMNS} FROM servers WHERE ip = ? AND hostport = ? AND hostname = ?",
            (ip, port, hostname),
        ).fetchone()
        return _row_to_identity(row)

    def upsert_server(self, external_id, ip, port, hostname, game, country=None):
        """Return the identity for (ip, port, hostname), creating it on first sighting.

        Existing rows are left unchanged (first write wins).
        """
        self.init_db()
        with self._session() as conn:
            return self._upsert_server(conn, external_id, ip, port, hostname, game, country)

    def count_servers(self):
        self.init_db()
        with self._session() as conn:
            return conn.execute("SELECT COUNT(*) FROM servers").fetchone()[0]

    # ==================== Snapshots ====================

    def _insert_snapshot(self, conn, server_id, details, captured_at):
        players = [
            PlayerRecord(name=p.name, frags=p.frags, ping=p.ping, team=p.team, captured_at=captured_at)
            for p in details.players
        ]
        cur = conn.execute(
            """
            INSERT INTO server_snapshots (server_id, snapshot_time, mapname, gametype, mapurl,
                gamever, password, timelimit, fraglimit, num_players, max_players, dt_updated)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                server_id,
                captured_at,
                details.mapname,
                details.gametype,
                details.mapurl,
                details.gamever,
                details.password,
                details.timelimit,
                details.fraglimit,
                details.numplayers,
                details.maxplayers,
                details.dt_updated,
            ),
        )
        snapshot_id = cur.lastrowid
        conn.executemany(
            "INSERT INTO players (server_snapshot_id, player_name, frags, ping, snapshot_time) "
            "VALUES (?, ?, ?, ?, ?)",
            [(snapshot_id, p.name, p.frags, p.ping, captured_at) for p in players],
        )
        return Snapshot(
            id=snapshot_id,
            server_id=server_id,
            captured_at=captured_at,
            num_players=details.numplayers,
            max_players=details.maxplayers,
            map=details.mapname,
            game_type=details.gametype,
            map_url=details.mapurl,
            game_version=details.gamever,
            password=details.password,
            time_limit=details.timelimit,
            frag_limit=details.fraglimit,
            upstream_updated=details.dt_updated,
            players=players,
        )

    def save_snapshot(self, server, details, captured_at):
        """Insert a snapshot and its players for an existing identity in a single transaction."""
        self.init_db()
        with self._session() as conn:
            return self._insert_snapshot(conn, server.id, details, captured_at)

    def record_snapshot(self, external_id, ip, port, hostname, game, country, details, captured_at):
        """Upsert the identity and insert its snapshot and players in one transaction.

        Returns (identity, snapshot). On failure nothing from this call is kept,
        not even a newly created identity.
        """
        self.init_db()
        with self._session() as conn:
            server = self._upsert_server(conn, external_id, ip, port, hostname, game, country)
            snapshot = self._insert_snapshot(conn, server.id, details, captured_at)
        return server, snapshot

    def _load_players(self, conn, snapshot_id):
        rows = conn.execute(
            "SELECT player_name, frags, ping, snapshot_time FROM players "
            "WHERE server_snapshot_id = ? ORDER BY id",
            (snapshot_id,),
        ).fetchall()
        return [PlayerRecord(name=r[0], frags=r[1], ping=r[2], captured_at=r[3]) for r in rows]

    def find_snapshots(self, server_id, start_ts, end_ts, include_players=False):
        """Snapshots of one server with start_ts <= snapshot_time < end_ts, oldest first."""
        self.init_db()
        with self._session() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS} FROM server_snapshots
                WHERE server_id = ? AND snapshot_time >= ? AND snapshot_time < ?
                ORDER BY snapshot_time ASC, id ASC
                """,
                (server_id, start_ts, end_ts),
            ).fetchall()
            if not include_players:
                return [_row_to_snapshot(r) for r in rows]
            return [_row_to_snapshot(r, self._load_players(conn, r[0])) for r in rows]

    def find_latest_snapshot(self, server_id):
        self.init_db()
        with self._session() as conn:
            row = conn.execute(
                f"""
                SELECT {_SNAPSHOT_COLUMNS} FROM server_snapshots
                WHERE server_id = ?
                ORDER BY snapshot_time DESC, id DESC
                LIMIT 1
                """,
                (server_id,),
            ).fetchone()
            if not row:
                return None
            return _row_to_snapshot(row, self._load_players(conn, row[0]))

    def count_snapshots(self, server_id=None):
        self.init_db()
        with self._session() as conn:
            if server_id is None:
                return conn.execute("SELECT COUNT(*) FROM server_snapshots").fetchone()[0]
            return conn.execute(
                "SELECT COUNT(*) FROM server_snapshots WHERE server_id = ?", (server_id,)
            ).fetchone()[0]

    def most_played_maps(self, since_ts, game=None, limit=1):
        """Map names ranked by snapshot count since since_ts, optionally for one game."""
        self.init_db()
        params = [since_ts]
        game_clause = ""
        if game:
            game_clause = " AND sv.gamename = ?"
            params.append(game)
        params.append(limit)
        with self._session() as conn:
            rows = conn.execute(
                f"""
                SELECT s.mapname, COUNT(*) AS cnt
                FROM server_snapshots s
                JOIN servers sv ON sv.id = s.server_id
                WHERE s.snapshot_time >= ? AND s.mapname IS NOT NULL AND s.mapname != ''{game_clause}
                GROUP BY s.mapname
                ORDER BY cnt DESC, s.mapname ASC
                LIMIT ?
                """,
                params,
            ).fetchall()
        return [(r[0], r[1]) for r in rows]

