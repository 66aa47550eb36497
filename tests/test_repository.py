import dataclasses
import sqlite3

import pytest

from mohstats.db.sqlite import SnapshotRepository
from mohstats.services.networks.model import PlayerRecord
from mohstats.services.shared.errors import PersistenceError
from tests.conftest import make_details, make_info, ts


def test_upsert_server_is_idempotent(repository):
    a = repository.upsert_server(1, "10.0.0.1", 12203, "Omaha", "mohaa", "DE")
    b = repository.upsert_server(1, "10.0.0.1", 12203, "Omaha", "mohaa", "DE")
    assert a.id == b.id
    assert repository.count_servers() == 1


def test_upsert_server_first_write_wins(repository):
    first = repository.upsert_server(1, "10.0.0.1", 12203, "Omaha", "mohaa", "DE")
    again = repository.upsert_server(99, "10.0.0.1", 12203, "Omaha", "mohaas", "NL")
    assert again.id == first.id
    assert again.external_id == 1
    assert again.game == "mohaa"
    assert again.country == "DE"


def test_renamed_server_gets_new_identity(repository):
    old = repository.upsert_server(1, "10.0.0.1", 12203, "Old name", "mohaa")
    new = repository.upsert_server(1, "10.0.0.1", 12203, "New name", "mohaa")
    assert old.id != new.id
    assert repository.find_latest_server_by_address("10.0.0.1", 12203).id == new.id
    assert repository.find_server("10.0.0.1", 12203, "Old name").id == old.id
    assert repository.find_latest_server_by_address("10.0.0.1", 9999) is None


def test_save_snapshot_with_players(repository):
    info = make_info(1, numplayers=3)
    server = repository.upsert_server(info.id, info.ip, info.hostport, info.hostname, "mohaa")
    snap = repository.save_snapshot(server, make_details(info), ts(10, 5))

    assert snap.id is not None
    assert [p.captured_at for p in snap.players] == [ts(10, 5)] * 3

    latest = repository.find_latest_snapshot(server.id)
    assert latest.id == snap.id
    assert latest.num_players == 3
    assert latest.map == "obj/obj_team2"
    assert [p.name for p in latest.players] == ["player0", "player1", "player2"]


def test_find_snapshots_half_open_range(repository):
    info = make_info(1, numplayers=1)
    server = repository.upsert_server(info.id, info.ip, info.hostport, info.hostname, "mohaa")
    for minute in (0, 5, 10):
        repository.save_snapshot(server, make_details(info), ts(10, minute))

    found = repository.find_snapshots(server.id, ts(10, 0), ts(10, 10))
    assert [s.captured_at for s in found] == [ts(10, 0), ts(10, 5)]
    assert found[0].players == []
    with_players = repository.find_snapshots(server.id, ts(10, 0), ts(10, 10), include_players=True)
    assert len(with_players[0].players) == 1
    assert repository.find_snapshots(server.id, ts(11, 0), ts(12, 0)) == []
    assert repository.count_snapshots(server.id) == 3


def test_snapshot_requires_existing_server(repository):
    info = make_info(1, numplayers=1)
    ghost = repository.upsert_server(info.id, info.ip, info.hostport, info.hostname, "mohaa")
    ghost = dataclasses.replace(ghost, id=424242)
    with pytest.raises(PersistenceError):
        repository.save_snapshot(ghost, make_details(info), ts(10, 0))
    assert repository.count_snapshots() == 0


def test_most_played_maps(repository):
    aa = repository.upsert_server(1, "10.0.0.1", 12203, "AA", "mohaa")
    sh = repository.upsert_server(2, "10.0.0.2", 12203, "SH", "mohaas")
    info = make_info(1, numplayers=1)

    for minute in (0, 5, 10):
        repository.save_snapshot(aa, make_details(info, mapname="obj/obj_team2"), ts(10, minute))
    repository.save_snapshot(aa, make_details(info, mapname="dm/mohdm6"), ts(10, 15))
    for minute in (0, 5, 10, 15):
        repository.save_snapshot(sh, make_details(info, mapname="dm/mohdm6"), ts(10, minute))
    # Outside the window
    for minute in (0, 5, 10, 15, 20):
        repository.save_snapshot(aa, make_details(info, mapname="obj/obj_team4"), ts(8, minute))

    assert repository.most_played_maps(ts(9, 0)) == [("dm/mohdm6", 5)]
    assert repository.most_played_maps(ts(9, 0), game="mohaa") == [("obj/obj_team2", 3)]
    assert repository.most_played_maps(ts(9, 0), game="mohaab") == []
    assert repository.most_played_maps(ts(0, 0), limit=2)[0] == ("dm/mohdm6", 5)


def test_unwritable_database_raises_persistence_error(tmp_path):
    repo = SnapshotRepository(str(tmp_path / "missing" / "dir" / "db.sqlite"))
    with pytest.raises(PersistenceError):
        repo.init_db()


def test_schema_enforces_unique_identity(repository):
    conn = sqlite3.connect(repository.db_path)
    try:
        conn.execute(
            "INSERT INTO servers (server_id, ip, hostport, hostname, gamename) VALUES (1, 'a', 1, 'h', 'mohaa')"
        )
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO servers (server_id, ip, hostport, hostname, gamename) VALUES (2, 'a', 1, 'h', 'mohaa')"
            )
    finally:
        conn.close()


def test_record_snapshot_reuses_identity(repository):
    info = make_info(1, numplayers=2)
    args = (info.id, info.ip, info.hostport, info.hostname, "mohaa", "DE")
    first, snap_a = repository.record_snapshot(*args, make_details(info), ts(10, 0))
    second, snap_b = repository.record_snapshot(*args, make_details(info), ts(10, 5))

    assert first.id == second.id
    assert snap_a.server_id == snap_b.server_id == first.id
    assert repository.count_servers() == 1
    assert repository.count_snapshots(first.id) == 2


def test_record_snapshot_failure_keeps_nothing(repository):
    info = make_info(1, numplayers=1)
    # player_name is NOT NULL, so the players insert fails after the identity and snapshot rows
    details = make_details(info, players=[PlayerRecord(name=None)])
    with pytest.raises(PersistenceError):
        repository.record_snapshot(info.id, info.ip, info.hostport, info.hostname, "mohaa", None, details, ts(10, 0))

    assert repository.count_servers() == 0
    assert repository.count_snapshots() == 0
    assert repository.find_server(info.ip, info.hostport, info.hostname) is None


def test_latest_server_by_address_filters_game(repository):
    aa = repository.upsert_server(1, "10.0.0.1", 12203, "AA", "mohaa")
    sh = repository.upsert_server(2, "10.0.0.1", 12203, "SH", "mohaas")

    assert repository.find_latest_server_by_address("10.0.0.1", 12203).id == sh.id
    assert repository.find_latest_server_by_address("10.0.0.1", 12203, game="mohaa").id == aa.id
    assert repository.find_latest_server_by_address("10.0.0.1", 12203, game="mohaab") is None
