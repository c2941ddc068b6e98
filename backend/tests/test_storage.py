import threading
from datetime import datetime, timezone

import pytest

from turntracker import create_app
from turntracker.models import PlayerStatus
from turntracker.services.sessions.errors import ConflictError
from turntracker.storage import MemoryStore, SqlAlchemyStore

from conftest import TestConfig as BaseConfig

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def sql_store(flask_app):
    from turntracker import db
    return SqlAlchemyStore(db)


@pytest.fixture(params=['memory', 'sql'])
def store(request):
    if request.param == 'memory':
        return MemoryStore()
    return request.getfixturevalue('sql_store')


def _seed(store, code='ABC123'):
    return store.create_session(
        name='Test',
        code=code,
        player1_steam_id='alice',
        player2_steam_id='bob',
        current_turn='player1',
        initial_statuses={'alice': 'ready', 'bob': 'unavailable'},
        now=NOW,
    )


def test_create_and_lookup(store):
    session = _seed(store)
    assert store.get_session(session.id).code == 'ABC123'
    assert store.get_session_by_code('ABC123').id == session.id
    assert store.get_status(session.id, 'alice').status == 'ready'
    assert store.get_status(session.id, 'bob').status == 'unavailable'
    assert store.get_status(session.id, 'carol') is None


def test_duplicate_code_conflicts(store):
    _seed(store)
    with pytest.raises(ConflictError):
        _seed(store)


def test_complete_turn_compare_and_swap(store):
    session = _seed(store)
    assert store.complete_turn(session.id, 'alice', 'player1', 'player2', NOW) is True
    # A second request still expecting player1 loses
    assert store.complete_turn(session.id, 'alice', 'player1', 'player2', NOW) is False
    assert store.get_session(session.id).current_turn == 'player2'
    assert store.get_status(session.id, 'bob').last_turn_completed is None


def test_update_status_missing_row(store):
    session = _seed(store)
    assert store.update_status(session.id, 'carol', 'busy', None, False, NOW) is None


def test_create_status_is_idempotent(store):
    session = _seed(store)
    first = store.create_status(session.id, 'bob', 'ready', NOW)
    assert first.status == 'unavailable'


def test_memory_store_returns_copies():
    store = MemoryStore()
    session = _seed(store)
    copy = store.get_session(session.id)
    copy.current_turn = 'player2'
    assert store.get_session(session.id).current_turn == 'player1'


def test_memory_store_keys_do_not_collide():
    store = MemoryStore()
    first = _seed(store, code='AAAAAA')
    store.create_status(first.id, '1-x', 'busy', NOW)
    # Identifiers containing separators stay distinct
    assert store.get_status(first.id, '1-x').status == 'busy'
    assert store.get_status(first.id, 'x') is None


def test_sql_store_keeps_one_status_per_player(sql_store):
    session = _seed(sql_store)
    sql_store.create_status(session.id, 'alice', 'busy', NOW)
    assert PlayerStatus.query.filter_by(game_session_id=session.id, steam_id='alice').count() == 1


class MemoryConfig(BaseConfig):
    TURNTRACKER_STORE = 'memory'


def test_app_with_memory_store():
    application = create_app(MemoryConfig)
    client = application.test_client()
    res = client.post('/api/game', json={
        'name': 'Test', 'code': 'MEM234', 'player1SteamId': 'alice', 'player2SteamId': 'bob',
    })
    assert res.status_code == 201
    gid = res.get_json()['id']
    res = client.post('/api/complete-turn', json={'gameSessionId': gid, 'steamId': 'alice'})
    assert res.get_json()['currentTurn'] == 'player2'


def test_unknown_store_kind():
    class BadConfig(BaseConfig):
        TURNTRACKER_STORE = 'redis'

    with pytest.raises(ValueError):
        create_app(BadConfig)


def test_snapshot_includes_both_statuses(store):
    session = _seed(store)
    store.complete_turn(session.id, 'alice', 'player1', 'player2', NOW)
    snap_session, player1_status, player2_status = store.get_session_with_statuses(session.id)
    assert snap_session.current_turn == 'player2'
    assert player1_status.steam_id == 'alice'
    assert player1_status.last_turn_completed is not None
    assert player2_status.steam_id == 'bob'
    assert store.get_session_with_statuses(session.id + 100) is None


def test_memory_snapshot_waits_for_session_lock():
    store = MemoryStore()
    session = _seed(store)
    snapshots = []
    reader = threading.Thread(target=lambda: snapshots.append(store.get_session_with_statuses(session.id)))

    with store._lock_for(session.id):
        reader.start()
        reader.join(timeout=0.2)
        # Blocked while a writer holds the session
        assert reader.is_alive()
        assert snapshots == []
    reader.join(timeout=5)

    assert not reader.is_alive()
    assert snapshots[0][0].id == session.id
