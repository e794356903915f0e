import random
import threading
import time

import pytest

from app import create_app
from conftest import NOW, TEST_CONFIG
from extensions import db
from models.auth import register_player
from models.crime import Crime
from models.engine import attempt_crime
from models.player import Player
from models.store import PlayerLocks


@pytest.fixture
def file_app(tmp_path):
    config = dict(TEST_CONFIG)
    config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{tmp_path / 'race.db'}"
    config['SQLALCHEMY_ENGINE_OPTIONS'] = {'connect_args': {'check_same_thread': False, 'timeout': 10}}
    app = create_app(config)
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def run_in_threads(app, target, count):
    barrier = threading.Barrier(count)
    results = []
    errors = []

    def worker(index):
        with app.app_context():
            barrier.wait()
            try:
                results.append(target(index))
            except Exception as e:
                errors.append(e)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results, errors


def test_same_player_same_crime_commits_once(file_app):
    with file_app.app_context():
        player_id = register_player('twin', 'secret123').id
        crime = Crime(name='Race', min_reward=5, max_reward=5, success_rate=1.0, cooldown_seconds=60, xp_reward=3)
        db.session.add(crime)
        db.session.commit()
        crime_id = crime.id

    results, errors = run_in_threads(
        file_app,
        lambda i: attempt_crime(player_id, crime_id, NOW, rng=random.Random(i)),
        2,
    )

    assert errors == []
    assert sorted(r.kind for r in results) == ['on_cooldown', 'success']
    with file_app.app_context():
        player = db.session.get(Player, player_id)
        assert player.money == 5
        assert player.total_crimes == 1
        assert player.xp == 3


def test_different_players_both_resolve(file_app):
    with file_app.app_context():
        ids = [register_player(f'crew{i}', 'secret123').id for i in range(4)]
        crime_id = Crime.query.order_by(Crime.id.asc()).first().id

    results, errors = run_in_threads(
        file_app,
        lambda i: attempt_crime(ids[i], crime_id, NOW, rng=random.Random(i)),
        4,
    )

    assert errors == []
    assert len(results) == 4
    assert all(r.kind in ('success', 'failure') for r in results)
    with file_app.app_context():
        assert all(db.session.get(Player, pid).total_crimes == 1 for pid in ids)


def test_lock_is_scoped_to_one_player():
    locks = PlayerLocks()
    acquired = threading.Event()

    def other_player():
        with locks.hold(2):
            acquired.set()

    with locks.hold(1):
        t = threading.Thread(target=other_player)
        t.start()
        assert acquired.wait(timeout=2)
        t.join()


def test_lock_serializes_same_player():
    locks = PlayerLocks()
    inside = []
    overlap = []

    def work():
        with locks.hold(7):
            if inside:
                overlap.append(True)
            inside.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlap == []


def test_idle_locks_are_dropped():
    locks = PlayerLocks()
    with locks.hold(1):
        with locks.hold(2):
            assert len(locks) == 2
    assert len(locks) == 0
