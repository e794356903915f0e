import random
from datetime import datetime

import pytest
from flask import g, has_app_context
from flask.testing import FlaskClient

from app import create_app
from extensions import db
from models.auth import register_player
from models.crime import Crime

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'RATELIMIT_ENABLED': False,
    'ADMIN_LOG_FILE': None,
    'CRIME_RNG_SEED': 7,
    'SECRET_KEY': 'test',
}

NOW = datetime(2025, 1, 1, 12, 0, 0)


class SessionClient(FlaskClient):
    """Test client whose logged-in player always comes from its own session cookie.

    Tests keep one app context open across requests, so the player Flask-Login
    caches on ``g`` would otherwise leak from one client to the next.
    """

    def open(self, *args, **kwargs):
        if has_app_context():
            g.pop('_login_user', None)
        return super().open(*args, **kwargs)


def login(client, username, password='secret123'):
    resp = client.post('/login', json={'username': username, 'password': password})
    assert resp.status_code == 200
    return resp.get_json()['user']


class FixedRoll:
    """Random source returning a fixed roll; rewards come from ``reward`` or the lower bound."""

    def __init__(self, roll, reward=None):
        self.roll = roll
        self.reward = reward
        self.rolls = 0

    def random(self):
        self.rolls += 1
        return self.roll

    def randint(self, low, high):
        return low if self.reward is None else self.reward


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    app.test_client_class = SessionClient
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def player(app):
    return register_player('vito', 'secret123')


@pytest.fixture
def admin(app):
    return register_player('boss', 'secret123', is_admin=True)


@pytest.fixture
def player_client(app, player):
    client = app.test_client()
    login(client, player.username)
    return client


@pytest.fixture
def admin_client(app, admin):
    client = app.test_client()
    login(client, admin.username)
    return client


@pytest.fixture
def make_crime(app):
    def _make(**fields):
        values = {
            'name': 'Test job',
            'min_reward': 5,
            'max_reward': 5,
            'success_rate': 1.0,
            'cooldown_seconds': 20,
            'xp_reward': 10,
        }
        values.update(fields)
        crime = Crime(**values)
        db.session.add(crime)
        db.session.commit()
        return crime
    return _make


@pytest.fixture
def rng():
    return random.Random(1234)
