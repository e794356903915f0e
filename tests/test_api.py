from datetime import datetime, timedelta

from conftest import login
from extensions import db
from models.crime import Crime
from models.player import Player
from models.properties import PlayerProperty


def register(client, username='tony', password='secret123'):
    resp = client.post('/register', json={'username': username, 'password': password})
    assert resp.status_code == 201
    return resp.get_json()['userId']


def give_money(player_id, money):
    player = db.session.get(Player, player_id)
    player.money = money
    db.session.commit()


def test_home(client):
    resp = client.get('/')
    assert resp.status_code == 200
    assert b'Mafia Game API running' in resp.data


def test_register_and_login(client):
    user_id = register(client)
    user = login(client, 'tony')
    assert user['id'] == user_id
    assert user['rank'] == 'Street Rat'
    assert user['money'] == 0
    assert user['crime_cooldowns'] == {}
    assert 'password_hash' not in user


def test_register_duplicate_username(client):
    register(client)
    resp = client.post('/register', json={'username': 'tony', 'password': 'another1'})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Username taken'


def test_register_validates_input(client):
    resp = client.post('/register', json={'username': 'x', 'password': '1'})
    assert resp.status_code == 400
    fields = resp.get_json()['fields']
    assert 'username' in fields
    assert 'password' in fields


def test_login_wrong_password(client):
    register(client)
    resp = client.post('/login', json={'username': 'tony', 'password': 'wrong-password'})
    assert resp.status_code == 401


def test_crimes_catalog(client):
    crimes = client.get('/crimes').get_json()
    assert [c['name'] for c in crimes][:2] == ['Beg on the streets', 'Pickpocket someone']
    assert crimes[0]['success_rate'] == 0.9


def test_commit_crime_response(client, app):
    user_id = register(client)
    crime = Crime(name='Sure thing', min_reward=5, max_reward=5, success_rate=1.0, cooldown_seconds=20, xp_reward=2)
    db.session.add(crime)
    db.session.commit()

    resp = client.post('/commit-crime', json={'crime_id': crime.id})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['outcome'] == 'success'
    assert data['success'] is True
    assert data['reward'] == 5
    assert data['xp_gained'] == 2
    assert data['jail_until'] is None
    assert data['user']['money'] == 5
    assert str(crime.id) in data['user']['crime_cooldowns']

    again = client.post('/commit-crime', json={'crime_id': crime.id}).get_json()
    assert again['outcome'] == 'on_cooldown'
    assert again['success'] is False
    assert again['reward'] == 0
    assert 0 < again['remaining_seconds'] <= 20
    assert again['user']['money'] == 5


def test_commit_crime_failure_response(client, app):
    user_id = register(client)
    crime = Crime(name='Hopeless', min_reward=5, max_reward=5, success_rate=0.0, cooldown_seconds=30, xp_reward=2)
    db.session.add(crime)
    db.session.commit()

    data = client.post('/commit-crime', json={'crime_id': crime.id}).get_json()
    assert data['outcome'] == 'failure'
    assert data['jail_until'] is not None
    assert data['user']['jail_until'] == data['jail_until']
    assert data['user']['unsuccessful_crimes'] == 1

    status = client.get(f'/players/{user_id}/crime-status').get_json()
    assert status['jailed'] is True
    assert 0 < status['jail_seconds_remaining'] <= 30


def test_commit_crime_unknown_crime(client):
    register(client)
    resp = client.post('/commit-crime', json={'crime_id': 999})
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Crime not found'


def test_commit_crime_requires_login(client):
    resp = client.post('/commit-crime', json={'crime_id': 1})
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Login required'


def test_commit_crime_acts_as_logged_in_player(client, player):
    user_id = register(client)
    crime = Crime(name='Sure thing', min_reward=5, max_reward=5, success_rate=1.0, cooldown_seconds=20, xp_reward=2)
    db.session.add(crime)
    db.session.commit()

    data = client.post('/commit-crime', json={'user_id': player.id, 'crime_id': crime.id}).get_json()
    assert data['user']['id'] == user_id
    assert db.session.get(Player, player.id).total_crimes == 0


def test_commit_crime_requires_crime_id(client):
    register(client)
    resp = client.post('/commit-crime', json={})
    assert resp.status_code == 400
    assert 'crime_id' in resp.get_json()['fields']


def test_logout_ends_session(client):
    register(client)
    assert client.post('/logout').status_code == 200
    assert client.post('/commit-crime', json={'crime_id': 1}).status_code == 401


def test_commit_crime_is_rate_limited():
    from app import create_app
    from conftest import TEST_CONFIG
    config = dict(TEST_CONFIG, RATELIMIT_ENABLED=True, CRIME_RATE_LIMIT='2 per minute')
    app = create_app(config)
    client = app.test_client()
    codes = [client.post('/commit-crime', json={'crime_id': 1}).status_code for _ in range(3)]
    assert codes == [401, 401, 429]
    with app.app_context():
        db.drop_all()


def test_bank_deposit_and_withdraw(client):
    user_id = register(client)
    give_money(user_id, 500)

    data = client.post('/bank/deposit', json={'amount': 200}).get_json()
    assert data['money'] == 300
    assert data['bank_balance'] == 200

    data = client.post('/bank/withdraw', json={'amount': 50}).get_json()
    assert data['money'] == 350
    assert data['bank_balance'] == 150

    history = client.get('/bank/transactions').get_json()
    assert [(t['type'], t['amount']) for t in history] == [('withdraw', 50), ('deposit', 200)]


def test_bank_refuses_overdraft(client):
    user_id = register(client)
    give_money(user_id, 10)
    resp = client.post('/bank/deposit', json={'amount': 11})
    assert resp.status_code == 400
    resp = client.post('/bank/withdraw', json={'amount': 1})
    assert resp.status_code == 400
    player = client.get(f'/players/{user_id}').get_json()
    assert (player['money'], player['bank_balance']) == (10, 0)


def test_bank_rejects_non_positive_amount(client):
    register(client)
    resp = client.post('/bank/deposit', json={'amount': 0})
    assert resp.status_code == 400


def test_garage(client):
    user_id = register(client)
    give_money(user_id, 1500)
    cars = client.get('/cars').get_json()
    assert [c['price'] for c in cars] == sorted(c['price'] for c in cars)
    bike = next(c for c in cars if c['name'] == 'Stolen Bike')
    sedan = next(c for c in cars if c['name'] == 'Used Sedan')

    owned = client.post('/garage/buy', json={'car_id': sedan['id']}).get_json()
    assert [c['name'] for c in owned] == ['Used Sedan']
    resp = client.post('/garage/buy', json={'car_id': sedan['id']})
    assert resp.status_code == 400
    owned = client.post('/garage/buy', json={'car_id': bike['id']}).get_json()
    assert [c['name'] for c in owned] == ['Used Sedan', 'Stolen Bike']
    assert client.get(f'/players/{user_id}').get_json()['money'] == 400

    resp = client.post('/garage/buy', json={'car_id': 999})
    assert resp.status_code == 404


def test_properties_buy_and_collect(client):
    user_id = register(client)
    give_money(user_id, 10000)
    factory = next(p for p in client.get('/properties').get_json() if p['name'] == 'Bullet Factory')

    owned = client.post('/properties/buy', json={'property_id': factory['id']}).get_json()
    assert owned[0]['name'] == 'Bullet Factory'
    assert client.get(f'/players/{user_id}').get_json()['money'] == 0

    data = client.post('/properties/collect').get_json()
    assert data['collected'] == 0

    owned_row = PlayerProperty.query.filter_by(player_id=user_id).first()
    owned_row.last_collected = datetime.utcnow() - timedelta(hours=3, minutes=30)
    db.session.commit()

    data = client.post('/properties/collect').get_json()
    assert data['collected'] == 1500
    assert data['user']['money'] == 1500
    # The half hour carries over.
    leftover = datetime.utcnow() - datetime.fromisoformat(data['properties'][0]['last_collected'])
    assert timedelta(minutes=29) < leftover < timedelta(minutes=31)


def test_leaderboard(client):
    ids = [register(client, f'player{i}') for i in range(3)]
    for pid, xp in zip(ids, (30, 90, 60)):
        player = db.session.get(Player, pid)
        player.xp = xp
    db.session.commit()

    data = client.get('/leaderboard?by=xp&limit=2').get_json()
    assert [e['username'] for e in data['entries']] == ['player1', 'player2']
    assert data['entries'][0]['position'] == 1

    resp = client.get('/leaderboard?by=password_hash')
    assert resp.status_code == 400


def test_unknown_player_profile(client):
    assert client.get('/players/12345').status_code == 404
