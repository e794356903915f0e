import threading
from contextlib import contextmanager
from flask import current_app
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError
from extensions import db
from models.player import Player
from models.crime import Crime
from models.cooldowns import record_attempt
from models.errors import (
    PlayerNotFound, CrimeNotFound, InvalidState, PersistenceConflict, PersistenceUnavailable
)
from models.loggers import crime_logger


class PlayerLocks:
    """One mutex per player id, created on demand and dropped once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, player_id):
        with self._guard:
            entry = self._locks.get(player_id)
            if entry is None:
                entry = self._locks[player_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[player_id]

    def __len__(self):
        with self._guard:
            return len(self._locks)


def player_locks():
    return current_app.extensions['player_locks']


def load_player(player_id, for_update=False):
    query = Player.query.filter_by(id=player_id)
    if for_update:
        query = query.with_for_update()
    player = query.first()
    if player is None:
        raise PlayerNotFound()
    problems = [
        field for field in ('money', 'bank_balance', 'xp', 'total_crimes', 'successful_crimes', 'unsuccessful_crimes')
        if getattr(player, field) is None or (field != 'money' and getattr(player, field) < 0)
    ]
    if problems:
        crime_logger.error(f"Player {player_id} has invalid fields: {', '.join(problems)}")
        raise InvalidState(f"Player {player_id} record is corrupt")
    return player


def check_crime(crime):
    problems = crime.problems()
    if problems:
        crime_logger.error(f"Crime {crime.id} definition is invalid: {'; '.join(problems)}")
        raise InvalidState(f"Crime {crime.id} definition is corrupt")
    return crime


def load_crime(crime_id):
    crime = db.session.get(Crime, crime_id)
    if crime is None:
        raise CrimeNotFound()
    return check_crime(crime)


@contextmanager
def player_transaction(player_id, expected_version=None):
    """Run one read-modify-write unit of work on a player.

    The player's lock is held and the row is loaded FOR UPDATE for the whole
    block; the session commits when the block exits cleanly and rolls back
    otherwise. A version mismatch raises PersistenceConflict, a storage outage
    raises PersistenceUnavailable.
    """
    with player_locks().hold(player_id):
        try:
            player = load_player(player_id, for_update=True)
            if expected_version is not None and player.version != expected_version:
                raise PersistenceConflict()
            yield player
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            raise PersistenceConflict() from e
        except (OperationalError, PoolTimeoutError) as e:
            db.session.rollback()
            crime_logger.error(f"Storage unavailable while updating player {player_id}: {e}")
            raise PersistenceUnavailable() from e
        except BaseException:
            db.session.rollback()
            raise


def commit_player_delta(player, delta):
    """Stage a crime delta on a player loaded by player_transaction.

    The counters, cash, xp, jail and rank land on the player row and the
    crime's cooldown entry is upserted; both commit together when the
    enclosing transaction exits.
    """
    delta.apply_to(player)
    db.session.flush()
    record_attempt(player.id, delta.crime_id, delta.attempted_at)
