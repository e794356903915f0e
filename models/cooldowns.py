from datetime import timedelta
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm.util import identity_key
from extensions import db
from models.player import CrimeCooldown
from models.errors import InvalidState
from models.loggers import crime_logger

UPSERT_DIALECTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def remaining_seconds(until, now):
    """Whole seconds left until ``until``, rounded up; 0 once it has passed."""
    if until is None or until <= now:
        return 0
    delta = until - now
    seconds = delta.days * 86400 + delta.seconds
    if delta.microseconds:
        seconds += 1
    return seconds


def cooldown_expiry(last_attempt, cooldown_seconds):
    return last_attempt + timedelta(seconds=cooldown_seconds)


def get_last_attempt(player_id, crime_id):
    """Point read of one cooldown entry; None when the crime was never attempted."""
    entry = db.session.get(CrimeCooldown, (player_id, crime_id))
    if entry is None:
        return None
    if entry.last_attempt is None:
        crime_logger.error(f"Malformed cooldown entry for player {player_id}, crime {crime_id}")
        raise InvalidState(f"Malformed cooldown entry for crime {crime_id}")
    return entry.last_attempt


def cooldown_map(player_id):
    entries = CrimeCooldown.query.filter_by(player_id=player_id).all()
    result = {}
    for entry in entries:
        if entry.last_attempt is None:
            crime_logger.error(f"Malformed cooldown entry for player {player_id}, crime {entry.crime_id}")
            raise InvalidState(f"Malformed cooldown entry for crime {entry.crime_id}")
        result[entry.crime_id] = entry.last_attempt
    return result


def record_attempt(player_id, crime_id, attempted_at):
    """Upsert a single cooldown entry without touching the player's other entries."""
    dialect = db.engine.dialect.name
    insert = UPSERT_DIALECTS.get(dialect)
    if insert is None:
        # Read-then-write fallback; callers hold the player's lock.
        entry = db.session.get(CrimeCooldown, (player_id, crime_id))
        if entry is None:
            db.session.add(CrimeCooldown(player_id=player_id, crime_id=crime_id, last_attempt=attempted_at))
        else:
            entry.last_attempt = attempted_at
        return
    stmt = insert(CrimeCooldown.__table__).values(
        player_id=player_id, crime_id=crime_id, last_attempt=attempted_at
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=['player_id', 'crime_id'],
        set_={'last_attempt': attempted_at},
    )
    db.session.execute(stmt)
    existing = db.session.identity_map.get(identity_key(CrimeCooldown, (player_id, crime_id)))
    if existing is not None:
        db.session.expire(existing)


def clear_cooldowns(player_id, crime_id=None):
    query = CrimeCooldown.query.filter_by(player_id=player_id)
    if crime_id is not None:
        query = query.filter_by(crime_id=crime_id)
    return query.delete(synchronize_session='fetch')
