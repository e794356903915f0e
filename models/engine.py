"""Crime attempt resolution.

An attempt passes two gates before anything is rolled: the player's global
jail sentence, then the per-crime cooldown. Gated attempts change nothing.
Attempts that pass the gates roll once against the crime's success rate and
produce a single delta (counters, cash, xp, jail, cooldown entry, rank) that
commits as one unit while the player's lock is held.

Time and randomness are always supplied by the caller.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app

from models.constants import MAX_FAILURE_XP_RATIO
from models.cooldowns import remaining_seconds, cooldown_expiry, get_last_attempt, cooldown_map
from models.crime import Crime
from models.errors import PersistenceConflict
from models.loggers import crime_logger
from models.rank import evaluate_rank, load_rank_table
from models.store import player_transaction, load_player, load_crime, check_crime, commit_player_delta

MAX_CONFLICT_RETRIES = 1


@dataclass
class AttemptOutcome:
    crime_id: int
    message: str = ''

    kind = None
    success = False

    def to_dict(self):
        return {
            'outcome': self.kind,
            'success': self.success,
            'crime_id': self.crime_id,
            'reward': 0,
            'xp_gained': 0,
            'remaining_seconds': 0,
            'jail_until': None,
            'message': self.message,
        }


@dataclass
class Jailed(AttemptOutcome):
    remaining_seconds: int = 0
    jail_until: Optional[datetime] = None

    kind = 'jailed'

    def to_dict(self):
        data = super().to_dict()
        data['remaining_seconds'] = self.remaining_seconds
        data['jail_until'] = self.jail_until.isoformat() if self.jail_until else None
        return data


@dataclass
class OnCooldown(AttemptOutcome):
    remaining_seconds: int = 0

    kind = 'on_cooldown'

    def to_dict(self):
        data = super().to_dict()
        data['remaining_seconds'] = self.remaining_seconds
        return data


@dataclass
class Resolved(AttemptOutcome):
    xp_gained: int = 0
    counters: dict = field(default_factory=dict)
    rank: Optional[str] = None
    rank_changed: bool = False

    def to_dict(self):
        data = super().to_dict()
        data['xp_gained'] = self.xp_gained
        data['rank'] = self.rank
        data['rank_changed'] = self.rank_changed
        data.update(self.counters)
        return data


@dataclass
class Success(Resolved):
    reward: int = 0

    kind = 'success'
    success = True

    def to_dict(self):
        data = super().to_dict()
        data['reward'] = self.reward
        return data


@dataclass
class Failure(Resolved):
    jail_until: Optional[datetime] = None

    kind = 'failure'

    def to_dict(self):
        data = super().to_dict()
        data['jail_until'] = self.jail_until.isoformat() if self.jail_until else None
        return data


@dataclass
class CrimeDelta:
    """State change produced by an attempt that passed both gates."""
    crime_id: int
    attempted_at: datetime
    succeeded: bool
    money: int = 0
    xp: int = 0
    jail_until: Optional[datetime] = None
    rank: Optional[str] = None

    def apply_to(self, player):
        player.total_crimes += 1
        if self.succeeded:
            player.successful_crimes += 1
        else:
            player.unsuccessful_crimes += 1
            player.jail_until = self.jail_until
        player.money += self.money
        player.xp += self.xp
        player.rank = self.rank


def consolation_xp(crime, ratio):
    if not 0.0 <= ratio <= MAX_FAILURE_XP_RATIO:
        raise ValueError(f'failure xp ratio must be within [0, {MAX_FAILURE_XP_RATIO}], got {ratio}')
    return int(crime.xp_reward * ratio)


def resolve_attempt(player, crime, last_attempt, now, rng, rank_table, failure_xp_ratio=0.0):
    """Decide one attempt without touching storage.

    ``player`` only needs the jail, xp, money, rank and counter attributes.
    Returns ``(outcome, delta)``; ``delta`` is None when a gate blocked the
    attempt.
    """
    if player.jail_until is not None and player.jail_until > now:
        remaining = remaining_seconds(player.jail_until, now)
        mins, secs = divmod(remaining, 60)
        return Jailed(
            crime_id=crime.id,
            message=f"You are in jail for {mins}m {secs}s.",
            remaining_seconds=remaining,
            jail_until=player.jail_until,
        ), None

    if last_attempt is not None:
        available_at = cooldown_expiry(last_attempt, crime.cooldown_seconds)
        if available_at > now:
            remaining = remaining_seconds(available_at, now)
            return OnCooldown(
                crime_id=crime.id,
                message=f"Cooldown active. Please wait {remaining} seconds before trying '{crime.name}' again.",
                remaining_seconds=remaining,
            ), None

    succeeded = rng.random() < crime.success_rate

    if succeeded:
        reward = rng.randint(crime.min_reward, crime.max_reward)
        xp_gained = crime.xp_reward
        jail_until = None
    else:
        reward = 0
        xp_gained = consolation_xp(crime, failure_xp_ratio)
        jail_until = now + timedelta(seconds=crime.cooldown_seconds)

    new_rank = evaluate_rank(player.xp + xp_gained, rank_table)
    delta = CrimeDelta(
        crime_id=crime.id,
        attempted_at=now,
        succeeded=succeeded,
        money=reward,
        xp=xp_gained,
        jail_until=jail_until,
        rank=new_rank,
    )
    counters = {
        'total_crimes': player.total_crimes + 1,
        'successful_crimes': player.successful_crimes + (1 if succeeded else 0),
        'unsuccessful_crimes': player.unsuccessful_crimes + (0 if succeeded else 1),
    }
    rank_changed = new_rank != player.rank

    if succeeded:
        message = f"You pulled off '{crime.name}' and earned ${reward} and {xp_gained} XP!"
        outcome = Success(
            crime_id=crime.id, message=message, xp_gained=xp_gained,
            counters=counters, rank=new_rank, rank_changed=rank_changed, reward=reward,
        )
    else:
        message = f"You got caught attempting '{crime.name}' and are in jail for {crime.cooldown_seconds} seconds!"
        outcome = Failure(
            crime_id=crime.id, message=message, xp_gained=xp_gained,
            counters=counters, rank=new_rank, rank_changed=rank_changed, jail_until=jail_until,
        )
    if rank_changed:
        outcome.message += f" You are now a {new_rank}."
    return outcome, delta


def crime_rng():
    return current_app.extensions['crime_rng']


def _attempt_once(player_id, crime_id, now, rng, failure_xp_ratio):
    with player_transaction(player_id) as player:
        crime = load_crime(crime_id)
        last_attempt = get_last_attempt(player.id, crime.id)
        outcome, delta = resolve_attempt(
            player, crime, last_attempt, now, rng, load_rank_table(), failure_xp_ratio
        )
        if delta is not None:
            commit_player_delta(player, delta)
    return outcome


def attempt_crime(player_id, crime_id, now, rng=None, failure_xp_ratio=None):
    """Resolve one crime attempt for a player at time ``now`` and persist the result.

    Raises PlayerNotFound, CrimeNotFound, InvalidState, PersistenceConflict or
    PersistenceUnavailable. A version conflict is retried once.
    """
    if rng is None:
        rng = crime_rng()
    if failure_xp_ratio is None:
        failure_xp_ratio = current_app.config['CRIME_FAILURE_XP_RATIO']

    retries = 0
    while True:
        try:
            outcome = _attempt_once(player_id, crime_id, now, rng, failure_xp_ratio)
        except PersistenceConflict:
            if retries >= MAX_CONFLICT_RETRIES:
                crime_logger.error(f"Giving up on crime {crime_id} for player {player_id} after a repeated conflict")
                raise
            retries += 1
            crime_logger.warning(f"Conflict resolving crime {crime_id} for player {player_id}, retrying")
            continue
        crime_logger.info(f"Player {player_id} attempted crime {crime_id}: {outcome.kind}")
        return outcome


def crime_status(player_id, now):
    """Seconds left in jail and on each crime's cooldown. Read only.

    Raises InvalidState when any crime definition is corrupt.
    """
    player = load_player(player_id)
    last_attempts = cooldown_map(player.id)
    crimes = []
    for crime in Crime.query.order_by(Crime.id.asc()).all():
        check_crime(crime)
        last_attempt = last_attempts.get(crime.id)
        remaining = 0
        if last_attempt is not None:
            remaining = remaining_seconds(cooldown_expiry(last_attempt, crime.cooldown_seconds), now)
        crimes.append({'crime_id': crime.id, 'name': crime.name, 'seconds_remaining': remaining})
    return {
        'jailed': player.is_jailed(now),
        'jail_seconds_remaining': remaining_seconds(player.jail_until, now),
        'crimes': crimes,
    }


def new_crime_rng(seed=None):
    return random.Random(seed)
