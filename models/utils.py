from extensions import db
from models.constants import (
    STARTER_CRIMES, STARTER_CARS, STARTER_PROPERTIES, RANKS, LEADERBOARD_FIELDS, LEADERBOARD_MAX
)
from models.crime import Crime
from models.garage import Car
from models.player import Player
from models.properties import Property
from models.rank import Rank, invalidate_rank_table


def seed_crimes():
    if Crime.query.first():
        return
    for crime_def in STARTER_CRIMES:
        db.session.add(Crime(**crime_def))
    db.session.commit()


def seed_cars():
    if Car.query.first():
        return
    for car_def in STARTER_CARS:
        db.session.add(Car(**car_def))
    db.session.commit()


def seed_properties():
    if Property.query.first():
        return
    for prop_def in STARTER_PROPERTIES:
        db.session.add(Property(**prop_def))
    db.session.commit()


def seed_ranks():
    if Rank.query.first():
        return
    for label, min_xp in RANKS:
        db.session.add(Rank(label=label, min_xp=min_xp))
    db.session.commit()
    invalidate_rank_table()


def seed_catalog():
    seed_ranks()
    seed_crimes()
    seed_cars()
    seed_properties()


def leaderboard(by='xp', limit=10):
    if by not in LEADERBOARD_FIELDS:
        raise ValueError(f"Unknown leaderboard field {by!r}")
    limit = max(1, min(limit, LEADERBOARD_MAX))
    column = getattr(Player, by)
    players = Player.query.order_by(column.desc(), Player.id.asc()).limit(limit).all()
    return [
        {'position': i, 'id': p.id, 'username': p.username, 'rank': p.rank, by: getattr(p, by)}
        for i, p in enumerate(players, start=1)
    ]
