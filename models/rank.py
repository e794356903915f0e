from bisect import bisect_right
from flask import current_app
from extensions import db
from models.errors import InvalidState
from models.loggers import crime_logger


class Rank(db.Model):
    __tablename__ = 'rank_threshold'
    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(64), unique=True, nullable=False)
    min_xp = db.Column(db.Integer, unique=True, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'label': self.label, 'min_xp': self.min_xp}


class RankTable:
    """Ordered (label, min_xp) thresholds.

    The first threshold is 0 and thresholds strictly increase, so every xp
    value maps to exactly one label.
    """

    def __init__(self, entries):
        entries = [(label, int(min_xp)) for label, min_xp in entries]
        if not entries:
            raise ValueError('rank table is empty')
        if entries[0][1] != 0:
            raise ValueError('first rank threshold must be 0')
        for (_, lower), (label, upper) in zip(entries, entries[1:]):
            if upper <= lower:
                raise ValueError(f'rank threshold for {label!r} is not above {lower}')
        self.labels = [label for label, _ in entries]
        self.thresholds = [min_xp for _, min_xp in entries]

    @classmethod
    def from_unordered(cls, entries):
        return cls(sorted(entries, key=lambda entry: entry[1]))

    def __iter__(self):
        return iter(zip(self.labels, self.thresholds))

    def __len__(self):
        return len(self.labels)


def evaluate_rank(xp, rank_table):
    """Label of the highest threshold not exceeding ``xp``.

    Reaching a threshold exactly counts as having the rank.
    """
    index = bisect_right(rank_table.thresholds, max(xp, 0)) - 1
    return rank_table.labels[max(index, 0)]


def load_rank_table():
    """Rank table of the current app, cached until an admin edits it."""
    cached = current_app.extensions.get('rank_table')
    if cached is not None:
        return cached
    rows = Rank.query.order_by(Rank.min_xp.asc()).all()
    try:
        table = RankTable([(r.label, r.min_xp) for r in rows])
    except ValueError as e:
        crime_logger.error(f"Rank table is malformed: {e}")
        raise InvalidState(f"Rank table is malformed: {e}") from e
    current_app.extensions['rank_table'] = table
    return table


def invalidate_rank_table():
    current_app.extensions.pop('rank_table', None)
