from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from extensions import db


def isoformat(value):
    return value.isoformat() if value else None


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(32), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    money = db.Column(db.Integer, default=0, nullable=False)
    bank_balance = db.Column(db.Integer, default=0, nullable=False)
    xp = db.Column(db.Integer, default=0, nullable=False)
    rank = db.Column(db.String(64), nullable=True)
    total_crimes = db.Column(db.Integer, default=0, nullable=False)
    successful_crimes = db.Column(db.Integer, default=0, nullable=False)
    unsuccessful_crimes = db.Column(db.Integer, default=0, nullable=False)
    jail_until = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False)

    cooldowns = db.relationship('CrimeCooldown', backref='player', lazy=True, cascade='all, delete-orphan')

    __mapper_args__ = {'version_id_col': version}

    def set_password(self, password):
        self.password_hash = generate_password_hash(
            password,
            method='pbkdf2:sha256',
            salt_length=16
        )

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_jailed(self, now):
        return self.jail_until is not None and self.jail_until > now

    def counters(self):
        return {
            'total_crimes': self.total_crimes,
            'successful_crimes': self.successful_crimes,
            'unsuccessful_crimes': self.unsuccessful_crimes,
        }

    def to_dict(self):
        data = {
            'id': self.id,
            'username': self.username,
            'money': self.money,
            'bank_balance': self.bank_balance,
            'xp': self.xp,
            'rank': self.rank,
            'jail_until': isoformat(self.jail_until),
            'crime_cooldowns': {
                str(c.crime_id): isoformat(c.last_attempt)
                for c in sorted(self.cooldowns, key=lambda c: c.crime_id)
            },
        }
        data.update(self.counters())
        return data

    def __repr__(self):
        return f'<Player {self.username}>'


class CrimeCooldown(db.Model):
    """Last attempt time of one crime by one player; absent row means never attempted."""
    __tablename__ = 'crime_cooldown'
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), primary_key=True)
    crime_id = db.Column(db.Integer, db.ForeignKey('crime.id', ondelete='CASCADE'), primary_key=True)
    last_attempt = db.Column(db.DateTime, nullable=True)
