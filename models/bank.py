from extensions import db
from datetime import datetime
from models.errors import InsufficientFunds
from models.store import player_transaction


class BankTransaction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False)
    type = db.Column(db.String(20))  # deposit, withdraw
    amount = db.Column(db.Integer)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)
    player = db.relationship('Player', backref=db.backref('transactions', cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'amount': self.amount,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }


def deposit(player_id, amount):
    with player_transaction(player_id) as player:
        if player.money < amount:
            raise InsufficientFunds("Not enough cash on hand.")
        player.money -= amount
        player.bank_balance += amount
        db.session.add(BankTransaction(player_id=player.id, type='deposit', amount=amount))
    return player


def withdraw(player_id, amount):
    with player_transaction(player_id) as player:
        if player.bank_balance < amount:
            raise InsufficientFunds("Not enough money in the bank.")
        player.bank_balance -= amount
        player.money += amount
        db.session.add(BankTransaction(player_id=player.id, type='withdraw', amount=amount))
    return player


def recent_transactions(player_id, limit=20):
    return (BankTransaction.query
            .filter_by(player_id=player_id)
            .order_by(BankTransaction.timestamp.desc(), BankTransaction.id.desc())
            .limit(limit)
            .all())
