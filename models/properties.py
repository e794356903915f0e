from datetime import timedelta
from extensions import db
from models.errors import InsufficientFunds, ItemNotFound
from models.store import player_transaction


class Property(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    price = db.Column(db.Integer, nullable=False)
    income_per_hour = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'income_per_hour': self.income_per_hour,
        }


class PlayerProperty(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id', ondelete='CASCADE'), nullable=False)
    last_collected = db.Column(db.DateTime, nullable=False)
    property = db.relationship('Property')

    def to_dict(self):
        data = self.property.to_dict()
        data['owned_id'] = self.id
        data['last_collected'] = self.last_collected.isoformat()
        return data


def owned_properties(player_id):
    return PlayerProperty.query.filter_by(player_id=player_id).order_by(PlayerProperty.id.asc()).all()


def buy_property(player_id, property_id, now):
    prop = db.session.get(Property, property_id)
    if not prop:
        raise ItemNotFound("Property not found")
    with player_transaction(player_id) as player:
        if player.money < prop.price:
            raise InsufficientFunds(f"You need ${prop.price} to buy the {prop.name}.")
        player.money -= prop.price
        db.session.add(PlayerProperty(player_id=player.id, property_id=prop.id, last_collected=now))
    return owned_properties(player_id)


def collect_income(player_id, now):
    """Pay out every whole hour of production since the last collection.

    Partial hours carry over to the next collection.
    """
    collected = 0
    with player_transaction(player_id) as player:
        for owned in owned_properties(player.id):
            hours = int((now - owned.last_collected).total_seconds() // 3600)
            if hours <= 0:
                continue
            collected += hours * owned.property.income_per_hour
            owned.last_collected += timedelta(hours=hours)
        player.money += collected
    return collected
