from datetime import datetime
from extensions import db
from models.errors import InsufficientFunds, ItemNotFound
from models.store import player_transaction


class Car(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    price = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'price': self.price}


class PlayerCar(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False)
    car_id = db.Column(db.Integer, db.ForeignKey('car.id', ondelete='CASCADE'), nullable=False)
    acquired_at = db.Column(db.DateTime, default=datetime.utcnow)
    car = db.relationship('Car')


def owned_cars(player_id):
    rows = PlayerCar.query.filter_by(player_id=player_id).order_by(PlayerCar.id.asc()).all()
    return [row.car for row in rows]


def buy_car(player_id, car_id):
    car = db.session.get(Car, car_id)
    if not car:
        raise ItemNotFound("Car not found")
    with player_transaction(player_id) as player:
        if player.money < car.price:
            raise InsufficientFunds(f"You need ${car.price} to buy a {car.name}.")
        player.money -= car.price
        db.session.add(PlayerCar(player_id=player.id, car_id=car.id))
    return owned_cars(player_id)
