from datetime import datetime
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_user, logout_user, login_required, current_user
from extensions import db, limiter
from models.auth import register_player, authenticate
from models.bank import deposit, withdraw, recent_transactions
from models.crime import Crime
from models.engine import attempt_crime, crime_status
from models.errors import PlayerNotFound
from models.forms import (
    RegisterForm, LoginForm, CommitCrimeForm, BankForm, BuyCarForm, BuyPropertyForm
)
from models.garage import Car, buy_car, owned_cars
from models.player import Player
from models.properties import Property, buy_property, collect_income, owned_properties
from models.utils import leaderboard as build_leaderboard

api_bp = Blueprint('api', __name__)


def invalid(form):
    return jsonify(error="Invalid request", fields=form.errors), 400


def get_player_or_404(player_id):
    player = db.session.get(Player, player_id)
    if player is None:
        raise PlayerNotFound()
    return player


def crime_rate_limit():
    return current_app.config['CRIME_RATE_LIMIT']


@api_bp.route('/')
def home():
    return "Mafia Game API running. Try /crimes, /cars, /properties"


# --- Auth ---

@api_bp.route('/register', methods=['POST'])
def register():
    form = RegisterForm()
    if not form.validate_on_submit():
        return invalid(form)
    player = register_player(form.username.data.strip(), form.password.data)
    login_user(player)
    return jsonify(success=True, userId=player.id, user=player.to_dict()), 201


@api_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return invalid(form)
    player = authenticate(form.username.data.strip(), form.password.data)
    login_user(player)
    return jsonify(success=True, user=player.to_dict())


@api_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify(success=True)


@api_bp.route('/players/<int:player_id>')
def player_profile(player_id):
    return jsonify(get_player_or_404(player_id).to_dict())


# --- Crimes ---

@api_bp.route('/crimes')
def crimes():
    return jsonify([c.to_dict() for c in Crime.query.order_by(Crime.id.asc()).all()])


@api_bp.route('/commit-crime', methods=['POST'])
@limiter.limit(crime_rate_limit)
@login_required
def commit_crime():
    form = CommitCrimeForm()
    if not form.validate_on_submit():
        return invalid(form)
    outcome = attempt_crime(current_user.id, form.crime_id.data, datetime.utcnow())
    response = outcome.to_dict()
    response['user'] = get_player_or_404(current_user.id).to_dict()
    return jsonify(response)


@api_bp.route('/players/<int:player_id>/crime-status')
def player_crime_status(player_id):
    return jsonify(crime_status(player_id, datetime.utcnow()))


# --- Bank ---

@api_bp.route('/bank/deposit', methods=['POST'])
@login_required
def bank_deposit():
    form = BankForm()
    if not form.validate_on_submit():
        return invalid(form)
    deposit(current_user.id, form.amount.data)
    return jsonify(get_player_or_404(current_user.id).to_dict())


@api_bp.route('/bank/withdraw', methods=['POST'])
@login_required
def bank_withdraw():
    form = BankForm()
    if not form.validate_on_submit():
        return invalid(form)
    withdraw(current_user.id, form.amount.data)
    return jsonify(get_player_or_404(current_user.id).to_dict())


@api_bp.route('/bank/transactions')
@login_required
def bank_transactions():
    return jsonify([t.to_dict() for t in recent_transactions(current_user.id)])


# --- Garage ---

@api_bp.route('/cars')
def cars():
    return jsonify([c.to_dict() for c in Car.query.order_by(Car.price.asc()).all()])


@api_bp.route('/garage/buy', methods=['POST'])
@login_required
def garage_buy():
    form = BuyCarForm()
    if not form.validate_on_submit():
        return invalid(form)
    owned = buy_car(current_user.id, form.car_id.data)
    return jsonify([c.to_dict() for c in owned])


@api_bp.route('/players/<int:player_id>/garage')
def garage(player_id):
    get_player_or_404(player_id)
    return jsonify([c.to_dict() for c in owned_cars(player_id)])


# --- Properties ---

@api_bp.route('/properties')
def properties():
    return jsonify([p.to_dict() for p in Property.query.order_by(Property.price.asc()).all()])


@api_bp.route('/properties/buy', methods=['POST'])
@login_required
def properties_buy():
    form = BuyPropertyForm()
    if not form.validate_on_submit():
        return invalid(form)
    owned = buy_property(current_user.id, form.property_id.data, datetime.utcnow())
    return jsonify([p.to_dict() for p in owned])


@api_bp.route('/properties/collect', methods=['POST'])
@login_required
def properties_collect():
    collected = collect_income(current_user.id, datetime.utcnow())
    player = get_player_or_404(current_user.id)
    return jsonify(collected=collected, user=player.to_dict(),
                   properties=[p.to_dict() for p in owned_properties(player.id)])


# --- Leaderboard ---

@api_bp.route('/leaderboard')
def leaderboard():
    by = request.args.get('by', 'xp')
    limit = request.args.get('limit', 10, type=int)
    try:
        entries = build_leaderboard(by, limit)
    except ValueError as e:
        return jsonify(error=str(e)), 400
    return jsonify(by=by, entries=entries)
