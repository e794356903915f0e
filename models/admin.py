from functools import wraps
from flask import Blueprint, jsonify
from flask_login import current_user
from sqlalchemy.exc import IntegrityError
from extensions import db
from models.cooldowns import clear_cooldowns
from models.crime import Crime
from models.errors import AdminRequired, CrimeNotFound, ItemNotFound
from models.forms import CrimeForm, EditCrimeForm, RankForm, ResetCrimeCooldownForm, EditPlayerForm
from models.loggers import admin_logger
from models.player import Player
from models.rank import Rank, RankTable, evaluate_rank, load_rank_table, invalidate_rank_table
from models.store import player_transaction

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

CRIME_FIELDS = ('name', 'min_reward', 'max_reward', 'success_rate', 'cooldown_seconds', 'xp_reward')


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or not getattr(current_user, 'is_admin', False):
            raise AdminRequired()
        return f(*args, **kwargs)
    return decorated_function


def invalid(form):
    return jsonify(error="Invalid request", fields=form.errors), 400


# --- Crimes ---

@admin_bp.route('/crimes', methods=['POST'])
@admin_required
def admin_create_crime():
    form = CrimeForm()
    if not form.validate_on_submit():
        return invalid(form)
    crime = Crime(**{field: getattr(form, field).data for field in CRIME_FIELDS})
    db.session.add(crime)
    db.session.commit()
    admin_logger.info(f"Admin {current_user.username} created crime {crime.name} ({crime.to_dict()})")
    return jsonify(crime.to_dict()), 201


@admin_bp.route('/crimes/<int:crime_id>', methods=['PATCH'])
@admin_required
def admin_edit_crime(crime_id):
    crime = db.session.get(Crime, crime_id)
    if crime is None:
        raise CrimeNotFound()
    form = EditCrimeForm()
    if not form.validate_on_submit():
        return invalid(form)
    for field in CRIME_FIELDS:
        value = getattr(form, field).data
        if value is None or value == '':
            continue
        setattr(crime, field, value.strip() if field == 'name' else value)
    problems = crime.problems()
    if problems:
        db.session.rollback()
        return jsonify(error="Invalid crime", problems=problems), 400
    db.session.commit()
    admin_logger.info(f"Admin {current_user.username} updated crime {crime.id} ({crime.to_dict()})")
    return jsonify(crime.to_dict())


# --- Ranks ---

def recompute_player_ranks():
    """Re-derive every stored rank label from xp against the current table."""
    table = load_rank_table()
    changed = 0
    for player_id, in db.session.query(Player.id).all():
        with player_transaction(player_id) as player:
            label = evaluate_rank(player.xp, table)
            if player.rank != label:
                player.rank = label
                changed += 1
    return changed


def check_rank_table(entries):
    try:
        RankTable.from_unordered(entries)
    except ValueError as e:
        return str(e)
    return None


@admin_bp.route('/ranks', methods=['POST'])
@admin_required
def admin_set_rank():
    """Add a rank or move an existing label to a new threshold."""
    form = RankForm()
    if not form.validate_on_submit():
        return invalid(form)
    label = form.label.data.strip()
    ranks = Rank.query.all()
    entries = [(r.label, r.min_xp) for r in ranks if r.label != label]
    entries.append((label, form.min_xp.data))
    problem = check_rank_table(entries)
    if problem:
        return jsonify(error=problem), 400

    rank = next((r for r in ranks if r.label == label), None)
    if rank is None:
        rank = Rank(label=label)
        db.session.add(rank)
    rank.min_xp = form.min_xp.data
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Rank threshold already in use"), 400
    invalidate_rank_table()
    changed = recompute_player_ranks()
    admin_logger.info(f"Admin {current_user.username} set rank {label} at {rank.min_xp} XP, {changed} players relabelled")
    return jsonify([r.to_dict() for r in Rank.query.order_by(Rank.min_xp.asc()).all()])


@admin_bp.route('/ranks/<int:rank_id>', methods=['DELETE'])
@admin_required
def admin_delete_rank(rank_id):
    rank = db.session.get(Rank, rank_id)
    if rank is None:
        raise ItemNotFound("Rank not found")
    entries = [(r.label, r.min_xp) for r in Rank.query.all() if r.id != rank.id]
    problem = check_rank_table(entries)
    if problem:
        return jsonify(error=problem), 400
    label = rank.label
    db.session.delete(rank)
    db.session.commit()
    invalidate_rank_table()
    changed = recompute_player_ranks()
    admin_logger.info(f"Admin {current_user.username} deleted rank {label}, {changed} players relabelled")
    return jsonify([r.to_dict() for r in Rank.query.order_by(Rank.min_xp.asc()).all()])


@admin_bp.route('/ranks/recompute', methods=['POST'])
@admin_required
def admin_recompute_ranks():
    changed = recompute_player_ranks()
    admin_logger.info(f"Admin {current_user.username} recomputed ranks, {changed} changed")
    return jsonify(changed=changed)


# --- Players ---

@admin_bp.route('/players/<int:player_id>/release', methods=['POST'])
@admin_required
def admin_release_player(player_id):
    with player_transaction(player_id) as player:
        player.jail_until = None
    admin_logger.info(f"Admin {current_user.username} released {player.username} from jail")
    return jsonify(player.to_dict())


@admin_bp.route('/players/<int:player_id>/reset-cooldown', methods=['POST'])
@admin_required
def admin_reset_crime_cooldown(player_id):
    form = ResetCrimeCooldownForm()
    if not form.validate_on_submit():
        return invalid(form)
    with player_transaction(player_id) as player:
        removed = clear_cooldowns(player.id, form.crime_id.data)
    scope = f"crime {form.crime_id.data}" if form.crime_id.data else "all crimes"
    admin_logger.info(f"Admin {current_user.username} reset cooldown for {player.username} on {scope}")
    return jsonify(removed=removed, user=player.to_dict())


@admin_bp.route('/players/<int:player_id>', methods=['PATCH'])
@admin_required
def admin_edit_player(player_id):
    form = EditPlayerForm()
    if not form.validate_on_submit():
        return invalid(form)
    table = load_rank_table()
    with player_transaction(player_id, expected_version=form.version.data) as player:
        for field in ('money', 'bank_balance', 'xp'):
            value = getattr(form, field).data
            if value is not None:
                setattr(player, field, value)
        player.rank = evaluate_rank(player.xp, table)
    admin_logger.info(
        f"Admin {current_user.username} updated {player.username}: "
        f"money={player.money} bank={player.bank_balance} xp={player.xp}"
    )
    return jsonify(player.to_dict())
