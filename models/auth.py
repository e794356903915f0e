from sqlalchemy.exc import IntegrityError
from extensions import db, login_manager
from models.player import Player
from models.rank import evaluate_rank, load_rank_table
from models.errors import UsernameTaken, InvalidCredentials, LoginRequired


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(Player, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    raise LoginRequired()


def register_player(username, password, is_admin=False):
    if Player.query.filter_by(username=username).first():
        raise UsernameTaken()
    player = Player(username=username, is_admin=is_admin)
    player.set_password(password)
    player.rank = evaluate_rank(0, load_rank_table())
    db.session.add(player)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise UsernameTaken() from e
    return player


def authenticate(username, password):
    player = Player.query.filter_by(username=username).first()
    if not player or not player.check_password(password):
        raise InvalidCredentials()
    return player
