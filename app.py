# -*- coding: utf-8 -*-
from flask import Flask, jsonify
import logging, os
from extensions import db, login_manager, migrate, limiter

from models.constants import MAX_FAILURE_XP_RATIO
from models.errors import GameError
from models.loggers import configure_loggers
from models.store import PlayerLocks


def load_config(app, overrides=None):
    app.config['SECRET_KEY'] = os.environ.get('FLASK_SECRET_KEY', os.urandom(32))
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///mafia.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['RATELIMIT_STORAGE_URI'] = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    app.config['RATELIMIT_HEADERS_ENABLED'] = True
    app.config['CRIME_RATE_LIMIT'] = os.environ.get('CRIME_RATE_LIMIT', '60 per minute')
    app.config['CRIME_FAILURE_XP_RATIO'] = float(os.environ.get('CRIME_FAILURE_XP_RATIO', '0.0'))
    seed = os.environ.get('CRIME_RNG_SEED')
    app.config['CRIME_RNG_SEED'] = int(seed) if seed else None
    app.config['ADMIN_LOG_FILE'] = os.environ.get('ADMIN_LOG_FILE', 'admin_actions.log')
    app.config['SEED_DATA'] = True
    if overrides:
        app.config.update(overrides)

    ratio = app.config['CRIME_FAILURE_XP_RATIO']
    if not 0.0 <= ratio <= MAX_FAILURE_XP_RATIO:
        raise ValueError(f"CRIME_FAILURE_XP_RATIO must be within [0, {MAX_FAILURE_XP_RATIO}], got {ratio}")


def register_error_handlers(app):
    @app.errorhandler(GameError)
    def game_error(error):
        return jsonify(error=error.message), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify(error="Not found"), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(error="Method not allowed"), 405

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify(error="Too many requests, please slow down!"), 429

    @app.errorhandler(500)
    def internal_error(error):
        logging.exception("Unhandled error")
        return jsonify(error="Internal server error"), 500


def create_app(overrides=None):
    app = Flask(__name__)
    load_config(app, overrides)
    configure_loggers(app)

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    from models.engine import new_crime_rng
    app.extensions['player_locks'] = PlayerLocks()
    app.extensions['crime_rng'] = new_crime_rng(app.config['CRIME_RNG_SEED'])

    from models.api import api_bp
    from models.admin import admin_bp
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)

    with app.app_context():
        db.create_all()
        if app.config['SEED_DATA']:
            from models.utils import seed_catalog
            seed_catalog()

    return app


if __name__ == '__main__':
    create_app().run(debug=True)
