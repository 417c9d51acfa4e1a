# beneficios/__init__.py

from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from .config import Config
from .logging_config import setup_logging

db = SQLAlchemy()
migrate = Migrate()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(level=app.config['LOG_LEVEL'], json_format=app.config.get('LOG_JSON', False))

    db.init_app(app)
    migrate.init_app(app, db)

    # Modelos precisam estar importados antes de create_all / migrações
    from . import models, models_vouchers  # noqa: F401

    from .errors import register_error_handlers
    register_error_handlers(app)

    # --- Registrar Blueprints ---
    from . import employees
    app.register_blueprint(employees.bp)

    from .vouchers import market_routes, meal_routes
    app.register_blueprint(market_routes.bp)
    app.register_blueprint(meal_routes.bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get('Origin')
        allowed = app.config['CORS_ORIGINS']
        if '*' in allowed:
            response.headers['Access-Control-Allow-Origin'] = '*'
        elif origin and origin in allowed:
            response.headers['Access-Control-Allow-Origin'] = origin
            response.headers['Vary'] = 'Origin'
        else:
            return response
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        return response

    @app.route('/health')
    def health():
        return jsonify({'ok': True})

    app.logger.info(f'Aplicação iniciada com {len(list(app.url_map.iter_rules()))} rotas registradas')

    return app
