import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_mail import Mail
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from config import Config

# Use PyMySQL in place of MySQLdb
import pymysql
pymysql.install_as_MySQLdb()

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
mail = Mail()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Unauthorized', 'message': 'Authentication required'}), 401

    with app.app_context():
        # Import models and routes here to register with the app
        from hallmark import models  # noqa: F401
        from hallmark.routes import (
            main, auth, schools, admins, teachers, students, parents, classes,
            subjects, lessons, attendance, terms, payments, gradings, notices,
            news, gallery, stats, notifications,
        )

        for module in (main, auth, schools, admins, teachers, students, parents,
                       classes, subjects, lessons, attendance, terms, payments,
                       gradings, notices, news, gallery, stats, notifications):
            app.register_blueprint(module.bp)
        app.register_blueprint(notices.announcements_bp)
        app.register_blueprint(payments.setups_bp)
        app.register_blueprint(gradings.policies_bp)

        # Create all database tables (if not already created)
        db.create_all()

        register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Register global JSON error handlers"""

    @app.errorhandler(ValidationError)
    def validation_error(error):
        details = [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in error.errors()
        ]
        return jsonify({'error': 'Validation failed', 'message': 'Invalid request body', 'details': details}), 400

    @app.errorhandler(IntegrityError)
    def integrity_error(error):
        db.session.rollback()
        app.logger.warning(f'Integrity error: {error.orig}')
        return jsonify({'error': 'Conflict', 'message': 'Record conflicts with an existing record'}), 409

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.name, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        app.logger.exception(f'Unhandled exception: {error}')
        db.session.rollback()
        return jsonify({'error': 'Server', 'message': 'Internal server error'}), 500
