import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate, upgrade
from dotenv import load_dotenv

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

def create_app(test_config=None):
    """Application factory pattern."""
    app = Flask(__name__)

    # Configuration
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Identity is verified by the external provider; the gateway forwards it in these headers
    app.config['IDENTITY_HEADER'] = os.environ.get('IDENTITY_HEADER', 'X-Identity-Id')
    app.config['IDENTITY_EMAIL_HEADER'] = os.environ.get('IDENTITY_EMAIL_HEADER', 'X-Identity-Email')
    app.config['IDENTITY_NAME_HEADER'] = os.environ.get('IDENTITY_NAME_HEADER', 'X-Identity-Name')

    # Local development fallback identity (only honored in debug mode)
    app.config['DEV_IDENTITY'] = os.environ.get('DEV_IDENTITY')

    # Bootstrap admins by email (comma separated)
    app.config['ADMIN_EMAILS'] = [
        email.strip().lower()
        for email in os.environ.get('ADMIN_EMAILS', '').split(',')
        if email.strip()
    ]

    # Create tables on startup for first runs without migrations
    app.config['AUTO_INIT_DB'] = bool(int(os.environ.get('AUTO_INIT_DB', '0')))

    if test_config:
        app.config.update(test_config)

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    from masjid.routes.main import main_bp
    from masjid.routes.api import api_bp
    from masjid.routes.admin import admin_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)

    # Import models so they're known to Flask-Migrate
    from masjid import models

    if app.config['AUTO_INIT_DB']:
        with app.app_context():
            db.create_all()

    # Auto-run migrations in production (Railway)
    if os.environ.get('RAILWAY_ENVIRONMENT') and not app.config.get('TESTING'):
        with app.app_context():
            upgrade()

    return app
