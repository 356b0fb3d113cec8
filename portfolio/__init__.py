import os
from datetime import timedelta
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate, upgrade
from dotenv import load_dotenv

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_overrides=None, storage=None):
    """Application factory pattern.

    ``storage`` replaces the R2 storage service (used by the tests).
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Session configuration - 30 day persistent sessions
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)
    app.config['SESSION_COOKIE_SECURE'] = os.environ.get('PRODUCTION') is not None  # HTTPS only in production
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

    # Object storage (Cloudflare R2, S3 compatible)
    app.config['R2_ACCOUNT_ID'] = os.environ.get('R2_ACCOUNT_ID')
    app.config['R2_ACCESS_KEY_ID'] = os.environ.get('R2_ACCESS_KEY_ID')
    app.config['R2_SECRET_ACCESS_KEY'] = os.environ.get('R2_SECRET_ACCESS_KEY')
    app.config['R2_ENDPOINT_URL'] = os.environ.get('R2_ENDPOINT_URL')
    app.config['R2_PHOTOS_BUCKET'] = os.environ.get('R2_PHOTOS_BUCKET', 'photos')
    app.config['R2_VIDEOS_BUCKET'] = os.environ.get('R2_VIDEOS_BUCKET', 'videos')
    app.config['R2_PHOTOS_PUBLIC_DOMAIN'] = os.environ.get('R2_PHOTOS_PUBLIC_DOMAIN')
    app.config['R2_VIDEOS_PUBLIC_DOMAIN'] = os.environ.get('R2_VIDEOS_PUBLIC_DOMAIN')

    # Contact form email (Brevo)
    app.config['CONTACT_RECIPIENT_EMAIL'] = os.environ.get('CONTACT_RECIPIENT_EMAIL')
    app.config['CONTACT_SENDER_EMAIL'] = os.environ.get('CONTACT_SENDER_EMAIL', 'noreply@example.com')

    # Dashboard upload/delete batches
    app.config['UPLOAD_PROGRESS_MODE'] = os.environ.get('UPLOAD_PROGRESS_MODE', 'simulated')  # simulated, measured
    app.config['PROGRESS_RESET_SECONDS'] = float(os.environ.get('PROGRESS_RESET_SECONDS', '3'))
    app.config['UPLOAD_WORKERS'] = int(os.environ.get('UPLOAD_WORKERS', '4'))
    app.config['RUN_BATCHES_INLINE'] = False

    if config_overrides:
        app.config.update(config_overrides)

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # Media services, one set per application
    from portfolio.routes.auth import get_current_user
    from portfolio.services.storage_service import StorageService
    from portfolio.services.media_store import MediaStore
    from portfolio.services.video_service import VideoLibrary
    from portfolio.services.upload_service import UploadService
    from portfolio.services.batch_jobs import ProgressRegistry
    from portfolio.services.gallery import HomeGrid

    if storage is None:
        storage = StorageService.from_config(app.config, logger=app.logger)
    store = MediaStore(storage, get_current_user, photos_bucket=app.config['R2_PHOTOS_BUCKET'])
    videos = VideoLibrary(storage, store, videos_bucket=app.config['R2_VIDEOS_BUCKET'])
    app.extensions['storage_service'] = storage
    app.extensions['media_store'] = store
    app.extensions['video_library'] = videos
    app.extensions['upload_service'] = UploadService(store, videos)
    app.extensions['progress_registry'] = ProgressRegistry()
    app.extensions['home_grid'] = HomeGrid(store)

    # Register blueprints
    from portfolio.routes.main import main_bp
    from portfolio.routes.auth import auth_bp
    from portfolio.routes.dashboard import dashboard_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)

    # Import models so they're known to Flask-Migrate
    from portfolio import models

    from portfolio.seed import register_commands
    register_commands(app)

    with app.app_context():
        if os.environ.get('PRODUCTION'):
            # Auto-run migrations in production
            upgrade()
        elif db.engine.url.get_backend_name() == 'sqlite':
            db.create_all()

    return app
