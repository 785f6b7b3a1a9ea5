from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from datetime import timedelta
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _error_payload(status: int, title: str, detail: str, code: Optional[str] = None):
    body = {'status': status, 'title': title, 'detail': detail}
    if code:
        body['code'] = code
    return {'error': body}


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['AUTH_PROVIDER_URL'] = os.getenv('AUTH_PROVIDER_URL', '')
    app.config['AUTH_OAUTH_PROVIDERS'] = os.getenv('AUTH_OAUTH_PROVIDERS', '')
    app.config['ROUTE_SURFACE'] = os.getenv('ROUTE_SURFACE', 'main')
    app.config['ROUTE_GUARD_EXEMPT'] = ('/healthz', '/iam/*')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=1)

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    # Token problems use the same error shape as everything else
    @jwt.unauthorized_loader
    def missing_token(reason):
        return _error_payload(401, 'Unauthorized', reason, 'AUTH_MISSING_TOKEN'), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return _error_payload(401, 'Unauthorized', reason, 'AUTH_INVALID_TOKEN'), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return _error_payload(401, 'Unauthorized', 'Token has expired', 'AUTH_INVALID_TOKEN'), 401

    from .routes.iam import iam_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')

    from .routes.guard import register_route_guard
    register_route_guard(app)

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_payload(e.code, e.name, e.description, getattr(e, 'error_code', None)), e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    return app


def get_db():
    return SessionLocal()


def create_provider_handle(app):
    """Identity-provider handle bound to this app's database and settings."""
    from .services.identity_provider import IdentityProviderHandle, LocalIdentityProvider, ProviderSettings
    settings = ProviderSettings.from_mapping(app.config)
    return IdentityProviderHandle(lambda s: LocalIdentityProvider(app, get_db, s), settings)


def create_auth_store(app, **kwargs):
    from .services.auth_store import AuthStateStore
    from .services.profile_store import SqlProfileStore
    return AuthStateStore(create_provider_handle(app), SqlProfileStore(get_db), **kwargs)
