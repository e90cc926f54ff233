from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging

from repairdesk.config.settings import env_defaults
from repairdesk.errors import StoreError, FormError

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _enable_sqlite_foreign_keys(engine):
    @event.listens_for(engine, 'connect')
    def _set_pragma(dbapi_connection, connection_record):  # type: ignore
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def _error_payload(status: int, title: str, detail: str):
    return {
        'error': {
            'status': status,
            'title': title,
            'detail': detail,
        }
    }, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config.update(env_defaults())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    logging.getLogger('repairdesk').setLevel(app.config['REPAIRDESK_LOG_LEVEL'])
    app.logger.setLevel(app.config['REPAIRDESK_LOG_LEVEL'])

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
    if db_engine.dialect.name == 'sqlite':
        _enable_sqlite_foreign_keys(db_engine)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.tickets import tkt_bp  # repair tickets
    from .routes.customers import cus_bp  # customer records
    from .routes.technicians import tech_bp  # technicians and workload
    from .routes.dashboard import dash_bp  # dashboard aggregates
    from .routes.reports import rpt_bp  # reports and export
    app.register_blueprint(tkt_bp, url_prefix='/tickets')
    app.register_blueprint(cus_bp, url_prefix='/customers')
    app.register_blueprint(tech_bp, url_prefix='/technicians')
    app.register_blueprint(dash_bp, url_prefix='/dashboard')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    from .services.repair_system import close_request_system

    @app.teardown_appcontext
    def release_session(exc):  # type: ignore
        close_request_system()
        SessionLocal.remove()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_payload(e.code, e.name, e.description)
        if isinstance(e, StoreError):
            if e.http_status >= 500:
                app.logger.error('Store failure during %s %s: %s', e.operation, e.entity, e.message)
            return _error_payload(e.http_status, e.title, e.message)
        if isinstance(e, FormError):
            return _error_payload(400, 'Bad Request', str(e))
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()


def remove_db_session():
    """Release the calling thread's scoped session (used by loader worker threads)."""
    if SessionLocal is not None:
        SessionLocal.remove()
