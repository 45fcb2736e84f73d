"""
Per-request service wiring for Flask routes.

Process-wide dependencies (chain client, session factory, Redis client) are
stored in app.config by init_dependencies(); request-scoped objects
(database session, services) live on flask.g and are torn down after each
request.

Usage:
    init_dependencies(app, chain=chain, session_factory=SessionLocal)

    @api_bp.route('/wallet/<address>')
    def get_wallet(address):
        wallet = get_wallet_service().get_by_address(address)
"""

import logging

from flask import current_app, g, jsonify

from ..chain.client import ChainClient
from ..consent.consent_service import ConsentQueryService
from ..gateway.student_data import StudentDataGateway
from ..wallets.wallet_service import WalletService

logger = logging.getLogger(__name__)


def get_db():
    """Get or create database session for request."""
    if 'db' not in g:
        g.db = current_app.config['SESSION_FACTORY']()
    return g.db


def get_redis():
    """Get Redis client from app config."""
    return current_app.config.get('REDIS_CLIENT')


def get_chain() -> ChainClient:
    """Shared chain adapter built at startup."""
    return current_app.config['CHAIN_CLIENT']


def get_consent_service() -> ConsentQueryService:
    """Get or create consent query service for request."""
    if 'consent_service' not in g:
        g.consent_service = ConsentQueryService(
            get_chain(),
            get_redis(),
            cache_ttl=current_app.config.get('CONSENT_LOG_CACHE_TTL'),
        )
    return g.consent_service


def get_wallet_service() -> WalletService:
    """Get or create wallet service for request."""
    if 'wallet_service' not in g:
        g.wallet_service = WalletService(
            get_db(),
            seed_demo_records=current_app.config.get('SEED_DEMO_RECORDS', False),
        )
    return g.wallet_service


def get_student_data_gateway() -> StudentDataGateway:
    return StudentDataGateway(get_db(), get_consent_service(), get_wallet_service())


def error_response(error: str, message: str, status: int):
    return jsonify({"error": error, "message": message}), status


def internal_error(e: Exception):
    """500 response; the exception text is only exposed in debug mode."""
    body = {"error": "Internal server error"}
    if current_app.config.get('DEBUG'):
        body["message"] = str(e)
    return jsonify(body), 500


def init_dependencies(app, chain: ChainClient, session_factory, redis_client=None):
    """
    Register process-wide dependencies and the request teardown.

    Args:
        app: Flask application instance
        chain: Shared chain adapter
        session_factory: Callable returning a new SQLAlchemy session
        redis_client: Redis client for history caching (optional)
    """
    app.config['CHAIN_CLIENT'] = chain
    app.config['SESSION_FACTORY'] = session_factory
    app.config['REDIS_CLIENT'] = redis_client

    @app.teardown_appcontext
    def cleanup_request_services(exception=None):
        db = g.pop('db', None)
        if db is not None:
            db.close()
        g.pop('consent_service', None)
        g.pop('wallet_service', None)

    logger.info("Request dependencies initialized")
