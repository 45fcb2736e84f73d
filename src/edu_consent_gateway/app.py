"""
Application factory for the student consent gateway.

Builds the Flask app, the shared chain adapter and the datastore session
factory, and registers the blueprints:
- /health
- /api/...            (wallets, student data, metadata)
- /api/blockchain/... (identity and consent views)

Usage:
    poetry run python -m edu_consent_gateway.app

Tests inject their own dependencies:
    app = create_app(config={"TESTING": True}, chain=fake_chain,
                     session_factory=TestSession)
"""

import logging
from typing import Optional

import redis
from flask import Flask, jsonify, request
from flask_cors import CORS

from .api import api_bp, blockchain_bp, health_bp, init_dependencies
from .chain.client import ChainClient
from .config import Config
from .database import SessionLocal, create_session_factory, get_database_url

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_redis_client(url: str):
    """Redis client for the history cache, or None when not configured."""
    if not url:
        return None
    try:
        return redis.Redis.from_url(url, decode_responses=True)
    except Exception as e:
        logger.warning(f"Redis unavailable, history cache disabled: {e}")
        return None


def build_session_factory(settings):
    """Shared SessionLocal unless the settings point at another database."""
    url = get_database_url(settings)
    if url == get_database_url():
        return SessionLocal
    return create_session_factory(url)


def create_app(
    config: Optional[dict] = None,
    chain: Optional[ChainClient] = None,
    session_factory=None,
    redis_client=None,
) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Overrides applied on top of Config
        chain: Chain adapter (built from config when omitted)
        session_factory: SQLAlchemy session factory (built from the DATABASE_URL
            and DB_* settings when omitted)
        redis_client: Redis client (built from REDIS_URL when omitted)

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    CORS(app, origins=app.config.get("CORS_ORIGINS") or "*")

    if chain is None:
        chain = ChainClient.from_config(app.config)
    if session_factory is None:
        session_factory = build_session_factory(app.config)
    if redis_client is None:
        redis_client = build_redis_client(app.config.get("REDIS_URL"))

    init_dependencies(app, chain=chain, session_factory=session_factory, redis_client=redis_client)

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(blockchain_bp, url_prefix='/api/blockchain')

    @app.before_request
    def log_request():
        logger.info(f"{request.method} {request.path}")

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "error": "Not found",
            "message": f"Route {request.method} {request.path} not found"
        }), 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f"Unhandled error: {e}")
        body = {"error": "Internal server error"}
        if app.config.get("DEBUG"):
            body["message"] = str(e)
        return jsonify(body), 500

    return app


if __name__ == "__main__":
    application = create_app()
    application.run(
        host=application.config["HOST"],
        port=application.config["PORT"],
        debug=application.config["DEBUG"],
    )
