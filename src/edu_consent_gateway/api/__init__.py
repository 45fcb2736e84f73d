"""HTTP surface: Flask blueprints and per-request wiring."""

from .blockchain_routes import blockchain_bp
from .dependencies import init_dependencies
from .routes import api_bp, health_bp

__all__ = [
    "api_bp",
    "blockchain_bp",
    "health_bp",
    "init_dependencies",
]
