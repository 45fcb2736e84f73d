"""
Database module for the student consent gateway.

This module provides:
- SQLAlchemy ORM models (Wallet, Course, Grade, Certificate)
- Engine/session helpers
- Database initialization tools (see init_db)

Usage:
    from edu_consent_gateway.database import Wallet, get_db

    # Get database session
    db = next(get_db())

    # Look up a registration
    wallet = db.query(Wallet).filter_by(cid=cid).first()
"""

from .models import (
    # Base class
    Base,

    # Models
    Wallet,
    Course,
    Grade,
    Certificate,

    # Database utilities
    engine,
    SessionLocal,
    get_db,
    create_tables,
    drop_tables,
    get_database_url,
    create_session_factory,
)

__all__ = [
    # Base
    "Base",

    # Models
    "Wallet",
    "Course",
    "Grade",
    "Certificate",

    # Database utilities
    "engine",
    "SessionLocal",
    "get_db",
    "create_tables",
    "drop_tables",
    "get_database_url",
    "create_session_factory",
]
