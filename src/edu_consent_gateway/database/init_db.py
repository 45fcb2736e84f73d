"""
Database Initialization Script

This script handles datastore setup:
1. Table creation (wallet, course, grades, certificates)
2. Course catalogue seed, used when demo records are generated at registration
3. Verification that every table is reachable

Usage:
    poetry run python -m edu_consent_gateway.database.init_db

Drop and recreate (development only):
    poetry run python -m edu_consent_gateway.database.init_db --drop
"""

import logging
import os
import sys

from .models import (
    Base,
    Certificate,
    Course,
    Grade,
    SessionLocal,
    Wallet,
    create_tables,
    engine,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


COURSE_CATALOGUE = [
    ("Introduction to Computer Science", "Programming fundamentals, algorithms and data structures"),
    ("Linear Algebra", "Vector spaces, matrices and linear transformations"),
    ("Distributed Systems", "Consensus, replication and fault tolerance"),
    ("Applied Cryptography", "Hash functions, signatures and public-key protocols"),
    ("Blockchain Engineering", "Smart contracts, token standards and decentralized applications"),
    ("Data Privacy Law", "Consent, data minimisation and data subject rights"),
]


def setup_tables(bind=None):
    """
    Create all database tables using SQLAlchemy metadata.

    This is idempotent - safe to run multiple times.
    """
    logger.info("Creating database tables...")

    try:
        create_tables(bind)
        logger.info("✓ All tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


def seed_courses(session) -> int:
    """
    Insert catalogue courses that are not present yet.

    Returns:
        Number of courses added
    """
    existing = {name for (name,) in session.query(Course.course_name).all()}
    added = 0

    for name, description in COURSE_CATALOGUE:
        if name not in existing:
            session.add(Course(course_name=name, description=description))
            added += 1

    session.commit()
    return added


def seed_initial_data():
    """
    Seed the course catalogue.

    Skip by setting SKIP_SEED=true
    """
    if os.getenv("SKIP_SEED", "false").lower() == "true":
        logger.info("Skipping seed data (SKIP_SEED=true)")
        return

    logger.info("Seeding initial data...")

    session = SessionLocal()
    try:
        added = seed_courses(session)
        if added:
            logger.info(f"✓ {added} course(s) created")
        else:
            logger.info("Course catalogue already present, skipping seed")
    except Exception as e:
        session.rollback()
        logger.error(f"Failed to seed data: {e}")
    finally:
        session.close()


def verify_setup():
    """Verify that all tables are reachable."""
    logger.info("Verifying database setup...")

    session = SessionLocal()
    try:
        for model in (Wallet, Course, Grade, Certificate):
            count = session.query(model).count()
            logger.info(f"✓ {model.__tablename__} table accessible ({count} records)")

        logger.info("=" * 50)
        logger.info("Database setup verification PASSED")
        logger.info("=" * 50)

    except Exception as e:
        logger.error(f"Verification failed: {e}")
        raise
    finally:
        session.close()


def init_database(drop_existing: bool = False):
    """
    Main initialization function.

    Args:
        drop_existing: If True, drop all tables before creating.
                      USE WITH EXTREME CAUTION IN PRODUCTION!
    """
    logger.info("=" * 50)
    logger.info("Starting database initialization...")
    logger.info("=" * 50)

    if drop_existing:
        if os.getenv("FLASK_ENV") == "production":
            raise ValueError(
                "Cannot drop tables in production! "
                "Set FLASK_ENV to 'development' or 'testing' to drop tables."
            )
        logger.warning("Dropping all existing tables...")
        Base.metadata.drop_all(bind=engine)
        logger.info("All tables dropped")

    setup_tables()
    seed_initial_data()
    verify_setup()

    logger.info("=" * 50)
    logger.info("Database initialization COMPLETE")
    logger.info("=" * 50)


if __name__ == "__main__":
    drop_flag = "--drop" in sys.argv

    if drop_flag:
        confirm = input(
            "WARNING: This will DROP ALL TABLES. "
            "Type 'yes' to confirm: "
        )
        if confirm.lower() != "yes":
            print("Aborted.")
            sys.exit(1)

    init_database(drop_existing=drop_flag)
