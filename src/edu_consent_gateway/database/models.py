"""
SQLAlchemy ORM models for the off-chain student datastore.

Tables:
- wallet: one registration per wallet address, keyed by an opaque cid
- course: course catalogue
- grades: per-student course grades
- certificates: per-student certificates

Consent is never stored here; it lives on-chain and is checked per request.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Generator, Mapping, Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from ..config import Config

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value):
    if isinstance(value, datetime):
        # naive values are stored UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


# ============================================================================
# Models
# ============================================================================

class Wallet(Base):
    """Wallet registration record. cid is generated once and never changes."""

    __tablename__ = "wallet"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(42), unique=True, nullable=False, index=True)
    cid = Column(String(64), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    grades = relationship("Grade", back_populates="wallet", cascade="all, delete-orphan")
    certificates = relationship("Certificate", back_populates="wallet", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wallet_address": self.wallet_address,
            "cid": self.cid,
            "display_name": self.display_name,
            "created_at": _isoformat(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Wallet {self.wallet_address} cid={self.cid}>"


class Course(Base):
    __tablename__ = "course"

    course_id = Column(Integer, primary_key=True, autoincrement=True)
    course_name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)

    grades = relationship("Grade", back_populates="course")


class Grade(Base):
    __tablename__ = "grades"

    grade_id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_cid = Column(String(64), ForeignKey("wallet.cid", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("course.course_id"), nullable=False)
    points = Column(Numeric(5, 1), nullable=False)
    added_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    wallet = relationship("Wallet", back_populates="grades")
    course = relationship("Course", back_populates="grades")

    def to_dict(self) -> dict:
        """Grade joined with its course."""
        return {
            "points": float(self.points),
            "added_at": _isoformat(self.added_at),
            "course_name": self.course.course_name if self.course else None,
            "description": self.course.description if self.course else None,
        }


class Certificate(Base):
    __tablename__ = "certificates"

    certificate_id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_cid = Column(String(64), ForeignKey("wallet.cid", ondelete="CASCADE"), nullable=False, index=True)
    certificate_name = Column(String(255), nullable=False)
    issuing_institution = Column(String(255), nullable=False)
    issue_date = Column(Date, nullable=False)
    transcript_uri = Column(String(512))
    added_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    wallet = relationship("Wallet", back_populates="certificates")

    def to_dict(self) -> dict:
        return {
            "certificate_id": self.certificate_id,
            "certificate_name": self.certificate_name,
            "issuing_institution": self.issuing_institution,
            "issue_date": _isoformat(self.issue_date),
            "transcript_uri": self.transcript_uri,
            "added_at": _isoformat(self.added_at),
        }


# ============================================================================
# Database utilities
# ============================================================================

def get_database_url(config: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build the database URL.

    DATABASE_URL wins when set; otherwise the DB_* settings are combined
    into a PostgreSQL (psycopg2) URL.

    Args:
        config: Settings mapping such as app.config; keys it lacks fall
            back to the Config class
    """
    def setting(name: str):
        if config is not None and name in config:
            return config[name]
        return getattr(Config, name)

    url = setting("DATABASE_URL")
    if url:
        return url

    host = setting("DB_HOST")
    port = setting("DB_PORT")
    name = setting("DB_NAME")
    user = setting("DB_USER")
    password = setting("DB_PASSWORD")

    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


def create_session_factory(url: str) -> sessionmaker:
    """Engine and session factory for one database URL."""
    bind = create_engine(url, pool_pre_ping=True, future=True)
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


SessionLocal = create_session_factory(get_database_url())
engine = SessionLocal.kw["bind"]


def get_db() -> Generator[Session, None, None]:
    """Yield a session and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None) -> None:
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")


def drop_tables(bind=None) -> None:
    Base.metadata.drop_all(bind=bind or engine)
    logger.warning("Database tables dropped")
