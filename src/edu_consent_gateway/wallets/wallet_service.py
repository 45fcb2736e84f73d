"""
Wallet Registration Ledger

Maps wallet addresses to opaque content identifiers (cids) in the
off-chain datastore:
- Registration with idempotent conflict reporting
- cid resolution for the student data gateway
- Lookup by wallet address

A wallet is registered at most once. A second registration attempt,
sequential or concurrent, reports "conflict" together with the cid that
is already on record. cids are generated at creation and never change.

Demo records:
When seeding is enabled, every new registration gets 2-4 random grades
from the course catalogue and one random certificate. Seeding failures are
logged and never fail the registration itself.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..chain.addresses import normalize_address
from ..database import Certificate, Course, Grade, Wallet

logger = logging.getLogger(__name__)


STATUS_CREATED = "created"
STATUS_CONFLICT = "conflict"
STATUS_DUPLICATE = "duplicate"
STATUS_ERROR = "error"

DEMO_CERTIFICATES = [
    "Bachelor of Science",
    "Master of Arts",
    "Certified Blockchain Developer",
    "Data Science Professional",
]
DEMO_INSTITUTIONS = [
    "Tech University",
    "State College",
    "Crypto Academy",
    "Global Institute",
]


@dataclass
class RegistrationResult:
    """Result of a wallet registration attempt."""
    status: str
    cid: Optional[str] = None
    wallet: Optional[dict] = field(default=None)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == STATUS_CREATED

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        if self.status == STATUS_CREATED:
            return {"success": True, "cid": self.cid, "wallet": self.wallet}
        if self.status == STATUS_CONFLICT:
            return {"error": "Wallet already registered", "cid": self.cid}
        if self.status == STATUS_DUPLICATE:
            return {
                "error": "Duplicate entry",
                "message": self.error or "Wallet address or cid already exists",
            }
        return {"error": "Internal server error", "message": self.error}


def generate_cid() -> str:
    return f"cid_{uuid.uuid4().hex}"


class WalletService:
    """
    Service for wallet registrations.

    Usage:
        wallet_service = WalletService(db_session)

        result = wallet_service.register("0xAbC...", "Alice")
        if result.status == "conflict":
            cid = result.cid  # already registered

        wallet = wallet_service.resolve(cid)
    """

    def __init__(self, db: Session, seed_demo_records: bool = False, rng: Optional[random.Random] = None):
        """
        Args:
            db: SQLAlchemy database session
            seed_demo_records: Generate demo grades/certificate on registration
            rng: Random source for demo records
        """
        self.db = db
        self.seed_demo_records = seed_demo_records
        self.rng = rng or random.Random()

    def register(self, wallet_address: str, display_name: str) -> RegistrationResult:
        """
        Register a wallet and issue its cid.

        Args:
            wallet_address: Wallet address in any accepted casing
            display_name: Name shown in the basic profile

        Returns:
            RegistrationResult with status created, conflict, duplicate or error

        Raises:
            AddressError: wallet_address is missing or malformed
            ValueError: display_name is missing
        """
        address = normalize_address(wallet_address, "walletAddress")
        if not display_name or not str(display_name).strip():
            raise ValueError("displayName is required")

        existing = self.get_by_address(address)
        if existing:
            logger.info(f"Wallet already registered: {address} -> {existing.cid}")
            return RegistrationResult(status=STATUS_CONFLICT, cid=existing.cid)

        try:
            wallet = Wallet(
                wallet_address=address,
                cid=generate_cid(),
                display_name=str(display_name).strip(),
            )
            self.db.add(wallet)
            self.db.commit()

        except IntegrityError as e:
            self.db.rollback()
            winner = self.get_by_address(address)
            if winner:
                logger.info(f"Concurrent registration for {address}, existing cid {winner.cid}")
                return RegistrationResult(status=STATUS_CONFLICT, cid=winner.cid)

            logger.error(f"Wallet registration failed (integrity): {e}")
            return RegistrationResult(
                status=STATUS_DUPLICATE,
                error="Wallet address or cid already exists",
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Wallet registration failed: {e}")
            return RegistrationResult(status=STATUS_ERROR, error=str(e))

        logger.info(f"Created wallet record: {address} -> {wallet.cid}")

        if self.seed_demo_records:
            self._seed_demo_records(wallet.cid)

        return RegistrationResult(status=STATUS_CREATED, cid=wallet.cid, wallet=wallet.to_dict())

    def resolve(self, cid: str) -> Optional[Wallet]:
        """Wallet registered under cid, or None."""
        if not cid:
            return None
        return self.db.query(Wallet).filter_by(cid=cid).first()

    def get_by_address(self, wallet_address: str) -> Optional[Wallet]:
        """
        Wallet registered for an address, or None.

        Raises:
            AddressError: wallet_address is missing or malformed
        """
        address = normalize_address(wallet_address, "walletAddress")
        return self.db.query(Wallet).filter_by(wallet_address=address).first()

    # ------------------------------------------------------------------
    # Demo records
    # ------------------------------------------------------------------

    def _seed_demo_records(self, cid: str) -> None:
        try:
            courses = self.db.query(Course).all()
            if courses:
                picked = self.rng.sample(courses, min(len(courses), self.rng.randint(2, 4)))
                for course in picked:
                    self.db.add(Grade(
                        wallet_cid=cid,
                        course_id=course.course_id,
                        points=round(self.rng.uniform(60, 100), 1),
                    ))
                logger.info(f"   - Seeded {len(picked)} random grades")

            self.db.add(Certificate(
                wallet_cid=cid,
                certificate_name=self.rng.choice(DEMO_CERTIFICATES),
                issuing_institution=self.rng.choice(DEMO_INSTITUTIONS),
                issue_date=date.today() - timedelta(days=self.rng.randint(0, 115)),
                transcript_uri=f"ipfs://Qm{uuid.uuid4().hex[:12]}",
            ))
            self.db.commit()
            logger.info("   - Seeded 1 random certificate")

        except Exception as e:
            self.db.rollback()
            logger.error(f"Error seeding demo records for {cid}: {e}")
