"""
Off-chain Data Gateway

Serves a student's off-chain record to a requester, one section per data
type, each section gated by its own on-chain consent.

Flow:
1. Resolve the cid to a registered wallet (unknown cid: no chain calls)
2. Require a requester address
3. One batched consent check for all data types
4. Populate each section independently; sections without valid consent
   are returned as None

Usage:
    gateway = StudentDataGateway(db_session, consent_service)
    result = gateway.get_student_data(cid, requester_address)
    return jsonify(result.to_dict())
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..chain.contracts import ALL_DATA_TYPES, DataType
from ..consent.consent_service import ConsentQueryService
from ..database import Certificate, Course, Grade, Wallet
from ..wallets.wallet_service import WalletService

logger = logging.getLogger(__name__)


class StudentNotFound(LookupError):
    """No wallet is registered under the requested cid."""


class Unauthorized(Exception):
    """The request carries no requester address."""


@dataclass
class StudentDataResult:
    """Consent-gated student record."""
    student_address: str
    basic_profile: Optional[dict] = None
    academic_record: Optional[dict] = None
    social_profile: Optional[dict] = None
    consents: Dict[int, bool] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "studentAddress": self.student_address,
            "data": {
                "basicProfile": self.basic_profile,
                "academicRecord": self.academic_record,
                "socialProfile": self.social_profile,
            },
            "consents": {str(k): v for k, v in self.consents.items()},
        }


class StudentDataGateway:
    """Consent-gated reads over the off-chain datastore."""

    def __init__(self, db: Session, consent_service: ConsentQueryService, wallet_service: Optional[WalletService] = None):
        """
        Args:
            db: SQLAlchemy database session
            consent_service: Consent checks against the chain
            wallet_service: cid resolution (defaults to one over db)
        """
        self.db = db
        self.consent_service = consent_service
        self.wallet_service = wallet_service or WalletService(db)

    def get_student_data(self, cid: str, requester_address: Optional[str]) -> StudentDataResult:
        """
        Fetch the sections of cid's record the requester may see.

        Args:
            cid: Opaque student identifier
            requester_address: Value of the X-Requester-Address header

        Returns:
            StudentDataResult with disallowed sections set to None

        Raises:
            StudentNotFound: cid is not registered
            Unauthorized: requester_address is missing
        """
        wallet = self.wallet_service.resolve(cid)
        if wallet is None:
            raise StudentNotFound(f"No student with cid {cid} exists")

        if not requester_address or not requester_address.strip():
            raise Unauthorized("Requester address is required in headers (X-Requester-Address)")

        consents = self.consent_service.check_multiple_consents(
            wallet.wallet_address,
            requester_address,
            [int(dt) for dt in ALL_DATA_TYPES],
        )
        logger.info(f"Consent check for {requester_address} accessing {wallet.wallet_address}: {consents}")

        result = StudentDataResult(student_address=wallet.wallet_address, consents=consents)

        if consents.get(DataType.BASIC_PROFILE):
            result.basic_profile = self._basic_profile(wallet)
        if consents.get(DataType.ACADEMIC_RECORD):
            result.academic_record = self._academic_record(wallet.cid)
        if consents.get(DataType.SOCIAL_PROFILE):
            result.social_profile = self._social_profile()

        return result

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _basic_profile(self, wallet: Wallet) -> dict:
        return {
            "displayName": wallet.display_name,
            "walletAddress": wallet.wallet_address,
            "cid": wallet.cid,
        }

    def _academic_record(self, cid: str) -> dict:
        grades = (
            self.db.query(Grade)
            .join(Course, Grade.course_id == Course.course_id)
            .filter(Grade.wallet_cid == cid)
            .order_by(Grade.added_at.desc())
            .all()
        )
        certificates = (
            self.db.query(Certificate)
            .filter(Certificate.wallet_cid == cid)
            .order_by(Certificate.issue_date.desc())
            .all()
        )
        logger.info(f"Granted access to AcademicRecord ({len(grades)} grades, {len(certificates)} certificates)")

        return {
            "grades": [g.to_dict() for g in grades],
            "certificates": [c.to_dict() for c in certificates],
        }

    def _social_profile(self) -> dict:
        # no social graph is stored off-chain yet
        return {"friends": [], "posts": []}
