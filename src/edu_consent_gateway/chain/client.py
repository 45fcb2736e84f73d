"""
Chain Client Adapter

Wraps one JSON-RPC connection to an EVM node and the three EduSystem
contract bindings (EduIdentity, EduConsent, EduToken). All methods are
read-only calls or log queries; the service never signs transactions.

One instance is built at startup and shared by every request. It holds no
per-request state, so it is safe to use from concurrent worker threads.

Usage:
    chain = ChainClient.from_config(app.config)
    chain.has_valid_consent(owner, requester, DataType.ACADEMIC_RECORD)
"""

import logging
from typing import Any, List, Mapping, Optional

from web3 import Web3

from ..config import Config
from .contracts import EDU_CONSENT, EDU_IDENTITY, EDU_TOKEN, load_abi
from .events import DecodeResult, address_topic, decode_log, event_topic

logger = logging.getLogger(__name__)


class ChainClient:
    """Typed read access to the EduSystem contracts."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        identity_address: Optional[str] = None,
        consent_address: Optional[str] = None,
        token_address: Optional[str] = None,
        timeout: Optional[int] = None,
        from_block: int = 0,
        web3: Optional[Web3] = None,
    ):
        """
        Args:
            rpc_url: HTTP JSON-RPC endpoint
            identity_address: EduIdentity deployment address
            consent_address: EduConsent deployment address
            token_address: EduToken deployment address
            timeout: HTTP request timeout in seconds
            from_block: First block scanned by event-log queries
            web3: Pre-built Web3 instance (overrides rpc_url/timeout)
        """
        self.rpc_url = rpc_url or Config.RPC_URL
        self.from_block = from_block

        if web3 is None:
            web3 = Web3(Web3.HTTPProvider(
                self.rpc_url,
                request_kwargs={"timeout": timeout or Config.RPC_TIMEOUT}
            ))
        self.w3 = web3

        self.identity = self.w3.eth.contract(
            address=Web3.to_checksum_address(identity_address or Config.EDU_IDENTITY_ADDRESS),
            abi=load_abi(EDU_IDENTITY),
        )
        self.consent = self.w3.eth.contract(
            address=Web3.to_checksum_address(consent_address or Config.EDU_CONSENT_ADDRESS),
            abi=load_abi(EDU_CONSENT),
        )
        self.token = self.w3.eth.contract(
            address=Web3.to_checksum_address(token_address or Config.EDU_TOKEN_ADDRESS),
            abi=load_abi(EDU_TOKEN),
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ChainClient":
        """Build a client from a Flask config mapping."""
        return cls(
            rpc_url=config.get("RPC_URL"),
            identity_address=config.get("EDU_IDENTITY_ADDRESS"),
            consent_address=config.get("EDU_CONSENT_ADDRESS"),
            token_address=config.get("EDU_TOKEN_ADDRESS"),
            timeout=config.get("RPC_TIMEOUT"),
            from_block=int(config.get("CONSENT_FROM_BLOCK") or 0),
        )

    # ------------------------------------------------------------------
    # Node
    # ------------------------------------------------------------------

    def is_connected(self) -> bool:
        try:
            return bool(self.w3.is_connected())
        except Exception as e:
            logger.warning(f"RPC connectivity check failed: {e}")
            return False

    def latest_block(self) -> int:
        return int(self.w3.eth.block_number)

    # ------------------------------------------------------------------
    # EduConsent
    # ------------------------------------------------------------------

    def has_valid_consent(self, owner: str, requester: str, data_type: int) -> bool:
        return bool(
            self.consent.functions.hasValidConsent(owner, requester, int(data_type)).call()
        )

    def get_consent(self, owner: str, requester: str, data_type: int) -> tuple:
        """Raw Consent struct: (owner, expiresAt, dataType, exists, active, requester)."""
        return tuple(
            self.consent.functions.getConsent(owner, requester, int(data_type)).call()
        )

    def get_event_logs(self, event_name: str, owner: str) -> List[Mapping[str, Any]]:
        """All logs of one consent event whose indexed owner matches."""
        return list(self.w3.eth.get_logs({
            "address": self.consent.address,
            "fromBlock": self.from_block,
            "toBlock": "latest",
            "topics": [event_topic(event_name), address_topic(owner)],
        }))

    def decode_event_log(self, event_name: str, log: Mapping[str, Any]) -> DecodeResult:
        contract_event = getattr(self.consent.events, event_name)()
        return decode_log(event_name, log, contract_event)

    # ------------------------------------------------------------------
    # EduIdentity
    # ------------------------------------------------------------------

    def is_student(self, address: str) -> bool:
        return bool(self.identity.functions.isStudent(address).call())

    def is_requester(self, address: str) -> bool:
        return bool(self.identity.functions.isRequester(address).call())

    def get_student_profile(self, address: str) -> dict:
        (registered, handle, display_name, university,
         enrollment_year, email_hash, profile_cid) = self.identity.functions.getStudentProfile(address).call()
        return {
            "registered": bool(registered),
            "handle": handle,
            "displayName": display_name,
            "university": university,
            "enrollmentYear": str(enrollment_year),
            "emailHash": Web3.to_hex(email_hash),
            "profileCid": profile_cid,
        }

    def get_requester_profile(self, address: str) -> dict:
        registered, name, description, app_uri = self.identity.functions.getRequesterProfile(address).call()
        return {
            "registered": bool(registered),
            "name": name,
            "description": description,
            "appUri": app_uri,
        }

    def get_role(self, address: str) -> int:
        return int(self.identity.functions.roles(address).call())

    def compute_email_hash(self, email: str) -> str:
        return Web3.to_hex(self.identity.functions.computeEmailHash(email).call())

    # ------------------------------------------------------------------
    # Client bootstrap
    # ------------------------------------------------------------------

    def contract_meta(self) -> dict:
        """Deployment addresses and ABIs for browser clients."""
        return {
            "addresses": {
                "eduIdentity": self.identity.address,
                "eduConsent": self.consent.address,
                "eduToken": self.token.address,
            },
            "abis": {
                "eduIdentity": load_abi(EDU_IDENTITY),
                "eduConsent": load_abi(EDU_CONSENT),
                "eduToken": load_abi(EDU_TOKEN),
            },
        }
