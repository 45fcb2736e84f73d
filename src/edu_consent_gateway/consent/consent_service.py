"""
Consent Query Service

Single source of truth for "is this access allowed" and "what is the
history" questions, answered against the EduConsent contract:
- Live consent predicate checks (single and batched)
- Full consent record lookups
- Consent history reconstructed from grant/revoke event logs
- Access-attempt audit trail from AccessAttempt event logs

Consent-check fail-closed:
Every operation here converts failures (malformed address, RPC error,
contract revert, decode error) into a safe default instead of raising:
False for checks, None for record lookups, [] for histories. An inability
to confirm consent is never reported as consent granted. Failures are
logged at ERROR so they stay distinguishable from a definitive denial.

Caching:
Consent checks are never cached. Histories may be cached in Redis under
(owner, latest block), so any new block forces a fresh replay.
"""

import json
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..chain.addresses import normalize_address
from ..chain.client import ChainClient
from ..chain.events import (
    ACCESS_ATTEMPT,
    CONSENT_GRANTED,
    CONSENT_REVOKED,
    DecodedEvent,
    split_decoded,
)
from .reconciliation import ConsentLogEntry, reconcile_consent_events

logger = logging.getLogger(__name__)


@dataclass
class ConsentRecord:
    """Consent struct as stored by the contract."""
    owner: str
    requester: str
    data_type: int
    expires_at: int
    exists: bool
    active: bool

    def to_dict(self) -> dict:
        """Convert to dictionary for API response (expiresAt as a decimal string)."""
        return {
            "owner": self.owner,
            "requester": self.requester,
            "dataType": self.data_type,
            "expiresAt": str(self.expires_at),
            "exists": self.exists,
            "active": self.active,
        }


@dataclass
class AccessAttemptEntry:
    """One AccessAttempt event for a data owner."""
    id: str
    requester: str
    data_type: int
    timestamp: int
    granted: bool
    block_number: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requester": self.requester,
            "dataType": self.data_type,
            "timestamp": str(self.timestamp),
            "granted": self.granted,
            "blockNumber": self.block_number,
        }


class ConsentQueryService:
    """
    Read-side consent service over an injected ChainClient.

    Usage:
        service = ConsentQueryService(chain, redis_client)

        if service.has_valid_consent(owner, requester, DataType.ACADEMIC_RECORD):
            ...

        consents = service.check_multiple_consents(owner, requester, [0, 1, 2])
        history = service.get_consent_logs(owner)
    """

    CACHE_KEY_PREFIX = "consent_logs"
    CACHE_TTL_SECONDS = 30

    def __init__(self, chain: ChainClient, redis_client=None, cache_ttl: Optional[int] = None):
        """
        Args:
            chain: Shared chain adapter
            redis_client: Redis client for history caching (optional)
            cache_ttl: History cache TTL in seconds
        """
        self.chain = chain
        self.redis = redis_client
        self.cache_ttl = cache_ttl or self.CACHE_TTL_SECONDS

    # ------------------------------------------------------------------
    # Live checks
    # ------------------------------------------------------------------

    def has_valid_consent(self, owner: str, requester: str, data_type: int) -> bool:
        """
        Check whether owner currently grants requester access to data_type.

        Returns:
            The contract's verdict, or False if it could not be obtained
        """
        try:
            owner_address = normalize_address(owner, "owner")
            requester_address = normalize_address(requester, "requester")

            valid = self.chain.has_valid_consent(owner_address, requester_address, int(data_type))
        except Exception as e:
            logger.error(
                f"Consent check failed (owner={owner}, requester={requester}, "
                f"dataType={data_type}): {e}"
            )
            return False

        if not valid:
            logger.info(
                f"Consent denied: owner={owner_address}, requester={requester_address}, "
                f"dataType={int(data_type)}"
            )
        return valid

    def get_consent_details(self, owner: str, requester: str, data_type: int) -> Optional[ConsentRecord]:
        """
        Fetch the full consent record.

        Returns:
            ConsentRecord, or None if no record exists or the lookup failed
        """
        try:
            owner_address = normalize_address(owner, "owner")
            requester_address = normalize_address(requester, "requester")

            (record_owner, expires_at, record_type,
             exists, active, record_requester) = self.chain.get_consent(
                owner_address, requester_address, int(data_type)
            )
        except Exception as e:
            logger.error(
                f"Consent lookup failed (owner={owner}, requester={requester}, "
                f"dataType={data_type}): {e}"
            )
            return None

        if not exists:
            return None

        return ConsentRecord(
            owner=record_owner,
            requester=record_requester,
            data_type=int(record_type),
            expires_at=int(expires_at),
            exists=bool(exists),
            active=bool(active),
        )

    def check_multiple_consents(
        self,
        owner: str,
        requester: str,
        data_types: Iterable[int]
    ) -> Dict[int, bool]:
        """
        Check several data types, one after another.

        Returns:
            Map with one entry per requested data type
        """
        results: Dict[int, bool] = {}
        for data_type in data_types:
            try:
                key = int(data_type)
            except (TypeError, ValueError):
                key = data_type
            results[key] = self.has_valid_consent(owner, requester, data_type)
        return results

    # ------------------------------------------------------------------
    # Histories
    # ------------------------------------------------------------------

    def _get_cache_key(self, owner: str, block_number: int) -> str:
        return f"{self.CACHE_KEY_PREFIX}:{owner}:{block_number}"

    def _get_from_cache(self, owner: str) -> Tuple[Optional[str], Optional[List[ConsentLogEntry]]]:
        """Return (cache key, cached entries); both None when the cache is unusable."""
        if not self.redis:
            return None, None

        try:
            key = self._get_cache_key(owner, self.chain.latest_block())
            cached = self.redis.get(key)
            if cached:
                return key, [ConsentLogEntry.from_dict(d) for d in json.loads(cached)]
            return key, None
        except Exception as e:
            logger.warning(f"Cache read error: {e}")
            return None, None

    def _set_cache(self, key: Optional[str], entries: List[ConsentLogEntry]) -> None:
        if not self.redis or key is None:
            return

        try:
            self.redis.setex(key, self.cache_ttl, json.dumps([e.to_dict() for e in entries]))
        except Exception as e:
            logger.warning(f"Cache write error: {e}")

    def _fetch_events(self, event_name: str, owner: str) -> List[DecodedEvent]:
        logs = self.chain.get_event_logs(event_name, owner)
        decoded, skipped = split_decoded(
            [self.chain.decode_event_log(event_name, log) for log in logs]
        )
        if skipped:
            logger.warning(
                f"Skipped {len(skipped)} undecodable {event_name} log(s) for {owner}: "
                f"{[s.reason for s in skipped]}"
            )
        return decoded

    def get_consent_logs(self, owner: str) -> List[ConsentLogEntry]:
        """
        Reconstruct the owner's consent history (active and revoked).

        Replays every ConsentGranted and ConsentRevoked event for owner and
        merges them with the block-order tie-break rule.

        Returns:
            Merged entries, or [] if the history could not be fetched
        """
        try:
            owner_address = normalize_address(owner, "owner")

            cache_key, cached = self._get_from_cache(owner_address)
            if cached is not None:
                return cached

            grants = self._fetch_events(CONSENT_GRANTED, owner_address)
            revokes = self._fetch_events(CONSENT_REVOKED, owner_address)
            entries = reconcile_consent_events(grants, revokes)
        except Exception as e:
            logger.error(f"Consent history fetch failed (owner={owner}): {e}")
            return []

        self._set_cache(cache_key, entries)
        return entries

    def get_access_logs(self, owner: str) -> List[AccessAttemptEntry]:
        """
        Fetch the owner's access-attempt audit trail, newest first.

        Returns:
            Entries, or [] if the trail could not be fetched
        """
        try:
            owner_address = normalize_address(owner, "owner")
            events = self._fetch_events(ACCESS_ATTEMPT, owner_address)
        except Exception as e:
            logger.error(f"Access log fetch failed (owner={owner}): {e}")
            return []

        entries = [
            AccessAttemptEntry(
                id=f"{event.transaction_hash}-{event.log_index}",
                requester=event.requester,
                data_type=event.data_type,
                timestamp=int(event.timestamp or 0),
                granted=bool(event.granted),
                block_number=event.block_number,
            )
            for event in events
        ]
        entries.sort(key=lambda e: (e.timestamp, e.block_number), reverse=True)
        return entries
