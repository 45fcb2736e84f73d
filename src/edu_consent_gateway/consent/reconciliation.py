"""
Consent history reconciliation.

Merges decoded ConsentGranted and ConsentRevoked events for one owner into
the current view of each (requester, dataType) consent.

Rules:
- Grants are applied in chain order; a later grant for the same key
  replaces the entry (expiry, origin block, status back to active).
- A revoke marks the entry revoked only when its block number is strictly
  greater than the block of the grant on record. Stale or same-block
  revokes, and revokes with no grant, are ignored.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from ..chain.events import DecodedEvent

STATUS_ACTIVE = "active"
STATUS_REVOKED = "revoked"


def consent_key(requester: str, data_type: int) -> str:
    return f"{requester}-{int(data_type)}"


@dataclass
class ConsentLogEntry:
    """Current state of one logical consent, rebuilt from events."""
    id: str
    requester: str
    data_type: int
    expires_at: int
    status: str
    block_number: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requester": self.requester,
            "dataType": self.data_type,
            "expiresAt": str(self.expires_at),
            "status": self.status,
            "blockNumber": self.block_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConsentLogEntry":
        return cls(
            id=data["id"],
            requester=data["requester"],
            data_type=int(data["dataType"]),
            expires_at=int(data["expiresAt"]),
            status=data["status"],
            block_number=int(data["blockNumber"]),
        )


def reconcile_consent_events(
    grants: Iterable[DecodedEvent],
    revokes: Iterable[DecodedEvent],
) -> List[ConsentLogEntry]:
    """
    Build the merged consent log.

    Args:
        grants: Decoded ConsentGranted events, any order
        revokes: Decoded ConsentRevoked events, any order

    Returns:
        One entry per (requester, dataType) that has ever been granted
    """
    entries: Dict[str, ConsentLogEntry] = {}

    for grant in sorted(grants, key=lambda e: e.position):
        key = consent_key(grant.requester, grant.data_type)
        entries[key] = ConsentLogEntry(
            id=key,
            requester=grant.requester,
            data_type=grant.data_type,
            expires_at=int(grant.expires_at or 0),
            status=STATUS_ACTIVE,
            block_number=grant.block_number,
        )

    for revoke in revokes:
        entry = entries.get(consent_key(revoke.requester, revoke.data_type))
        if entry is not None and revoke.block_number > entry.block_number:
            entry.status = STATUS_REVOKED

    return list(entries.values())
