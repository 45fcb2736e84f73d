"""
Consent query and history reconstruction.

This module provides:
- ConsentQueryService: fail-closed consent checks, record lookups,
  batched checks and event-log histories
- ConsentRecord / ConsentLogEntry / AccessAttemptEntry result types
- reconcile_consent_events: the grant/revoke merge rule

Usage:
    from edu_consent_gateway.consent import ConsentQueryService

    service = ConsentQueryService(chain)
    consents = service.check_multiple_consents(owner, requester, [0, 1, 2])
"""

from .consent_service import (
    AccessAttemptEntry,
    ConsentQueryService,
    ConsentRecord,
)
from .reconciliation import (
    STATUS_ACTIVE,
    STATUS_REVOKED,
    ConsentLogEntry,
    consent_key,
    reconcile_consent_events,
)

__all__ = [
    "AccessAttemptEntry",
    "ConsentLogEntry",
    "ConsentQueryService",
    "ConsentRecord",
    "STATUS_ACTIVE",
    "STATUS_REVOKED",
    "consent_key",
    "reconcile_consent_events",
]
