"""Wallet registration ledger."""

from .wallet_service import (
    STATUS_CONFLICT,
    STATUS_CREATED,
    STATUS_DUPLICATE,
    STATUS_ERROR,
    RegistrationResult,
    WalletService,
    generate_cid,
)

__all__ = [
    "RegistrationResult",
    "STATUS_CONFLICT",
    "STATUS_CREATED",
    "STATUS_DUPLICATE",
    "STATUS_ERROR",
    "WalletService",
    "generate_cid",
]
