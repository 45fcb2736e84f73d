"""
Wallet address validation and canonicalization.

Every address that crosses into a contract call goes through
normalize_address() first, so malformed input is rejected before any RPC
round trip is made.
"""

from typing import Optional

from web3 import Web3


class AddressError(ValueError):
    """Base class for address input errors (reported as HTTP 400)."""


class MissingAddress(AddressError):
    """Raised when no address was supplied."""


class InvalidAddress(AddressError):
    """Raised when the address is malformed in every accepted casing."""


def normalize_address(value: Optional[str], field_name: str = "address") -> str:
    """
    Return the EIP-55 checksummed form of an address.

    User input often arrives with inconsistent casing (copied from an
    explorer, typed by hand). A mixed-case string whose checksum does not
    match is therefore retried in lower case before it is rejected.

    Args:
        value: Candidate address string
        field_name: Name used in error messages

    Returns:
        Checksummed address

    Raises:
        MissingAddress: value is None or blank
        InvalidAddress: neither the original nor the lower-cased form is valid
    """
    if value is None or not str(value).strip():
        raise MissingAddress(f"{field_name} is required")

    candidate = str(value).strip()

    if Web3.is_address(candidate):
        return Web3.to_checksum_address(candidate)

    lowered = candidate.lower()
    if Web3.is_address(lowered):
        return Web3.to_checksum_address(lowered)

    raise InvalidAddress(f"Invalid Ethereum address for {field_name}: {candidate}")
