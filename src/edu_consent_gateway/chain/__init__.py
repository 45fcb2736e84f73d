"""
Chain access for the EduSystem contracts.

This module provides:
- ChainClient: injectable adapter over one RPC node and three contracts
- normalize_address: address validation/checksumming
- DataType / Role: on-chain enumerations
- Two-stage consent event decoding

Usage:
    from edu_consent_gateway.chain import ChainClient, DataType, normalize_address

    chain = ChainClient(rpc_url="http://127.0.0.1:8545")
    chain.has_valid_consent(normalize_address(owner), normalize_address(requester), DataType.BASIC_PROFILE)
"""

from .addresses import (
    AddressError,
    InvalidAddress,
    MissingAddress,
    normalize_address,
)
from .client import ChainClient
from .contracts import (
    ALL_DATA_TYPES,
    DataType,
    InvalidDataType,
    Role,
    load_abi,
    parse_data_type,
)
from .events import (
    ACCESS_ATTEMPT,
    CONSENT_GRANTED,
    CONSENT_REVOKED,
    DecodedEvent,
    Unparseable,
    decode_log,
)

__all__ = [
    # Adapter
    "ChainClient",

    # Addresses
    "AddressError",
    "InvalidAddress",
    "MissingAddress",
    "normalize_address",

    # Enums
    "ALL_DATA_TYPES",
    "DataType",
    "InvalidDataType",
    "Role",
    "load_abi",
    "parse_data_type",

    # Events
    "ACCESS_ATTEMPT",
    "CONSENT_GRANTED",
    "CONSENT_REVOKED",
    "DecodedEvent",
    "Unparseable",
    "decode_log",
]
