"""
Consent contract event decoding.

Log entries returned by eth_getLogs are decoded in two stages:

1. The web3 contract event's process_log(), which yields high-level args.
2. If that fails or the args are incomplete, a manual decode of the raw
   topics/data payload with eth_abi, using the event layout from the ABI.

Every log becomes either a DecodedEvent or an Unparseable marker. Callers
drop Unparseable results from their merge and report how many there were.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Mapping, Optional, Tuple, Union

from eth_abi import decode as abi_decode
from hexbytes import HexBytes
from web3 import Web3

from .contracts import EDU_CONSENT, load_abi

logger = logging.getLogger(__name__)

CONSENT_GRANTED = "ConsentGranted"
CONSENT_REVOKED = "ConsentRevoked"
ACCESS_ATTEMPT = "AccessAttempt"


@dataclass
class DecodedEvent:
    """A consent contract event with its arguments resolved."""
    event: str
    owner: str
    requester: str
    data_type: int
    block_number: int
    log_index: int = 0
    transaction_hash: Optional[str] = None
    expires_at: Optional[int] = None
    timestamp: Optional[int] = None
    granted: Optional[bool] = None
    decoded_from: str = "args"

    @property
    def position(self) -> Tuple[int, int]:
        """Chain ordering key."""
        return (self.block_number, self.log_index)


@dataclass
class Unparseable:
    """A log that neither decode stage could interpret."""
    event: str
    reason: str
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None


DecodeResult = Union[DecodedEvent, Unparseable]


@lru_cache(maxsize=None)
def _event_abi(event_name: str) -> dict:
    for item in load_abi(EDU_CONSENT):
        if item.get("type") == "event" and item.get("name") == event_name:
            return item
    raise KeyError(f"Event {event_name} not found in {EDU_CONSENT} ABI")


@lru_cache(maxsize=None)
def event_topic(event_name: str) -> str:
    """keccak256 of the canonical event signature, 0x-prefixed."""
    abi = _event_abi(event_name)
    signature = f"{event_name}({','.join(i['type'] for i in abi['inputs'])})"
    return Web3.to_hex(Web3.keccak(text=signature))


def address_topic(address: str) -> str:
    """Left-pad an address to a 32-byte topic for log filtering."""
    return "0x" + "0" * 24 + address[2:].lower()


def decode_raw_args(event_name: str, log: Mapping[str, Any]) -> dict:
    """
    Decode event arguments straight from the log's topics and data.

    Raises:
        ValueError: topic count or signature does not match the event
    """
    abi = _event_abi(event_name)
    indexed = [i for i in abi["inputs"] if i.get("indexed")]
    non_indexed = [i for i in abi["inputs"] if not i.get("indexed")]

    topics = [HexBytes(t) for t in log.get("topics") or []]
    if len(topics) != len(indexed) + 1:
        raise ValueError(
            f"expected {len(indexed) + 1} topics for {event_name}, got {len(topics)}"
        )
    if topics[0] != HexBytes(event_topic(event_name)):
        raise ValueError(f"topic0 does not match {event_name} signature")

    args = {}
    for item, topic in zip(indexed, topics[1:]):
        args[item["name"]] = abi_decode([item["type"]], bytes(topic))[0]

    data = HexBytes(log.get("data") or b"")
    values = abi_decode([i["type"] for i in non_indexed], bytes(data))
    for item, value in zip(non_indexed, values):
        args[item["name"]] = value

    return args


def _to_hex_or_none(value) -> Optional[str]:
    if value is None:
        return None
    try:
        return Web3.to_hex(HexBytes(value))
    except (TypeError, ValueError):
        return str(value)


def _from_args(event_name: str, args: Mapping[str, Any], log: Mapping[str, Any], decoded_from: str) -> DecodedEvent:
    event = DecodedEvent(
        event=event_name,
        owner=Web3.to_checksum_address(args["owner"]),
        requester=Web3.to_checksum_address(args["requester"]),
        data_type=int(args["dataType"]),
        block_number=int(log["blockNumber"]),
        log_index=int(log.get("logIndex") or 0),
        transaction_hash=_to_hex_or_none(log.get("transactionHash")),
        decoded_from=decoded_from,
    )
    if event_name == CONSENT_GRANTED:
        event.expires_at = int(args["expiresAt"])
    elif event_name == ACCESS_ATTEMPT:
        event.timestamp = int(args["timestamp"])
        event.granted = bool(args["granted"])
    return event


def decode_log(event_name: str, log: Mapping[str, Any], contract_event=None) -> DecodeResult:
    """
    Decode one log entry for event_name.

    Args:
        event_name: ConsentGranted, ConsentRevoked or AccessAttempt
        log: Raw log entry as returned by eth_getLogs
        contract_event: web3 ContractEvent instance used for the first stage

    Returns:
        DecodedEvent, or Unparseable if both stages failed
    """
    if contract_event is not None:
        try:
            processed = contract_event.process_log(log)
            return _from_args(event_name, processed["args"], log, "args")
        except Exception as e:
            logger.debug(f"{event_name} args unavailable ({e}); decoding raw payload")

    try:
        args = decode_raw_args(event_name, log)
        return _from_args(event_name, args, log, "raw")
    except Exception as e:
        return Unparseable(
            event=event_name,
            reason=str(e),
            block_number=log.get("blockNumber"),
            transaction_hash=_to_hex_or_none(log.get("transactionHash")),
        )


def split_decoded(results: List[DecodeResult]) -> Tuple[List[DecodedEvent], List[Unparseable]]:
    decoded = [r for r in results if isinstance(r, DecodedEvent)]
    skipped = [r for r in results if isinstance(r, Unparseable)]
    return decoded, skipped
