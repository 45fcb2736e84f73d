"""
Chain Adapter Tests

Unit tests for the chain layer:
- Address normalization (casing tolerance, missing/invalid input)
- Data type parsing
- Two-stage event decoding and unparseable logs
- ChainClient calls against a mocked Web3 instance

Run with:
    poetry run pytest tests/test_chain.py -v
"""

from unittest.mock import MagicMock

import pytest
from eth_abi import encode
from hexbytes import HexBytes

from edu_consent_gateway.chain import (
    ACCESS_ATTEMPT,
    CONSENT_GRANTED,
    CONSENT_REVOKED,
    ChainClient,
    DataType,
    DecodedEvent,
    InvalidAddress,
    InvalidDataType,
    MissingAddress,
    Unparseable,
    decode_log,
    normalize_address,
    parse_data_type,
)
from edu_consent_gateway.chain.events import address_topic, event_topic, split_decoded

from conftest import REQUESTER, STUDENT


def raw_granted_log(owner=STUDENT, requester=REQUESTER, data_type=1, expires_at=1900000000,
                    block=12, log_index=3):
    return {
        "blockNumber": block,
        "logIndex": log_index,
        "transactionHash": HexBytes("0x" + "11" * 32),
        "topics": [
            HexBytes(event_topic(CONSENT_GRANTED)),
            HexBytes(address_topic(owner)),
            HexBytes(address_topic(requester)),
        ],
        "data": HexBytes(encode(["uint8", "uint64"], [data_type, expires_at])),
    }


def raw_revoked_log(owner=STUDENT, requester=REQUESTER, data_type=1, block=20):
    return {
        "blockNumber": block,
        "logIndex": 0,
        "transactionHash": HexBytes("0x" + "22" * 32),
        "topics": [
            HexBytes(event_topic(CONSENT_REVOKED)),
            HexBytes(address_topic(owner)),
            HexBytes(address_topic(requester)),
        ],
        "data": HexBytes(encode(["uint8"], [data_type])),
    }


# ============================================================================
# Address Normalizer Tests
# ============================================================================

class TestNormalizeAddress:
    """Tests for address validation and checksumming."""

    def test_checksummed_address_unchanged(self):
        assert normalize_address(STUDENT) == STUDENT

    def test_lowercase_address_checksummed(self):
        assert normalize_address(STUDENT.lower()) == STUDENT

    def test_bad_checksum_casing_recovered(self):
        """A mixed-case string with the wrong checksum is retried lower-cased."""
        miscased = "0xF39fd6e51aad88F6F4ce6aB8827279cffFb92266"
        assert normalize_address(miscased) == STUDENT

    def test_surrounding_whitespace_ignored(self):
        assert normalize_address(f"  {REQUESTER}  ") == REQUESTER

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_address(self, value):
        with pytest.raises(MissingAddress):
            normalize_address(value)

    @pytest.mark.parametrize("value", ["0x123", "not-an-address", "0x" + "zz" * 20])
    def test_invalid_address(self, value):
        with pytest.raises(InvalidAddress):
            normalize_address(value, "owner")

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError) as exc_info:
            normalize_address("0x123", "requester")
        assert "requester" in str(exc_info.value)


# ============================================================================
# Data Type Tests
# ============================================================================

class TestDataType:
    """Tests for data type parsing and metadata."""

    @pytest.mark.parametrize("value,expected", [
        (0, DataType.BASIC_PROFILE),
        ("1", DataType.ACADEMIC_RECORD),
        (2.0, DataType.SOCIAL_PROFILE),
    ])
    def test_parse_valid(self, value, expected):
        assert parse_data_type(value) is expected

    @pytest.mark.parametrize("value", [3, -1, "abc", "1.5", None, True, 2.7])
    def test_parse_invalid(self, value):
        with pytest.raises(InvalidDataType):
            parse_data_type(value)

    def test_to_dict(self):
        assert DataType.ACADEMIC_RECORD.to_dict() == {
            "id": 1,
            "name": "AcademicRecord",
            "description": "Grades, transcripts, and course performance",
        }


# ============================================================================
# Event Decoding Tests
# ============================================================================

class TestDecodeLog:
    """Tests for the two-stage event decoder."""

    def test_first_stage_uses_processed_args(self):
        contract_event = MagicMock()
        contract_event.process_log.return_value = {
            "args": {
                "owner": STUDENT.lower(),
                "requester": REQUESTER.lower(),
                "dataType": 2,
                "expiresAt": 1800000000,
            }
        }

        result = decode_log(CONSENT_GRANTED, raw_granted_log(), contract_event)

        assert isinstance(result, DecodedEvent)
        assert result.decoded_from == "args"
        assert result.owner == STUDENT
        assert result.requester == REQUESTER
        assert result.data_type == 2
        assert result.expires_at == 1800000000

    def test_falls_back_to_raw_decode(self):
        contract_event = MagicMock()
        contract_event.process_log.side_effect = ValueError("mismatched abi")

        result = decode_log(CONSENT_GRANTED, raw_granted_log(data_type=1, expires_at=1750000000), contract_event)

        assert isinstance(result, DecodedEvent)
        assert result.decoded_from == "raw"
        assert result.owner == STUDENT
        assert result.requester == REQUESTER
        assert result.data_type == 1
        assert result.expires_at == 1750000000
        assert result.position == (12, 3)
        assert result.transaction_hash == "0x" + "11" * 32

    def test_incomplete_args_fall_back_to_raw(self):
        contract_event = MagicMock()
        contract_event.process_log.return_value = {"args": {"owner": STUDENT}}

        result = decode_log(CONSENT_REVOKED, raw_revoked_log(data_type=0), contract_event)

        assert isinstance(result, DecodedEvent)
        assert result.decoded_from == "raw"
        assert result.data_type == 0
        assert result.expires_at is None

    def test_raw_decode_access_attempt(self):
        log = {
            "blockNumber": 30,
            "logIndex": 1,
            "transactionHash": HexBytes("0x" + "33" * 32),
            "topics": [
                HexBytes(event_topic(ACCESS_ATTEMPT)),
                HexBytes(address_topic(STUDENT)),
                HexBytes(address_topic(REQUESTER)),
                HexBytes(encode(["uint8"], [2])),
            ],
            "data": HexBytes(encode(["uint64", "bool"], [1700000000, False])),
        }

        result = decode_log(ACCESS_ATTEMPT, log)

        assert isinstance(result, DecodedEvent)
        assert result.data_type == 2
        assert result.timestamp == 1700000000
        assert result.granted is False

    def test_wrong_topic_count_is_unparseable(self):
        log = raw_granted_log()
        log["topics"] = log["topics"][:2]

        result = decode_log(CONSENT_GRANTED, log)

        assert isinstance(result, Unparseable)
        assert "topics" in result.reason
        assert result.block_number == 12

    def test_signature_mismatch_is_unparseable(self):
        log = raw_revoked_log()

        result = decode_log(CONSENT_GRANTED, dict(log, topics=[log["topics"][0]] + raw_granted_log()["topics"][1:]))

        assert isinstance(result, Unparseable)

    def test_garbage_data_is_unparseable(self):
        log = raw_granted_log()
        log["data"] = HexBytes("0x1234")

        assert isinstance(decode_log(CONSENT_GRANTED, log), Unparseable)

    def test_split_decoded(self):
        good = decode_log(CONSENT_GRANTED, raw_granted_log())
        bad = Unparseable(event=CONSENT_GRANTED, reason="bad")

        decoded, skipped = split_decoded([good, bad])

        assert decoded == [good]
        assert skipped == [bad]


# ============================================================================
# ChainClient Tests
# ============================================================================

@pytest.fixture
def mock_web3():
    return MagicMock()


@pytest.fixture
def chain_client(mock_web3):
    return ChainClient(web3=mock_web3, from_block=5)


class TestChainClient:
    """Tests for contract call plumbing."""

    def test_has_valid_consent_calls_contract(self, chain_client):
        fn = chain_client.consent.functions.hasValidConsent
        fn.return_value.call.return_value = True

        assert chain_client.has_valid_consent(STUDENT, REQUESTER, DataType.ACADEMIC_RECORD) is True
        fn.assert_called_with(STUDENT, REQUESTER, 1)

    def test_event_logs_filtered_by_owner(self, chain_client, mock_web3):
        mock_web3.eth.get_logs.return_value = [{"blockNumber": 1}]

        logs = chain_client.get_event_logs(CONSENT_GRANTED, STUDENT)

        assert logs == [{"blockNumber": 1}]
        query = mock_web3.eth.get_logs.call_args[0][0]
        assert query["fromBlock"] == 5
        assert query["toBlock"] == "latest"
        assert query["topics"] == [event_topic(CONSENT_GRANTED), address_topic(STUDENT)]

    def test_address_topic_is_left_padded(self):
        topic = address_topic(STUDENT)
        assert len(HexBytes(topic)) == 32
        assert topic.endswith(STUDENT[2:].lower())

    def test_student_profile_mapping(self, chain_client):
        chain_client.identity.functions.getStudentProfile.return_value.call.return_value = (
            True, "alice", "Alice", "Tech University", 2023, b"\x01" * 32, "ipfs://cid"
        )

        profile = chain_client.get_student_profile(STUDENT)

        assert profile == {
            "registered": True,
            "handle": "alice",
            "displayName": "Alice",
            "university": "Tech University",
            "enrollmentYear": "2023",
            "emailHash": "0x" + "01" * 32,
            "profileCid": "ipfs://cid",
        }

    def test_is_connected_swallows_errors(self, chain_client, mock_web3):
        mock_web3.is_connected.side_effect = ConnectionError("refused")
        assert chain_client.is_connected() is False

    def test_contract_meta_lists_three_contracts(self, chain_client):
        meta = chain_client.contract_meta()

        assert set(meta["addresses"]) == {"eduIdentity", "eduConsent", "eduToken"}
        assert any(item.get("name") == "hasValidConsent" for item in meta["abis"]["eduConsent"])


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
