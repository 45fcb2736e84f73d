"""
Shared fixtures: in-memory datastore, a fake chain adapter and the Flask app.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment before imports
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["SEED_DEMO_RECORDS"] = "false"

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edu_consent_gateway.app import create_app
from edu_consent_gateway.chain.events import (
    ACCESS_ATTEMPT,
    CONSENT_GRANTED,
    CONSENT_REVOKED,
    DecodedEvent,
)
from edu_consent_gateway.database import Base


STUDENT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
REQUESTER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER_REQUESTER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
STRANGER = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class FakeChain:
    """
    In-memory stand-in for ChainClient.

    Event logs are stored already decoded; decode_event_log() hands them
    back unchanged so tests control exactly what the merge sees.
    """

    rpc_url = "http://fake-node"

    def __init__(self):
        self.valid = {}
        self.records = {}
        self.events = {CONSENT_GRANTED: [], CONSENT_REVOKED: [], ACCESS_ATTEMPT: []}
        self.block = 100
        self.connected = True
        self.error = None
        self.failing_types = set()
        self.calls = []

        self.students = {}
        self.requesters = {}
        self.roles = {}

    # consent

    def grant(self, owner, requester, data_type, valid=True, expires_at=1900000000):
        self.valid[(owner, requester, data_type)] = valid
        self.records[(owner, requester, data_type)] = (
            owner, expires_at, data_type, True, valid, requester
        )

    def has_valid_consent(self, owner, requester, data_type):
        self.calls.append(("has_valid_consent", owner, requester, int(data_type)))
        if self.error:
            raise self.error
        if int(data_type) in self.failing_types:
            raise ConnectionError("execution reverted")
        return self.valid.get((owner, requester, int(data_type)), False)

    def get_consent(self, owner, requester, data_type):
        self.calls.append(("get_consent", owner, requester, int(data_type)))
        if self.error:
            raise self.error
        return self.records.get(
            (owner, requester, int(data_type)),
            (ZERO_ADDRESS, 0, 0, False, False, ZERO_ADDRESS)
        )

    def get_event_logs(self, event_name, owner):
        self.calls.append(("get_event_logs", event_name, owner))
        if self.error:
            raise self.error
        return [e for e in self.events[event_name] if getattr(e, "owner", owner) == owner]

    def decode_event_log(self, event_name, log):
        return log

    def latest_block(self):
        self.calls.append(("latest_block",))
        return self.block

    def is_connected(self):
        return self.connected

    # identity

    def is_student(self, address):
        if self.error:
            raise self.error
        return address in self.students

    def is_requester(self, address):
        if self.error:
            raise self.error
        return address in self.requesters

    def get_student_profile(self, address):
        return self.students[address]

    def get_requester_profile(self, address):
        return self.requesters[address]

    def get_role(self, address):
        if self.error:
            raise self.error
        return self.roles.get(address, 0)

    def compute_email_hash(self, email):
        if self.error:
            raise self.error
        return "0x" + "ab" * 32

    def contract_meta(self):
        return {
            "addresses": {"eduIdentity": STRANGER, "eduConsent": OTHER_REQUESTER, "eduToken": REQUESTER},
            "abis": {"eduIdentity": [], "eduConsent": [], "eduToken": []},
        }


def granted(requester, data_type, block, log_index=0, expires_at=1900000000, owner=STUDENT):
    return DecodedEvent(
        event=CONSENT_GRANTED,
        owner=owner,
        requester=requester,
        data_type=data_type,
        block_number=block,
        log_index=log_index,
        transaction_hash=f"0x{block:064x}",
        expires_at=expires_at,
    )


def revoked(requester, data_type, block, log_index=0, owner=STUDENT):
    return DecodedEvent(
        event=CONSENT_REVOKED,
        owner=owner,
        requester=requester,
        data_type=data_type,
        block_number=block,
        log_index=log_index,
        transaction_hash=f"0x{block:064x}",
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def test_engine():
    """Create a test database engine shared by every session in one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def mock_redis():
    """Create mock Redis client."""
    redis = MagicMock()
    redis.get.return_value = None
    redis.setex.return_value = True
    return redis


@pytest.fixture
def app(fake_chain, session_factory):
    """Create Flask test application with injected dependencies."""
    return create_app(
        config={
            "TESTING": True,
            "DEBUG": False,
            "REDIS_URL": "",
            "SEED_DEMO_RECORDS": False,
        },
        chain=fake_chain,
        session_factory=session_factory,
    )


@pytest.fixture
def client(app):
    return app.test_client()
