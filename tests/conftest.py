"""
Global pytest configuration and shared fixtures.

This file makes shared fixtures available to all test modules
and configures pytest settings for the entire test suite.
"""

import json

import pytest
import structlog

from loan_chaincode.contract import LoanContract
from shared.fabric_gateway import GatewayConfig, LedgerGateway
from shared.world_state import InMemoryWorldState, TransactionStub


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo global structlog configuration so it never outlives a test's captured stderr."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def world_state():
    """Empty in-memory world state."""
    return InMemoryWorldState()


@pytest.fixture
def contract():
    """Loan chaincode instance."""
    return LoanContract()


@pytest.fixture
def gateway_config():
    """Gateway configuration without backoff delays."""
    return GatewayConfig(
        chaincode_name="loan",
        channel_name="testchannel",
        max_attempts=3,
        backoff_multiplier=0,
        backoff_max=0,
    )


@pytest.fixture
def gateway(world_state, contract, gateway_config):
    """Gateway committing into the in-memory world state."""
    return LedgerGateway(world_state, contract, gateway_config)


@pytest.fixture
def invoke(world_state, contract):
    """
    Run one invocation and commit it if it succeeded.
    
    Returns the chaincode response.
    """
    def _invoke(function_name, *args):
        stub = TransactionStub(world_state, function_name, [str(arg) for arg in args])
        response = contract.invoke(stub)
        if response.ok:
            world_state.commit(stub)
        return response
    return _invoke


@pytest.fixture
def stored_loan(world_state):
    """Decode the committed record for a loan ID."""
    def _stored_loan(loan_id):
        raw = world_state.get(loan_id)
        return None if raw is None else json.loads(raw)
    return _stored_loan


@pytest.fixture
def active_loan(invoke):
    """Loan L1 of 1000 moved to Active."""
    assert invoke("RequestLoan", "L1", "B1", "1000", "12").ok
    assert invoke("ApproveLoan", "L1", "LEN1").ok
    assert invoke("DisburseLoan", "L1", "2024-01-01").ok
    return "L1"


# Configure test markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "database: mark test as requiring database"
    )
    config.addinivalue_line(
        "markers", "workflow: mark test as end-to-end workflow test"
    )
