"""
Tests for the local world state stand-ins and MVCC validation.
"""

import pytest

from shared.world_state import (
    ABSENT_VERSION,
    InMemoryWorldState,
    MVCCReadConflictError,
    SqlWorldState,
    TransactionStub,
)


@pytest.fixture
def sql_world_state():
    world_state = SqlWorldState("sqlite:///:memory:")
    yield world_state
    world_state.dispose()


@pytest.fixture(params=["memory", "sql"])
def any_world_state(request, sql_world_state):
    if request.param == "memory":
        return InMemoryWorldState()
    return sql_world_state


class TestTransactionStub:
    """Test read-set and write-set tracking."""
    
    def test_function_and_parameters(self, world_state):
        stub = TransactionStub(world_state, "RepayLoan", ["L1", "10"])
        
        assert stub.get_function_and_parameters() == ("RepayLoan", ["L1", "10"])
    
    def test_reads_record_first_version(self, world_state):
        world_state.put("L1", b"v1")
        stub = TransactionStub(world_state, "f", [])
        
        assert stub.get_state("L1") == b"v1"
        assert stub.get_state("L2") is None
        
        assert stub.read_set == {"L1": 1, "L2": ABSENT_VERSION}
    
    def test_writes_are_buffered(self, world_state):
        stub = TransactionStub(world_state, "f", [])
        
        stub.put_state("L1", b"pending")
        
        assert stub.get_state("L1") == b"pending"
        assert world_state.get("L1") is None
        assert stub.write_set == {"L1": b"pending"}
    
    def test_put_validation(self, world_state):
        stub = TransactionStub(world_state, "f", [])
        
        with pytest.raises(ValueError):
            stub.put_state("", b"x")
        with pytest.raises(TypeError):
            stub.put_state("L1", "not bytes")


class TestCommit:
    """Test MVCC validation at commit, for both backends."""
    
    def test_commit_applies_writes(self, any_world_state):
        stub = TransactionStub(any_world_state, "f", [])
        stub.get_state("L1")
        stub.put_state("L1", b"one")
        
        assert any_world_state.commit(stub) == 1
        
        assert any_world_state.get_versioned("L1") == (b"one", 1)
    
    def test_stale_read_rejected(self, any_world_state):
        first = TransactionStub(any_world_state, "f", [], transaction_id="tx1")
        second = TransactionStub(any_world_state, "f", [], transaction_id="tx2")
        for stub, value in ((first, b"first"), (second, b"second")):
            stub.get_state("L1")
            stub.put_state("L1", value)
        
        any_world_state.commit(first)
        with pytest.raises(MVCCReadConflictError) as exc_info:
            any_world_state.commit(second)
        
        assert exc_info.value.key == "L1"
        assert exc_info.value.transaction_id == "tx2"
        assert any_world_state.get("L1") == b"first"
    
    def test_versions_increase(self, any_world_state):
        for value in (b"a", b"b", b"c"):
            stub = TransactionStub(any_world_state, "f", [])
            stub.get_state("K")
            stub.put_state("K", value)
            any_world_state.commit(stub)
        
        assert any_world_state.get_versioned("K") == (b"c", 3)
    
    def test_read_only_commit_writes_nothing(self, any_world_state):
        stub = TransactionStub(any_world_state, "f", [])
        stub.get_state("K")
        
        assert any_world_state.commit(stub) == 0
        assert any_world_state.get("K") is None


@pytest.mark.database
class TestSqlWorldState:
    """Test the SQL-backed world state."""
    
    def test_persists_between_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'state.db'}"
        world_state = SqlWorldState(url)
        stub = TransactionStub(world_state, "f", [])
        stub.put_state("L1", b"stored")
        world_state.commit(stub)
        world_state.dispose()
        
        reopened = SqlWorldState(url)
        try:
            assert reopened.get("L1") == b"stored"
            assert reopened.keys() == ["L1"]
        finally:
            reopened.dispose()
