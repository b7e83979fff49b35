"""
Local stand-ins for the ledger platform's world state.

The hosting platform owns the real key-value store, its multi-version
concurrency control and durability. This module provides the pieces needed
to run the chaincode outside a peer:

- ``TransactionStub`` simulates one transaction, recording its read-set
  (key -> version) and buffering its write-set.
- ``InMemoryWorldState`` and ``SqlWorldState`` hold committed state with a
  version per key and validate read-sets at commit time, rejecting stale
  transactions with ``MVCCReadConflictError``.
"""

import secrets
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

logger = structlog.get_logger(__name__)

# Version reported for keys that have never been written
ABSENT_VERSION = 0


class LedgerError(Exception):
    """Base exception for world state errors."""
    pass


class MVCCReadConflictError(LedgerError):
    """Raised when a transaction's read-set was invalidated by a committed write."""
    
    def __init__(self, transaction_id: str, key: str, read_version: int, current_version: int):
        self.transaction_id = transaction_id
        self.key = key
        self.read_version = read_version
        self.current_version = current_version
        super().__init__(
            f"MVCC read conflict in transaction {transaction_id} on key '{key}': "
            f"read version {read_version}, committed version {current_version}"
        )


class TransactionStub:
    """
    Per-transaction view of the world state.
    
    Reads go to the committed state (or this transaction's own pending
    writes) and are recorded with the version seen. Writes are buffered
    until the platform commits the transaction.
    """
    
    def __init__(
        self,
        world_state: "VersionedWorldState",
        function: str,
        args: List[str],
        transaction_id: Optional[str] = None
    ):
        self.world_state = world_state
        self.function = function
        self.args = list(args)
        self.transaction_id = transaction_id or f"tx_{secrets.token_hex(8)}"
        self._read_set: Dict[str, int] = {}
        self._write_set: Dict[str, bytes] = {}
    
    def get_function_and_parameters(self) -> Tuple[str, List[str]]:
        """Return the invoked function name and its string arguments."""
        return self.function, list(self.args)
    
    def get_state(self, key: str) -> Optional[bytes]:
        """Read a key, recording the committed version on first read."""
        if key in self._write_set:
            return self._write_set[key]
        
        value, version = self.world_state.get_versioned(key)
        self._read_set.setdefault(key, version)
        return value
    
    def put_state(self, key: str, value: bytes) -> None:
        """Buffer a write for this transaction."""
        if not key:
            raise ValueError("Key must not be empty")
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError("World state values must be bytes")
        self._write_set[key] = bytes(value)
    
    @property
    def read_set(self) -> Dict[str, int]:
        return dict(self._read_set)
    
    @property
    def write_set(self) -> Dict[str, bytes]:
        return dict(self._write_set)


class VersionedWorldState:
    """Common read/commit behaviour for versioned key-value stores."""
    
    def get_versioned(self, key: str) -> Tuple[Optional[bytes], int]:
        """Return ``(value, version)`` for a key; absent keys give ``(None, 0)``."""
        raise NotImplementedError
    
    def get(self, key: str) -> Optional[bytes]:
        value, _ = self.get_versioned(key)
        return value
    
    def commit(self, stub: TransactionStub) -> int:
        """
        Validate a simulated transaction and apply its writes.
        
        Args:
            stub: The transaction stub after chaincode execution
            
        Returns:
            Number of keys written
            
        Raises:
            MVCCReadConflictError: If any key in the read-set changed since it was read
        """
        raise NotImplementedError


class InMemoryWorldState(VersionedWorldState):
    """Dictionary-backed world state for tests and simulations."""
    
    def __init__(self):
        self._entries: Dict[str, Tuple[bytes, int]] = {}
    
    def get_versioned(self, key: str) -> Tuple[Optional[bytes], int]:
        if key not in self._entries:
            return None, ABSENT_VERSION
        return self._entries[key]
    
    def put(self, key: str, value: bytes) -> None:
        """Write a key directly, outside any transaction."""
        _, version = self.get_versioned(key)
        self._entries[key] = (bytes(value), version + 1)
    
    def commit(self, stub: TransactionStub) -> int:
        for key, read_version in stub.read_set.items():
            _, current_version = self.get_versioned(key)
            if current_version != read_version:
                logger.warning("Rejecting transaction with stale read-set",
                               transaction_id=stub.transaction_id,
                               key=key,
                               read_version=read_version,
                               current_version=current_version)
                raise MVCCReadConflictError(stub.transaction_id, key, read_version, current_version)
        
        write_set = stub.write_set
        for key in sorted(write_set):
            self.put(key, write_set[key])
        
        logger.debug("Transaction committed",
                     transaction_id=stub.transaction_id,
                     keys_written=len(write_set))
        return len(write_set)
    
    def snapshot(self) -> Dict[str, bytes]:
        """Return committed values keyed by key, without versions."""
        return {key: value for key, (value, _) in sorted(self._entries.items())}


# SQLAlchemy base class
Base = declarative_base()


class WorldStateEntryModel(Base):
    """Committed world state entry."""
    
    __tablename__ = "world_state"
    
    key = Column(String(255), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    transaction_id = Column(String(64), nullable=True)  # Last writer
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<WorldStateEntryModel(key='{self.key}', version={self.version})>"


class SqlWorldState(VersionedWorldState):
    """
    SQLAlchemy-backed world state.
    
    Gives the CLI harness a durable store between runs. Read-set validation
    and writes happen inside one database transaction.
    """
    
    def __init__(self, database_url: Optional[str] = None):
        """Initialize the engine and create the table if needed."""
        self.database_url = database_url or settings.WORLD_STATE_URL
        self.engine = None
        self.SessionLocal = None
        self._setup_database()
    
    def _setup_database(self):
        """Setup database engine and session factory."""
        try:
            if "sqlite" in self.database_url:
                self.engine = create_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False
                )
            else:
                self.engine = create_engine(
                    self.database_url,
                    pool_pre_ping=True,
                    echo=False
                )
            
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine
            )
            Base.metadata.create_all(bind=self.engine)
            
            logger.info("World state database ready", database_url=self.database_url)
            
        except Exception as e:
            logger.error("Failed to setup world state database", error=str(e))
            raise
    
    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
    
    def get_versioned(self, key: str) -> Tuple[Optional[bytes], int]:
        with self.session_scope() as session:
            entry = session.get(WorldStateEntryModel, key)
            if entry is None:
                return None, ABSENT_VERSION
            return bytes(entry.value), entry.version
    
    def commit(self, stub: TransactionStub) -> int:
        write_set = stub.write_set
        with self.session_scope() as session:
            for key, read_version in stub.read_set.items():
                entry = session.get(WorldStateEntryModel, key)
                current_version = entry.version if entry is not None else ABSENT_VERSION
                if current_version != read_version:
                    logger.warning("Rejecting transaction with stale read-set",
                                   transaction_id=stub.transaction_id,
                                   key=key,
                                   read_version=read_version,
                                   current_version=current_version)
                    raise MVCCReadConflictError(stub.transaction_id, key, read_version, current_version)
            
            for key in sorted(write_set):
                entry = session.get(WorldStateEntryModel, key)
                if entry is None:
                    session.add(WorldStateEntryModel(
                        key=key,
                        value=write_set[key],
                        version=1,
                        transaction_id=stub.transaction_id
                    ))
                else:
                    entry.value = write_set[key]
                    entry.version = entry.version + 1
                    entry.transaction_id = stub.transaction_id
        
        logger.debug("Transaction committed",
                     transaction_id=stub.transaction_id,
                     keys_written=len(write_set))
        return len(write_set)
    
    def keys(self) -> List[str]:
        """List all committed keys in order."""
        with self.session_scope() as session:
            rows = session.query(WorldStateEntryModel.key).order_by(WorldStateEntryModel.key).all()
            return [row[0] for row in rows]
    
    def dispose(self) -> None:
        """Release database resources."""
        if self.engine:
            self.engine.dispose()
