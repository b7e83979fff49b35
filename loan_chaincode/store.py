"""
Loan record store adapter.

Serializes loans to and from the world state, keyed by loan ID. The
encoding is field-tagged JSON in a fixed field order with compact
separators, so equal loans always produce equal bytes on every replica.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from .errors import CorruptRecordError, InvalidArgumentError, StoreUnavailableError
from .models import Loan

logger = structlog.get_logger(__name__)


def encode_loan(loan: Loan) -> bytes:
    """Encode a loan as canonical JSON bytes."""
    record = loan.model_dump(mode="json", by_alias=True)
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")


def decode_loan(loan_id: str, raw: bytes) -> Loan:
    """
    Decode stored bytes into a loan.
    
    Raises:
        CorruptRecordError: If the bytes are not a valid loan record
    """
    try:
        record = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptRecordError(f"Stored record for loan {loan_id} is not valid JSON: {e}") from e
    
    if not isinstance(record, dict):
        raise CorruptRecordError(f"Stored record for loan {loan_id} is not an object")
    
    try:
        loan = Loan.model_validate(record)
    except ValidationError as e:
        raise CorruptRecordError(
            f"Stored record for loan {loan_id} failed validation: {e.error_count()} error(s)"
        ) from e
    
    if loan.loan_id != loan_id:
        raise CorruptRecordError(
            f"Stored record under key {loan_id} carries loan ID {loan.loan_id}"
        )
    return loan


class LoanRecordStore:
    """
    Reads and writes loans through a transaction stub.
    
    The stub is the only access path to the world state; it exposes
    ``get_state(key)`` and ``put_state(key, value)``.
    """
    
    def __init__(self, stub):
        self.stub = stub
    
    def _get_raw(self, loan_id: str) -> Optional[bytes]:
        if not loan_id:
            raise InvalidArgumentError("Loan ID must not be empty")
        try:
            return self.stub.get_state(loan_id)
        except Exception as e:
            logger.error("World state read failed", loan_id=loan_id, error=str(e))
            raise StoreUnavailableError(f"Failed to read loan {loan_id}: {e}") from e
    
    def exists(self, loan_id: str) -> bool:
        """Return True if a record is stored under ``loan_id``."""
        raw = self._get_raw(loan_id)
        return raw is not None and len(raw) > 0
    
    def load_raw(self, loan_id: str) -> Optional[bytes]:
        """Return the stored bytes for ``loan_id``, validated but not re-encoded."""
        raw = self._get_raw(loan_id)
        if not raw:
            return None
        decode_loan(loan_id, raw)
        return raw
    
    def load(self, loan_id: str) -> Optional[Loan]:
        """
        Load a loan by ID.
        
        Returns:
            The loan, or None if no record exists
            
        Raises:
            CorruptRecordError: If the stored bytes cannot be decoded
            StoreUnavailableError: If the world state read fails
        """
        raw = self._get_raw(loan_id)
        if not raw:
            return None
        return decode_loan(loan_id, raw)
    
    def save(self, loan: Loan) -> None:
        """
        Persist a loan under its ID.
        
        Raises:
            StoreUnavailableError: If the world state write fails
        """
        payload = encode_loan(loan)
        try:
            self.stub.put_state(loan.loan_id, payload)
        except Exception as e:
            logger.error("World state write failed", loan_id=loan.loan_id, error=str(e))
            raise StoreUnavailableError(f"Failed to save loan {loan.loan_id}: {e}") from e
        
        logger.debug("Loan saved", loan_id=loan.loan_id, size=len(payload))
