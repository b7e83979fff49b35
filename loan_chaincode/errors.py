"""
Chaincode error taxonomy.

Every failure is local to one invocation. Errors are raised inside the
chaincode and converted into an error response at the dispatch boundary.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure kinds surfaced to the caller."""
    INVALID_ARGUMENT = "InvalidArgument"
    ALREADY_EXISTS = "AlreadyExists"
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    CORRUPT_RECORD = "CorruptRecord"
    STORE_UNAVAILABLE = "StoreUnavailable"
    INVALID_OPERATION = "InvalidOperation"


class ChaincodeError(Exception):
    """Base exception for chaincode failures."""
    kind: Optional[ErrorKind] = None
    
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgumentError(ChaincodeError):
    """Raised for malformed numeric input or a wrong argument count."""
    kind = ErrorKind.INVALID_ARGUMENT


class AlreadyExistsError(ChaincodeError):
    """Raised when creating a loan whose ID is taken."""
    kind = ErrorKind.ALREADY_EXISTS


class NotFoundError(ChaincodeError):
    """Raised when a loan ID is unknown."""
    kind = ErrorKind.NOT_FOUND


class InvalidStateError(ChaincodeError):
    """Raised when an operation is illegal for the loan's current status."""
    kind = ErrorKind.INVALID_STATE


class CorruptRecordError(ChaincodeError):
    """Raised when stored bytes fail to decode into a loan."""
    kind = ErrorKind.CORRUPT_RECORD


class StoreUnavailableError(ChaincodeError):
    """Raised when the world state read or write fails."""
    kind = ErrorKind.STORE_UNAVAILABLE


class InvalidOperationError(ChaincodeError):
    """Raised for an unknown entry point name."""
    kind = ErrorKind.INVALID_OPERATION
