"""
Loan lifecycle chaincode.

Deterministic transaction handler for lending agreements held in the
ledger world state.
"""

from .contract import LoanContract, Response
from .errors import ChaincodeError, ErrorKind
from .models import Loan, LoanStatus

__all__ = [
    "LoanContract",
    "Response",
    "ChaincodeError",
    "ErrorKind",
    "Loan",
    "LoanStatus",
]
