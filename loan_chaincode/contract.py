"""
Chaincode entry points.

``LoanContract.invoke`` is called by the ledger platform with a transaction
stub. It maps the function name to a handler, decodes the string arguments,
runs the lifecycle operation and returns a ``Response``. Chaincode errors
become error responses here and nowhere else.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import structlog

from .errors import ChaincodeError, ErrorKind, InvalidOperationError
from .lifecycle import LoanLifecycle
from .store import LoanRecordStore
from .validation import (
    parse_decimal,
    parse_non_negative_decimal,
    parse_positive_integer,
    require_args,
    require_non_empty,
)

logger = structlog.get_logger(__name__)

OK = 200
ERROR = 500


@dataclass(frozen=True)
class Response:
    """Result of one chaincode invocation."""
    status: int
    message: str = ""
    payload: bytes = b""
    error_kind: Optional[ErrorKind] = None
    
    @property
    def ok(self) -> bool:
        return self.status == OK
    
    @classmethod
    def success(cls, payload: bytes = b"") -> "Response":
        return cls(status=OK, payload=payload)
    
    @classmethod
    def error(cls, error: ChaincodeError) -> "Response":
        return cls(status=ERROR, message=error.message, error_kind=error.kind)


class LoanContract:
    """Loan lifecycle chaincode."""
    
    def __init__(self):
        self.handlers: Dict[str, Callable[[LoanLifecycle, List[str]], bytes]] = {
            # Lifecycle transitions
            "RequestLoan": self._request_loan,
            "ApproveLoan": self._approve_loan,
            "DisburseLoan": self._disburse_loan,
            "RepayLoan": self._repay_loan,
            "MarkAsDefaulted": self._mark_as_defaulted,
            "AddCollateral": self._add_collateral,
            
            # Read-only queries
            "CheckLoanStatus": self._read_loan,
            "GetLoanHistory": self._read_loan,
            "QueryLoan": self._read_loan,
        }
    
    @property
    def functions(self) -> List[str]:
        return sorted(self.handlers)
    
    def init(self, stub) -> Response:
        """Chaincode instantiation; no state to seed."""
        return Response.success()
    
    def invoke(self, stub) -> Response:
        """
        Dispatch one transaction.
        
        Args:
            stub: Transaction stub exposing ``get_function_and_parameters``,
                ``get_state`` and ``put_state``
            
        Returns:
            Success response (empty, or the stored loan for reads), or an
            error response carrying the failure kind and message
        """
        function_name, args = stub.get_function_and_parameters()
        log = logger.bind(function=function_name, args_count=len(args))
        
        try:
            handler = self.handlers.get(function_name)
            if handler is None:
                raise InvalidOperationError(f"Invalid function name: {function_name}")
            
            lifecycle = LoanLifecycle(LoanRecordStore(stub))
            payload = handler(lifecycle, args)
            
            log.debug("Invocation succeeded")
            return Response.success(payload)
            
        except ChaincodeError as e:
            log.warning("Invocation rejected", error_kind=e.kind.value, error=e.message)
            return Response.error(e)
    
    def _request_loan(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 4, 5)
        loan_id = require_non_empty(args[0], "Loan ID")
        borrower_id = args[1]
        amount = parse_non_negative_decimal(args[2], "loan amount")
        duration = parse_positive_integer(args[3], "loan duration")
        interest_rate = parse_non_negative_decimal(args[4], "interest rate") if len(args) == 5 else 0.0
        
        lifecycle.request_loan(loan_id, borrower_id, amount, duration, interest_rate)
        return b""
    
    def _approve_loan(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 2)
        lender_id = require_non_empty(args[1], "Lender ID")
        lifecycle.approve_loan(args[0], lender_id)
        return b""
    
    def _disburse_loan(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 2)
        lifecycle.disburse_loan(args[0], args[1])
        return b""
    
    def _repay_loan(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 2)
        repayment_amount = parse_decimal(args[1], "repayment amount")
        lifecycle.repay_loan(args[0], repayment_amount)
        return b""
    
    def _mark_as_defaulted(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 1)
        lifecycle.mark_as_defaulted(args[0])
        return b""
    
    def _add_collateral(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 2)
        lifecycle.add_collateral(args[0], args[1])
        return b""
    
    def _read_loan(self, lifecycle: LoanLifecycle, args: List[str]) -> bytes:
        require_args(args, 1)
        return lifecycle.get_loan_record(args[0])
