"""
Loan lifecycle state machine.

Each operation is one read-modify-write against a single loan record:
load, check preconditions, mutate, append an audit entry, save. Every
check runs before the first mutation and the record is written once at
the end, so a failed operation never leaves a partial write behind.

States move only along ``Pending -> Approved -> Active -> {Repaid | Defaulted}``.
"""

import math
from typing import Iterable, Optional

import structlog

from .audit import (
    LOAN_APPROVED,
    LOAN_DEFAULTED,
    LOAN_DISBURSED,
    AuditTrailRecorder,
    collateral_event,
    repayment_event,
)
from .errors import AlreadyExistsError, InvalidArgumentError, InvalidStateError, NotFoundError
from .models import COLLATERAL_STATES, Loan, LoanStatus, can_transition
from .store import LoanRecordStore

logger = structlog.get_logger(__name__)


class LoanLifecycle:
    """
    Applies lifecycle transitions to loans held in the world state.
    
    Arguments are already decoded; string parsing happens at the dispatch
    boundary in ``LoanContract``.
    """
    
    def __init__(self, store: LoanRecordStore, recorder: Optional[AuditTrailRecorder] = None):
        self.store = store
        self.recorder = recorder or AuditTrailRecorder()
    
    def _require_loan(self, loan_id: str) -> Loan:
        loan = self.store.load(loan_id)
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return loan
    
    def _require_status(self, loan: Loan, allowed: Iterable[LoanStatus], message: str) -> None:
        if loan.status not in allowed:
            raise InvalidStateError(f"Loan {loan.loan_id} {message} (status: {loan.status.value})")
    
    def _move_to(self, loan: Loan, target: LoanStatus) -> None:
        # Guarded by the status checks above; a failure here is a programming error
        if not can_transition(loan.status, target):
            raise InvalidStateError(
                f"Loan {loan.loan_id} cannot move from {loan.status.value} to {target.value}"
            )
        loan.status = target
    
    def _record_and_save(self, loan: Loan, event: str) -> Loan:
        self.recorder.append(loan, event)
        self.store.save(loan)
        return loan
    
    def request_loan(
        self,
        loan_id: str,
        borrower_id: str,
        amount: float,
        duration: int,
        interest_rate: float = 0.0
    ) -> Loan:
        """
        Create a loan request in ``Pending`` state.
        
        Creation does not add an audit entry; history starts at approval.
        
        Raises:
            AlreadyExistsError: If ``loan_id`` is taken
        """
        if self.store.exists(loan_id):
            raise AlreadyExistsError(f"Loan {loan_id} already exists")
        
        loan = Loan.new(loan_id, borrower_id, amount, duration, interest_rate)
        self.store.save(loan)
        
        logger.info("Loan requested",
                    loan_id=loan_id,
                    borrower_id=borrower_id,
                    amount=amount,
                    duration=duration)
        return loan
    
    def approve_loan(self, loan_id: str, lender_id: str) -> Loan:
        """Assign the lender and move ``Pending -> Approved``."""
        loan = self._require_loan(loan_id)
        self._require_status(loan, {LoanStatus.PENDING}, "is not in Pending status")
        
        loan.lender_id = lender_id
        self._move_to(loan, LoanStatus.APPROVED)
        self._record_and_save(loan, LOAN_APPROVED)
        
        logger.info("Loan approved", loan_id=loan_id, lender_id=lender_id)
        return loan
    
    def disburse_loan(self, loan_id: str, disbursement_date: str) -> Loan:
        """Record the disbursement date and move ``Approved -> Active``."""
        loan = self._require_loan(loan_id)
        self._require_status(loan, {LoanStatus.APPROVED}, "is not approved")
        
        loan.disbursement_date = disbursement_date
        self._move_to(loan, LoanStatus.ACTIVE)
        self._record_and_save(loan, LOAN_DISBURSED)
        
        logger.info("Loan disbursed", loan_id=loan_id, disbursement_date=disbursement_date)
        return loan
    
    def repay_loan(self, loan_id: str, repayment_amount: float) -> Loan:
        """
        Apply a repayment to an active loan.
        
        The amount is taken at face value: zero changes nothing and a
        negative amount raises the balance. When the balance reaches zero
        or below it is clamped to zero and the loan becomes ``Repaid``.
        
        Raises:
            InvalidArgumentError: If the new balance is not a finite number
        """
        loan = self._require_loan(loan_id)
        self._require_status(loan, {LoanStatus.ACTIVE}, "is not active")
        
        balance = loan.remaining_balance - repayment_amount
        if not math.isfinite(balance):
            raise InvalidArgumentError(
                f"Repayment would put the balance of loan {loan_id} out of range"
            )
        if balance <= 0:
            loan.remaining_balance = 0.0
            self._move_to(loan, LoanStatus.REPAID)
        else:
            loan.remaining_balance = balance
        self._record_and_save(loan, repayment_event(repayment_amount))
        
        logger.info("Repayment applied",
                    loan_id=loan_id,
                    repayment_amount=repayment_amount,
                    remaining_balance=loan.remaining_balance,
                    status=loan.status.value)
        return loan
    
    def mark_as_defaulted(self, loan_id: str) -> Loan:
        """Flag an active loan as defaulted."""
        loan = self._require_loan(loan_id)
        self._require_status(loan, {LoanStatus.ACTIVE}, "is not active")
        
        loan.defaulted = True
        self._move_to(loan, LoanStatus.DEFAULTED)
        self._record_and_save(loan, LOAN_DEFAULTED)
        
        logger.warning("Loan marked as defaulted", loan_id=loan_id,
                       remaining_balance=loan.remaining_balance)
        return loan
    
    def add_collateral(self, loan_id: str, collateral: str) -> Loan:
        """Attach a collateral description before disbursement."""
        loan = self._require_loan(loan_id)
        self._require_status(loan, COLLATERAL_STATES, "cannot accept collateral in the current state")
        
        loan.collateral = collateral
        self._record_and_save(loan, collateral_event(collateral))
        
        logger.info("Collateral added", loan_id=loan_id)
        return loan
    
    def get_loan(self, loan_id: str) -> Loan:
        """Return the current loan record."""
        return self._require_loan(loan_id)
    
    def get_loan_record(self, loan_id: str) -> bytes:
        """Return the stored bytes of a loan, validated, without re-encoding."""
        raw = self.store.load_raw(loan_id)
        if raw is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return raw
