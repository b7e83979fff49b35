"""
Loan entity and lifecycle states.

The ``Loan`` model is the only record the chaincode persists. Its JSON field
names are the on-ledger compatibility contract and must not change.
"""

from enum import Enum
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoanStatus(str, Enum):
    """Loan lifecycle states."""
    PENDING = "Pending"
    APPROVED = "Approved"
    ACTIVE = "Active"
    REPAID = "Repaid"
    DEFAULTED = "Defaulted"
    
    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


# Directed lifecycle graph: Pending -> Approved -> Active -> {Repaid | Defaulted}
ALLOWED_TRANSITIONS: Dict[LoanStatus, FrozenSet[LoanStatus]] = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED}),
    LoanStatus.APPROVED: frozenset({LoanStatus.ACTIVE}),
    LoanStatus.ACTIVE: frozenset({LoanStatus.REPAID, LoanStatus.DEFAULTED}),
    LoanStatus.REPAID: frozenset(),
    LoanStatus.DEFAULTED: frozenset(),
}

# States in which collateral may still be attached
COLLATERAL_STATES: FrozenSet[LoanStatus] = frozenset({LoanStatus.PENDING, LoanStatus.APPROVED})


def can_transition(current: LoanStatus, target: LoanStatus) -> bool:
    """Return True if ``target`` is reachable from ``current`` by one edge."""
    return target in ALLOWED_TRANSITIONS[current]


class Loan(BaseModel):
    """
    A lending agreement as stored in the world state.
    
    ``interest_rate`` and ``repayment_due`` are reserved: stored as given and
    never read by any transition. Unknown keys written by newer contract
    versions are kept and written back unchanged.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")
    
    loan_id: str = Field(..., alias="loanId")
    borrower_id: str = Field(..., alias="borrowerId")
    lender_id: str = Field(..., alias="lenderId")
    amount: float = Field(..., alias="amount")
    interest_rate: float = Field(..., alias="interestRate")
    duration: int = Field(..., alias="duration")
    status: LoanStatus = Field(..., alias="status")
    disbursement_date: str = Field(..., alias="disbursementDate")
    repayment_due: float = Field(..., alias="repaymentDue")
    remaining_balance: float = Field(..., alias="remainingBalance")
    # Not written by the collateral-less contract variant
    collateral: str = Field("", alias="collateral")
    defaulted: bool = Field(..., alias="defaulted")
    audit_history: List[str] = Field(default_factory=list, alias="auditHistory")
    
    @field_validator("audit_history", mode="before")
    @classmethod
    def null_history_is_empty(cls, v):
        """Records written with no history carry ``null``."""
        return [] if v is None else v
    
    @classmethod
    def new(
        cls,
        loan_id: str,
        borrower_id: str,
        amount: float,
        duration: int,
        interest_rate: float = 0.0
    ) -> "Loan":
        """Create a freshly requested loan in ``Pending`` state."""
        return cls(
            loan_id=loan_id,
            borrower_id=borrower_id,
            lender_id="",
            amount=amount,
            interest_rate=interest_rate,
            duration=duration,
            status=LoanStatus.PENDING,
            disbursement_date="",
            repayment_due=0.0,
            remaining_balance=amount,
            defaulted=False,
            collateral="",
            audit_history=[],
        )
