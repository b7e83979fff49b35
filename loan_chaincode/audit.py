"""
Audit trail recorder.

Event descriptions are derived only from transaction inputs so that every
replica records byte-identical history. No timestamps are embedded.
"""

from .models import Loan

LOAN_APPROVED = "Loan Approved"
LOAN_DISBURSED = "Loan Disbursed"
LOAN_DEFAULTED = "Loan Defaulted"


def repayment_event(amount: float) -> str:
    """Describe a repayment; amounts use six fixed decimals."""
    return f"Repayment of {amount:f} made"


def collateral_event(description: str) -> str:
    return f"Collateral added: {description}"


class AuditTrailRecorder:
    """Appends event descriptions to a loan's audit history."""
    
    def append(self, loan: Loan, event: str) -> Loan:
        """
        Push ``event`` onto the loan's history.
        
        The loan is mutated in place and returned; persisting it is the
        caller's job.
        """
        loan.audit_history.append(event)
        return loan
