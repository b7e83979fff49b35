"""
Caller-side gateway for submitting loan chaincode transactions.

The gateway plays the part of a client application plus the committing peer
in a local deployment: it simulates an invocation against a fresh
transaction stub, then commits the stub's write-set through the world
state's MVCC validation. Resubmitting a transaction rejected by MVCC is the
caller's responsibility, so the retry lives here and never in the chaincode.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from loan_chaincode.contract import LoanContract, Response

from .config import settings
from .world_state import MVCCReadConflictError, TransactionStub, VersionedWorldState

logger = structlog.get_logger(__name__)


class FabricError(Exception):
    """Base exception for gateway errors."""
    pass


class TransactionError(FabricError):
    """Raised when a submitted transaction is rejected by the chaincode."""
    
    def __init__(self, function_name: str, response: Response):
        self.function_name = function_name
        self.response = response
        kind = response.error_kind.value if response.error_kind else "Unknown"
        super().__init__(f"{function_name} failed ({kind}): {response.message}")


class QueryError(FabricError):
    """Raised when an evaluated query is rejected by the chaincode."""
    
    def __init__(self, function_name: str, response: Response):
        self.function_name = function_name
        self.response = response
        kind = response.error_kind.value if response.error_kind else "Unknown"
        super().__init__(f"{function_name} query failed ({kind}): {response.message}")


@dataclass
class GatewayConfig:
    """Configuration for transaction submission."""
    chaincode_name: str
    channel_name: str
    max_attempts: int
    backoff_multiplier: float
    backoff_max: float
    
    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        """Create GatewayConfig from application settings."""
        return cls(
            chaincode_name=settings.CHAINCODE_NAME,
            channel_name=settings.CHANNEL_NAME,
            max_attempts=settings.SUBMIT_MAX_ATTEMPTS,
            backoff_multiplier=settings.SUBMIT_BACKOFF_MULTIPLIER,
            backoff_max=settings.SUBMIT_BACKOFF_MAX,
        )


class LedgerGateway:
    """
    Submits and evaluates loan chaincode transactions against a world state.
    """
    
    def __init__(
        self,
        world_state: VersionedWorldState,
        contract: Optional[LoanContract] = None,
        config: Optional[GatewayConfig] = None
    ):
        self.world_state = world_state
        self.contract = contract or LoanContract()
        self.config = config or GatewayConfig.from_settings()
    
    def simulate(self, function_name: str, args: List[str]) -> Tuple[Response, TransactionStub]:
        """
        Execute the chaincode against a fresh stub without committing.
        
        Returns:
            The chaincode response and the stub holding its read/write sets
        """
        stub = TransactionStub(self.world_state, function_name, args)
        response = self.contract.invoke(stub)
        return response, stub
    
    def submit_once(self, function_name: str, args: List[str]) -> Response:
        """
        Simulate and commit one transaction, without resubmission.
        
        Raises:
            TransactionError: If the chaincode rejects the invocation
            MVCCReadConflictError: If a concurrent commit invalidated the read-set
        """
        response, stub = self.simulate(function_name, args)
        if not response.ok:
            raise TransactionError(function_name, response)
        
        self.world_state.commit(stub)
        logger.info("Transaction committed",
                    chaincode=self.config.chaincode_name,
                    channel=self.config.channel_name,
                    function=function_name,
                    transaction_id=stub.transaction_id)
        return response
    
    def submit(self, function_name: str, args: List[str]) -> Response:
        """
        Submit a transaction, resubmitting after MVCC read conflicts.
        
        Chaincode rejections are not retried.
        
        Raises:
            TransactionError: If the chaincode rejects the invocation
            MVCCReadConflictError: If every attempt conflicted
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(multiplier=self.config.backoff_multiplier, max=self.config.backoff_max),
            retry=retry_if_exception_type(MVCCReadConflictError),
            before_sleep=self._log_resubmission,
            reraise=True,
        )
        return retrying(self.submit_once, function_name, args)
    
    def evaluate(self, function_name: str, args: List[str]) -> Response:
        """
        Run a read-only query; nothing is committed.
        
        Raises:
            QueryError: If the chaincode rejects the query
        """
        response, _ = self.simulate(function_name, args)
        if not response.ok:
            raise QueryError(function_name, response)
        return response
    
    def get_loan(self, loan_id: str) -> Dict[str, Any]:
        """Return a loan record as a dictionary of its stored fields."""
        response = self.evaluate("CheckLoanStatus", [loan_id])
        return json.loads(response.payload.decode("utf-8"))
    
    @staticmethod
    def _log_resubmission(retry_state) -> None:
        error = retry_state.outcome.exception()
        logger.warning("Resubmitting transaction after MVCC conflict",
                       attempt=retry_state.attempt_number,
                       key=getattr(error, "key", None),
                       error=str(error))
