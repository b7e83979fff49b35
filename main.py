#!/usr/bin/env python3
"""
Command line harness for the loan chaincode.

Runs one invocation against the local SQL world state:

    python main.py RequestLoan L1 B1 5000 12
    python main.py ApproveLoan L1 LEN1
    python main.py CheckLoanStatus L1
"""

import argparse
import json
import sys

import structlog

from loan_chaincode.contract import LoanContract
from shared.config import settings
from shared.fabric_gateway import FabricError, LedgerGateway
from shared.log_config import configure_logging
from shared.world_state import MVCCReadConflictError, SqlWorldState

logger = structlog.get_logger(__name__)

READ_FUNCTIONS = {"CheckLoanStatus", "GetLoanHistory", "QueryLoan"}


def build_parser() -> argparse.ArgumentParser:
    contract = LoanContract()
    parser = argparse.ArgumentParser(description="Invoke the loan lifecycle chaincode")
    parser.add_argument("function", help=f"Chaincode function: {', '.join(contract.functions)}")
    parser.add_argument("args", nargs="*", help="Positional string arguments")
    parser.add_argument("--world-state", default=settings.WORLD_STATE_URL,
                        help="SQLAlchemy URL of the world state database")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Log level")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    
    world_state = SqlWorldState(args.world_state)
    gateway = LedgerGateway(world_state)
    
    try:
        if args.function in READ_FUNCTIONS:
            response = gateway.evaluate(args.function, args.args)
            print(json.dumps(json.loads(response.payload), indent=2))
        else:
            gateway.submit(args.function, args.args)
            print(f"{args.function} committed")
        return 0
    except FabricError as e:
        print(str(e), file=sys.stderr)
        return 1
    except MVCCReadConflictError as e:
        print(str(e), file=sys.stderr)
        return 2
    finally:
        world_state.dispose()


if __name__ == "__main__":
    sys.exit(main())
