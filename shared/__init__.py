"""Shared configuration, logging and local ledger stand-ins."""
