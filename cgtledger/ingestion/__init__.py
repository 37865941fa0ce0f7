"""Ledger file readers."""

from cgtledger.ingestion.json_reader import JsonTransactionReader

__all__ = ["JsonTransactionReader"]
