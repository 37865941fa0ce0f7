"""Normalization layer: raw transactions to taxable events."""

from cgtledger.normalization.ledger import EventStreamBuilder
from cgtledger.normalization.transactions import TransactionNormalizer

__all__ = ["EventStreamBuilder", "TransactionNormalizer"]
