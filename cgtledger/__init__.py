"""cgtledger: UK Capital Gains Tax and income tax from a transaction ledger."""

__version__ = "0.1.0"
