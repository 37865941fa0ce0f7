"""Custom exceptions for cgtledger."""

from enum import StrEnum


class TaxComputationError(Exception):
    """Base exception for tax computation errors."""


class TransactionErrorKind(StrEnum):
    INVALID_TAG_FOR_TYPE = "InvalidTagForType"
    MISSING_TAGGED_PRICE = "MissingTaggedPrice"
    AIRDROP_PRICE_NOT_ALLOWED = "AirdropPriceNotAllowed"
    TAGGED_DEPOSIT_LINKED = "TaggedDepositLinked"
    TAGGED_WITHDRAWAL_LINKED = "TaggedWithdrawalLinked"
    MISSING_PRICE = "MissingPrice"
    PRICE_BASE_MISMATCH = "PriceBaseMismatch"
    MISSING_FEE_PRICE = "MissingFeePrice"
    INVALID_PRICE = "InvalidPrice"
    UNKNOWN_ASSET = "UnknownAsset"
    INVALID_QUANTITY = "InvalidQuantity"
    DUPLICATE_TRANSACTION_ID = "DuplicateTransactionId"
    LINKED_TRANSACTION_NOT_FOUND = "LinkedTransactionNotFound"
    LINKED_TRANSACTION_TYPE_MISMATCH = "LinkedTransactionTypeMismatch"
    LINKED_TRANSACTION_NOT_RECIPROCAL = "LinkedTransactionNotReciprocal"


class PriceError(TaxComputationError):
    """Raised when a price or fee cannot be converted to GBP."""

    def __init__(self, kind: TransactionErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


class TransactionError(TaxComputationError):
    """Raised when a transaction cannot be turned into taxable events."""

    def __init__(self, transaction_id: str, kind: TransactionErrorKind, message: str):
        self.transaction_id = transaction_id
        self.kind = kind
        self.message = message
        super().__init__(f"Transaction {transaction_id}: {kind.value}: {message}")


class InputError(TaxComputationError):
    """Raised when a ledger input file cannot be read or validated."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"Input error from {source}: {message}")
