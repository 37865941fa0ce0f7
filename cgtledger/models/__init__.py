"""Data models for cgtledger."""

from cgtledger.models.enums import (
    INCOME_TAGS,
    AssetClass,
    EventType,
    MatchingRule,
    Tag,
    TaxBand,
    TransactionType,
    WarningKind,
)
from cgtledger.models.events import TaxableEvent, display_event_type
from cgtledger.models.ledger import (
    GBP,
    Amount,
    AssetEntry,
    AssetRegistry,
    ConversionOptions,
    DepositTransaction,
    Fee,
    LedgerInput,
    Price,
    TradeTransaction,
    Transaction,
    WithdrawalTransaction,
    is_gbp,
)
from cgtledger.models.reports import (
    CgtReport,
    CgtResult,
    CgtSummary,
    CgtWarning,
    IncomeEventRecord,
    IncomeLine,
    IncomeReport,
    IncomeTaxLine,
    IncomeTaxSummary,
    MatchedAcquisition,
    MatchingComponent,
    PoolHistoryEntry,
    PoolState,
    YearEndSnapshot,
)

__all__ = [
    "Amount",
    "AssetClass",
    "AssetEntry",
    "AssetRegistry",
    "CgtReport",
    "CgtResult",
    "CgtSummary",
    "CgtWarning",
    "ConversionOptions",
    "DepositTransaction",
    "EventType",
    "Fee",
    "GBP",
    "INCOME_TAGS",
    "IncomeEventRecord",
    "IncomeLine",
    "IncomeReport",
    "IncomeTaxLine",
    "IncomeTaxSummary",
    "LedgerInput",
    "MatchedAcquisition",
    "MatchingComponent",
    "MatchingRule",
    "PoolHistoryEntry",
    "PoolState",
    "Price",
    "Tag",
    "TaxBand",
    "TaxableEvent",
    "TradeTransaction",
    "Transaction",
    "TransactionType",
    "WarningKind",
    "WithdrawalTransaction",
    "YearEndSnapshot",
    "display_event_type",
    "is_gbp",
]
