"""Raw ledger models: asset registry, prices, fees, and transactions."""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cgtledger.models.enums import AssetClass, Tag

GBP = "GBP"


def is_gbp(symbol: str) -> bool:
    return symbol == GBP


class AssetEntry(BaseModel):
    symbol: str = Field(min_length=1)
    asset_class: AssetClass = AssetClass.CRYPTO


class AssetRegistry:
    """Symbol -> asset class lookup. GBP is implicit and never registered."""

    def __init__(self, entries: list[AssetEntry] | None = None) -> None:
        self._classes: dict[str, AssetClass] = {}
        for entry in entries or []:
            self.register(entry.symbol, entry.asset_class)

    def register(self, symbol: str, asset_class: AssetClass = AssetClass.CRYPTO) -> None:
        if is_gbp(symbol):
            raise ValueError("GBP is implicit and cannot be registered")
        if symbol in self._classes:
            raise ValueError(f"Asset already registered: {symbol}")
        self._classes[symbol] = asset_class

    def asset_class(self, symbol: str) -> AssetClass:
        return self._classes[symbol]

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._classes

    def __len__(self) -> int:
        return len(self._classes)

    @property
    def symbols(self) -> list[str]:
        return sorted(self._classes)


class Amount(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str = Field(min_length=1)
    quantity: Decimal = Field(ge=0)


class Price(BaseModel):
    """Price per unit of `base`, in GBP or in `quote` converted with `fx_rate`."""

    model_config = ConfigDict(frozen=True)

    base: str
    rate: Decimal
    quote: str | None = None
    fx_rate: Decimal | None = None
    source: str | None = None


class Fee(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    amount: Decimal = Field(ge=0)
    price: Price | None = None


class TransactionBase(BaseModel, ABC):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    datetime: datetime
    account: str
    description: str | None = None
    tag: Tag = Tag.UNCLASSIFIED
    price: Price | None = None
    fee: Fee | None = None

    @field_validator("datetime", mode="before")
    @classmethod
    def _parse_date_only(cls, value: object) -> object:
        # Date-only input is midnight UTC
        if isinstance(value, str) and len(value.strip()) == 10:
            parsed = date.fromisoformat(value.strip())
            return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)
        return value

    @field_validator("datetime")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def symbols(self) -> list[str]:
        """All asset symbols this transaction references."""
        fee_symbols = [self.fee.asset] if self.fee else []
        return [amount.symbol for amount in self.amounts()] + fee_symbols

    @abstractmethod
    def amounts(self) -> list[Amount]:
        """The traded or transferred amounts, excluding the fee."""


class TradeTransaction(TransactionBase):
    type: Literal["Trade"] = "Trade"
    sold: Amount
    bought: Amount

    def amounts(self) -> list[Amount]:
        return [self.sold, self.bought]


class DepositTransaction(TransactionBase):
    type: Literal["Deposit"] = "Deposit"
    amount: Amount
    linked_withdrawal: str | None = None

    @property
    def linked_id(self) -> str | None:
        return self.linked_withdrawal

    def amounts(self) -> list[Amount]:
        return [self.amount]


class WithdrawalTransaction(TransactionBase):
    type: Literal["Withdrawal"] = "Withdrawal"
    amount: Amount
    linked_deposit: str | None = None

    @property
    def linked_id(self) -> str | None:
        return self.linked_deposit

    def amounts(self) -> list[Amount]:
        return [self.amount]


Transaction = Annotated[
    TradeTransaction | DepositTransaction | WithdrawalTransaction,
    Field(discriminator="type"),
]


class LedgerInput(BaseModel):
    """Root document of a ledger file."""

    assets: list[AssetEntry] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)

    def registry(self) -> AssetRegistry:
        return AssetRegistry(self.assets)


class ConversionOptions(BaseModel):
    exclude_unlinked: bool = False
