"""Enumerations for cgtledger."""

from enum import StrEnum


class AssetClass(StrEnum):
    CRYPTO = "Crypto"
    STOCK = "Stock"


class TransactionType(StrEnum):
    TRADE = "Trade"
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"


class Tag(StrEnum):
    UNCLASSIFIED = "Unclassified"
    TRADE = "Trade"
    STAKING_REWARD = "StakingReward"
    SALARY = "Salary"
    OTHER_INCOME = "OtherIncome"
    AIRDROP = "Airdrop"
    AIRDROP_INCOME = "AirdropIncome"
    DIVIDEND = "Dividend"
    INTEREST = "Interest"
    GIFT = "Gift"

    def is_income(self) -> bool:
        return self in INCOME_TAGS


INCOME_TAGS = frozenset({
    Tag.STAKING_REWARD,
    Tag.SALARY,
    Tag.OTHER_INCOME,
    Tag.AIRDROP_INCOME,
    Tag.DIVIDEND,
    Tag.INTEREST,
})


class EventType(StrEnum):
    ACQUISITION = "Acquisition"
    DISPOSAL = "Disposal"


class MatchingRule(StrEnum):
    SAME_DAY = "SameDay"
    BED_AND_BREAKFAST = "BedAndBreakfast"
    POOL = "Pool"

    @property
    def label(self) -> str:
        return {
            MatchingRule.SAME_DAY: "Same-Day",
            MatchingRule.BED_AND_BREAKFAST: "B&B",
            MatchingRule.POOL: "Pool",
        }[self]


class WarningKind(StrEnum):
    NO_COST_BASIS = "NoCostBasis"
    INSUFFICIENT_COST_BASIS = "InsufficientCostBasis"
    UNCLASSIFIED_EVENT = "UnclassifiedEvent"


class TaxBand(StrEnum):
    BASIC = "basic"
    HIGHER = "higher"
    ADDITIONAL = "additional"
