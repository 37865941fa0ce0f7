"""Tax computation engines."""

from cgtledger.engines.income import IncomeAggregator
from cgtledger.engines.matching import CgtMatchingEngine, Section104Pool
from cgtledger.engines.price import PriceResolver
from cgtledger.engines.summary import TaxSummaryEngine

__all__ = [
    "CgtMatchingEngine",
    "IncomeAggregator",
    "PriceResolver",
    "Section104Pool",
    "TaxSummaryEngine",
]
