"""CGT, income, and summary output models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from cgtledger.models.enums import EventType, MatchingRule, Tag, TaxBand, WarningKind
from cgtledger.models.events import TaxableEvent


class MatchedAcquisition(BaseModel):
    """The acquisition a same-day or B&B component was matched against."""

    event_id: int
    date: date
    event_type: str
    original_quantity: Decimal
    original_value_gbp: Decimal
    source_transaction_id: str
    description: str | None = None


class MatchingComponent(BaseModel):
    rule: MatchingRule
    quantity: Decimal
    cost_gbp: Decimal
    matched: MatchedAcquisition | None = None


class PoolState(BaseModel):
    asset: str
    quantity: Decimal = Decimal("0")
    cost_gbp: Decimal = Decimal("0")

    @property
    def cost_per_unit(self) -> Decimal:
        if self.quantity == 0:
            return Decimal("0")
        return self.cost_gbp / self.quantity


class CgtWarning(BaseModel):
    kind: WarningKind
    message: str
    source_transaction_ids: list[str] = Field(default_factory=list)
    related_event_ids: list[int] = Field(default_factory=list)
    available: Decimal | None = None
    required: Decimal | None = None


class CgtResult(BaseModel):
    """Outcome of matching one disposal."""

    disposal: TaxableEvent
    tax_year: int
    proceeds_gbp: Decimal
    cost_gbp: Decimal
    fees_gbp: Decimal
    gain_gbp: Decimal
    components: list[MatchingComponent] = Field(default_factory=list)
    unmatched_quantity: Decimal = Decimal("0")
    pool_after: PoolState
    warnings: list[CgtWarning] = Field(default_factory=list)

    @property
    def matched_quantity(self) -> Decimal:
        return sum((c.quantity for c in self.components), Decimal("0"))

    @property
    def is_unclassified(self) -> bool:
        return self.disposal.is_unclassified

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def rule_summary(self) -> str:
        """e.g. "Same-Day", "B&B+Pool", or "None" when nothing matched."""
        rules: list[str] = []
        for component in self.components:
            if component.rule.label not in rules:
                rules.append(component.rule.label)
        return "+".join(rules) if rules else "None"


class PoolHistoryEntry(BaseModel):
    date: date
    asset: str
    event_id: int
    event_type: EventType
    tag: Tag
    quantity: Decimal
    cost_gbp: Decimal


class YearEndSnapshot(BaseModel):
    tax_year: int
    pools: list[PoolState] = Field(default_factory=list)


class CgtReport(BaseModel):
    results: list[CgtResult] = Field(default_factory=list)
    warnings: list[CgtWarning] = Field(default_factory=list)
    pools: dict[str, PoolState] = Field(default_factory=dict)
    pool_history: list[PoolHistoryEntry] = Field(default_factory=list)
    year_end_snapshots: list[YearEndSnapshot] = Field(default_factory=list)

    def filter_results(
        self, year: int | None = None, include_unclassified: bool = True
    ) -> list[CgtResult]:
        return [
            r for r in self.results
            if (year is None or r.tax_year == year)
            and (include_unclassified or not r.is_unclassified)
        ]

    def total_proceeds(self, year: int | None = None, include_unclassified: bool = False) -> Decimal:
        return sum((r.proceeds_gbp for r in self.filter_results(year, include_unclassified)), Decimal("0"))

    def total_costs(self, year: int | None = None, include_unclassified: bool = False) -> Decimal:
        """Allowable costs plus disposal fees."""
        return sum(
            (r.cost_gbp + r.fees_gbp for r in self.filter_results(year, include_unclassified)),
            Decimal("0"),
        )

    def total_gain(self, year: int | None = None, include_unclassified: bool = False) -> Decimal:
        return sum((r.gain_gbp for r in self.filter_results(year, include_unclassified)), Decimal("0"))

    def disposal_count(self, year: int | None = None, include_unclassified: bool = True) -> int:
        return len(self.filter_results(year, include_unclassified))

    def warning_count(self, year: int | None = None) -> int:
        return sum(1 for r in self.filter_results(year) if r.has_warnings)

    def result_for(self, event_id: int) -> CgtResult | None:
        for result in self.results:
            if result.disposal.id == event_id:
                return result
        return None


class IncomeEventRecord(BaseModel):
    event_id: int
    source_transaction_id: str
    date: date
    tax_year: int
    tag: Tag
    asset: str
    value_gbp: Decimal


class IncomeLine(BaseModel):
    """Subtotal for one (tax year, tag[, asset]) group."""

    tax_year: int
    tag: Tag
    asset: str | None = None
    event_count: int
    total_gbp: Decimal


class IncomeReport(BaseModel):
    events: list[IncomeEventRecord] = Field(default_factory=list)
    lines: list[IncomeLine] = Field(default_factory=list)

    def tax_years(self) -> list[int]:
        return sorted({line.tax_year for line in self.lines})

    def by_tag(self, year: int | None = None) -> dict[Tag, Decimal]:
        totals: dict[Tag, Decimal] = {}
        for line in self.lines:
            if year is not None and line.tax_year != year:
                continue
            totals[line.tag] = totals.get(line.tag, Decimal("0")) + line.total_gbp
        return totals

    def total(self, year: int | None = None) -> Decimal:
        return sum(self.by_tag(year).values(), Decimal("0"))

    def event_count(self, year: int | None = None) -> int:
        return sum(1 for e in self.events if year is None or e.tax_year == year)


class CgtSummary(BaseModel):
    tax_year: int | None
    disposal_count: int
    flagged_disposal_count: int = 0
    total_proceeds: Decimal
    total_costs: Decimal
    total_gain: Decimal
    total_proceeds_with_unclassified: Decimal
    total_costs_with_unclassified: Decimal
    total_gain_with_unclassified: Decimal
    exempt_amount: Decimal
    exempt_amount_used: Decimal
    taxable_gain: Decimal
    rates: dict[TaxBand, Decimal] = Field(default_factory=dict)
    tax_by_band: dict[TaxBand, Decimal] = Field(default_factory=dict)


class IncomeTaxLine(BaseModel):
    tag: Tag
    income: Decimal
    allowance: Decimal
    taxable: Decimal
    rate: Decimal
    tax: Decimal


class IncomeTaxSummary(BaseModel):
    tax_year: int | None
    band: TaxBand
    lines: list[IncomeTaxLine] = Field(default_factory=list)
    total_income: Decimal
    total_tax: Decimal
