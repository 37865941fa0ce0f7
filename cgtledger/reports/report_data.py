"""Report data: the full event list with CGT drill-down, warnings, and totals.

Serialized to JSON by `cgtledger report --json`. Money is rounded to pennies
here; quantities are kept exact.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field

from cgtledger.engines.rates import tax_year_for, tax_year_label
from cgtledger.engines.summary import to_pennies
from cgtledger.models.enums import WarningKind
from cgtledger.models.events import TaxableEvent
from cgtledger.models.reports import (
    CgtReport,
    CgtResult,
    CgtWarning,
    IncomeEventRecord,
    IncomeReport,
    MatchingComponent,
)


class EventFilter(StrEnum):
    ACQUISITION = "acquisition"
    DISPOSAL = "disposal"
    INCOME = "income"

    def matches(self, event: TaxableEvent) -> bool:
        if self == EventFilter.ACQUISITION:
            return event.is_acquisition
        if self == EventFilter.DISPOSAL:
            return event.is_disposal
        return event.is_acquisition and event.tag.is_income()


class MatchingComponentRow(BaseModel):
    rule: str
    quantity: Decimal
    cost_gbp: Decimal
    matched_date: date | None = None
    matched_event_id: int | None = None
    matched_event_type: str | None = None
    matched_tax_year: str | None = None
    matched_original_quantity: Decimal | None = None
    matched_original_value_gbp: Decimal | None = None
    matched_description: str | None = None


class CgtDetails(BaseModel):
    proceeds_gbp: Decimal
    cost_gbp: Decimal
    fees_gbp: Decimal
    gain_gbp: Decimal
    rule: str
    unmatched_quantity: Decimal
    matching_components: list[MatchingComponentRow] = Field(default_factory=list)


class EventRow(BaseModel):
    id: int
    source_transaction_id: str
    datetime: datetime
    tax_year: str
    event_type: str
    asset: str
    asset_class: str | None = None
    quantity: Decimal
    value_gbp: Decimal
    fees_gbp: Decimal
    description: str | None = None
    warnings: list[WarningKind] = Field(default_factory=list)
    cgt: CgtDetails | None = None


class ReportSummary(BaseModel):
    total_proceeds: Decimal
    total_costs: Decimal
    total_gain: Decimal
    total_proceeds_with_unclassified: Decimal
    total_costs_with_unclassified: Decimal
    total_gain_with_unclassified: Decimal
    total_income: Decimal
    event_count: int
    disposal_count: int
    income_count: int
    warning_count: int
    unclassified_count: int
    cost_basis_warning_count: int
    tax_years: list[str] = Field(default_factory=list)
    assets: list[str] = Field(default_factory=list)
    min_date: date | None = None
    max_date: date | None = None


class ReportData(BaseModel):
    events: list[EventRow] = Field(default_factory=list)
    warnings: list[CgtWarning] = Field(default_factory=list)
    summary: ReportSummary


class ReportBuilder:
    """Joins events, CGT results, and income into one filtered report."""

    def build(
        self,
        events: list[TaxableEvent],
        cgt_report: CgtReport,
        income_report: IncomeReport,
        year: int | None = None,
        asset: str | None = None,
        event_filter: EventFilter | None = None,
    ) -> ReportData:
        """Filter events by tax year, asset (case-insensitive), and kind.

        Totals are computed over the filtered disposals, so an asset filter
        narrows the summary as well as the rows.
        """
        selected = [
            event for event in events
            if (year is None or tax_year_for(event.event_date) == year)
            and (asset is None or event.asset.upper() == asset.upper())
            and (event_filter is None or event_filter.matches(event))
        ]
        selected_ids = {event.id for event in selected}

        rows = [self._event_row(event, cgt_report.result_for(event.id)) for event in selected]
        warnings = [
            warning for warning in cgt_report.warnings
            if warning.related_event_ids and warning.related_event_ids[0] in selected_ids
        ]
        results = [
            result for result in cgt_report.filter_results(year)
            if result.disposal.id in selected_ids
        ]
        income = [record for record in income_report.events if record.event_id in selected_ids]

        return ReportData(
            events=rows,
            warnings=warnings,
            summary=self._summary(selected, rows, results, income),
        )

    @staticmethod
    def _event_row(event: TaxableEvent, result: CgtResult | None) -> EventRow:
        warnings: list[WarningKind] = []
        if event.is_unclassified:
            warnings.append(WarningKind.UNCLASSIFIED_EVENT)
        cgt = None
        if result is not None:
            for warning in result.warnings:
                if warning.kind not in warnings:
                    warnings.append(warning.kind)
            cgt = CgtDetails(
                proceeds_gbp=to_pennies(result.proceeds_gbp),
                cost_gbp=to_pennies(result.cost_gbp),
                fees_gbp=to_pennies(result.fees_gbp),
                gain_gbp=to_pennies(result.gain_gbp),
                rule=result.rule_summary,
                unmatched_quantity=result.unmatched_quantity,
                matching_components=[_component_row(c) for c in result.components],
            )

        return EventRow(
            id=event.id,
            source_transaction_id=event.source_transaction_id,
            datetime=event.datetime,
            tax_year=tax_year_label(tax_year_for(event.event_date)),
            event_type=event.display_type,
            asset=event.asset,
            asset_class=event.asset_class.value if event.asset_class else None,
            quantity=event.quantity,
            value_gbp=to_pennies(event.value_gbp),
            fees_gbp=to_pennies(event.fees_gbp),
            description=event.description,
            warnings=warnings,
            cgt=cgt,
        )

    @staticmethod
    def _summary(
        selected: list[TaxableEvent],
        rows: list[EventRow],
        results: list[CgtResult],
        income: list[IncomeEventRecord],
    ) -> ReportSummary:
        classified = [r for r in results if not r.is_unclassified]
        zero = Decimal("0")
        dates = [event.event_date for event in selected]
        cost_basis_kinds = {WarningKind.NO_COST_BASIS, WarningKind.INSUFFICIENT_COST_BASIS}

        return ReportSummary(
            total_proceeds=to_pennies(sum((r.proceeds_gbp for r in classified), zero)),
            total_costs=to_pennies(sum((r.cost_gbp + r.fees_gbp for r in classified), zero)),
            total_gain=to_pennies(sum((r.gain_gbp for r in classified), zero)),
            total_proceeds_with_unclassified=to_pennies(sum((r.proceeds_gbp for r in results), zero)),
            total_costs_with_unclassified=to_pennies(
                sum((r.cost_gbp + r.fees_gbp for r in results), zero)
            ),
            total_gain_with_unclassified=to_pennies(sum((r.gain_gbp for r in results), zero)),
            total_income=to_pennies(sum((record.value_gbp for record in income), zero)),
            event_count=len(rows),
            disposal_count=len(results),
            income_count=len(income),
            warning_count=sum(1 for row in rows if row.warnings),
            unclassified_count=sum(1 for event in selected if event.is_unclassified),
            cost_basis_warning_count=sum(
                1 for row in rows if cost_basis_kinds.intersection(row.warnings)
            ),
            tax_years=[tax_year_label(y) for y in sorted({tax_year_for(d) for d in dates})],
            assets=sorted({event.asset for event in selected}),
            min_date=min(dates) if dates else None,
            max_date=max(dates) if dates else None,
        )


def _component_row(component: MatchingComponent) -> MatchingComponentRow:
    row = MatchingComponentRow(
        rule=component.rule.label,
        quantity=component.quantity,
        cost_gbp=to_pennies(component.cost_gbp),
    )
    matched = component.matched
    if matched is None:
        return row
    return row.model_copy(update={
        "matched_date": matched.date,
        "matched_event_id": matched.event_id,
        "matched_event_type": matched.event_type,
        "matched_tax_year": tax_year_label(tax_year_for(matched.date)),
        "matched_original_quantity": matched.original_quantity,
        "matched_original_value_gbp": to_pennies(matched.original_value_gbp),
        "matched_description": matched.description,
    })
