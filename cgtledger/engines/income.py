"""Income aggregation: income-tagged acquisitions summed per tax year and tag."""

from collections.abc import Iterable
from decimal import Decimal

from cgtledger.engines.rates import tax_year_for
from cgtledger.models.enums import Tag
from cgtledger.models.events import TaxableEvent
from cgtledger.models.reports import IncomeEventRecord, IncomeLine, IncomeReport


class IncomeAggregator:
    """Collects income events and subtotals them by tax year and tag."""

    def aggregate(self, events: Iterable[TaxableEvent], by_asset: bool = False) -> IncomeReport:
        """Sum value_gbp of income-tagged acquisitions.

        Args:
            events: Normalized taxable events (any order).
            by_asset: Also split subtotals per asset.

        Returns:
            IncomeReport with one record per income event and one line per group.
        """
        records: list[IncomeEventRecord] = []
        groups: dict[tuple[int, Tag, str | None], list[Decimal]] = {}

        for event in sorted(events, key=lambda e: (e.datetime, e.id)):
            if not event.is_acquisition or not event.tag.is_income():
                continue
            tax_year = tax_year_for(event.event_date)
            records.append(IncomeEventRecord(
                event_id=event.id,
                source_transaction_id=event.source_transaction_id,
                date=event.event_date,
                tax_year=tax_year,
                tag=event.tag,
                asset=event.asset,
                value_gbp=event.value_gbp,
            ))
            key = (tax_year, event.tag, event.asset if by_asset else None)
            groups.setdefault(key, []).append(event.value_gbp)

        lines = [
            IncomeLine(
                tax_year=tax_year,
                tag=tag,
                asset=asset,
                event_count=len(values),
                total_gbp=sum(values, Decimal("0")),
            )
            for (tax_year, tag, asset), values in sorted(
                groups.items(), key=lambda item: (item[0][0], item[0][1].value, item[0][2] or "")
            )
        ]
        return IncomeReport(events=records, lines=lines)
