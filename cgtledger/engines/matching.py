"""CGT matching engine: HMRC share identification rules.

Per asset, each disposal is identified against acquisitions in this order
(HMRC Capital Gains Manual CG51560):
  1. Same-day rule: acquisitions on the same calendar day.
  2. Bed & breakfast rule: acquisitions in the following 30 days, earliest first.
  3. Section 104 pool: weighted-average cost of everything else held.

Same-day identification runs for every disposal before any 30-day matching,
so a later disposal's same-day acquisitions are never taken by an earlier
disposal's B&B window. The whole event set must be known up front.

All arithmetic is exact Decimal; nothing is rounded here.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from cgtledger.engines.rates import tax_year_for
from cgtledger.models.enums import MatchingRule, WarningKind
from cgtledger.models.events import TaxableEvent
from cgtledger.models.ledger import is_gbp
from cgtledger.models.reports import (
    CgtReport,
    CgtResult,
    CgtWarning,
    MatchedAcquisition,
    MatchingComponent,
    PoolHistoryEntry,
    PoolState,
    YearEndSnapshot,
)

logger = logging.getLogger(__name__)

BED_AND_BREAKFAST_DAYS = 30


@dataclass
class Lot:
    """An acquisition with a consumable quantity."""

    event: TaxableEvent
    consumed: Decimal = Decimal("0")

    @property
    def acquired_on(self) -> date:
        return self.event.event_date

    @property
    def quantity(self) -> Decimal:
        return self.event.quantity

    @property
    def cost_gbp(self) -> Decimal:
        return self.event.total_cost_gbp

    @property
    def remaining(self) -> Decimal:
        return self.quantity - self.consumed

    def cost_of(self, quantity: Decimal) -> Decimal:
        if quantity == self.quantity:
            return self.cost_gbp
        return self.cost_gbp * quantity / self.quantity

    def take(self, wanted: Decimal) -> tuple[Decimal, Decimal]:
        """Consume up to `wanted` units. Returns (quantity taken, pro-rata cost)."""
        taken = min(self.remaining, wanted)
        self.consumed += taken
        return taken, self.cost_of(taken)

    def reference(self) -> MatchedAcquisition:
        return MatchedAcquisition(
            event_id=self.event.id,
            date=self.acquired_on,
            event_type=self.event.display_type,
            original_quantity=self.quantity,
            original_value_gbp=self.cost_gbp,
            source_transaction_id=self.event.source_transaction_id,
            description=self.event.description,
        )


@dataclass
class Section104Pool:
    asset: str
    quantity: Decimal = Decimal("0")
    cost_gbp: Decimal = Decimal("0")

    def add(self, quantity: Decimal, cost_gbp: Decimal) -> None:
        self.quantity += quantity
        self.cost_gbp += cost_gbp
        logger.debug(
            "Pool %s ADD qty=%s cost=%s -> qty=%s cost=%s",
            self.asset, quantity, cost_gbp, self.quantity, self.cost_gbp,
        )

    def remove(self, quantity: Decimal) -> Decimal:
        """Remove `quantity` at the weighted-average cost and return that cost."""
        if quantity >= self.quantity:
            cost = self.cost_gbp
            self.quantity = Decimal("0")
            self.cost_gbp = Decimal("0")
        else:
            cost = self.cost_gbp * quantity / self.quantity
            self.quantity -= quantity
            self.cost_gbp -= cost
        logger.debug(
            "Pool %s REMOVE qty=%s cost=%s -> qty=%s cost=%s",
            self.asset, quantity, cost, self.quantity, self.cost_gbp,
        )
        return cost

    def state(self) -> PoolState:
        return PoolState(asset=self.asset, quantity=self.quantity, cost_gbp=self.cost_gbp)


class CgtMatchingEngine:
    """Computes gains for every disposal and the running Section 104 pools."""

    def calculate(self, events: Iterable[TaxableEvent]) -> CgtReport:
        """Match all disposals. Pool state is local to this call."""
        by_asset: dict[str, list[TaxableEvent]] = {}
        for event in events:
            if is_gbp(event.asset):
                continue
            by_asset.setdefault(event.asset, []).append(event)

        results: list[CgtResult] = []
        history: list[PoolHistoryEntry] = []
        pools: dict[str, PoolState] = {}
        for asset in sorted(by_asset):
            asset_results, asset_history, pool = self.match_asset(asset, by_asset[asset])
            results.extend(asset_results)
            history.extend(asset_history)
            pools[asset] = pool.state()

        results.sort(key=lambda r: (r.disposal.datetime, r.disposal.id))
        history.sort(key=lambda h: h.date)

        return CgtReport(
            results=results,
            warnings=self._collect_warnings(by_asset, results),
            pools=pools,
            pool_history=history,
            year_end_snapshots=self._year_end_snapshots(history),
        )

    def match_asset(
        self, asset: str, events: list[TaxableEvent]
    ) -> tuple[list[CgtResult], list[PoolHistoryEntry], Section104Pool]:
        """Run the three identification rules over one asset's events."""
        ordered = [
            event for _, event in sorted(
                enumerate(events), key=lambda item: (item[1].datetime, item[1].id, item[0])
            )
        ]
        # Stable sort by day keeps event order within a day
        lots = sorted((Lot(e) for e in ordered if e.is_acquisition), key=lambda lot: lot.acquired_on)
        disposals = sorted((e for e in ordered if e.is_disposal), key=lambda e: e.event_date)

        same_day = self._match_same_day(lots, disposals)

        pool = Section104Pool(asset)
        history: list[PoolHistoryEntry] = []
        results: list[CgtResult] = []
        next_lot = 0

        for disposal, components in zip(disposals, same_day):
            while next_lot < len(lots) and lots[next_lot].acquired_on < disposal.event_date:
                self._add_to_pool(pool, lots[next_lot], history)
                next_lot += 1

            remaining = disposal.quantity - sum((c.quantity for c in components), Decimal("0"))
            if remaining > 0:
                remaining = self._match_bed_and_breakfast(
                    disposal, lots, next_lot, remaining, components
                )

            if remaining > 0 and pool.quantity > 0:
                taken = min(remaining, pool.quantity)
                cost = pool.remove(taken)
                components.append(MatchingComponent(
                    rule=MatchingRule.POOL, quantity=taken, cost_gbp=cost,
                ))
                remaining -= taken
                logger.debug("Pool match: %s %s at cost %s", taken, asset, cost)

            results.append(self._build_result(disposal, components, remaining, pool))
            history.append(self._history_entry(disposal, pool))

        for lot in lots[next_lot:]:
            self._add_to_pool(pool, lot, history)

        return results, history, pool

    @staticmethod
    def _match_same_day(
        lots: list[Lot], disposals: list[TaxableEvent]
    ) -> list[list[MatchingComponent]]:
        by_day: dict[date, list[Lot]] = {}
        for lot in lots:
            by_day.setdefault(lot.acquired_on, []).append(lot)

        matches: list[list[MatchingComponent]] = []
        for disposal in disposals:
            components: list[MatchingComponent] = []
            wanted = disposal.quantity
            for lot in by_day.get(disposal.event_date, []):
                if wanted <= 0:
                    break
                if lot.remaining <= 0:
                    continue
                taken, cost = lot.take(wanted)
                wanted -= taken
                components.append(MatchingComponent(
                    rule=MatchingRule.SAME_DAY, quantity=taken, cost_gbp=cost, matched=lot.reference(),
                ))
                logger.debug("Same-day match: %s %s at cost %s", taken, disposal.asset, cost)
            matches.append(components)
        return matches

    @staticmethod
    def _match_bed_and_breakfast(
        disposal: TaxableEvent,
        lots: list[Lot],
        start: int,
        remaining: Decimal,
        components: list[MatchingComponent],
    ) -> Decimal:
        """Match against lots dated within 30 days after the disposal, earliest first.

        `lots[start:]` are all dated on or after the disposal day.
        """
        window_end = disposal.event_date + timedelta(days=BED_AND_BREAKFAST_DAYS)
        for lot in lots[start:]:
            if remaining <= 0 or lot.acquired_on > window_end:
                break
            if lot.acquired_on == disposal.event_date or lot.remaining <= 0:
                continue
            taken, cost = lot.take(remaining)
            remaining -= taken
            components.append(MatchingComponent(
                rule=MatchingRule.BED_AND_BREAKFAST, quantity=taken, cost_gbp=cost, matched=lot.reference(),
            ))
            logger.debug(
                "B&B match: %s %s on %s at cost %s", taken, disposal.asset, lot.acquired_on, cost
            )
        return remaining

    def _add_to_pool(self, pool: Section104Pool, lot: Lot, history: list[PoolHistoryEntry]) -> None:
        """Whatever same-day and B&B matching left of the lot joins the pool."""
        if lot.remaining > 0:
            pool.add(lot.remaining, lot.cost_of(lot.remaining))
            lot.consumed = lot.quantity
        history.append(self._history_entry(lot.event, pool))

    @staticmethod
    def _history_entry(event: TaxableEvent, pool: Section104Pool) -> PoolHistoryEntry:
        return PoolHistoryEntry(
            date=event.event_date,
            asset=event.asset,
            event_id=event.id,
            event_type=event.event_type,
            tag=event.tag,
            quantity=pool.quantity,
            cost_gbp=pool.cost_gbp,
        )

    @staticmethod
    def _build_result(
        disposal: TaxableEvent,
        components: list[MatchingComponent],
        unmatched: Decimal,
        pool: Section104Pool,
    ) -> CgtResult:
        cost = sum((c.cost_gbp for c in components), Decimal("0"))
        matched = disposal.quantity - unmatched
        warnings: list[CgtWarning] = []

        if disposal.is_unclassified:
            warnings.append(CgtWarning(
                kind=WarningKind.UNCLASSIFIED_EVENT,
                message="Unclassified disposal - review whether it is a sale, gift or transfer",
                source_transaction_ids=[disposal.source_transaction_id],
                related_event_ids=[disposal.id],
            ))
        if unmatched > 0:
            if matched == 0:
                kind = WarningKind.NO_COST_BASIS
                message = f"No matching acquisitions for {unmatched} {disposal.asset} - cost basis is zero"
            else:
                kind = WarningKind.INSUFFICIENT_COST_BASIS
                message = (
                    f"Only {matched} of {disposal.quantity} {disposal.asset} matched - "
                    f"{unmatched} has zero cost basis"
                )
            related = [disposal.id] + [
                c.matched.event_id for c in components if c.matched is not None
            ]
            warnings.append(CgtWarning(
                kind=kind,
                message=message,
                source_transaction_ids=[disposal.source_transaction_id],
                related_event_ids=related,
                available=matched,
                required=disposal.quantity,
            ))

        return CgtResult(
            disposal=disposal,
            tax_year=tax_year_for(disposal.event_date),
            proceeds_gbp=disposal.value_gbp,
            cost_gbp=cost,
            fees_gbp=disposal.fees_gbp,
            gain_gbp=disposal.value_gbp - cost - disposal.fees_gbp,
            components=components,
            unmatched_quantity=unmatched,
            pool_after=pool.state(),
            warnings=warnings,
        )

    @staticmethod
    def _collect_warnings(
        by_asset: dict[str, list[TaxableEvent]], results: list[CgtResult]
    ) -> list[CgtWarning]:
        """Flat warnings list: unclassified acquisitions plus every disposal warning."""
        keyed: list[tuple[TaxableEvent, CgtWarning]] = []
        for events in by_asset.values():
            for event in events:
                if event.is_acquisition and event.is_unclassified:
                    keyed.append((event, CgtWarning(
                        kind=WarningKind.UNCLASSIFIED_EVENT,
                        message="Unclassified acquisition - review whether it is income, a gift or a transfer",
                        source_transaction_ids=[event.source_transaction_id],
                        related_event_ids=[event.id],
                    )))
        for result in results:
            keyed.extend((result.disposal, warning) for warning in result.warnings)

        keyed.sort(key=lambda item: (item[0].datetime, item[0].id))
        return [warning for _, warning in keyed]

    @staticmethod
    def _year_end_snapshots(history: list[PoolHistoryEntry]) -> list[YearEndSnapshot]:
        """Pool balances at the end of every tax year that has events."""
        snapshots: list[YearEndSnapshot] = []
        latest: dict[str, PoolHistoryEntry] = {}
        current_year: int | None = None

        def snapshot(year: int) -> YearEndSnapshot:
            pools = [
                PoolState(asset=asset, quantity=entry.quantity, cost_gbp=entry.cost_gbp)
                for asset, entry in sorted(latest.items())
                if entry.quantity > 0
            ]
            return YearEndSnapshot(tax_year=year, pools=pools)

        for entry in history:
            year = tax_year_for(entry.date)
            if current_year is not None and year > current_year:
                snapshots.append(snapshot(current_year))
            current_year = year
            latest[entry.asset] = entry

        if current_year is not None:
            snapshots.append(snapshot(current_year))
        return snapshots
