"""Tests for the CGT matching engine (same-day, bed & breakfast, Section 104 pool)."""

from datetime import date
from decimal import Decimal

from cgtledger.engines.matching import CgtMatchingEngine, Section104Pool
from cgtledger.models.enums import EventType, MatchingRule, Tag, WarningKind


class TestPoolMatching:
    def setup_method(self):
        self.engine = CgtMatchingEngine()

    def test_disposal_from_pool(self, buy, sell):
        events = [
            buy("2024-01-02T10:00:00", "BTC", "1.0", "10000"),
            sell("2024-06-15T10:00:00", "BTC", "0.4", "5000"),
        ]
        report = self.engine.calculate(events)

        assert len(report.results) == 1
        result = report.results[0]
        assert result.cost_gbp == Decimal("4000")
        assert result.gain_gbp == Decimal("1000")
        assert [c.rule for c in result.components] == [MatchingRule.POOL]
        assert result.components[0].matched is None
        assert result.warnings == []
        assert report.pools["BTC"].quantity == Decimal("0.6")
        assert report.pools["BTC"].cost_gbp == Decimal("6000")

    def test_weighted_average_across_acquisitions(self, buy, sell):
        events = [
            buy("2024-01-01", "ETH", "1", "1000"),
            buy("2024-02-01", "ETH", "1", "2000"),
            sell("2024-06-01", "ETH", "1", "2500"),
        ]
        result = self.engine.calculate(events).results[0]
        assert result.cost_gbp == Decimal("1500")
        assert result.gain_gbp == Decimal("1000")

    def test_pool_average_unchanged_by_splitting_acquisition(self, buy, sell):
        whole = [
            buy("2024-01-01", "BTC", "2", "3000"),
            sell("2024-06-01", "BTC", "0.5", "1000"),
        ]
        split = [
            buy("2024-01-01", "BTC", "0.5", "750"),
            buy("2024-01-01", "BTC", "1.5", "2250"),
            sell("2024-06-01", "BTC", "0.5", "1000"),
        ]
        assert (
            self.engine.calculate(whole).results[0].cost_gbp
            == self.engine.calculate(split).results[0].cost_gbp
            == Decimal("750")
        )

    def test_acquisition_fees_are_part_of_pool_cost(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000", fees_gbp="10"),
            sell("2024-06-01", "BTC", "1", "2000"),
        ]
        result = self.engine.calculate(events).results[0]
        assert result.cost_gbp == Decimal("1010")

    def test_disposal_fees_reduce_gain(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000"),
            sell("2024-06-01", "BTC", "1", "2000", fees_gbp="25"),
        ]
        result = self.engine.calculate(events).results[0]
        assert result.fees_gbp == Decimal("25")
        assert result.gain_gbp == Decimal("975")

    def test_selling_whole_pool_empties_it(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "0.3", "1000"),
            buy("2024-02-01", "BTC", "0.7", "2000"),
            sell("2024-06-01", "BTC", "1", "5000"),
        ]
        report = self.engine.calculate(events)
        assert report.results[0].cost_gbp == Decimal("3000")
        assert report.pools["BTC"].quantity == Decimal("0")
        assert report.pools["BTC"].cost_gbp == Decimal("0")


class TestSameDayMatching:
    def setup_method(self):
        self.engine = CgtMatchingEngine()

    def test_full_same_day_match(self, buy, sell):
        acquisition = buy("2024-06-15T09:00:00", "BTC", "0.5", "6000")
        events = [acquisition, sell("2024-06-15T15:00:00", "BTC", "0.5", "7000")]
        result = self.engine.calculate(events).results[0]

        assert result.cost_gbp == Decimal("6000")
        assert [c.rule for c in result.components] == [MatchingRule.SAME_DAY]
        matched = result.components[0].matched
        assert matched.event_id == acquisition.id
        assert matched.date == date(2024, 6, 15)
        assert matched.original_quantity == Decimal("0.5")
        assert matched.original_value_gbp == Decimal("6000")
        assert matched.source_transaction_id == acquisition.source_transaction_id

    def test_same_day_is_by_calendar_day_not_instant(self, buy, sell):
        events = [
            sell("2024-05-01T01:00:00", "BTC", "1", "600"),
            buy("2024-05-01T23:00:00", "BTC", "1", "500"),
        ]
        result = self.engine.calculate(events).results[0]
        assert result.components[0].rule == MatchingRule.SAME_DAY
        assert result.cost_gbp == Decimal("500")

    def test_same_day_takes_priority_over_pool(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000"),
            buy("2024-06-01T09:00:00", "BTC", "1", "3000"),
            sell("2024-06-01T12:00:00", "BTC", "1", "3500"),
        ]
        report = self.engine.calculate(events)
        assert report.results[0].components[0].rule == MatchingRule.SAME_DAY
        assert report.results[0].cost_gbp == Decimal("3000")
        assert report.pools["BTC"].cost_gbp == Decimal("1000")

    def test_multiple_same_day_lots_consumed_in_order(self, buy, sell):
        events = [
            buy("2024-03-01T09:00:00", "ETH", "1", "100"),
            buy("2024-03-01T10:00:00", "ETH", "1", "300"),
            sell("2024-03-01T12:00:00", "ETH", "1.5", "600"),
        ]
        report = self.engine.calculate(events)
        components = report.results[0].components
        assert [c.quantity for c in components] == [Decimal("1"), Decimal("0.5")]
        assert [c.cost_gbp for c in components] == [Decimal("100"), Decimal("150")]
        # Unused half of the second lot joins the pool
        assert report.pools["ETH"].quantity == Decimal("0.5")
        assert report.pools["ETH"].cost_gbp == Decimal("150")

    def test_later_disposal_keeps_its_same_day_lot(self, buy, sell):
        """A same-day acquisition is not taken by an earlier disposal's B&B window."""
        events = [
            buy("2024-01-01", "BTC", "2", "2000"),
            sell("2024-03-01", "BTC", "1", "1500"),
            sell("2024-03-05T12:00:00", "BTC", "1", "1600"),
            buy("2024-03-05T09:00:00", "BTC", "1", "1700"),
        ]
        first, second = self.engine.calculate(events).results
        assert [c.rule for c in first.components] == [MatchingRule.POOL]
        assert first.cost_gbp == Decimal("1000")
        assert [c.rule for c in second.components] == [MatchingRule.SAME_DAY]
        assert second.cost_gbp == Decimal("1700")


class TestBedAndBreakfastMatching:
    def setup_method(self):
        self.engine = CgtMatchingEngine()

    def test_bed_and_breakfast_then_pool(self, buy, sell):
        events = [
            buy("2024-01-01", "ETH", "0.7", "1400"),
            sell("2024-07-01", "ETH", "1.0", "3000"),
            buy("2024-07-10", "ETH", "0.3", "900"),
        ]
        report = self.engine.calculate(events)
        result = report.results[0]

        assert [c.rule for c in result.components] == [MatchingRule.BED_AND_BREAKFAST, MatchingRule.POOL]
        assert [c.quantity for c in result.components] == [Decimal("0.3"), Decimal("0.7")]
        assert result.components[0].cost_gbp == Decimal("900")
        assert result.components[0].matched.date == date(2024, 7, 10)
        assert result.components[1].cost_gbp == Decimal("1400")
        assert result.gain_gbp == Decimal("700")
        # The B&B-matched acquisition never enters the pool
        assert report.pools["ETH"].quantity == Decimal("0")

    def test_window_includes_day_30(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000"),
            sell("2024-07-01", "BTC", "1", "3000"),
            buy("2024-07-31", "BTC", "1", "2000"),
        ]
        result = self.engine.calculate(events).results[0]
        assert [c.rule for c in result.components] == [MatchingRule.BED_AND_BREAKFAST]
        assert result.cost_gbp == Decimal("2000")

    def test_window_excludes_day_31(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000"),
            sell("2024-07-01", "BTC", "1", "3000"),
            buy("2024-08-01", "BTC", "1", "2000"),
        ]
        report = self.engine.calculate(events)
        result = report.results[0]
        assert [c.rule for c in result.components] == [MatchingRule.POOL]
        assert result.cost_gbp == Decimal("1000")
        assert report.pools["BTC"].cost_gbp == Decimal("2000")

    def test_earliest_acquisition_in_window_matched_first(self, buy, sell):
        events = [
            sell("2024-07-01", "BTC", "1", "3000"),
            buy("2024-07-20", "BTC", "1", "2200"),
            buy("2024-07-05", "BTC", "1", "2100"),
        ]
        result = self.engine.calculate(events).results[0]
        assert result.components[0].matched.date == date(2024, 7, 5)
        assert result.cost_gbp == Decimal("2100")

    def test_unused_part_of_lot_joins_pool(self, buy, sell):
        events = [
            buy("2024-01-01", "ETH", "0.7", "1400"),
            sell("2024-07-01", "ETH", "0.2", "700"),
            buy("2024-07-10", "ETH", "0.3", "900"),
        ]
        report = self.engine.calculate(events)
        assert report.results[0].cost_gbp == Decimal("600")
        assert report.pools["ETH"].quantity == Decimal("0.8")
        assert report.pools["ETH"].cost_gbp == Decimal("1700")

    def test_earlier_disposal_matches_first(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000"),
            sell("2024-07-01", "BTC", "1", "3000"),
            sell("2024-07-05", "BTC", "1", "3100"),
            buy("2024-07-10", "BTC", "1", "2500"),
        ]
        first, second = self.engine.calculate(events).results
        assert [c.rule for c in first.components] == [MatchingRule.BED_AND_BREAKFAST]
        assert [c.rule for c in second.components] == [MatchingRule.POOL]
        assert second.cost_gbp == Decimal("1000")


class TestComponentOrdering:
    def test_same_day_then_bnb_then_pool_regardless_of_input_order(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "1000"),
            sell("2024-03-01T12:00:00", "BTC", "3", "9000"),
            buy("2024-03-01T09:00:00", "BTC", "1", "2500"),
            buy("2024-03-10", "BTC", "1", "2800"),
        ]
        result = CgtMatchingEngine().calculate(list(reversed(events))).results[0]

        assert [c.rule for c in result.components] == [
            MatchingRule.SAME_DAY,
            MatchingRule.BED_AND_BREAKFAST,
            MatchingRule.POOL,
        ]
        assert result.cost_gbp == Decimal("6300")
        assert result.gain_gbp == Decimal("2700")
        assert result.rule_summary == "Same-Day+B&B+Pool"

    def test_never_matches_acquisition_before_disposal_outside_pool(self, buy, sell):
        events = [
            buy("2024-02-28", "BTC", "1", "1000"),
            sell("2024-03-01", "BTC", "1", "2000"),
        ]
        result = CgtMatchingEngine().calculate(events).results[0]
        assert all(c.rule == MatchingRule.POOL for c in result.components)


class TestCostBasisWarnings:
    def setup_method(self):
        self.engine = CgtMatchingEngine()

    def test_no_acquisitions_gives_no_cost_basis(self, sell):
        disposal = sell("2024-06-01", "BTC", "1", "2000", fees_gbp="5")
        result = self.engine.calculate([disposal]).results[0]

        assert result.components == []
        assert result.cost_gbp == Decimal("0")
        assert result.gain_gbp == Decimal("1995")
        assert result.unmatched_quantity == Decimal("1")
        assert result.rule_summary == "None"
        assert [w.kind for w in result.warnings] == [WarningKind.NO_COST_BASIS]
        warning = result.warnings[0]
        assert warning.related_event_ids == [disposal.id]
        assert warning.source_transaction_ids == [disposal.source_transaction_id]
        assert warning.available == Decimal("0")
        assert warning.required == Decimal("1")

    def test_partial_pool_gives_insufficient_cost_basis(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "0.5", "1000"),
            sell("2024-06-01", "BTC", "1", "4000"),
        ]
        result = self.engine.calculate(events).results[0]
        assert result.cost_gbp == Decimal("1000")
        assert result.unmatched_quantity == Decimal("0.5")
        assert [w.kind for w in result.warnings] == [WarningKind.INSUFFICIENT_COST_BASIS]
        assert result.warnings[0].available == Decimal("0.5")

    def test_acquisition_after_window_does_not_cover_disposal(self, buy, sell):
        events = [
            sell("2024-06-01", "BTC", "1", "4000"),
            buy("2024-08-01", "BTC", "1", "3000"),
        ]
        report = self.engine.calculate(events)
        assert report.results[0].warnings[0].kind == WarningKind.NO_COST_BASIS
        assert report.pools["BTC"].quantity == Decimal("1")

    def test_matched_quantity_never_exceeds_disposal(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "0.25", "100"),
            buy("2024-03-01", "BTC", "0.25", "200"),
            sell("2024-03-01", "BTC", "1", "1000"),
            buy("2024-03-15", "BTC", "0.1", "90"),
            sell("2024-05-01", "BTC", "0.1", "120"),
            buy("2024-05-01", "BTC", "2", "2000"),
        ]
        for result in self.engine.calculate(events).results:
            assert result.matched_quantity <= result.disposal.quantity
            if not result.warnings:
                assert result.matched_quantity == result.disposal.quantity
            assert result.matched_quantity + result.unmatched_quantity == result.disposal.quantity


class TestEngineBehaviour:
    def test_rerun_gives_identical_results(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "3", "10000"),
            sell("2024-02-01", "BTC", "1", "4000"),
            buy("2024-02-10", "BTC", "0.5", "1900"),
            sell("2024-04-01", "BTC", "1.2", "4500"),
        ]
        engine = CgtMatchingEngine()
        assert engine.calculate(events) == engine.calculate(events)
        assert CgtMatchingEngine().calculate(events) == engine.calculate(events)

    def test_assets_are_matched_independently(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "1", "10000"),
            sell("2024-06-01", "ETH", "1", "2000"),
        ]
        report = CgtMatchingEngine().calculate(events)
        assert report.results[0].warnings[0].kind == WarningKind.NO_COST_BASIS
        assert report.pools["BTC"].quantity == Decimal("1")

    def test_gbp_events_are_ignored(self, make_event):
        events = [make_event("2024-06-01", EventType.ACQUISITION, "GBP", "500", "500", tag=Tag.INTEREST)]
        report = CgtMatchingEngine().calculate(events)
        assert report.results == []
        assert "GBP" not in report.pools

    def test_results_sorted_by_disposal_time_across_assets(self, buy, sell):
        events = [
            buy("2024-01-01", "ETH", "2", "2000"),
            buy("2024-01-01", "BTC", "2", "2000"),
            sell("2024-05-01", "ETH", "1", "1500"),
            sell("2024-03-01", "BTC", "1", "1500"),
        ]
        report = CgtMatchingEngine().calculate(events)
        assert [r.disposal.asset for r in report.results] == ["BTC", "ETH"]


class TestUnclassifiedEvents:
    def test_unclassified_disposal_is_warned_and_excluded_from_totals(self, buy, sell):
        events = [
            buy("2024-05-01", "BTC", "1", "1000"),
            sell("2024-06-01", "BTC", "0.5", "0", tag=Tag.UNCLASSIFIED),
            sell("2024-07-01", "BTC", "0.5", "800"),
        ]
        report = CgtMatchingEngine().calculate(events)
        unclassified = report.results[0]

        assert unclassified.is_unclassified
        assert unclassified.gain_gbp == Decimal("-500")
        assert [w.kind for w in unclassified.warnings] == [WarningKind.UNCLASSIFIED_EVENT]
        assert report.total_gain(2025) == Decimal("300")
        assert report.total_gain(2025, include_unclassified=True) == Decimal("-200")
        assert report.disposal_count(2025) == 2

    def test_unclassified_acquisition_in_flat_warnings(self, buy, sell):
        deposit = buy("2024-05-01", "BTC", "1", "0", tag=Tag.UNCLASSIFIED)
        disposal = sell("2024-06-01", "BTC", "2", "3000")
        report = CgtMatchingEngine().calculate([deposit, disposal])

        assert [w.kind for w in report.warnings] == [
            WarningKind.UNCLASSIFIED_EVENT,
            WarningKind.INSUFFICIENT_COST_BASIS,
        ]
        assert report.warnings[0].related_event_ids == [deposit.id]
        assert report.warnings[1].related_event_ids[0] == disposal.id


class TestPoolHistory:
    def test_history_and_year_end_snapshots(self, buy, sell):
        events = [
            buy("2024-01-02", "BTC", "1.0", "10000"),
            sell("2024-06-15", "BTC", "0.4", "5000"),
        ]
        report = CgtMatchingEngine().calculate(events)

        assert [(h.event_type, h.quantity, h.cost_gbp) for h in report.pool_history] == [
            (EventType.ACQUISITION, Decimal("1.0"), Decimal("10000")),
            (EventType.DISPOSAL, Decimal("0.6"), Decimal("6000")),
        ]
        assert [s.tax_year for s in report.year_end_snapshots] == [2024, 2025]
        assert report.year_end_snapshots[0].pools[0].quantity == Decimal("1.0")
        assert report.year_end_snapshots[1].pools[0].cost_gbp == Decimal("6000")

    def test_empty_pools_left_out_of_snapshot(self, buy, sell):
        events = [
            buy("2024-05-01", "ETH", "1", "1000"),
            sell("2024-06-01", "ETH", "1", "1200"),
            buy("2024-05-01", "BTC", "1", "20000"),
        ]
        snapshot = CgtMatchingEngine().calculate(events).year_end_snapshots[-1]
        assert [p.asset for p in snapshot.pools] == ["BTC"]

    def test_result_carries_pool_after_disposal(self, buy, sell):
        events = [
            buy("2024-01-01", "BTC", "2", "3000"),
            sell("2024-06-01", "BTC", "0.5", "1000"),
        ]
        result = CgtMatchingEngine().calculate(events).results[0]
        assert result.pool_after.quantity == Decimal("1.5")
        assert result.pool_after.cost_gbp == Decimal("2250")
        assert result.tax_year == 2025


class TestSection104Pool:
    def test_add_and_remove_at_average_cost(self):
        pool = Section104Pool("BTC")
        pool.add(Decimal("1"), Decimal("100"))
        pool.add(Decimal("3"), Decimal("500"))
        cost = pool.remove(Decimal("2"))
        assert cost == Decimal("300")
        assert pool.quantity == Decimal("2")
        assert pool.cost_gbp == Decimal("300")
        assert pool.state().cost_per_unit == Decimal("150")

    def test_remove_more_than_held_takes_all_cost(self):
        pool = Section104Pool("BTC")
        pool.add(Decimal("1"), Decimal("100"))
        assert pool.remove(Decimal("5")) == Decimal("100")
        assert pool.quantity == Decimal("0")
        assert pool.cost_gbp == Decimal("0")
