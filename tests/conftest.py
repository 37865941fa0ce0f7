"""Shared test fixtures for cgtledger."""

import itertools
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cgtledger.models.enums import AssetClass, EventType, Tag
from cgtledger.models.events import TaxableEvent
from cgtledger.models.ledger import AssetEntry, AssetRegistry


@pytest.fixture
def registry() -> AssetRegistry:
    return AssetRegistry([
        AssetEntry(symbol="BTC"),
        AssetEntry(symbol="ETH"),
        AssetEntry(symbol="DOT"),
        AssetEntry(symbol="AAPL", asset_class=AssetClass.STOCK),
    ])


@pytest.fixture
def make_event():
    """Factory for taxable events with sequential ids.

    make_event("2024-01-02", EventType.ACQUISITION, "BTC", "1", "10000")
    """
    ids = itertools.count(1)

    def _make(
        when: str,
        event_type: EventType,
        asset: str,
        quantity: str,
        value_gbp: str,
        fees_gbp: str = "0",
        tag: Tag = Tag.TRADE,
        tx_id: str | None = None,
    ) -> TaxableEvent:
        event_id = next(ids)
        moment = datetime.fromisoformat(when)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return TaxableEvent(
            id=event_id,
            source_transaction_id=tx_id or f"tx-{event_id}",
            datetime=moment,
            event_type=event_type,
            tag=tag,
            asset=asset,
            asset_class=AssetClass.CRYPTO,
            quantity=Decimal(quantity),
            value_gbp=Decimal(value_gbp),
            fees_gbp=Decimal(fees_gbp),
        )

    return _make


@pytest.fixture
def buy(make_event):
    def _buy(when: str, asset: str, quantity: str, cost: str, **kwargs) -> TaxableEvent:
        return make_event(when, EventType.ACQUISITION, asset, quantity, cost, **kwargs)

    return _buy


@pytest.fixture
def sell(make_event):
    def _sell(when: str, asset: str, quantity: str, proceeds: str, **kwargs) -> TaxableEvent:
        return make_event(when, EventType.DISPOSAL, asset, quantity, proceeds, **kwargs)

    return _sell


@pytest.fixture
def sample_ledger() -> dict:
    """A small ledger touching every rule: pool, same-day, B&B, income, unlinked transfer."""
    return {
        "assets": [
            {"symbol": "BTC"},
            {"symbol": "ETH"},
            {"symbol": "AAPL", "asset_class": "Stock"},
        ],
        "transactions": [
            {
                "id": "buy-btc",
                "datetime": "2024-01-02T10:00:00+00:00",
                "account": "exchange",
                "type": "Trade",
                "sold": {"symbol": "GBP", "quantity": "10000"},
                "bought": {"symbol": "BTC", "quantity": "1"},
            },
            {
                "id": "sell-btc",
                "datetime": "2024-06-15T10:00:00+00:00",
                "account": "exchange",
                "type": "Trade",
                "sold": {"symbol": "BTC", "quantity": "0.4"},
                "bought": {"symbol": "GBP", "quantity": "5000"},
                "fee": {"asset": "GBP", "amount": "10"},
            },
            {
                "id": "stake-eth",
                "datetime": "2024-05-01T00:00:00+00:00",
                "account": "staking",
                "type": "Deposit",
                "tag": "StakingReward",
                "amount": {"symbol": "ETH", "quantity": "0.1"},
                "price": {"base": "ETH", "rate": "2500"},
            },
            {
                "id": "move-out",
                "datetime": "2024-07-01T00:00:00+00:00",
                "account": "exchange",
                "type": "Withdrawal",
                "amount": {"symbol": "BTC", "quantity": "0.1"},
                "linked_deposit": "move-in",
            },
            {
                "id": "move-in",
                "datetime": "2024-07-01T00:05:00+00:00",
                "account": "wallet",
                "type": "Deposit",
                "amount": {"symbol": "BTC", "quantity": "0.1"},
                "linked_withdrawal": "move-out",
            },
        ],
    }


@pytest.fixture
def ledger_file(tmp_path, sample_ledger):
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps(sample_ledger))
    return path
