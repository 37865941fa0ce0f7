"""Transaction normalization: one raw transaction -> zero, one or two taxable events.

Validation is driven by an explicit (transaction type, tag) dispatch table.
Every pair that has no handler is rejected with InvalidTagForType.
"""

import logging
from collections.abc import Callable
from decimal import Decimal

from cgtledger.engines.price import PriceResolver
from cgtledger.exceptions import PriceError, TransactionError, TransactionErrorKind
from cgtledger.models.enums import INCOME_TAGS, EventType, Tag, TransactionType
from cgtledger.models.events import TaxableEvent
from cgtledger.models.ledger import (
    AssetRegistry,
    DepositTransaction,
    Price,
    TradeTransaction,
    WithdrawalTransaction,
    is_gbp,
)

logger = logging.getLogger(__name__)

AnyTransaction = TradeTransaction | DepositTransaction | WithdrawalTransaction
Handler = Callable[[AnyTransaction], list[TaxableEvent]]


class TransactionNormalizer:
    """Validates transactions against their type and tag and emits taxable events."""

    def __init__(
        self,
        registry: AssetRegistry,
        exclude_unlinked: bool = False,
        resolver: PriceResolver | None = None,
    ) -> None:
        self.registry = registry
        self.exclude_unlinked = exclude_unlinked
        self.resolver = resolver or PriceResolver()
        self._handlers = self._build_dispatch()

    def _build_dispatch(self) -> dict[tuple[TransactionType, Tag], Handler]:
        handlers: dict[tuple[TransactionType, Tag], Handler] = {
            (TransactionType.TRADE, Tag.UNCLASSIFIED): self._trade,
            (TransactionType.TRADE, Tag.TRADE): self._trade,
            (TransactionType.DEPOSIT, Tag.UNCLASSIFIED): self._unclassified_transfer,
            (TransactionType.DEPOSIT, Tag.AIRDROP): self._airdrop_deposit,
            (TransactionType.DEPOSIT, Tag.GIFT): self._gift_transfer,
            (TransactionType.WITHDRAWAL, Tag.UNCLASSIFIED): self._unclassified_transfer,
            (TransactionType.WITHDRAWAL, Tag.GIFT): self._gift_transfer,
        }
        for tag in INCOME_TAGS:
            handlers[(TransactionType.DEPOSIT, tag)] = self._income_deposit
        return handlers

    def handler_for(self, tx_type: TransactionType, tag: Tag) -> Handler:
        return self._handlers.get((tx_type, tag), self._reject_tag)

    def normalize(self, tx: AnyTransaction) -> list[TaxableEvent]:
        """Convert one transaction to taxable events (ids are assigned later)."""
        self._check_assets(tx)
        handler = self.handler_for(TransactionType(tx.type), tx.tag)
        try:
            for price in (tx.price, tx.fee.price if tx.fee else None):
                if price is not None:
                    self.resolver.validate(price)
            return handler(tx)
        except PriceError as exc:
            raise TransactionError(tx.id, exc.kind, exc.message) from exc

    # --- Validation helpers ---

    def _check_assets(self, tx: AnyTransaction) -> None:
        for symbol in tx.symbols():
            if not is_gbp(symbol) and symbol not in self.registry:
                raise TransactionError(
                    tx.id, TransactionErrorKind.UNKNOWN_ASSET, f"unknown asset '{symbol}'"
                )

    @staticmethod
    def _reject_tag(tx: AnyTransaction) -> list[TaxableEvent]:
        raise TransactionError(
            tx.id,
            TransactionErrorKind.INVALID_TAG_FOR_TYPE,
            f"tag {tx.tag.value} is not valid for a {tx.type}",
        )

    @staticmethod
    def _reject_tagged_link(tx: DepositTransaction | WithdrawalTransaction) -> None:
        if tx.linked_id is None:
            return
        kind = (
            TransactionErrorKind.TAGGED_DEPOSIT_LINKED
            if isinstance(tx, DepositTransaction)
            else TransactionErrorKind.TAGGED_WITHDRAWAL_LINKED
        )
        raise TransactionError(
            tx.id, kind, f"{tx.tag.value} {tx.type.lower()} cannot be linked to {tx.linked_id}"
        )

    @staticmethod
    def _require_price(tx: AnyTransaction) -> Price:
        if tx.price is None:
            raise TransactionError(
                tx.id,
                TransactionErrorKind.MISSING_TAGGED_PRICE,
                f"price required for {tx.tag.value} {tx.type.lower()}",
            )
        return tx.price

    def _fee_gbp(
        self, tx: AnyTransaction, priced_asset: str | None, price: Price | None
    ) -> Decimal:
        if tx.fee is None:
            return Decimal("0")
        return self.resolver.resolve_fee(tx.fee, priced_asset, price)

    def _event(
        self,
        tx: AnyTransaction,
        event_type: EventType,
        tag: Tag,
        symbol: str,
        quantity: Decimal,
        value_gbp: Decimal,
        fees_gbp: Decimal = Decimal("0"),
    ) -> TaxableEvent:
        if quantity <= 0:
            raise TransactionError(
                tx.id,
                TransactionErrorKind.INVALID_QUANTITY,
                f"{symbol} quantity must be positive, got {quantity}",
            )
        return TaxableEvent(
            source_transaction_id=tx.id,
            datetime=tx.datetime,
            event_type=event_type,
            tag=tag,
            asset=symbol,
            asset_class=None if is_gbp(symbol) else self.registry.asset_class(symbol),
            quantity=quantity,
            value_gbp=value_gbp,
            fees_gbp=fees_gbp,
            description=tx.description,
        )

    # --- Handlers ---

    def _trade(self, tx: TradeTransaction) -> list[TaxableEvent]:
        """Trades always carry the Trade tag; the bought side is the priced side."""
        sold, bought = tx.sold, tx.bought

        if tx.price is not None:
            value_gbp = self.resolver.value(tx.price, bought.quantity, bought.symbol)
        elif is_gbp(sold.symbol):
            value_gbp = sold.quantity
        elif is_gbp(bought.symbol):
            value_gbp = bought.quantity
        else:
            raise TransactionError(
                tx.id,
                TransactionErrorKind.MISSING_PRICE,
                f"price required when neither side is GBP ({sold.symbol} -> {bought.symbol})",
            )

        fees_gbp = self._fee_gbp(tx, bought.symbol, tx.price)
        has_disposal = not is_gbp(sold.symbol)
        has_acquisition = not is_gbp(bought.symbol)

        # The fee sits on the disposal when there is one, else on the acquisition
        events: list[TaxableEvent] = []
        if has_disposal:
            events.append(self._event(
                tx, EventType.DISPOSAL, Tag.TRADE, sold.symbol, sold.quantity, value_gbp, fees_gbp,
            ))
        if has_acquisition:
            events.append(self._event(
                tx, EventType.ACQUISITION, Tag.TRADE, bought.symbol, bought.quantity, value_gbp,
                Decimal("0") if has_disposal else fees_gbp,
            ))
        return events

    def _unclassified_transfer(
        self, tx: DepositTransaction | WithdrawalTransaction
    ) -> list[TaxableEvent]:
        """Linked transfers move assets between own accounts and are not taxable.

        Unlinked ones become zero-value UnclassifiedIn/UnclassifiedOut events
        unless the caller excludes them.
        """
        amount = tx.amount
        if tx.linked_id is not None or is_gbp(amount.symbol):
            return []

        direction = "deposit" if isinstance(tx, DepositTransaction) else "withdrawal"
        if self.exclude_unlinked:
            logger.warning("Skipping unlinked %s: id=%s asset=%s", direction, tx.id, amount.symbol)
            return []

        if tx.price is not None:
            self.resolver.check_base(tx.price, amount.symbol)
        fees_gbp = self._fee_gbp(tx, tx.price.base if tx.price else None, tx.price)
        event_type = EventType.ACQUISITION if isinstance(tx, DepositTransaction) else EventType.DISPOSAL

        logger.warning(
            "Unlinked %s treated as %s: id=%s asset=%s",
            direction, event_type.value.lower(), tx.id, amount.symbol,
        )
        return [self._event(
            tx, event_type, Tag.UNCLASSIFIED, amount.symbol, amount.quantity, Decimal("0"), fees_gbp,
        )]

    def _income_deposit(self, tx: DepositTransaction) -> list[TaxableEvent]:
        self._reject_tagged_link(tx)
        amount = tx.amount
        if is_gbp(amount.symbol):
            return [self._event(
                tx, EventType.ACQUISITION, tx.tag, amount.symbol, amount.quantity, amount.quantity,
                self._fee_gbp(tx, None, None),
            )]

        price = self._require_price(tx)
        value_gbp = self.resolver.value(price, amount.quantity, amount.symbol)
        fees_gbp = self._fee_gbp(tx, amount.symbol, price)
        return [self._event(
            tx, EventType.ACQUISITION, tx.tag, amount.symbol, amount.quantity, value_gbp, fees_gbp,
        )]

    def _airdrop_deposit(self, tx: DepositTransaction) -> list[TaxableEvent]:
        """Non-income airdrops are acquired at zero cost."""
        self._reject_tagged_link(tx)
        if tx.price is not None:
            raise TransactionError(
                tx.id,
                TransactionErrorKind.AIRDROP_PRICE_NOT_ALLOWED,
                "Airdrop deposits are acquired at zero cost; use AirdropIncome for priced airdrops",
            )
        amount = tx.amount
        if is_gbp(amount.symbol):
            return []
        return [self._event(
            tx, EventType.ACQUISITION, Tag.AIRDROP, amount.symbol, amount.quantity, Decimal("0"),
            self._fee_gbp(tx, None, None),
        )]

    def _gift_transfer(self, tx: DepositTransaction | WithdrawalTransaction) -> list[TaxableEvent]:
        """Gifts in and out are valued at market price (GiftIn / GiftOut)."""
        self._reject_tagged_link(tx)
        amount = tx.amount
        if is_gbp(amount.symbol):
            return []

        price = self._require_price(tx)
        value_gbp = self.resolver.value(price, amount.quantity, amount.symbol)
        fees_gbp = self._fee_gbp(tx, amount.symbol, price)
        event_type = EventType.ACQUISITION if isinstance(tx, DepositTransaction) else EventType.DISPOSAL
        return [self._event(
            tx, event_type, Tag.GIFT, amount.symbol, amount.quantity, value_gbp, fees_gbp,
        )]
