"""Event stream builder: validate the ledger and emit time-ordered taxable events."""

import logging
from collections.abc import Sequence

from cgtledger.exceptions import TransactionError, TransactionErrorKind
from cgtledger.models.events import TaxableEvent
from cgtledger.models.ledger import (
    AssetRegistry,
    ConversionOptions,
    DepositTransaction,
    TradeTransaction,
    WithdrawalTransaction,
)
from cgtledger.normalization.transactions import TransactionNormalizer

logger = logging.getLogger(__name__)

AnyTransaction = TradeTransaction | DepositTransaction | WithdrawalTransaction


class EventStreamBuilder:
    """Collects taxable events from every transaction, sorted by timestamp."""

    def __init__(self, registry: AssetRegistry, options: ConversionOptions | None = None) -> None:
        self.registry = registry
        self.options = options or ConversionOptions()
        self.normalizer = TransactionNormalizer(
            registry, exclude_unlinked=self.options.exclude_unlinked
        )

    def build(self, transactions: Sequence[AnyTransaction]) -> list[TaxableEvent]:
        """Normalize all transactions. Any fatal error aborts the whole build.

        Events are sorted by timestamp; ties keep transaction order (and a
        trade's disposal before its acquisition). Ids are assigned 1..n in
        that order.
        """
        self.validate_links(transactions)

        events: list[TaxableEvent] = []
        for tx in transactions:
            events.extend(self.normalizer.normalize(tx))

        events.sort(key=lambda event: event.datetime)
        numbered = [
            event.model_copy(update={"id": index})
            for index, event in enumerate(events, start=1)
        ]
        logger.debug("Built %d taxable events from %d transactions", len(numbered), len(transactions))
        return numbered

    @staticmethod
    def validate_links(transactions: Sequence[AnyTransaction]) -> None:
        """Transaction ids are unique and transfer links are reciprocal."""
        index: dict[str, AnyTransaction] = {}
        for tx in transactions:
            if tx.id in index:
                raise TransactionError(
                    tx.id, TransactionErrorKind.DUPLICATE_TRANSACTION_ID, "duplicate transaction id"
                )
            index[tx.id] = tx

        for tx in transactions:
            if isinstance(tx, TradeTransaction) or tx.linked_id is None:
                continue
            if isinstance(tx, DepositTransaction):
                expected_type, expected_name = WithdrawalTransaction, "Withdrawal"
            else:
                expected_type, expected_name = DepositTransaction, "Deposit"
            linked = index.get(tx.linked_id)
            if linked is None:
                raise TransactionError(
                    tx.id,
                    TransactionErrorKind.LINKED_TRANSACTION_NOT_FOUND,
                    f"linked transaction not found: {tx.linked_id}",
                )
            if not isinstance(linked, expected_type):
                raise TransactionError(
                    tx.id,
                    TransactionErrorKind.LINKED_TRANSACTION_TYPE_MISMATCH,
                    f"{tx.linked_id} is a {linked.type}, expected a {expected_name}",
                )
            if linked.linked_id != tx.id:
                raise TransactionError(
                    tx.id,
                    TransactionErrorKind.LINKED_TRANSACTION_NOT_RECIPROCAL,
                    f"{tx.linked_id} does not link back to {tx.id}",
                )
