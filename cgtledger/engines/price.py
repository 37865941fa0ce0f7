"""Price resolver: GBP valuation of priced quantities and fees."""

from decimal import Decimal

from cgtledger.exceptions import PriceError, TransactionErrorKind
from cgtledger.models.ledger import Fee, Price, is_gbp


class PriceResolver:
    """Converts quantities to GBP using direct or FX-chained prices.

    Direct GBP price:  value = quantity * rate
    FX price:          value = quantity * rate * fx_rate
    """

    def validate(self, price: Price) -> None:
        """Reject prices that cannot value anything: non-positive rates or a half-specified FX leg."""
        if price.rate <= 0:
            raise PriceError(TransactionErrorKind.INVALID_PRICE, f"rate must be positive, got {price.rate}")
        if (price.quote is None) != (price.fx_rate is None):
            raise PriceError(
                TransactionErrorKind.INVALID_PRICE,
                "quote and fx_rate must both be present or both absent",
            )
        if price.quote is not None and not price.quote.strip():
            raise PriceError(TransactionErrorKind.INVALID_PRICE, "quote cannot be empty")
        if price.fx_rate is not None and price.fx_rate <= 0:
            raise PriceError(
                TransactionErrorKind.INVALID_PRICE, f"fx_rate must be positive, got {price.fx_rate}"
            )

    def to_gbp(self, price: Price, quantity: Decimal) -> Decimal:
        """Value `quantity` units at `price` without checking what it prices."""
        self.validate(price)
        if price.fx_rate is None:
            return quantity * price.rate
        return quantity * price.rate * price.fx_rate

    def value(self, price: Price, quantity: Decimal, expected_base: str) -> Decimal:
        """Value `quantity` of `expected_base`; the price must be quoted for that asset."""
        self.check_base(price, expected_base)
        return self.to_gbp(price, quantity)

    @staticmethod
    def check_base(price: Price, expected_base: str) -> None:
        if price.base != expected_base:
            raise PriceError(
                TransactionErrorKind.PRICE_BASE_MISMATCH,
                f"price base '{price.base}' does not match expected asset '{expected_base}'",
            )

    def resolve_fee(
        self,
        fee: Fee,
        priced_asset: str | None = None,
        tx_price: Price | None = None,
    ) -> Decimal:
        """GBP value of a fee.

        Resolution order:
          1. GBP fee: face value, no price needed.
          2. Explicit fee price (must price the fee asset).
          3. The transaction price, when the fee is paid in the priced asset.
          4. Otherwise the fee cannot be valued.
        """
        if is_gbp(fee.asset):
            return fee.amount
        if fee.price is not None:
            return self.value(fee.price, fee.amount, fee.asset)
        if priced_asset is not None and tx_price is not None and fee.asset == priced_asset:
            return self.to_gbp(tx_price, fee.amount)
        raise PriceError(
            TransactionErrorKind.MISSING_FEE_PRICE,
            f"fee price required for non-GBP fee asset: {fee.asset}",
        )
