"""Jinja2 environment and number filters shared by the text reports."""

from decimal import Decimal
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from cgtledger.engines.rates import tax_year_label
from cgtledger.engines.summary import to_pennies

TEMPLATE_DIR = Path(__file__).parent / "templates"


def gbp(amount: Decimal | None) -> str:
    """£1,234.56, with a leading minus for losses."""
    if amount is None:
        return "-"
    value = to_pennies(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"


def percent(rate: Decimal) -> str:
    """Decimal("0.24") -> "24%", Decimal("0.0875") -> "8.75%"."""
    return f"{(rate * 100).normalize():f}%"


def quantity(amount: Decimal) -> str:
    """Exact quantity without trailing zeros."""
    if amount == amount.to_integral_value():
        return f"{amount.quantize(Decimal('1')):f}"
    return f"{amount.normalize():f}"


def year_label(year: int | None) -> str:
    return tax_year_label(year) if year is not None else "all years"


def build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["gbp"] = gbp
    env.filters["percent"] = percent
    env.filters["quantity"] = quantity
    env.filters["year_label"] = year_label
    return env
