"""UK tax-year tables.

Capital Gains Tax annual exempt amounts and rates, income tax rates,
dividend rates and allowance, and the personal savings allowance.
Keyed by tax year, expressed as the calendar year in which the tax year ends
(2025 = 2024/25). Never hardcode rates in computation functions.

Sources:
  - HMRC "Capital Gains Tax: what you pay it on, rates and allowances"
  - HMRC "Income Tax rates and Personal Allowances"
  - HMRC "Tax on dividends", "Tax on savings interest"
"""

from datetime import date
from decimal import Decimal

from cgtledger.models.enums import TaxBand

# ---------------------------------------------------------------------------
# Tax year boundaries: 6 April to 5 April.
# ---------------------------------------------------------------------------
TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6


def tax_year_for(day: date) -> int:
    """Return the tax year (end year) enclosing a calendar date."""
    if (day.month, day.day) >= (TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY):
        return day.year + 1
    return day.year


def tax_year_label(year: int) -> str:
    """Display form, e.g. 2025 -> "2024/25"."""
    return f"{year - 1}/{year % 100:02d}"


def tax_year_start(year: int) -> date:
    return date(year - 1, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY)


def tax_year_end(year: int) -> date:
    return date(year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY - 1)


# ---------------------------------------------------------------------------
# CGT annual exempt amount
# ---------------------------------------------------------------------------
CGT_ANNUAL_EXEMPT_AMOUNT: dict[int, Decimal] = {
    2021: Decimal("12300"),
    2022: Decimal("12300"),
    2023: Decimal("12300"),
    2024: Decimal("6000"),
    2025: Decimal("3000"),
    2026: Decimal("3000"),
}

# ---------------------------------------------------------------------------
# CGT rates for non-residential assets. The 2024/25 rates apply from
# 30 October 2024 (Autumn Budget); disposals before that date were 10%/20%.
# ---------------------------------------------------------------------------
CGT_RATES: dict[int, dict[TaxBand, Decimal]] = {
    2021: {TaxBand.BASIC: Decimal("0.10"), TaxBand.HIGHER: Decimal("0.20"), TaxBand.ADDITIONAL: Decimal("0.20")},
    2022: {TaxBand.BASIC: Decimal("0.10"), TaxBand.HIGHER: Decimal("0.20"), TaxBand.ADDITIONAL: Decimal("0.20")},
    2023: {TaxBand.BASIC: Decimal("0.10"), TaxBand.HIGHER: Decimal("0.20"), TaxBand.ADDITIONAL: Decimal("0.20")},
    2024: {TaxBand.BASIC: Decimal("0.10"), TaxBand.HIGHER: Decimal("0.20"), TaxBand.ADDITIONAL: Decimal("0.20")},
    2025: {TaxBand.BASIC: Decimal("0.18"), TaxBand.HIGHER: Decimal("0.24"), TaxBand.ADDITIONAL: Decimal("0.24")},
    2026: {TaxBand.BASIC: Decimal("0.18"), TaxBand.HIGHER: Decimal("0.24"), TaxBand.ADDITIONAL: Decimal("0.24")},
}

# ---------------------------------------------------------------------------
# Income tax rates (rest of UK, non-savings non-dividend income)
# ---------------------------------------------------------------------------
INCOME_TAX_RATES: dict[TaxBand, Decimal] = {
    TaxBand.BASIC: Decimal("0.20"),
    TaxBand.HIGHER: Decimal("0.40"),
    TaxBand.ADDITIONAL: Decimal("0.45"),
}

# ---------------------------------------------------------------------------
# Dividend rates and dividend allowance
# ---------------------------------------------------------------------------
DIVIDEND_RATES: dict[TaxBand, Decimal] = {
    TaxBand.BASIC: Decimal("0.0875"),
    TaxBand.HIGHER: Decimal("0.3375"),
    TaxBand.ADDITIONAL: Decimal("0.3935"),
}

DIVIDEND_ALLOWANCE: dict[int, Decimal] = {
    2021: Decimal("2000"),
    2022: Decimal("2000"),
    2023: Decimal("2000"),
    2024: Decimal("1000"),
    2025: Decimal("500"),
    2026: Decimal("500"),
}

# ---------------------------------------------------------------------------
# Personal savings allowance (interest), by band. Unchanged since 2016/17.
# ---------------------------------------------------------------------------
PERSONAL_SAVINGS_ALLOWANCE: dict[TaxBand, Decimal] = {
    TaxBand.BASIC: Decimal("1000"),
    TaxBand.HIGHER: Decimal("500"),
    TaxBand.ADDITIONAL: Decimal("0"),
}


def _nearest_year(table: dict[int, Decimal] | dict[int, dict], year: int) -> int:
    known = sorted(table)
    if year < known[0]:
        return known[0]
    if year > known[-1]:
        return known[-1]
    return year


def cgt_exempt_amount(year: int) -> Decimal:
    return CGT_ANNUAL_EXEMPT_AMOUNT[_nearest_year(CGT_ANNUAL_EXEMPT_AMOUNT, year)]


def cgt_rate(year: int, band: TaxBand) -> Decimal:
    return CGT_RATES[_nearest_year(CGT_RATES, year)][band]


def income_tax_rate(band: TaxBand) -> Decimal:
    return INCOME_TAX_RATES[band]


def dividend_rate(band: TaxBand) -> Decimal:
    return DIVIDEND_RATES[band]


def dividend_allowance(year: int) -> Decimal:
    return DIVIDEND_ALLOWANCE[_nearest_year(DIVIDEND_ALLOWANCE, year)]


def savings_allowance(band: TaxBand) -> Decimal:
    return PERSONAL_SAVINGS_ALLOWANCE[band]
