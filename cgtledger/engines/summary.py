"""Tax summary: annual exempt amount, taxable gain, and banded tax due.

Rates and allowances come from `cgtledger.engines.rates`. Money is quantized
to pennies here and nowhere earlier.
"""

from decimal import ROUND_HALF_UP, Decimal

from cgtledger.engines import rates
from cgtledger.models.enums import Tag, TaxBand
from cgtledger.models.reports import (
    CgtReport,
    CgtSummary,
    IncomeReport,
    IncomeTaxLine,
    IncomeTaxSummary,
)

PENNY = Decimal("0.01")
DEFAULT_RATE_YEAR = 2025


def to_pennies(amount: Decimal) -> Decimal:
    return amount.quantize(PENNY, rounding=ROUND_HALF_UP)


class TaxSummaryEngine:
    """Applies UK rate tables to CGT and income totals."""

    def __init__(self) -> None:
        self.warnings: list[str] = []

    def cgt_summary(
        self,
        report: CgtReport,
        year: int | None = None,
        bands: list[TaxBand] | None = None,
    ) -> CgtSummary:
        """Totals for one tax year (or all years) with tax at each requested band.

        Unclassified disposals are excluded from the headline totals and
        reported separately in the *_with_unclassified fields.
        """
        rate_year = year or DEFAULT_RATE_YEAR
        if year is None:
            self.warnings.append(
                f"No tax year given; using {rates.tax_year_label(rate_year)} rates and allowance"
            )
        bands = bands or list(TaxBand)

        total_gain = report.total_gain(year)
        exempt = rates.cgt_exempt_amount(rate_year)
        exempt_used = min(max(total_gain, Decimal("0")), exempt)
        taxable_gain = max(total_gain - exempt, Decimal("0"))
        band_rates = {band: rates.cgt_rate(rate_year, band) for band in bands}

        return CgtSummary(
            tax_year=year,
            disposal_count=report.disposal_count(year),
            flagged_disposal_count=report.warning_count(year),
            total_proceeds=to_pennies(report.total_proceeds(year)),
            total_costs=to_pennies(report.total_costs(year)),
            total_gain=to_pennies(total_gain),
            total_proceeds_with_unclassified=to_pennies(report.total_proceeds(year, include_unclassified=True)),
            total_costs_with_unclassified=to_pennies(report.total_costs(year, include_unclassified=True)),
            total_gain_with_unclassified=to_pennies(report.total_gain(year, include_unclassified=True)),
            exempt_amount=exempt,
            exempt_amount_used=to_pennies(exempt_used),
            taxable_gain=to_pennies(taxable_gain),
            rates=band_rates,
            tax_by_band={band: to_pennies(taxable_gain * rate) for band, rate in band_rates.items()},
        )

    def income_tax(
        self,
        report: IncomeReport,
        year: int | None = None,
        band: TaxBand = TaxBand.BASIC,
    ) -> IncomeTaxSummary:
        """Income tax per tag at a flat band rate.

        Dividends use the dividend allowance and dividend rates, interest the
        personal savings allowance; every other income tag is taxed at the
        income tax rate for the band with no allowance.
        """
        rate_year = year or DEFAULT_RATE_YEAR
        lines: list[IncomeTaxLine] = []

        for tag, income in sorted(report.by_tag(year).items(), key=lambda item: item[0].value):
            if tag == Tag.DIVIDEND:
                allowance = rates.dividend_allowance(rate_year)
                rate = rates.dividend_rate(band)
            elif tag == Tag.INTEREST:
                allowance = rates.savings_allowance(band)
                rate = rates.income_tax_rate(band)
            else:
                allowance = Decimal("0")
                rate = rates.income_tax_rate(band)
            taxable = max(income - allowance, Decimal("0"))
            lines.append(IncomeTaxLine(
                tag=tag,
                income=to_pennies(income),
                allowance=allowance,
                taxable=to_pennies(taxable),
                rate=rate,
                tax=to_pennies(taxable * rate),
            ))

        return IncomeTaxSummary(
            tax_year=year,
            band=band,
            lines=lines,
            total_income=to_pennies(report.total(year)),
            total_tax=sum((line.tax for line in lines), Decimal("0")),
        )
