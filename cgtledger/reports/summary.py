"""Tax summary report generator."""

from decimal import Decimal

from cgtledger.models.reports import CgtSummary, IncomeTaxSummary
from cgtledger.reports.formatting import build_environment


class SummaryReportGenerator:
    """Generates the human-readable CGT and income tax summary."""

    def __init__(self) -> None:
        self.env = build_environment()

    def render(
        self,
        cgt: CgtSummary,
        income: IncomeTaxSummary,
        asset: str | None = None,
        notes: list[str] | None = None,
    ) -> str:
        """Render the summary using the Jinja2 template."""
        template = self.env.get_template("summary.txt")
        total_tax = cgt.tax_by_band.get(income.band, Decimal("0")) + income.total_tax
        return template.render(cgt=cgt, income=income, asset=asset, notes=notes or [], total_tax=total_tax)
