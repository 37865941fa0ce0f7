"""Typer CLI interface for cgtledger."""

import json
import logging
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cgtledger.engines import CgtMatchingEngine, IncomeAggregator, TaxSummaryEngine
from cgtledger.engines.rates import tax_year_for, tax_year_label
from cgtledger.exceptions import TaxComputationError
from cgtledger.ingestion import JsonTransactionReader
from cgtledger.models.enums import TaxBand
from cgtledger.models.events import TaxableEvent
from cgtledger.models.ledger import ConversionOptions, LedgerInput
from cgtledger.normalization import EventStreamBuilder
from cgtledger.reports import (
    EventFilter,
    ReportBuilder,
    ReportData,
    SummaryReportGenerator,
    ValidationReportGenerator,
)
from cgtledger.reports.formatting import gbp, quantity

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="cgtledger",
    help="cgtledger: UK Capital Gains Tax and income from a transaction ledger.",
)

FILE_ARGUMENT = typer.Argument("-", help="Ledger JSON file. Reads stdin when omitted or '-'.")
YEAR_OPTION = typer.Option(None, "--year", "-y", help="Tax year by end year (2025 = 2024/25)")
ASSET_OPTION = typer.Option(None, "--asset", "-a", help="Only this asset (e.g. BTC)")
EXCLUDE_UNLINKED_OPTION = typer.Option(
    False,
    "--exclude-unlinked",
    help="Skip unlinked deposits/withdrawals instead of treating them as unclassified events",
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
) -> None:
    """cgtledger: UK Capital Gains Tax and income from a transaction ledger."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_events(file: str, exclude_unlinked: bool, asset: str | None = None) -> list[TaxableEvent]:
    """Read and normalize a ledger. Any fatal error exits with status 2."""
    try:
        ledger = JsonTransactionReader().read(file)
        builder = EventStreamBuilder(
            ledger.registry(), ConversionOptions(exclude_unlinked=exclude_unlinked)
        )
        events = builder.build(ledger.transactions)
    except TaxComputationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2)

    if asset:
        events = [e for e in events if e.asset.upper() == asset.upper()]
    logger.info("Loaded %d events from %s", len(events), file)
    return events


def _write_or_print(text: str, output: Path | None, what: str) -> None:
    if output is None:
        typer.echo(text)
        return
    output.write_text(text)
    typer.echo(f"{what} written to: {output}", err=True)


@app.command()
def report(
    file: str = FILE_ARGUMENT,
    year: int | None = YEAR_OPTION,
    asset: str | None = ASSET_OPTION,
    event_type: EventFilter | None = typer.Option(None, "--event-type", "-t", help="Only these events"),
    json_output: bool = typer.Option(False, "--json", help="Emit the full report as JSON"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the JSON report to a file"),
    exclude_unlinked: bool = EXCLUDE_UNLINKED_OPTION,
) -> None:
    """Event-by-event report with CGT matching details."""
    events = _load_events(file, exclude_unlinked)
    cgt_report = CgtMatchingEngine().calculate(events)
    income_report = IncomeAggregator().aggregate(events)
    data = ReportBuilder().build(events, cgt_report, income_report, year, asset, event_type)

    if json_output or output is not None:
        _write_or_print(data.model_dump_json(indent=2), output, "JSON report")
        return

    console = Console()
    table = Table(title=f"Events ({tax_year_label(year) if year else 'all years'})")
    for column in ("#", "Date", "Type", "Asset", "Quantity", "Value", "Gain", "Rule", "Warnings"):
        table.add_column(column)
    for row in data.events:
        table.add_row(
            str(row.id),
            row.datetime.date().isoformat(),
            row.event_type,
            row.asset,
            quantity(row.quantity),
            gbp(row.value_gbp),
            gbp(row.cgt.gain_gbp) if row.cgt else "",
            row.cgt.rule if row.cgt else "",
            ", ".join(w.value for w in row.warnings),
        )
    console.print(table)

    summary = data.summary
    console.print(
        f"Disposals: {summary.disposal_count}  "
        f"Proceeds: {gbp(summary.total_proceeds)}  "
        f"Costs: {gbp(summary.total_costs)}  "
        f"Gain: {gbp(summary.total_gain)}  "
        f"Income: {gbp(summary.total_income)}"
    )
    if summary.unclassified_count:
        console.print(
            f"Gain including {summary.unclassified_count} unclassified event(s): "
            f"{gbp(summary.total_gain_with_unclassified)}"
        )


@app.command()
def summary(
    file: str = FILE_ARGUMENT,
    year: int | None = YEAR_OPTION,
    asset: str | None = ASSET_OPTION,
    tax_band: TaxBand = typer.Option(
        TaxBand.BASIC,
        "--tax-band",
        "-b",
        envvar="CGTLEDGER_TAX_BAND",
        case_sensitive=False,
        help="Income tax band for the income calculation",
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON instead of text"),
    exclude_unlinked: bool = EXCLUDE_UNLINKED_OPTION,
) -> None:
    """Aggregated CGT and income tax for a tax year."""
    events = _load_events(file, exclude_unlinked, asset)
    cgt_report = CgtMatchingEngine().calculate(events)
    income_report = IncomeAggregator().aggregate(events)

    engine = TaxSummaryEngine()
    cgt = engine.cgt_summary(cgt_report, year)
    income = engine.income_tax(income_report, year, tax_band)

    if json_output:
        payload = {
            "tax_year": tax_year_label(year) if year else None,
            "asset": asset,
            "tax_band": tax_band.value,
            "capital_gains": cgt.model_dump(mode="json"),
            "income": income.model_dump(mode="json"),
            "total_tax_liability": str(cgt.tax_by_band[tax_band] + income.total_tax),
            "notes": engine.warnings,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(SummaryReportGenerator().render(cgt, income, asset, engine.warnings))


@app.command()
def validate(
    file: str = FILE_ARGUMENT,
    year: int | None = YEAR_OPTION,
    exclude_unlinked: bool = EXCLUDE_UNLINKED_OPTION,
) -> None:
    """List warnings that need review. Exits 1 when there are any."""
    events = _load_events(file, exclude_unlinked)
    cgt_report = CgtMatchingEngine().calculate(events)

    years = {event.id: tax_year_for(event.event_date) for event in events}
    warnings = [
        w for w in cgt_report.warnings
        if year is None or (w.related_event_ids and years.get(w.related_event_ids[0]) == year)
    ]
    event_count = sum(1 for e in events if year is None or years[e.id] == year)

    typer.echo(ValidationReportGenerator().render(warnings, event_count), nl=False)
    if warnings:
        raise typer.Exit(1)


@app.command()
def pools(
    file: str = FILE_ARGUMENT,
    year: int | None = YEAR_OPTION,
    asset: str | None = ASSET_OPTION,
    daily: bool = typer.Option(False, "--daily", help="Show every pool change, not year-end balances"),
    exclude_unlinked: bool = EXCLUDE_UNLINKED_OPTION,
) -> None:
    """Section 104 pool balances."""
    events = _load_events(file, exclude_unlinked, asset)
    cgt_report = CgtMatchingEngine().calculate(events)
    console = Console()

    if daily:
        table = Table(title="Pool history")
        for column in ("Date", "Asset", "Event", "Quantity", "Cost", "Cost/unit"):
            table.add_column(column)
        for entry in cgt_report.pool_history:
            if year is not None and tax_year_for(entry.date) != year:
                continue
            unit_cost = entry.cost_gbp / entry.quantity if entry.quantity else None
            table.add_row(
                entry.date.isoformat(),
                entry.asset,
                f"#{entry.event_id} {entry.event_type.value}",
                quantity(entry.quantity),
                gbp(entry.cost_gbp),
                gbp(unit_cost),
            )
        console.print(table)
        return

    for snapshot in cgt_report.year_end_snapshots:
        if year is not None and snapshot.tax_year != year:
            continue
        table = Table(title=f"Pools at end of {tax_year_label(snapshot.tax_year)}")
        for column in ("Asset", "Quantity", "Cost", "Cost/unit"):
            table.add_column(column)
        for pool in snapshot.pools:
            table.add_row(pool.asset, quantity(pool.quantity), gbp(pool.cost_gbp), gbp(pool.cost_per_unit))
        if not snapshot.pools:
            table.add_row("(empty)", "", "", "")
        console.print(table)


@app.command()
def events(
    file: str = FILE_ARGUMENT,
    year: int | None = YEAR_OPTION,
    asset: str | None = ASSET_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Emit events as JSON"),
    exclude_unlinked: bool = EXCLUDE_UNLINKED_OPTION,
) -> None:
    """Normalized taxable events in time order."""
    selected = [
        e for e in _load_events(file, exclude_unlinked, asset)
        if year is None or tax_year_for(e.event_date) == year
    ]

    if json_output:
        typer.echo(json.dumps([e.model_dump(mode="json") for e in selected], indent=2))
        return

    console = Console()
    table = Table(title="Taxable events")
    for column in ("#", "Date", "Type", "Asset", "Quantity", "Value", "Fees", "Tx"):
        table.add_column(column)
    for event in selected:
        table.add_row(
            str(event.id),
            event.event_date.isoformat(),
            event.display_type,
            event.asset,
            quantity(event.quantity),
            gbp(event.value_gbp),
            gbp(event.fees_gbp),
            event.source_transaction_id,
        )
    console.print(table)


class SchemaKind(StrEnum):
    INPUT = "input"
    OUTPUT = "output"


@app.command()
def schema(
    kind: SchemaKind = typer.Argument(
        SchemaKind.INPUT, help="input: the ledger file format; output: the JSON report format"
    ),
) -> None:
    """Print the JSON schema for the ledger file or the JSON report."""
    model = LedgerInput if kind == SchemaKind.INPUT else ReportData
    typer.echo(json.dumps(model.model_json_schema(), indent=2))


if __name__ == "__main__":
    app()
