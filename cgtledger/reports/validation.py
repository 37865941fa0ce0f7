"""Validation report generator: warnings that need a human decision."""

from cgtledger.models.enums import WarningKind
from cgtledger.models.reports import CgtWarning
from cgtledger.reports.formatting import build_environment


class ValidationReportGenerator:
    """Lists warnings grouped by kind."""

    def __init__(self) -> None:
        self.env = build_environment()

    def render(self, warnings: list[CgtWarning], event_count: int) -> str:
        grouped: dict[WarningKind, list[CgtWarning]] = {}
        for warning in warnings:
            grouped.setdefault(warning.kind, []).append(warning)
        template = self.env.get_template("validate.txt")
        return template.render(
            groups=[(kind, grouped[kind]) for kind in WarningKind if kind in grouped],
            warning_count=len(warnings),
            event_count=event_count,
        )
