"""Report generation for cgtledger."""

from cgtledger.reports.report_data import EventFilter, ReportBuilder, ReportData
from cgtledger.reports.summary import SummaryReportGenerator
from cgtledger.reports.validation import ValidationReportGenerator

__all__ = [
    "EventFilter",
    "ReportBuilder",
    "ReportData",
    "SummaryReportGenerator",
    "ValidationReportGenerator",
]
