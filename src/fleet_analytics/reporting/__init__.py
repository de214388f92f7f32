"""Report models and the combined report assembler."""

from .combined import assemble_combined_report
from .schemas import (
    BatterySummary,
    Bucket,
    CombinedReport,
    CombinedReportRow,
    Domain,
    DomainReport,
    DrivingEventsReport,
    DrivingSummary,
    EngineSummary,
    FuelEventsReport,
    FuelSummary,
    TireSummary,
)

__all__ = [
    "BatterySummary",
    "Bucket",
    "CombinedReport",
    "CombinedReportRow",
    "Domain",
    "DomainReport",
    "DrivingEventsReport",
    "DrivingSummary",
    "EngineSummary",
    "FuelEventsReport",
    "FuelSummary",
    "TireSummary",
    "assemble_combined_report",
]
