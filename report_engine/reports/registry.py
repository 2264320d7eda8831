"""
Report registry: report name -> definition.
"""
import logging
from typing import Dict, List

from report_engine.core.error_taxonomy import UnknownReportError
from report_engine.reports.accomplishment import FinancialReport, InterventionsReport, MonthlyReport
from report_engine.reports.base import ReportDefinition
from report_engine.reports.geographic import PicsReport
from report_engine.reports.program import (
    Bar1Report,
    Bed1Report,
    Bed2Report,
    Bed3Report,
    BpFormsReport,
    WfpReport,
)

logger = logging.getLogger(__name__)

REPORTS: Dict[str, ReportDefinition] = {
    definition.name: definition
    for definition in (
        Bar1Report(),
        Bed1Report(),
        Bed2Report(),
        Bed3Report(),
        BpFormsReport(),
        WfpReport(),
        PicsReport(),
        MonthlyReport(),
        FinancialReport(),
        InterventionsReport(),
    )
}


def get_report_definition(name: str) -> ReportDefinition:
    """
    Look up a report by name (case-insensitive).

    Raises:
        UnknownReportError: If no report is registered under the name
    """
    key = (name or "").strip().upper()
    if key not in REPORTS:
        raise UnknownReportError(f"Unknown report: {name!r}", available=list_reports())
    return REPORTS[key]


def list_reports() -> List[str]:
    return list(REPORTS.keys())
