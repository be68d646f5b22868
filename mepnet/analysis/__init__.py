"""Whole-model analysis: report assembly, report models and export."""

from mepnet.analysis.assembler import AnalysisError, ReportAssembler, is_eligible
from mepnet.analysis.report import AnalysisReport, PipeRecord, SystemAnalysis
from mepnet.analysis.writer import export_report, write_tree

__all__ = [
    "AnalysisError",
    "AnalysisReport",
    "PipeRecord",
    "ReportAssembler",
    "SystemAnalysis",
    "export_report",
    "is_eligible",
    "write_tree",
]
