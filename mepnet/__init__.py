"""mepnet — MEP network connectivity trees and sprinkler spacing analysis."""

__version__ = "1.0.0"

from mepnet.analysis.assembler import AnalysisError, ReportAssembler
from mepnet.analysis.report import AnalysisReport, SystemAnalysis
from mepnet.analysis.writer import export_report
from mepnet.graph.connectivity import build_adjacency
from mepnet.graph.traversal import TraversalTree
from mepnet.models.element import Device, Network, PhysicalElement
from mepnet.models.violation import SpacingViolation
from mepnet.proximity.spacing import SpacingAnalyzer, compliance_rate
from mepnet.settings import AnalysisSettings, load_settings
from mepnet.sources.base import ModelSource, SourceError
from mepnet.sources.memory import InMemorySource, load_model_json

__all__ = [
    "__version__",
    # Entity model
    "Device",
    "Network",
    "PhysicalElement",
    "SpacingViolation",
    # Graph
    "TraversalTree",
    "build_adjacency",
    # Proximity
    "SpacingAnalyzer",
    "compliance_rate",
    # Analysis
    "AnalysisError",
    "AnalysisReport",
    "ReportAssembler",
    "SystemAnalysis",
    "export_report",
    # Settings & sources
    "AnalysisSettings",
    "InMemorySource",
    "ModelSource",
    "SourceError",
    "load_model_json",
    "load_settings",
]
