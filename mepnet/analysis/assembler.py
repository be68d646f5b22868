"""ReportAssembler — main entry point for a whole-model analysis run.

Usage::

    from mepnet.analysis import ReportAssembler
    from mepnet.sources import load_model_json

    report = ReportAssembler(load_model_json("office.json")).analyze()
    print(report.summary())

One traversal per eligible network, one spacing check over every device in
the model.  A failing network is recorded without a tree; only a failure to
enumerate the model at all aborts the run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from mepnet.analysis.report import AnalysisReport, PipeRecord, SystemAnalysis
from mepnet.config import UNASSIGNED_NETWORK_NAMES
from mepnet.graph.traversal import TraversalTree
from mepnet.models.element import (
    Device,
    ElementCategory,
    Network,
    NetworkClassification,
    PhysicalElement,
)
from mepnet.proximity.spacing import SpacingAnalyzer, compliance_rate
from mepnet.settings import AnalysisSettings
from mepnet.sources.base import ModelSource

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """The model could not be analysed at all."""


def is_eligible(network: Network, classification: NetworkClassification) -> bool:
    """True when *network* qualifies for traversal.

    Requires more than one element, a real (assigned) name, and the
    source's well-connected flag.
    """
    name = (classification.name or "").strip().lower()
    return (
        len(network.element_ids) > 1
        and name not in UNASSIGNED_NETWORK_NAMES
        and classification.well_connected
    )


def summarize_elements(
    analysis: SystemAnalysis, elements: list[PhysicalElement]
) -> None:
    """Fill element, sprinkler, pipe and fitting counts on *analysis*."""
    analysis.element_count = len(elements)
    for element in elements:
        if element.category == ElementCategory.TERMINAL_DEVICE:
            analysis.sprinklers.append(element.id)
        elif element.category == ElementCategory.FITTING:
            analysis.fittings.append(element.id)
        elif element.category == ElementCategory.PIPE:
            geometry = element.pipe
            record = PipeRecord(
                element_id=element.id,
                diameter=geometry.diameter if geometry else 0.0,
                length=geometry.length if geometry else 0.0,
            )
            analysis.pipes.append(record)
            analysis.total_pipe_length += record.length
    analysis.sprinkler_count = len(analysis.sprinklers)


class ReportAssembler:
    """Combine per-network traversal and model-wide spacing into one report.

    Parameters
    ----------
    source:
        The model source to enumerate.
    settings:
        Run settings; defaults to :class:`AnalysisSettings` defaults.
    """

    def __init__(
        self,
        source: ModelSource,
        settings: AnalysisSettings | None = None,
    ) -> None:
        self.source = source
        self.settings = settings or AnalysisSettings()
        self.analyzer = SpacingAnalyzer.from_settings(self.settings)

    def _wanted(self, classification: NetworkClassification) -> bool:
        if self.settings.fire_protection_only and not classification.is_fire_protection:
            return False
        domains = self.settings.network_domains
        if domains and classification.domain not in domains:
            return False
        return True

    def analyze_network(
        self,
        network: Network,
        classification: NetworkClassification,
        traverse: bool = True,
    ) -> SystemAnalysis:
        """Counts and (optionally) the traversal tree for one network."""
        analysis = SystemAnalysis(
            system_id=network.id,
            system_name=network.name,
            system_type=network.system_type,
            domain=classification.domain,
            is_well_connected=classification.well_connected,
            is_fire_protection=classification.is_fire_protection,
            element_count=len(network.element_ids),
        )

        try:
            elements = self.source.enumerate_elements(network)
            summarize_elements(analysis, elements)
        except Exception as exc:
            logger.warning(
                "Could not enumerate elements of network %s (%s)",
                network.id, network.name, exc_info=True,
            )
            analysis.traversal_error = f"Element enumeration failed: {exc}"
            return analysis

        if not traverse:
            return analysis

        try:
            tree = TraversalTree.from_elements(
                elements,
                member_ids=network.element_ids,
                base_element_id=network.base_element_id,
            )
            if tree.traverse():
                analysis.graph_json = tree.dump_top_down_json()
            else:
                logger.warning(
                    "Network %s (%s) is flagged well connected but is not a single "
                    "connected component; no tree attached",
                    network.id, network.name,
                )
                analysis.traversal_error = "Network is not a single connected component"
        except Exception as exc:
            logger.warning(
                "Traversal failed for network %s (%s)",
                network.id, network.name, exc_info=True,
            )
            analysis.traversal_error = f"Traversal failed: {exc}"

        return analysis

    def analyze(self, model_name: str | None = None) -> AnalysisReport:
        """Run the full analysis.

        Raises
        ------
        AnalysisError
            If the source cannot enumerate networks or devices.
        """
        try:
            devices: list[Device] = self.source.enumerate_devices()
            networks = self.source.enumerate_networks()
            name = model_name or self.source.model_name
        except Exception as exc:
            raise AnalysisError(f"Error analyzing sprinkler systems: {exc}") from exc

        logger.info(
            "Analysing %s: %d networks, %d devices", name, len(networks), len(devices)
        )

        systems: list[SystemAnalysis] = []
        for network in networks:
            try:
                classification = self.source.classify_network(network)
            except Exception as exc:
                logger.warning(
                    "Could not classify network %s (%s)", network.id, network.name,
                    exc_info=True,
                )
                systems.append(SystemAnalysis(
                    system_id=network.id,
                    system_name=network.name,
                    system_type=network.system_type,
                    element_count=len(network.element_ids),
                    traversal_error=f"Classification failed: {exc}",
                ))
                continue

            if not self._wanted(classification):
                continue

            eligible = is_eligible(network, classification)
            if not eligible and not self.settings.include_ineligible_networks:
                logger.debug("Skipping ineligible network %s (%s)", network.id, network.name)
                continue

            systems.append(self.analyze_network(network, classification, traverse=eligible))

        systems.sort(key=lambda s: s.system_id)

        violations = self.analyzer.analyze(devices)
        report = AnalysisReport(
            model_name=name,
            analysis_date=datetime.now(timezone.utc),
            total_sprinklers=len(devices),
            total_systems=len(systems),
            compliance_rate=compliance_rate(len(devices), len(violations)),
            min_spacing_feet=self.analyzer.min_spacing,
            max_spacing_feet=self.analyzer.max_spacing,
            systems=systems,
            spacing_violations=violations,
        )

        logger.info(
            "Analysis complete: %d systems, %d violations, %.1f%% compliant",
            report.total_systems, len(violations), report.compliance_rate,
        )
        return report
