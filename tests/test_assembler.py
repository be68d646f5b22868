"""Tests for the report assembler and the aggregate report."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mepnet.analysis.assembler import AnalysisError, ReportAssembler, is_eligible
from mepnet.analysis.report import AnalysisReport
from mepnet.analysis.writer import export_report, report_filename, write_tree
from mepnet.graph.traversal import TraversalTree, edges_from_top_down
from mepnet.models.element import (
    Connector,
    ConnectorRef,
    Device,
    ElementCategory,
    Location,
    Network,
    NetworkClassification,
    PhysicalElement,
    PipeGeometry,
)
from mepnet.settings import AnalysisSettings
from mepnet.sources.memory import InMemorySource


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _join(elements: dict[int, PhysicalElement], a: int, b: int) -> None:
    ea, eb = elements[a], elements[b]
    ca, cb = len(ea.connectors), len(eb.connectors)
    ea.connectors.append(Connector(id=ca, owner_id=a, peer=ConnectorRef(element_id=b, connector_id=cb)))
    eb.connectors.append(Connector(id=cb, owner_id=b, peer=ConnectorRef(element_id=a, connector_id=ca)))


def _model_elements() -> dict[int, PhysicalElement]:
    """Two small systems: 10-11-12 (connected) and 20-21 + 22 (broken)."""
    elements = {
        10: PhysicalElement(id=10, category=ElementCategory.PIPE, pipe=PipeGeometry(length=12.5, diameter=0.125)),
        11: PhysicalElement(id=11, name="Tee", category=ElementCategory.FITTING),
        12: PhysicalElement(id=12, category=ElementCategory.PIPE, pipe=PipeGeometry(length=7.5, diameter=0.083)),
        13: PhysicalElement(id=13, name="Head", category=ElementCategory.TERMINAL_DEVICE, location=Location(x=0, y=0, z=9)),
        20: PhysicalElement(id=20, category=ElementCategory.PIPE, pipe=PipeGeometry(length=3.0)),
        21: PhysicalElement(id=21, category=ElementCategory.FITTING),
        22: PhysicalElement(id=22, category=ElementCategory.PIPE, pipe=PipeGeometry(length=4.0)),
        30: PhysicalElement(id=30, category=ElementCategory.PIPE),
        31: PhysicalElement(id=31, category=ElementCategory.PIPE),
    }
    _join(elements, 10, 11)
    _join(elements, 11, 12)
    _join(elements, 12, 13)
    _join(elements, 20, 21)
    _join(elements, 30, 31)
    return elements


def _networks() -> list[Network]:
    return [
        Network(id=2, name="Sprinkler Wet 2", system_type="FireProtectionWet",
                element_ids=[20, 21, 22], well_connected=True),
        Network(id=1, name="Sprinkler Wet 1", system_type="FireProtectionWet",
                element_ids=[10, 11, 12, 13], well_connected=True),
        Network(id=3, name="Unassigned", element_ids=[30, 31], well_connected=True),
        Network(id=4, name="Domestic Cold Water", system_type="DomesticColdWater",
                element_ids=[30, 31], well_connected=False),
        Network(id=5, name="Lonely", element_ids=[30], well_connected=True),
    ]


def _devices() -> list[Device]:
    return [
        Device(id=100, location=Location(x=0, y=0, z=9), level_name="Level 1"),
        Device(id=101, location=Location(x=5, y=0, z=9), level_name="Level 1"),
        Device(id=102, location=Location(x=20, y=0, z=9), level_name="Level 1"),
        Device(id=103, location=Location(x=0, y=0, z=20), level_name="Level 2"),
    ]


def _source(**kwargs) -> InMemorySource:
    return InMemorySource(
        model_name=kwargs.get("model_name", "Office"),
        networks=kwargs.get("networks", _networks()),
        elements=kwargs.get("elements", _model_elements().values()),
        devices=kwargs.get("devices", _devices()),
    )


class _BrokenSource(InMemorySource):
    def enumerate_devices(self):
        raise OSError("document closed")


class _FlakySource(InMemorySource):
    def enumerate_elements(self, network):
        if network.id == 2:
            raise RuntimeError("element 21 unreadable")
        return super().enumerate_elements(network)


class _UnclassifiableSource(InMemorySource):
    def classify_network(self, network):
        if network.id == 1:
            raise ValueError("system type unreadable")
        return super().classify_network(network)


def _deep_source(ids: list[int], edges: list[tuple[int, int]]) -> InMemorySource:
    """One fire protection network over *ids* joined by *edges*."""
    elements = {
        i: PhysicalElement(id=i, category=ElementCategory.PIPE, pipe=PipeGeometry(length=1.0))
        for i in ids
    }
    for a, b in edges:
        _join(elements, a, b)
    network = Network(id=1, name="Sprinkler Grid", system_type="FireProtectionWet",
                      element_ids=ids, well_connected=True)
    return InMemorySource(model_name="Grid", networks=[network],
                          elements=elements.values(), devices=_devices())


def _chain(n: int) -> InMemorySource:
    ids = list(range(1, n + 1))
    return _deep_source(ids, [(i, i + 1) for i in ids[:-1]])


def _grid(size: int) -> InMemorySource:
    ids = [r * size + c + 1 for r in range(size) for c in range(size)]
    edges = []
    for r in range(size):
        for c in range(size):
            eid = r * size + c + 1
            if c + 1 < size:
                edges.append((eid, eid + 1))
            if r + 1 < size:
                edges.append((eid, eid + size))
    return _deep_source(ids, edges)


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------

class TestEligibility:

    def _check(self, network: Network) -> bool:
        classification = NetworkClassification(
            name=network.name, well_connected=network.well_connected
        )
        return is_eligible(network, classification)

    def test_eligible(self):
        assert self._check(Network(id=1, name="FP", element_ids=[1, 2], well_connected=True))

    def test_single_element(self):
        assert not self._check(Network(id=1, name="FP", element_ids=[1], well_connected=True))

    @pytest.mark.parametrize("name", [None, "", "  ", "Unassigned", "UNASSIGNED"])
    def test_unassigned_name(self, name):
        assert not self._check(Network(id=1, name=name, element_ids=[1, 2], well_connected=True))

    def test_not_well_connected(self):
        assert not self._check(Network(id=1, name="FP", element_ids=[1, 2], well_connected=False))


# ---------------------------------------------------------------------------
# ReportAssembler
# ---------------------------------------------------------------------------

class TestReportAssembler:

    @pytest.fixture()
    def report(self) -> AnalysisReport:
        return ReportAssembler(_source()).analyze()

    def test_only_eligible_networks(self, report: AnalysisReport):
        assert [s.system_id for s in report.systems] == [1, 2]
        assert report.total_systems == 2

    def test_connected_network_gets_tree(self, report: AnalysisReport):
        system = report.systems[0]
        assert system.graph_json is not None
        graph = json.loads(system.graph_json)
        assert graph["id"] == 11
        assert [c["id"] for c in graph["children"]] == [10, 12]
        assert system.traversal_error is None

    def test_disconnected_network_keeps_counts(self, report: AnalysisReport):
        system = report.systems[1]
        assert system.graph_json is None
        assert system.traversal_error
        assert system.element_count == 3
        assert system.total_pipe_length == pytest.approx(7.0)

    def test_counts(self, report: AnalysisReport):
        system = report.systems[0]
        assert system.element_count == 4
        assert system.sprinklers == [13]
        assert system.sprinkler_count == 1
        assert system.fittings == [11]
        assert [p.element_id for p in system.pipes] == [10, 12]
        assert system.total_pipe_length == pytest.approx(20.0)
        assert system.is_fire_protection
        assert system.domain == "piping"

    def test_spacing_over_all_devices(self, report: AnalysisReport):
        assert report.total_sprinklers == 4
        kinds = [(v.sprinkler1_id, v.sprinkler2_id, v.violation_type.value) for v in report.spacing_violations]
        assert kinds == [(100, 101, "TooClose"), (100, 102, "TooFar")]
        assert report.compliance_rate == 50.0
        assert report.too_close_count == 1
        assert report.too_far_count == 1

    def test_model_name(self, report: AnalysisReport):
        assert report.model_name == "Office"
        override = ReportAssembler(_source()).analyze(model_name="Other")
        assert override.model_name == "Other"

    def test_include_ineligible_networks(self):
        settings = AnalysisSettings(include_ineligible_networks=True)
        report = ReportAssembler(_source(), settings).analyze()
        assert [s.system_id for s in report.systems] == [1, 2, 3, 4, 5]
        ineligible = {s.system_id: s for s in report.systems}
        assert ineligible[4].graph_json is None
        assert ineligible[4].traversal_error is None
        assert ineligible[4].element_count == 2

    def test_fire_protection_only(self):
        settings = AnalysisSettings(fire_protection_only=True, include_ineligible_networks=True)
        report = ReportAssembler(_source(), settings).analyze()
        assert [s.system_id for s in report.systems] == [1, 2]

    def test_domain_filter(self):
        settings = AnalysisSettings(network_domains="duct,electrical")
        report = ReportAssembler(_source(), settings).analyze()
        assert report.systems == []

    def test_failing_network_is_isolated(self):
        report = ReportAssembler(_FlakySource(
            model_name="Office", networks=_networks(),
            elements=_model_elements().values(), devices=_devices(),
        )).analyze()
        failed = {s.system_id: s for s in report.systems}[2]
        assert failed.graph_json is None
        assert "unreadable" in failed.traversal_error
        assert report.systems[0].graph_json is not None

    def test_unclassifiable_network_is_recorded(self):
        report = ReportAssembler(_UnclassifiableSource(
            model_name="Office", networks=_networks(),
            elements=_model_elements().values(), devices=_devices(),
        )).analyze()
        assert [s.system_id for s in report.systems] == [1, 2]
        failed = report.systems[0]
        assert failed.graph_json is None
        assert "system type unreadable" in failed.traversal_error
        assert failed.element_count == 4

    def test_unreadable_model_aborts(self):
        with pytest.raises(AnalysisError, match="document closed"):
            ReportAssembler(_BrokenSource(model_name="Office")).analyze()

    def test_no_devices_is_fully_compliant(self):
        report = ReportAssembler(_source(devices=[])).analyze()
        assert report.compliance_rate == 100.0
        assert report.spacing_violations == []

    def test_single_device_is_fully_compliant(self):
        report = ReportAssembler(_source(devices=_devices()[:1])).analyze()
        assert report.compliance_rate == 100.0
        assert report.spacing_violations == []


# ---------------------------------------------------------------------------
# Report export shape
# ---------------------------------------------------------------------------

class TestReportOutput:

    @pytest.fixture()
    def report(self) -> AnalysisReport:
        return ReportAssembler(_source()).analyze()

    def test_top_level_keys(self, report: AnalysisReport):
        data = report.to_dict()
        for key in ("ModelName", "AnalysisDate", "TotalSprinklers", "TotalSystems",
                    "ComplianceRate", "Systems", "SpacingViolations"):
            assert key in data

    def test_violation_keys_and_units(self, report: AnalysisReport):
        data = json.loads(report.to_json())
        violation = data["SpacingViolations"][0]
        assert set(violation) == {
            "Sprinkler1Id", "Sprinkler2Id", "ActualSpacingFeet", "ActualSpacingMeters",
            "RequiredMinFeet", "RequiredMaxFeet", "ViolationType", "LevelName",
        }
        assert violation["ActualSpacingMeters"] == pytest.approx(
            violation["ActualSpacingFeet"] * 0.3048, abs=1e-9
        )

    def test_system_graph_is_nested_json_text(self, report: AnalysisReport):
        system = report.to_dict()["Systems"][0]
        graph = json.loads(system["GraphJson"])
        assert graph["id"] == 11
        assert graph["children"][0]["children"] == []

    def test_round_trip_through_model(self, report: AnalysisReport):
        restored = AnalysisReport.model_validate_json(report.to_json())
        assert restored.total_sprinklers == report.total_sprinklers
        assert restored.spacing_violations == report.spacing_violations

    def test_summary(self, report: AnalysisReport):
        text = report.summary("out/report.json")
        assert "Total Sprinklers: 4" in text
        assert "Too Close (< 6ft): 1" in text
        assert "Too Far (> 15ft): 1" in text
        assert "out/report.json" in text

    def test_markdown(self, report: AnalysisReport):
        md = report.to_markdown()
        assert md.startswith("# Sprinkler Analysis — Office")
        assert "## Spacing Violations" in md
        assert "| TooClose | 100 | 101 |" in md


class TestWriter:

    def test_report_filename(self):
        from datetime import datetime

        name = report_filename("Office / Tower A", datetime(2026, 3, 4, 5, 6, 7))
        assert name == "Office_Tower_A_SprinklerAnalysis_20260304_050607.json"

    def test_export_report(self, tmp_path: Path):
        report = ReportAssembler(_source()).analyze()
        path = export_report(report, tmp_path / "reports", markdown=True)
        assert path.is_file()
        assert json.loads(path.read_text())["ModelName"] == "Office"
        assert path.with_suffix(".md").is_file()

    def test_write_tree(self, tmp_path: Path):
        tree = TraversalTree({1: [2], 2: [1]})
        assert tree.traverse()
        flat = write_tree(tree, tmp_path / "tree.json", form="bottom-up")
        assert json.loads(flat.read_text())[0]["parent"] == "#"
        with pytest.raises(ValueError):
            write_tree(tree, tmp_path / "x.json", form="sideways")

    def test_filename_matches_analysis_date(self, tmp_path: Path):
        report = ReportAssembler(_source()).analyze()
        path = export_report(report, tmp_path)
        assert path.name == report_filename(report.model_name, report.analysis_date)


# ---------------------------------------------------------------------------
# Deep trees
# ---------------------------------------------------------------------------

class TestDeepNetworks:

    @pytest.mark.parametrize("source,size", [(_chain(300), 300), (_grid(15), 225)])
    def test_report_exports(self, source: InMemorySource, size: int, tmp_path: Path):
        report = ReportAssembler(source).analyze()
        [system] = report.systems
        assert system.traversal_error is None

        path = export_report(report, tmp_path)
        exported = json.loads(path.read_text())["Systems"][0]["GraphJson"]
        assert len(edges_from_top_down(json.loads(exported))) == size - 1

    @pytest.mark.parametrize("source,size", [(_chain(300), 300), (_grid(15), 225)])
    def test_write_top_down_tree(self, source: InMemorySource, size: int, tmp_path: Path):
        [network] = source.enumerate_networks()
        tree = TraversalTree.from_elements(
            source.enumerate_elements(network), member_ids=network.element_ids
        )
        assert tree.traverse()
        path = write_tree(tree, tmp_path / "tree.json", form="top-down")
        assert len(edges_from_top_down(json.loads(path.read_text()))) == size - 1
