"""Tests for the sprinkler spacing analyzer and compliance rate."""

from __future__ import annotations

import itertools

import pytest

from mepnet.models.element import Device, Location
from mepnet.models.violation import ViolationKind
from mepnet.proximity.spacing import SpacingAnalyzer, compliance_rate, horizontal_distance
from mepnet.settings import AnalysisSettings


def _device(device_id: int, x: float, y: float = 0.0, z: float = 10.0, level: str = "Level 1") -> Device:
    return Device(id=device_id, location=Location(x=x, y=y, z=z), level_name=level)


# ---------------------------------------------------------------------------
# Classification scenarios
# ---------------------------------------------------------------------------

class TestClassification:

    def test_too_close(self):
        violations = SpacingAnalyzer().analyze([_device(1, 0), _device(2, 5)])
        assert len(violations) == 1
        v = violations[0]
        assert v.violation_type == ViolationKind.TOO_CLOSE
        assert v.actual_spacing_feet == pytest.approx(5.0)
        assert v.actual_spacing_meters == pytest.approx(1.524, abs=1e-9)
        assert v.required_min_feet == 6.0
        assert v.required_max_feet == 15.0
        assert v.level_name == "Level 1"

    def test_too_far(self):
        violations = SpacingAnalyzer().analyze([_device(1, 0), _device(2, 20)])
        assert [v.violation_type for v in violations] == [ViolationKind.TOO_FAR]

    def test_within_range(self):
        assert SpacingAnalyzer().analyze([_device(1, 0), _device(2, 10)]) == []

    def test_bounds_are_compliant(self):
        analyzer = SpacingAnalyzer()
        assert analyzer.classify(6.0) is None
        assert analyzer.classify(15.0) is None

    def test_single_device(self):
        assert SpacingAnalyzer().analyze([_device(1, 0)]) == []

    def test_initiating_device_is_first(self):
        violations = SpacingAnalyzer().analyze([_device(9, 0), _device(3, 2)])
        assert (violations[0].sprinkler1_id, violations[0].sprinkler2_id) == (9, 3)


# ---------------------------------------------------------------------------
# Neighbour search
# ---------------------------------------------------------------------------

class TestNeighbours:

    def test_other_levels_are_ignored(self):
        devices = [_device(1, 0, z=10.0), _device(2, 3, z=20.0)]
        assert SpacingAnalyzer().analyze(devices) == []

    def test_vertical_tolerance_is_exclusive(self):
        analyzer = SpacingAnalyzer()
        assert analyzer.neighbours(_device(1, 0, z=10.0), [_device(2, 3, z=11.5)]) == []
        assert len(analyzer.neighbours(_device(1, 0, z=10.0), [_device(2, 3, z=11.4)])) == 1

    def test_search_radius_prunes_far_devices(self):
        # 31 ft is beyond 2 x 15 ft and never reported as too far
        assert SpacingAnalyzer().analyze([_device(1, 0), _device(2, 31)]) == []

    def test_at_most_four_nearest(self):
        centre = _device(1, 0)
        others = [_device(i, float(i)) for i in range(2, 8)]
        found = SpacingAnalyzer().neighbours(centre, [centre] + others)
        assert [d.id for d, _ in found] == [2, 3, 4, 5]
        distances = [dist for _, dist in found]
        assert distances == sorted(distances)

    def test_equal_distances_keep_input_order(self):
        centre = _device(1, 0)
        others = [_device(5, 3), _device(4, -3), _device(3, 0, y=3)]
        found = SpacingAnalyzer(max_neighbors=2).neighbours(centre, others)
        assert [d.id for d, _ in found] == [5, 4]

    def test_horizontal_distance_ignores_z(self):
        assert horizontal_distance(Location(x=0, y=0, z=0), Location(x=3, y=4, z=100)) == 5.0


# ---------------------------------------------------------------------------
# Pair deduplication
# ---------------------------------------------------------------------------

class TestPairDedup:

    def test_pair_reported_once(self):
        devices = [_device(1, 0), _device(2, 5)]
        violations = SpacingAnalyzer().analyze(devices)
        assert len(violations) == 1

    def test_dedup_independent_of_scan_order(self):
        devices = [_device(1, 0), _device(2, 4), _device(3, 8, y=1), _device(4, 25)]
        for ordering in itertools.permutations(devices):
            violations = SpacingAnalyzer().analyze(list(ordering))
            keys = [v.pair_key for v in violations]
            assert len(keys) == len(set(keys))

    def test_meters_are_exact_conversion(self):
        devices = [_device(i, x) for i, x in enumerate([0.0, 2.7, 4.1, 23.9, 40.0], start=1)]
        for v in SpacingAnalyzer().analyze(devices):
            assert abs(v.actual_spacing_meters - v.actual_spacing_feet * 0.3048) < 1e-9


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfiguration:

    def test_custom_bounds(self):
        analyzer = SpacingAnalyzer(min_spacing=2.0, max_spacing=4.0)
        violations = analyzer.analyze([_device(1, 0), _device(2, 5)])
        assert [v.violation_type for v in violations] == [ViolationKind.TOO_FAR]

    def test_min_above_max_rejected(self):
        with pytest.raises(ValueError):
            SpacingAnalyzer(min_spacing=20.0, max_spacing=10.0)

    def test_from_settings(self):
        settings = AnalysisSettings(min_spacing_ft=7.0, max_spacing_ft=12.0, max_neighbors=2)
        analyzer = SpacingAnalyzer.from_settings(settings)
        assert analyzer.min_spacing == 7.0
        assert analyzer.max_spacing == 12.0
        assert analyzer.max_neighbors == 2
        assert analyzer.search_radius == 24.0


# ---------------------------------------------------------------------------
# Compliance rate
# ---------------------------------------------------------------------------

class TestComplianceRate:

    def test_no_devices(self):
        assert compliance_rate(0, 0) == 100.0

    def test_no_violations(self):
        assert compliance_rate(1, 0) == 100.0

    def test_half(self):
        assert compliance_rate(2, 1) == 50.0

    def test_rounded_to_one_decimal(self):
        assert compliance_rate(3, 1) == 66.7

    def test_capped_at_zero(self):
        assert compliance_rate(2, 5) == 0.0

    @pytest.mark.parametrize("total,violations", [(1, 0), (7, 3), (10, 10), (4, 9), (0, 2)])
    def test_bounds(self, total: int, violations: int):
        assert 0.0 <= compliance_rate(total, violations) <= 100.0
