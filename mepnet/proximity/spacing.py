"""SpacingAnalyzer — nearest-neighbour spacing check for sprinkler heads.

Pure Python distance math over device locations; no spatial index.  Each
device is compared with its nearest same-level neighbours only, and every
unordered pair is classified once.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from mepnet.config import (
    MAX_NEIGHBORS,
    MAX_SPACING_FT,
    METERS_PER_FOOT,
    MIN_SPACING_FT,
    SEARCH_RADIUS_FACTOR,
    VERTICAL_TOLERANCE_FT,
)
from mepnet.models.element import Device, Location
from mepnet.models.violation import SpacingViolation, ViolationKind

logger = logging.getLogger(__name__)


def horizontal_distance(a: Location, b: Location) -> float:
    """Euclidean distance in the X-Y plane."""
    return math.hypot(a.x - b.x, a.y - b.y)


def compliance_rate(total_devices: int, violation_count: int) -> float:
    """Percentage of devices assumed free of spacing violations.

    Counts violations, not distinct affected devices, so it is an estimate:
    ``round((1 - min(violations, total) / total) * 100, 1)``.  No devices
    means 100.0.
    """
    if total_devices <= 0:
        return 100.0
    affected = min(violation_count, total_devices)
    return round((1.0 - affected / total_devices) * 100, 1)


class SpacingAnalyzer:
    """Classify near-neighbour device pairs against min/max spacing.

    Parameters
    ----------
    min_spacing:
        Pairs closer than this are ``TooClose``.
    max_spacing:
        Pairs farther than this are ``TooFar``.
    vertical_tolerance:
        Devices whose Z differs by less than this share a level.
    max_neighbors:
        At most this many nearest neighbours are checked per device.
    search_radius_factor:
        Neighbours beyond ``factor * max_spacing`` are never considered.
    """

    def __init__(
        self,
        min_spacing: float = MIN_SPACING_FT,
        max_spacing: float = MAX_SPACING_FT,
        vertical_tolerance: float = VERTICAL_TOLERANCE_FT,
        max_neighbors: int = MAX_NEIGHBORS,
        search_radius_factor: float = SEARCH_RADIUS_FACTOR,
    ) -> None:
        if min_spacing > max_spacing:
            raise ValueError(
                f"min_spacing ({min_spacing}) must not exceed max_spacing ({max_spacing})"
            )
        self.min_spacing = min_spacing
        self.max_spacing = max_spacing
        self.vertical_tolerance = vertical_tolerance
        self.max_neighbors = max_neighbors
        self.search_radius_factor = search_radius_factor

    @classmethod
    def from_settings(cls, settings: Any) -> SpacingAnalyzer:
        return cls(
            min_spacing=settings.min_spacing_ft,
            max_spacing=settings.max_spacing_ft,
            vertical_tolerance=settings.vertical_tolerance_ft,
            max_neighbors=settings.max_neighbors,
            search_radius_factor=settings.search_radius_factor,
        )

    @property
    def search_radius(self) -> float:
        return self.max_spacing * self.search_radius_factor

    def neighbours(
        self, device: Device, devices: Sequence[Device]
    ) -> list[tuple[Device, float]]:
        """Nearest same-level devices within the search radius, closest first."""
        candidates: list[tuple[Device, float]] = []
        for other in devices:
            if other.id == device.id:
                continue
            if abs(other.location.z - device.location.z) >= self.vertical_tolerance:
                continue
            distance = horizontal_distance(device.location, other.location)
            if distance < self.search_radius:
                candidates.append((other, distance))

        # Stable: equal distances keep input order
        candidates.sort(key=lambda c: c[1])
        return candidates[: self.max_neighbors]

    def classify(self, distance: float) -> ViolationKind | None:
        if distance < self.min_spacing:
            return ViolationKind.TOO_CLOSE
        if distance > self.max_spacing:
            return ViolationKind.TOO_FAR
        return None

    def analyze(self, devices: Sequence[Device]) -> list[SpacingViolation]:
        """Return spacing violations in scan order, one per unordered pair."""
        violations: list[SpacingViolation] = []
        checked: set[tuple[int, int]] = set()

        for device in devices:
            for neighbour, distance in self.neighbours(device, devices):
                pair = (min(device.id, neighbour.id), max(device.id, neighbour.id))
                if pair in checked:
                    continue
                checked.add(pair)

                kind = self.classify(distance)
                if kind is None:
                    continue
                violations.append(SpacingViolation(
                    sprinkler1_id=device.id,
                    sprinkler2_id=neighbour.id,
                    actual_spacing_feet=distance,
                    actual_spacing_meters=distance * METERS_PER_FOOT,
                    required_min_feet=self.min_spacing,
                    required_max_feet=self.max_spacing,
                    violation_type=kind,
                    level_name=device.level_name,
                ))

        logger.info(
            "Spacing check: %d devices, %d pairs, %d violations",
            len(devices), len(checked), len(violations),
        )
        return violations
