"""Parameter lookups with ordered fallback keys and documented defaults."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from mepnet.config import COVERAGE_AREA_KEYS, K_FACTOR_KEYS, ORIENTATION_KEYWORDS
from mepnet.models.element import Device, Location, Orientation


def _coerce_numeric(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def lookup_numeric(
    sources: Iterable[Mapping[str, Any]],
    keys: Iterable[str],
    default: float = 0.0,
) -> float:
    """Return the first numeric value found.

    For each key in priority order, every source is tried in order
    (instance parameters before type parameters); the first value that
    coerces to a number wins.  Otherwise *default*.
    """
    sources = [s for s in sources if s]
    for key in keys:
        for params in sources:
            value = _coerce_numeric(params.get(key))
            if value is not None:
                return value
    return default


def determine_orientation(*names: str | None) -> Orientation:
    """Infer sprinkler orientation from family/type names, default Pendent."""
    combined = " ".join(n.lower() for n in names if n)
    for keywords, orientation in ORIENTATION_KEYWORDS:
        if any(k in combined for k in keywords):
            return Orientation(orientation)
    return Orientation.PENDENT


def build_device(
    element_id: int,
    location: Location,
    *,
    unique_id: str | None = None,
    family_name: str | None = None,
    type_name: str | None = None,
    level_name: str | None = None,
    level_elevation: float | None = None,
    parameters: Mapping[str, Any] | None = None,
    type_parameters: Mapping[str, Any] | None = None,
) -> Device:
    """Assemble a Device, resolving domain attributes from parameters."""
    chain = [parameters or {}, type_parameters or {}]
    return Device(
        id=element_id,
        unique_id=unique_id,
        family_name=family_name or "Unknown",
        type_name=type_name or "Unknown",
        location=location,
        level_name=level_name,
        level_elevation=level_elevation or 0.0,
        k_factor=lookup_numeric(chain, K_FACTOR_KEYS),
        coverage_area=lookup_numeric(chain, COVERAGE_AREA_KEYS),
        orientation=determine_orientation(family_name, type_name),
    )
