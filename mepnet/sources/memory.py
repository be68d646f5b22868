"""In-memory model source and JSON model fixtures.

JSON layout::

    {
      "model_name": "Office",
      "networks": [{"id": 1, "name": "FP Wet 1", "element_ids": [10, 11],
                    "well_connected": true, "system_type": "FireProtectionWet"}],
      "elements": [{"id": 10, "category": "pipe",
                    "pipe": {"length": 12.0, "diameter": 0.125},
                    "connectors": [{"id": 0, "peer": {"element_id": 11,
                                                      "connector_id": 0}}]}],
      "devices": [{"id": 100, "family_name": "Sprinkler - Pendent",
                   "location": {"x": 0, "y": 0, "z": 9},
                   "level_name": "Level 1", "parameters": {"K-Factor": 5.6}}]
    }

Connector ``owner_id`` may be omitted; it defaults to the enclosing element.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mepnet.models.element import Device, Location, Network, PhysicalElement
from mepnet.sources.base import ModelSource, SourceError
from mepnet.sources.parameters import build_device

logger = logging.getLogger(__name__)


class InMemorySource(ModelSource):
    """Model source over already-built entity collections."""

    def __init__(
        self,
        model_name: str = "",
        networks: Iterable[Network] = (),
        elements: Iterable[PhysicalElement] = (),
        devices: Iterable[Device] = (),
    ) -> None:
        self._model_name = model_name
        self._networks = list(networks)
        self._elements: dict[int, PhysicalElement] = {e.id: e for e in elements}
        self._devices = list(devices)

    @property
    def model_name(self) -> str:
        return self._model_name

    def enumerate_networks(self) -> list[Network]:
        return list(self._networks)

    def enumerate_elements(self, network: Network) -> list[PhysicalElement]:
        elements: list[PhysicalElement] = []
        for eid in network.element_ids:
            element = self._elements.get(eid)
            if element is None:
                logger.debug("Network %s references unknown element %s", network.id, eid)
                continue
            elements.append(element)
        return elements

    def enumerate_devices(self) -> list[Device]:
        return list(self._devices)


def _element_from_dict(raw: dict[str, Any]) -> PhysicalElement:
    data = dict(raw)
    connectors = []
    for conn in data.get("connectors") or []:
        conn = dict(conn)
        conn.setdefault("owner_id", data.get("id"))
        connectors.append(conn)
    data["connectors"] = connectors
    return PhysicalElement.model_validate(data)


def _device_from_dict(raw: dict[str, Any]) -> Device:
    return build_device(
        int(raw["id"]),
        Location.model_validate(raw.get("location") or {}),
        unique_id=raw.get("unique_id"),
        family_name=raw.get("family_name"),
        type_name=raw.get("type_name"),
        level_name=raw.get("level_name"),
        level_elevation=raw.get("level_elevation"),
        parameters=raw.get("parameters"),
        type_parameters=raw.get("type_parameters"),
    )


def source_from_dict(data: dict[str, Any]) -> InMemorySource:
    """Build an InMemorySource from a decoded JSON model description.

    Raises
    ------
    SourceError
        If any record is malformed.
    """
    try:
        return InMemorySource(
            model_name=str(data.get("model_name", "")),
            networks=[Network.model_validate(n) for n in data.get("networks") or []],
            elements=[_element_from_dict(e) for e in data.get("elements") or []],
            devices=[_device_from_dict(d) for d in data.get("devices") or []],
        )
    except (ValidationError, KeyError, TypeError, ValueError) as exc:
        raise SourceError(f"Malformed model description: {exc}") from exc


def load_model_json(path: str | Path) -> InMemorySource:
    """Read a JSON model description from *path*.

    The model name defaults to the file stem.
    """
    path = Path(path)
    if not path.is_file():
        raise SourceError(f"Model file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise SourceError(f"Could not read model file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SourceError(f"Model file {path} must contain a JSON object")

    data.setdefault("model_name", path.stem)
    source = source_from_dict(data)
    logger.info(
        "Loaded %s: %d networks, %d devices",
        path, len(source.enumerate_networks()), len(source.enumerate_devices()),
    )
    return source
