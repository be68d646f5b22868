"""IfcModelSource — read networks, elements and sprinklers from an IFC file.

Networks are ``IfcSystem`` groups of distribution elements; connectivity
comes from ``IfcRelConnectsPorts`` between the elements' distribution ports.
Works with IFC2X3 (ports via ``HasPorts``) and IFC4 (ports nested via
``IsNestedBy``).  All lengths are converted to feet.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import ifcopenshell
import ifcopenshell.util.element
import ifcopenshell.util.placement
import ifcopenshell.util.unit

from mepnet.config import METERS_PER_FOOT, PIPE_DIAMETER_KEYS, PIPE_LENGTH_KEYS
from mepnet.models.element import (
    Connector,
    ConnectorRef,
    Device,
    ElementCategory,
    Location,
    Network,
    PhysicalElement,
    PipeGeometry,
)
from mepnet.sources.base import ModelSource, SourceError, infer_domain
from mepnet.sources.parameters import build_device, lookup_numeric

logger = logging.getLogger(__name__)

# IfcSystem subtypes that group non-distribution objects
_NON_DISTRIBUTION_SYSTEMS = ("IfcZone", "IfcStructuralAnalysisModel")


def _as_tuple(value: Any) -> tuple[Any, ...]:
    """Inverse attributes are sets in IFC4 but may be single in IFC2X3."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _is_a(entity: ifcopenshell.entity_instance, ifc_class: str) -> bool:
    """``entity.is_a`` that tolerates classes missing from the schema."""
    try:
        return bool(entity.is_a(ifc_class))
    except Exception:
        return False


def _flat_psets(entity: ifcopenshell.entity_instance | None) -> dict[str, Any]:
    """Merge all property and quantity sets of *entity* into one dict."""
    if entity is None:
        return {}
    try:
        psets = ifcopenshell.util.element.get_psets(entity)
    except Exception:
        logger.debug("Pset extraction failed for #%s", entity.id(), exc_info=True)
        return {}

    flat: dict[str, Any] = {}
    for props in psets.values():
        for k, v in props.items():
            if k != "id":
                flat.setdefault(k, v)
    return flat


class IfcModelSource(ModelSource):
    """Model source backed by an ifcopenshell file.

    Parameters
    ----------
    ifc:
        Path to an IFC file, or an already-opened ``ifcopenshell.file``.
    """

    def __init__(self, ifc: str | Path | ifcopenshell.file) -> None:
        if isinstance(ifc, ifcopenshell.file):
            self._file = ifc
            self._stem = ""
        else:
            path = Path(ifc)
            if not path.is_file():
                raise SourceError(f"IFC file not found: {path}")
            logger.info("Opening %s", path)
            try:
                self._file = ifcopenshell.open(str(path))
            except Exception as exc:
                raise SourceError(f"Could not open IFC file {path}: {exc}") from exc
            self._stem = path.stem

        self._feet_per_unit = self._length_scale() / METERS_PER_FOOT
        self._elements: dict[int, PhysicalElement] = {}

    @property
    def ifc_file(self) -> ifcopenshell.file:
        return self._file

    @property
    def model_name(self) -> str:
        projects = self._file.by_type("IfcProject")
        if projects and projects[0].Name:
            return projects[0].Name
        return self._stem

    def _length_scale(self) -> float:
        """Metres per project length unit; 1.0 when the file declares none."""
        if not self._file.by_type("IfcUnitAssignment"):
            return 1.0
        return float(ifcopenshell.util.unit.calculate_unit_scale(self._file))

    def to_feet(self, value: float) -> float:
        return value * self._feet_per_unit

    # ------------------------------------------------------------------
    # Networks
    # ------------------------------------------------------------------

    def _members(self, system: ifcopenshell.entity_instance) -> list[ifcopenshell.entity_instance]:
        members: dict[int, ifcopenshell.entity_instance] = {}
        for rel in _as_tuple(getattr(system, "IsGroupedBy", None)):
            for obj in rel.RelatedObjects or ():
                if _is_a(obj, "IfcElement"):
                    members.setdefault(obj.id(), obj)
        return list(members.values())

    def enumerate_networks(self) -> list[Network]:
        networks: list[Network] = []
        for system in self._file.by_type("IfcSystem"):
            if any(_is_a(system, cls) for cls in _NON_DISTRIBUTION_SYSTEMS):
                continue
            members = self._members(system)
            if not members:
                continue

            system_type = str(
                getattr(system, "PredefinedType", None) or system.ObjectType or ""
            )
            networks.append(Network(
                id=system.id(),
                name=system.Name,
                domain=infer_domain(system_type, system.Name),
                system_type=system_type,
                element_ids=[m.id() for m in members],
                well_connected=len(members) > 1 and all(
                    any(self._peer_port(p) is not None for p in self._ports(m))
                    for m in members
                ),
            ))

        logger.info("Found %d distribution systems", len(networks))
        return networks

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def _ports(self, element: ifcopenshell.entity_instance) -> list[ifcopenshell.entity_instance]:
        ports: dict[int, ifcopenshell.entity_instance] = {}
        # IFC4: ports nested under the element
        for rel in _as_tuple(getattr(element, "IsNestedBy", None)):
            for obj in rel.RelatedObjects or ():
                if _is_a(obj, "IfcPort"):
                    ports.setdefault(obj.id(), obj)
        # IFC2X3 (deprecated in IFC4)
        for rel in _as_tuple(getattr(element, "HasPorts", None)):
            port = rel.RelatingPort
            if port is not None:
                ports.setdefault(port.id(), port)
        return list(ports.values())

    @staticmethod
    def _port_owner(port: ifcopenshell.entity_instance) -> ifcopenshell.entity_instance | None:
        for rel in _as_tuple(getattr(port, "Nests", None)):
            if rel.RelatingObject is not None:
                return rel.RelatingObject
        for rel in _as_tuple(getattr(port, "ContainedIn", None)):
            if rel.RelatedElement is not None:
                return rel.RelatedElement
        return None

    @staticmethod
    def _peer_port(port: ifcopenshell.entity_instance) -> ifcopenshell.entity_instance | None:
        for rel in _as_tuple(getattr(port, "ConnectedTo", None)):
            if rel.RelatedPort is not None:
                return rel.RelatedPort
        for rel in _as_tuple(getattr(port, "ConnectedFrom", None)):
            if rel.RelatingPort is not None:
                return rel.RelatingPort
        return None

    def _category(self, element: ifcopenshell.entity_instance) -> ElementCategory:
        if _is_a(element, "IfcPipeSegment"):
            return ElementCategory.PIPE
        if _is_a(element, "IfcFlowSegment"):
            # IFC2X3 has no IfcPipeSegment; the type object says what it is
            element_type = ifcopenshell.util.element.get_type(element)
            if element_type is not None and _is_a(element_type, "IfcPipeSegmentType"):
                return ElementCategory.PIPE
            return ElementCategory.UNKNOWN
        if _is_a(element, "IfcFlowFitting"):
            return ElementCategory.FITTING
        if _is_a(element, "IfcFlowTerminal"):
            return ElementCategory.TERMINAL_DEVICE
        return ElementCategory.UNKNOWN

    def _location(self, element: ifcopenshell.entity_instance) -> Location | None:
        placement = getattr(element, "ObjectPlacement", None)
        if placement is None:
            return None
        try:
            matrix = ifcopenshell.util.placement.get_local_placement(placement)
        except Exception:
            logger.debug("Placement failed for #%s", element.id(), exc_info=True)
            return None
        return Location(
            x=self.to_feet(float(matrix[0][3])),
            y=self.to_feet(float(matrix[1][3])),
            z=self.to_feet(float(matrix[2][3])),
        )

    def _element(self, entity: ifcopenshell.entity_instance) -> PhysicalElement:
        eid = entity.id()
        cached = self._elements.get(eid)
        if cached is not None:
            return cached

        category = self._category(entity)
        connectors: list[Connector] = []
        for port in self._ports(entity):
            peer_port = self._peer_port(port)
            peer_owner = self._port_owner(peer_port) if peer_port is not None else None
            peer = None
            if peer_port is not None and peer_owner is not None:
                peer = ConnectorRef(element_id=peer_owner.id(), connector_id=peer_port.id())
            connectors.append(Connector(id=port.id(), owner_id=eid, peer=peer))

        pipe = None
        location = None
        if category == ElementCategory.PIPE:
            chain = [
                _flat_psets(entity),
                _flat_psets(ifcopenshell.util.element.get_type(entity)),
            ]
            pipe = PipeGeometry(
                length=self.to_feet(lookup_numeric(chain, PIPE_LENGTH_KEYS)),
                diameter=self.to_feet(lookup_numeric(chain, PIPE_DIAMETER_KEYS)),
            )
        elif category == ElementCategory.TERMINAL_DEVICE:
            location = self._location(entity)

        element = PhysicalElement(
            id=eid,
            unique_id=getattr(entity, "GlobalId", None),
            name=getattr(entity, "Name", None),
            category=category,
            pipe=pipe,
            location=location,
            connectors=connectors,
        )
        self._elements[eid] = element
        return element

    def enumerate_elements(self, network: Network) -> list[PhysicalElement]:
        elements: list[PhysicalElement] = []
        for eid in network.element_ids:
            try:
                entity = self._file.by_id(eid)
            except RuntimeError:
                logger.debug("Network %s references missing entity #%s", network.id, eid)
                continue
            elements.append(self._element(entity))
        return elements

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def _sprinkler_entities(self) -> list[ifcopenshell.entity_instance]:
        if self._file.schema == "IFC2X3":
            found = []
            for terminal in self._file.by_type("IfcFlowTerminal"):
                element_type = ifcopenshell.util.element.get_type(terminal)
                names = f"{terminal.Name or ''} {terminal.ObjectType or ''}".lower()
                if (
                    element_type is not None
                    and _is_a(element_type, "IfcFireSuppressionTerminalType")
                ) or "sprinkler" in names:
                    found.append(terminal)
            return found
        return list(self._file.by_type("IfcFireSuppressionTerminal"))

    def _storey(self, element: ifcopenshell.entity_instance) -> ifcopenshell.entity_instance | None:
        """Walk up the spatial hierarchy to the containing storey."""
        current = ifcopenshell.util.element.get_container(element)
        while current is not None:
            if _is_a(current, "IfcBuildingStorey"):
                return current
            decomposes = _as_tuple(getattr(current, "Decomposes", None))
            current = decomposes[0].RelatingObject if decomposes else None
        return None

    def enumerate_devices(self) -> list[Device]:
        devices: list[Device] = []
        for entity in self._sprinkler_entities():
            location = self._location(entity)
            if location is None:
                continue
            try:
                element_type = ifcopenshell.util.element.get_type(entity)
                storey = self._storey(entity)
                elevation = None
                if storey is not None and storey.Elevation is not None:
                    elevation = self.to_feet(float(storey.Elevation))
                devices.append(build_device(
                    entity.id(),
                    location,
                    unique_id=entity.GlobalId,
                    family_name=(element_type.Name if element_type is not None else None)
                    or entity.Name,
                    type_name=entity.ObjectType or entity.Name,
                    level_name=storey.Name if storey is not None else None,
                    level_elevation=elevation,
                    parameters=_flat_psets(entity),
                    type_parameters=_flat_psets(element_type),
                ))
            except Exception:
                logger.warning(
                    "Skipping sprinkler #%s due to error", entity.id(), exc_info=True
                )

        logger.info("Found %d sprinklers", len(devices))
        return devices
