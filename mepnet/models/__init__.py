"""Entity model: elements, connectors, networks and devices."""

from mepnet.models.element import (
    Connector,
    ConnectorRef,
    Device,
    ElementCategory,
    Location,
    Network,
    NetworkClassification,
    Orientation,
    PhysicalElement,
    PipeGeometry,
    describe_element,
)
from mepnet.models.violation import SpacingViolation, ViolationKind

__all__ = [
    "Connector",
    "ConnectorRef",
    "Device",
    "ElementCategory",
    "Location",
    "Network",
    "NetworkClassification",
    "Orientation",
    "PhysicalElement",
    "PipeGeometry",
    "SpacingViolation",
    "ViolationKind",
    "describe_element",
]
