"""Entity model shared by the traversal engine and the spacing analyzer.

A model is a set of PhysicalElements joined through Connectors, grouped
into Networks.  Sprinkler heads are additionally described as Devices with
a point location and domain attributes.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Location(BaseModel):
    """A 3D point.  Spacing analysis treats the units as feet."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class ElementCategory(str, Enum):
    """Kind of physical element; selects the attribute payload."""

    PIPE = "pipe"
    FITTING = "fitting"
    TERMINAL_DEVICE = "terminal_device"
    UNKNOWN = "unknown"


class ConnectorRef(BaseModel):
    """Address of a connector: owning element id + connector id."""

    element_id: int
    connector_id: int


class Connector(BaseModel):
    """A point on an element that may join exactly one other connector."""

    id: int
    owner_id: int
    peer: ConnectorRef | None = None
    """The connector this one is joined to, or None when open."""


class PipeGeometry(BaseModel):
    """Payload carried by pipe elements."""

    length: float = 0.0
    diameter: float = 0.0


class PhysicalElement(BaseModel):
    """One physical item in a network: pipe segment, fitting or terminal."""

    id: int
    unique_id: str | None = None
    name: str | None = None
    category: ElementCategory = Field(default=ElementCategory.UNKNOWN, frozen=True)

    # Category payloads
    pipe: PipeGeometry | None = None
    location: Location | None = None

    connectors: list[Connector] = Field(default_factory=list)

    def connector(self, connector_id: int) -> Connector | None:
        for conn in self.connectors:
            if conn.id == connector_id:
                return conn
        return None


class Network(BaseModel):
    """A functional distribution system: piping, duct or electrical."""

    id: int
    name: str | None = None
    domain: str = "unknown"
    """'piping', 'duct', 'electrical' or 'unknown'."""

    system_type: str = ""
    """Host classification string, e.g. 'FireProtectionWet'."""

    element_ids: list[int] = Field(default_factory=list)
    """Ordered membership."""

    well_connected: bool = False
    """Upstream claim that the members form a single connected component."""

    base_element_id: int | None = None
    """Designated root of the system, when the host marks one."""


class NetworkClassification(BaseModel):
    """Eligibility flags supplied by a model source for one network."""

    domain: str = "unknown"
    well_connected: bool = False
    name: str | None = None
    is_fire_protection: bool = False


class Orientation(str, Enum):
    PENDENT = "Pendent"
    UPRIGHT = "Upright"
    SIDEWALL = "Sidewall"
    CONCEALED = "Concealed"
    RECESSED = "Recessed"


class Device(BaseModel):
    """A sprinkler head: terminal element with location and domain data."""

    id: int
    unique_id: str | None = None
    family_name: str = "Unknown"
    type_name: str = "Unknown"
    location: Location = Field(default_factory=Location)
    level_name: str | None = None
    level_elevation: float = 0.0
    k_factor: float = 0.0
    coverage_area: float = 0.0
    orientation: Orientation = Orientation.PENDENT


def describe_element(element: PhysicalElement) -> str:
    """Return the tree label for *element*, built per category."""
    category = element.category
    if category == ElementCategory.PIPE:
        label = element.name or "Pipe"
        if element.pipe is not None:
            return (
                f"{label} {element.id} "
                f"(D={element.pipe.diameter:g}, L={element.pipe.length:g})"
            )
        return f"{label} {element.id}"
    if category == ElementCategory.FITTING:
        return f"{element.name or 'Fitting'} {element.id}"
    if category == ElementCategory.TERMINAL_DEVICE:
        label = f"{element.name or 'Terminal'} {element.id}"
        if element.location is not None:
            loc = element.location
            label += f" @ ({loc.x:g}, {loc.y:g}, {loc.z:g})"
        return label
    return f"{element.name or 'Element'} {element.id}"
