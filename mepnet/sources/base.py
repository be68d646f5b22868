"""Abstract ModelSource interface.

A model source is the host-side collaborator of the analysis: it enumerates
networks, their elements with resolved connectors, and the model's devices.
The analysis core never reads a host document directly.
"""

from __future__ import annotations

import abc

from mepnet.config import FIRE_PROTECTION_MARKERS
from mepnet.models.element import Device, Network, NetworkClassification, PhysicalElement


class SourceError(Exception):
    """A model source could not read its input."""


_DOMAIN_MARKERS = (
    ("duct", ("duct", "air", "ventilation", "exhaust", "hvac")),
    ("electrical", ("electric", "power", "lighting", "cable", "conduit", "data")),
    ("piping", ("pipe", "piping", "water", "fire", "sprinkler", "hydronic",
                "sanitary", "drain", "vent", "gas", "plumbing")),
)


def infer_domain(*texts: str | None) -> str:
    """Guess a network domain from its name or system type."""
    combined = " ".join(t.lower() for t in texts if t)
    for domain, markers in _DOMAIN_MARKERS:
        if any(m in combined for m in markers):
            return domain
    return "unknown"


def is_fire_protection(*texts: str | None) -> bool:
    combined = " ".join(t.lower() for t in texts if t)
    return any(m in combined for m in FIRE_PROTECTION_MARKERS)


class ModelSource(abc.ABC):
    """Base class for all model sources."""

    @property
    @abc.abstractmethod
    def model_name(self) -> str:
        """Display name of the model (document title)."""

    @abc.abstractmethod
    def enumerate_networks(self) -> list[Network]:
        """Return every distribution network in the model."""

    @abc.abstractmethod
    def enumerate_elements(self, network: Network) -> list[PhysicalElement]:
        """Return every member element of *network* with resolved connectors."""

    @abc.abstractmethod
    def enumerate_devices(self) -> list[Device]:
        """Return every sprinkler device in the model.

        Unavailable attributes resolve to their defaults (0 for numeric
        values, Pendent for orientation).
        """

    def classify_network(self, network: Network) -> NetworkClassification:
        """Return the eligibility flags for *network*."""
        domain = network.domain
        if domain == "unknown":
            domain = infer_domain(network.system_type, network.name)
        return NetworkClassification(
            domain=domain,
            well_connected=network.well_connected,
            name=network.name,
            is_fire_protection=is_fire_protection(network.name, network.system_type),
        )
