"""Model sources — host-side collaborators that enumerate networks and devices."""

from __future__ import annotations

from pathlib import Path

from mepnet.sources.base import ModelSource, SourceError
from mepnet.sources.memory import InMemorySource, load_model_json

IFC_SUFFIXES = (".ifc", ".ifczip", ".ifcxml")


def open_source(path: str | Path) -> ModelSource:
    """Open a model file as a source, chosen by suffix (.ifc or .json)."""
    suffix = Path(path).suffix.lower()
    if suffix == ".json":
        return load_model_json(path)
    if suffix in IFC_SUFFIXES:
        try:
            from mepnet.sources.ifc import IfcModelSource
        except ImportError as exc:
            raise SourceError(
                "ifcopenshell is required for IFC models. "
                "Install it with: pip install ifcopenshell"
            ) from exc
        return IfcModelSource(path)
    raise SourceError(f"Unsupported model file type: {path}")


__all__ = ["InMemorySource", "ModelSource", "SourceError", "load_model_json", "open_source"]
