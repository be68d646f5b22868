"""AnalysisReport model, JSON export shape, and Markdown/summary rendering.

Field aliases are the PascalCase keys of the exported report JSON, which
downstream consumers read by name.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mepnet.models.violation import SpacingViolation, ViolationKind


class PipeRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    element_id: int = Field(alias="ElementId")
    diameter: float = Field(default=0.0, alias="Diameter")
    length: float = Field(default=0.0, alias="Length")


class SystemAnalysis(BaseModel):
    """Per-network counts plus the traversal tree, when one was built."""

    model_config = ConfigDict(populate_by_name=True)

    system_id: int = Field(alias="SystemId")
    system_name: str | None = Field(default=None, alias="SystemName")
    system_type: str = Field(default="", alias="SystemType")
    domain: str = Field(default="unknown", alias="Domain")
    element_count: int = Field(default=0, alias="ElementCount")
    sprinkler_count: int = Field(default=0, alias="SprinklerCount")
    is_well_connected: bool = Field(default=False, alias="IsWellConnected")
    is_fire_protection: bool = Field(default=False, alias="IsFireProtection")
    total_pipe_length: float = Field(default=0.0, alias="TotalPipeLength")
    sprinklers: list[int] = Field(default_factory=list, alias="Sprinklers")
    pipes: list[PipeRecord] = Field(default_factory=list, alias="Pipes")
    fittings: list[int] = Field(default_factory=list, alias="Fittings")

    graph_json: str | None = Field(default=None, alias="GraphJson")
    """Top-down tree ``{id, name, children}`` as JSON text; None when
    traversal failed.  Kept as text so tree depth never limits export."""

    traversal_error: str | None = Field(default=None, alias="TraversalError")


class AnalysisReport(BaseModel):
    """Aggregate result of one analysis run over a whole model."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model_name: str = Field(default="", alias="ModelName")
    analysis_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="AnalysisDate"
    )
    total_sprinklers: int = Field(default=0, alias="TotalSprinklers")
    total_systems: int = Field(default=0, alias="TotalSystems")
    compliance_rate: float = Field(default=100.0, alias="ComplianceRate")
    min_spacing_feet: float = Field(default=6.0, alias="MinSpacingFeet")
    max_spacing_feet: float = Field(default=15.0, alias="MaxSpacingFeet")
    systems: list[SystemAnalysis] = Field(default_factory=list, alias="Systems")
    spacing_violations: list[SpacingViolation] = Field(
        default_factory=list, alias="SpacingViolations"
    )

    @property
    def too_close_count(self) -> int:
        return sum(
            1 for v in self.spacing_violations
            if v.violation_type == ViolationKind.TOO_CLOSE
        )

    @property
    def too_far_count(self) -> int:
        return sum(
            1 for v in self.spacing_violations
            if v.violation_type == ViolationKind.TOO_FAR
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        """Return the exported report JSON (indented)."""
        return self.model_dump_json(by_alias=True, indent=2)

    def summary(self, output_path: str | None = None) -> str:
        """Short plain-text summary of the run."""
        lines = [
            "Sprinkler Analysis Complete",
            "",
            f"Total Sprinklers: {self.total_sprinklers}",
            f"Total Systems: {self.total_systems}",
            f"Compliance Rate: {self.compliance_rate}%",
            "",
            "Spacing Violations:",
            f"  Too Close (< {self.min_spacing_feet:g}ft): {self.too_close_count}",
            f"  Too Far (> {self.max_spacing_feet:g}ft): {self.too_far_count}",
        ]
        if output_path:
            lines.extend(["", "Results exported to:", str(output_path)])
        return "\n".join(lines)

    def to_markdown(self) -> str:
        """Render the report as a Markdown document."""
        lines: list[str] = []

        lines.append(f"# Sprinkler Analysis — {self.model_name or 'Unknown'}")
        lines.append("")
        lines.append(f"**Analysed:** {self.analysis_date.strftime('%Y-%m-%d %H:%M UTC')}")
        lines.append(f"**Sprinklers:** {self.total_sprinklers}")
        lines.append(f"**Systems:** {self.total_systems}")
        lines.append(f"**Compliance Rate:** {self.compliance_rate}%")
        lines.append("")

        if self.systems:
            lines.append("## Systems")
            lines.append("")
            lines.append("| Id | Name | Type | Elements | Sprinklers | Pipe Length | Tree |")
            lines.append("|----|------|------|----------|------------|-------------|------|")
            for s in self.systems:
                name = (s.system_name or "").replace("|", "\\|")
                tree = "yes" if s.graph_json is not None else "no"
                lines.append(
                    f"| {s.system_id} | {name} | {s.system_type} | {s.element_count} "
                    f"| {s.sprinkler_count} | {s.total_pipe_length:.2f} | {tree} |"
                )
            lines.append("")

        if self.spacing_violations:
            lines.append("## Spacing Violations")
            lines.append("")
            lines.append("| Type | Sprinkler 1 | Sprinkler 2 | Spacing (ft) | Spacing (m) | Level |")
            lines.append("|------|-------------|-------------|--------------|-------------|-------|")
            for v in self.spacing_violations:
                lines.append(
                    f"| {v.violation_type.value} | {v.sprinkler1_id} | {v.sprinkler2_id} "
                    f"| {v.actual_spacing_feet:.2f} | {v.actual_spacing_meters:.3f} "
                    f"| {v.level_name or ''} |"
                )
            lines.append("")
        else:
            lines.append("No spacing violations found.")
            lines.append("")

        return "\n".join(lines)
