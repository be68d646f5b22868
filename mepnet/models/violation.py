"""SpacingViolation — a flagged pair of devices."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ViolationKind(str, Enum):
    TOO_CLOSE = "TooClose"
    TOO_FAR = "TooFar"


class SpacingViolation(BaseModel):
    """A device pair whose horizontal spacing is outside the allowed range.

    Field aliases are the keys of the exported report JSON.
    """

    model_config = ConfigDict(populate_by_name=True)

    sprinkler1_id: int = Field(alias="Sprinkler1Id")
    """The device whose neighbour scan found the pair."""

    sprinkler2_id: int = Field(alias="Sprinkler2Id")
    actual_spacing_feet: float = Field(alias="ActualSpacingFeet")
    actual_spacing_meters: float = Field(alias="ActualSpacingMeters")
    required_min_feet: float = Field(alias="RequiredMinFeet")
    required_max_feet: float = Field(alias="RequiredMaxFeet")
    violation_type: ViolationKind = Field(alias="ViolationType")
    level_name: str | None = Field(default=None, alias="LevelName")

    @property
    def pair_key(self) -> tuple[int, int]:
        a, b = self.sprinkler1_id, self.sprinkler2_id
        return (a, b) if a <= b else (b, a)
