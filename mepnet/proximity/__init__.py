"""Device spacing / proximity analysis."""

from mepnet.proximity.spacing import SpacingAnalyzer, compliance_rate, horizontal_distance

__all__ = ["SpacingAnalyzer", "compliance_rate", "horizontal_distance"]
