"""Global configuration: constants, thresholds, lookup keys."""

from pathlib import Path

# Default output directory for exported analysis reports
DEFAULT_OUTPUT_DIR = Path("output")

# Sprinkler spacing requirements in feet (NFPA 13, light hazard)
MIN_SPACING_FT = 6.0  # 1.8m
MAX_SPACING_FT = 15.0  # 4.6m

# Two devices closer than this vertically are considered on the same level
VERTICAL_TOLERANCE_FT = 1.5

# Nearest-neighbour search: at most this many candidates per device,
# pruned to within SEARCH_RADIUS_FACTOR x max spacing
MAX_NEIGHBORS = 4
SEARCH_RADIUS_FACTOR = 2.0

# Fixed conversion used by every exported spacing value
METERS_PER_FOOT = 0.3048

# Parameter names tried in priority order; first hit wins, otherwise 0
K_FACTOR_KEYS = ("K-Factor", "K_Factor", "KFactor", "DischargeCoefficient")
COVERAGE_AREA_KEYS = ("Coverage Area", "Coverage_Area", "CoverageArea")
PIPE_LENGTH_KEYS = ("Length", "NominalLength")
PIPE_DIAMETER_KEYS = ("NominalDiameter", "OuterDiameter", "Diameter", "Size")

# Orientation keywords matched against family/type names, first match wins
ORIENTATION_KEYWORDS = (
    (("pendent", "pendant"), "Pendent"),
    (("upright",), "Upright"),
    (("sidewall",), "Sidewall"),
    (("concealed",), "Concealed"),
    (("recessed",), "Recessed"),
)

# Network names that mean "no system assigned"
UNASSIGNED_NETWORK_NAMES = ("", "unassigned", "<unassigned>", "none", "default")

# Substrings that mark a network as fire protection
FIRE_PROTECTION_MARKERS = ("fire", "sprinkler")

# Parent id used for the root record of the bottom-up tree form
ROOT_PARENT_SENTINEL = "#"

# Prefix for environment variable overrides (MEPNET_MIN_SPACING_FT, ...)
ENV_PREFIX = "MEPNET_"

# Project-local settings file, relative to the project root
SETTINGS_FILE = Path(".mepnet") / "config.json"
