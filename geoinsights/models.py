"""
Typed data models for the POI analysis and comparison pipeline.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class ConfigurationError(ValueError):
    """Raised when a required column mapping or parameter is missing before work starts."""


class ClassificationKind(str, Enum):
    CLEAN = "clean"
    INVALID = "invalid"
    DUPLICATE = "duplicate"
    PROXIMITY = "proximity"
    LOCATION_MISMATCH = "location-mismatch"
    BASE = "base"
    MATCH = "match"


@dataclass(frozen=True)
class Classification:
    """Label attached to a point by one analysis phase."""
    kind: ClassificationKind
    reason: str


# Reasons used across the analyzer and the reports
INVALID_COORDINATE = Classification(ClassificationKind.INVALID, "invalid coordinate")
VERIFICATION_ERROR = Classification(ClassificationKind.INVALID, "verification error")
EXACT_OVERLAP = Classification(ClassificationKind.DUPLICATE, "exact overlap")
IN_PROXIMITY = Classification(ClassificationKind.PROXIMITY, "proximity")
INCORRECT_STATE = Classification(ClassificationKind.LOCATION_MISMATCH, "incorrect state")
INCORRECT_CITY = Classification(ClassificationKind.LOCATION_MISMATCH, "incorrect city")
VALID_POINT = Classification(ClassificationKind.CLEAN, "valid point")
BASE_POINT = Classification(ClassificationKind.BASE, "base point")
MATCHED_POINT = Classification(ClassificationKind.MATCH, "matched point")


@dataclass
class ColumnMapping:
    """Which input column holds each field the analysis needs."""
    lat: Optional[str] = None
    lon: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None


@dataclass
class Point:
    """One row of an input dataset."""
    row: int
    latitude: Optional[float]
    longitude: Optional[float]
    attributes: Dict[str, str]
    classification: Optional[Classification] = None
    detected_state: Optional[str] = None
    detected_city: Optional[str] = None
    state_match: Optional[bool] = None
    city_match: Optional[bool] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class AnalysisOptions:
    """Checks to run during a single-dataset analysis."""
    check_invalid: bool = True
    check_duplicates: bool = True
    check_proximity: bool = True
    check_geographic: bool = False
    proximity_threshold_m: Optional[float] = None  # required when check_proximity is on


@dataclass
class AnalysisMetrics:
    """Aggregate counters over one single-dataset run."""
    total_pois: int = 0
    invalid_coordinates: int = 0
    pois_in_exact_overlap: int = 0
    pois_in_proximity: int = 0
    state_mismatches: int = 0
    city_mismatches: int = 0
    clean_points_count: int = 0


@dataclass
class AnalysisResult:
    """Final result of a single-dataset analysis."""
    metrics: AnalysisMetrics
    clean_points: List[Point]
    problematic_points: List[Point]
    all_points: List[Point]
    result_groups: Dict[str, List[List[Point]]] = field(default_factory=dict)
    interrupted: bool = False


@dataclass(frozen=True)
class ExactCell:
    """Candidates within the same square meter (distance <= 1 m)."""


@dataclass(frozen=True)
class Nearest:
    """The n closest candidates per base point."""
    n: int = 1

    def __post_init__(self):
        if self.n < 1:
            raise ConfigurationError(f"Nearest policy needs n >= 1, got {self.n}")


@dataclass(frozen=True)
class Radius:
    """All candidates within `meters` of the base point."""
    meters: float = 100.0

    def __post_init__(self):
        if self.meters < 0:
            raise ConfigurationError(f"Radius policy needs a non-negative radius, got {self.meters}")


MatchPolicy = Union[ExactCell, Nearest, Radius]


@dataclass
class MatchRecord:
    """One (base, candidate) pair retained by a comparison policy."""
    base_row: int
    base_attributes: Dict[str, str]
    match_row: int
    match_attributes: Dict[str, str]
    distance: float  # meters, full precision


@dataclass
class ComparisonResult:
    """Final result of a two-dataset comparison."""
    records: List[MatchRecord]
    same_square_matches: List[MatchRecord]
    base_sheet: str
    policy: MatchPolicy
    total_base_points: int
    matched_base_points: int
    base_points: List[Point] = field(default_factory=list)
    candidate_points: List[Point] = field(default_factory=list)
    interrupted: bool = False


@dataclass
class ReverseGeocodeResult:
    """Place resolved from a coordinate pair."""
    city: Optional[str] = None
    state: Optional[str] = None


@dataclass
class GeoCheckResult:
    """Outcome of comparing declared state/city against the detected place."""
    detected_state: Optional[str]
    detected_city: Optional[str]
    state_match: Optional[bool]
    city_match: Optional[bool]


@dataclass
class TabularData:
    """Parsed spreadsheet: headers in file order and one dict per data row."""
    headers: List[str]
    rows: List[Dict[str, str]]
