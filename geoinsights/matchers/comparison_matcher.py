from typing import Callable, Dict, List, Optional

import numpy as np
from loguru import logger

from geoinsights.config import EXACT_CELL_METERS
from geoinsights.distance import haversine_many
from geoinsights.models import (
    BASE_POINT,
    MATCHED_POINT,
    ColumnMapping,
    ComparisonResult,
    ConfigurationError,
    ExactCell,
    MatchPolicy,
    MatchRecord,
    Nearest,
    Point,
    Radius,
)
from geoinsights.points import build_points


def select_matches(distances: np.ndarray, policy: MatchPolicy) -> List[int]:
    """
    Apply a match policy to the distances from one base point to every candidate.

    Args:
        distances (np.ndarray): Distance in meters to each candidate, in candidate order.
        policy (MatchPolicy): ExactCell, Nearest(n) or Radius(meters).

    Returns:
        List[int]: Indices of the retained candidates, in match order.
    """
    if isinstance(policy, ExactCell):
        # Candidate order, not distance order
        return [int(i) for i in np.flatnonzero(distances <= EXACT_CELL_METERS)]

    order = np.argsort(distances, kind="stable")
    if isinstance(policy, Nearest):
        return [int(i) for i in order[:policy.n]]
    if isinstance(policy, Radius):
        return [int(i) for i in order if distances[i] <= policy.meters]

    raise ConfigurationError(f"Unknown match policy: {policy!r}")


def compare_datasets(
    rows_a: List[Dict[str, str]],
    mapping_a: ColumnMapping,
    rows_b: List[Dict[str, str]],
    mapping_b: ColumnMapping,
    base_sheet: str,
    policy: MatchPolicy,
    cancel_event=None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> ComparisonResult:
    """
    Find, for every point of the base dataset, its corresponding points in the other one.

    Args:
        rows_a, rows_b (List[Dict[str, str]]): Rows of datasets A and B.
        mapping_a, mapping_b (ColumnMapping): Column mappings; lat/lon are required.
        base_sheet (str): "A" or "B", the dataset whose points drive the search.
        policy (MatchPolicy): How candidates are retained per base point.
        cancel_event: Optional event; when set, matching stops before the next base point.
        progress: Optional callback receiving (processed, total) base points.

    Returns:
        ComparisonResult: Records in base order, plus aggregates.

    Raises:
        ConfigurationError: If lat/lon are unmapped for either dataset, or base_sheet is invalid.
    """
    if base_sheet not in ("A", "B"):
        raise ConfigurationError(f"Base sheet must be 'A' or 'B', got {base_sheet!r}")

    points_a = build_points(rows_a, mapping_a, require_coordinates=True)
    points_b = build_points(rows_b, mapping_b, require_coordinates=True)

    base_points, candidate_points = (points_a, points_b) if base_sheet == "A" else (points_b, points_a)
    candidates = [p for p in candidate_points if p.has_coordinates]
    cand_lats = np.array([p.latitude for p in candidates], dtype=float)
    cand_lons = np.array([p.longitude for p in candidates], dtype=float)

    logger.debug(
        f"Comparing {len(base_points)} base points against {len(candidates)} candidates "
        f"(base={base_sheet}, policy={policy})"
    )

    records: List[MatchRecord] = []
    matched_base_points = 0
    interrupted = False
    total = len(base_points)

    for processed, base in enumerate(base_points, start=1):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Comparison interrupted after {processed - 1}/{total} base points")
            interrupted = True
            break

        if base.has_coordinates and candidates:
            distances = haversine_many(base.latitude, base.longitude, cand_lats, cand_lons)
            selected = select_matches(distances, policy)
            if selected:
                matched_base_points += 1
            for i in selected:
                records.append(MatchRecord(
                    base_row=base.row,
                    base_attributes=base.attributes,
                    match_row=candidates[i].row,
                    match_attributes=candidates[i].attributes,
                    distance=float(distances[i]),
                ))

        if progress is not None:
            progress(processed, total)

    return ComparisonResult(
        records=records,
        same_square_matches=[r for r in records if r.distance <= EXACT_CELL_METERS],
        base_sheet=base_sheet,
        policy=policy,
        total_base_points=total,
        matched_base_points=matched_base_points,
        base_points=base_points,
        candidate_points=candidate_points,
        interrupted=interrupted,
    )


def label_comparison_points(result: ComparisonResult) -> List[Point]:
    """Label matched base points and their matches for display; returns every labeled point."""
    base_rows = {r.base_row for r in result.records}
    match_rows = {r.match_row for r in result.records}

    labeled = []
    for point in result.base_points:
        if point.row in base_rows:
            point.classification = BASE_POINT
            labeled.append(point)
    for point in result.candidate_points:
        if point.row in match_rows:
            point.classification = MATCHED_POINT
            labeled.append(point)
    return labeled
