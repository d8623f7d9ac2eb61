# geoinsights/matchers/analysis_orchestrator.py

import asyncio
from typing import Callable, Dict, List, Optional

from loguru import logger

from geoinsights.config import REQUEST_DELAY_SECONDS
from geoinsights.matchers.geographic_matcher import check_geographic_consistency
from geoinsights.matchers.overlap_matcher import find_exact_overlaps
from geoinsights.matchers.proximity_matcher import find_proximity_clusters
from geoinsights.models import (
    EXACT_OVERLAP,
    IN_PROXIMITY,
    INCORRECT_CITY,
    INCORRECT_STATE,
    INVALID_COORDINATE,
    VALID_POINT,
    VERIFICATION_ERROR,
    AnalysisMetrics,
    AnalysisOptions,
    AnalysisResult,
    ClassificationKind,
    ColumnMapping,
    ConfigurationError,
    Point,
)
from geoinsights.points import build_points, split_by_coordinates


def _validate_options(mapping: ColumnMapping, options: AnalysisOptions, reverse_geocoder) -> None:
    if not mapping.lat or not mapping.lon:
        raise ConfigurationError("Latitude and Longitude columns must be mapped.")
    if options.check_proximity:
        if options.proximity_threshold_m is None:
            raise ConfigurationError("Proximity check enabled but no proximity threshold was given.")
        if options.proximity_threshold_m < 0:
            raise ConfigurationError(
                f"Proximity threshold must be non-negative, got {options.proximity_threshold_m}"
            )
    if options.check_geographic:
        if reverse_geocoder is None:
            raise ConfigurationError("Geographic check enabled but no reverse geocoder was given.")
        if not mapping.state and not mapping.city:
            raise ConfigurationError("Geographic check needs the State or City column mapped.")


def compute_metrics(points: List[Point]) -> AnalysisMetrics:
    """Count each point once, in the bucket of its classification."""
    metrics = AnalysisMetrics(total_pois=len(points))
    for point in points:
        status = point.classification
        if status is None:
            continue
        if status.kind is ClassificationKind.INVALID:
            metrics.invalid_coordinates += 1
        elif status.kind is ClassificationKind.DUPLICATE:
            metrics.pois_in_exact_overlap += 1
        elif status.kind is ClassificationKind.PROXIMITY:
            metrics.pois_in_proximity += 1
        elif status == INCORRECT_STATE:
            metrics.state_mismatches += 1
        elif status.kind is ClassificationKind.LOCATION_MISMATCH:
            metrics.city_mismatches += 1
        elif status.kind is ClassificationKind.CLEAN:
            metrics.clean_points_count += 1
    return metrics


async def verify_locations(
    points: List[Point],
    mapping: ColumnMapping,
    reverse_geocoder,
    request_delay: float = REQUEST_DELAY_SECONDS,
    cancel_event: Optional[asyncio.Event] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> bool:
    """
    Check declared state/city of each point against reverse geocoding, one request at a time.

    Each point is labeled as it completes. A failing lookup labels only that
    point as a verification error; the loop always moves on to the next one.

    Args:
        points (List[Point]): Unlabeled points with coordinates.
        mapping (ColumnMapping): Provides the State/City columns.
        reverse_geocoder: Object exposing `async reverse_geocode(lat, lon)`.
        request_delay (float): Seconds to wait between successive lookups.
        cancel_event (Optional[asyncio.Event]): Stops the loop before the next point when set.
        progress: Optional callback receiving (processed, total).

    Returns:
        bool: True if the loop was interrupted before every point was checked.
    """
    total = len(points)
    for index, point in enumerate(points, start=1):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Location check interrupted after {index - 1}/{total} points")
            return True
        if index > 1 and request_delay > 0:
            await asyncio.sleep(request_delay)

        try:
            check = await check_geographic_consistency(
                point.latitude,
                point.longitude,
                point.attributes.get(mapping.state) if mapping.state else None,
                point.attributes.get(mapping.city) if mapping.city else None,
                reverse_geocoder,
                check_state=bool(mapping.state),
                check_city=bool(mapping.city),
            )
        except Exception as e:
            logger.warning(f"⚠️ Location check failed for row {point.row}: {e}")
            point.classification = VERIFICATION_ERROR
        else:
            point.detected_state = check.detected_state
            point.detected_city = check.detected_city
            point.state_match = check.state_match
            point.city_match = check.city_match
            if check.state_match is False:
                point.classification = INCORRECT_STATE
            elif check.city_match is False:
                point.classification = INCORRECT_CITY
            else:
                point.classification = VALID_POINT

        if progress is not None:
            progress(index, total)
    return False


async def analyze_points(
    rows: List[Dict[str, str]],
    mapping: ColumnMapping,
    options: AnalysisOptions,
    reverse_geocoder=None,
    request_delay: float = REQUEST_DELAY_SECONDS,
    cancel_event: Optional[asyncio.Event] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> AnalysisResult:
    """
    Orchestrate all single-dataset checks (invalid, overlap, proximity, location)
    and produce labeled point collections with summary metrics.

    Checks run in that order and the first label a point receives wins.
    Points no check flagged end up clean.

    Args:
        rows (List[Dict[str, str]]): Input rows as column name -> raw value.
        mapping (ColumnMapping): Lat/Lon are required; State/City for the location check.
        options (AnalysisOptions): Which checks to run and the proximity threshold.
        reverse_geocoder: Needed only when `options.check_geographic` is set.
        request_delay (float): Seconds between reverse-geocoding requests.
        cancel_event (Optional[asyncio.Event]): Interrupts the location check between rows.
        progress: Optional callback receiving (processed, total) during the location check.

    Returns:
        AnalysisResult: Clean and problematic points, groups and metrics.

    Raises:
        ConfigurationError: When the mapping or options cannot support the requested checks.
    """
    _validate_options(mapping, options, reverse_geocoder)

    points = build_points(rows, mapping, require_coordinates=True)
    valid, invalid = split_by_coordinates(points)
    logger.debug(f"Analyzing {len(points)} points ({len(invalid)} without usable coordinates)")

    # A point without coordinates can never be clean, whether or not it is reported
    for point in invalid:
        point.classification = INVALID_COORDINATE

    result_groups: Dict[str, List[List[Point]]] = {}

    if options.check_duplicates:
        overlaps = find_exact_overlaps(valid)
        for group in overlaps:
            for point in group:
                point.classification = EXACT_OVERLAP
        result_groups["exact_overlap"] = overlaps

    if options.check_proximity:
        remaining = [p for p in valid if p.classification is None]
        clusters = find_proximity_clusters(remaining, options.proximity_threshold_m)
        for cluster in clusters:
            for point in cluster:
                point.classification = IN_PROXIMITY
        result_groups["proximity"] = clusters

    interrupted = False
    if options.check_geographic:
        remaining = [p for p in valid if p.classification is None]
        interrupted = await verify_locations(
            remaining, mapping, reverse_geocoder, request_delay, cancel_event, progress
        )

    for point in valid:
        if point.classification is None:
            point.classification = VALID_POINT

    clean_points = [p for p in points if p.classification.kind is ClassificationKind.CLEAN]
    problematic_points = [
        p for p in points
        if p.classification.kind is not ClassificationKind.CLEAN
        and (options.check_invalid or p.has_coordinates)
    ]

    mismatches = [p for p in points if p.classification.kind is ClassificationKind.LOCATION_MISMATCH]
    if mismatches:
        result_groups["location_mismatch"] = [mismatches]
    reported_invalid = [p for p in problematic_points if p.classification.kind is ClassificationKind.INVALID]
    if reported_invalid:
        result_groups["invalid"] = [reported_invalid]

    metrics = compute_metrics(points)
    logger.info(
        f"Analysis done: {metrics.total_pois} points, {len(problematic_points)} problematic, "
        f"{metrics.clean_points_count} clean"
    )

    return AnalysisResult(
        metrics=metrics,
        clean_points=clean_points,
        problematic_points=problematic_points,
        all_points=points,
        result_groups=result_groups,
        interrupted=interrupted,
    )
