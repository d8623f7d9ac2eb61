import threading

import pytest

from geoinsights.matchers.comparison_matcher import compare_datasets, label_comparison_points
from geoinsights.models import (
    ClassificationKind,
    ColumnMapping,
    ConfigurationError,
    ExactCell,
    Nearest,
    Radius,
)

MAP_A = ColumnMapping(lat="lat", lon="lon")
MAP_B = ColumnMapping(lat="Latitude", lon="Longitude")


def rows_a(*coords):
    return [{"id": f"a{i}", "lat": lat, "lon": lon} for i, (lat, lon) in enumerate(coords, start=1)]


def rows_b(*coords):
    return [{"id": f"b{i}", "Latitude": lat, "Longitude": lon} for i, (lat, lon) in enumerate(coords, start=1)]


def test_single_points_eleven_meters_apart():
    a = rows_a(("0.0000", "0.0"))
    b = rows_b(("0.0001", "0.0"))

    exact = compare_datasets(a, MAP_A, b, MAP_B, "A", ExactCell())
    radius = compare_datasets(a, MAP_A, b, MAP_B, "A", Radius(100))
    nearest = compare_datasets(a, MAP_A, b, MAP_B, "A", Nearest(1))

    assert exact.records == []
    assert exact.matched_base_points == 0
    assert len(radius.records) == 1
    assert radius.records[0].distance == pytest.approx(11.14, abs=0.1)
    assert len(nearest.records) == 1
    assert radius.same_square_matches == []


def test_exact_cell_keeps_candidate_order_and_ignores_far_points():
    a = rows_a(("-23.5", "-46.6"))
    b = rows_b(
        ("-23.500005", "-46.6"),  # ~0.56 m
        ("-23.6", "-46.6"),
        ("-23.5", "-46.6"),        # 0 m
    )
    result = compare_datasets(a, MAP_A, b, MAP_B, "A", ExactCell())

    assert [r.match_row for r in result.records] == [1, 3]
    assert all(r.distance <= 1 for r in result.records)
    assert result.same_square_matches == result.records


def test_nearest_sorts_by_distance_and_caps_count():
    a = rows_a(("0", "0"), ("10", "10"))
    b = rows_b(("0.003", "0"), ("0.001", "0"), ("0.002", "0"), ("0.001", "0"))
    result = compare_datasets(a, MAP_A, b, MAP_B, "A", Nearest(3))

    per_base = {}
    for r in result.records:
        per_base.setdefault(r.base_row, []).append(r)

    assert all(len(records) <= 3 for records in per_base.values())
    # Tie between candidates 2 and 4 keeps candidate order
    assert [r.match_row for r in per_base[1]] == [2, 4, 3]
    distances = [r.distance for r in per_base[1]]
    assert distances == sorted(distances)
    assert result.matched_base_points == 2


def test_nearest_returns_fewer_when_pool_is_small():
    result = compare_datasets(rows_a(("0", "0")), MAP_A, rows_b(("1", "1")), MAP_B, "A", Nearest(5))
    assert len(result.records) == 1


def test_radius_never_exceeds_radius_and_is_sorted():
    a = rows_a(("0", "0"))
    b = rows_b(("0.0008", "0"), ("0.0002", "0"), ("0.01", "0"), ("0.0005", "0"))
    result = compare_datasets(a, MAP_A, b, MAP_B, "A", Radius(100))

    assert [r.match_row for r in result.records] == [2, 4, 1]
    assert all(r.distance <= 100 for r in result.records)


def test_base_sheet_b_drives_the_search_and_records_keep_attributes():
    a = rows_a(("0", "0"), ("5", "5"))
    b = rows_b(("0", "0"))
    result = compare_datasets(a, MAP_A, b, MAP_B, "B", ExactCell())

    assert result.base_sheet == "B"
    assert result.total_base_points == 1
    assert len(result.records) == 1
    record = result.records[0]
    assert record.base_row == 1 and record.base_attributes["id"] == "b1"
    assert record.match_row == 1 and record.match_attributes["id"] == "a1"


def test_points_without_coordinates_are_skipped_but_counted():
    a = rows_a(("0", "0"), ("", "0"), ("abc", "1"))
    b = rows_b(("0", "0"), ("", ""))
    result = compare_datasets(a, MAP_A, b, MAP_B, "A", Radius(1000))

    assert result.total_base_points == 3
    assert result.matched_base_points == 1
    assert [(r.base_row, r.match_row) for r in result.records] == [(1, 1)]


def test_empty_datasets_give_empty_result():
    result = compare_datasets([], MAP_A, [], MAP_B, "A", Nearest(1))

    assert result.records == []
    assert result.same_square_matches == []
    assert result.total_base_points == 0
    assert result.matched_base_points == 0


def test_matching_is_deterministic():
    a = rows_a(("0", "0"), ("0.0003", "0.0001"))
    b = rows_b(("0.0001", "0"), ("0.0002", "0.0002"), ("0.0003", "0"))
    first = compare_datasets(a, MAP_A, b, MAP_B, "A", Radius(50))
    second = compare_datasets(a, MAP_A, b, MAP_B, "A", Radius(50))

    assert first.records == second.records


@pytest.mark.parametrize("mapping_a, mapping_b", [
    (ColumnMapping(lat="lat"), MAP_B),
    (MAP_A, ColumnMapping(lon="Longitude")),
])
def test_missing_mapping_is_a_configuration_error(mapping_a, mapping_b):
    with pytest.raises(ConfigurationError):
        compare_datasets(rows_a(("0", "0")), mapping_a, rows_b(("0", "0")), mapping_b, "A", ExactCell())


def test_invalid_policy_parameters_and_base_sheet():
    with pytest.raises(ConfigurationError):
        Nearest(0)
    with pytest.raises(ConfigurationError):
        Radius(-5)
    with pytest.raises(ConfigurationError):
        compare_datasets([], MAP_A, [], MAP_B, "C", ExactCell())


def test_cancel_event_stops_between_base_points():
    a = rows_a(("0", "0"), ("0", "0"), ("0", "0"))
    b = rows_b(("0", "0"))
    cancel = threading.Event()

    def progress(done, total):
        if done == 1:
            cancel.set()

    result = compare_datasets(a, MAP_A, b, MAP_B, "A", ExactCell(), cancel_event=cancel, progress=progress)

    assert result.interrupted is True
    assert [r.base_row for r in result.records] == [1]


def test_label_comparison_points_marks_base_and_match():
    a = rows_a(("0", "0"), ("10", "10"))
    b = rows_b(("0", "0"), ("20", "20"))
    result = compare_datasets(a, MAP_A, b, MAP_B, "A", ExactCell())
    labeled = label_comparison_points(result)

    assert [(p.row, p.classification.kind) for p in labeled] == [
        (1, ClassificationKind.BASE),
        (1, ClassificationKind.MATCH),
    ]
    assert result.base_points[1].classification is None
