from typing import Dict, List, Tuple

from geoinsights.config import OVERLAP_DECIMALS
from geoinsights.models import Point


def overlap_key(point: Point, decimals: int = OVERLAP_DECIMALS) -> Tuple[float, float]:
    """Quantize a point's coordinates to a cell of roughly one square meter (5 decimals ~ 1.1 m)."""
    return round(point.latitude, decimals), round(point.longitude, decimals)


def find_exact_overlaps(points: List[Point], decimals: int = OVERLAP_DECIMALS) -> List[List[Point]]:
    """
    Group points that fall in the same quantized coordinate cell.

    Args:
        points (List[Point]): Points with coordinates.
        decimals (int): Decimal places kept when quantizing.

    Returns:
        List[List[Point]]: Groups with two or more points, ordered by first appearance.
    """
    cells: Dict[Tuple[float, float], List[Point]] = {}
    for point in points:
        cells.setdefault(overlap_key(point, decimals), []).append(point)
    return [group for group in cells.values() if len(group) > 1]
