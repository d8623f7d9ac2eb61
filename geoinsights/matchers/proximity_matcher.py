import math
from typing import Dict, List

from geoinsights.config import EARTH_RADIUS_M
from geoinsights.distance import point_distance
from geoinsights.models import Point

# Meters per degree of latitude on the haversine sphere
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180


def _find(parent: List[int], i: int) -> int:
    while parent[i] != i:
        parent[i] = parent[parent[i]]
        i = parent[i]
    return i


def find_proximity_clusters(points: List[Point], threshold_m: float) -> List[List[Point]]:
    """
    Cluster points that lie within `threshold_m` meters of each other.

    Two points are linked when their haversine distance is <= threshold_m and
    clusters are the connected components of that relation, so a chain of
    close points forms one cluster even if its ends are further apart.

    Candidates are scanned in latitude order and the scan stops once the
    latitude gap alone exceeds the threshold. That cut only holds for
    latitudes within [-90, 90]; if any point lies outside that range every
    pair is compared.

    Args:
        points (List[Point]): Points with coordinates.
        threshold_m (float): Maximum linking distance in meters.

    Returns:
        List[List[Point]]: Clusters with two or more points. Members keep
        input order and clusters are ordered by their first member.
    """
    n = len(points)
    parent = list(range(n))
    max_lat_gap = threshold_m / METERS_PER_DEGREE + 1e-9
    if any(not -90.0 <= p.latitude <= 90.0 for p in points):
        max_lat_gap = math.inf

    order = sorted(range(n), key=lambda i: points[i].latitude)
    for pos, i in enumerate(order):
        for j in order[pos + 1:]:
            if points[j].latitude - points[i].latitude > max_lat_gap:
                break
            if point_distance(points[i], points[j]) <= threshold_m:
                root_i, root_j = _find(parent, i), _find(parent, j)
                if root_i != root_j:
                    parent[max(root_i, root_j)] = min(root_i, root_j)

    clusters: Dict[int, List[Point]] = {}
    for i in range(n):
        clusters.setdefault(_find(parent, i), []).append(points[i])
    return [cluster for cluster in clusters.values() if len(cluster) > 1]
