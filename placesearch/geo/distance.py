from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from sklearn.metrics.pairwise import haversine_distances

from .models import Coordinates

EARTH_RADIUS_KM = 6371.0


def _radians(points: Sequence[Coordinates]) -> np.ndarray:
    return np.radians(np.array([[p.lat, p.lng] for p in points], dtype=float).reshape(-1, 2))


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two points, in kilometres."""
    lat1, lng1, lat2, lng2 = np.radians([a.lat, a.lng, b.lat, b.lng])
    h = np.sin((lat2 - lat1) / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2.0) ** 2
    return float(2.0 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(min(1.0, h))))


def pairwise_distances_m(points: Sequence[Coordinates], anchors: Sequence[Coordinates]) -> np.ndarray:
    """Return a (len(points), len(anchors)) matrix of distances in metres."""
    if not points or not anchors:
        return np.zeros((len(points), len(anchors)))
    return haversine_distances(_radians(points), _radians(anchors)) * EARTH_RADIUS_KM * 1000.0
