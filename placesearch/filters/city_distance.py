from __future__ import annotations

import logging
from collections.abc import Sequence

from ..geo.distance import haversine_km
from ..geo.models import Coordinates
from .config import DEFAULT_FILTER_CONFIG, FilterConfig
from .models import CityMatch, FilterDimension, FilteredPlace, FilterStats

logger = logging.getLogger(__name__)

# Millimetre precision, so 10.000 km stays inside the city band.
DISTANCE_DECIMALS = 6


def classify_distance(
    distance_km: float,
    within_km: float = DEFAULT_FILTER_CONFIG.city_within_km,
    suburbs_km: float = DEFAULT_FILTER_CONFIG.city_suburbs_km,
) -> CityMatch:
    if distance_km <= within_km:
        return CityMatch.WITHIN_CITY
    if distance_km <= suburbs_km:
        return CityMatch.NEARBY_SUBURBS
    return CityMatch.TOO_FAR


def filter_by_city_distance(
    places: Sequence[FilteredPlace],
    center: Coordinates | None,
    config: FilterConfig = DEFAULT_FILTER_CONFIG,
) -> tuple[list[FilteredPlace], FilterStats]:
    """
    Drop places too far from the target city centre.

    Skipped when there is no resolved centre. Places without coordinates are
    kept with ``CityMatch.UNKNOWN``.
    """
    before = len(places)
    if center is None:
        return list(places), FilterStats(dimension=FilterDimension.CITY_DISTANCE, before=before, after=before)

    kept: list[FilteredPlace] = []
    unknown_kept = 0
    for place in places:
        location = place.candidate.location
        if location is None:
            unknown_kept += 1
            kept.append(
                place.model_copy(
                    update={
                        "city_match": CityMatch.UNKNOWN,
                        "unverified": place.unverified + (FilterDimension.CITY_DISTANCE,),
                    }
                )
            )
            continue

        distance = round(haversine_km(location, center), DISTANCE_DECIMALS)
        match = classify_distance(distance, config.city_within_km, config.city_suburbs_km)
        if match is CityMatch.TOO_FAR:
            logger.debug("Dropping %s at %.3f km from city centre", place.candidate.id, distance)
            continue
        kept.append(place.model_copy(update={"city_match": match, "distance_km": distance}))

    stats = FilterStats(
        dimension=FilterDimension.CITY_DISTANCE,
        applied=True,
        before=before,
        after=len(kept),
        removed=before - len(kept),
        unknown_kept=unknown_kept,
    )
    logger.info("City filter: %d -> %d (unknown kept %d)", stats.before, stats.after, stats.unknown_kept)
    return kept, stats
