"""Greedy proximity grouping around street anchors."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from ..filters.models import FilteredPlace
from ..geo.distance import pairwise_distances_m
from ..geo.models import Coordinates
from .config import DEFAULT_GROUPING_CONFIG, GroupingConfig
from .models import Band, GroupMember, ResultGroup

logger = logging.getLogger(__name__)


@dataclass
class _Draft:
    anchor: Coordinates | None
    name: str | None = None
    members: list[GroupMember] = field(default_factory=list)


def _assign(distances: np.ndarray, config: GroupingConfig) -> tuple[int, Band, float] | None:
    if distances.size == 0:
        return None
    nearest = int(np.argmin(distances))
    distance = float(distances[nearest])
    if distance <= config.exact_radius_m:
        return nearest, Band.WITHIN_EXACT, distance
    if distance <= config.nearby_radius_m:
        return nearest, Band.NEARBY, distance
    return None


def _finalize(drafts: list[_Draft], config: GroupingConfig) -> list[ResultGroup]:
    groups = []
    cluster = 0
    carried: str | None = None
    for draft in drafts:
        if not draft.members:
            carried = draft.name
            continue
        name = draft.name
        if name is None and carried is not None and draft.anchor is not None:
            name, carried = carried, None
        if name is None:
            cluster += 1
            name = f"{config.cluster_label} {cluster}"
        exact = sum(1 for m in draft.members if m.band is Band.WITHIN_EXACT)
        groups.append(
            ResultGroup(
                name=name,
                band=Band.WITHIN_EXACT if exact else Band.NEARBY,
                anchor=draft.anchor,
                members=tuple(draft.members),
                exact_count=exact,
                nearby_count=len(draft.members) - exact,
            )
        )
    return groups


def group_by_street(
    places: Sequence[FilteredPlace],
    street_token: str | None = None,
    seed_anchor: Coordinates | None = None,
    config: GroupingConfig = DEFAULT_GROUPING_CONFIG,
) -> list[ResultGroup]:
    """
    Partition ``places`` into proximity groups, keeping result order.

    Each place joins the nearest anchor within the exact radius, else the
    nearest within the nearby radius, else starts a singleton group anchored on
    itself. The seeded group (or the first group when there is no seed) takes
    ``street_token`` as its name; an empty seeded group hands it to the first
    anchored group instead. Places without coordinates each get their own
    anchorless group in the nearby band.
    """
    drafts: list[_Draft] = []
    if seed_anchor is not None:
        drafts.append(_Draft(anchor=seed_anchor, name=street_token))

    for place in places:
        location = place.candidate.location
        if location is None:
            drafts.append(_Draft(anchor=None, members=[GroupMember(place=place, band=Band.NEARBY)]))
            continue

        anchored = [d for d in drafts if d.anchor is not None]
        distances = pairwise_distances_m([location], [d.anchor for d in anchored])[0]
        assignment = _assign(distances, config)
        if assignment is not None:
            index, band, distance = assignment
            anchored[index].members.append(GroupMember(place=place, band=band, distance_m=round(distance, 1)))
            continue

        name = street_token if not anchored else None
        drafts.append(
            _Draft(anchor=location, name=name, members=[GroupMember(place=place, band=Band.WITHIN_EXACT, distance_m=0.0)])
        )

    groups = _finalize(drafts, config)
    logger.info("Grouped %d places into %d group(s)", len(places), len(groups))
    return groups
