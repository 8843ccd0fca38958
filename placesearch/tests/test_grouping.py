from __future__ import annotations

from placesearch.candidates.models import Candidate
from placesearch.filters.models import FilteredPlace
from placesearch.geo.models import Coordinates
from placesearch.grouping.config import GroupingConfig
from placesearch.grouping.models import Band
from placesearch.grouping.streets import group_by_street

ORIGIN = Coordinates(lat=32.0, lng=34.78)
METRES_PER_DEGREE_LAT = 111_195.0


def _north(metres: float) -> Coordinates:
    return Coordinates(lat=ORIGIN.lat + metres / METRES_PER_DEGREE_LAT, lng=ORIGIN.lng)


def _place(cid: str, metres: float | None) -> FilteredPlace:
    location = _north(metres) if metres is not None else None
    return FilteredPlace(candidate=Candidate(id=cid, name=cid, location=location))


def _ids(group):
    return [m.place.candidate.id for m in group.members]


class TestBands:
    def test_exact_nearby_and_new_group(self):
        places = [_place("a", 0), _place("b", 150), _place("c", 300), _place("d", 1000), _place("e", 1100)]

        groups = group_by_street(places, street_token="Dizengoff")

        assert [g.name for g in groups] == ["Dizengoff", "Nearby cluster 1"]
        first, second = groups
        assert _ids(first) == ["a", "b", "c"]
        assert [m.band for m in first.members] == [Band.WITHIN_EXACT, Band.WITHIN_EXACT, Band.NEARBY]
        assert (first.count, first.exact_count, first.nearby_count) == (3, 2, 1)
        assert first.band is Band.WITHIN_EXACT
        assert first.anchor == places[0].candidate.location
        assert _ids(second) == ["d", "e"]
        assert second.members[1].band is Band.WITHIN_EXACT

    def test_radius_boundaries(self):
        groups = group_by_street([_place("a", 0), _place("b", 199), _place("c", 399), _place("d", 450)])

        assert [m.band for m in groups[0].members] == [Band.WITHIN_EXACT, Band.WITHIN_EXACT, Band.NEARBY]
        assert _ids(groups[1]) == ["d"]

    def test_custom_radii(self):
        config = GroupingConfig(exact_radius_m=50, nearby_radius_m=100)

        groups = group_by_street([_place("a", 0), _place("b", 80), _place("c", 150)], config=config)

        assert [g.count for g in groups] == [2, 1]
        assert groups[0].members[1].band is Band.NEARBY

    def test_result_order_is_preserved_within_groups(self):
        places = [_place("far", 5000), _place("a", 0), _place("far2", 5100), _place("b", 100)]

        groups = group_by_street(places)

        assert [_ids(g) for g in groups] == [["far", "far2"], ["a", "b"]]


class TestNaming:
    def test_without_street_token_all_groups_are_clusters(self):
        groups = group_by_street([_place("a", 0), _place("b", 5000)])

        assert [g.name for g in groups] == ["Nearby cluster 1", "Nearby cluster 2"]

    def test_seed_anchor_takes_street_name(self):
        groups = group_by_street([_place("a", 100), _place("b", 2000)], street_token="Allenby", seed_anchor=ORIGIN)

        assert groups[0].name == "Allenby"
        assert groups[0].anchor == ORIGIN
        assert _ids(groups[0]) == ["a"]
        assert groups[0].members[0].distance_m == 100.0
        assert groups[1].name == "Nearby cluster 1"

    def test_empty_seed_group_is_dropped(self):
        groups = group_by_street([_place("a", 3000)], street_token="Allenby", seed_anchor=ORIGIN)

        assert len(groups) == 1
        assert groups[0].anchor == _north(3000)

    def test_empty_seed_group_hands_its_name_to_the_first_group(self):
        places = [_place("x", None), _place("a", 1100), _place("b", 5000)]

        groups = group_by_street(places, street_token="Dizengoff", seed_anchor=ORIGIN)

        assert [g.name for g in groups] == ["Nearby cluster 1", "Dizengoff", "Nearby cluster 2"]
        assert _ids(groups[1]) == ["a"]


class TestWithoutCoordinates:
    def test_each_gets_an_anchorless_nearby_group(self):
        groups = group_by_street([_place("x", None), _place("a", 0), _place("y", None)], street_token="Herzl")

        assert [g.name for g in groups] == ["Nearby cluster 1", "Herzl", "Nearby cluster 2"]
        assert groups[0].anchor is None
        assert groups[0].band is Band.NEARBY
        assert (groups[0].exact_count, groups[0].nearby_count) == (0, 1)

    def test_empty_input(self):
        assert group_by_street([]) == []
