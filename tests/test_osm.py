from datetime import datetime, timedelta, timezone

import pytest

from osmi_pubtrans.osm import (
    ItemType,
    Location,
    Node,
    Relation,
    RelationMember,
    Way,
    coordinates_valid,
)


def test_undefined_location_is_invalid():
    assert Location().valid() is False


@pytest.mark.parametrize(
    "lon,lat,expected",
    [
        (8.4, 49.0, True),
        (180.0, 90.0, True),
        (-180.0, -90.0, True),
        (180.5, 10.0, False),
        (10.0, -90.1, False),
    ],
)
def test_location_bounds(lon, lat, expected):
    assert Location(lon, lat).valid() is expected


def test_mercator_excludes_poles():
    pole = Location(10.0, 90.0)
    assert coordinates_valid(pole) is True
    assert coordinates_valid(pole, mercator=True) is False
    assert coordinates_valid(Location(10.0, 89.9), mercator=True) is True


def test_node_iso_timestamp_utc():
    node = Node(1, Location(1.0, 2.0), timestamp=datetime(2017, 8, 21, 10, 0, 0, tzinfo=timezone.utc))
    assert node.iso_timestamp() == "2017-08-21T10:00:00Z"


def test_node_iso_timestamp_converted_to_utc():
    tz = timezone(timedelta(hours=2))
    node = Node(1, timestamp=datetime(2017, 8, 21, 12, 0, 0, tzinfo=tz))
    assert node.iso_timestamp() == "2017-08-21T10:00:00Z"


def test_missing_timestamp_gives_empty_string():
    assert Node(1).iso_timestamp() == ""
    assert Way(2).iso_timestamp() == ""


def test_item_types():
    assert Node(1).type is ItemType.NODE
    assert Way(1).type is ItemType.WAY
    assert Relation(1).type is ItemType.RELATION


def test_ends_have_same_id():
    assert Way(1, nodes=(1, 2, 3, 1)).ends_have_same_id() is True
    assert Way(1, nodes=(1, 2, 3)).ends_have_same_id() is False
    assert Way(1).ends_have_same_id() is False


def test_way_locations_must_match_nodes():
    with pytest.raises(ValueError):
        Way(1, nodes=(1, 2), locations=(Location(1.0, 1.0),))


def test_way_coordinates_valid():
    good = Way(1, nodes=(1, 2), locations=(Location(1.0, 1.0), Location(2.0, 2.0)))
    bad = Way(1, nodes=(1, 2), locations=(Location(1.0, 1.0), Location()))
    unknown = Way(1, nodes=(1, 2))
    assert coordinates_valid(good) is True
    assert coordinates_valid(bad) is False
    assert coordinates_valid(unknown) is False
    assert coordinates_valid(Way(1)) is True


def test_node_coordinates_valid():
    assert coordinates_valid(Node(1, Location(3.0, 4.0))) is True
    assert coordinates_valid(Node(1)) is False


def test_relation_has_no_valid_coordinates():
    rel = Relation(5, members=[RelationMember(ItemType.NODE, 1, "stop")])
    assert coordinates_valid(rel) is False
    assert rel.members == (RelationMember(ItemType.NODE, 1, "stop"),)