import json
from datetime import datetime, timezone

import pytest

from osmi_pubtrans.ogr_writer import OGRWriter, Options
from osmi_pubtrans.osm import Location, Node, Way
from osmi_pubtrans.railway_handler_pass2 import RailwayHandlerPass2, switch_type_value


def _features(directory, name):
    data = json.loads((directory / name).read_text(encoding="utf-8"))
    return data["features"]


@pytest.fixture
def options(tmp_path):
    return Options(output_format="GeoJSON", output_directory=str(tmp_path))


@pytest.mark.parametrize(
    "switch_type, via, expected",
    [
        ("default", False, "default"),
        ("double_slip", False, "double_slip"),
        ("single_slip", True, "single_slip"),
        ("single_slip", False, "single_slip_incomplete"),
        ("something", True, "UNKNOWN_VALUE"),
        (None, False, ""),
    ],
)
def test_switch_type_value(switch_type, via, expected):
    assert switch_type_value(switch_type, via) == expected


def test_layer_fields(tmp_path, options):
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, set(), {}, options)
        assert handler.on_track.fields == ["node_id", "lastchange", "type", "error"]
        assert handler.points.fields == ["node_id", "lastchange", "type", "ref"]


def test_switch_written_to_points(tmp_path, options):
    stamp = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, {7}, {}, options)
        handler.node(
            Node(7, Location(9.5, 50.5), {"railway": "switch", "railway:switch": "single_slip", "ref": "W3"}, stamp)
        )
        handler.node(Node(8, Location(9.6, 50.6), {"railway": "signal"}))
    features = _features(tmp_path, "points")
    assert len(features) == 1
    props = features[0]["properties"]
    assert props["node_id"] == "7"
    assert props["type"] == "single_slip"
    assert props["ref"] == "W3"
    assert props["lastchange"] == stamp.strftime("%Y-%m-%dT%H:%M:%SZ")
    assert features[0]["geometry"]["coordinates"] == [9.5, 50.5]


def test_switch_with_invalid_location_skipped(tmp_path, options):
    invalid = Node(7, Location(), {"railway": "switch"})
    must_on_track = {7: invalid}
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, set(), must_on_track, options)
        handler.node(invalid)
        handler.node(Node(8, Location(9.6, 50.6), {"railway": "switch"}))
        handler.way(Way(10, (7, 9)))
        assert must_on_track == {}
    features = _features(tmp_path, "points")
    assert [f["properties"]["node_id"] for f in features] == ["8"]


def test_points_disabled(tmp_path):
    options = Options(output_format="GeoJSON", output_directory=str(tmp_path), points=False)
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, set(), {}, options)
        handler.node(Node(7, Location(9.5, 50.5), {"railway": "switch"}))
        assert handler.points is None
    assert not (tmp_path / "points").exists()
    assert (tmp_path / "on_track").exists()


def test_way_removes_nodes_and_after_ways_writes_rest(tmp_path, options):
    must_on_track = {
        1: Node(1, Location(8.0, 49.0), {"railway": "signal"}),
        2: Node(2, Location(8.1, 49.1), {"public_transport": "stop_position", "railway": "stop"}),
        3: Node(3, Location(8.2, 49.2), {}),
    }
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, set(), must_on_track, options)
        handler.way(Way(10, (1, 5)))
        assert sorted(must_on_track) == [2, 3]
        handler.after_ways()
    features = _features(tmp_path, "on_track")
    assert [f["properties"]["node_id"] for f in features] == ["2"]
    assert features[0]["properties"]["type"] == "stop_position"
    assert features[0]["properties"]["error"] == "not on a way"


def test_railway_only_nodes_skipped_without_points(tmp_path):
    options = Options(output_format="GeoJSON", output_directory=str(tmp_path), points=False)
    must_on_track = {
        1: Node(1, Location(8.0, 49.0), {"railway": "signal"}),
        2: Node(2, Location(8.1, 49.1), {"public_transport": "stop_position"}),
    }
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, set(), must_on_track, options)
        handler.after_ways()
    features = _features(tmp_path, "on_track")
    assert [f["properties"]["node_id"] for f in features] == ["2"]


def test_railway_node_written_with_railway_type(tmp_path, options):
    must_on_track = {
        1: Node(1, Location(8.0, 49.0), {"railway": "buffer_stop"}),
        4: Node(4, Location(), {"railway": "signal"}),
        5: Node(5, Location(8.5, 49.5), {"railway": "milestone"}),
    }
    with OGRWriter(options) as writer:
        handler = RailwayHandlerPass2(writer, set(), must_on_track, options)
        handler.way(Way(11, (5, 6)))
        assert sorted(must_on_track) == [1, 4]
        handler.after_ways()
    features = _features(tmp_path, "on_track")
    assert [(f["properties"]["node_id"], f["properties"]["type"]) for f in features] == [("1", "buffer_stop")]