import json
from datetime import datetime, timezone

import pytest

from osmi_pubtrans.ogr_writer import OGRWriter, Options
from osmi_pubtrans.osm import Location, Node, Relation, Way
from osmi_pubtrans.railway_handler_pass1 import (
    RailwayHandlerPass1,
    crossing_barrier_value,
    crossing_lights_value,
)

STAMP = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_handler(tmp_path, **flags):
    options = Options(output_format="GeoJSON", output_directory=str(tmp_path), **flags)
    writer = OGRWriter(options)
    return writer, RailwayHandlerPass1(writer, options)


def read_layer(tmp_path, name):
    with (tmp_path / name).open(encoding="utf-8") as fh:
        return json.load(fh)["features"]


@pytest.mark.parametrize(
    "value, expected",
    [(None, "NONE"), ("gates", "gates"), ("full", "full"), ("double_half", "double_half"), ("foo", "UNKNOWN")],
)
def test_crossing_barrier_value(value, expected):
    assert crossing_barrier_value(value) == expected


@pytest.mark.parametrize("value, expected", [(None, "NONE"), ("yes", "yes"), ("no", "no"), ("red", "UNKNOWN")])
def test_crossing_lights_value(value, expected):
    assert crossing_lights_value(value) == expected


def test_level_crossing_written_and_kept(tmp_path):
    writer, handler = make_handler(tmp_path)
    node = Node(5, Location(8.5, 49.0), {"railway": "level_crossing", "crossing:light": "yes"}, STAMP)
    handler.node(node)
    writer.close()
    features = read_layer(tmp_path, "crossings")
    assert len(features) == 1
    props = features[0]["properties"]
    assert props["node_id"] == "5"
    assert props["barrier"] == "NONE"
    assert props["lights"] == "yes"
    assert props["lastchange"] == "2020-01-02T03:04:05Z"
    assert features[0]["geometry"]["coordinates"] == [8.5, 49.0]
    assert handler.must_on_track == {5: node}


def test_invalid_location_ignored(tmp_path):
    writer, handler = make_handler(tmp_path)
    handler.node(Node(1, Location(), {"railway": "signal"}))
    writer.close()
    assert handler.must_on_track == {}
    assert read_layer(tmp_path, "crossings") == []


def test_stop_position_goes_to_stops(tmp_path):
    writer, handler = make_handler(tmp_path)
    node = Node(7, Location(1.0, 2.0), {"public_transport": "stop_position", "name": "Main", "ref": "3"})
    handler.node(node)
    writer.close()
    features = read_layer(tmp_path, "stops")
    assert len(features) == 1
    props = features[0]["properties"]
    assert props["name"] == "Main"
    assert props["ref"] == "3"
    assert props["local_ref"] == ""
    assert 7 in handler.must_on_track


def test_station_node_and_way(tmp_path):
    writer, handler = make_handler(tmp_path)
    handler.node(Node(2, Location(1.0, 1.0), {"railway": "station", "amenity": "x"}))
    way = Way(
        9,
        (1, 2, 3),
        (Location(0.0, 0.0), Location(1.0, 0.0), Location(1.0, 1.0)),
        {"public_transport": "station"},
    )
    handler.way(way)
    writer.close()
    stations = read_layer(tmp_path, "stations")
    assert [f["properties"]["amenity"] for f in stations] == ["x"]
    lines = read_layer(tmp_path, "stations_l")
    assert len(lines) == 1
    assert lines[0]["properties"]["way_id"] == "9"
    assert lines[0]["geometry"]["coordinates"] == [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]


def test_bus_stop_without_public_transport(tmp_path):
    writer, handler = make_handler(tmp_path)
    handler.node(Node(3, Location(1.0, 1.0), {"highway": "bus_stop"}))
    handler.node(Node(4, Location(1.0, 1.0), {"highway": "bus_stop", "public_transport": "pole"}))
    writer.close()
    features = read_layer(tmp_path, "stops_only_highway")
    assert [f["properties"]["node_id"] for f in features] == ["3"]


def test_platform_way_with_single_point_skipped(tmp_path):
    writer, handler = make_handler(tmp_path)
    handler.way(Way(11, (1, 2), (Location(1.0, 1.0), Location(1.0, 1.0)), {"railway": "platform"}))
    handler.way(Way(12, (1, 2), (Location(1.0, 1.0), Location(2.0, 1.0)), {"railway": "platform"}))
    writer.close()
    features = read_layer(tmp_path, "platforms_l")
    assert [f["properties"]["way_id"] for f in features] == ["12"]


def test_disabled_layers(tmp_path):
    writer, handler = make_handler(tmp_path, crossings=False, railway_details=False)
    handler.node(Node(5, Location(1.0, 1.0), {"railway": "level_crossing"}))
    writer.close()
    assert handler.crossings is None
    assert not (tmp_path / "crossings").exists()
    assert handler.must_on_track == {}


def test_existing_must_on_track_entry_kept(tmp_path):
    writer, handler = make_handler(tmp_path)
    first = Node(5, Location(1.0, 1.0), {"railway": "signal"})
    second = Node(5, Location(2.0, 2.0), {"railway": "signal"})
    handler.node(first)
    handler.node(second)
    handler.relation(Relation(1))
    writer.close()
    assert handler.must_on_track[5] is first