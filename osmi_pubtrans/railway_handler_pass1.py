"""First pass over the nodes and ways: crossings, stops, platforms and stations."""

from __future__ import annotations

import sys
from collections.abc import MutableMapping

from osmi_pubtrans.ogr_writer import Layer, OGRWriter, Options
from osmi_pubtrans.osm import ItemType, Node, Relation, Way, coordinates_valid

_DETAIL_VALUES = frozenset(
    {
        "signal", "stop", "buffer_stop", "level_crossing", "milestone", "derail",
        "isolated_track_section", "switch", "railway_crossing",
    }
)
_CROSSING_VALUES = frozenset({"level_crossing", "crossing"})
_BARRIER_VALUES = frozenset({"no", "yes", "half", "double_half", "full", "gates"})
_LIGHTS_VALUES = frozenset({"yes", "no"})
_STATION_RAILWAY_VALUES = frozenset({"station", "halt", "tram_stop"})

_COMMON_FIELDS = (
    ("name", 100),
    ("public_transport", 50),
    ("railway", 50),
    ("highway", 50),
    ("operator", 100),
    ("network", 100),
)


def crossing_barrier_value(barrier: str | None) -> str:
    """Value written to the ``barrier`` field of the crossings layer."""
    if barrier is None:
        return "NONE"
    if barrier not in _BARRIER_VALUES:
        return "UNKNOWN"
    return barrier


def crossing_lights_value(lights: str | None) -> str:
    """Value written to the ``lights`` field of the crossings layer."""
    if lights is None:
        return "NONE"
    if lights not in _LIGHTS_VALUES:
        return "UNKNOWN"
    return lights


def _add_fields(layer: Layer, fields) -> Layer:
    for name, width in fields:
        layer.add_field(name, width)
    return layer


def _linestring(way: Way) -> list[tuple[float, float]]:
    points: list[tuple[float, float]] = []
    for location in way.locations:
        point = (location.lon, location.lat)
        if not points or points[-1] != point:
            points.append(point)
    if len(points) < 2:
        raise ValueError(f"need at least two points for linestring (way_id={way.id})")
    return points


class RailwayHandlerPass1:
    """Writes the crossings, stops, platforms and stations layers.

    It also collects the nodes which have to be part of a way because of
    their tags (signals, points, stop positions, ...) in ``must_on_track``,
    a mapping from node ID to node.
    """

    def __init__(
        self,
        writer: OGRWriter,
        options: Options,
        must_on_track: MutableMapping[int, Node] | None = None,
    ) -> None:
        self.writer = writer
        self.options = options
        self.must_on_track: MutableMapping[int, Node] = must_on_track if must_on_track is not None else {}
        self.skipped_relations = 0
        self.crossings: Layer | None = None
        self.stops: Layer | None = None
        self.platforms: Layer | None = None
        self.platforms_l: Layer | None = None
        self.stations: Layer | None = None
        self.stations_l: Layer | None = None
        self.stops_only_highway: Layer | None = None

        if options.crossings:
            self.crossings = _add_fields(
                writer.create_layer("crossings", "point"),
                (("node_id", 10), ("lastchange", 21), ("barrier", 50), ("lights", 50)),
            )
        if options.stops:
            self.stops = _add_fields(
                writer.create_layer("stops", "point"),
                (("node_id", 10), ("lastchange", 21), *_COMMON_FIELDS, ("ref", 50), ("local_ref", 50)),
            )
        if options.platforms:
            self.platforms = _add_fields(
                writer.create_layer("platforms", "point"),
                (("node_id", 10), ("lastchange", 21), *_COMMON_FIELDS, ("ref", 25), ("local_ref", 25)),
            )
            self.platforms_l = _add_fields(
                writer.create_layer("platforms_l", "linestring"),
                (
                    ("way_id", 10), ("lastchange", 21), ("name", 21), *_COMMON_FIELDS[1:],
                    ("ref", 25), ("local_ref", 25),
                ),
            )
        if options.stations:
            self.stations = _add_fields(
                writer.create_layer("stations", "point"),
                (("node_id", 10), ("lastchange", 21), *_COMMON_FIELDS, ("amenity", 50)),
            )
            self.stations_l = _add_fields(
                writer.create_layer("stations_l", "linestring"),
                (("way_id", 10), ("lastchange", 21), *_COMMON_FIELDS, ("amenity", 50)),
            )
        if options.stops or options.platforms:
            self.stops_only_highway = _add_fields(
                writer.create_layer("stops_only_highway", "point"),
                (("node_id", 10), ("lastchange", 21), *_COMMON_FIELDS),
            )

    def _verbose(self, message: str) -> None:
        if self.options.verbose:
            print(message, file=sys.stderr)

    def node(self, node: Node) -> None:
        """Handle a node."""
        if not node.location.valid():
            return
        railway = node.tags.get("railway")
        public_transport = node.tags.get("public_transport")
        if self.options.railway_details and railway in _DETAIL_VALUES:
            self.must_on_track.setdefault(node.id, node)
        elif public_transport == "stop_position":
            self.must_on_track.setdefault(node.id, node)
        self._handle_stop(node, public_transport, railway)
        if railway in _CROSSING_VALUES and self.options.crossings:
            self._handle_crossing(node)

    def way(self, way: Way) -> None:
        """Handle a way."""
        if self.options.stops or self.options.stations or self.options.platforms:
            self._handle_stop(way, way.tags.get("public_transport"), way.tags.get("railway"))

    def relation(self, relation: Relation) -> None:
        """Relations write nothing in this pass; they are only counted as skipped."""
        self.skipped_relations += 1

    def _handle_crossing(self, node: Node) -> None:
        if not coordinates_valid(node):
            return
        self.crossings.add_feature(
            (node.location.lon, node.location.lat),
            {
                "node_id": str(node.id),
                "lastchange": node.iso_timestamp(),
                "barrier": crossing_barrier_value(node.tags.get("crossing:barrier")),
                "lights": crossing_lights_value(node.tags.get("crossing:light")),
            },
        )

    def _handle_stop(self, obj, public_transport: str | None, railway: str | None) -> None:
        options = self.options
        if options.stations and (
            public_transport == "station"
            or (
                railway is not None
                and (railway in _STATION_RAILWAY_VALUES or obj.tags.get("amenity") == "bus_station")
            )
        ):
            self._add(obj, self.stations, self.stations_l, refs=False, amenity=True)
            return
        if options.platforms and (public_transport == "platform" or railway == "platform"):
            self._add(obj, self.platforms, self.platforms_l, refs=True, amenity=False)
            return
        if obj.type is not ItemType.NODE:
            return
        if options.stops and public_transport == "stop_position":
            self._add_node(self.stops, obj, refs=True, amenity=False)
            return
        if (
            (options.stops or options.platforms)
            and obj.tags.get("highway") == "bus_stop"
            and "public_transport" not in obj.tags
        ):
            self._add_node(self.stops_only_highway, obj, refs=False, amenity=False)

    def _add(self, obj, point_layer: Layer, line_layer: Layer, refs: bool, amenity: bool) -> None:
        if obj.type is ItemType.NODE:
            self._add_node(point_layer, obj, refs, amenity)
        elif obj.type is ItemType.WAY:
            self._add_way(line_layer, obj, refs, amenity)

    def _add_node(self, layer: Layer, node: Node, refs: bool, amenity: bool) -> None:
        if not coordinates_valid(node):
            return
        fields = {"node_id": str(node.id), **self._fields(node, refs, amenity)}
        layer.add_feature((node.location.lon, node.location.lat), fields)

    def _add_way(self, layer: Layer, way: Way, refs: bool, amenity: bool) -> None:
        if not coordinates_valid(way):
            return
        try:
            geometry = _linestring(way)
        except ValueError as err:
            self._verbose(str(err))
            return
        layer.add_feature(geometry, {"way_id": str(way.id), **self._fields(way, refs, amenity)})

    @staticmethod
    def _fields(obj, refs: bool, amenity: bool) -> dict[str, str]:
        tags = obj.tags
        fields = {"lastchange": obj.iso_timestamp()}
        for key in ("railway", "public_transport", "highway", "name", "network", "operator"):
            fields[key] = tags.get(key, "")
        if refs:
            fields["ref"] = tags.get("ref", "")
            fields["local_ref"] = tags.get("local_ref", "")
        if amenity:
            fields["amenity"] = tags.get("amenity", "")
        return fields