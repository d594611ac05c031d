"""Second pass over nodes and ways: points (switches) and nodes missing from the tracks."""

from __future__ import annotations

from collections.abc import Container, MutableMapping

from osmi_pubtrans.ogr_writer import Layer, OGRWriter, Options
from osmi_pubtrans.osm import Node, Relation, Way, coordinates_valid

_PLAIN_SWITCH_TYPES = frozenset({"default", "double_slip"})


def switch_type_value(switch_type: str | None, is_via_node: bool) -> str:
    """Value written to the ``type`` field of the points layer.

    A single slip is only complete if its node is the via node of a turn
    restriction.
    """
    if switch_type is None:
        return ""
    if switch_type in _PLAIN_SWITCH_TYPES:
        return switch_type
    if switch_type == "single_slip":
        return "single_slip" if is_via_node else "single_slip_incomplete"
    return "UNKNOWN_VALUE"


def _add_fields(layer: Layer, fields) -> Layer:
    for name, width in fields:
        layer.add_field(name, width)
    return layer


class RailwayHandlerPass2:
    """Writes the points layer (``railway=switch``) and the on_track layer.

    ``must_on_track`` maps node IDs to the nodes which have to be part of a
    way. Every way removes its nodes from it; what is left after all ways is
    written by :meth:`after_ways`.
    """

    def __init__(
        self,
        writer: OGRWriter,
        via_nodes: Container[int],
        must_on_track: MutableMapping[int, Node],
        options: Options,
    ) -> None:
        self.writer = writer
        self.via_nodes = via_nodes
        self.must_on_track = must_on_track
        self.options = options
        self.on_track: Layer = writer.create_layer("on_track", "point")
        self.points: Layer | None = None
        if options.points:
            self.points = _add_fields(
                writer.create_layer("points", "point"),
                (("node_id", 10), ("lastchange", 21), ("type", 50), ("ref", 50)),
            )
        _add_fields(
            self.on_track,
            (("node_id", 10), ("lastchange", 21), ("type", 21), ("error", 21)),
        )

    def node(self, node: Node) -> None:
        """Handle a node."""
        if not self.options.points:
            return
        if node.tags.get("railway") == "switch":
            self._handle_point(node)

    def _handle_point(self, node: Node) -> None:
        if not coordinates_valid(node):
            return
        switch_type = switch_type_value(node.tags.get("railway:switch"), node.id in self.via_nodes)
        self.points.add_feature(
            (node.location.lon, node.location.lat),
            {
                "node_id": str(node.id),
                "lastchange": node.iso_timestamp(),
                "type": switch_type,
                "ref": node.tags.get("ref", ""),
            },
        )

    def way(self, way: Way) -> None:
        """Remove the nodes of a way from the nodes which must be on a track."""
        for ref in way.nodes:
            self.must_on_track.pop(ref, None)

    def after_ways(self) -> None:
        """Write the nodes which are not referenced by any way."""
        for node in list(self.must_on_track.values()):
            railway = node.tags.get("railway")
            public_transport = node.tags.get("public_transport")
            if railway is None and public_transport is None:
                continue
            if railway is not None and public_transport is None and not self.options.points:
                continue
            if not coordinates_valid(node):
                continue
            self.on_track.add_feature(
                (node.location.lon, node.location.lat),
                {
                    "node_id": str(node.id),
                    "lastchange": node.iso_timestamp(),
                    "type": public_transport if public_transport is not None else railway,
                    "error": "not on a way",
                },
            )

    def relation(self, relation: Relation) -> None:
        """Relations are not used in this pass."""