"""Validity checks for PTv2 public transport route relations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from osmi_pubtrans.gap_detector import GapDetector
from osmi_pubtrans.osm import ItemType, Node, Relation, Way
from osmi_pubtrans.ptv2_tags import (
    ErrorCollector,
    RouteError,
    RouteType,
    check_valid_railway_track,
    check_valid_road_way,
    check_valid_trolleybus_way,
    get_route_type,
    is_ferry,
    is_platform,
    is_stop,
    vehicle_tags_matches_route_type,
)

_RAIL_ROUTES = (RouteType.TRAIN, RouteType.LIGHT_RAIL, RouteType.TRAM, RouteType.SUBWAY)
_BUS_ROUTES = (RouteType.BUS, RouteType.TROLLEYBUS)

_STOP_TAGS_REQUIRED = {
    RouteType.TRAIN: (("railway", "station"), ("railway", "halt"), ("railway", "tram_stop")),
    RouteType.SUBWAY: (("railway", "station"),),
    RouteType.FERRY: (("amenity", "ferry_terminal"),),
    RouteType.AERIALWAY: (("aerialway", "station"),),
    RouteType.BUS: (("highway", "bus_stop"),),
    RouteType.TROLLEYBUS: (("highway", "bus_stop"),),
}


@dataclass
class _WayNode:
    """A node of a route way together with the rank of that way."""

    id: int
    way_index: int
    found: bool = False


class PTv2Checker:
    """Checks route relations and reports problems to an error collector."""

    def __init__(self, writer: ErrorCollector) -> None:
        self.writer = writer
        self._gap_detector = GapDetector(writer)

    def is_way_usable(self, relation: Relation, route_type: RouteType, way: Way) -> RouteError:
        """Check whether a route way can be travelled by this type of route."""
        if route_type in _RAIL_ROUTES:
            if not check_valid_railway_track(route_type, way.tags):
                self.writer.write_error_way(relation, 0, "rail-guided route over non-rail", way)
                return RouteError.OVER_NON_RAIL
        elif route_type is RouteType.BUS:
            if not check_valid_road_way(way.tags):
                self.writer.write_error_way(relation, 0, "road vehicle route over non-road", way)
                return RouteError.OVER_NON_ROAD
        elif route_type is RouteType.TROLLEYBUS:
            if not check_valid_trolleybus_way(way.tags):
                self.writer.write_error_way(relation, 0, "trolley bus without trolley wire", way)
                return RouteError.NO_TROLLEY_WIRE
        elif route_type is RouteType.FERRY:
            if not is_ferry(way.tags, True):
                self.writer.write_error_way(relation, 0, "ferry over ways other than route=ferry", way)
                return RouteError.NO_FERRY
        return RouteError.CLEAN

    def check_stop_tags(self, relation: Relation, node: Node, route_type: RouteType) -> RouteError:
        """Check that a stop node is tagged properly for the route type."""
        tags = node.tags
        if tags.get("public_transport") == "stop_position" and vehicle_tags_matches_route_type(tags, route_type):
            return RouteError.CLEAN
        required = _STOP_TAGS_REQUIRED.get(route_type)
        if required is not None and not any(tags.get(k) == v for k, v in required):
            self.writer.write_error_point(relation, node.id, node.location, "stop without proper tags", 0)
            return RouteError.STOP_TAG_MISSING
        return RouteError.CLEAN

    def check_platform_tags(self, relation: Relation, route_type: RouteType, obj) -> RouteError:
        """Check that a platform (node or way) is tagged properly for the route type."""
        tags = obj.tags
        if tags.get("public_transport") == "platform":
            return RouteError.CLEAN
        bad_bus = route_type in _BUS_ROUTES and tags.get("highway") not in ("bus_stop", "platform")
        bad_rail = (
            route_type in (RouteType.TRAIN, RouteType.TRAM, RouteType.SUBWAY)
            and tags.get("railway") != "platform"
        )
        if bad_bus or bad_rail:
            self._report(relation, obj, "platform without proper tags")
            return RouteError.PLTF_TAG_MISSING
        return RouteError.CLEAN

    def _report(self, relation: Relation, obj, message: str) -> None:
        if obj.type is ItemType.NODE:
            self.writer.write_error_point(relation, obj.id, obj.location, message, 0)
        elif obj.type is ItemType.WAY:
            self.writer.write_error_way(relation, 0, message, obj)

    def check_roles_order_and_type(self, relation: Relation, member_objects: Sequence) -> RouteError:
        """Check roles, member types and stop order without looking at geometry.

        ``member_objects`` holds one object per member, None for missing ones.
        """
        pairs = list(zip(relation.members, member_objects))
        route_ways = [
            obj for member, obj in pairs
            if member.type is ItemType.WAY and member.role == "" and obj is not None
        ]
        way_nodes = sorted(
            (_WayNode(ref, index) for index, way in enumerate(route_ways) for ref in way.nodes),
            key=lambda entry: (entry.way_index, entry.id),
        )

        seen_road_member = False
        seen_stop_platform = False
        incomplete = False
        error = RouteError.CLEAN
        route_type = get_route_type(relation.tags.get("route"))
        if route_type is RouteType.NONE:
            error |= RouteError.UNKNOWN_TYPE
        last_stop_way_index = way_nodes[0].way_index if way_nodes else 0

        for member, obj in pairs:
            if obj is None:
                incomplete = True
            role = member.role
            if member.type is ItemType.WAY and role == "":
                seen_road_member = True
                if not seen_stop_platform:
                    error |= RouteError.NO_STOPPLTF_AT_FRONT
                if obj is not None:
                    error |= self.is_way_usable(relation, route_type, obj)
            elif role == "":
                if member.type is ItemType.NODE and obj is not None:
                    self.writer.write_error_point(
                        relation, obj.id, obj.location, "empty role for non-way object", 0
                    )
                error |= RouteError.EMPTY_ROLE_NON_WAY
            elif seen_road_member and (is_stop(role) or is_platform(role)):
                if obj is not None:
                    self._report(relation, obj, "stop/platform after route")
                error |= RouteError.STOPPLTF_AFTER_ROUTE
            elif member.type is ItemType.NODE and is_stop(role):
                seen_stop_platform = True
                # wrong stop tags are not considered severe
                if obj is not None:
                    self.check_stop_tags(relation, obj, route_type)
            elif member.type is ItemType.WAY and is_stop(role):
                error |= RouteError.STOP_IS_NOT_NODE
                if obj is not None:
                    self.writer.write_error_way(relation, 0, "stop is not a node", obj)
            elif is_platform(role):
                seen_stop_platform = True
                # wrong platform tags are not considered severe
                if obj is not None:
                    self.check_platform_tags(relation, route_type, obj)
            elif not is_stop(role):
                error |= RouteError.UNKNOWN_ROLE
                if obj is not None:
                    self._report(relation, obj, f"unknown role '{role}'")

            if member.type is ItemType.NODE and obj is not None and is_stop(role):
                position = next(
                    (i for i, e in enumerate(way_nodes) if e.id == member.ref and not e.found), None
                )
                if position is None:
                    self.writer.write_error_point(relation, obj.id, obj.location, "stop not on way", 0)
                    error |= RouteError.STOP_NOT_ON_WAY
                    continue
                if way_nodes[position].way_index < last_stop_way_index:
                    # The way may be used twice (loop or T-shaped route); look for a later use.
                    position = next(
                        (
                            i for i in range(position + 1, len(way_nodes))
                            if way_nodes[i].id == member.ref
                            and not way_nodes[i].found
                            and way_nodes[i].way_index >= last_stop_way_index
                        ),
                        None,
                    )
                    if position is None:
                        self.writer.write_error_point(
                            relation, obj.id, obj.location, "stop included in wrong order", 0
                        )
                        error |= RouteError.STOP_MISORDERED
                        continue
                way_nodes[position].found = True
                last_stop_way_index = way_nodes[position].way_index

        if not seen_road_member and not incomplete:
            error |= RouteError.NO_ROUTE
            for obj in member_objects:
                if obj is not None:
                    self._report(relation, obj, "route has only stops/platforms")
        return error

    def find_gaps(self, relation: Relation, member_objects: Sequence) -> int:
        """Number of gaps in the route; errors go to the collector."""
        return self._gap_detector.find_gaps(relation, member_objects)