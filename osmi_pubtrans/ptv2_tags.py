"""Route types, error flags and tag checks for PTv2 route relations."""

from __future__ import annotations

import enum
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from osmi_pubtrans.osm import ItemType, Location, Relation, Way


class RouteType(enum.Enum):
    """Type of a public transport route."""

    NONE = 0
    TRAIN = 1
    LIGHT_RAIL = 2
    SUBWAY = 3
    TRAM = 4
    BUS = 5
    TROLLEYBUS = 6
    FERRY = 7
    AERIALWAY = 8


class RouteError(enum.IntFlag):
    """Problems found in a route relation; combine them with ``|``."""

    CLEAN = 0
    UNKNOWN_TYPE = 1 << 0
    EMPTY_ROLE_NON_WAY = 1 << 1
    STOPPLTF_AFTER_ROUTE = 1 << 2
    STOP_IS_NOT_NODE = 1 << 3
    UNKNOWN_ROLE = 1 << 4
    NO_STOPPLTF_AT_FRONT = 1 << 5
    STOP_NOT_ON_WAY = 1 << 6
    STOP_MISORDERED = 1 << 7
    NO_ROUTE = 1 << 8
    OVER_NON_RAIL = 1 << 9
    OVER_NON_ROAD = 1 << 10
    NO_TROLLEY_WIRE = 1 << 11
    NO_FERRY = 1 << 12
    STOP_TAG_MISSING = 1 << 13
    PLTF_TAG_MISSING = 1 << 14
    UNORDERED_GAP = 1 << 15


class MemberStatus(enum.Enum):
    """State of the gap detector while walking along the members."""

    BEFORE_FIRST = 0
    FIRST = 1
    SECOND = 2
    NORMAL = 3
    AFTER_GAP = 4
    MISSING = 5
    AFTER_MISSING = 6
    ROUNDABOUT = 7
    SECOND_ROUNDABOUT = 8
    AFTER_ROUNDABOUT = 9


class BackOrFront(enum.Enum):
    """Which end of a way is meant."""

    UNDEFINED = 0
    FRONT = 1
    BACK = 2


@dataclass(frozen=True)
class ErrorRecord:
    """One error found in a route relation, located at a way or a point."""

    relation_id: int
    message: str
    item_type: ItemType
    way_id: int = 0
    node_id: int = 0
    location: Location | None = None
    way: Way | None = field(default=None, compare=False, repr=False)


class ErrorCollector:
    """Collects the errors reported while checking routes."""

    def __init__(self) -> None:
        self.errors: list[ErrorRecord] = []

    def __iter__(self) -> Iterator[ErrorRecord]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    @property
    def messages(self) -> list[str]:
        """Messages of all errors in the order they were reported."""
        return [e.message for e in self.errors]

    def write_error_way(self, relation: Relation, node_ref: int, message: str, way: Way) -> None:
        """Report an error located at a way."""
        self.errors.append(
            ErrorRecord(relation.id, message, ItemType.WAY, way_id=way.id, node_id=node_ref, way=way)
        )

    def write_error_point(
        self, relation: Relation, node_id: int, location: Location, message: str, way_id: int
    ) -> None:
        """Report an error located at a point."""
        self.errors.append(
            ErrorRecord(relation.id, message, ItemType.NODE, way_id=way_id, node_id=node_id, location=location)
        )


_ROUTE_TYPES = {
    "train": RouteType.TRAIN,
    "light_rail": RouteType.LIGHT_RAIL,
    "subway": RouteType.SUBWAY,
    "tram": RouteType.TRAM,
    "bus": RouteType.BUS,
    "trolleybus": RouteType.TROLLEYBUS,
    "ferry": RouteType.FERRY,
    "aerialway": RouteType.AERIALWAY,
}

_STOP_ROLES = frozenset({"stop", "stop_entry_only", "stop_exit_only"})
_PLATFORM_ROLES = frozenset({"platform", "platform_entry_only", "platform_exit_only"})

_VEHICLE_KEYS = {
    RouteType.BUS: "bus",
    RouteType.TROLLEYBUS: "trolleybus",
    RouteType.TRAIN: "train",
    RouteType.LIGHT_RAIL: "light_rail",
    RouteType.TRAM: "tram",
    RouteType.SUBWAY: "subway",
    RouteType.FERRY: "ferry",
    RouteType.AERIALWAY: "aerialway",
}

_RAIL_VALUES = frozenset(
    {"rail", "light_rail", "tram", "subway", "funicular", "preserved", "miniature", "narrow_gauge"}
)

_ROAD_VALUES = frozenset(
    {
        "motorway", "motorway_link", "trunk", "trunk_link", "primary", "primary_link",
        "secondary", "secondary_link", "tertiary", "tertiary_link", "unclassified",
        "residential", "service", "track", "pedestrian", "living_street",
        "bus_guideway", "busway",
    }
)


def get_route_type(route: str | None) -> RouteType:
    """Type of a route from the value of its ``route`` tag."""
    return _ROUTE_TYPES.get(route, RouteType.NONE)


def is_stop(role: str) -> bool:
    """True for the stop roles, including the entry/exit only variants."""
    return role in _STOP_ROLES


def is_platform(role: str) -> bool:
    """True for the platform roles, including the entry/exit only variants."""
    return role in _PLATFORM_ROLES


def vehicle_tags_matches_route_type(tags: Mapping[str, str], route_type: RouteType) -> bool:
    """True if the vehicle tag (bus=yes, train=yes, ...) fits the route type."""
    key = _VEHICLE_KEYS.get(route_type)
    return key is not None and tags.get(key) == "yes"


def is_ferry(tags: Mapping[str, str], permit_untagged_ways: bool = False) -> bool:
    """True for ``route=ferry`` ways, or ways without ``route`` if permitted."""
    route = tags.get("route")
    return route == "ferry" or (permit_untagged_ways and route is None)


def check_valid_railway_track(route_type: RouteType, tags: Mapping[str, str]) -> bool:
    """True if a way can be used by a train, light rail, tram or subway route."""
    railway = tags.get("railway")
    if railway is None:
        return is_ferry(tags)
    if route_type in (RouteType.TRAIN, RouteType.LIGHT_RAIL, RouteType.TRAM) and railway in _RAIL_VALUES:
        return True
    if route_type is RouteType.SUBWAY:
        return True
    return is_ferry(tags)


def check_valid_road_way(tags: Mapping[str, str]) -> bool:
    """True if a way can be used by a bus route."""
    highway = tags.get("highway")
    if highway is None:
        return is_ferry(tags)
    return highway in _ROAD_VALUES


def check_valid_trolleybus_way(tags: Mapping[str, str]) -> bool:
    """True if a road way has trolley wire information for a trolleybus route."""
    wire = tags.get("trolley_wire")
    if wire in ("yes", "no"):
        return check_valid_road_way(tags)
    if tags.get("trolley_wire:forward") in ("yes", "no") or wire == "forward":
        return check_valid_road_way(tags)
    return (
        tags.get("trolley_wire:backward") in ("yes", "no") or wire == "backward"
    ) and check_valid_road_way(tags)