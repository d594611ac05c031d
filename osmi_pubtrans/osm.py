"""In-memory OSM objects and coordinate validity checks."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar

UPPER_LIMIT_LATITUDE = 90.0


class ItemType(enum.Enum):
    """Kind of an OSM object."""

    NODE = "node"
    WAY = "way"
    RELATION = "relation"


@dataclass(frozen=True)
class Location:
    """A WGS84 coordinate; an undefined location has no lon/lat."""

    lon: float | None = None
    lat: float | None = None

    def valid(self) -> bool:
        """True if the location is defined and inside the WGS84 bounds."""
        if self.lon is None or self.lat is None:
            return False
        return -180.0 <= self.lon <= 180.0 and -90.0 <= self.lat <= 90.0


def _iso(timestamp: datetime | None) -> str:
    if timestamp is None:
        return ""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class Node:
    """An OSM node."""

    type: ClassVar[ItemType] = ItemType.NODE

    id: int
    location: Location = field(default_factory=Location)
    tags: Mapping[str, str] = field(default_factory=dict)
    timestamp: datetime | None = None

    def iso_timestamp(self) -> str:
        """Timestamp in ISO 8601 form, or an empty string if unset."""
        return _iso(self.timestamp)


@dataclass
class Way:
    """An OSM way: node IDs and, if known, their locations."""

    type: ClassVar[ItemType] = ItemType.WAY

    id: int
    nodes: tuple[int, ...] = ()
    locations: tuple[Location, ...] = ()
    tags: Mapping[str, str] = field(default_factory=dict)
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        self.nodes = tuple(self.nodes)
        self.locations = tuple(self.locations)
        if self.locations and len(self.locations) != len(self.nodes):
            raise ValueError("way needs one location per node reference")

    def iso_timestamp(self) -> str:
        """Timestamp in ISO 8601 form, or an empty string if unset."""
        return _iso(self.timestamp)

    def ends_have_same_id(self) -> bool:
        """True if the first and the last node reference are the same node."""
        return bool(self.nodes) and self.nodes[0] == self.nodes[-1]


@dataclass(frozen=True)
class RelationMember:
    """A member of a relation."""

    type: ItemType
    ref: int
    role: str = ""


@dataclass
class Relation:
    """An OSM relation."""

    type: ClassVar[ItemType] = ItemType.RELATION

    id: int
    members: tuple[RelationMember, ...] = ()
    tags: Mapping[str, str] = field(default_factory=dict)
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        self.members = tuple(self.members)


def _location_valid(location: Location, mercator: bool) -> bool:
    if not location.valid():
        return False
    if mercator:
        return -UPPER_LIMIT_LATITUDE < location.lat < UPPER_LIMIT_LATITUDE
    return True


def coordinates_valid(obj, mercator: bool = False) -> bool:
    """Check whether an object can be turned into a geometry.

    With ``mercator`` set, the poles are excluded because Web Mercator
    cannot represent them.
    """
    if isinstance(obj, Location):
        return _location_valid(obj, mercator)
    if isinstance(obj, Node):
        return _location_valid(obj.location, mercator)
    if isinstance(obj, Way):
        if not obj.nodes:
            return True
        if len(obj.locations) != len(obj.nodes):
            return False
        return all(_location_valid(loc, mercator) for loc in obj.locations)
    return False