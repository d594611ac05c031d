"""Selection and validation of PTv2 route relations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from osmi_pubtrans.osm import Relation
from osmi_pubtrans.ptv2_checker import PTv2Checker
from osmi_pubtrans.ptv2_tags import ErrorCollector, RouteError

_ROUTE_VALUES = frozenset(
    {"train", "light_rail", "subway", "tram", "bus", "ferry", "trolleybus", "share_taxi"}
)


def is_ptv2(relation: Relation) -> bool:
    """True if the relation is tagged ``public_transport:version=2``."""
    return relation.tags.get("public_transport:version") == "2"


@dataclass(frozen=True)
class RouteResult:
    """Outcome of validating one route relation."""

    relation: Relation
    member_objects: tuple
    roles: tuple[str, ...]
    error: RouteError

    @property
    def valid(self) -> bool:
        """True if no problem was found."""
        return self.error == RouteError.CLEAN


class RouteManager:
    """Picks the route relations of interest and validates them."""

    def __init__(self, errors: ErrorCollector | None = None) -> None:
        self.errors = errors if errors is not None else ErrorCollector()
        self.checker = PTv2Checker(self.errors)
        self.results: list[RouteResult] = []

    def new_relation(self, relation: Relation) -> bool:
        """True for PTv2 public transport route relations."""
        if relation.tags.get("type") != "route":
            return False
        if relation.tags.get("route") not in _ROUTE_VALUES:
            return False
        return is_ptv2(relation)

    def process_route(self, relation: Relation, member_objects: Sequence) -> RouteResult | None:
        """Validate a route; ``member_objects`` holds None for missing members.

        Returns the result, or None if the relation is not a PTv2 route.
        """
        if not is_ptv2(relation):
            return None
        objects = tuple(member_objects)
        error = RouteError.CLEAN
        error |= self.checker.check_roles_order_and_type(relation, objects)
        if self.checker.find_gaps(relation, objects) > 0:
            error |= RouteError.UNORDERED_GAP
        result = RouteResult(relation, objects, tuple(m.role for m in relation.members), error)
        self.results.append(result)
        return result