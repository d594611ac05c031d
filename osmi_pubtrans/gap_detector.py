"""Detection of gaps between the consecutive ways of a route relation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from osmi_pubtrans.osm import ItemType, Location, Relation, RelationMember, Way
from osmi_pubtrans.ptv2_tags import BackOrFront, ErrorCollector, MemberStatus


def _front(way: Way) -> int | None:
    return way.nodes[0] if way.nodes else None


def _back(way: Way) -> int | None:
    return way.nodes[-1] if way.nodes else None


def roundabout_connected_to_previous_way(previous_way_end: BackOrFront, previous_way: Way, way: Way) -> bool:
    """True if the given open end of the previous way is a node of the roundabout ``way``."""
    if previous_way_end is BackOrFront.FRONT:
        end = _front(previous_way)
    elif previous_way_end is BackOrFront.BACK:
        end = _back(previous_way)
    else:
        return False
    return end is not None and end in way.nodes


def roundabout_as_second_after_gap(previous_way: Way, way: Way) -> bool:
    """True if either end of the previous way is a node of the roundabout ``way``."""
    ends = {e for e in (_front(previous_way), _back(previous_way)) if e is not None}
    return any(ref in ends for ref in way.nodes)


def roundabout_connected_to_next_way(previous_way: Way, way: Way) -> BackOrFront:
    """Which end of ``way`` stays open after leaving the roundabout ``previous_way``."""
    front, back = _front(way), _back(way)
    for ref in previous_way.nodes:
        if ref == front:
            return BackOrFront.BACK
        if ref == back:
            return BackOrFront.FRONT
    return BackOrFront.UNDEFINED


def _end_node(end: BackOrFront, way: Way) -> tuple[int, Location] | None:
    if end is BackOrFront.UNDEFINED or not way.nodes:
        return None
    index = -1 if end is BackOrFront.BACK else 0
    location = way.locations[index] if way.locations else Location()
    return way.nodes[index], location


def _is_roundabout(way: Way) -> bool:
    return way.ends_have_same_id() and way.tags.get("junction") in ("roundabout", "circular")


@dataclass
class _State:
    status: MemberStatus = MemberStatus.BEFORE_FIRST
    previous_way_end: BackOrFront = BackOrFront.UNDEFINED


class GapDetector:
    """Counts gaps in routes and reports them to an error collector."""

    def __init__(self, writer: ErrorCollector) -> None:
        self.writer = writer

    def find_gaps(self, relation: Relation, member_objects: Sequence) -> int:
        """Number of gaps in the route; ``member_objects`` holds None for missing members."""
        state = _State()
        gaps = 0
        previous_way: Way | None = None
        for member, obj in zip(relation.members, member_objects):
            way = obj if member.type is ItemType.WAY and obj is not None else None
            gaps += self._handle_member(relation, member, way, previous_way, state)
            if way is not None:
                previous_way = way
        return gaps

    def _handle_member(
        self,
        relation: Relation,
        member: RelationMember,
        way: Way | None,
        previous_way: Way | None,
        state: _State,
    ) -> int:
        if way is None and state.status is MemberStatus.BEFORE_FIRST:
            # missing members in the stop/platform section do not matter
            return 0
        if way is None and member.type is ItemType.WAY:
            state.status = MemberStatus.AFTER_MISSING
            return 0
        is_route_way = member.type is ItemType.WAY and member.role == ""
        if state.status is MemberStatus.BEFORE_FIRST and is_route_way:
            state.status = MemberStatus.FIRST
        if state.status is MemberStatus.BEFORE_FIRST:
            return 0
        if not is_route_way:
            state.status = MemberStatus.AFTER_GAP
            return 0

        if state.status is MemberStatus.AFTER_GAP:
            self.writer.write_error_way(relation, 0, "gap", way)
        # Roundabouts need not be split when a route uses them.
        if _is_roundabout(way):
            if state.status is MemberStatus.AFTER_ROUNDABOUT:
                self.writer.write_error_way(relation, 0, "roundabout after roundabout", way)
                return 1
            if state.status in (MemberStatus.FIRST, MemberStatus.AFTER_GAP):
                state.status = MemberStatus.AFTER_ROUNDABOUT
                return 0
            if state.status is MemberStatus.SECOND:
                state.status = MemberStatus.SECOND_ROUNDABOUT
            else:
                state.status = MemberStatus.ROUNDABOUT
        if state.status in (MemberStatus.FIRST, MemberStatus.AFTER_MISSING, MemberStatus.AFTER_GAP):
            state.status = MemberStatus.SECOND
            return 0

        assert previous_way is not None
        if state.status is MemberStatus.AFTER_ROUNDABOUT:
            state.previous_way_end = roundabout_connected_to_next_way(previous_way, way)
            if state.previous_way_end is BackOrFront.UNDEFINED:
                self.writer.write_error_way(relation, 0, "gap or unordered before this way", way)
                state.status = MemberStatus.AFTER_GAP
                return 1
            state.status = MemberStatus.NORMAL
        elif state.status is MemberStatus.ROUNDABOUT:
            state.status = MemberStatus.AFTER_ROUNDABOUT
            if not roundabout_connected_to_previous_way(state.previous_way_end, previous_way, way):
                self.writer.write_error_way(relation, 0, "gap", way)
                end = _end_node(state.previous_way_end, previous_way)
                if end is not None:
                    self.writer.write_error_point(relation, end[0], end[1], "open end at this location", way.id)
                return 1
        elif state.status is MemberStatus.SECOND_ROUNDABOUT:
            state.status = MemberStatus.AFTER_ROUNDABOUT
            if not roundabout_as_second_after_gap(previous_way, way):
                self.writer.write_error_way(relation, 0, "gap", way)
                return 1
        elif state.status is MemberStatus.SECOND:
            if previous_way.id == way.id:
                # the first two ways may be the same way
                return 0
            previous_ends = (_front(previous_way), _back(previous_way))
            if _front(way) is not None and _front(way) in previous_ends:
                state.previous_way_end = BackOrFront.BACK
                state.status = MemberStatus.NORMAL
            elif _back(way) is not None and _back(way) in previous_ends:
                state.previous_way_end = BackOrFront.FRONT
                state.status = MemberStatus.NORMAL
            else:
                self.writer.write_error_way(relation, 0, "gap or unordered after this way", previous_way)
                state.status = MemberStatus.AFTER_GAP
                return 1
        elif state.status is MemberStatus.NORMAL:
            end = _end_node(state.previous_way_end, previous_way)
            next_ref = end[0] if end is not None else None
            if next_ref is not None and _front(way) == next_ref:
                state.previous_way_end = BackOrFront.BACK
            elif next_ref is not None and _back(way) == next_ref:
                state.previous_way_end = BackOrFront.FRONT
            else:
                ref, location = end if end is not None else (0, Location())
                self.writer.write_error_way(relation, ref, "gap", previous_way)
                self.writer.write_error_point(relation, ref, location, "gap or unordered before this way", way.id)
                state.status = MemberStatus.SECOND
                return 1
        return 0