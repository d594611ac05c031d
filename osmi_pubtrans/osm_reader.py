"""Reading OSM XML files into the in-memory objects."""

from __future__ import annotations

import bz2
import gzip
import os
import sys
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from osmi_pubtrans.osm import ItemType, Location, Node, Relation, RelationMember, Way


@contextmanager
def _open(source):
    if hasattr(source, "read"):
        yield source
        return
    if isinstance(source, str) and source == "-":
        yield sys.stdin.buffer
        return
    path = os.fspath(source)
    if path.endswith(".gz"):
        opener = gzip.open
    elif path.endswith(".bz2"):
        opener = bz2.open
    else:
        opener = open
    with opener(path, "rb") as fh:
        yield fh


def _int_attr(elem: ET.Element, name: str) -> int:
    value = elem.get(name)
    if value is None:
        raise ValueError(f"<{elem.tag}> without attribute {name!r}")
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"invalid {name} {value!r} in <{elem.tag}>") from None


def _timestamp(elem: ET.Element) -> datetime | None:
    value = elem.get("timestamp")
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"invalid timestamp {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _tags(elem: ET.Element) -> dict[str, str]:
    return {tag.get("k", ""): tag.get("v", "") for tag in elem.findall("tag")}


def _location(elem: ET.Element) -> Location:
    lon, lat = elem.get("lon"), elem.get("lat")
    if lon is None or lat is None:
        return Location()
    try:
        return Location(float(lon), float(lat))
    except ValueError:
        raise ValueError(f"invalid coordinates lon={lon!r} lat={lat!r}") from None


def _member(elem: ET.Element) -> RelationMember:
    try:
        item_type = ItemType(elem.get("type"))
    except ValueError:
        raise ValueError(f"invalid member type {elem.get('type')!r}") from None
    return RelationMember(item_type, _int_attr(elem, "ref"), elem.get("role", ""))


def read_osm(source) -> Iterator[Node | Way | Relation]:
    """Yield the nodes, ways and relations of an OSM XML file in file order.

    ``source`` is a path (plain, ``.gz`` or ``.bz2``), ``"-"`` for standard
    input, or a binary file object. Ways carry the locations of their nodes
    as far as those nodes were read before; unknown ones are undefined.
    """
    locations: dict[int, Location] = {}
    with _open(source) as fh:
        for _event, elem in ET.iterparse(fh, events=("end",)):
            if elem.tag == "node":
                node = Node(_int_attr(elem, "id"), _location(elem), _tags(elem), _timestamp(elem))
                locations[node.id] = node.location
                elem.clear()
                yield node
            elif elem.tag == "way":
                refs = tuple(_int_attr(nd, "ref") for nd in elem.findall("nd"))
                way = Way(
                    _int_attr(elem, "id"),
                    refs,
                    tuple(locations.get(ref, Location()) for ref in refs),
                    _tags(elem),
                    _timestamp(elem),
                )
                elem.clear()
                yield way
            elif elem.tag == "relation":
                relation = Relation(
                    _int_attr(elem, "id"),
                    tuple(_member(m) for m in elem.findall("member")),
                    _tags(elem),
                    _timestamp(elem),
                )
                elem.clear()
                yield relation