# osmi_pubtrans

Checks public transport and railway data in OpenStreetMap XML extracts and
writes what it finds into GeoJSON or SQLite layers that can be inspected in a
GIS.

## What it writes

The command reads the input file three times and writes these layers:

| Layer | Content |
| --- | --- |
| `crossings` | `railway=level_crossing` / `crossing` nodes with their `crossing:barrier` and `crossing:light` values (`NONE` if missing, `UNKNOWN` if not a known value). |
| `stops` | `public_transport=stop_position` nodes. |
| `platforms`, `platforms_l` | Platform nodes and ways (`public_transport=platform` or `railway=platform`). |
| `stations`, `stations_l` | Station nodes and ways (`public_transport=station`, `railway=station/halt/tram_stop`). |
| `stops_only_highway` | `highway=bus_stop` nodes without any `public_transport` tag. |
| `points` | `railway=switch` nodes with the type from `railway:switch`. |
| `on_track` | Nodes that should be part of a way because of their tags (signals, buffer stops, milestones, switches, stop positions, ...) but are not referenced by any way. |

All coordinates are unprojected WGS84 (EPSG:4326).

## Installation

```
pip install .
```

## Usage

```
osmi-pubtrans [OPTIONS] INFILE OUTPUT_DIRECTORY
```

`INFILE` is an OSM XML file, plain or compressed as `.gz` or `.bz2`. With one
argument only, output goes to the current directory; with none, the input is
read from standard input.

General options:

| Option | Meaning |
| --- | --- |
| `-h`, `--help` | Show the help message (exit status 1). |
| `-f`, `--format` | Output format, `SQlite` (default) or `GeoJSON`, case-insensitive. |
| `-i`, `--index` | Accepted for compatibility; has no effect. |
| `-v`, `--verbose` | Print progress to standard error. |

Content options:

| Option | Meaning |
| --- | --- |
| `--no-crossings` | Do not write the crossings layer. |
| `--no-platforms` | Do not write the platforms layers. |
| `--no-points` | Do not write the points layer. |
| `--no-railway-details` | Do not check whether signals, buffer stops, milestones and similar lie on a track. |
| `--no-stations` | Do not write the stations layers. |
| `--no-stops` | Do not write the stops layer. |

With `SQlite`, all layers go into one database which is renamed to
`pubtrans.db` at the end; each layer is a table with the geometry as WKT text
in a `GEOMETRY` column, listed in a `geometry_columns` table. With `GeoJSON`,
each layer becomes its own `<layer>.json` file. An existing output file is
never overwritten. Errors are printed to standard error and give exit status 1.

## Using it as a library

```python
from osmi_pubtrans.ptv2_tags import get_route_type, is_stop, check_valid_road_way

get_route_type("bus")                               # RouteType.BUS
is_stop("stop_entry_only")                          # True
check_valid_road_way({"highway": "residential"})    # True
```

- `osmi_pubtrans.osm` holds the `Node`, `Way`, `Relation`, `RelationMember`
  and `Location` classes and `coordinates_valid`.
- `osmi_pubtrans.osm_reader.read_osm` yields these objects from an OSM XML
  file.
- `osmi_pubtrans.route_manager.RouteManager` selects PTv2 route relations
  (`new_relation`) and validates them: `process_route(relation, member_objects)`
  returns a `RouteResult` whose `error` is a `RouteError` flag set (member
  roles and order, stops not on the route's ways, ways unsuitable for the route
  type, gaps between ways with roundabouts handled specially). The individual
  problems are collected in its `errors` (`ErrorCollector`).
- `osmi_pubtrans.ptv2_checker.PTv2Checker` and
  `osmi_pubtrans.gap_detector.GapDetector` run the single checks.
- `osmi_pubtrans.ogr_writer.OGRWriter` creates the output layers.

## Limitations

- Route validation results are only kept in memory: the command reports the
  number of valid and invalid routes with `--verbose`, but writes no route or
  route error layers.
- Turn restrictions are not read, so in the command's `points` layer every
  `railway:switch=single_slip` is marked `single_slip_incomplete`.
- Only OSM XML input is read; no PBF. Only GeoJSON and SQLite output is
  written; the SQLite file is plain SQLite, not SpatiaLite. There is no Web
  Mercator output.