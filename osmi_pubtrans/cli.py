"""Command line program writing public transport and railway QA layers."""

from __future__ import annotations

import argparse
import io
import sqlite3
import sys
import xml.etree.ElementTree as ET

from osmi_pubtrans.ogr_writer import OGRWriter, Options
from osmi_pubtrans.osm import ItemType
from osmi_pubtrans.osm_reader import read_osm
from osmi_pubtrans.railway_handler_pass1 import RailwayHandlerPass1
from osmi_pubtrans.railway_handler_pass2 import RailwayHandlerPass2
from osmi_pubtrans.route_manager import RouteManager

_EPILOG = "Output is written as unprojected WGS84 coordinates (EPSG:4326)."


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    defaults = Options()
    parser = _Parser(
        prog="osmi_pubtrans",
        usage="%(prog)s [OPTIONS] INFILE OUTPUT_DIRECTORY",
        epilog=_EPILOG,
        add_help=False,
    )
    general = parser.add_argument_group("General Options")
    general.add_argument("-h", "--help", action="store_true", help="This help message.")
    general.add_argument(
        "-f", "--format", dest="output_format", default=defaults.output_format,
        help=f"Output format (default: {defaults.output_format})",
    )
    general.add_argument(
        "-i", "--index", dest="location_index_type", default=defaults.location_index_type,
        help=f"Set index type for location index (default: {defaults.location_index_type})",
    )
    general.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    content = parser.add_argument_group("Content Related Options")
    content.add_argument("--no-crossings", dest="crossings", action="store_false",
                         help="Don't write the crossings layer.")
    content.add_argument("--no-platforms", dest="platforms", action="store_false",
                         help="Don't write the platforms layer.")
    content.add_argument("--no-points", dest="points", action="store_false",
                         help="Don't write a layer of points (railway=switch).")
    content.add_argument("--no-railway-details", dest="railway_details", action="store_false",
                         help="Don't check if signals, buffer stops, milestones etc. "
                              "are mapped on the way which represents the track.")
    content.add_argument("--no-stations", dest="stations", action="store_false",
                         help="Don't write the stations layer.")
    content.add_argument("--no-stops", dest="stops", action="store_false",
                         help="Don't write the stops layer.")
    parser.add_argument("paths", nargs="*", metavar="INFILE OUTPUT_DIRECTORY")
    return parser


def _options(args: argparse.Namespace) -> tuple[Options, str]:
    options = Options(
        output_format=args.output_format,
        location_index_type=args.location_index_type,
        verbose=args.verbose,
        crossings=args.crossings,
        platforms=args.platforms,
        points=args.points,
        railway_details=args.railway_details,
        stops=args.stops,
        stations=args.stations,
    )
    input_name = "-"
    if len(args.paths) == 2:
        input_name, options.output_directory = args.paths
    elif len(args.paths) == 1:
        input_name = args.paths[0]
    return options, input_name


def _source_factory(input_name: str):
    if input_name == "-":
        data = sys.stdin.buffer.read()
        return lambda: io.BytesIO(data)
    return lambda: input_name


def _run(options: Options, input_name: str) -> None:
    def log(message: str) -> None:
        if options.verbose:
            print(message, file=sys.stderr, flush=True)

    source = _source_factory(input_name)
    with OGRWriter(options) as writer:
        route_manager = RouteManager()
        log("Pass 1 (reading route relations) ...")
        routes = [
            obj for obj in read_osm(source())
            if obj.type is ItemType.RELATION and route_manager.new_relation(obj)
        ]
        wanted = {(m.type, m.ref) for relation in routes for m in relation.members}
        log("Pass 1 done")

        must_on_track = {}
        members = {}
        handler1 = RailwayHandlerPass1(writer, options, must_on_track)
        log("Pass 2 ...")
        for obj in read_osm(source()):
            if obj.type is ItemType.NODE:
                handler1.node(obj)
            elif obj.type is ItemType.WAY:
                handler1.way(obj)
            else:
                handler1.relation(obj)
            if (obj.type, obj.id) in wanted:
                members[(obj.type, obj.id)] = obj
        for relation in routes:
            route_manager.process_route(
                relation, [members.get((m.type, m.ref)) for m in relation.members]
            )
        valid = sum(1 for result in route_manager.results if result.valid)
        log(f"Pass 2 done: {valid} valid and {len(route_manager.results) - valid} invalid routes")

        handler2 = RailwayHandlerPass2(writer, set(), must_on_track, options)
        log("Pass 3 ...")
        for obj in read_osm(source()):
            if obj.type is ItemType.NODE:
                handler2.node(obj)
            elif obj.type is ItemType.WAY:
                handler2.way(obj)
        handler2.after_ways()
        must_on_track.clear()
        writer.rename_output_files("pubtrans")
        log("Pass 3 done")
    log(f"wrote output to {options.output_directory}")


def main(argv=None) -> int:
    """Run the program; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.help:
        parser.print_help(sys.stderr)
        return 1
    options, input_name = _options(args)
    try:
        _run(options, input_name)
    except (OSError, ValueError, sqlite3.Error, ET.ParseError) as err:
        print(f"ERROR: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())