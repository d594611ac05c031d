"""Output datasets and layers for GeoJSON and SQLite files."""

from __future__ import annotations

import json
import os
import sqlite3
import sys
from dataclasses import dataclass
from pathlib import Path

SRS = 4326
_TRANSACTION_SIZE = 10000
_GEOMETRY_TYPES = {"point": "Point", "linestring": "LineString"}


@dataclass
class Options:
    """Program options."""

    output_format: str = "SQlite"
    location_index_type: str = "sparse_mem_array"
    output_directory: str = "."
    verbose: bool = False
    crossings: bool = True
    platforms: bool = True
    points: bool = True
    railway_details: bool = True
    stops: bool = True
    stations: bool = True


def filename_suffix(output_format: str) -> str:
    """File name suffix (with leading dot) for a format, or an empty string."""
    fmt = output_format.lower()
    if fmt == "geojson":
        return ".json"
    if fmt == "sqlite":
        return ".db"
    return ""


def one_layer_per_datasource_only(output_format: str) -> bool:
    """True if the format cannot hold several layers in one file."""
    return output_format.lower() in ("geojson", "esri shapefile")


def default_dataset_options(output_format: str) -> list[str]:
    """Default dataset creation options of a format."""
    if output_format == "SQlite":
        return ["SPATIALITE=YES"]
    if output_format == "ESRI Shapefile":
        return ["SHAPE_ENCODING=UTF8"]
    return []


def default_layer_options(output_format: str) -> list[str]:
    """Default layer creation options of a format."""
    if output_format == "SQlite":
        return ["SPATIAL_INDEX=NO", "COMPRESS_GEOM=NO"]
    if output_format == "ESRI Shapefile":
        return ["SHAPE_ENCODING=UTF8"]
    return []


def _number(value) -> str:
    return repr(float(value))


def _coords(geometry_type: str, geometry):
    if geometry_type == "Point":
        lon, lat = geometry
        return [float(lon), float(lat)]
    points = [[float(lon), float(lat)] for lon, lat in geometry]
    if len(points) < 2:
        raise ValueError("a linestring needs at least two points")
    return points


def _wkt(geometry_type: str, coords) -> str:
    if geometry_type == "Point":
        return f"POINT ({_number(coords[0])} {_number(coords[1])})"
    inner = ", ".join(f"{_number(x)} {_number(y)}" for x, y in coords)
    return f"LINESTRING ({inner})"


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class Layer:
    """A named collection of features with string fields."""

    def __init__(self, dataset: _Dataset, name: str, geometry_type: str) -> None:
        self.name = name
        self.geometry_type = geometry_type
        self.fields: list[str] = []
        self.widths: dict[str, int] = {}
        self._dataset = dataset

    def add_field(self, name: str, width: int) -> None:
        """Add a string field of the given width."""
        if name in self.widths:
            raise ValueError(f"field {name!r} exists already in layer {self.name!r}")
        self.fields.append(name)
        self.widths[name] = width
        self._dataset.add_field(self, name)

    def add_feature(self, geometry, fields=None) -> None:
        """Add a feature; ``fields`` maps field names to values."""
        values = dict(fields or {})
        unknown = sorted(set(values) - set(self.widths))
        if unknown:
            raise ValueError(f"unknown fields in layer {self.name!r}: {', '.join(unknown)}")
        coords = _coords(self.geometry_type, geometry)
        row = [None if values.get(n) is None else str(values[n]) for n in self.fields]
        self._dataset.add_feature(self, coords, row)


class _Dataset:
    def __init__(self, output_format: str, path: Path) -> None:
        if path.exists():
            raise FileExistsError(f"output file {path} exists already")
        self.output_format = output_format
        self.path = path
        self.layers: list[Layer] = []
        self.closed = False

    @property
    def dataset_name(self) -> str:
        return str(self.path)

    def create_layer(self, name: str, geometry_type: str) -> Layer:
        if self.closed:
            raise ValueError("dataset is closed")
        layer = Layer(self, name, geometry_type)
        self.layers.append(layer)
        return layer

    def add_field(self, layer: Layer, name: str) -> None:
        pass

    def add_feature(self, layer: Layer, coords, row) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self.closed = True


class _GeoJSONDataset(_Dataset):
    def __init__(self, output_format: str, path: Path) -> None:
        super().__init__(output_format, path)
        self._features: list[dict] = []

    def create_layer(self, name: str, geometry_type: str) -> Layer:
        if self.layers:
            raise ValueError("a GeoJSON dataset holds one layer only")
        return super().create_layer(name, geometry_type)

    def add_feature(self, layer: Layer, coords, row) -> None:
        if self.closed:
            raise ValueError("dataset is closed")
        self._features.append(
            {
                "type": "Feature",
                "properties": dict(zip(layer.fields, row)),
                "geometry": {"type": layer.geometry_type, "coordinates": coords},
            }
        )

    def close(self) -> None:
        if self.closed:
            return
        collection = {"type": "FeatureCollection", "features": self._features}
        if self.layers:
            collection["name"] = self.layers[0].name
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(collection, fh, ensure_ascii=False)
        super().close()


class _SQLiteDataset(_Dataset):
    def __init__(self, output_format: str, path: Path) -> None:
        super().__init__(output_format, path)
        self._conn = sqlite3.connect(str(path), isolation_level=None)
        if output_format == "SQlite":
            for pragma in (
                "journal_mode=OFF",
                "temp_store=MEMORY",
                "locking_mode=EXCLUSIVE",
                "cache_size=-614400",
                "synchronous=OFF",
            ):
                self._conn.execute(f"PRAGMA {pragma}")
        self._conn.execute(
            "CREATE TABLE geometry_columns (f_table_name TEXT, f_geometry_column TEXT,"
            " geometry_type TEXT, srid INTEGER)"
        )
        self._pending = 0

    def create_layer(self, name: str, geometry_type: str) -> Layer:
        layer = super().create_layer(name, geometry_type)
        self._conn.execute(f"CREATE TABLE {_quote(name)} (ogc_fid INTEGER PRIMARY KEY, GEOMETRY TEXT)")
        self._conn.execute(
            "INSERT INTO geometry_columns VALUES (?, 'GEOMETRY', ?, ?)",
            (name, geometry_type.upper(), SRS),
        )
        return layer

    def add_field(self, layer: Layer, name: str) -> None:
        self._conn.execute(f"ALTER TABLE {_quote(layer.name)} ADD COLUMN {_quote(name)} TEXT")

    def add_feature(self, layer: Layer, coords, row) -> None:
        if self.closed:
            raise ValueError("dataset is closed")
        if self._pending == 0:
            self._conn.execute("BEGIN")
        columns = ", ".join(["GEOMETRY", *(_quote(n) for n in layer.fields)])
        marks = ", ".join("?" * (len(layer.fields) + 1))
        self._conn.execute(
            f"INSERT INTO {_quote(layer.name)} ({columns}) VALUES ({marks})",
            [_wkt(layer.geometry_type, coords), *row],
        )
        self._pending += 1
        if self._pending >= _TRANSACTION_SIZE:
            self._conn.execute("COMMIT")
            self._pending = 0

    def close(self) -> None:
        if self.closed:
            return
        if self._pending:
            self._conn.execute("COMMIT")
            self._pending = 0
        self._conn.close()
        super().close()


def _dataset_class(output_format: str) -> type[_Dataset]:
    fmt = output_format.lower()
    if fmt == "geojson":
        return _GeoJSONDataset
    if fmt == "sqlite":
        return _SQLiteDataset
    raise ValueError(f"unsupported output format: {output_format}")


class OGRWriter:
    """Manages the output datasets and creates layers in them."""

    def __init__(self, options: Options) -> None:
        self.options = options
        self._dataset_class = _dataset_class(options.output_format)
        self._datasets: list[_Dataset] = []

    def __enter__(self) -> OGRWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def dataset_names(self) -> list[str]:
        """File names of the datasets created so far."""
        return [d.dataset_name for d in self._datasets]

    def _ensure_writeable_dataset(self, layer_name: str) -> None:
        fmt = self.options.output_format
        if not self._datasets or one_layer_per_datasource_only(fmt):
            path = Path(self.options.output_directory) / layer_name
            self._datasets.append(self._dataset_class(fmt, path))

    def create_layer(self, layer_name: str, geometry_type: str) -> Layer:
        """Create a layer, opening a new dataset if the format requires it."""
        canonical = _GEOMETRY_TYPES.get(geometry_type.lower())
        if canonical is None:
            raise ValueError(f"unsupported geometry type: {geometry_type}")
        self._ensure_writeable_dataset(layer_name)
        return self._datasets[-1].create_layer(layer_name, canonical)

    def close(self) -> None:
        """Flush and close all datasets."""
        for dataset in self._datasets:
            dataset.close()

    def rename_output_files(self, view_name: str) -> None:
        """Close the datasets and give their files the format's suffix.

        A single dataset is renamed after the view. Failures are reported
        on standard error and leave the file where it is.
        """
        self.close()
        suffix = filename_suffix(self.options.output_format)
        if not suffix:
            return
        if len(self._datasets) == 1:
            source = self._datasets[0].dataset_name
            destination = str(Path(self.options.output_directory) / (view_name + suffix))
            self._rename(source, destination)
        else:
            for dataset in self._datasets:
                self._rename(dataset.dataset_name, dataset.dataset_name + suffix)

    @staticmethod
    def _rename(source: str, destination: str) -> None:
        if os.path.exists(destination):
            print(
                f"ERROR: Cannot rename output file {source} to {destination} because file exists already.",
                file=sys.stderr,
            )
            return
        try:
            os.rename(source, destination)
        except OSError:
            print(f"ERROR: Rename from {source} to {destination} failed.", file=sys.stderr)