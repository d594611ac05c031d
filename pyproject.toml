[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "osmi_pubtrans"
version = "0.1.0"
description = "Validate public transport routes and railway infrastructure in OpenStreetMap data"
requires-python = ">=3.10"
dependencies = []
keywords = ["openstreetmap", "osm", "public transport", "ptv2", "railway", "validation", "geojson", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
osmi-pubtrans = "osmi_pubtrans.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["osmi_pubtrans"]

[tool.pytest.ini_options]
addopts = "-ra"
