"""Configuration management for the density pipeline.

Provides default input paths, CRS choices and stage parameters, merges a
user JSON file over them and validates the result against a JSON schema.
The resulting dictionary is passed explicitly to each stage.
"""
from __future__ import annotations

import copy
import json
import pathlib

from jsonschema import Draft202012Validator

_DEFAULT = {
    "paths": {
        "points": "data/ga_campgrounds.csv",
        "counties": "data/geo/ga_counties.geojson",
        "boundary": "data/geo/ga_boundary.geojson",
        "hydrography": "data/geo/ga_hydrography.geojson",
        "outdir": "density_out",
    },
    "crs": {
        "source": "EPSG:4326",
        "projected": "EPSG:5070",
    },
    "points": {"x_col": "lon", "y_col": "lat", "category_col": None},
    "regions": {"id_col": "NAME"},
    "grid": {"n_cols": 10, "n_rows": 10},
    "density": {
        "kernel": "gaussian",
        "bandwidth": None,
        "bandwidth_rule": "silverman",
        "resolution": 200,
        "n_bands": 5,
        "band_scheme": "quantile",
    },
}

CONFIG_SCHEMA = {
    "type": "object",
    "required": ["paths", "crs", "points", "regions", "grid", "density"],
    "properties": {
        "paths": {
            "type": "object",
            "properties": {
                "points": {"type": "string"},
                "counties": {"type": ["string", "null"]},
                "boundary": {"type": "string"},
                "hydrography": {"type": ["string", "null"]},
                "outdir": {"type": "string"},
            },
        },
        "crs": {
            "type": "object",
            "required": ["projected"],
            "properties": {
                "source": {"type": ["string", "null"]},
                "projected": {"type": "string"},
            },
        },
        "points": {
            "type": "object",
            "properties": {
                "x_col": {"type": "string"},
                "y_col": {"type": "string"},
                "category_col": {"type": ["string", "null"]},
            },
        },
        "regions": {
            "type": "object",
            "properties": {"id_col": {"type": ["string", "null"]}},
        },
        "grid": {
            "type": "object",
            "required": ["n_cols", "n_rows"],
            "properties": {
                "n_cols": {"type": "integer", "minimum": 1},
                "n_rows": {"type": "integer", "minimum": 1},
            },
        },
        "density": {
            "type": "object",
            "required": ["kernel", "bandwidth_rule", "resolution", "n_bands"],
            "properties": {
                "kernel": {
                    "enum": ["gaussian", "tophat", "epanechnikov", "exponential", "linear", "cosine"]
                },
                "bandwidth": {"type": ["number", "null"], "exclusiveMinimum": 0},
                "bandwidth_rule": {"enum": ["silverman", "scott", "cv"]},
                "resolution": {"type": "integer", "minimum": 1},
                "n_bands": {"type": "integer", "minimum": 1},
                "band_scheme": {"enum": ["quantile", "equal"]},
            },
        },
    },
}


def default_config() -> dict:
    """Return a fresh copy of the default configuration."""
    return copy.deepcopy(_DEFAULT)


def validate_config(config: dict) -> list[str]:
    """Validate a configuration dictionary against CONFIG_SCHEMA.

    Returns:
        list[str]: Human-readable error messages, empty when valid.
    """
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(config), key=lambda e: list(e.path))
    return [
        f"{'.'.join(str(p) for p in e.path) or '<root>'}: {e.message}"
        for e in errors
    ]


def load_config(path: str | None = "pipeline_config.json") -> dict:
    """Load pipeline configuration from a JSON file.

    Loads the user configuration file and merges it with the defaults.
    Nested sections are updated key by key; other values replace defaults.

    Args:
        path: Path to configuration JSON file. If None or the file doesn't
            exist, returns the default configuration.

    Returns:
        dict: Merged configuration dictionary.

    Raises:
        json.JSONDecodeError: If the file exists but is not valid JSON.
        ValueError: If the merged configuration fails schema validation.
    """
    merged = default_config()
    p = pathlib.Path(path) if path else None
    if p and p.exists():
        with p.open("r", encoding="utf-8") as f:
            user = json.load(f)
        for k, v in user.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v

    errors = validate_config(merged)
    if errors:
        raise ValueError(f"Invalid configuration ({p}): " + "; ".join(errors))
    return merged
