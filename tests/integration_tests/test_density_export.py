"""Integration tests for the run_density_export command-line runner."""

import json
import os

import numpy as np
import pandas as pd
import geopandas as gpd
import pytest
from shapely.geometry import box

from run_density_export import main, parse_args, apply_overrides
from pipeline import default_config


@pytest.fixture
def input_files(tmp_path):
    """Point CSV, boundary and county GeoJSON files in lon/lat."""
    rng = np.random.default_rng(5)
    points = tmp_path / "campgrounds.csv"
    pd.DataFrame({
        "lon": rng.uniform(-84.5, -81.5, 40),
        "lat": rng.uniform(31.5, 34.5, 40),
    }).to_csv(points, index=False)

    boundary = tmp_path / "boundary.geojson"
    gpd.GeoDataFrame(
        {"NAME": ["Georgia"]}, geometry=[box(-85.0, 31.0, -81.0, 35.0)], crs="EPSG:4326"
    ).to_file(boundary, driver="GeoJSON")

    counties = tmp_path / "counties.geojson"
    gpd.GeoDataFrame(
        {"NAME": ["West", "East"]},
        geometry=[box(-85.0, 31.0, -83.0, 35.0), box(-83.0, 31.0, -81.0, 35.0)],
        crs="EPSG:4326",
    ).to_file(counties, driver="GeoJSON")

    return {"points": str(points), "boundary": str(boundary), "counties": str(counties)}


def _argv(files, tmp_path, *extra):
    return [
        "--config", str(tmp_path / "missing_config.json"),
        "--points", files["points"],
        "--boundary", files["boundary"],
        "--counties", files["counties"],
        "--hydrography", str(tmp_path / "no_hydro.geojson"),
        "--out", str(tmp_path / "out"),
        "--n-cols", "3",
        "--n-rows", "3",
        "--resolution", "30",
        *extra,
    ]


class TestDensityExport:
    """Test suite for the command-line runner."""

    def test_overrides(self):
        """Test command-line values replace config values."""
        args = parse_args(["--n-cols", "7", "--bandwidth", "15000"])
        config = apply_overrides(default_config(), args)
        assert config["grid"]["n_cols"] == 7
        assert config["grid"]["n_rows"] == 10
        assert config["density"]["bandwidth"] == 15000.0

    def test_end_to_end(self, input_files, tmp_path, capsys):
        """Test a full run writes every product."""
        main(_argv(input_files, tmp_path))

        out = capsys.readouterr().out
        assert "[WARN] Hydrography file not found" in out
        assert "[DONE]" in out
        for name in ("grid_counts", "density_cells", "density_bands", "region_counts"):
            assert os.path.exists(tmp_path / "out" / f"{name}.geojson")

    def test_config_file(self, input_files, tmp_path):
        """Test that paths can come from a config file."""
        config_path = tmp_path / "pipeline_config.json"
        config_path.write_text(json.dumps({
            "paths": {
                "points": input_files["points"],
                "boundary": input_files["boundary"],
                "counties": None,
                "hydrography": None,
                "outdir": str(tmp_path / "from_config"),
            },
            "grid": {"n_cols": 2, "n_rows": 2},
            "density": {"resolution": 20},
        }), encoding="utf-8")

        main(["--config", str(config_path)])

        assert os.path.exists(tmp_path / "from_config" / "grid_counts.geojson")
        assert not os.path.exists(tmp_path / "from_config" / "region_counts.geojson")

    def test_missing_points(self, input_files, tmp_path, capsys):
        """Test that a missing points file exits with status 1."""
        input_files["points"] = str(tmp_path / "nope.csv")
        with pytest.raises(SystemExit) as excinfo:
            main(_argv(input_files, tmp_path))
        assert excinfo.value.code == 1
        assert "[ERROR] Failed to load data" in capsys.readouterr().out

    def test_invalid_override(self, input_files, tmp_path):
        """Test that an invalid grid size exits with status 1."""
        with pytest.raises(SystemExit) as excinfo:
            main(_argv(input_files, tmp_path, "--n-cols", "0"))
        assert excinfo.value.code == 1

    def test_stage_failure(self, input_files, tmp_path, capsys):
        """Test that a stage error is reported with its stage name."""
        pd.DataFrame({"lon": [-83.0], "lat": [33.0]}).to_csv(input_files["points"], index=False)
        with pytest.raises(SystemExit) as excinfo:
            main(_argv(input_files, tmp_path))
        assert excinfo.value.code == 1
        assert "Stage 'estimate' failed" in capsys.readouterr().out

    def test_duplicate_county_names(self, input_files, tmp_path, capsys):
        """Test that repeated county ids exit with status 1 instead of a traceback."""
        gpd.GeoDataFrame(
            {"NAME": ["Fulton", "Fulton"]},
            geometry=[box(-85.0, 31.0, -83.0, 35.0), box(-83.0, 31.0, -81.0, 35.0)],
            crs="EPSG:4326",
        ).to_file(input_files["counties"], driver="GeoJSON")
        with pytest.raises(SystemExit) as excinfo:
            main(_argv(input_files, tmp_path))
        assert excinfo.value.code == 1
        assert "[ERROR] Invalid input" in capsys.readouterr().out
