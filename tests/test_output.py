"""
Unit tests for nbox.output module.

Tests collecting recorded state into a long-format table and writing it out.
"""

from __future__ import annotations

import pandas as pd
import pytest
from conftest import C0

from nbox.messages import MessageData
from nbox.output import OUTPUT_COLUMNS, snapshots_to_frame, write_outputstream


@pytest.fixture
def ran(core):
    core.config.run_name = "reference"
    core.run(until=1750)
    return core


class TestSnapshotsToFrame:
    """Tests for snapshots_to_frame."""

    def test_columns_and_rows(self, ran):
        """One row per component, year and variable."""
        frame = snapshots_to_frame(ran)
        assert list(frame.columns) == OUTPUT_COLUMNS
        assert set(frame["run_name"]) == {"reference"}
        assert set(frame["component"]) == {"temperature", "ocean", "simpleNbox"}
        assert sorted(frame["year"].unique()) == [1745.0 + i for i in range(6)]

    def test_values_and_units(self, ran):
        """Values carry their units."""
        frame = snapshots_to_frame(ran)
        row = frame[
            (frame["variable"] == "Ca") & (frame["year"] == 1750.0)
        ].iloc[0]
        assert row["value"] == pytest.approx(C0)
        assert row["units"] == "ppmv CO2"
        ocean = frame[frame["component"] == "ocean"]
        assert set(ocean["variable"]) == {"ocean_c", "atm_ocean_flux", "dumped_c"}

    def test_disabled_output(self, core):
        """Components with output switched off are left out."""
        core.set_data("ocean", "output", MessageData.of("false"))
        core.run(until=1747)
        frame = snapshots_to_frame(core)
        assert "ocean" not in set(frame["component"])

    def test_biome_columns(self, make_core):
        """Named biomes get qualified variables next to the totals."""
        core = make_core()
        core.get_component("simpleNbox").rename_biome("global", "forest")
        core.run(until=1746)
        variables = set(snapshots_to_frame(core)["variable"])
        assert {"veg_c", "forest.veg_c", "forest.npp"} <= variables

    def test_not_run(self, core):
        """A core that has not run gives an empty table."""
        frame = snapshots_to_frame(core)
        assert frame.empty
        assert list(frame.columns) == OUTPUT_COLUMNS


class TestWriteOutputstream:
    """Tests for write_outputstream."""

    def test_write_csv(self, ran, tmp_path):
        """The table is written without an index."""
        path = write_outputstream(ran, tmp_path / "out.csv")
        assert path.exists()
        frame = pd.read_csv(path)
        assert list(frame.columns) == OUTPUT_COLUMNS
        assert len(frame) == len(snapshots_to_frame(ran))
