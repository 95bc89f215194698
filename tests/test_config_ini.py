"""
Unit tests for nbox.config.ini and nbox.config.csv_table modules.

Tests reading INI configuration files and the CSV tables they refer to.
"""

from __future__ import annotations

import pytest

from nbox.config.base import Setting
from nbox.config.csv_table import read_csv_table
from nbox.config.exceptions import InputFileError, ValidationError
from nbox.config.ini import parse_key, read_ini


class TestParseKey:
    """Tests for parse_key function."""

    def test_plain(self):
        """A plain key has no date."""
        assert parse_key("beta") == ("beta", None)

    def test_dated(self):
        """A bracketed suffix is the date."""
        assert parse_key("Ca_constrain[1990]") == ("Ca_constrain", 1990.0)

    def test_biome_qualified(self):
        """Biome qualifiers are kept in the name."""
        assert parse_key("forest.veg_c[1850.5]") == ("forest.veg_c", 1850.5)

    def test_bad_date(self):
        """A non-numeric date is rejected."""
        with pytest.raises(ValidationError, match="Malformed date"):
            parse_key("Tgav[abc]")

    def test_malformed(self):
        """Unbalanced brackets are rejected."""
        with pytest.raises(ValidationError, match="Malformed key"):
            parse_key("Tgav[1990")


class TestReadIni:
    """Tests for read_ini function."""

    def test_missing_file(self, tmp_path):
        """A missing file raises InputFileError."""
        with pytest.raises(InputFileError):
            read_ini(tmp_path / "missing.ini")

    def test_scalars_and_dates(self, tmp_path):
        """Scalars and dated entries are read in file order."""
        path = tmp_path / "run.ini"
        path.write_text(
            """; test run
[core]
run_name = "quoted"

[simpleNbox]
beta = 0.36             ; inline comment
Ca_constrain[1990] = 350.0
"""
        )
        assert read_ini(path) == [
            Setting("core", "run_name", None, "quoted"),
            Setting("simpleNbox", "beta", None, "0.36"),
            Setting("simpleNbox", "Ca_constrain", 1990.0, "350.0"),
        ]

    def test_keys_case_preserved(self, tmp_path):
        """Variable names keep their case."""
        path = tmp_path / "run.ini"
        path.write_text("[simpleNbox]\nC0 = 277.15\n")
        assert read_ini(path)[0].name == "C0"

    def test_csv_reference(self, tmp_path):
        """csv: entries are read relative to the INI file."""
        (tmp_path / "tgav.csv").write_text("Date,Tgav\n1850,0.0\n2000,1.0\n")
        path = tmp_path / "run.ini"
        path.write_text("[temperature]\nTgav = csv:tgav.csv\n")
        assert read_ini(path) == [
            Setting("temperature", "Tgav", 1850.0, 0.0),
            Setting("temperature", "Tgav", 2000.0, 1.0),
        ]

    def test_dated_csv_reference_rejected(self, tmp_path):
        """A dated entry cannot point at a table."""
        path = tmp_path / "run.ini"
        path.write_text("[temperature]\nTgav[1850] = csv:tgav.csv\n")
        with pytest.raises(ValidationError, match="cannot refer to a table"):
            read_ini(path)

    def test_unparseable(self, tmp_path):
        """Entries outside a section are a validation error."""
        path = tmp_path / "run.ini"
        path.write_text("beta = 0.36\n")
        with pytest.raises(ValidationError, match="Cannot parse"):
            read_ini(path)


class TestReadCsvTable:
    """Tests for read_csv_table function."""

    def test_named_column(self, tmp_path):
        """The column named like the variable is used."""
        path = tmp_path / "emissions.csv"
        path.write_text(
            "; comment\nDate,ffi_emissions,luc_emissions\n"
            "1745,0.0,0.1\n1850,0.5,0.6\n"
        )
        assert read_csv_table(path, "simpleNbox", "luc_emissions") == [
            Setting("simpleNbox", "luc_emissions", 1745.0, 0.1),
            Setting("simpleNbox", "luc_emissions", 1850.0, 0.6),
        ]

    def test_bare_column_for_biome(self, tmp_path):
        """A biome-qualified name may use the bare column."""
        path = tmp_path / "pools.csv"
        path.write_text("Date,veg_c,soil_c\n1850,400,1000\n")
        settings = read_csv_table(path, "simpleNbox", "forest.veg_c")
        assert settings == [Setting("simpleNbox", "forest.veg_c", 1850.0, 400.0)]

    def test_single_column_any_header(self, tmp_path):
        """A single data column is used whatever its header."""
        path = tmp_path / "albedo.csv"
        path.write_text("year,value\n1750,-0.2\n")
        settings = read_csv_table(path, "simpleNbox", "Ftalbedo")
        assert settings == [Setting("simpleNbox", "Ftalbedo", 1750.0, -0.2)]

    def test_blank_values_skipped(self, tmp_path):
        """Rows with no value for the variable are skipped."""
        path = tmp_path / "emissions.csv"
        path.write_text("Date,ffi_emissions,luc_emissions\n1745,,0.1\n1850,0.5,0.6\n")
        settings = read_csv_table(path, "simpleNbox", "ffi_emissions")
        assert [s.date for s in settings] == [1850.0]

    def test_missing_column(self, tmp_path):
        """An unknown column in a multi-column table is an error."""
        path = tmp_path / "emissions.csv"
        path.write_text("Date,ffi_emissions,luc_emissions\n1745,0.0,0.1\n")
        with pytest.raises(ValidationError, match="Column 'Tgav' not found"):
            read_csv_table(path, "temperature", "Tgav")

    def test_missing_file(self, tmp_path):
        """A missing table raises InputFileError, which is also an OSError."""
        with pytest.raises(OSError, match="Cannot read"):
            read_csv_table(tmp_path / "missing.csv", "simpleNbox", "ffi_emissions")
