"""
Unit tests for nbox.config.builder module.

Tests building cores from settings and from the shipped configuration files.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nbox.components import SimpleNbox
from nbox.config import (
    DEFAULT_COMPONENTS,
    CoreConfig,
    Setting,
    SolverConfig,
    build_core,
    load_core,
)
from nbox.config.exceptions import ComponentNotFoundError, ValidationError
from nbox.exceptions import UnknownVariableError

CONFIGS = Path(__file__).parent.parent / "configs"


class TestBuildCore:
    """Tests for build_core function."""

    def test_default_components(self):
        """Every default component is attached."""
        core = build_core([])
        assert [c.name for c in core.components()] == list(DEFAULT_COMPONENTS)

    def test_core_settings_applied(self):
        """core settings change the run settings."""
        core = build_core(
            [
                Setting("core", "run_name", None, "historical"),
                Setting("core", "endDate", None, 2000.0),
                Setting("core", "do_spinup", None, "false"),
            ]
        )
        assert core.config.run_name == "historical"
        assert core.config.end_date == 2000.0
        assert core.config.do_spinup is False

    def test_solver_config_passed(self):
        """The solver uses the given integrator settings."""
        core = build_core([], solver_config=SolverConfig(eps_abs=1e-8))
        assert core.get_component("carbon-cycle-solver").config.eps_abs == 1e-8

    def test_core_config_passed(self):
        """The given run settings are used as the starting point."""
        config = CoreConfig(start_date=1850.0, end_date=1900.0)
        assert build_core([], config).config is config

    def test_unknown_section(self):
        """A setting for an unknown component is rejected."""
        with pytest.raises(ComponentNotFoundError, match="Component 'methane'"):
            build_core([Setting("methane", "sensitivity", None, 3.0)])

    def test_unknown_core_setting(self):
        """Unknown core settings are rejected with the variable named."""
        with pytest.raises(ValidationError, match="Could not parse var: stopDate"):
            build_core([Setting("core", "stopDate", None, 2000.0)])

    def test_unknown_variable(self):
        """Unknown component variables are rejected with the variable named."""
        with pytest.raises(UnknownVariableError, match="Could not parse var: vegc"):
            build_core([Setting("simpleNbox", "vegc", None, 1.0)])

    def test_enabled_and_output_flags(self):
        """enabled and output are handled for every component."""
        core = build_core(
            [
                Setting("temperature", "output", None, "false"),
                Setting("ocean", "enabled", None, "true"),
            ]
        )
        assert core.get_component("temperature").output_enabled is False
        assert core.get_component("ocean").enabled is True


class TestLoadCore:
    """Tests for load_core function."""

    def test_no_paths(self):
        """At least one file is needed."""
        with pytest.raises(ValidationError, match="At least one"):
            load_core()

    def test_unsupported_suffix(self, tmp_path):
        """Only TOML and INI files are understood."""
        path = tmp_path / "run.yaml"
        path.write_text("core: {}\n")
        with pytest.raises(ValidationError, match="Unsupported configuration"):
            load_core(path)

    def test_layered_ini_rejected(self):
        """INI files cannot be layered."""
        ini = CONFIGS / "nbox_default.ini"
        with pytest.raises(ValidationError, match="Unsupported configuration"):
            load_core(ini, ini)

    def test_default_toml(self):
        """The shipped TOML configuration loads."""
        core = load_core(CONFIGS / "nbox_default.toml")
        nbox = core.get_component("simpleNbox")
        assert isinstance(nbox, SimpleNbox)
        assert nbox.biome_list == ["global"]
        assert core.config.end_date == 2100.0
        assert len(nbox.ffi_emissions) > 0

    def test_default_ini(self):
        """The shipped INI configuration loads."""
        core = load_core(CONFIGS / "nbox_default.ini")
        assert core.config.run_name == "default-ini"
        nbox = core.get_component("simpleNbox")
        assert nbox.Ca_constrain.dates() == [1745.0, 1850.0]

    def test_layered_biomes(self):
        """The biome override replaces the global biome."""
        core = load_core(CONFIGS / "nbox_default.toml", CONFIGS / "nbox_biomes.toml")
        nbox = core.get_component("simpleNbox")
        assert nbox.biome_list == ["forest", "tundra"]
        assert core.config.run_name == "biomes"
        assert nbox.C0.value == 277.15
        assert set(nbox.veg_c) == {"forest", "tundra"}
