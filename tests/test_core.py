"""
Unit tests for nbox.core module.

Tests registration, message routing, dependency ordering and the run loop
with small stand-in components.
"""

from __future__ import annotations

import pytest

from nbox.components.base import Component
from nbox.config.base import CoreConfig
from nbox.config.exceptions import ComponentNotFoundError
from nbox.core import Core
from nbox.exceptions import (
    CircularDependencyError,
    DuplicateCapabilityError,
    NboxError,
    RegistryFrozenError,
    SpinupError,
    UnknownDatumError,
)
from nbox.messages import MessageData, MessageKind
from nbox.units import Unit, UnitVal


class Recorder(Component):
    """Component that provides and needs configurable data and logs calls."""

    def __init__(self, name, provides=(), needs=(), inputs=(), log=None):
        super().__init__()
        self.name = name
        self.provides = provides
        self.needs = needs
        self.inputs = inputs
        self.log = log if log is not None else []
        self.values = {}
        self.spinup_steps = 0
        self.converge_after = 1

    def init(self, core):
        super().init(core)
        for datum in self.provides:
            core.register_capability(datum, self.name)
        for datum in self.needs:
            core.register_dependency(datum, self.name)
        for datum in self.inputs:
            core.register_input(datum, self.name)

    def set_data(self, var_name, data):
        self.values[var_name] = data.get_unitval(Unit.UNITLESS)

    def get_data(self, var_name, date=None):
        return self.values.get(var_name, UnitVal(0.0))

    def prepare_to_run(self):
        self.log.append(("prepare", self.name))

    def run(self, date):
        self.log.append(("run", self.name, date))

    def run_spinup(self, step):
        self.spinup_steps = step
        return step >= self.converge_after

    def record_initial_state(self, date):
        self.log.append(("initial", self.name, date))

    def reset(self, date):
        self.log.append(("reset", self.name, date))


@pytest.fixture
def config():
    return CoreConfig(start_date=1745.0, end_date=1750.0, do_spinup=False)


class TestRegistration:
    """Tests for component registration."""

    def test_add_component(self, config):
        """Added components can be looked up by name and capability."""
        core = Core(config)
        land = Recorder("land", provides=("veg_c",))
        core.add_component(land)
        assert core.get_component("land") is land
        assert core.get_component_by_capability("veg_c") is land
        assert core.get_component_by_capability("forest.veg_c") is land
        assert core.check_capability("veg_c")
        assert not core.check_capability("ocean_c")

    def test_duplicate_name(self, config):
        """Two components cannot share a name."""
        core = Core(config)
        core.add_component(Recorder("land"))
        with pytest.raises(ValueError, match="already attached"):
            core.add_component(Recorder("land"))

    def test_duplicate_capability(self, config):
        """Two components cannot provide the same datum."""
        core = Core(config)
        core.add_component(Recorder("a", provides=("Tgav",)))
        with pytest.raises(DuplicateCapabilityError, match="already provided by 'a'"):
            core.add_component(Recorder("b", provides=("Tgav",)))

    def test_unknown_component(self, config):
        """Looking up an unknown component lists the attached ones."""
        core = Core(config)
        core.add_component(Recorder("land"))
        with pytest.raises(ComponentNotFoundError, match="Available components: 'land'"):
            core.get_component("ocean")

    def test_unknown_capability(self, config):
        """Nobody providing a datum is an error."""
        with pytest.raises(UnknownDatumError, match="No component provides"):
            Core(config).get_component_by_capability("Tgav")

    def test_frozen_after_prepare(self, config):
        """The registry cannot change once prepared."""
        core = Core(config)
        core.add_component(Recorder("land"))
        core.prepare_to_run()
        with pytest.raises(RegistryFrozenError):
            core.add_component(Recorder("ocean"))
        with pytest.raises(RegistryFrozenError):
            core.register_capability("Tgav", "land")

    def test_weak_core_reference(self, config):
        """A component does not keep its core alive."""
        core = Core(config)
        land = Recorder("land")
        core.add_component(land)
        attached = land.core is core
        del core
        assert attached
        with pytest.raises(NboxError, match="not attached"):
            _ = land.core


class TestMessages:
    """Tests for message routing."""

    def test_get_data_routed_to_provider(self, config):
        """GET_DATA goes to the provider of the datum."""
        core = Core(config)
        land = Recorder("land", provides=("veg_c",))
        core.add_component(land)
        land.values["veg_c"] = UnitVal(5.0, Unit.PGC)
        assert core.get_data("veg_c") == UnitVal(5.0, Unit.PGC)

    def test_set_data_routed_to_inputs(self, config):
        """SET_DATA goes to every component accepting the datum."""
        core = Core(config)
        a = Recorder("a", provides=("Tgav",), inputs=("Tgav",))
        b = Recorder("b", inputs=("Tgav",))
        core.add_component(a)
        core.add_component(b)
        core.send_message(MessageKind.SET_DATA, "Tgav", MessageData.of(1.5))
        assert a.values["Tgav"].value == 1.5
        assert b.values["Tgav"].value == 1.5

    def test_set_data_falls_back_to_provider(self, config):
        """Without registered inputs SET_DATA goes to the provider."""
        core = Core(config)
        land = Recorder("land", provides=("beta",))
        core.add_component(land)
        core.send_message(MessageKind.SET_DATA, "beta", MessageData.of(0.36))
        assert land.values["beta"].value == 0.36

    def test_set_data_section(self, config):
        """Settings go to the component named by the section."""
        core = Core(config)
        land = Recorder("land")
        core.add_component(land)
        core.set_data("land", "beta", MessageData.of("0.36"))
        core.set_data("land", "enabled", MessageData.of("false"))
        assert land.values["beta"].value == 0.36
        assert land.enabled is False

    def test_core_settings(self, config):
        """core settings change the run configuration."""
        core = Core(config)
        core.set_data("core", "startDate", MessageData.of("1850"))
        core.set_data("core", "max_spinup", MessageData.of(10.0))
        core.set_data("core", "do_spinup", MessageData.of("yes"))
        assert core.config.start_date == 1850.0
        assert core.config.max_spinup == 10
        assert core.config.do_spinup is True

    def test_dump_goes_to_ocean(self, config):
        """Deep ocean transfers go to the provider of ocean_c."""
        received = []

        class Ocean(Recorder):
            def send_message(self, kind, datum, info):
                received.append((kind, info.value_unitval))

        core = Core(config)
        core.add_component(Ocean("ocean", provides=("ocean_c",)))
        core.send_message(
            MessageKind.DUMP_TO_DEEP_OCEAN,
            "ocean_c",
            MessageData(value_unitval=UnitVal(2.0, Unit.PGC)),
        )
        assert received == [
            (MessageKind.DUMP_TO_DEEP_OCEAN, UnitVal(2.0, Unit.PGC))
        ]


class TestOrdering:
    """Tests for dependency ordering in prepare_to_run."""

    def test_providers_run_first(self, config):
        """Components run after the providers of their dependencies."""
        log = []
        core = Core(config)
        core.add_component(Recorder("solver", needs=("atmos_c",), log=log))
        core.add_component(
            Recorder("land", provides=("atmos_c",), needs=("Tgav",), log=log)
        )
        core.add_component(Recorder("climate", provides=("Tgav",), log=log))
        core.prepare_to_run()
        assert [c.name for c in core.components()] == ["climate", "land", "solver"]
        assert [entry[1] for entry in log] == ["climate", "land", "solver"]

    def test_independent_keep_attachment_order(self, config):
        """Components without dependencies keep the order they were added in."""
        core = Core(config)
        for name in ("b", "a", "c"):
            core.add_component(Recorder(name))
        core.prepare_to_run()
        assert [c.name for c in core.components()] == ["b", "a", "c"]

    def test_cycle(self, config):
        """Circular dependencies are rejected."""
        core = Core(config)
        core.add_component(Recorder("a", provides=("x",), needs=("y",)))
        core.add_component(Recorder("b", provides=("y",), needs=("x",)))
        with pytest.raises(CircularDependencyError):
            core.prepare_to_run()

    def test_missing_provider(self, config):
        """A dependency nobody provides is rejected."""
        core = Core(config)
        core.add_component(Recorder("land", needs=("Tgav",)))
        with pytest.raises(UnknownDatumError, match="depends on 'Tgav'"):
            core.prepare_to_run()

    def test_disabled_provider(self, config):
        """A disabled provider does not satisfy a dependency."""
        core = Core(config)
        climate = Recorder("climate", provides=("Tgav",))
        climate.enabled = False
        core.add_component(climate)
        core.add_component(Recorder("land", needs=("Tgav",)))
        with pytest.raises(UnknownDatumError):
            core.prepare_to_run()

    def test_disabled_skipped(self, config):
        """Disabled components are not run."""
        core = Core(config)
        core.add_component(Recorder("a"))
        skipped = Recorder("b")
        skipped.enabled = False
        core.add_component(skipped)
        core.prepare_to_run()
        assert [c.name for c in core.components()] == ["a"]


class TestRunLoop:
    """Tests for Core.run and Core.reset."""

    def test_run_records_then_steps(self, config):
        """The first run records the start state and steps each year."""
        log = []
        core = Core(config)
        core.add_component(Recorder("land", log=log))
        core.run()
        assert log[0] == ("prepare", "land")
        assert log[1] == ("initial", "land", 1745.0)
        assert [e[2] for e in log if e[0] == "run"] == [
            1746.0,
            1747.0,
            1748.0,
            1749.0,
            1750.0,
        ]
        assert core.current_date == 1750.0
        assert not core.running

    def test_run_continues(self, config):
        """Later runs continue from the last date reached."""
        log = []
        core = Core(config)
        core.add_component(Recorder("land", log=log))
        core.run(until=1747)
        core.run()
        runs = [e[2] for e in log if e[0] == "run"]
        assert runs == [1746.0, 1747.0, 1748.0, 1749.0, 1750.0]
        assert sum(1 for e in log if e[0] == "initial") == 1

    def test_run_past_end(self, config):
        """Running past the end date is rejected."""
        core = Core(config)
        core.add_component(Recorder("land"))
        with pytest.raises(ValueError, match="after the end date"):
            core.run(until=1800)

    def test_spinup_converges(self, config):
        """Spin-up stops once every component has converged."""
        config.do_spinup = True
        core = Core(config)
        land = Recorder("land")
        land.converge_after = 3
        core.add_component(land)
        core.run(until=1746)
        assert land.spinup_steps == 3
        assert not core.in_spinup

    def test_spinup_fails(self, config):
        """Spin-up gives up after max_spinup steps."""
        config.do_spinup = True
        config.max_spinup = 5
        core = Core(config)
        land = Recorder("land")
        land.converge_after = 100
        core.add_component(land)
        with pytest.raises(SpinupError, match="did not converge in 5 steps"):
            core.run()
        assert not core.in_spinup

    def test_reset(self, config):
        """reset goes back to a date already run."""
        log = []
        core = Core(config)
        core.add_component(Recorder("land", log=log))
        core.run()
        core.reset(1747)
        assert log[-1] == ("reset", "land", 1747)
        assert core.current_date == 1747.0
        core.run(until=1748)
        assert log[-1] == ("run", "land", 1748.0)

    def test_reset_out_of_range(self, config):
        """Only dates already run can be reset to."""
        core = Core(config)
        core.add_component(Recorder("land"))
        with pytest.raises(ValueError, match="has not run"):
            core.reset(1745)
        core.run(until=1747)
        with pytest.raises(ValueError, match="valid dates are"):
            core.reset(1749)
