"""
The core: component registry, message bus and run loop.

Components register the data they provide (capabilities), the data they need
(dependencies) and the data they accept from other components (inputs). The
core uses this to route messages and to order components before a run.

Example
-------
>>> from nbox.config import load_core
>>> core = load_core("configs/nbox_default.toml")
>>> core.run(until=2000)
>>> core.get_data("Ca", 2000)
"""

from __future__ import annotations

import graphlib
import logging
from collections.abc import Iterator

from nbox.components.base import Component
from nbox.config.base import CoreConfig
from nbox.config.exceptions import ComponentNotFoundError, ValidationError
from nbox.config.registry import CORE_SECTION
from nbox.datum import Datum
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

logger = logging.getLogger(__name__)

__all__ = ["Core"]

BIOME_SEPARATOR = "."


def _bare_name(datum: str) -> str:
    """Strip a biome qualifier from a variable name."""
    return datum.rsplit(BIOME_SEPARATOR, 1)[-1]


class Core:
    """
    Registry, message bus and driver for a set of components.

    Parameters
    ----------
    config
        Run settings. A default :class:`~nbox.config.base.CoreConfig` is
        used when omitted.
    """

    def __init__(self, config: CoreConfig | None = None) -> None:
        self.config = config if config is not None else CoreConfig()
        self._components: dict[str, Component] = {}
        self._capabilities: dict[str, str] = {}
        self._dependencies: dict[str, set[str]] = {}
        self._inputs: dict[str, list[str]] = {}
        self._ordered: list[Component] = []

        self.prepared = False
        self.initialized = False
        self.running = False
        self.in_spinup = False
        self.current_date: float | None = None

    # Registration

    def add_component(self, component: Component) -> None:
        """
        Attach a component and let it register with the core.

        Raises
        ------
        ValueError
            If a component with the same name is already attached
        RegistryFrozenError
            If the core has already been prepared
        """
        self._check_not_frozen()
        if component.name in self._components:
            msg = f"Component '{component.name}' is already attached"
            raise ValueError(msg)
        self._components[component.name] = component
        self._dependencies.setdefault(component.name, set())
        component.init(self)
        logger.debug(f"Added component '{component.name}'")

    def register_capability(self, datum: str, component_name: str) -> None:
        """
        Record that ``component_name`` provides ``datum``.

        Raises
        ------
        DuplicateCapabilityError
            If another component already provides ``datum``
        """
        self._check_not_frozen()
        owner = self._capabilities.get(datum)
        if owner is not None and owner != component_name:
            msg = (
                f"Capability '{datum}' of '{component_name}' is already "
                f"provided by '{owner}'"
            )
            raise DuplicateCapabilityError(msg)
        self._capabilities[datum] = component_name

    def register_dependency(self, datum: str, component_name: str) -> None:
        """Record that ``component_name`` needs ``datum`` from another component."""
        self._check_not_frozen()
        self._dependencies.setdefault(component_name, set()).add(datum)

    def register_input(self, datum: str, component_name: str) -> None:
        """Record that ``component_name`` accepts ``datum`` via SET_DATA messages."""
        self._check_not_frozen()
        accepting = self._inputs.setdefault(datum, [])
        if component_name not in accepting:
            accepting.append(component_name)

    def _check_not_frozen(self) -> None:
        if self.prepared:
            msg = "The component registry cannot change after prepare_to_run"
            raise RegistryFrozenError(msg)

    # Lookup

    def components(self) -> Iterator[Component]:
        """Iterate over attached components in run order (or attachment order)."""
        yield from (self._ordered if self.prepared else self._components.values())

    def get_component(self, name: str) -> Component:
        """
        Return the component attached under ``name``.

        Raises
        ------
        ComponentNotFoundError
            If no such component is attached
        """
        try:
            return self._components[name]
        except KeyError:
            raise ComponentNotFoundError(name, list(self._components)) from None

    def get_component_by_capability(self, datum: str) -> Component:
        """
        Return the component providing ``datum``.

        Raises
        ------
        UnknownDatumError
            If no component provides ``datum``
        """
        name = self._capabilities.get(_bare_name(datum))
        if name is None:
            msg = f"No component provides '{datum}'"
            raise UnknownDatumError(msg)
        return self._components[name]

    def check_capability(self, datum: str) -> bool:
        """Check whether any component provides ``datum``."""
        return _bare_name(datum) in self._capabilities

    # Message bus

    def send_message(
        self, kind: MessageKind, datum: str, info: MessageData | None = None
    ) -> UnitVal | None:
        """
        Route a message to the component responsible for ``datum``.

        ``GET_DATA`` goes to the provider of ``datum``. ``SET_DATA`` goes to
        every component that registered ``datum`` as an input, or else to its
        provider. ``DUMP_TO_DEEP_OCEAN`` goes to the provider of ``ocean_c``.

        Raises
        ------
        UnknownDatumError
            If nobody handles ``datum``
        """
        info = info if info is not None else MessageData()

        if kind == MessageKind.GET_DATA:
            return self.get_component_by_capability(datum).send_message(
                kind, datum, info
            )

        if kind == MessageKind.SET_DATA:
            accepting = self._inputs.get(_bare_name(datum))
            if accepting:
                for name in accepting:
                    self._components[name].send_message(kind, datum, info)
            else:
                self.get_component_by_capability(datum).send_message(kind, datum, info)
            return None

        if kind == MessageKind.DUMP_TO_DEEP_OCEAN:
            return self.get_component_by_capability(Datum.OCEAN_C).send_message(
                kind, datum, info
            )

        msg = f"Unknown message kind '{kind}'"
        raise NboxError(msg)

    def get_data(self, datum: str, date: float | None = None) -> UnitVal:
        """Shorthand for a ``GET_DATA`` message."""
        result = self.send_message(MessageKind.GET_DATA, datum, MessageData(date=date))
        if result is None:
            msg = f"Provider of '{datum}' returned no value"
            raise NboxError(msg)
        return result

    def set_data(self, section: str, name: str, data: MessageData) -> None:
        """
        Apply one configuration setting.

        Settings in the ``core`` section change run settings. ``enabled`` and
        ``output`` are accepted for every section; everything else is passed
        to the named component.

        Raises
        ------
        ComponentNotFoundError
            If ``section`` names no attached component
        """
        if section == CORE_SECTION:
            self._set_core_data(name, data)
            return

        component = self.get_component(section)
        if name == Datum.ENABLED:
            component.enabled = data.get_bool()
        elif name == Datum.OUTPUT:
            component.output_enabled = data.get_bool()
        else:
            component.set_data(name, data)

    def _set_core_data(self, name: str, data: MessageData) -> None:
        try:
            match name:
                case Datum.RUN_NAME:
                    self.config.run_name = data.get_str()
                case Datum.START_DATE:
                    self.config.start_date = data.get_unitval(Unit.UNITLESS).value
                case Datum.END_DATE:
                    self.config.end_date = data.get_unitval(Unit.UNITLESS).value
                case Datum.DO_SPINUP:
                    self.config.do_spinup = data.get_bool()
                case Datum.MAX_SPINUP:
                    self.config.max_spinup = int(data.get_unitval(Unit.UNITLESS).value)
                case Datum.ENABLED | Datum.OUTPUT:
                    pass
                case _:
                    msg = f"Unknown core setting '{name}'"
                    raise ValidationError(msg)
        except NboxError as err:
            raise err.rewrap(f"Could not parse var: {name}") from err

    # Run loop

    def prepare_to_run(self) -> None:
        """
        Order components by their dependencies and prepare each of them.

        Raises
        ------
        CircularDependencyError
            If the dependencies form a cycle
        UnknownDatumError
            If an enabled component depends on data nobody (enabled) provides
        """
        self.config.check()

        enabled = [c for c in self._components.values() if c.enabled]
        names = {c.name for c in enabled}
        position = {name: i for i, name in enumerate(self._components)}

        sorter: graphlib.TopologicalSorter[str] = graphlib.TopologicalSorter()
        for component in enabled:
            sorter.add(component.name)
            for datum in sorted(self._dependencies.get(component.name, ())):
                provider = self._capabilities.get(datum)
                if provider is None or provider not in names:
                    msg = (
                        f"Component '{component.name}' depends on '{datum}', "
                        "which no enabled component provides"
                    )
                    raise UnknownDatumError(msg)
                if provider != component.name:
                    sorter.add(component.name, provider)

        order: list[str] = []
        try:
            sorter.prepare()
        except graphlib.CycleError as err:
            msg = f"Circular component dependency: {' -> '.join(err.args[1])}"
            raise CircularDependencyError(msg) from err
        while sorter.is_active():
            ready = sorted(sorter.get_ready(), key=position.__getitem__)
            order.extend(ready)
            sorter.done(*ready)

        self._ordered = [self._components[name] for name in order]
        logger.debug(f"Component order: {', '.join(order)}")

        for component in self._ordered:
            component.prepare_to_run()
        self.prepared = True

    def _spinup(self) -> None:
        logger.info(f"Spinning up (at most {self.config.max_spinup} steps)")
        self.in_spinup = True
        try:
            for step in range(1, self.config.max_spinup + 1):
                results = [c.run_spinup(step) for c in self._ordered]
                if all(results):
                    logger.info(f"Spin-up converged after {step} steps")
                    return
        finally:
            self.in_spinup = False

        msg = f"Spin-up did not converge in {self.config.max_spinup} steps"
        raise SpinupError(msg)

    def run(self, until: float | None = None) -> None:
        """
        Run the model in annual steps up to ``until`` (default: end date).

        The first call prepares the components, spins up when requested and
        records the initial state at the start date. Later calls continue
        from the last date reached.

        Raises
        ------
        ValueError
            If ``until`` is after the configured end date
        """
        if not self.prepared:
            self.prepare_to_run()

        end = self.config.end_date if until is None else float(until)
        if end > self.config.end_date:
            msg = f"Cannot run to {end}, after the end date {self.config.end_date}"
            raise ValueError(msg)

        if not self.initialized:
            if self.config.do_spinup:
                self._spinup()
            start = self.config.start_date
            for component in self._ordered:
                component.record_initial_state(start)
            self.current_date = start
            self.initialized = True

        if self.current_date is None:
            msg = "Core has no current date after initialization"
            raise NboxError(msg)
        logger.info(
            f"Running '{self.config.run_name}' from {self.current_date} to {end}"
        )
        self.running = True
        try:
            date = self.current_date + 1.0
            while date <= end:
                for component in self._ordered:
                    component.run(date)
                self.current_date = date
                date += 1.0
        finally:
            self.running = False

    def reset(self, date: float) -> None:
        """
        Restore every component to its state at ``date``.

        Raises
        ------
        ValueError
            If the model has not run yet, or ``date`` is outside the range
            already run
        """
        if not self.initialized or self.current_date is None:
            msg = "Cannot reset a model that has not run"
            raise ValueError(msg)
        if not self.config.start_date <= date <= self.current_date:
            msg = (
                f"Cannot reset to {date}: valid dates are {self.config.start_date} "
                f"to {self.current_date}"
            )
            raise ValueError(msg)

        for component in self._ordered:
            component.reset(date)
        self.current_date = float(date)
        logger.info(f"Reset to {date}")

    def shut_down(self) -> None:
        """Shut down every component."""
        for component in self.components():
            component.shut_down()
