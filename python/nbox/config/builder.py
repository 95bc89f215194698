"""Construct a ready-to-run core from configuration settings."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from .base import CoreConfig, Setting, SolverConfig
from .exceptions import ValidationError
from .ini import read_ini
from .loader import read_toml
from .registry import component_registry

if TYPE_CHECKING:
    from nbox.core import Core

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_COMPONENTS", "build_core", "load_core"]

# Sections instantiated for every run, in registration order
DEFAULT_COMPONENTS = ("temperature", "ocean", "simpleNbox", "carbon-cycle-solver")


def build_core(
    settings: Iterable[Setting],
    core_config: CoreConfig | None = None,
    solver_config: SolverConfig | None = None,
) -> Core:
    """Build a core with the default components and apply settings.

    Parameters
    ----------
    settings
        Settings to route through :meth:`Core.set_data`, in order
    core_config
        Initial run settings (overridden by ``core`` settings)
    solver_config
        Initial integrator settings (overridden by solver settings)

    Returns
    -------
    Core
        Configured core, not yet prepared
    """
    from nbox import components  # noqa: F401, PLC0415
    from nbox.core import Core  # noqa: PLC0415

    core = Core(core_config)
    for name in DEFAULT_COMPONENTS:
        component_cls = component_registry.get(name)
        if name == "carbon-cycle-solver":
            core.add_component(component_cls(solver_config))
        else:
            core.add_component(component_cls())

    count = 0
    for setting in settings:
        core.set_data(setting.section, setting.name, setting.to_message())
        count += 1
    logger.info(f"Applied {count} settings to run '{core.config.run_name}'")
    return core


def load_core(*paths: str | Path) -> Core:
    """Read configuration file(s) and build a core from them.

    TOML files may be layered (later files override earlier ones). INI files
    are read one at a time.

    Raises
    ------
    ValidationError
        If the file type is not supported or INI files are layered
    """
    if not paths:
        msg = "At least one configuration file is required"
        raise ValidationError(msg)

    suffixes = {Path(p).suffix.lower() for p in paths}
    if suffixes == {".toml"}:
        settings = read_toml(*paths)
    elif suffixes == {".ini"} and len(paths) == 1:
        settings = read_ini(paths[0])
    else:
        msg = f"Unsupported configuration file(s): {', '.join(map(str, paths))}"
        raise ValidationError(msg)
    return build_core(settings)
