"""
Registry of component classes addressable by configuration section.

Configuration files name components by their section (``simpleNbox``,
``ocean``, ...). Component classes register themselves under that name with
the :func:`register_component` decorator so the builder can instantiate them.

Example:
    >>> from nbox.config.registry import component_registry
    >>> component_registry.get("simpleNbox")
    <class 'nbox.components.simple_nbox.SimpleNbox'>
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from .exceptions import ComponentNotFoundError

__all__ = ["ComponentRegistry", "component_registry", "register_component"]

C = TypeVar("C", bound=type)

# Section that holds run settings rather than a component
CORE_SECTION = "core"


class ComponentRegistry:
    """
    Registry mapping section names to component classes.

    Example:
        >>> registry = ComponentRegistry()
        >>> registry.register("ocean", OceanCarbonBox)
        >>> registry.get("ocean")
        <class 'OceanCarbonBox'>
    """

    def __init__(self) -> None:
        self._registry: dict[str, type] = {}

    def register(self, name: str, component_class: type) -> None:
        """
        Register a component class by section name.

        Parameters
        ----------
        name
            Section name to register.
        component_class
            Class to associate with this name.

        Raises
        ------
        ValueError
            If the name is reserved, or already registered with a different class.
        """
        if name == CORE_SECTION:
            msg = f"Section name '{CORE_SECTION}' is reserved for run settings"
            raise ValueError(msg)
        if name in self._registry and self._registry[name] is not component_class:
            msg = f"Component '{name}' is already registered with a different class"
            raise ValueError(msg)
        self._registry[name] = component_class

    def get(self, name: str) -> type:
        """
        Get a component class by section name.

        Raises
        ------
        ComponentNotFoundError
            If the component is not registered.
        """
        if name not in self._registry:
            raise ComponentNotFoundError(name, self.list())
        return self._registry[name]

    def list(self) -> list[str]:
        """Return the sorted registered section names."""
        return sorted(self._registry.keys())

    def is_registered(self, name: str) -> bool:
        """Check if a section name is registered."""
        return name in self._registry


component_registry = ComponentRegistry()


def register_component(name: str) -> Callable[[C], C]:
    """
    Register a component class via decorator.

    The class gets ``name`` as its section name and is returned unchanged
    otherwise.

    Example:
        >>> @register_component("ocean")
        ... class OceanCarbonBox(CarbonCycleModel):
        ...     ...
    """

    def decorator(cls: C) -> C:
        cls.name = name
        component_registry.register(name, cls)
        return cls

    return decorator
