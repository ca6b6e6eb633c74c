"""
Backend registry.

Hosts create a BackendRegistry and register the backends they want
explicitly; importing a backend module registers nothing.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class BackendOption:
    name: str
    help: str = ""


@dataclass
class BackendInfo:
    name: str
    description: str
    new_fs: Callable[..., Any]
    options: list[BackendOption] = field(default_factory=list)


class BackendRegistry:
    """Name -> BackendInfo mapping owned by the host application."""

    def __init__(self):
        self._backends: dict[str, BackendInfo] = {}

    def register(self, info: BackendInfo) -> None:
        """
        Add a backend.

        Raises:
            ValueError: If a backend with the same name is already registered.
        """
        if info.name in self._backends:
            raise ValueError(f"Backend already registered: {info.name}")
        self._backends[info.name] = info
        logger.debug("Registered backend '%s'", info.name)

    def get(self, name: str) -> BackendInfo:
        """
        Raises:
            KeyError: If no backend has that name.
        """
        try:
            return self._backends[name]
        except KeyError:
            raise KeyError(f"Unknown backend: {name}") from None

    def names(self) -> list[str]:
        return sorted(self._backends)

    def __contains__(self, name: str) -> bool:
        return name in self._backends
