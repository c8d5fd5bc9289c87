"""
Subject registry: maps the subject type named in a compute job back to its
controller (and through it, to the loader and calculation).
"""

from collections.abc import Iterator

from reactive_cache.caching.controller import ReactiveCacheController
from reactive_cache.core.exceptions import ConfigurationError, SubjectTypeNotFoundError


class SubjectRegistry:
    def __init__(self):
        self._controllers: dict[str, ReactiveCacheController] = {}

    def register(self, controller: ReactiveCacheController) -> ReactiveCacheController:
        """
        Raises:
            ConfigurationError: If a subject type with the same name exists
        """
        if controller.name in self._controllers:
            raise ConfigurationError(
                f"Subject type '{controller.name}' is already registered"
            )
        self._controllers[controller.name] = controller
        return controller

    def get(self, name: str) -> ReactiveCacheController:
        try:
            return self._controllers[name]
        except KeyError as e:
            raise SubjectTypeNotFoundError(
                f"Unknown subject type '{name}'",
                details={"registered": sorted(self._controllers)},
            ) from e

    def names(self) -> list[str]:
        return sorted(self._controllers)

    def __contains__(self, name: str) -> bool:
        return name in self._controllers

    def __iter__(self) -> Iterator[ReactiveCacheController]:
        return iter(self._controllers.values())

    def __len__(self) -> int:
        return len(self._controllers)
