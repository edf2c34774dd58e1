"""Dispatch table from API shape to mapper adapter."""

import functools
from typing import Callable, Dict, Optional, Type

import structlog

from harvester.scrapers.base import ApiShape, BaseShapeAdapter, HarvestKind, Record


logger = structlog.get_logger(__name__)

Mapper = Callable[[dict, str], Record]


class AdapterFactory:
    """Registry of shape adapters.

    New API variants are supported by registering another adapter class,
    not by adding call sites.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._adapter_registry: Dict[ApiShape, Type[BaseShapeAdapter]] = {}
        self._instances: Dict[ApiShape, BaseShapeAdapter] = {}

    def register_adapter(self, shape: ApiShape, adapter_class: Type[BaseShapeAdapter]) -> None:
        """Register an adapter class for a shape.

        Args:
            shape: API shape the adapter understands
            adapter_class: Adapter class (must inherit from BaseShapeAdapter)
        """
        if not isinstance(adapter_class, type) or not issubclass(adapter_class, BaseShapeAdapter):
            raise ValueError(f"Adapter class must inherit from BaseShapeAdapter: {adapter_class}")

        self._adapter_registry[shape] = adapter_class
        self._instances.pop(shape, None)
        logger.debug("adapter_registered", shape=shape.value, adapter=adapter_class.__name__)

    def get_adapter(self, shape: ApiShape) -> Optional[BaseShapeAdapter]:
        """Adapter instance for a shape, or None if not registered.

        Adapters are stateless, so one instance per shape is reused.
        """
        adapter = self._instances.get(shape)
        if adapter is not None:
            return adapter

        adapter_class = self._adapter_registry.get(shape)
        if not adapter_class:
            logger.warning("adapter_not_found", shape=shape.value)
            return None

        adapter = adapter_class()
        self._instances[shape] = adapter
        return adapter

    def get_mapper(self, shape: ApiShape, kind: HarvestKind) -> Optional[Mapper]:
        """The (raw, origin) -> record function for a shape and harvest kind."""
        adapter = self.get_adapter(shape)
        if adapter is None:
            return None
        return functools.partial(self._map, adapter, kind)

    @staticmethod
    def _map(adapter: BaseShapeAdapter, kind: HarvestKind, raw: dict, origin: str) -> Record:
        return adapter.map(raw, origin, kind)

    def get_registered_shapes(self) -> list[ApiShape]:
        """Get list of registered shapes."""
        return list(self._adapter_registry.keys())


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory, registering the built-in adapters on first use."""
    if not adapter_factory.get_registered_shapes():
        from harvester.scrapers.register_adapters import register_all_adapters

        register_all_adapters(adapter_factory)
    return adapter_factory
