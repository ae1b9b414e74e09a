"""Registry of reindexable indexes and their coalescing options.

Producers only need an index's strategy config; workers also need its
invoker. Unregistered indexes get default options on the producer side
and raise UnknownIndex on the worker side.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import IndexStrategyConfig, Settings, settings
from ..exceptions import UnknownIndex
from .contracts import ReindexInvoker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredIndex:
    """An index the worker knows how to reindex."""

    name: str
    invoker: ReindexInvoker
    config: IndexStrategyConfig


class IndexRegistry:
    """Maps index names to invokers and per-index strategy config."""

    def __init__(self, source: Optional[Settings] = None) -> None:
        self._settings = source or settings
        self._indexes: Dict[str, RegisteredIndex] = {}

    def register(
        self,
        name: str,
        invoker: ReindexInvoker,
        config: Optional[IndexStrategyConfig] = None,
        **overrides: Any,
    ) -> RegisteredIndex:
        """
        Register (or replace) an index.

        Args:
            name: Index identifier used by postpone() and the worker
            invoker: Performs the actual reindex for this index
            config: Full strategy config; built from settings if omitted
            **overrides: IndexStrategyConfig fields applied over settings
                (latency, margin, ttl, refresh_suppressed, reindex_wrapper)

        Returns:
            The registered entry
        """
        if not name:
            raise ValueError("Index name must not be empty")
        if config is None:
            config = IndexStrategyConfig.from_settings(self._settings, **overrides)
        entry = RegisteredIndex(name=name, invoker=invoker, config=config)
        self._indexes[name] = entry
        logger.debug(
            f"Registered index {name}: latency={config.latency}s, margin={config.margin}s"
        )
        return entry

    def get(self, name: str) -> RegisteredIndex:
        try:
            return self._indexes[name]
        except KeyError:
            raise UnknownIndex(name) from None

    def config_for(self, name: str) -> IndexStrategyConfig:
        """Strategy config for an index, falling back to global defaults."""
        entry = self._indexes.get(name)
        if entry is not None:
            return entry.config
        return IndexStrategyConfig.from_settings(self._settings)

    def names(self) -> list[str]:
        return sorted(self._indexes)

    def clear(self) -> None:
        """Forget all registered indexes. Used for testing."""
        self._indexes.clear()


# Global registry, populated by the module named in settings.reindex_index_module
index_registry = IndexRegistry()
