"""Name-keyed lookup of source strategies."""

from __future__ import annotations

import threading

from ..errors import UnknownStrategyError
from .base import SourceStrategy
from .explorer import ExplorerStrategy
from .pagination import PaginationStrategy

_REGISTRY_LOCK = threading.Lock()
_REGISTRY: dict[str, SourceStrategy] = {
    ExplorerStrategy.name: ExplorerStrategy(),
    PaginationStrategy.name: PaginationStrategy(),
}


def get_strategy(name: str | None) -> SourceStrategy:
    """Return the strategy registered under `name` (explorer when unset)."""

    key = (name or ExplorerStrategy.name).strip().lower()
    with _REGISTRY_LOCK:
        strategy = _REGISTRY.get(key)
    if strategy is None:
        raise UnknownStrategyError(key)
    return strategy


def register_strategy(name: str, strategy: SourceStrategy) -> None:
    """Register or replace the strategy used for `name`."""

    key = name.strip().lower()
    if not key:
        raise ValueError("Strategy name cannot be empty")
    with _REGISTRY_LOCK:
        _REGISTRY[key] = strategy


def registered_strategies() -> list[str]:
    with _REGISTRY_LOCK:
        return sorted(_REGISTRY)


__all__ = ["get_strategy", "register_strategy", "registered_strategies"]
