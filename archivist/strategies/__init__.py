"""Source discovery strategies."""

from .base import PageLinks, SourceStrategy, StrategyContext, StrategyResult
from .explorer import ExplorerStrategy
from .pagination import PaginationMode, PaginationStrategy, build_page_url, resolve_mode
from .registry import get_strategy, register_strategy, registered_strategies

__all__ = [
    "ExplorerStrategy",
    "PageLinks",
    "PaginationMode",
    "PaginationStrategy",
    "SourceStrategy",
    "StrategyContext",
    "StrategyResult",
    "build_page_url",
    "get_strategy",
    "register_strategy",
    "registered_strategies",
    "resolve_mode",
]
