"""Single-page link harvesting."""

from __future__ import annotations

from ..errors import FetchError
from ..types import Source, StrategyName
from .base import SourceStrategy, StrategyContext, StrategyResult


class ExplorerStrategy(SourceStrategy):
    """Fetch the seed page once and return every content link on it."""

    name = StrategyName.EXPLORER.value

    def execute(self, seed_url: str, source: Source, context: StrategyContext) -> StrategyResult:
        page = self.fetch_page(seed_url, source, context)
        if not page.fetch.ok:
            raise FetchError(
                f"Explorer could not fetch {seed_url}: "
                f"{page.fetch.error or f'HTTP {page.fetch.status_code}'}"
            )
        return StrategyResult(urls=tuple(page.links), pages=(seed_url,))


__all__ = ["ExplorerStrategy"]
