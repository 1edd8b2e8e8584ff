"""Archivist: config-driven web archiving with pluggable source discovery."""

from .config import ArchivistConfig, load_config, resolve_pure_api_key, save_config
from .constants import __version__
from .coordinator import ArchiveCoordinator, ArchiveSummary, CollectionReport
from .errors import (
    ArchivistError,
    ConfigurationError,
    ContentExtractionError,
    FetchError,
    PaginationConfigError,
    RateLimitError,
    UnknownStrategyError,
)
from .extractor import ContentExtractor, PureMdClient, parse_markdown_content
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier, FrontierItem
from .patterns import filter_urls, is_regex_pattern, matches_pattern, should_include
from .scheduler import ArchiveCrawl, CrawlScheduler
from .stats import CrawlStats, StatsCollector
from .stop_detector import PaginationStopDetector, StopVerdict
from .storage import ResultWriter
from .strategies import (
    ExplorerStrategy,
    PaginationStrategy,
    SourceStrategy,
    StrategyContext,
    StrategyResult,
    get_strategy,
    register_strategy,
)
from .types import (
    Archive,
    CollectedUrls,
    CrawlResult,
    CrawlSettings,
    FetchResult,
    FileNaming,
    OutputConfig,
    OutputFormat,
    PaginationConfig,
    Source,
    StopConditions,
    StrategyName,
    utc_now_iso,
)
from .url import extract_links_from_html, normalize_url, relative_depth, resolve_url

__all__ = [
    "Archive",
    "ArchiveCoordinator",
    "ArchiveCrawl",
    "ArchiveSummary",
    "ArchivistConfig",
    "ArchivistError",
    "CollectedUrls",
    "CollectionReport",
    "ConfigurationError",
    "ContentExtractionError",
    "ContentExtractor",
    "CrawlResult",
    "CrawlScheduler",
    "CrawlSettings",
    "CrawlStats",
    "EnqueueResult",
    "EnqueueStatus",
    "ExplorerStrategy",
    "FetchError",
    "FetchResult",
    "Fetcher",
    "FileNaming",
    "Frontier",
    "FrontierItem",
    "OutputConfig",
    "OutputFormat",
    "PaginationConfig",
    "PaginationConfigError",
    "PaginationStopDetector",
    "PaginationStrategy",
    "PureMdClient",
    "RateLimitError",
    "ResultWriter",
    "Source",
    "SourceStrategy",
    "StatsCollector",
    "StopConditions",
    "StopVerdict",
    "StrategyContext",
    "StrategyName",
    "StrategyResult",
    "UnknownStrategyError",
    "__version__",
    "extract_links_from_html",
    "filter_urls",
    "get_strategy",
    "is_regex_pattern",
    "load_config",
    "matches_pattern",
    "normalize_url",
    "parse_markdown_content",
    "register_strategy",
    "relative_depth",
    "resolve_pure_api_key",
    "resolve_url",
    "save_config",
    "should_include",
    "utc_now_iso",
]
