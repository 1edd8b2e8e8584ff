"""Default values shared by config, scheduler, strategies, and writer."""

from __future__ import annotations

__version__ = "0.1.0"

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

DEFAULT_ARCHIVE_NAME = "Default Archive"

DEFAULT_MAX_CONCURRENCY = 3
MIN_MAX_CONCURRENCY = 1
MAX_MAX_CONCURRENCY = 10
DEFAULT_DELAY_SECONDS = 1.0
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = f"Archivist/{__version__}"
DEFAULT_DEBUG = False

MAX_SOURCE_DEPTH = 3
DEFAULT_LINK_SELECTOR = "a[href]"

DEFAULT_START_PAGE = 1
DEFAULT_PAGE_PARAM = "page"
DEFAULT_PATTERN_MAX_PAGES = 10
DEFAULT_NEXT_LINK_MAX_PAGES = 50
PAGE_PLACEHOLDER = "{page}"

PROBE_TIMEOUT_SECONDS = 5.0
PROBE_RETRIES = 1
PROBE_RETRY_DELAY_SECONDS = 1.0

DEFAULT_CONSECUTIVE_EMPTY_PAGES = 3
DEFAULT_MAX_404_ERRORS = 2
DEFAULT_MIN_NEW_LINKS_PER_PAGE = 1
DEFAULT_ERROR_KEYWORDS = (
    "page not found",
    "error 404",
    "404 error",
    "not found",
    "page does not exist",
    "no results found",
    "end of results",
    "no more pages",
    "invalid page",
    "page unavailable",
)
DECLINE_WINDOW = 5
DECLINE_MIN_PAGES = 3
DECLINE_RATIO = 0.8

DEFAULT_OUTPUT_DIRECTORY = "./archive"
DEFAULT_OUTPUT_FORMAT = "markdown"
DEFAULT_FILE_NAMING = "url-based"
MAX_FILENAME_LENGTH = 100
METADATA_FILENAME = "archivist-metadata.json"
COLLECTED_LINKS_FILENAME = "collected-links.json"

PURE_MD_BASE_URL = "https://pure.md"
PURE_API_KEY_ENV = "PURE_API_KEY"
PURE_API_KEY_HEADER = "x-puremd-api-token"

DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}
