"""CLI entrypoint for archive crawls."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path
import sys
from typing import Any

from .config import ArchivistConfig, example_config, load_config, resolve_pure_api_key, save_config
from .constants import COLLECTED_LINKS_FILENAME, __version__
from .coordinator import ArchiveCoordinator, ArchiveSummary, CollectionReport
from .errors import ConfigurationError
from .formatting import sanitize_filename
from .storage import read_collected_links
from .types import CrawlSettings, FileNaming, OutputFormat
from .url import is_http_url

DRY_RUN_PREVIEW_LIMIT = 20
DEFAULT_CONFIG_PATH = Path("archivist.config.yaml")
DEFAULT_INTERACTIVE_ARCHIVE = "My Documentation Archive"
DEFAULT_INTERACTIVE_URL = "https://example.com/docs"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="archivist",
        description="Crawl configured web sources and archive their content.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl = subparsers.add_parser("crawl", help="Crawl every archive in a config file.")
    crawl.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to JSON/YAML archivist config.",
    )
    crawl.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output directory. Overrides every archive's output directory.",
    )
    crawl.add_argument(
        "-f",
        "--format",
        type=str,
        choices=[fmt.value for fmt in OutputFormat],
        default=None,
        help="Output format. Overrides every archive's output format.",
    )
    crawl.add_argument(
        "--pure-key",
        type=str,
        default=None,
        help="pure.md API key (falls back to config, then $PURE_API_KEY).",
    )
    crawl.add_argument("-d", "--debug", action="store_true", help="Enable debug logging.")
    crawl.add_argument(
        "--dry-run",
        action="store_true",
        help="Collect and list URLs without crawling them.",
    )
    crawl.add_argument(
        "--no-confirm",
        dest="confirm",
        action="store_false",
        help="Skip the confirmation prompt shown before crawling.",
    )
    crawl.add_argument(
        "--show-all-urls",
        action="store_true",
        help=f"List every collected URL instead of the first {DRY_RUN_PREVIEW_LIMIT}.",
    )
    crawl.add_argument(
        "--clean",
        action="store_true",
        help="Empty output directories before writing.",
    )
    crawl.add_argument("--progress", action="store_true", help="Show a progress bar per archive.")
    crawl.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Also write logs to LOG_DIR/crawl.log.",
    )
    crawl.add_argument(
        "--print-stats-json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )

    init = subparsers.add_parser("init", help="Write an example config file.")
    init.add_argument(
        "--path",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Where to write the config (.yaml, .yml or .json).",
    )
    init.add_argument("--force", action="store_true", help="Overwrite an existing file.")
    init.add_argument(
        "--interactive",
        action="store_true",
        help="Ask for the archive name, URL and output settings.",
    )

    report = subparsers.add_parser("report", help="Summarize collected-links reports from a previous run.")
    report.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Config whose archive output directories hold the reports.",
    )
    report.add_argument(
        "-f",
        "--file",
        type=Path,
        action="append",
        default=None,
        help=f"Read this {COLLECTED_LINKS_FILENAME} instead (repeatable).",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ArchivistConfig:
    config = load_config(args.config)

    if args.output is not None or args.format is not None:
        archives = []
        for archive in config.archives:
            output = archive.output
            if args.output is not None:
                output = replace(output, directory=args.output)
            if args.format is not None:
                output = replace(output, format=OutputFormat(args.format))
            archives.append(replace(archive, output=output))
        config.archives = archives

    if args.debug:
        config.crawl = replace(config.crawl, debug=True)

    config.pure_api_key = resolve_pure_api_key(args.pure_key, config.pure_api_key)
    return config


def setup_logging(log_dir: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "crawl.log", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # urllib3 logs every pooled connection at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def ask(question: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    answer = input(f"{question}{suffix}: ").strip()
    return answer or default


def ask_yes_no(question: str, *, default: bool) -> bool:
    hint = "Y/n" if default else "y/N"
    while True:
        try:
            answer = input(f"{question} [{hint}] ").strip().lower()
        except EOFError:
            return False
        if not answer:
            return default
        if answer in {"y", "yes"}:
            return True
        if answer in {"n", "no"}:
            return False
        print("Please answer y or n.")


def ask_choice(question: str, choices: list[str], default: str) -> str:
    while True:
        answer = ask(f"{question} ({'/'.join(choices)})", default)
        if answer in choices:
            return answer
        print(f"Please choose one of: {', '.join(choices)}")


def interactive_config() -> dict[str, Any]:
    """Build a one-archive config from answers on stdin."""

    name = ask("Archive name", DEFAULT_INTERACTIVE_ARCHIVE)
    url = ask("URL to archive", DEFAULT_INTERACTIVE_URL)
    while not is_http_url(url):
        print("Please enter a valid http(s) URL.")
        url = ask("URL to archive", DEFAULT_INTERACTIVE_URL)
    fmt = ask_choice("Output format", [item.value for item in OutputFormat], OutputFormat.MARKDOWN.value)
    naming = ask_choice("File naming", [item.value for item in FileNaming], FileNaming.URL_BASED.value)
    pure_key = ask("pure.md API key (leave blank to set it later)")

    config: dict[str, Any] = {
        "archives": [
            {
                "name": name,
                "sources": url,
                "output": {
                    "directory": f"./archive/{sanitize_filename(name) or 'archive'}",
                    "format": fmt,
                    "file_naming": naming,
                },
            }
        ],
        "crawl": CrawlSettings().to_json(),
    }
    if pure_key:
        config["pure"] = {"api_key": pure_key}
    return config


def print_collection(reports: list[CollectionReport], *, show_all: bool) -> None:
    total = sum(len(report.urls) for report in reports)
    print(f"\n=== Collected URLs: {total} ===")

    for report in reports:
        print(f"\n--- {report.archive.name} ---")
        for item in report.collected:
            line = f"{item.source.label}: {len(item.urls)} URLs"
            if item.pages_discovered > 1:
                line += f" across {item.pages_discovered} pages"
            if item.error:
                line += f" (error: {item.error})"
            print(line)

        urls = report.urls
        shown = urls if show_all else urls[:DRY_RUN_PREVIEW_LIMIT]
        for url in shown:
            print(f"  {url}")
        if len(shown) < len(urls):
            print(f"  ... and {len(urls) - len(shown)} more (use --show-all-urls)")
        if report.report_path is not None:
            print(f"report: {report.report_path}")


def confirm_crawl(reports: list[CollectionReport], *, show_all: bool, prompt: bool, clean: bool) -> bool:
    print_collection(reports, show_all=show_all)
    if not prompt:
        return True
    if clean:
        print("WARNING: --clean deletes all existing content in the output directories.")
    if ask_yes_no("Do you want to proceed with the crawl?", default=True):
        return True
    print("Crawl cancelled.")
    return False


def print_summary(summaries: list[ArchiveSummary], *, print_stats_json: bool) -> None:
    print("\n=== Crawl Complete ===")
    for summary in summaries:
        print(f"\n--- {summary.name} ---")
        print(f"output_dir: {summary.output_dir}")
        if summary.error:
            print(f"error: {summary.error}")
            continue
        print(f"manifest: {summary.manifest_path}")
        for key in [
            "urls_collected",
            "duplicates_removed",
            "depth_enqueued",
            "pages_ok",
            "extraction_failures",
            "page_failures",
            "duration_seconds",
        ]:
            if key in summary.stats:
                print(f"{key}: {summary.stats[key]}")

        if print_stats_json:
            print(json.dumps(summary.stats, indent=2, sort_keys=True))


def print_report(payloads: list[dict[str, Any]]) -> None:
    print("\n=== Collected Links Summary ===")
    print(f"total_archives: {len(payloads)}")
    print(f"total_urls: {sum(payload.get('summary', {}).get('total_urls', 0) for payload in payloads)}")
    pages = sum(payload.get("summary", {}).get("pagination_pages", 0) for payload in payloads)
    if pages:
        print(f"pagination_pages: {pages}")

    for payload in payloads:
        print(f"\n--- {payload.get('archive')} ---")
        print(f"collected_at: {payload.get('timestamp')}")
        for source in payload.get("sources", []):
            print(f"{source.get('name') or source.get('source')}:")
            print(f"  source: {source.get('source')}")
            print(f"  strategy: {source.get('strategy')}")
            print(f"  url_count: {source.get('url_count', 0)}")
            if source.get("pagination_pages"):
                print(f"  pagination_pages: {source['pagination_pages']}")
            if source.get("error"):
                print(f"  error: {source['error']}")


def run_init(args: argparse.Namespace) -> int:
    path: Path = args.path
    if path.exists() and not args.force:
        logging.error("%s already exists (use --force to overwrite)", path)
        return 1

    if args.interactive:
        try:
            config = interactive_config()
        except (KeyboardInterrupt, EOFError):
            print("\nInit cancelled.")
            return 1
    else:
        config = example_config()

    try:
        save_config(config, path)
    except Exception as exc:
        logging.error("Failed to write config: %s", exc)
        return 2
    print(f"Wrote config to {path}")

    if "pure" not in config:
        print("To use a pure.md API key, add `pure: {api_key: ...}` or set $PURE_API_KEY.")
    print(f"Next: edit {path}, then run `archivist crawl --config {path}`.")
    return 0


def run_report(args: argparse.Namespace) -> int:
    paths: list[Path] = list(args.file or [])
    if not paths:
        try:
            config = load_config(args.config)
        except ConfigurationError as exc:
            logging.error("Failed to load config: %s", exc)
            return 2
        paths = [Path(archive.output.directory) / COLLECTED_LINKS_FILENAME for archive in config.archives]

    payloads = []
    for path in paths:
        try:
            payloads.append(read_collected_links(path))
        except (OSError, ValueError) as exc:
            print(f"No collected links file found at {path} ({exc.__class__.__name__})")

    if not payloads:
        return 1
    print_report(payloads)
    return 0


def run_crawl(args: argparse.Namespace) -> int:
    setup_logging(args.log_dir, verbose=args.debug)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    if config.crawl.debug and not args.debug:
        setup_logging(args.log_dir, verbose=True)

    if not config.pure_api_key:
        logging.warning("No pure.md API key configured; requests are subject to anonymous limits")

    logging.info(
        "Starting archivist %s: archives=%d, sources=%d, concurrency=%d, dry_run=%s",
        __version__,
        len(config.archives),
        config.total_sources,
        config.crawl.max_concurrency,
        args.dry_run,
    )

    prompt = args.confirm and sys.stdin.isatty()

    def confirm(reports: list[CollectionReport]) -> bool:
        return confirm_crawl(reports, show_all=args.show_all_urls, prompt=prompt, clean=args.clean)

    try:
        coordinator = ArchiveCoordinator(
            config,
            clean=args.clean,
            show_progress=args.progress,
        )
        if args.dry_run:
            reports = coordinator.collect()
        else:
            summaries = coordinator.run(confirm=confirm)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1

    if args.dry_run:
        print_collection(reports, show_all=args.show_all_urls)
        print("\nDry run complete. No content was fetched.")
        return 0

    if not summaries:
        return 0
    print_summary(summaries, print_stats_json=args.print_stats_json)
    return 1 if any(summary.error for summary in summaries) else 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "init":
        return run_init(args)
    if args.command == "report":
        return run_report(args)
    return run_crawl(args)


if __name__ == "__main__":
    raise SystemExit(main())
