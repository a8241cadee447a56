#!/usr/bin/env python3
"""
NovelWeaver - Main Entry Point
Find a webnovel, read its chapters, and download chapter ranges as Markdown

Usage:
    python main.py                                  # Interactive mode
    python main.py "Novel Name"                     # Search, then interactive mode
    python main.py "Novel Name" --range 1-100       # Download a range and exit
    python main.py "Novel Name" -r 1-50 -o ./books  # Choose the output directory
"""

import sys
import argparse
from pathlib import Path

# Ensure we can import from project root
sys.path.insert(0, str(Path(__file__).parent))

import config
from core.errors import NovelWeaverError
from core.logger import (
    setup_logging,
    log_startup_banner,
    log_section,
    log_subsection,
    log_success,
    log_warning,
    log_error,
)
from acquisition.export import ExportCompiler
from acquisition.ranges import parse_range
from acquisition.session import init_session
from interface.cli import init_cli, get_cli
from llm.anthropic_client import init_anthropic_client
from oracle.client import init_oracle_client


def initialize_system(quiet: bool = False) -> bool:
    """
    Initialize all system components.

    Returns:
        True if successful, False otherwise
    """
    setup_logging(
        log_file_path=config.DIAGNOSTIC_LOG_PATH,
        level=config.LOG_LEVEL,
        log_to_file=config.LOG_TO_FILE,
        log_to_console=config.LOG_TO_CONSOLE and not quiet
    )

    log_startup_banner(config.VERSION, config.PROJECT_NAME)

    if not config.ANTHROPIC_API_KEY:
        log_error("ANTHROPIC_API_KEY is not set (add it to your environment or .env file)")
        return False

    print_configuration()

    chat_client = init_anthropic_client(
        api_key=config.ANTHROPIC_API_KEY,
        model=config.ANTHROPIC_MODEL,
        max_tokens=config.ANTHROPIC_MAX_TOKENS,
        timeout=config.ANTHROPIC_TIMEOUT
    )
    oracle = init_oracle_client(
        chat_client=chat_client,
        preferred_sites=config.ORACLE_PREFERRED_SITES,
        web_search_max_uses=config.ORACLE_WEB_SEARCH_MAX_USES,
        temperature=config.ORACLE_TEMPERATURE,
        max_attempts=config.ORACLE_RETRY_MAX_ATTEMPTS,
        initial_delay=config.ORACLE_RETRY_INITIAL_DELAY,
        backoff_multiplier=config.ORACLE_RETRY_BACKOFF_MULTIPLIER,
        min_query_length=config.MANIFEST_MIN_QUERY_LENGTH,
        title_hint_count=config.MANIFEST_TITLE_HINT_COUNT,
        content_sentinel=config.CONTENT_NOT_FOUND_SENTINEL,
    )
    session = init_session(
        oracle=oracle,
        compiler=ExportCompiler(config.EXPORT_GENERATOR_TAG),
        default_chapter_count=config.MANIFEST_DEFAULT_CHAPTER_COUNT,
        fetch_delay=config.BATCH_FETCH_DELAY,
    )
    init_cli(session=session, export_dir=config.EXPORT_DIR)
    return True


def print_configuration() -> None:
    """Print configuration summary."""
    log_section("Configuration", "📡")
    log_subsection(f"Model: {config.ANTHROPIC_MODEL}")
    log_subsection(f"Preferred sites: {', '.join(config.ORACLE_PREFERRED_SITES)}")
    log_subsection(f"Export directory: {config.EXPORT_DIR}")
    log_subsection(f"Diagnostic Log: {config.DIAGNOSTIC_LOG_PATH}")

    log_section("Pacing", "⏱️")
    log_subsection(f"Delay between chapters: {config.BATCH_FETCH_DELAY}s")
    log_subsection(
        f"Rate-limit retries: {config.ORACLE_RETRY_MAX_ATTEMPTS} attempts, "
        f"starting at {config.ORACLE_RETRY_INITIAL_DELAY}s "
        f"(x{config.ORACLE_RETRY_BACKOFF_MULTIPLIER})"
    )


def run_download_mode(query: str, range_text: str) -> int:
    """Search, download one range, and exit."""
    cli = get_cli()
    try:
        start, end = parse_range(range_text)
        manifest = cli.session.search(query)
        log_success(f"Found '{manifest.title}' ({len(manifest)} chapters)")

        result = cli.run_download(start, end)
        cli.report_batch(result, start, end)
    except NovelWeaverError as e:
        log_error(str(e))
        return 1

    if result is None or result.cancelled or result.artifact is None:
        return 1
    return 0


def run_interactive_mode(query: str = "") -> int:
    """Run the interactive CLI, optionally starting with a search."""
    cli = get_cli()
    if query:
        cli.handle_command(f"/search {query}")
    cli.start()
    log_success(f"{config.PROJECT_NAME} shutdown complete")
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="NovelWeaver - Webnovel Chapter Downloader",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "query",
        nargs="?",
        default="",
        help="Novel name to search for"
    )
    parser.add_argument(
        "--range", "-r",
        dest="chapter_range",
        help="Download this chapter range (e.g. 1-100) and exit"
    )
    parser.add_argument(
        "--output", "-o",
        help=f"Directory for exported files (default: {config.EXPORT_DIR})"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only write logs to the diagnostic file"
    )
    args = parser.parse_args()

    if args.output:
        config.EXPORT_DIR = Path(args.output)

    if args.chapter_range and not args.query:
        parser.error("--range requires a novel name")

    try:
        if not initialize_system(quiet=args.quiet):
            log_error("System initialization failed")
            return 1

        if args.chapter_range:
            return run_download_mode(args.query, args.chapter_range)
        return run_interactive_mode(args.query)

    except KeyboardInterrupt:
        log_warning("Interrupted")
        return 130

    except Exception as e:
        log_error(f"Fatal error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
