"""
NovelWeaver - Configuration
Oracle settings, pacing constants, and paths
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# =============================================================================
# PATHS
# =============================================================================
PROJECT_ROOT = Path(__file__).parent
LOGS_DIR = PROJECT_ROOT / "logs"
EXPORT_DIR = Path(os.getenv("EXPORT_DIR", str(PROJECT_ROOT / "exports")))
DIAGNOSTIC_LOG_PATH = LOGS_DIR / "diagnostic.log"

# =============================================================================
# VERSION
# =============================================================================
VERSION = "0.1.0"
PROJECT_NAME = "NovelWeaver"
EXPORT_GENERATOR_TAG = "NovelWeaver AI"  # Written into every exported document header

# =============================================================================
# ORACLE CONFIGURATION
# =============================================================================
# The oracle is Claude with the server-side web search tool enabled.
# It is asked to locate novels and chapter text on the preferred sites
# and to answer with one JSON object per request.
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5-20250929")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "16000"))  # Chapter bodies are long
ANTHROPIC_TIMEOUT = int(os.getenv("ANTHROPIC_TIMEOUT", "300"))

ORACLE_TEMPERATURE = 0.2
ORACLE_WEB_SEARCH_MAX_USES = int(os.getenv("ORACLE_WEB_SEARCH_MAX_USES", "5"))
ORACLE_PREFERRED_SITES = [
    "readernovel.net",
    "lightnovelpub.org",
    "novelbin.com",
]

# Marker the oracle may return instead of chapter text
CONTENT_NOT_FOUND_SENTINEL = "CONTENT_NOT_FOUND"

# Rate-limit retry policy
# Only rate-limit failures (429 / quota / exhausted) are retried.
# Delays: 2s, then 4s. A third rate-limit failure raises QuotaExceededError.
ORACLE_RETRY_MAX_ATTEMPTS = 3
ORACLE_RETRY_INITIAL_DELAY = 2.0               # Seconds
ORACLE_RETRY_BACKOFF_MULTIPLIER = 2.0

# =============================================================================
# MANIFEST CONFIGURATION
# =============================================================================
MANIFEST_MIN_QUERY_LENGTH = 2
MANIFEST_DEFAULT_CHAPTER_COUNT = 100           # Used when the oracle gives no estimate
MANIFEST_TITLE_HINT_COUNT = 20                 # Chapter titles requested up front

# =============================================================================
# BATCH DOWNLOAD CONFIGURATION
# =============================================================================
BATCH_FETCH_DELAY = 2.0                        # Pause after every chapter fetch (seconds)
BATCH_RANGE_SIZE = 100                         # Chapters per block in the range overview

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = True
LOG_TO_CONSOLE = os.getenv("LOG_TO_CONSOLE", "true").lower() == "true"
