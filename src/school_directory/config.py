"""
Configuration constants for the school directory.

Runtime settings come from environment variables (optionally loaded from a
.env file by the entry points); everything else is a fixed constant.
"""

import os
from pathlib import Path
from typing import Optional

# =============================================================================
# ENVIRONMENT
# =============================================================================

CSV_SOURCE_ENV = "DIRECTORY_CSV_SOURCE"
DATA_DIR_ENV = "DIRECTORY_DATA_DIR"
CALENDAR_URL_ENV = "DIRECTORY_CALENDAR_URL"
LOG_LEVEL_ENV = "DIRECTORY_LOG_LEVEL"

DEFAULT_DATA_DIR = Path.home() / ".school-directory"
DEFAULT_LOG_LEVEL = "WARNING"


def csv_source() -> Optional[str]:
    """URL or file path of the directory CSV export."""
    return os.getenv(CSV_SOURCE_ENV)


def data_dir() -> Path:
    """Directory holding persisted favorites."""
    value = os.getenv(DATA_DIR_ENV)
    return Path(value).expanduser() if value else DEFAULT_DATA_DIR


def calendar_url() -> Optional[str]:
    return os.getenv(CALENDAR_URL_ENV)


def log_level() -> str:
    return os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()


# =============================================================================
# STORAGE
# =============================================================================

# Keys are shared with existing saved data; do not rename.
FAVORITES_STORAGE_KEY = "school-directory-favorites"


# =============================================================================
# SEARCH
# =============================================================================

SEARCH_RESULT_LIMIT = 10


# =============================================================================
# HTTP
# =============================================================================

HTTP_TIMEOUT = 30.0
USER_AGENT = "SchoolDirectory/0.1.0"
