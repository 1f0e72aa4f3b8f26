"""
Application settings management.
Uses python-dotenv to load environment variables from .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

# Store original environment values to prevent modification
_ENV_CACHE = {}


def get_setting(key: str, default=None):
    """
    Get a setting from environment variables.

    Values are cached on first read, so later changes to the process
    environment do not leak into a running import.

    Args:
        key: Environment variable name
        default: Default value if not found

    Returns:
        The environment variable value or default

    Example:
        >>> DATABASE_PATH = get_setting('DATABASE_PATH', 'data/backlinks.db')
        >>> DEBUG = get_setting('DEBUG', 'False') == 'True'
    """
    if key not in _ENV_CACHE:
        _ENV_CACHE[key] = os.getenv(key, default)

    value = _ENV_CACHE[key]

    # For mutable types, return a copy
    if isinstance(value, (list, dict)):
        return value.copy()

    return value


# Debug mode
DEBUG = get_setting('DEBUG', 'False').lower() in ('true', '1', 'yes')

# Database paths
DATABASE_PATH = get_setting('DATABASE_PATH', 'data/backlinks.db')
LOGS_DB_PATH = get_setting('LOGS_DB_PATH', 'data/import_logs.db')

# Import tuning
IMPORT_BATCH_SIZE = int(get_setting('IMPORT_BATCH_SIZE', '2000'))

# Default trailing window for trend output ('all' or a number of days)
DEFAULT_TREND_RANGE = get_setting('DEFAULT_TREND_RANGE', '180')
