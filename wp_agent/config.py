"""
Configuration loader.
Reads settings from .env file and makes them available to the rest of the app.

Numeric settings are read from the environment each time they are accessed,
so a bad value raises ConfigError where it is used, not when this module is imported.
"""

import os
from dotenv import load_dotenv

from wp_agent.errors import ConfigError

load_dotenv()


def _number_env(name: str, default, cast=int):
    """Read a numeric setting, failing loudly if it is not a number."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


# HTTP settings: wordpress.org serves different markup to bots, so we look like a browser
USER_AGENT = os.getenv(
    "WP_AGENT_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
)

# setting -> (environment variable, default, type)
_NUMERIC_SETTINGS = {
    "REQUEST_TIMEOUT": ("WP_AGENT_REQUEST_TIMEOUT", 15.0, float),
    "REQUEST_DELAY": ("WP_AGENT_REQUEST_DELAY", 1.0, float),
    # Review fetching defaults
    "DEFAULT_MONTHS_BACK": ("WP_AGENT_MONTHS_BACK", 12, int),
    "DEFAULT_MAX_PAGES": ("WP_AGENT_MAX_PAGES", 10, int),
    # Competitor discovery defaults
    "DEFAULT_MAX_COMPETITORS": ("WP_AGENT_MAX_COMPETITORS", 10, int),
    "SEARCH_LIMIT": ("WP_AGENT_SEARCH_LIMIT", 15, int),
}

LOG_LEVEL = os.getenv("WP_AGENT_LOG_LEVEL", "WARNING")

# Reports directory: each plugin gets its own folder, one subfolder per day
REPORTS_DIR = os.getenv(
    "WP_AGENT_REPORTS_DIR",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "reports"),
)


def __getattr__(name):
    if name in _NUMERIC_SETTINGS:
        env_name, default, cast = _NUMERIC_SETTINGS[name]
        return _number_env(env_name, default, cast)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def validate():
    """Read every numeric setting once. Raises ConfigError for the first bad one."""
    for name in _NUMERIC_SETTINGS:
        __getattr__(name)
