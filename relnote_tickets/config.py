"""
Environment configuration, tracker credentials, and logging setup.
"""
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from relnote_tickets.errors import ConfigurationError
from relnote_tickets.models.enums import Tracker
from relnote_tickets.models.tracker import TrackerInstance

# Load environment variables from .env file at module import time
load_dotenv()

# Environment variables that hold the API key of each tracker
API_KEY_VARS = {
    Tracker.BUGZILLA: "BZ_API_KEY",
    Tracker.JIRA: "JIRA_API_KEY",
}

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Tracker credentials, used when the trackers file has no api_key
    bz_api_key: Optional[str] = None
    jira_api_key: Optional[str] = None

    # HTTP request timeout in seconds
    tracker_timeout: int = 90
    # Number of keys or search results in a single Jira request.
    # Larger requests hit the maximum request size of some Jira instances.
    jira_chunk_size: int = 30

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


def resolve_api_key(
    tracker: Tracker,
    instance: TrackerInstance,
    settings: Optional[Settings] = None
) -> str:
    """
    Find the API key for a tracker.

    The key in the trackers configuration file takes precedence over the environment.

    Args:
        tracker: The tracker that needs a key
        instance: The configured tracker instance
        settings: Settings to read the environment fallback from (default: fresh Settings())

    Returns:
        The API key

    Raises:
        ConfigurationError: If neither the configuration nor the environment provide a key
    """
    if instance.api_key:
        return instance.api_key

    settings = settings or Settings()
    var_name = API_KEY_VARS[tracker]
    api_key = getattr(settings, var_name.lower(), None)
    if not api_key:
        raise ConfigurationError(
            f"No API key is configured for {tracker}. "
            f"Set the {var_name} environment variable or the api_key option in the trackers file."
        )
    return api_key


def configure_logging(verbose: int = 0, settings: Optional[Settings] = None) -> None:
    """
    Configure the root logger for command-line use.

    Args:
        verbose: Number of --verbose flags; any value above zero enables debug messages
        settings: Settings providing the default log level
    """
    if verbose > 0:
        level = logging.DEBUG
    else:
        settings = settings or Settings()
        level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # Every request would otherwise log its connection details at debug level
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
