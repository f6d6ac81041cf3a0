import logging
import os
from typing import Mapping, NamedTuple, Optional

from dotenv import load_dotenv

from errors import ConfigurationError

# Load .env file if it exists
load_dotenv()

DEFAULT_BASE_URL = "https://api.raindrop.io/rest/v1"
TOKEN_HELP_URL = "https://app.raindrop.io/settings/integrations"


class Config(NamedTuple):
    """Configuration for Raindrop MCP Server"""

    token: str
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30
    log_level: str = "INFO"

    def __repr__(self):
        return (
            f"Config(base_url={self.base_url!r}, "
            f"request_timeout={self.request_timeout!r}, token=<redacted>)"
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build configuration from environment variables

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Config instance

        Raises:
            ConfigurationError: RAINDROP_TOKEN missing or a value is malformed
        """
        if environ is None:
            environ = os.environ

        token = environ.get("RAINDROP_TOKEN", "").strip()
        if not token:
            raise ConfigurationError(
                "RAINDROP_TOKEN environment variable is required\n"
                f"Get your test token from: {TOKEN_HELP_URL}"
            )

        raw_timeout = environ.get("REQUEST_TIMEOUT", "30")
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
            )
        if timeout <= 0:
            raise ConfigurationError("REQUEST_TIMEOUT must be positive")

        log_level = environ.get("LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"LOG_LEVEL is not a logging level: {log_level!r}")

        base_url = environ.get("RAINDROP_BASE_URL") or DEFAULT_BASE_URL

        return cls(
            token=token,
            base_url=base_url.rstrip("/"),
            request_timeout=timeout,
            log_level=log_level,
        )
