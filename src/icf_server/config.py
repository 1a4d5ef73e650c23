"""
Environment-driven settings for the ICF server.
"""

import os
from dataclasses import dataclass, field

from .errors import ConfigurationError
from .who_client import DEFAULT_LANGUAGE, DEFAULT_RELEASE, DEFAULT_TIMEOUT

TRANSPORTS = ("stdio", "sse", "streamable-http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Settings loaded from environment variables"""

    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    release: str = DEFAULT_RELEASE
    language: str = DEFAULT_LANGUAGE
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    transport: str = "stdio"

    @classmethod
    def from_env(cls) -> "Settings":
        raw_timeout = os.environ.get("WHO_ICD_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(
                f"WHO_ICD_TIMEOUT must be a number of seconds, got '{raw_timeout}'"
            ) from None
        if timeout <= 0:
            raise ConfigurationError("WHO_ICD_TIMEOUT must be greater than 0")

        transport = os.environ.get("ICF_TRANSPORT", "stdio").strip().lower()
        if transport not in TRANSPORTS:
            raise ConfigurationError(
                f"ICF_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got '{transport}'"
            )

        log_level = os.environ.get("ICF_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"ICF_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got '{log_level}'"
            )

        return cls(
            client_id=os.environ.get("WHO_ICD_CLIENT_ID") or None,
            client_secret=os.environ.get("WHO_ICD_CLIENT_SECRET") or None,
            release=os.environ.get("WHO_ICD_RELEASE") or DEFAULT_RELEASE,
            language=os.environ.get("WHO_ICD_LANGUAGE") or DEFAULT_LANGUAGE,
            timeout=timeout,
            log_level=log_level,
            transport=transport,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def require_credentials(self) -> None:
        if not self.has_credentials:
            raise ConfigurationError(
                "WHO API credentials not configured. "
                "Set WHO_ICD_CLIENT_ID and WHO_ICD_CLIENT_SECRET environment variables. "
                "Register at https://icd.who.int/icdapi to obtain credentials."
            )
