"""Action settings and configuration management.

This module provides Pydantic-based settings loaded from the environment.
The GitHub Actions runner exposes every action input ``x`` as an
``INPUT_X`` environment variable, so the four action inputs are read from
``INPUT_*`` variables while tuning knobs use a ``NUVE_`` prefix.
Only those prefixed names and the runner's own variables are read; plain
names such as ``TIMEOUT`` or ``API_BASE_URL`` set elsewhere in a job are
ignored.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nuve_deprovision.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SHUTDOWN_TIMEOUT,
    NUVE_API_BASE_URL,
    POLL_INTERVAL_SECONDS,
)
from nuve_deprovision.platform.exceptions import ConfigurationError
from nuve_deprovision.platform.models import Credentials

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Action settings loaded from environment variables.

    Example:
        >>> import os
        >>> os.environ.update(
        ...     INPUT_EMAIL="ci@example.com",
        ...     INPUT_PASSWORD="hunter2",
        ...     INPUT_INSTANCENAME="qa-s4h",
        ...     INPUT_TIMEOUT="900",
        ... )
        >>> settings = Settings()
        >>> settings.timeout
        900
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        str_strip_whitespace=True,
    )

    # =========================================================================
    # Action Inputs
    # =========================================================================

    email: str = Field(
        ...,
        min_length=1,
        validation_alias="INPUT_EMAIL",
        description="Nuve platform login email",
    )

    password: SecretStr = Field(
        ...,
        validation_alias="INPUT_PASSWORD",
        description="Nuve platform login password",
    )

    instance_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("INPUT_INSTANCENAME", "INPUT_INSTANCE_NAME"),
        description="Display name of the instance to deprovision",
    )

    timeout: int = Field(
        default=DEFAULT_SHUTDOWN_TIMEOUT,
        ge=0,
        validation_alias="INPUT_TIMEOUT",
        description="Seconds to wait for the instance to disappear after deletion",
    )

    # =========================================================================
    # Platform Client Configuration
    # =========================================================================

    api_base_url: str = Field(
        default=NUVE_API_BASE_URL,
        validation_alias="NUVE_API_BASE_URL",
        description="Base URL of the Nuve platform API",
    )

    poll_interval: int = Field(
        default=POLL_INTERVAL_SECONDS,
        ge=1,
        le=3600,
        validation_alias="NUVE_POLL_INTERVAL",
        description="Seconds between instance listing polls",
    )

    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        ge=1.0,
        le=600.0,
        validation_alias="NUVE_REQUEST_TIMEOUT",
        description="Total timeout in seconds for a single HTTP request",
    )

    # =========================================================================
    # Logging & Runner Environment
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        validation_alias="NUVE_LOG_LEVEL",
        description="Log level outside GitHub Actions",
    )

    github_actions: bool = Field(
        default=False,
        validation_alias="GITHUB_ACTIONS",
        description="Set by the runner when executing inside GitHub Actions",
    )

    runner_debug: bool = Field(
        default=False,
        validation_alias="RUNNER_DEBUG",
        description="Set by the runner when step debug logging is enabled",
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: SecretStr) -> SecretStr:
        """Reject an empty password.

        Args:
            v: The password value.

        Returns:
            The validated password.

        Raises:
            ValueError: If the password is empty or whitespace.
        """
        if not v.get_secret_value().strip():
            raise ValueError("password must not be empty")
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        return v.rstrip("/")

    @property
    def credentials(self) -> Credentials:
        """Login credentials built from the email and password inputs."""
        return Credentials(email=self.email, password=self.password)

    @property
    def effective_log_level(self) -> str:
        """Log level honoring the runner's step debug switch."""
        return "DEBUG" if self.runner_debug else self.log_level


@lru_cache
def get_settings() -> Settings:
    """Get cached action settings.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If an input is missing or invalid, for example
            a non-numeric timeout.
    """
    try:
        return Settings()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in e.errors()
        )
        logger.debug(f"Settings validation failed with {e.error_count()} error(s)")
        raise ConfigurationError(f"Invalid action inputs: {problems}") from e
