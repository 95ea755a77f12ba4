"""Constants used throughout nuve-deprovision.

This module contains application constants that do not depend on runtime
configuration or environment variables. For environment-based configuration,
see the config module.
"""

from typing import Final

# =============================================================================
# Nuve Platform API
# =============================================================================

NUVE_API_BASE_URL: Final[str] = "https://app.nuveplatform.com/api"
"""Base URL of the Nuve platform REST API."""

LOGIN_PATH: Final[str] = "/auth/login"
"""Login endpoint. Request bodies sent here are never logged."""

AUTH_CHECK_PATH: Final[str] = "/auth/check"
"""Identity check endpoint returning the account name and slug."""

INSTANCES_PATH_TEMPLATE: Final[str] = "/organizations/{slug}/instances"
"""Instance collection of an account."""

INSTANCE_PATH_TEMPLATE: Final[str] = "/organizations/{slug}/instances/{instance_id}"
"""Single instance of an account."""

DEFAULT_REQUEST_TIMEOUT: Final[float] = 30.0
"""Total timeout in seconds for a single HTTP exchange."""

# =============================================================================
# Shutdown Polling
# =============================================================================

POLL_INTERVAL_SECONDS: Final[int] = 60
"""Interval in seconds between instance listing polls after deletion."""

DEFAULT_SHUTDOWN_TIMEOUT: Final[int] = 600
"""Default number of seconds to wait for an instance to disappear."""

# =============================================================================
# Secret Handling
# =============================================================================

SENSITIVE_KEYS: Final[tuple[str, ...]] = (
    "password",
    "token",
    "secret",
    "cookie",
    "credential",
    "api_key",
    "access_token",
)
"""Payload keys whose values are redacted before being logged."""

REDACTED: Final[str] = "[REDACTED]"
"""Replacement for values of sensitive payload keys."""

SECRET_MASK: Final[str] = "***"
"""Replacement for registered secret values found in log messages."""
