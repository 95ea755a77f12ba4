"""Nuve platform API integration.

This package provides:
- An async aiohttp client for the platform REST API
- Pydantic models for the payloads the workflow reads
- The exception hierarchy raised while deprovisioning
"""

from nuve_deprovision.platform.exceptions import (
    AuthenticationError,
    ConfigurationError,
    HttpError,
    InstanceNotFoundError,
    NuveError,
    ShutdownTimeoutError,
    describe_error,
)
from nuve_deprovision.platform.http_client import NuvePlatformClient, parse_session_cookie
from nuve_deprovision.platform.models import (
    ApiResponse,
    AuthCheck,
    Credentials,
    Instance,
    InstanceBackup,
    PlatformSession,
)

__all__ = [
    "ApiResponse",
    "AuthCheck",
    "AuthenticationError",
    "ConfigurationError",
    "Credentials",
    "HttpError",
    "Instance",
    "InstanceBackup",
    "InstanceNotFoundError",
    "NuveError",
    "NuvePlatformClient",
    "PlatformSession",
    "ShutdownTimeoutError",
    "describe_error",
    "parse_session_cookie",
]
