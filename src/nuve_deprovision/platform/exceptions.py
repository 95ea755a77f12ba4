"""Nuve platform and deprovisioning exceptions.

This module defines the exception hierarchy raised while deprovisioning an
instance, plus the helper that turns any of them into the single message
reported to the CI log.

Example:
    Report a failed run::

        from nuve_deprovision.platform.exceptions import NuveError, describe_error

        try:
            await workflow.run(credentials)
        except NuveError as e:
            logger.error(describe_error(e))
"""

from typing import Any


class NuveError(Exception):
    """Base exception for all deprovisioning errors.

    Example:
        >>> try:
        ...     raise NuveError("Something went wrong")
        ... except NuveError as e:
        ...     print(f"Deprovisioning failed: {e}")
        Deprovisioning failed: Something went wrong
    """


class ConfigurationError(NuveError):
    """Raised when the action inputs are missing or invalid.

    Raised before any network call, for example when the timeout input is
    not an integer.
    """


class AuthenticationError(NuveError):
    """Raised when login does not yield a usable session cookie.

    Example:
        >>> raise AuthenticationError("Couldn't set Cookie header: authorization failed.")
        Traceback (most recent call last):
        ...
        AuthenticationError: Couldn't set Cookie header: authorization failed.
    """


class InstanceNotFoundError(NuveError):
    """Raised when no instance in the account matches the requested name."""

    def __init__(self, instance_name: str) -> None:
        super().__init__(f"Instance not found: {instance_name}")
        self.instance_name = instance_name


class ShutdownTimeoutError(NuveError):
    """Raised when the instance is still listed after the shutdown deadline."""

    def __init__(self, timeout: int, instance_id: int | None = None) -> None:
        super().__init__(f"Waiting for instance shutdown timed out after {timeout} seconds.")
        self.timeout = timeout
        self.instance_id = instance_id


class HttpError(NuveError):
    """Raised when an HTTP call to the platform fails.

    Covers both non-2xx responses (``status`` is set) and network-level
    failures such as refused connections or timeouts (``status`` is None).

    Attributes:
        message: Human-readable error message.
        method: HTTP method of the failed request.
        url: Full URL of the failed request.
        status: HTTP status code, or None for network-level failures.
        reason: HTTP reason phrase, if a response was received.
        body: Decoded response body (JSON value or text), if any.
    """

    def __init__(
        self,
        message: str,
        method: str,
        url: str,
        status: int | None = None,
        reason: str | None = None,
        body: Any = None,
    ) -> None:
        """Initialize HTTP error with request context.

        Args:
            message: Human-readable error message.
            method: HTTP method of the failed request.
            url: Full URL of the failed request.
            status: HTTP status code. Defaults to None.
            reason: HTTP reason phrase. Defaults to None.
            body: Decoded response body. Defaults to None.
        """
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url
        self.status = status
        self.reason = reason
        self.body = body

    @property
    def detail_message(self) -> str | None:
        """The ``detail.message`` field of a JSON error body, if present."""
        if not isinstance(self.body, dict):
            return None
        detail = self.body.get("detail")
        if not isinstance(detail, dict):
            return None
        message = detail.get("message")
        return message if isinstance(message, str) and message else None


def describe_error(error: BaseException) -> str:
    """Build the message reported for a failed run.

    Prefers the platform's ``detail.message`` from an HTTP error body and
    falls back to the error's string form.

    Args:
        error: The exception that aborted the workflow.

    Returns:
        Message suitable for the CI error log.

    Example:
        >>> err = HttpError(
        ...     "HTTP 401 Unauthorized for POST https://app.nuveplatform.com/api/auth/login",
        ...     method="POST",
        ...     url="https://app.nuveplatform.com/api/auth/login",
        ...     status=401,
        ...     body={"detail": {"message": "Invalid credentials"}},
        ... )
        >>> describe_error(err)
        'Invalid credentials'
    """
    if isinstance(error, HttpError) and error.detail_message:
        return error.detail_message
    return str(error)
