"""Async HTTP client for the Nuve platform REST API.

This module provides the client used by the deprovisioning workflow. Every
request goes through a single method that traces the exchange at DEBUG level
and redacts secrets before anything is logged.

Example:
    Basic usage with context manager::

        async with NuvePlatformClient(NUVE_API_BASE_URL) as client:
            await client.login(credentials)
            account = await client.check_auth()
            instances = await client.list_instances(account.slug)
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Final, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from nuve_deprovision.constants import (
    AUTH_CHECK_PATH,
    DEFAULT_REQUEST_TIMEOUT,
    INSTANCE_PATH_TEMPLATE,
    INSTANCES_PATH_TEMPLATE,
    LOGIN_PATH,
)
from nuve_deprovision.platform.exceptions import AuthenticationError, HttpError, NuveError
from nuve_deprovision.platform.models import (
    ApiResponse,
    AuthCheck,
    Credentials,
    Instance,
    PlatformSession,
)
from nuve_deprovision.utils.redaction import SecretMasker, sanitize_payload

logger: Final = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_session_cookie(set_cookies: list[str]) -> str:
    """Extract the ``name=value`` pair from the first ``Set-Cookie`` header.

    Args:
        set_cookies: ``Set-Cookie`` header values from the login response.

    Returns:
        The cookie pair to send back as the ``Cookie`` header.

    Raises:
        AuthenticationError: If no cookie was set or the first one is malformed.

    Example:
        >>> parse_session_cookie(["session=abc123; Path=/; HttpOnly"])
        'session=abc123'
    """
    if not set_cookies:
        raise AuthenticationError("Couldn't set Cookie header: authorization failed.")

    pair = set_cookies[0].split(";", 1)[0].strip()
    name, separator, value = pair.partition("=")
    if not separator or not name.strip() or not value:
        raise AuthenticationError("Couldn't set Cookie header: authorization failed.")
    return f"{name.strip()}={value}"


class NuvePlatformClient:
    """HTTP client for the Nuve platform.

    The client is constructed per run and carries its own session state:
    after ``login`` the session cookie is sent explicitly with every request.
    aiohttp's cookie jar is disabled so no other cookie is ever replayed.

    Attributes:
        base_url: API base URL without trailing slash.
        secret_masker: Optional masker that receives secrets seen in responses.
        request_timeout: Total timeout in seconds for each request.
        session: aiohttp client session (initialized via context manager).
        auth: Platform session after a successful login, else None.

    Example:
        >>> async with NuvePlatformClient("https://app.nuveplatform.com/api") as client:
        ...     await client.login(credentials)
        ...     account = await client.check_auth()
        ...     print(account.slug)
        acme
    """

    def __init__(
        self,
        base_url: str,
        secret_masker: SecretMasker | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the platform client.

        Args:
            base_url: API base URL, e.g. ``https://app.nuveplatform.com/api``.
            secret_masker: Optional masker to register response secrets with.
                Defaults to None.
            request_timeout: Total timeout in seconds per request. Defaults to 30.
        """
        self.base_url = base_url.rstrip("/")
        self.secret_masker = secret_masker
        self.request_timeout = request_timeout
        self.session: aiohttp.ClientSession | None = None
        self.auth: PlatformSession | None = None

    async def __aenter__(self) -> "NuvePlatformClient":
        """Enter async context manager, creating HTTP session.

        Returns:
            Self for use in async with statement.
        """
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        self.session = aiohttp.ClientSession(
            timeout=timeout,
            cookie_jar=aiohttp.DummyCookieJar(),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager, closing HTTP session."""
        if self.session:
            await self.session.close()

    def _register_secret(self, value: str | None) -> None:
        if self.secret_masker and value:
            self.secret_masker.add(value)

    @staticmethod
    def _parse(model: type[ModelT], data: Any, source: str) -> ModelT:
        """Validate response data, reporting schema mismatches as NuveError."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise NuveError(
                f"Unexpected response from {source}: {e.error_count()} invalid field(s)"
            ) from e

    @staticmethod
    def _decode_body(raw: bytes) -> Any:
        """Decode a response body as JSON, falling back to the raw text.

        Bytes that are not valid UTF-8 are replaced rather than raised on.
        """
        if not raw:
            return None
        text = raw.decode("utf-8", errors="replace")
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """Send one request and trace it at DEBUG level.

        Login bodies are never logged. Other bodies and all responses are
        logged with sensitive keys redacted. A ``token`` field in a response
        body is registered with the secret masker before logging.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            payload: Optional JSON request body.

        Returns:
            The decoded response.

        Raises:
            HttpError: For non-2xx responses and network-level failures.
            NuveError: If called outside the async context manager.
        """
        if not self.session:
            raise NuveError("Session not initialized - use async with context manager")

        request_id = str(uuid.uuid4())
        url = f"{self.base_url}{path}"

        description = f"{method} {url}"
        if payload is not None and not path.startswith(LOGIN_PATH):
            description += f", data: {sanitize_payload(payload)}"
        logger.debug(f"Starting request {request_id}: {description}")

        headers: dict[str, str] = {}
        if self.auth:
            headers["Cookie"] = self.auth.cookie

        try:
            async with self.session.request(method, url, json=payload, headers=headers) as resp:
                data = self._decode_body(await resp.read())
                set_cookies = list(resp.headers.getall("Set-Cookie", []))
                status = resp.status
                reason = resp.reason
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error_type = "Timeout" if isinstance(e, asyncio.TimeoutError) else "Network"
            logger.debug(f"Request {request_id} failed: {error_type} error: {e}")
            raise HttpError(
                f"{error_type} error for {method} {url}: {e}",
                method=method,
                url=url,
            ) from e

        if isinstance(data, dict) and isinstance(data.get("token"), str):
            self._register_secret(data["token"])

        outcome = f"status: {status}, status text: {reason}"
        if data is not None:
            outcome += f", data: {sanitize_payload(data)}"
        logger.debug(f"Ending request {request_id}: {outcome}")

        if status >= 400:
            raise HttpError(
                f"HTTP {status}{f' {reason}' if reason else ''} for {method} {url}",
                method=method,
                url=url,
                status=status,
                reason=reason,
                body=data,
            )

        return ApiResponse(status=status, reason=reason, data=data, set_cookies=set_cookies)

    async def login(self, credentials: Credentials) -> PlatformSession:
        """Log in and keep the session cookie for subsequent requests.

        Args:
            credentials: Account email and password.

        Returns:
            The platform session.

        Raises:
            AuthenticationError: If the response carries no usable session cookie.
            HttpError: If the login request fails.
        """
        self._register_secret(credentials.password.get_secret_value())

        response = await self._request("POST", LOGIN_PATH, payload=credentials.to_payload())
        cookie = parse_session_cookie(response.set_cookies)
        token = response.data.get("token") if isinstance(response.data, dict) else None

        self.auth = PlatformSession(cookie=cookie, token=token if isinstance(token, str) else None)
        self._register_secret(self.auth.cookie_value)
        logger.debug("Session cookie set")
        return self.auth

    async def check_auth(self) -> AuthCheck:
        """Fetch the identity of the logged-in account.

        Returns:
            Account display name and slug.

        Raises:
            HttpError: If the request fails.
            NuveError: If the response does not describe an account.
        """
        response = await self._request("GET", AUTH_CHECK_PATH)
        return self._parse(AuthCheck, response.data, AUTH_CHECK_PATH)

    async def list_instances(self, slug: str) -> list[Instance]:
        """List all instances of an account.

        Args:
            slug: Account slug.

        Returns:
            Instances in the order the platform lists them.

        Raises:
            HttpError: If the request fails.
            NuveError: If the response is not a list of instances.
        """
        response = await self._request("GET", INSTANCES_PATH_TEMPLATE.format(slug=slug))
        if not isinstance(response.data, list):
            raise NuveError(
                f"Unexpected instance listing for account {slug}: "
                f"{type(response.data).__name__}"
            )
        return [self._parse(Instance, item, "instance listing") for item in response.data]

    async def delete_instance(self, slug: str, instance_id: int) -> None:
        """Request deletion of an instance.

        Success only means the platform accepted the request; the instance
        keeps being listed until teardown completes.

        Args:
            slug: Account slug.
            instance_id: ID of the instance to delete.

        Raises:
            HttpError: If the request fails.
        """
        logger.info(f"Requesting deletion of instance {instance_id}")
        await self._request(
            "DELETE",
            INSTANCE_PATH_TEMPLATE.format(slug=slug, instance_id=instance_id),
        )
