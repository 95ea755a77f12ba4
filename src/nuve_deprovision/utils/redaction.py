"""Secret redaction for log output.

Two complementary mechanisms keep credentials out of logs:

- ``sanitize_payload`` redacts values stored under sensitive keys (passwords,
  tokens, cookies) before a request or response body is formatted.
- ``SecretMasker`` is a logging filter that replaces every registered secret
  value wherever it appears in a formatted log message.

Example:
    >>> masker = SecretMasker()
    >>> masker.add("s3cr3t")
    >>> masker.mask("cookie=s3cr3t")
    'cookie=***'
"""

import logging
from collections.abc import Callable
from typing import Any

from nuve_deprovision.constants import REDACTED, SECRET_MASK, SENSITIVE_KEYS


def is_sensitive_key(key: str) -> bool:
    """Check whether a payload key names a secret."""
    lowered = key.lower()
    return any(sensitive in lowered for sensitive in SENSITIVE_KEYS)


def sanitize_payload(payload: Any) -> Any:
    """Redact values of sensitive keys in a JSON-like payload.

    Recursively processes dictionaries and lists. Non-container values are
    returned unchanged.

    Args:
        payload: Decoded JSON value (dict, list, or scalar).

    Returns:
        A copy of the payload with sensitive values replaced by ``[REDACTED]``.

    Example:
        >>> sanitize_payload({"token": "abc", "user": {"name": "ci"}})
        {'token': '[REDACTED]', 'user': {'name': 'ci'}}
    """
    if isinstance(payload, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and is_sensitive_key(key)
            else sanitize_payload(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [sanitize_payload(item) for item in payload]
    return payload


class SecretMasker(logging.Filter):
    """Logging filter that masks registered secret values.

    Attach it to every handler so that no sink receives a registered secret,
    regardless of which logger emitted the record.

    Attributes:
        mask_with: Replacement string for secret values.
    """

    def __init__(
        self,
        mask_with: str = SECRET_MASK,
        on_register: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the masker.

        Args:
            mask_with: Replacement string for secret values. Defaults to ``***``.
            on_register: Optional callback invoked once for each newly
                registered secret, e.g. to tell the CI runner to mask it too.
        """
        super().__init__()
        self.mask_with = mask_with
        self._on_register = on_register
        self._secrets: set[str] = set()

    def add(self, value: str | None) -> None:
        """Register a secret value to be masked from now on.

        Empty values are ignored since masking them would blank every message.
        """
        if not value or value in self._secrets:
            return
        self._secrets.add(value)
        if self._on_register:
            self._on_register(value)

    @property
    def secret_count(self) -> int:
        """Number of registered secrets."""
        return len(self._secrets)

    def mask(self, text: str) -> str:
        """Replace every registered secret in ``text``."""
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._secrets, key=len, reverse=True):
            text = text.replace(secret, self.mask_with)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask secrets in the record's message. Never drops a record."""
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = self.mask(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True
