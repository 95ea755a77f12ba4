"""Pydantic models for Nuve platform API payloads.

Only the fields the deprovisioning workflow reads or logs are modelled;
anything else the API returns is ignored.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class Credentials(BaseModel):
    """Login credentials for the Nuve platform."""

    email: str = Field(..., min_length=1)
    password: SecretStr

    def to_payload(self) -> dict[str, str]:
        """Build the login request body."""
        return {"email": self.email, "password": self.password.get_secret_value()}


class PlatformSession(BaseModel):
    """Authenticated session obtained from login.

    Attributes:
        cookie: ``name=value`` pair sent back as the ``Cookie`` header.
        token: Token from the login response body, if the platform sent one.
    """

    model_config = ConfigDict(frozen=True)

    cookie: str = Field(..., pattern=r"^[^=;\s]+=[^;]*$")
    token: str | None = None

    @property
    def cookie_value(self) -> str:
        """Value part of the session cookie."""
        return self.cookie.split("=", 1)[1]


class AuthCheck(BaseModel):
    """Identity of the authenticated account.

    Attributes:
        name: Display name, used for logging.
        slug: Account slug, used to build organization URLs.
    """

    name: str
    slug: str = Field(..., min_length=1)


class BackupConfig(BaseModel):
    """SAP system identifiers of the package an instance was built from."""

    sap_system_id: str | None = None
    sap_system_no: str | None = None


class BackupPackage(BaseModel):
    """Package of a backup version."""

    config: BackupConfig | None = None


class BackupVersion(BaseModel):
    """Version of the backup an instance was restored from."""

    package: BackupPackage | None = None


class InstanceBackup(BaseModel):
    """Backup metadata attached to an instance."""

    unique_name: str | None = None
    version: BackupVersion | None = None


class Instance(BaseModel):
    """Model representing a Nuve platform instance.

    Attributes:
        id: Numeric instance ID, used for deletion and polling.
        name: Display name, used to find the instance.
        status: Current status as reported by the platform, if any.
        external_ip: Public IP address (optional).
        backup: Backup the instance was restored from (optional).
    """

    id: int
    name: str
    status: str | None = None
    external_ip: str | None = None
    backup: InstanceBackup | None = None

    @property
    def sap_system_id(self) -> str | None:
        """SAP system ID of the instance's backup package, if known."""
        if self.backup and self.backup.version and self.backup.version.package:
            config = self.backup.version.package.config
            return config.sap_system_id if config else None
        return None

    def describe(self) -> str:
        """One-line summary used in progress and debug logs."""
        parts = [f"'{self.name}' (id {self.id}, status {self.status or 'unknown'}"]
        if self.external_ip:
            parts.append(f", ip {self.external_ip}")
        if self.sap_system_id:
            parts.append(f", SID {self.sap_system_id}")
        parts.append(")")
        return "".join(parts)


@dataclass(frozen=True)
class ApiResponse:
    """Decoded result of one successful HTTP exchange.

    Attributes:
        status: HTTP status code.
        reason: HTTP reason phrase.
        data: Decoded body: parsed JSON, raw text, or None when empty.
        set_cookies: Values of every ``Set-Cookie`` response header, in order.
    """

    status: int
    reason: str | None
    data: Any = None
    set_cookies: list[str] = field(default_factory=list)
