"""Instance deprovisioning workflow.

This module implements the four sequential steps of an action run:
authenticate, resolve the instance by name, request its deletion, and poll
the instance listing until the instance is gone or the deadline passes.

Example:
    >>> async with NuvePlatformClient(NUVE_API_BASE_URL) as client:
    ...     workflow = DeprovisionWorkflow(client, instance_name="qa-s4h", timeout=900)
    ...     await workflow.run(credentials)
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Final

from nuve_deprovision.config.settings import Settings
from nuve_deprovision.constants import POLL_INTERVAL_SECONDS
from nuve_deprovision.platform.exceptions import InstanceNotFoundError, ShutdownTimeoutError
from nuve_deprovision.platform.http_client import NuvePlatformClient
from nuve_deprovision.platform.models import AuthCheck, Credentials, Instance
from nuve_deprovision.utils.redaction import SecretMasker

logger: Final = logging.getLogger(__name__)


def find_instance_by_name(instances: Sequence[Instance], name: str) -> Instance:
    """Find an instance by exact display name.

    When several instances share the name, the first one in listing order
    is returned and a warning is logged.

    Args:
        instances: Instances as listed by the platform.
        name: Display name to match.

    Returns:
        The matching instance.

    Raises:
        InstanceNotFoundError: If no instance has that name.
    """
    matches = [instance for instance in instances if instance.name == name]
    if not matches:
        raise InstanceNotFoundError(name)
    if len(matches) > 1:
        logger.warning(
            f"{len(matches)} instances are named '{name}', using the first listed "
            f"(id {matches[0].id})"
        )
    return matches[0]


def is_listed(instances: Sequence[Instance], instance_id: int) -> bool:
    """Check whether an instance ID is present in a listing."""
    return any(instance.id == instance_id for instance in instances)


class DeprovisionWorkflow:
    """Deletes one named instance and waits for it to disappear.

    Attributes:
        client: Platform client, already inside its async context.
        instance_name: Display name of the instance to delete.
        timeout: Seconds to wait for the instance to disappear.
        poll_interval: Seconds between listing polls.
    """

    def __init__(
        self,
        client: NuvePlatformClient,
        instance_name: str,
        timeout: int,
        poll_interval: int = POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the workflow.

        Args:
            client: Platform client to issue every call through.
            instance_name: Display name of the instance to delete.
            timeout: Seconds to wait for the instance to disappear.
            poll_interval: Seconds between listing polls. Defaults to 60.
            sleep: Coroutine used to wait between polls. Defaults to asyncio.sleep.
            clock: Monotonic clock in seconds. Defaults to time.monotonic.
        """
        self.client = client
        self.instance_name = instance_name
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    async def run(self, credentials: Credentials) -> Instance:
        """Run all steps. Any failure aborts the run immediately.

        Args:
            credentials: Platform login credentials.

        Returns:
            The instance that was deleted.

        Raises:
            AuthenticationError: If login yields no session cookie.
            InstanceNotFoundError: If no instance has the requested name.
            ShutdownTimeoutError: If the instance outlives the deadline.
            HttpError: If any platform call fails.
        """
        account = await self.authenticate(credentials)

        instances = await self.client.list_instances(account.slug)
        instance = find_instance_by_name(instances, self.instance_name)
        logger.debug(f"Resolved instance {instance.describe()}")

        await self.client.delete_instance(account.slug, instance.id)
        await self.await_termination(account.slug, instance, instances)
        return instance

    async def authenticate(self, credentials: Credentials) -> AuthCheck:
        """Log in and resolve the account the credentials belong to."""
        await self.client.login(credentials)
        account = await self.client.check_auth()
        logger.info(f"Logged in as {account.name}.")
        return account

    async def await_termination(
        self,
        slug: str,
        instance: Instance,
        instances: Sequence[Instance],
    ) -> None:
        """Poll the listing until the instance is gone.

        Each iteration sleeps first, then checks the deadline, then fetches.
        Once the deadline has passed no further fetch is made, so the timeout
        is judged against a listing at most one interval old.

        Args:
            slug: Account slug.
            instance: The deleted instance.
            instances: The most recent listing, taken before deletion.

        Raises:
            ShutdownTimeoutError: If the deadline passes while the instance
                is still listed.
            HttpError: If a listing fetch fails. Not retried.
        """
        deadline = self._clock() + self.timeout
        deadline_at = datetime.now(UTC) + timedelta(seconds=self.timeout)
        logger.debug(f"Timeout date: {deadline_at.isoformat()}")

        polls = 0
        while is_listed(instances, instance.id):
            logger.info("Waiting for instance to shutdown...")
            await self._sleep(self.poll_interval)

            if self._clock() > deadline:
                raise ShutdownTimeoutError(self.timeout, instance_id=instance.id)

            instances = await self.client.list_instances(slug)
            polls += 1
            current = next((i for i in instances if i.id == instance.id), None)
            if current:
                logger.debug(f"Poll {polls}: instance status {current.status or 'unknown'}")

        logger.debug(f"Instance {instance.id} gone after {polls} poll(s)")


async def deprovision(settings: Settings, secret_masker: SecretMasker | None = None) -> Instance:
    """Deprovision the instance named in the action inputs.

    Builds a platform client for this run and executes the workflow with it.

    Args:
        settings: Action settings.
        secret_masker: Optional masker for secrets seen in responses.

    Returns:
        The instance that was deleted.
    """
    async with NuvePlatformClient(
        settings.api_base_url,
        secret_masker=secret_masker,
        request_timeout=settings.request_timeout,
    ) as client:
        workflow = DeprovisionWorkflow(
            client,
            instance_name=settings.instance_name,
            timeout=settings.timeout,
            poll_interval=settings.poll_interval,
        )
        return await workflow.run(settings.credentials)
