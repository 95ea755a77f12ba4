"""Tests for the deprovisioning workflow."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from conftest import FakeClock, make_settings

from nuve_deprovision.platform.exceptions import (
    AuthenticationError,
    HttpError,
    InstanceNotFoundError,
    ShutdownTimeoutError,
)
from nuve_deprovision.platform.http_client import NuvePlatformClient
from nuve_deprovision.platform.models import AuthCheck, Credentials, Instance, PlatformSession
from nuve_deprovision.workflow.deprovision import (
    DeprovisionWorkflow,
    deprovision,
    find_instance_by_name,
    is_listed,
)

TARGET = Instance(id=42, name="qa-s4h", status="running")
OTHER = Instance(id=7, name="dev", status="running")
CREDENTIALS = Credentials(email="ci@example.com", password="pw")


def _client(*listings: list[Instance]) -> AsyncMock:
    """Build a mocked platform client returning the given listings in order."""
    client = AsyncMock(spec=NuvePlatformClient)
    client.login.return_value = PlatformSession(cookie="nuve_session=abc")
    client.check_auth.return_value = AuthCheck(name="ACME Corp", slug="acme")
    client.list_instances.side_effect = list(listings)
    return client


def _workflow(client: AsyncMock, clock: FakeClock, timeout: int = 600) -> DeprovisionWorkflow:
    return DeprovisionWorkflow(
        client,
        instance_name="qa-s4h",
        timeout=timeout,
        sleep=clock.sleep,
        clock=clock,
    )


class TestFindInstanceByName:
    """Test suite for name resolution."""

    def test_exact_match(self) -> None:
        """Test that the instance with the exact name is returned."""
        assert find_instance_by_name([OTHER, TARGET], "qa-s4h") is TARGET

    def test_no_partial_or_case_insensitive_match(self) -> None:
        """Test that only exact names match."""
        with pytest.raises(InstanceNotFoundError):
            find_instance_by_name([TARGET], "QA-S4H")
        with pytest.raises(InstanceNotFoundError):
            find_instance_by_name([TARGET], "qa")

    def test_empty_listing(self) -> None:
        """Test that an empty listing never matches."""
        with pytest.raises(InstanceNotFoundError, match="qa-s4h"):
            find_instance_by_name([], "qa-s4h")

    def test_duplicates_use_first_listed(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the first-in-listing-order tie-break and its warning."""
        duplicate = Instance(id=99, name="qa-s4h", status="stopped")

        with caplog.at_level(logging.WARNING):
            found = find_instance_by_name([OTHER, duplicate, TARGET], "qa-s4h")

        assert found is duplicate
        assert "2 instances are named 'qa-s4h'" in caplog.text

    def test_is_listed(self) -> None:
        """Test ID membership checks."""
        assert is_listed([OTHER, TARGET], 42) is True
        assert is_listed([OTHER], 42) is False


class TestWorkflowSteps:
    """Test suite for authentication, resolution and deletion."""

    @pytest.mark.asyncio
    async def test_authentication_failure_stops_workflow(self, fake_clock: FakeClock) -> None:
        """Test that a login without session cookie issues no further calls."""
        client = _client()
        client.login.side_effect = AuthenticationError("Couldn't set Cookie header")

        with pytest.raises(AuthenticationError):
            await _workflow(client, fake_clock).run(CREDENTIALS)

        client.login.assert_awaited_once_with(CREDENTIALS)
        client.check_auth.assert_not_called()
        client.list_instances.assert_not_called()
        client.delete_instance.assert_not_called()

    @pytest.mark.asyncio
    async def test_instance_not_found_never_deletes(self, fake_clock: FakeClock) -> None:
        """Test that a missing name fails before any delete call."""
        client = _client([OTHER])

        with pytest.raises(InstanceNotFoundError):
            await _workflow(client, fake_clock).run(CREDENTIALS)

        client.list_instances.assert_awaited_once_with("acme")
        client.delete_instance.assert_not_called()
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_delete_called_once_with_matched_id(self, fake_clock: FakeClock) -> None:
        """Test that delete targets the matched instance exactly once."""
        client = _client([OTHER, TARGET], [OTHER])

        deleted = await _workflow(client, fake_clock).run(CREDENTIALS)

        assert deleted is TARGET
        client.delete_instance.assert_awaited_once_with("acme", 42)

    @pytest.mark.asyncio
    async def test_logged_in_message(
        self, fake_clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test the progress messages."""
        client = _client([TARGET], [])

        with caplog.at_level(logging.INFO):
            await _workflow(client, fake_clock).run(CREDENTIALS)

        assert "Logged in as ACME Corp." in caplog.messages
        assert "Waiting for instance to shutdown..." in caplog.messages

    @pytest.mark.asyncio
    async def test_delete_failure_propagates(self, fake_clock: FakeClock) -> None:
        """Test that a rejected delete aborts without polling."""
        client = _client([TARGET])
        client.delete_instance.side_effect = HttpError(
            "HTTP 409 Conflict", method="DELETE", url="u", status=409
        )

        with pytest.raises(HttpError):
            await _workflow(client, fake_clock).run(CREDENTIALS)

        assert fake_clock.sleeps == []


class TestAwaitTermination:
    """Test suite for the shutdown poll loop."""

    @pytest.mark.asyncio
    async def test_gone_on_first_poll(self, fake_clock: FakeClock) -> None:
        """Test success after exactly one sleep interval."""
        client = _client([TARGET], [OTHER])

        await _workflow(client, fake_clock).run(CREDENTIALS)

        assert fake_clock.sleeps == [60]
        assert client.list_instances.await_count == 2

    @pytest.mark.asyncio
    async def test_present_until_deadline_times_out(self, fake_clock: FakeClock) -> None:
        """Test ShutdownTimeoutError when the instance never disappears."""
        client = _client(*([[TARGET]] * 10))

        with pytest.raises(ShutdownTimeoutError) as exc_info:
            await _workflow(client, fake_clock, timeout=150).run(CREDENTIALS)

        assert exc_info.value.timeout == 150
        assert exc_info.value.instance_id == 42
        assert fake_clock.now >= 150
        # Initial listing plus polls at t=60 and t=120; none after the deadline
        assert client.list_instances.await_count == 3
        assert fake_clock.sleeps == [60, 60, 60]

    @pytest.mark.asyncio
    async def test_timeout_120_gone_on_third_fetch(self, fake_clock: FakeClock) -> None:
        """Test success after 120 seconds when the second poll no longer lists it."""
        client = _client([TARGET], [TARGET], [OTHER])

        await _workflow(client, fake_clock, timeout=120).run(CREDENTIALS)

        assert fake_clock.sleeps == [60, 60]
        assert fake_clock.now == 120
        assert client.list_instances.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_30_fails_after_first_sleep(self, fake_clock: FakeClock) -> None:
        """Test that a timeout shorter than one interval fails without re-fetching."""
        client = _client(*([[TARGET]] * 3))

        with pytest.raises(
            ShutdownTimeoutError,
            match="Waiting for instance shutdown timed out after 30 seconds.",
        ):
            await _workflow(client, fake_clock, timeout=30).run(CREDENTIALS)

        assert fake_clock.sleeps == [60]
        assert client.list_instances.await_count == 1

    @pytest.mark.asyncio
    async def test_zero_timeout(self, fake_clock: FakeClock) -> None:
        """Test that a zero timeout still waits one interval before failing."""
        client = _client([TARGET])

        with pytest.raises(ShutdownTimeoutError):
            await _workflow(client, fake_clock, timeout=0).run(CREDENTIALS)

        assert fake_clock.sleeps == [60]

    @pytest.mark.asyncio
    async def test_poll_failure_is_not_retried(self, fake_clock: FakeClock) -> None:
        """Test that a failed listing during polling aborts immediately."""
        error = HttpError("Network error", method="GET", url="u")
        client = _client([TARGET], error, [])

        with pytest.raises(HttpError):
            await _workflow(client, fake_clock).run(CREDENTIALS)

        assert client.list_instances.await_count == 2
        assert fake_clock.sleeps == [60]

    @pytest.mark.asyncio
    async def test_custom_poll_interval(self, fake_clock: FakeClock) -> None:
        """Test that the configured interval is used between polls."""
        client = _client([TARGET], [TARGET], [])
        workflow = DeprovisionWorkflow(
            client,
            instance_name="qa-s4h",
            timeout=600,
            poll_interval=15,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        await workflow.run(CREDENTIALS)

        assert fake_clock.sleeps == [15, 15]

    @pytest.mark.asyncio
    async def test_null_status_in_listings(
        self, fake_clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test polling an instance the platform lists without a status."""
        unknown = Instance.model_validate({"id": 42, "name": "qa-s4h", "status": None})
        client = _client([unknown], [unknown], [OTHER])

        with caplog.at_level(logging.DEBUG):
            deleted = await _workflow(client, fake_clock).run(CREDENTIALS)

        assert deleted is unknown
        assert fake_clock.sleeps == [60, 60]
        assert "Poll 1: instance status unknown" in caplog.messages

    @pytest.mark.asyncio
    async def test_deadline_starts_after_delete(self, fake_clock: FakeClock) -> None:
        """Test that time spent on the delete call does not count against the timeout."""
        client = _client([TARGET], [TARGET], [OTHER])

        async def slow_delete(slug: str, instance_id: int) -> None:
            fake_clock.now += 100

        client.delete_instance.side_effect = slow_delete

        # Deadline is t=220; polls at t=160 and t=220 both fall within it
        await _workflow(client, fake_clock, timeout=120).run(CREDENTIALS)

        assert fake_clock.now == 220
        assert client.list_instances.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_date_logged(
        self, fake_clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test the debug line reporting the wall-clock deadline."""
        client = _client([TARGET], [])

        before = datetime.now(UTC)
        with caplog.at_level(logging.DEBUG):
            await _workflow(client, fake_clock, timeout=900).run(CREDENTIALS)
        after = datetime.now(UTC)

        lines = [m for m in caplog.messages if m.startswith("Timeout date: ")]
        assert len(lines) == 1
        deadline_at = datetime.fromisoformat(lines[0].removeprefix("Timeout date: "))
        assert before + timedelta(seconds=900) <= deadline_at <= after + timedelta(seconds=900)


class TestDeprovision:
    """Test suite for the settings-driven entry coroutine."""

    @pytest.mark.asyncio
    async def test_builds_client_from_settings(self, instance_payload: dict[str, Any]) -> None:
        """Test that deprovision wires settings into client and workflow."""
        settings = make_settings(
            instance_name="qa-s4h",
            timeout=300,
            poll_interval=5,
            request_timeout=10,
            api_base_url="https://nuve.test/api",
        )
        target = Instance.model_validate(instance_payload)

        with (
            patch(
                "nuve_deprovision.workflow.deprovision.NuvePlatformClient"
            ) as mock_client_cls,
            patch.object(DeprovisionWorkflow, "run", new=AsyncMock(return_value=target)) as run,
        ):
            mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=AsyncMock())
            mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=None)

            result = await deprovision(settings)

        assert result is target
        mock_client_cls.assert_called_once_with(
            "https://nuve.test/api", secret_masker=None, request_timeout=10.0
        )
        run.assert_awaited_once()
        assert run.await_args.args[0].email == "ci@example.com"
