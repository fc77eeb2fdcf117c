"""Tests for CommandRouter and the subscription command handlers."""

from unittest.mock import AsyncMock

import pytest

from feedrelay.admission.config import AdmissionConfig
from feedrelay.admission.service import AdmissionController
from feedrelay.admission.store import InMemoryAdmissionStore
from feedrelay.commands.handlers import build_router
from feedrelay.commands.router import GENERIC_FAILURE_REPLY, CommandRouter
from feedrelay.commands.schemas import CommandReply
from feedrelay.delivery.transport import PermanentDeliveryError, TransientDeliveryError
from feedrelay.fetching.base import PermanentFetchError

SOURCE = "https://example.com/feed.xml"


class TestCommandRouter:
    """Tests for routing and per-command middleware."""

    @pytest.mark.asyncio
    async def test_unknown_command(self, make_request):
        router = CommandRouter()
        assert await router.dispatch(make_request("/nope")) is None

    @pytest.mark.asyncio
    async def test_duplicate_registration(self):
        router = CommandRouter()
        handler = AsyncMock(return_value=CommandReply("ok"))
        router.register("list", handler)

        with pytest.raises(ValueError):
            router.register("/list", handler)

    @pytest.mark.asyncio
    async def test_handler_failure_becomes_reply(self, make_request):
        router = CommandRouter()
        router.register("list", AsyncMock(side_effect=RuntimeError("db gone")))

        reply = await router.dispatch(make_request("/list"))

        assert reply.text == GENERIC_FAILURE_REPLY

    def test_build_router_registers_all_commands(self, subscription_service):
        router = build_router(subscription_service)
        assert router.commands == [
            "add", "del", "delall", "list", "pause", "resume", "send", "set",
        ]


class TestAddCommand:
    """Tests for /add."""

    @pytest.mark.asyncio
    async def test_add_delivers_latest(
        self, subscription_service, mock_fetcher, mock_transport, make_request, sample_items
    ):
        mock_fetcher.fetch.return_value = sample_items
        router = build_router(subscription_service)

        reply = await router.dispatch(make_request(f"/add {SOURCE}"))

        assert "Feed added" in reply.text
        mock_transport.deliver.assert_called_once()
        assert await subscription_service.list_sources("-100123") == [SOURCE]

    @pytest.mark.asyncio
    async def test_add_without_argument(self, subscription_service, make_request):
        router = build_router(subscription_service)
        reply = await router.dispatch(make_request("/add"))
        assert reply.text.startswith("Usage: /add")

    @pytest.mark.asyncio
    async def test_add_duplicate(
        self, subscription_service, mock_fetcher, make_request, sample_items
    ):
        mock_fetcher.fetch.return_value = sample_items
        router = build_router(subscription_service)
        await router.dispatch(make_request(f"/add {SOURCE}"))

        reply = await router.dispatch(make_request(f"/add {SOURCE}"))

        assert "already exists" in reply.text

    @pytest.mark.asyncio
    async def test_add_unreachable_source(self, subscription_service, mock_fetcher, make_request):
        mock_fetcher.fetch.side_effect = PermanentFetchError(SOURCE, "HTTP 404 fetching feed", 404)
        router = build_router(subscription_service)

        reply = await router.dispatch(make_request(f"/add {SOURCE}"))

        assert "Failed to add feed" in reply.text
        assert "HTTP 404" in reply.text

    @pytest.mark.asyncio
    async def test_add_undeliverable_is_not_subscribed(
        self, subscription_service, mock_fetcher, mock_transport, make_request, sample_items
    ):
        mock_fetcher.fetch.return_value = sample_items
        mock_transport.deliver.side_effect = TransientDeliveryError("-100123", "timeout")
        router = build_router(subscription_service)

        reply = await router.dispatch(make_request(f"/add {SOURCE}"))

        assert "Failed to add feed" in reply.text
        assert await subscription_service.list_sources("-100123") == []

    @pytest.mark.asyncio
    async def test_add_empty_feed(self, subscription_service, make_request):
        router = build_router(subscription_service)
        reply = await router.dispatch(make_request(f"/add {SOURCE}"))
        assert "has no items" in reply.text

    @pytest.mark.asyncio
    async def test_add_blocked_source(self, subscription_service, mock_fetcher, make_request):
        router = build_router(subscription_service)

        reply = await router.dispatch(make_request("/add https://www.xvideos.com/rss"))

        assert "not allowed" in reply.text
        mock_fetcher.fetch.assert_not_called()


class TestManagementCommands:
    """Tests for del, delall, set, pause, resume and list."""

    @pytest.fixture
    async def subscribed(self, subscription_service, mock_fetcher, sample_items):
        mock_fetcher.fetch.return_value = sample_items
        await subscription_service.subscribe("-100123", SOURCE)
        return subscription_service

    @pytest.mark.asyncio
    async def test_list(self, subscribed, make_request):
        reply = await build_router(subscribed).dispatch(make_request("/list"))
        assert "Subscribed feeds" in reply.text
        assert SOURCE in reply.text

    @pytest.mark.asyncio
    async def test_list_empty(self, subscription_service, make_request):
        reply = await build_router(subscription_service).dispatch(make_request("/list"))
        assert "don't have any subscribed feeds" in reply.text

    @pytest.mark.asyncio
    async def test_del(self, subscribed, make_request):
        router = build_router(subscribed)

        reply = await router.dispatch(make_request(f"/del {SOURCE}"))
        assert "Feed removed" in reply.text

        reply = await router.dispatch(make_request(f"/del {SOURCE}"))
        assert "Feed not found" in reply.text

    @pytest.mark.asyncio
    async def test_delall(self, subscribed, make_request):
        router = build_router(subscribed)

        reply = await router.dispatch(make_request("/delall"))
        assert "1 feeds have been deleted" in reply.text

        reply = await router.dispatch(make_request("/delall"))
        assert "to delete" in reply.text

    @pytest.mark.asyncio
    async def test_set_requires_topic(self, subscribed, make_request):
        router = build_router(subscribed)

        reply = await router.dispatch(make_request("/set"))
        assert "only be used in a topic" in reply.text

        reply = await router.dispatch(make_request("/set", topic_id=12))
        assert "ID: 12" in reply.text

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, subscribed, make_request):
        router = build_router(subscribed)

        assert "paused" in (await router.dispatch(make_request("/pause"))).text
        assert "already paused" in (await router.dispatch(make_request("/pause"))).text
        assert "resumed" in (await router.dispatch(make_request("/resume"))).text
        assert "not paused" in (await router.dispatch(make_request("/resume"))).text

    @pytest.mark.asyncio
    async def test_pause_without_subscriptions(self, subscription_service, make_request):
        reply = await build_router(subscription_service).dispatch(make_request("/pause"))
        assert "don't have any subscribed feeds" in reply.text


class TestRouterMiddlewareOrder:
    """Admission runs before every other check."""

    @pytest.mark.asyncio
    async def test_admission_precedes_role_check(self, subscription_service, make_request):
        is_admin = AsyncMock(return_value=False)
        admission = AdmissionController(
            InMemoryAdmissionStore(),
            AdmissionConfig(command_threshold=1, warning_cap=1),
        )
        router = build_router(subscription_service, admission=admission, is_admin=is_admin)
        request = make_request("/list", chat_type="group")

        first = await router.dispatch(request)
        second = await router.dispatch(request)

        assert "must be an admin" in first.text
        assert "blocked" in second.text
        assert is_admin.call_count == 1


class TestSendCommand:
    """Tests for the owner broadcast."""

    @pytest.fixture
    async def subscribed(self, subscription_service, mock_fetcher, sample_items):
        mock_fetcher.fetch.return_value = sample_items
        await subscription_service.subscribe("-100123", SOURCE)
        await subscription_service.subscribe("-100456", SOURCE)
        return subscription_service

    @pytest.mark.asyncio
    async def test_owner_forwards_reply_text(self, subscribed, mock_transport, make_request):
        router = build_router(subscribed, owner_id="u1")
        mock_transport.deliver.reset_mock()

        reply = await router.dispatch(make_request("/send", reply_to_text="Release notes"))

        assert "forwarded successfully" in reply.text
        assert "Sent: 2" in reply.text
        contents = [c.args[2] for c in mock_transport.deliver.call_args_list]
        assert contents == ["Release notes", "Release notes"]

    @pytest.mark.asyncio
    async def test_gone_chat_counted_as_removed(
        self, subscribed, mock_transport, make_request
    ):
        router = build_router(subscribed, owner_id="u1")
        mock_transport.deliver.side_effect = [
            PermanentDeliveryError("-100123", "Forbidden: bot was kicked", 403),
            1,
        ]

        reply = await router.dispatch(make_request("/send Release notes"))

        assert "removed: 1" in reply.text
        assert await subscribed.list_sources("-100123") == []
        assert await subscribed.list_sources("-100456") == [SOURCE]

    @pytest.mark.asyncio
    async def test_non_owner_refused(self, subscribed, mock_transport, make_request):
        router = build_router(subscribed, owner_id="u1")
        mock_transport.deliver.reset_mock()

        reply = await router.dispatch(make_request("/send hi", caller_id="u2"))

        assert "Reserved for owner only" in reply.text
        mock_transport.deliver.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_to_forward(self, subscription_service, make_request):
        router = build_router(subscription_service, owner_id="u1")
        reply = await router.dispatch(make_request("/send"))
        assert "Please reply to a message" in reply.text

    @pytest.mark.asyncio
    async def test_admission_runs_before_owner_check(self, subscription_service, make_request):
        admission = AdmissionController(
            InMemoryAdmissionStore(),
            AdmissionConfig(command_threshold=1, warning_cap=1),
        )
        router = build_router(subscription_service, admission=admission, owner_id="u1")
        request = make_request("/send hi", caller_id="u2")

        await router.dispatch(request)
        second = await router.dispatch(request)

        assert "blocked" in second.text
