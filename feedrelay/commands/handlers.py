"""
Subscription command handlers.

Thin adapters from CommandRequest to SubscriptionService calls and
HTML replies. Expected failures (unknown source, empty feed, nothing to
delete) become replies; anything else propagates to the router.
"""

import html
import logging
from collections.abc import Sequence

from feedrelay.admission.service import AdmissionController
from feedrelay.commands.config import ContentFilterConfig
from feedrelay.commands.middleware import (
    AdmissionMiddleware,
    ContentFilterMiddleware,
    Middleware,
    OwnerOnlyMiddleware,
    RoleChecker,
    RoleCheckMiddleware,
)
from feedrelay.commands.router import CommandRouter
from feedrelay.commands.schemas import CommandReply, CommandRequest
from feedrelay.delivery.transport import DeliveryError
from feedrelay.fetching.base import FetchError
from feedrelay.subscribers.service import (
    AlreadySubscribedError,
    EmptyFeedError,
    NotSubscribedError,
    SubscriptionService,
)

logger = logging.getLogger(__name__)

NO_FEEDS_REPLY = "<i>You don't have any subscribed feeds.</i>"


class SubscriptionCommands:
    """Handlers for add, del, delall, set, pause, resume, list and send."""

    def __init__(self, service: SubscriptionService) -> None:
        self._service = service

    async def add(self, request: CommandRequest) -> CommandReply:
        source = request.argument
        if not source:
            return CommandReply("Usage: /add <code>source_url</code>")

        escaped = html.escape(source)
        try:
            await self._service.subscribe(
                request.chat_id, source, topic_id=request.topic_id,
            )
        except AlreadySubscribedError:
            return CommandReply("<i>Feed already exists</i>")
        except EmptyFeedError:
            return CommandReply(f"<i>Failed to add feed</i>: {escaped} has no items")
        except FetchError as e:
            return CommandReply(f"<i>Failed to add feed</i>: {html.escape(str(e))}")
        except DeliveryError as e:
            logger.warning(
                "Not adding %s for %s, latest item was not delivered: %s",
                source, request.chat_id, e,
            )
            return CommandReply(
                f"<i>Failed to add feed</i>: {escaped} could not be delivered here"
            )
        return CommandReply(f"<i>Feed added</i>: {escaped}")

    async def delete(self, request: CommandRequest) -> CommandReply:
        source = request.argument
        if not source:
            return CommandReply("Usage: /del <code>source_url</code>")

        escaped = html.escape(source)
        try:
            await self._service.unsubscribe(request.chat_id, source)
        except NotSubscribedError:
            return CommandReply(f"<i>Feed not found</i>: {escaped}")
        return CommandReply(f'<i>Feed removed</i>: <a href="{escaped}">{escaped}</a>')

    async def delete_all(self, request: CommandRequest) -> CommandReply:
        removed = await self._service.unsubscribe_all(request.chat_id)
        if not removed:
            return CommandReply("<i>You don't have any subscribed feeds to delete.</i>")
        return CommandReply(f"<i>{len(removed)} feeds have been deleted.</i>")

    async def set_topic(self, request: CommandRequest) -> CommandReply:
        if request.topic_id is None:
            return CommandReply("<i>This command can only be used in a topic.</i>")
        await self._service.set_topic(request.chat_id, request.topic_id)
        return CommandReply(
            f"<i>Feed updates will now be sent to this topic</i> (ID: {request.topic_id})."
        )

    async def pause(self, request: CommandRequest) -> CommandReply:
        try:
            changed = await self._service.pause(request.chat_id)
        except NotSubscribedError:
            return CommandReply(NO_FEEDS_REPLY)
        if not changed:
            return CommandReply("<i>Feed updates are already paused.</i>")
        return CommandReply("<i>Feed updates paused.</i>")

    async def resume(self, request: CommandRequest) -> CommandReply:
        try:
            changed = await self._service.resume(request.chat_id)
        except NotSubscribedError:
            return CommandReply(NO_FEEDS_REPLY)
        if not changed:
            return CommandReply("<i>Feed updates are not paused.</i>")
        return CommandReply("<i>Feed updates resumed.</i>")

    async def list_sources(self, request: CommandRequest) -> CommandReply:
        sources = await self._service.list_sources(request.chat_id)
        if not sources:
            return CommandReply(NO_FEEDS_REPLY)
        lines = [
            f'{i}. <a href="{html.escape(s)}">{html.escape(s)}</a>'
            for i, s in enumerate(sources, start=1)
        ]
        return CommandReply("<b>Subscribed feeds</b>\n\n" + "\n".join(lines))

    async def broadcast(self, request: CommandRequest) -> CommandReply:
        content = request.reply_to_text or " ".join(request.args)
        if not content.strip():
            return CommandReply("<i>Please reply to a message you want to forward.</i>")

        result = await self._service.broadcast(content)
        return CommandReply(
            f"<i>Message forwarded successfully.</i> "
            f"Sent: {result.sent}, failed: {result.failed}, removed: {len(result.retired)}."
        )


def build_router(
    service: SubscriptionService,
    admission: AdmissionController | None = None,
    is_admin: RoleChecker | None = None,
    content_filter: ContentFilterConfig | None = None,
    owner_id: str | None = None,
) -> CommandRouter:
    """Wire the subscription commands with their middleware.

    Admission control (when given) runs first on every command. The
    role check guards commands that change or reveal a chat's
    subscriptions, and the content filter guards ``add``. ``send`` is
    open to ``owner_id`` only and is refused for everyone when it is unset.
    """
    base: list[Middleware] = []
    if admission is not None:
        base.append(AdmissionMiddleware(admission))

    guarded: list[Middleware] = []
    if is_admin is not None:
        guarded.append(RoleCheckMiddleware(is_admin))

    add_chain: Sequence[Middleware] = [*guarded, ContentFilterMiddleware(content_filter)]

    commands = SubscriptionCommands(service)
    router = CommandRouter(base)
    router.register("add", commands.add, add_chain)
    router.register("del", commands.delete, guarded)
    router.register("delall", commands.delete_all, guarded)
    router.register("set", commands.set_topic, guarded)
    router.register("pause", commands.pause, guarded)
    router.register("resume", commands.resume, guarded)
    router.register("list", commands.list_sources, guarded)
    router.register("send", commands.broadcast, [OwnerOnlyMiddleware(owner_id)])
    return router
