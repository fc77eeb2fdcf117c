"""
Command middleware.

Each middleware either lets a request continue (returns None) or stops
it with a reply. A MiddlewareChain runs them in order and stops at the
first reply. Typical order for a mutating command:

    admission -> role check -> content filter -> handler

Owner-only commands swap the role check for OwnerOnlyMiddleware.
"""

import html
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from urllib.parse import urlparse

from feedrelay.admission.schemas import AdmissionOutcome
from feedrelay.admission.service import AdmissionController
from feedrelay.commands.config import ContentFilterConfig
from feedrelay.commands.schemas import CommandReply, CommandRequest
from feedrelay.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

# (chat_id, caller_id) -> caller may manage the chat's subscriptions
RoleChecker = Callable[[str, str], Awaitable[bool]]


class Middleware(ABC):
    """Abstract base for command middleware."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def handle(self, request: CommandRequest) -> CommandReply | None:
        """Inspect a request.

        Returns:
            None to continue to the next middleware, or a reply that
            ends processing.
        """


class MiddlewareChain:
    """Ordered middleware, evaluated by plain iteration."""

    def __init__(self, middlewares: Sequence[Middleware] = ()) -> None:
        self._middlewares = list(middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)

    @property
    def middlewares(self) -> list[Middleware]:
        return list(self._middlewares)

    def extend(self, middlewares: Sequence[Middleware]) -> "MiddlewareChain":
        """New chain with ``middlewares`` appended."""
        return MiddlewareChain([*self._middlewares, *middlewares])

    async def run(self, request: CommandRequest) -> CommandReply | None:
        for middleware in self._middlewares:
            reply = await middleware.handle(request)
            if reply is not None:
                logger.debug(
                    "/%s from %s stopped by %s",
                    request.command, request.caller_id, middleware.name,
                )
                return reply
        return None


def _format_duration(seconds: int) -> str:
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    minutes = max(1, seconds // 60)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


class AdmissionMiddleware(Middleware):
    """
    Per-caller command rate limiting.

    Any failure inside admission control (store outage, corrupt data,
    unexpected bug) lets the command through.
    """

    def __init__(self, controller: AdmissionController) -> None:
        self._controller = controller
        self._block_seconds = controller.policy.config.block_seconds

    async def handle(self, request: CommandRequest) -> CommandReply | None:
        metrics = get_metrics()
        try:
            decision = await self._controller.check(request.caller_id, request.command)
        except Exception as e:
            logger.warning(
                "Admission check failed for caller %s, allowing: %s",
                request.caller_id, e,
            )
            metrics.record_admission("fault")
            return None

        metrics.record_admission(decision.outcome.value)

        if decision.outcome is AdmissionOutcome.ALLOW:
            return None
        if decision.outcome is AdmissionOutcome.WARN:
            return CommandReply(
                f"<i>Stop spamming. Warning {decision.warnings}/"
                f"{decision.warning_cap - 1}.</i>"
            )
        if decision.outcome is AdmissionOutcome.BLOCK:
            return CommandReply(
                f"<i>You are blocked for {_format_duration(self._block_seconds)} "
                "due to repeated spamming</i>"
            )

        until = ""
        if decision.block_until is not None:
            until = f" (until {decision.block_until.strftime('%Y-%m-%d %H:%M')} UTC)"
        return CommandReply(
            "<i>You are blocked due to excessive bot command usage. "
            f"Wait until the cooldown expires{until}</i>"
        )


class RoleCheckMiddleware(Middleware):
    """
    Restricts group commands to members the host platform reports as admins.

    Private chats always pass. Membership lookup is delegated to the
    injected ``is_admin`` coroutine.
    """

    def __init__(self, is_admin: RoleChecker) -> None:
        self._is_admin = is_admin

    async def handle(self, request: CommandRequest) -> CommandReply | None:
        if request.is_private:
            return None

        try:
            allowed = await self._is_admin(request.chat_id, request.caller_id)
        except Exception as e:
            logger.error(
                "Role check failed for %s in %s: %s",
                request.caller_id, request.chat_id, e,
            )
            return CommandReply("<i>Unable to verify your access rights.</i>")

        if allowed:
            return None
        return CommandReply("<i>You must be an admin to use this command.</i>")


class ContentFilterMiddleware(Middleware):
    """Rejects ``add`` requests for sources on the block lists."""

    def __init__(
        self,
        config: ContentFilterConfig | None = None,
        commands: Sequence[str] = ("add",),
    ) -> None:
        self._config = config or ContentFilterConfig()
        self._commands = frozenset(commands)
        self._domains = [d.lower().lstrip(".") for d in self._config.blocked_domains]
        self._keywords = [k.lower() for k in self._config.blocked_keywords]

    def is_blocked(self, source: str) -> bool:
        lowered = source.lower()
        try:
            host = urlparse(lowered).hostname or ""
        except ValueError:
            host = ""

        if any(host == d or host.endswith("." + d) for d in self._domains):
            return True
        return any(k in lowered for k in self._keywords)

    async def handle(self, request: CommandRequest) -> CommandReply | None:
        if not self._config.enabled or request.command not in self._commands:
            return None

        source = request.argument
        if not source or not self.is_blocked(source):
            return None

        logger.info(
            "Rejected blocked source %s from caller %s in %s",
            source, request.caller_id, request.chat_id,
        )
        return CommandReply(
            f"<i>This source is not allowed</i>: {html.escape(source)}"
        )


class OwnerOnlyMiddleware(Middleware):
    """Restricts a command to the configured bot owner.

    With no owner configured, nobody passes.
    """

    def __init__(self, owner_id: str | None) -> None:
        self._owner_id = owner_id

    async def handle(self, request: CommandRequest) -> CommandReply | None:
        if self._owner_id is not None and request.caller_id == self._owner_id:
            return None
        logger.info(
            "Rejected owner-only /%s from caller %s", request.command, request.caller_id,
        )
        return CommandReply("<i>Reserved for owner only</i>")
