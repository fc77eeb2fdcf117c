"""Command routing: name -> (middleware chain, handler)."""

import logging
from collections.abc import Awaitable, Callable, Sequence

from feedrelay.commands.middleware import Middleware, MiddlewareChain
from feedrelay.commands.schemas import CommandReply, CommandRequest

logger = logging.getLogger(__name__)

Handler = Callable[[CommandRequest], Awaitable[CommandReply]]

GENERIC_FAILURE_REPLY = "<i>Something went wrong. Please try again later.</i>"


class CommandRouter:
    """
    Maps command names to handlers.

    ``middlewares`` given to the router run before every command (admission
    control goes here); per-command middlewares run after them.

    Usage:
        router = CommandRouter([AdmissionMiddleware(controller)])
        router.register("add", handlers.add, [role_check, content_filter])
        reply = await router.dispatch(CommandRequest.parse(text, user_id, chat_id))
    """

    def __init__(self, middlewares: Sequence[Middleware] = ()) -> None:
        self._base_chain = MiddlewareChain(middlewares)
        self._routes: dict[str, tuple[MiddlewareChain, Handler]] = {}

    @property
    def commands(self) -> list[str]:
        return sorted(self._routes)

    def register(
        self,
        command: str,
        handler: Handler,
        middlewares: Sequence[Middleware] = (),
    ) -> None:
        name = command.lstrip("/").lower()
        if name in self._routes:
            raise ValueError(f"Command already registered: {name}")
        self._routes[name] = (self._base_chain.extend(middlewares), handler)

    async def dispatch(self, request: CommandRequest) -> CommandReply | None:
        """Run a request through its chain and handler.

        Returns:
            The reply to send, or None for an unknown command.
        """
        route = self._routes.get(request.command)
        if route is None:
            logger.debug("Ignoring unknown command /%s", request.command)
            return None

        chain, handler = route
        reply = await chain.run(request)
        if reply is not None:
            return reply

        try:
            return await handler(request)
        except Exception:
            logger.exception(
                "Handler for /%s failed in chat %s", request.command, request.chat_id,
            )
            return CommandReply(GENERIC_FAILURE_REPLY)
