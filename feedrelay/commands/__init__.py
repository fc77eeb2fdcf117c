"""Command surface: request types, middleware chain and subscription handlers.

Components:
- CommandRequest / CommandReply: one command and its reply
- Middleware / MiddlewareChain: ordered continue-or-reply checks
- AdmissionMiddleware: per-caller rate limiting (fails open)
- RoleCheckMiddleware: admin-only commands in group chats
- OwnerOnlyMiddleware: commands reserved for the bot owner
- ContentFilterMiddleware / ContentFilterConfig: blocked sources on add
- CommandRouter: command name to middleware chain and handler
- SubscriptionCommands / build_router: add, del, delall, set, pause, resume, list, send
"""

from feedrelay.commands.config import ContentFilterConfig
from feedrelay.commands.handlers import SubscriptionCommands, build_router
from feedrelay.commands.middleware import (
    AdmissionMiddleware,
    ContentFilterMiddleware,
    Middleware,
    MiddlewareChain,
    OwnerOnlyMiddleware,
    RoleCheckMiddleware,
)
from feedrelay.commands.router import CommandRouter
from feedrelay.commands.schemas import CommandReply, CommandRequest

__all__ = [
    "AdmissionMiddleware",
    "CommandReply",
    "CommandRequest",
    "CommandRouter",
    "ContentFilterConfig",
    "ContentFilterMiddleware",
    "Middleware",
    "MiddlewareChain",
    "OwnerOnlyMiddleware",
    "RoleCheckMiddleware",
    "SubscriptionCommands",
    "build_router",
]
