"""Command request and reply types."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CommandRequest:
    """
    One command issued by a caller in a chat.

    Attributes:
        caller_id: User issuing the command (admission is tracked per caller).
        chat_id: Destination the command acts on.
        command: Command name without the leading slash or bot suffix.
        args: Whitespace-separated arguments after the command.
        chat_type: Host platform chat type ("private", "group", "supergroup", ...).
        topic_id: Topic the command was sent from, if any.
        reply_to_text: Text of the message this command replies to, if any.
    """

    caller_id: str
    chat_id: str
    command: str
    args: tuple[str, ...] = field(default_factory=tuple)
    chat_type: str = "private"
    topic_id: int | None = None
    reply_to_text: str | None = None

    @classmethod
    def parse(
        cls,
        text: str,
        caller_id: str,
        chat_id: str,
        chat_type: str = "private",
        topic_id: int | None = None,
        reply_to_text: str | None = None,
    ) -> "CommandRequest":
        """Build a request from raw message text such as ``/add@relaybot https://...``."""
        tokens = text.split()
        if not tokens or not tokens[0].startswith("/"):
            raise ValueError(f"Not a command: {text!r}")
        command = tokens[0][1:].split("@", 1)[0].lower()
        if not command:
            raise ValueError(f"Not a command: {text!r}")
        return cls(
            caller_id=caller_id,
            chat_id=chat_id,
            command=command,
            args=tuple(tokens[1:]),
            chat_type=chat_type,
            topic_id=topic_id,
            reply_to_text=reply_to_text,
        )

    @property
    def argument(self) -> str | None:
        """First argument, or None."""
        return self.args[0] if self.args else None

    @property
    def is_private(self) -> bool:
        return self.chat_type == "private"


@dataclass(frozen=True)
class CommandReply:
    """Text sent back to the caller (HTML parse mode)."""

    text: str
    disable_web_page_preview: bool = True
