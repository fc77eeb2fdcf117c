"""feedrelay - delivers new feed items to subscribed chats."""

__version__ = "0.1.0"
