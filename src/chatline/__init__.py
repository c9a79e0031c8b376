"""Chatline - messaging backend with chats, groups and image uploads."""

__version__ = "0.1.0"
