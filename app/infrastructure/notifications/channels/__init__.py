"""Channel sender interface."""

from infrastructure.notifications.channels.base import ChannelSender

__all__ = ["ChannelSender"]
