"""
External integrations. The Telegram Bot API client lives here so services
only ever see the Notifier interface.
"""

from .telegram import build_notifier, create_bot

__all__ = ['build_notifier', 'create_bot']
