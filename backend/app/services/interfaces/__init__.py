"""
Outbound messaging interface and its no-bot fallback.
"""

from .notifier import BookingDetails, Notifier
from .log_notifier import LogNotifier

__all__ = ['BookingDetails', 'Notifier', 'LogNotifier']
