"""
I/O Module: Transport lifecycle, report replay, change notification.

- Transport protocol consumed by the connection tracker
- ReplayTransport for already-decoded JSON-lines sessions
- Signal fan-out to presentation listeners
"""

from .signals import Signal
from .transport import Transport, ReplayTransport

__all__ = [
    'Signal',
    'Transport',
    'ReplayTransport',
]
