"""
timestamping.runtime: the in-process execution substrate (host, context, events, value ledger).
"""

from .context import BlockEnv, CallContext, ContextError
from .events import Event, EventLog
from .host import ZERO_ADDRESS, Frame, Host, Receipt
from .treasury import Treasury

__all__ = [
    "BlockEnv",
    "CallContext",
    "ContextError",
    "Event",
    "EventLog",
    "Frame",
    "Host",
    "Receipt",
    "Treasury",
    "ZERO_ADDRESS",
]
