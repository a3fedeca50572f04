"""
Connection sessions.

The manager owns at most one live session and the event normalizer,
command forwarder and status poller bound to it.
"""

from .adapter import PrinterClientAdapter
from .events import EventNormalizer, PrinterEvent, Subscription, classify_error
from .flow import ConnectionFlowManager
from .forwarder import FORWARDED_COMMANDS, CommandForwarder
from .manager import PrinterConnectionManager
from .polling import ConnectionStateManager
from .session import ConnectionSession

__all__ = [
    "FORWARDED_COMMANDS",
    "CommandForwarder",
    "ConnectionFlowManager",
    "ConnectionSession",
    "ConnectionStateManager",
    "EventNormalizer",
    "PrinterClientAdapter",
    "PrinterConnectionManager",
    "PrinterEvent",
    "Subscription",
    "classify_error",
]
