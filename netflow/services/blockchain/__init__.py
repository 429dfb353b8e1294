"""
Chain log ingestion.

Opens a Transfer log subscription, feeds every log through
decode -> classify -> store, and reconnects with backoff.
"""

from .backoff import ReconnectBackoff
from .log_source import LogSource, LogStream, Web3LogSource
from .log_subscriber import LogSubscriber, SubscriberStats, supervise

__all__ = [
    "LogSource",
    "LogStream",
    "LogSubscriber",
    "ReconnectBackoff",
    "SubscriberStats",
    "Web3LogSource",
    "supervise",
]
