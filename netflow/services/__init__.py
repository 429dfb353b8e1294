"""
Netflow services.

Pure pieces (registry, decoder, classifier) plus the persistent store
and the chain log subscriber.
"""

from netflow.services.address_registry import AddressRegistry, build_registries
from netflow.services.netflow_classifier import ClassifiedFlow, classify
from netflow.services.netflow_store import NetflowStore
from netflow.services.transfer_decoder import (
    TRANSFER_EVENT_TOPIC,
    RawLog,
    TransferEvent,
    decode_transfer,
)

__all__ = [
    "AddressRegistry",
    "build_registries",
    "ClassifiedFlow",
    "classify",
    "NetflowStore",
    "RawLog",
    "TransferEvent",
    "TRANSFER_EVENT_TOPIC",
    "decode_transfer",
]
