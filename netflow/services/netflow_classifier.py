"""Classify transfers as exchange inflow or outflow."""

from dataclasses import dataclass

from netflow.config.constants import DIRECTION_INFLOW, DIRECTION_OUTFLOW
from netflow.services.address_registry import AddressRegistry
from netflow.services.transfer_decoder import TransferEvent


@dataclass(frozen=True)
class ClassifiedFlow:
    """At most one of inflow/outflow is non-zero."""

    exchange: str
    inflow: int = 0
    outflow: int = 0

    @property
    def is_empty(self) -> bool:
        """Transfer does not touch the exchange."""
        return self.inflow == 0 and self.outflow == 0

    @property
    def delta(self) -> int:
        return self.inflow - self.outflow

    @property
    def direction(self) -> str | None:
        if self.inflow:
            return DIRECTION_INFLOW
        if self.outflow:
            return DIRECTION_OUTFLOW
        return None


def classify(event: TransferEvent, registry: AddressRegistry) -> ClassifiedFlow:
    """
    Classify a transfer against one exchange.

    A transfer into a monitored address is inflow, even if the sender
    is monitored too; otherwise a transfer out of one is outflow.

    Args:
        event: Decoded transfer
        registry: Exchange addresses

    Returns:
        ClassifiedFlow (empty if neither side is monitored)
    """
    if registry.contains(event.to_address):
        return ClassifiedFlow(registry.label, inflow=event.amount)
    if registry.contains(event.from_address):
        return ClassifiedFlow(registry.label, outflow=event.amount)
    return ClassifiedFlow(registry.label)
