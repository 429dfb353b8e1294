"""
Transfer log decoding.

Turns a raw ERC-20 Transfer log into a TransferEvent. Pure: no I/O.

Layout of a Transfer log:
- topics[0]: keccak256("Transfer(address,address,uint256)")
- topics[1]: from, left-padded to 32 bytes
- topics[2]: to, left-padded to 32 bytes
- data: amount, big-endian unsigned integer
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from eth_utils import keccak, to_bytes, to_hex

from netflow.config.constants import (
    ADDRESS_SIZE,
    TOPIC_SIZE,
    TRANSFER_EVENT_SIGNATURE,
    TRANSFER_TOPIC_COUNT,
)
from netflow.utils.exceptions import DecodeError

TRANSFER_EVENT_TOPIC_BYTES = keccak(text=TRANSFER_EVENT_SIGNATURE)
TRANSFER_EVENT_TOPIC = to_hex(TRANSFER_EVENT_TOPIC_BYTES)


def _as_bytes(value: Any, name: str) -> bytes:
    """Accept bytes-like values or 0x hex strings."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return to_bytes(hexstr=value)
        except ValueError as e:
            raise DecodeError(f"{name} is not valid hex: {value!r}") from e
    raise DecodeError(f"{name} has unsupported type {type(value).__name__}")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise DecodeError(f"{name} has unsupported type bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        except ValueError as e:
            raise DecodeError(f"{name} is not an integer: {value!r}") from e
    raise DecodeError(f"{name} has unsupported type {type(value).__name__}")


def _as_hash(value: Any) -> str:
    if isinstance(value, str):
        return value.lower()
    return to_hex(_as_bytes(value, "transactionHash"))


@dataclass(frozen=True)
class RawLog:
    """Log entry as delivered by the provider."""

    topics: tuple[bytes, ...]
    data: bytes
    block_number: int
    transaction_hash: str

    @classmethod
    def from_web3(cls, log: Mapping[str, Any]) -> "RawLog":
        """
        Normalize a provider log (JSON-RPC dict or web3 AttributeDict).

        Raises:
            DecodeError: If a field is missing or has the wrong shape
        """
        try:
            topics = log["topics"]
            data = log["data"]
            block_number = log["blockNumber"]
            tx_hash = log["transactionHash"]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Log is missing field {e}", raw_log=log) from e

        if isinstance(topics, (str, bytes)) or not isinstance(topics, Sequence):
            raise DecodeError(
                f"topics must be a list, got {type(topics).__name__}", raw_log=log
            )

        return cls(
            topics=tuple(_as_bytes(t, "topic") for t in topics),
            data=_as_bytes(data, "data"),
            block_number=_as_int(block_number, "blockNumber"),
            transaction_hash=_as_hash(tx_hash),
        )


@dataclass(frozen=True)
class TransferEvent:
    """Decoded token transfer. amount is an unbounded int (uint256 on chain)."""

    from_address: str
    to_address: str
    amount: int
    block_number: int
    transaction_hash: str
    observed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def _topic_address(topic: bytes, name: str) -> str:
    # High-order 12 bytes are padding and deliberately not checked
    if len(topic) != TOPIC_SIZE:
        raise DecodeError(
            f"{name} topic must be {TOPIC_SIZE} bytes, got {len(topic)}"
        )
    return to_hex(topic[-ADDRESS_SIZE:])


def decode_transfer(
    raw_log: RawLog | Mapping[str, Any],
    observed_at: datetime | None = None,
) -> TransferEvent:
    """
    Decode a Transfer log.

    Args:
        raw_log: RawLog or provider log mapping
        observed_at: Observation time (default: now, UTC)

    Returns:
        TransferEvent

    Raises:
        DecodeError: If the log is not a well-formed Transfer log
    """
    if not isinstance(raw_log, RawLog):
        raw_log = RawLog.from_web3(raw_log)

    topics = raw_log.topics
    if len(topics) < TRANSFER_TOPIC_COUNT:
        raise DecodeError(
            f"Transfer log needs {TRANSFER_TOPIC_COUNT} topics, "
            f"got {len(topics)}",
            raw_log=raw_log,
        )

    if topics[0] != TRANSFER_EVENT_TOPIC_BYTES:
        raise DecodeError(
            f"Unexpected event signature {to_hex(topics[0])}",
            raw_log=raw_log,
        )

    if not raw_log.data:
        raise DecodeError("Transfer log has empty data", raw_log=raw_log)

    return TransferEvent(
        from_address=_topic_address(topics[1], "from"),
        to_address=_topic_address(topics[2], "to"),
        amount=int.from_bytes(raw_log.data, "big"),
        block_number=raw_log.block_number,
        transaction_hash=raw_log.transaction_hash,
        observed_at=observed_at or datetime.now(UTC),
    )
