"""
Monitored address registry.

Normalized, immutable set of addresses belonging to one exchange.
Built once at startup; safe to share between tasks without locking.
"""

from collections.abc import Iterable, Iterator, Mapping

from loguru import logger

from netflow.utils.exceptions import ConfigurationError
from netflow.utils.validation import normalize_wallet_address


class AddressRegistry:
    """
    Addresses attributed to one exchange label.

    Membership is case-insensitive: every entry and every probe is
    lower-cased before comparison.
    """

    __slots__ = ("_label", "_addresses")

    def __init__(self, label: str, addresses: Iterable[str]) -> None:
        """
        Build registry, failing fast on malformed entries.

        Args:
            label: Exchange label (e.g. "binance")
            addresses: Configured address strings

        Raises:
            ConfigurationError: If label is empty or an address is malformed
        """
        if not label or not label.strip():
            raise ConfigurationError("Exchange label must not be empty")

        normalized = set()
        for address in addresses:
            try:
                normalized.add(normalize_wallet_address(address))
            except ValueError as e:
                raise ConfigurationError(
                    f"Malformed address for exchange {label!r}: {e}"
                ) from e

        self._label = label.strip()
        self._addresses = frozenset(normalized)

    @property
    def label(self) -> str:
        """Exchange label."""
        return self._label

    @property
    def addresses(self) -> frozenset[str]:
        return self._addresses

    def contains(self, address: str | None) -> bool:
        """
        Check if address belongs to this exchange.

        Malformed input is never a member.
        """
        if not address or not isinstance(address, str):
            return False
        return address.strip().lower() in self._addresses

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.contains(address)

    def __len__(self) -> int:
        return len(self._addresses)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._addresses))

    def __repr__(self) -> str:
        return f"<AddressRegistry(label={self._label}, addresses={len(self)})>"


def build_registries(
    exchanges: Mapping[str, Iterable[str]],
) -> list[AddressRegistry]:
    """
    Build one registry per configured exchange, in configuration order.

    Args:
        exchanges: Exchange label -> address strings

    Returns:
        List of registries

    Raises:
        ConfigurationError: If nothing is configured or any entry is malformed
    """
    if not exchanges:
        raise ConfigurationError("No exchanges configured")

    registries = [
        AddressRegistry(label, addresses)
        for label, addresses in exchanges.items()
    ]

    for registry in registries:
        logger.info(
            f"✅ Loaded {len(registry)} {registry.label} addresses"
        )

    return registries
