"""
Log subscription sources.

A LogSource opens a filtered log subscription and returns a LogStream:
an async iterator of provider log entries that ends (or raises) when
the connection drops.
"""

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3, WebSocketProvider

from netflow.services.transfer_decoder import RawLog
from netflow.utils.exceptions import SubscriptionError
from netflow.utils.security import mask_address, mask_url

RawLogLike = RawLog | Mapping[str, Any]


class LogStream(Protocol):
    """Open subscription."""

    def __aiter__(self) -> AsyncIterator[RawLogLike]:
        ...

    async def close(self) -> None:
        ...


class LogSource(Protocol):
    """Capability to subscribe to contract logs."""

    async def subscribe(self, address: str, topic: str) -> LogStream:
        """
        Open a subscription for logs of `address` with topics[0] == `topic`.

        Raises:
            SubscriptionError: If the subscription cannot be opened
        """
        ...


class Web3LogStream:
    """eth_subscribe("logs") stream over a persistent websocket."""

    def __init__(self, w3: AsyncWeb3, subscription_id: str) -> None:
        self.w3 = w3
        self.subscription_id = subscription_id

    async def __aiter__(self) -> AsyncIterator[RawLogLike]:
        try:
            async for payload in self.w3.socket.process_subscriptions():
                if isinstance(payload, Mapping) and "result" in payload:
                    yield payload["result"]
                else:
                    yield payload
        except Exception as e:
            raise SubscriptionError(f"Subscription stream failed: {e}") from e

    async def close(self) -> None:
        """Unsubscribe and drop the connection, ignoring a dead socket."""
        try:
            await self.w3.eth.unsubscribe(self.subscription_id)
        except Exception as e:
            logger.debug(f"[LogSource] Unsubscribe failed: {e}")
        try:
            await self.w3.provider.disconnect()
        except Exception as e:
            logger.debug(f"[LogSource] Disconnect failed: {e}")


class Web3LogSource:
    """
    LogSource backed by web3's WebSocketProvider.

    A new connection is opened for every subscription, so a dropped
    socket is recovered by simply subscribing again.
    """

    def __init__(self, ws_url: str) -> None:
        """
        Initialize source.

        Args:
            ws_url: Websocket RPC endpoint (ws:// or wss://)
        """
        self.ws_url = ws_url

    async def subscribe(self, address: str, topic: str) -> Web3LogStream:
        logger.info(
            f"[LogSource] Connecting to {mask_url(self.ws_url)} "
            f"for logs of {mask_address(address)}"
        )
        try:
            w3 = await AsyncWeb3(WebSocketProvider(self.ws_url))
        except Exception as e:
            raise SubscriptionError(f"Connection failed: {e}") from e

        try:
            subscription_id = await w3.eth.subscribe(
                "logs",
                {
                    "address": to_checksum_address(address),
                    "topics": [topic],
                },
            )
        except Exception as e:
            try:
                await w3.provider.disconnect()
            except Exception as disconnect_error:
                logger.debug(f"[LogSource] Disconnect failed: {disconnect_error}")
            raise SubscriptionError(f"eth_subscribe failed: {e}") from e

        logger.info(f"[LogSource] Subscribed, id={subscription_id}")
        return Web3LogStream(w3, subscription_id)
