"""
Chain log subscriber.

Long-lived task and sole writer of the netflow tables. Logs are handled
strictly one at a time, in delivery order, so two deltas for the same
exchange are never in flight together.

Failure handling:
- malformed log: logged, counted, skipped
- store failure: logged, counted, next log processed
- any other failure while handling a log: logged, counted, next log
  processed; the subscription stays open
- subscription dropped or failed to open: resubscribe with backoff

There is no resume cursor: transfers emitted while disconnected are
not replayed.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from netflow.config.constants import SUBSCRIBER_RESTART_DELAY
from netflow.services.address_registry import AddressRegistry
from netflow.services.netflow_classifier import ClassifiedFlow, classify
from netflow.services.netflow_store import NetflowStore
from netflow.services.transfer_decoder import (
    TRANSFER_EVENT_TOPIC,
    decode_transfer,
)
from netflow.utils.exceptions import (
    CONNECTION_ERRORS,
    ConfigurationError,
    DecodeError,
    StoreError,
)
from netflow.utils.security import mask_address, mask_tx_hash
from netflow.utils.validation import normalize_wallet_address

from .backoff import ReconnectBackoff
from .log_source import LogSource, RawLogLike

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class SubscriberStats:
    """Counters exposed on the health endpoint."""

    connected: bool = False
    subscribe_attempts: int = 0
    reconnects: int = 0
    restarts: int = 0
    logs_received: int = 0
    decode_errors: int = 0
    irrelevant_transfers: int = 0
    records_written: int = 0
    store_errors: int = 0
    handler_errors: int = 0
    last_store_error: str | None = None
    last_connection_error: str | None = None
    last_log_at: datetime | None = None
    last_block: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.last_log_at:
            data["last_log_at"] = self.last_log_at.isoformat()
        return data


class LogSubscriber:
    """
    Feeds subscribed Transfer logs through decode -> classify -> store.

    Example:
        subscriber = LogSubscriber(
            source=Web3LogSource(settings.rpc_url),
            store=NetflowStore(session_maker),
            registries=build_registries(settings.exchanges),
            contract_address=settings.token_address,
        )
        await subscriber.run()
    """

    def __init__(
        self,
        source: LogSource,
        store: NetflowStore,
        registries: Sequence[AddressRegistry],
        contract_address: str,
        backoff: ReconnectBackoff | None = None,
        sleep: Sleep = asyncio.sleep,
        stats: SubscriberStats | None = None,
    ) -> None:
        """
        Initialize subscriber.

        Args:
            source: Log subscription capability
            store: Netflow store (write path)
            registries: One registry per monitored exchange
            contract_address: Token contract to watch
            backoff: Reconnect delay schedule
            sleep: Awaitable sleep (injectable for tests)
            stats: Shared counters (created if omitted)

        Raises:
            ConfigurationError: If contract address is malformed
        """
        try:
            self.contract_address = normalize_wallet_address(contract_address)
        except ValueError as e:
            raise ConfigurationError(f"Malformed token address: {e}") from e

        self.source = source
        self.store = store
        self.registries = tuple(registries)
        self.backoff = backoff or ReconnectBackoff()
        self.sleep = sleep
        self.stats = stats or SubscriberStats()
        self._stop_event = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask run() to return after the current log."""
        self._stop_event.set()

    async def run(self) -> None:
        """
        Subscribe and process logs until stop() is called.

        Connection-level errors never escape; anything else propagates
        to the supervisor.
        """
        logger.info(
            f"[Subscriber] Starting for token "
            f"{mask_address(self.contract_address)}, exchanges: "
            f"{', '.join(r.label for r in self.registries)}"
        )

        while not self.stopped:
            attempt = self.backoff.failures + 1
            self.stats.subscribe_attempts += 1

            try:
                stream = await self.source.subscribe(
                    self.contract_address, TRANSFER_EVENT_TOPIC
                )
            except CONNECTION_ERRORS as e:
                self.stats.last_connection_error = str(e)
                logger.warning(
                    f"[Subscriber] Subscribe attempt {attempt} failed: {e}"
                )
            else:
                self.backoff.reset()
                self.stats.connected = True
                logger.success(
                    f"[Subscriber] Subscribe attempt {attempt} succeeded"
                )
                await self._consume(stream)

            if self.stopped:
                break

            delay = self.backoff.next_delay()
            self.stats.reconnects += 1
            logger.info(f"[Subscriber] Reconnecting in {delay:.1f}s...")
            await self.sleep(delay)

        logger.info("[Subscriber] Stopped")

    async def _consume(self, stream) -> None:
        """Drain one subscription until it ends, fails, or we stop."""
        try:
            async for raw_log in stream:
                # Only the stream itself can end the subscription
                try:
                    await self.handle_log(raw_log)
                except Exception as e:
                    self.stats.handler_errors += 1
                    logger.exception(f"[Subscriber] Failed to process log: {e}")
                if self.stopped:
                    return
            logger.warning("[Subscriber] Subscription stream ended")
            self.stats.last_connection_error = "stream ended"
        except CONNECTION_ERRORS as e:
            self.stats.last_connection_error = str(e)
            logger.warning(f"[Subscriber] Subscription dropped: {e}")
        finally:
            self.stats.connected = False
            await stream.close()

    async def handle_log(self, raw_log: RawLogLike) -> list[ClassifiedFlow]:
        """
        Process one log.

        Args:
            raw_log: Provider log entry

        Returns:
            Non-empty flows that were persisted
        """
        self.stats.logs_received += 1
        self.stats.last_log_at = datetime.now(UTC)

        try:
            event = decode_transfer(raw_log)
        except DecodeError as e:
            self.stats.decode_errors += 1
            logger.warning(f"[Subscriber] Skipping malformed log: {e}")
            return []

        self.stats.last_block = event.block_number

        flows = [
            flow
            for flow in (classify(event, registry) for registry in self.registries)
            if not flow.is_empty
        ]
        if not flows:
            self.stats.irrelevant_transfers += 1
            return []

        written = []
        for flow in flows:
            try:
                snapshot = await self.store.record(
                    flow.exchange, event, flow.inflow, flow.outflow
                )
            except StoreError as e:
                self.stats.store_errors += 1
                self.stats.last_store_error = str(e)
                logger.error(
                    f"[Subscriber] Lost {flow.exchange} {flow.direction} of "
                    f"{event.amount} (tx {mask_tx_hash(event.transaction_hash)}, "
                    f"block {event.block_number}): {e}"
                )
                continue

            self.stats.records_written += 1
            written.append(flow)
            logger.info(
                f"[Subscriber] {flow.exchange} {flow.direction} {event.amount} "
                f"at block {event.block_number}, "
                f"cumulative={snapshot.cumulative_netflow}"
            )

        return written


async def supervise(
    subscriber: LogSubscriber,
    restart_delay: float = SUBSCRIBER_RESTART_DELAY,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """
    Keep the subscriber running.

    An unexpected exception restarts it after `restart_delay`; only a
    clean stop or ConfigurationError ends supervision.
    """
    while True:
        try:
            await subscriber.run()
            return
        except ConfigurationError:
            raise
        except Exception as e:
            subscriber.stats.restarts += 1
            subscriber.stats.connected = False
            logger.exception(
                f"[Supervisor] Subscriber crashed ({e}), "
                f"restart #{subscriber.stats.restarts} in {restart_delay}s"
            )

        if subscriber.stopped:
            return
        await sleep(restart_delay)
