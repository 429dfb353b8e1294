"""Unit tests for LogSubscriber with fake sources and stores."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from netflow.services.blockchain.backoff import ReconnectBackoff
from netflow.services.blockchain.log_subscriber import LogSubscriber, supervise
from netflow.services.transfer_decoder import TRANSFER_EVENT_TOPIC, RawLog
from netflow.utils.exceptions import (
    ConfigurationError,
    StoreError,
    SubscriptionError,
)
from tests.factories import (
    BINANCE_ADDRESS,
    OKX_ADDRESS,
    OUTSIDER_B,
    OUTSIDER_C,
    TOKEN_ADDRESS,
    FakeSource,
    FakeStream,
    RecordingSleep,
    make_raw_log,
)


@pytest.fixture
def mock_store():
    """Store whose record() succeeds."""
    store = AsyncMock()
    store.record = AsyncMock(
        return_value=SimpleNamespace(cumulative_netflow="0")
    )
    return store


def make_subscriber(source, store, registries, sleep=None):
    return LogSubscriber(
        source=source,
        store=store,
        registries=registries,
        contract_address=TOKEN_ADDRESS,
        backoff=ReconnectBackoff(base_delay=1, max_delay=30, jitter=0),
        sleep=sleep or RecordingSleep(),
    )


class TestHandleLog:
    """Tests for single-log processing."""

    @pytest.mark.asyncio
    async def test_inflow_is_recorded(self, mock_store, binance_registry):
        subscriber = make_subscriber(FakeSource([]), mock_store, [binance_registry])

        flows = await subscriber.handle_log(
            make_raw_log(OUTSIDER_B, BINANCE_ADDRESS, 1000)
        )

        assert len(flows) == 1
        exchange, event, inflow, outflow = mock_store.record.await_args.args
        assert exchange == "binance"
        assert event.amount == 1000
        assert (inflow, outflow) == (1000, 0)
        assert subscriber.stats.records_written == 1

    @pytest.mark.asyncio
    async def test_outflow_is_recorded(self, mock_store, binance_registry):
        subscriber = make_subscriber(FakeSource([]), mock_store, [binance_registry])

        await subscriber.handle_log(make_raw_log(BINANCE_ADDRESS, OUTSIDER_C, 200))

        _, _, inflow, outflow = mock_store.record.await_args.args
        assert (inflow, outflow) == (0, 200)

    @pytest.mark.asyncio
    async def test_irrelevant_transfer_writes_nothing(
        self, mock_store, binance_registry
    ):
        subscriber = make_subscriber(FakeSource([]), mock_store, [binance_registry])

        flows = await subscriber.handle_log(make_raw_log(OUTSIDER_B, OUTSIDER_C, 5))

        assert flows == []
        mock_store.record.assert_not_awaited()
        assert subscriber.stats.irrelevant_transfers == 1

    @pytest.mark.asyncio
    async def test_malformed_log_is_skipped(self, mock_store, binance_registry):
        """Fewer than 3 topics: no store mutation, no exception."""
        raw = make_raw_log()
        truncated = RawLog(raw.topics[:2], raw.data, raw.block_number, raw.transaction_hash)
        subscriber = make_subscriber(FakeSource([]), mock_store, [binance_registry])

        flows = await subscriber.handle_log(truncated)

        assert flows == []
        mock_store.record.assert_not_awaited()
        assert subscriber.stats.decode_errors == 1

    @pytest.mark.asyncio
    async def test_store_error_is_counted_and_ingestion_continues(
        self, mock_store, binance_registry
    ):
        mock_store.record.side_effect = [
            StoreError("database is locked"),
            SimpleNamespace(cumulative_netflow="7"),
        ]
        subscriber = make_subscriber(FakeSource([]), mock_store, [binance_registry])

        first = await subscriber.handle_log(make_raw_log(amount=3))
        second = await subscriber.handle_log(make_raw_log(amount=7))

        assert first == []
        assert len(second) == 1
        assert subscriber.stats.store_errors == 1
        assert subscriber.stats.records_written == 1
        assert "database is locked" in subscriber.stats.last_store_error

    @pytest.mark.asyncio
    async def test_cross_exchange_transfer_updates_both(
        self, mock_store, binance_registry, okx_registry
    ):
        subscriber = make_subscriber(
            FakeSource([]), mock_store, [binance_registry, okx_registry]
        )

        await subscriber.handle_log(make_raw_log(BINANCE_ADDRESS, OKX_ADDRESS, 9))

        calls = [c.args for c in mock_store.record.await_args_list]
        assert [(c[0], c[2], c[3]) for c in calls] == [
            ("binance", 0, 9),
            ("okx", 9, 0),
        ]


class TestRun:
    """Tests for the subscription loop."""

    @pytest.mark.asyncio
    async def test_processes_logs_in_delivery_order(
        self, mock_store, binance_registry
    ):
        stream = FakeStream(
            [make_raw_log(amount=n, block_number=n) for n in (1, 2, 3)]
        )
        source = FakeSource([stream])
        subscriber = make_subscriber(source, mock_store, [binance_registry])
        stream.on_exhausted = subscriber.stop

        await subscriber.run()

        amounts = [c.args[1].amount for c in mock_store.record.await_args_list]
        assert amounts == [1, 2, 3]
        assert source.calls == [(TOKEN_ADDRESS, TRANSFER_EVENT_TOPIC)]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_reconnects_after_two_failures(self, mock_store, binance_registry):
        """Fails twice, succeeds on the third attempt with growing delays."""
        stream = FakeStream([make_raw_log(amount=10), make_raw_log(amount=20)])
        source = FakeSource(
            [
                SubscriptionError("connection refused"),
                ConnectionError("reset by peer"),
                stream,
            ]
        )
        sleep = RecordingSleep()
        subscriber = make_subscriber(source, mock_store, [binance_registry], sleep)
        stream.on_exhausted = subscriber.stop

        await subscriber.run()

        assert len(source.calls) == 3
        assert sleep.delays == [1, 2]
        assert sleep.delays[0] < sleep.delays[1]
        assert mock_store.record.await_count == 2
        assert subscriber.stats.subscribe_attempts == 3
        assert subscriber.stats.reconnects == 2

    @pytest.mark.asyncio
    async def test_dropped_stream_resubscribes(self, mock_store, binance_registry):
        """A stream error mid-way triggers a new subscription."""
        first = FakeStream([make_raw_log(amount=1)], error=SubscriptionError("closed"))
        second = FakeStream([make_raw_log(amount=2)])
        source = FakeSource([first, second])
        sleep = RecordingSleep()
        subscriber = make_subscriber(source, mock_store, [binance_registry], sleep)
        second.on_exhausted = subscriber.stop

        await subscriber.run()

        assert len(source.calls) == 2
        assert first.closed and second.closed
        # Backoff was reset by the successful first subscription
        assert sleep.delays == [1]
        assert mock_store.record.await_count == 2

    @pytest.mark.asyncio
    async def test_stream_end_is_treated_as_disconnect(
        self, mock_store, binance_registry
    ):
        empty = FakeStream([])
        final = FakeStream([])
        source = FakeSource([empty, final])
        sleep = RecordingSleep()
        subscriber = make_subscriber(source, mock_store, [binance_registry], sleep)
        final.on_exhausted = subscriber.stop

        await subscriber.run()

        assert len(source.calls) == 2
        assert subscriber.stats.last_connection_error == "stream ended"
        assert subscriber.stats.connected is False

    @pytest.mark.asyncio
    async def test_handler_failure_keeps_subscription_open(
        self, mock_store, binance_registry
    ):
        """A raw error from the store is counted, not treated as a drop."""
        mock_store.record.side_effect = [
            ConnectionRefusedError(111, "Connect call failed"),
            SimpleNamespace(cumulative_netflow="2"),
        ]
        stream = FakeStream([make_raw_log(amount=1), make_raw_log(amount=2)])
        source = FakeSource([stream])
        sleep = RecordingSleep()
        subscriber = make_subscriber(source, mock_store, [binance_registry], sleep)
        stream.on_exhausted = subscriber.stop

        await subscriber.run()

        assert len(source.calls) == 1
        assert sleep.delays == []
        assert mock_store.record.await_count == 2
        assert subscriber.stats.logs_received == 2
        assert subscriber.stats.handler_errors == 1
        assert subscriber.stats.records_written == 1
        assert subscriber.stats.reconnects == 0

    @pytest.mark.asyncio
    async def test_stop_before_run_does_nothing(self, mock_store, binance_registry):
        source = FakeSource([])
        subscriber = make_subscriber(source, mock_store, [binance_registry])
        subscriber.stop()

        await subscriber.run()

        assert source.calls == []

    def test_malformed_token_address_rejected(self, mock_store, binance_registry):
        with pytest.raises(ConfigurationError):
            LogSubscriber(FakeSource([]), mock_store, [binance_registry], "0xbad")


class TestSupervise:
    """Tests for the supervisor."""

    @pytest.mark.asyncio
    async def test_restarts_after_unexpected_error(
        self, mock_store, binance_registry
    ):
        stream = FakeStream([make_raw_log(amount=1)])
        source = FakeSource([RuntimeError("boom"), stream])
        subscriber = make_subscriber(source, mock_store, [binance_registry])
        stream.on_exhausted = subscriber.stop
        sleep = RecordingSleep()

        await supervise(subscriber, restart_delay=5, sleep=sleep)

        assert subscriber.stats.restarts == 1
        assert sleep.delays == [5]
        assert mock_store.record.await_count == 1

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(
        self, mock_store, binance_registry
    ):
        source = FakeSource([ConfigurationError("bad filter")])
        subscriber = make_subscriber(source, mock_store, [binance_registry])

        with pytest.raises(ConfigurationError):
            await supervise(subscriber, restart_delay=0, sleep=RecordingSleep())
