"""End-to-end ingestion: fake log stream -> store -> API."""

import pytest

from netflow.api import create_app
from netflow.repositories import TransferRecordRepository
from netflow.services.blockchain.backoff import ReconnectBackoff
from netflow.services.blockchain.log_subscriber import LogSubscriber
from netflow.services.transfer_decoder import RawLog
from netflow.utils.exceptions import SubscriptionError
from tests.factories import (
    BINANCE_ADDRESS,
    OUTSIDER_B,
    OUTSIDER_C,
    TOKEN_ADDRESS,
    FakeSource,
    FakeStream,
    RecordingSleep,
    count_records,
    count_snapshots,
    make_event,
    make_raw_log,
)


def make_subscriber(source, store, registries, sleep):
    return LogSubscriber(
        source=source,
        store=store,
        registries=registries,
        contract_address=TOKEN_ADDRESS,
        backoff=ReconnectBackoff(base_delay=1, max_delay=30, jitter=0),
        sleep=sleep,
    )


class TestIngestion:
    """Subscriber writing to a real store."""

    @pytest.mark.asyncio
    async def test_mixed_stream(self, store, binance_registry):
        raw = make_raw_log()
        logs = [
            make_raw_log(OUTSIDER_B, BINANCE_ADDRESS, 1000, tx_hash="0x" + "01" * 32),
            RawLog(raw.topics[:2], raw.data, 1, "0x" + "02" * 32),
            make_raw_log(OUTSIDER_B, OUTSIDER_C, 999, tx_hash="0x" + "03" * 32),
            make_raw_log(BINANCE_ADDRESS, OUTSIDER_C, 200, tx_hash="0x" + "04" * 32),
        ]
        stream = FakeStream(logs)
        subscriber = make_subscriber(
            FakeSource([stream]), store, [binance_registry], RecordingSleep()
        )
        stream.on_exhausted = subscriber.stop

        await subscriber.run()

        latest = await store.latest("binance")
        assert latest.outflow == "200"
        assert latest.cumulative_netflow == "800"
        assert await count_records(store) == 2
        assert await count_snapshots(store) == 2
        assert subscriber.stats.decode_errors == 1
        assert subscriber.stats.irrelevant_transfers == 1

        async with store.session_maker() as session:
            outflows = await TransferRecordRepository(session).find_by_tx_hash(
                "0x" + "04" * 32
            )
        assert len(outflows) == 1
        assert outflows[0].is_outflow
        assert outflows[0].amount == "200"

    @pytest.mark.asyncio
    async def test_irrelevant_transfer_leaves_latest_unchanged(
        self, store, binance_registry
    ):
        await store.record("binance", make_event(amount=500), 500, 0)
        before = await store.latest("binance")
        subscriber = make_subscriber(
            FakeSource([]), store, [binance_registry], RecordingSleep()
        )

        await subscriber.handle_log(make_raw_log(OUTSIDER_B, OUTSIDER_C, 10**20))

        after = await store.latest("binance")
        assert after.id == before.id
        assert after.cumulative_netflow == before.cumulative_netflow
        assert await count_records(store) == 1

    @pytest.mark.asyncio
    async def test_reconnect_produces_no_duplicates(self, store, binance_registry):
        """Two failed subscribes, then the stream resumes."""
        before_gap = FakeStream(
            [make_raw_log(amount=100, tx_hash="0x" + "0a" * 32)],
            error=SubscriptionError("provider disconnected"),
        )
        after_gap = FakeStream([make_raw_log(amount=50, tx_hash="0x" + "0b" * 32)])
        source = FakeSource(
            [
                before_gap,
                SubscriptionError("connection refused"),
                ConnectionError("connection refused"),
                after_gap,
            ]
        )
        sleep = RecordingSleep()
        subscriber = make_subscriber(source, store, [binance_registry], sleep)
        after_gap.on_exhausted = subscriber.stop

        await subscriber.run()

        assert len(source.calls) == 4
        assert sleep.delays == [1, 2, 4]
        assert await count_records(store) == 2
        assert (await store.latest("binance")).cumulative_netflow == "150"

    @pytest.mark.asyncio
    async def test_database_down_keeps_stream_open(
        self, unreachable_store, binance_registry
    ):
        """Every write fails but every log is still handled on one subscription."""
        stream = FakeStream(
            [
                make_raw_log(OUTSIDER_B, BINANCE_ADDRESS, 10, tx_hash="0x" + "0c" * 32),
                make_raw_log(BINANCE_ADDRESS, OUTSIDER_C, 20, tx_hash="0x" + "0d" * 32),
            ]
        )
        source = FakeSource([stream])
        sleep = RecordingSleep()
        subscriber = make_subscriber(source, unreachable_store, [binance_registry], sleep)
        stream.on_exhausted = subscriber.stop

        await subscriber.run()

        assert len(source.calls) == 1
        assert sleep.delays == []
        assert subscriber.stats.logs_received == 2
        assert subscriber.stats.store_errors == 2
        assert subscriber.stats.handler_errors == 0
        assert subscriber.stats.reconnects == 0
        assert stream.closed

    @pytest.mark.asyncio
    async def test_api_sees_ingested_netflow(
        self, aiohttp_client, store, binance_registry
    ):
        stream = FakeStream([make_raw_log(OUTSIDER_B, BINANCE_ADDRESS, 2**130)])
        subscriber = make_subscriber(
            FakeSource([stream]), store, [binance_registry], RecordingSleep()
        )
        stream.on_exhausted = subscriber.stop
        await subscriber.run()

        client = await aiohttp_client(
            create_app(store, [binance_registry], subscriber.stats)
        )
        resp = await client.get("/netflow")

        body = await resp.json()
        assert body["inflow"] == str(2**130)
        assert body["cumulative_netflow"] == str(2**130)
