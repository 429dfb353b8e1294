"""
Netflow persistent store.

Write path: append a ledger row and a new cumulative snapshot in one
transaction. Read path: latest snapshot per exchange.

The store owns the session factory; callers receive the store, never
a session.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from netflow.config.constants import DIRECTION_INFLOW, DIRECTION_OUTFLOW
from netflow.models.netflow_snapshot import NetflowSnapshot
from netflow.repositories.netflow_snapshot_repository import (
    NetflowSnapshotRepository,
)
from netflow.repositories.transfer_record_repository import (
    TransferRecordRepository,
)
from netflow.services.transfer_decoder import TransferEvent
from netflow.utils.exceptions import STORAGE_ERRORS, StoreError
from netflow.utils.security import mask_tx_hash


class NetflowStore:
    """
    Transfer ledger and netflow snapshots.

    Only one writer (the log subscriber) is expected; cumulative values
    are read and written inside the same transaction.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize store.

        Args:
            session_maker: Async session factory
        """
        self.session_maker = session_maker

    async def record(
        self,
        exchange: str,
        event: TransferEvent,
        inflow: int,
        outflow: int,
    ) -> NetflowSnapshot:
        """
        Record a transfer and update the exchange netflow atomically.

        Steps (single transaction):
        1. Insert ledger row
        2. Read latest snapshot for exchange (zero if none)
        3. Insert snapshot with cumulative = prior + inflow - outflow

        Args:
            exchange: Exchange label
            event: Decoded transfer
            inflow: Amount into the exchange
            outflow: Amount out of the exchange

        Returns:
            The new snapshot

        Raises:
            ValueError: If an amount is negative
            StoreError: If the database fails or is unreachable (nothing committed)
        """
        if inflow < 0 or outflow < 0:
            raise ValueError("inflow and outflow must be non-negative")

        direction = DIRECTION_INFLOW if inflow else DIRECTION_OUTFLOW

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    ledger = TransferRecordRepository(session)
                    snapshots = NetflowSnapshotRepository(session)

                    await ledger.create(
                        exchange=exchange,
                        block_number=event.block_number,
                        tx_hash=event.transaction_hash,
                        from_address=event.from_address,
                        to_address=event.to_address,
                        amount=str(event.amount),
                        direction=direction,
                        observed_at=event.observed_at,
                    )

                    prior = await snapshots.get_cumulative(exchange)
                    cumulative = prior + inflow - outflow

                    snapshot = await snapshots.create(
                        exchange=exchange,
                        inflow=str(inflow),
                        outflow=str(outflow),
                        cumulative_netflow=str(cumulative),
                    )
        except STORAGE_ERRORS as e:
            logger.error(
                f"[Store] Failed to record {exchange} transfer "
                f"{mask_tx_hash(event.transaction_hash)}: {e}"
            )
            raise StoreError(f"Failed to record transfer: {e}") from e

        logger.debug(
            f"[Store] {exchange} {direction} {event.amount} "
            f"(tx {mask_tx_hash(event.transaction_hash)}), "
            f"cumulative={cumulative}"
        )
        return snapshot

    async def latest(self, exchange: str) -> NetflowSnapshot | None:
        """
        Get current netflow for an exchange.

        Args:
            exchange: Exchange label

        Returns:
            Highest-id snapshot, or None if nothing recorded

        Raises:
            StoreError: If the database is unavailable
        """
        try:
            async with self.session_maker() as session:
                return await NetflowSnapshotRepository(session).get_latest(
                    exchange
                )
        except STORAGE_ERRORS as e:
            logger.error(f"[Store] Failed to read {exchange} netflow: {e}")
            raise StoreError(f"Failed to read netflow: {e}") from e

    async def history(
        self, exchange: str, limit: int = 100
    ) -> list[NetflowSnapshot]:
        """Recent snapshots for an exchange, newest first."""
        try:
            async with self.session_maker() as session:
                return await NetflowSnapshotRepository(session).get_history(
                    exchange, limit=limit
                )
        except STORAGE_ERRORS as e:
            logger.error(f"[Store] Failed to read {exchange} history: {e}")
            raise StoreError(f"Failed to read netflow history: {e}") from e
