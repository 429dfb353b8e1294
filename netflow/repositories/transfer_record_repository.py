"""
Transfer record repository.

Append-only ledger access.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from netflow.models.transfer_record import TransferRecord
from netflow.repositories.base import BaseRepository


class TransferRecordRepository(BaseRepository[TransferRecord]):
    """Repository for the transfer ledger."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(TransferRecord, session)

    async def find_by_tx_hash(self, tx_hash: str) -> list[TransferRecord]:
        """All ledger rows for a transaction (one per matching exchange)."""
        return await self.find_all(tx_hash=tx_hash.lower())

    async def find_by_exchange(
        self, exchange: str, limit: int | None = None
    ) -> list[TransferRecord]:
        return await self.find_all(limit=limit, exchange=exchange)
