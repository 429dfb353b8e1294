"""
Netflow snapshot repository.

The current netflow of an exchange is its highest-id snapshot row.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from netflow.models.netflow_snapshot import NetflowSnapshot
from netflow.repositories.base import BaseRepository


class NetflowSnapshotRepository(BaseRepository[NetflowSnapshot]):
    """Repository for netflow snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(NetflowSnapshot, session)

    async def get_latest(self, exchange: str) -> NetflowSnapshot | None:
        """
        Get the most recent snapshot for an exchange.

        Args:
            exchange: Exchange label

        Returns:
            Snapshot with the greatest id, or None if nothing recorded
        """
        stmt = (
            select(NetflowSnapshot)
            .where(NetflowSnapshot.exchange == exchange)
            .order_by(NetflowSnapshot.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_cumulative(self, exchange: str) -> int:
        """Current cumulative netflow, zero if nothing recorded."""
        latest = await self.get_latest(exchange)
        return latest.cumulative if latest else 0

    async def get_history(
        self, exchange: str, limit: int = 100
    ) -> list[NetflowSnapshot]:
        """
        Get recent snapshots for an exchange, newest first.

        Args:
            exchange: Exchange label
            limit: Max number of rows

        Returns:
            List of snapshots
        """
        stmt = (
            select(NetflowSnapshot)
            .where(NetflowSnapshot.exchange == exchange)
            .order_by(NetflowSnapshot.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
