"""
Netflow snapshot model.

One row per netflow update. The current value for an exchange is the
row with the greatest id for that exchange; rows are never mutated.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from netflow.models.base import Base


class NetflowSnapshot(Base):
    """
    Netflow update for one exchange.

    inflow/outflow hold the delta of this update, cumulative_netflow the
    running sum of (inflow - outflow) over every update for the exchange.
    All three are decimal strings; cumulative_netflow may be negative.
    """

    __tablename__ = "netflows"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    exchange: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )

    inflow: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    outflow: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    cumulative_netflow: Mapped[str] = mapped_column(
        Text, nullable=False, default="0"
    )

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<NetflowSnapshot(id={self.id}, exchange={self.exchange}, "
            f"inflow={self.inflow}, outflow={self.outflow}, "
            f"cumulative={self.cumulative_netflow})>"
        )

    @property
    def cumulative(self) -> int:
        """Cumulative netflow as integer."""
        return int(self.cumulative_netflow)

    @property
    def delta(self) -> int:
        """Netflow of this single update."""
        return int(self.inflow) - int(self.outflow)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize for the HTTP API.

        Amounts stay strings so large values survive JSON clients
        that parse numbers as doubles.
        """
        last_updated = self.last_updated
        if last_updated is not None and last_updated.tzinfo is None:
            # SQLite hands back naive values; they were written as UTC
            last_updated = last_updated.replace(tzinfo=UTC)
        return {
            "exchange": self.exchange,
            "inflow": self.inflow,
            "outflow": self.outflow,
            "cumulative_netflow": self.cumulative_netflow,
            "last_updated": last_updated.isoformat() if last_updated else None,
        }
