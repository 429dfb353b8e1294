"""
Transfer record model.

Append-only ledger of every observed transfer that touched a
monitored address. Rows are never updated or deleted.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from netflow.config.constants import DIRECTION_INFLOW, DIRECTION_OUTFLOW
from netflow.models.base import Base


class TransferRecord(Base):
    """
    Observed token transfer.

    Amounts are stored as base-10 strings: token amounts are uint256
    and must not be narrowed to a fixed-width column type.
    """

    __tablename__ = "transactions"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Exchange the transfer was attributed to
    exchange: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )

    # Transaction identification
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    tx_hash: Mapped[str] = mapped_column(
        String(66), nullable=False, index=True
    )

    # Addresses (normalized to lowercase)
    from_address: Mapped[str] = mapped_column(String(42), nullable=False)
    to_address: Mapped[str] = mapped_column(String(42), nullable=False)

    # Raw token amount (decimal string)
    amount: Mapped[str] = mapped_column(Text, nullable=False)

    # inflow / outflow relative to the exchange
    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    # When the event was decoded
    observed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Insertion time
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TransferRecord(id={self.id}, exchange={self.exchange}, "
            f"tx_hash={self.tx_hash[:16]}..., amount={self.amount}, "
            f"direction={self.direction})>"
        )

    @property
    def is_inflow(self) -> bool:
        """Check if transfer moved funds into the exchange."""
        return self.direction == DIRECTION_INFLOW

    @property
    def is_outflow(self) -> bool:
        """Check if transfer moved funds out of the exchange."""
        return self.direction == DIRECTION_OUTFLOW
