"""Create transfer ledger and netflow tables.

Revision ID: 20261016_000001
Revises:
Create Date: 2026-10-16

Amounts are stored as TEXT decimal strings so uint256 values and the
signed cumulative netflow are never narrowed.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261016_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create transactions and netflows tables."""
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("exchange", sa.String(length=64), nullable=False),
        # Transaction identification
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("tx_hash", sa.String(length=66), nullable=False),
        # Addresses
        sa.Column("from_address", sa.String(length=42), nullable=False),
        sa.Column("to_address", sa.String(length=42), nullable=False),
        # Raw token amount
        sa.Column("amount", sa.Text(), nullable=False),
        sa.Column("direction", sa.String(length=10), nullable=False),  # inflow, outflow
        # Timestamps
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_exchange", "transactions", ["exchange"])
    op.create_index("ix_transactions_block_number", "transactions", ["block_number"])
    op.create_index("ix_transactions_tx_hash", "transactions", ["tx_hash"])

    op.create_table(
        "netflows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("exchange", sa.String(length=64), nullable=False),
        sa.Column("inflow", sa.Text(), nullable=False),
        sa.Column("outflow", sa.Text(), nullable=False),
        sa.Column("cumulative_netflow", sa.Text(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_netflows_exchange", "netflows", ["exchange"])


def downgrade() -> None:
    """Drop transactions and netflows tables."""
    op.drop_index("ix_netflows_exchange", table_name="netflows")
    op.drop_table("netflows")

    op.drop_index("ix_transactions_tx_hash", table_name="transactions")
    op.drop_index("ix_transactions_block_number", table_name="transactions")
    op.drop_index("ix_transactions_exchange", table_name="transactions")
    op.drop_table("transactions")
