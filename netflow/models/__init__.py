"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from netflow.models.base import Base
from netflow.models.netflow_snapshot import NetflowSnapshot
from netflow.models.transfer_record import TransferRecord

__all__ = [
    "Base",
    "NetflowSnapshot",
    "TransferRecord",
]
