"""Data access repositories."""

from netflow.repositories.base import BaseRepository
from netflow.repositories.netflow_snapshot_repository import (
    NetflowSnapshotRepository,
)
from netflow.repositories.transfer_record_repository import (
    TransferRecordRepository,
)

__all__ = [
    "BaseRepository",
    "NetflowSnapshotRepository",
    "TransferRecordRepository",
]
