"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    SyncCountsDTO,
    SyncStatsDTO,
    SyncResponseDTO,
    TableStatusDTO,
    SyncStatusDTO,
)

__all__ = [
    "SyncCountsDTO",
    "SyncStatsDTO",
    "SyncResponseDTO",
    "TableStatusDTO",
    "SyncStatusDTO",
]
