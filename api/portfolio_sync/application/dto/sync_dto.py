"""
DTOs del sync de portfolio.
Definen la respuesta del endpoint HTTP; los nombres serializados van en
camelCase, igual que el snapshot que consume el sitio.
"""
from typing import Dict, Optional
from pydantic import BaseModel, Field

from portfolio_sync.domain.entities.sync import SyncResult


class SyncCountsDTO(BaseModel):
    """Conteo del contenido publicado en la corrida."""
    projects: int = Field(..., description="Proyectos publicados")
    journal: int = Field(..., description="Posts del journal publicados")
    timestamp: str = Field(..., description="Momento de la corrida (ISO8601 UTC)")


class SyncStatsDTO(BaseModel):
    """Estadisticas de la corrida (modo y contadores)."""
    mode: str = Field(..., description="cached | incremental | full")
    api_calls: int = Field(0, alias="apiCalls")
    fetched_records: int = Field(0, alias="fetchedRecords")
    new_records: int = Field(0, alias="newRecords")
    changed_records: int = Field(0, alias="changedRecords")
    deleted_records: int = Field(0, alias="deletedRecords")
    unchanged_records: int = Field(0, alias="unchangedRecords")
    fallback_reason: Optional[str] = Field(None, alias="fallbackReason")

    class Config:
        populate_by_name = True


class SyncResponseDTO(BaseModel):
    """Resultado de la sincronizacion."""
    success: bool
    message: str
    portfolio_mode: str = Field(..., alias="portfolioMode")
    written: bool = Field(False, description="Si el snapshot se escribio en disco")
    stats: SyncCountsDTO
    sync_stats: SyncStatsDTO = Field(..., alias="syncStats")

    class Config:
        populate_by_name = True

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponseDTO":
        mode = result.mode.value
        if mode == "cached":
            message = "Sin cambios en Airtable, se reutiliza el snapshot"
        else:
            message = f"Sincronizacion {mode} completada"
        return cls(
            success=True,
            message=message,
            portfolio_mode=result.portfolio_mode,
            written=result.written,
            stats=SyncCountsDTO(
                projects=len(result.projects),
                journal=len(result.posts),
                timestamp=result.timestamp,
            ),
            sync_stats=SyncStatsDTO(**result.stats.to_dict()),
        )


class TableStatusDTO(BaseModel):
    """Bookkeeping de una tabla en el ultimo sync."""
    record_count: int = Field(0, alias="recordCount")
    latest_modified: Optional[str] = Field(None, alias="latestModified")
    last_sync: Optional[str] = Field(None, alias="lastSync")

    class Config:
        populate_by_name = True


class SyncStatusDTO(BaseModel):
    """Estado del snapshot local (sin consultar Airtable)."""
    portfolio_mode: str = Field(..., alias="portfolioMode")
    output_file: str = Field(..., alias="outputFile")
    exists: bool
    last_sync: Optional[str] = Field(None, alias="lastSync")
    projects: int = 0
    journal: int = 0
    tables: Dict[str, TableStatusDTO] = Field(default_factory=dict)

    class Config:
        populate_by_name = True
