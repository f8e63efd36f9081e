"""
Excepciones relacionadas con la sincronización Airtable -> snapshot.
"""
from typing import Optional

from portfolio_sync.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores del sync."""
    
    def __init__(self, message: str, status_code: int = 500, error_code: str = "SYNC_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class MissingCredentialsException(SyncException):
    """Faltan AIRTABLE_TOKEN / AIRTABLE_BASE_ID. Se lanza antes de cualquier request."""
    
    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Faltan credenciales de Airtable: {', '.join(missing)}",
            error_code="MISSING_CREDENTIALS",
            details={"missing": missing}
        )


class RemoteFetchException(SyncException):
    """Airtable falló durante un full sync (ya no hay a qué degradar)."""
    
    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="REMOTE_FETCH_FAILED",
            details={"upstream_status": upstream_status} if upstream_status else None
        )


class SnapshotWriteException(SyncException):
    """No se pudo escribir el snapshot JSON. El archivo previo sigue válido."""
    
    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"No se pudo escribir el snapshot {path}: {reason}",
            error_code="SNAPSHOT_WRITE_FAILED",
            details={"path": path}
        )


class InvalidPortfolioModeException(SyncException):
    """Modo de portfolio desconocido."""
    
    def __init__(self, mode: str, valid_modes: list[str]):
        super().__init__(
            message=f"El modo de portfolio '{mode}' no es válido",
            status_code=400,
            error_code="INVALID_PORTFOLIO_MODE",
            details={
                "mode_provided": mode,
                "valid_modes": valid_modes
            }
        )
