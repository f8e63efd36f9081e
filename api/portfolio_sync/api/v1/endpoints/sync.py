"""
Endpoints para sincronizacion del contenido del portfolio.
Permiten disparar el sync Airtable -> snapshot JSON desde un webhook o la UI.
"""
import asyncio
import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from loguru import logger

from portfolio_sync.api.v1.dependencies.use_case_deps import get_portfolio_sync_use_cases
from portfolio_sync.application.dto.sync_dto import SyncResponseDTO, SyncStatusDTO
from portfolio_sync.application.use_cases.sync_use_cases import PortfolioSyncUseCases
from portfolio_sync.shared.exceptions.auth import UnauthorizedException
from portfolio_sync.shared.exceptions.base import AppException


router = APIRouter(prefix="/sync", tags=["Sync"])

SYNC_MODE_HEADER = "X-Sync-Mode"


def _check_sync_token(expected_token: str, authorization: Optional[str]) -> None:
    """
    Si hay SYNC_TOKEN configurado, exige 'Authorization: Bearer <token>'.
    """
    if not expected_token:
        return
    if not hmac.compare_digest((authorization or "").encode(), f"Bearer {expected_token}".encode()):
        raise UnauthorizedException("Token de sync invalido o ausente")


@router.post(
    "/airtable",
    response_model=SyncResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar Airtable con el snapshot del portfolio"
)
async def sync_airtable(
    response: Response,
    force: bool = Query(
        default=False,
        description="Si True, ignora la metadata previa y hace full sync."
    ),
    mode: Optional[str] = Query(
        default=None,
        description="Portfolio a sincronizar: 'directing' o 'postproduction'."
    ),
    authorization: Optional[str] = Header(default=None),
    use_cases: PortfolioSyncUseCases = Depends(get_portfolio_sync_use_cases),
) -> SyncResponseDTO:
    """
    Ejecuta el sync de Airtable.

    - force=false: cached si no hubo cambios, incremental si los hubo
    - force=true: full sync
    - El modo resuelto se reporta en el header X-Sync-Mode

    Returns:
        SyncResponseDTO con conteos y estadisticas de la corrida
    """
    _check_sync_token(use_cases.settings.SYNC_TOKEN, authorization)

    try:
        logger.info(f"Sync disparado via HTTP (force={force}, mode={mode or 'default'})")

        # El sync es bloqueante (requests + disco): se ejecuta en un thread
        result = await asyncio.to_thread(
            use_cases.execute,
            force_full_sync=force,
            portfolio_mode=mode,
        )
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Error en sincronizacion Airtable: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error al sincronizar: {str(e)}"
        )

    response.headers[SYNC_MODE_HEADER] = result.mode.value
    return SyncResponseDTO.from_result(result)


@router.get(
    "/status",
    response_model=SyncStatusDTO,
    summary="Estado del ultimo sync (sin consultar Airtable)"
)
async def sync_status(
    mode: Optional[str] = Query(default=None),
    use_cases: PortfolioSyncUseCases = Depends(get_portfolio_sync_use_cases),
) -> SyncStatusDTO:
    """Lee syncMetadata del snapshot local."""
    return use_cases.get_status(portfolio_mode=mode)
