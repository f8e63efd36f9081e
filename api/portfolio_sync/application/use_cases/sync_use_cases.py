"""
Casos de uso para la sincronizacion Airtable -> snapshot del portfolio.

Es el punto comun de las dos superficies de invocacion (CLI y endpoint
HTTP): ambas solo cambian de donde leen los argumentos y como reportan.
"""
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from portfolio_sync.application.dto.sync_dto import SyncStatusDTO, TableStatusDTO
from portfolio_sync.core.config import Settings, settings as default_settings
from portfolio_sync.domain.entities.sync import SyncResult
from portfolio_sync.infrastructure.external.airtable_sync.airtable_client import (
    AirtableApiError,
    AirtableClient,
    SharedFetchAirtableClient,
)
from portfolio_sync.infrastructure.external.airtable_sync.snapshot_store import PortfolioSnapshotStore
from portfolio_sync.infrastructure.external.airtable_sync.sync_config import snapshot_file_name
from portfolio_sync.infrastructure.external.airtable_sync.sync_service import (
    PortfolioSyncService,
    build_airtable_client,
    build_from_settings,
    validate_portfolio_mode,
)
from portfolio_sync.shared.exceptions.sync import RemoteFetchException


ServiceFactory = Callable[..., PortfolioSyncService]
ClientFactory = Callable[[Settings], AirtableClient]


class PortfolioSyncUseCases:
    """
    Casos de uso del sync de portfolio.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        service_factory: ServiceFactory = build_from_settings,
        client_factory: ClientFactory = build_airtable_client,
    ):
        self.settings = settings or default_settings
        self._service_factory = service_factory
        self._client_factory = client_factory

    def execute(
        self,
        *,
        force_full_sync: bool = False,
        portfolio_mode: Optional[str] = None,
        output_dir: Optional[str] = None,
    ) -> SyncResult:
        """
        Ejecuta una corrida del sync.

        Args:
            force_full_sync: Si True, ignora la metadata previa y re-trae todo
            portfolio_mode: 'directing' o 'postproduction' (default: settings)
            output_dir: Directorio del snapshot (default: settings.OUTPUT_DIR)

        Returns:
            SyncResult con el modo resuelto y el contenido publicado

        Raises:
            MissingCredentialsException: antes de cualquier request
            RemoteFetchException: si Airtable falla durante un full sync
            SnapshotWriteException: si no se pudo escribir el snapshot
        """
        service = self._service_factory(
            self.settings,
            portfolio_mode=portfolio_mode,
            output_dir=output_dir,
        )
        return self._run(service, force_full_sync)

    def execute_many(
        self,
        portfolio_modes: Sequence[str],
        *,
        force_full_sync: bool = False,
        output_dir: Optional[str] = None,
    ) -> list[SyncResult]:
        """
        Sincroniza varios portfolios en una sola corrida.

        Todos los modos leen las mismas tablas: el chequeo de timestamps y
        los fetches se hacen una vez y cada modo arma su propio snapshot.
        Se detiene en el primer modo que falla.
        """
        airtable = SharedFetchAirtableClient(self._client_factory(self.settings))
        results = []
        for mode in portfolio_modes:
            service = self._service_factory(
                self.settings,
                portfolio_mode=mode,
                output_dir=output_dir,
                airtable=airtable,
            )
            results.append(self._run(service, force_full_sync))
        return results

    @staticmethod
    def _run(service: PortfolioSyncService, force_full_sync: bool) -> SyncResult:
        try:
            return service.run(force_full_sync=force_full_sync)
        except AirtableApiError as e:
            logger.error(f"Error de Airtable durante el sync: {e}")
            raise RemoteFetchException(str(e), upstream_status=e.status_code) from e

    def get_status(
        self,
        *,
        portfolio_mode: Optional[str] = None,
        output_dir: Optional[str] = None,
    ) -> SyncStatusDTO:
        """
        Reporta el bookkeeping del ultimo sync leyendo solo el snapshot local.
        """
        mode = validate_portfolio_mode(portfolio_mode or self.settings.PORTFOLIO_MODE)
        store = PortfolioSnapshotStore(
            Path(output_dir or self.settings.OUTPUT_DIR) / snapshot_file_name(mode)
        )
        snapshot = store.load()
        if not snapshot:
            return SyncStatusDTO(portfolio_mode=mode, output_file=str(store.path), exists=False)

        metadata = _as_dict(snapshot.get("syncMetadata"))
        return SyncStatusDTO(
            portfolio_mode=mode,
            output_file=str(store.path),
            exists=True,
            last_sync=metadata.get("lastSync") if isinstance(metadata.get("lastSync"), str) else None,
            projects=len(snapshot.get("projects") or []),
            journal=len(snapshot.get("posts") or []),
            tables=_table_statuses(metadata.get("tables")),
        )


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _table_statuses(raw: Any) -> dict[str, TableStatusDTO]:
    """
    Bookkeeping por tabla. Las entradas que no tienen la forma esperada
    (snapshot editado a mano) se ignoran con un warning.
    """
    tables: dict[str, TableStatusDTO] = {}
    for name, meta in _as_dict(raw).items():
        if not isinstance(meta, dict):
            logger.warning(f"syncMetadata.tables.{name} no es un objeto; se ignora")
            continue
        try:
            tables[name] = TableStatusDTO.model_validate(meta)
        except ValidationError:
            logger.warning(f"syncMetadata.tables.{name} tiene valores invalidos; se ignora")
    return tables
