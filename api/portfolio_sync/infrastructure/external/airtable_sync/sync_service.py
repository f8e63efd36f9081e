"""
Servicio de sincronización Airtable -> snapshot JSON del portfolio.

Diseño (resumen):
- Carga el snapshot previo (contenido + syncMetadata + _rawRecords)
- Decide el modo:
    force -> full
    sin metadata previa -> full
    timestamps sin cambios -> cached (no se re-trae contenido)
    con cambios -> incremental (solo records nuevos/modificados)
- Cualquier error de Airtable durante el chequeo o el fetch incremental
  degrada a full sync en lugar de fallar.
- Una sola escritura atómica al final.

Invariante: el snapshot siempre se puede reconstruir con un full sync; el
incremental es solo una optimización y produce el mismo contenido.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar

from loguru import logger

from portfolio_sync.application.services.portfolio_normalizer import PortfolioNormalizer
from portfolio_sync.core.config import Settings
from portfolio_sync.domain.entities.sync import SyncMode, SyncResult, SyncStats
from portfolio_sync.shared.exceptions.sync import (
    InvalidPortfolioModeException,
    MissingCredentialsException,
)

from .airtable_client import AirtableApiError, AirtableClient, AirtableCredentials
from .change_detection import canonical_order, detect_changes, merge_raw_records, total_changes
from .snapshot_store import PortfolioSnapshotStore
from .sync_config import PORTFOLIO_MODES, PORTFOLIO_TABLES, TableSyncConfig, snapshot_file_name
from .types import AirtableRecord, RecordTimestamp, TableChanges, isoformat_z, utc_now

T = TypeVar("T")

SNAPSHOT_VERSION = "1.0"
SNAPSHOT_SOURCE = "build-time-sync"


class SnapshotCacheMismatch(RuntimeError):
    """El cache de raw records no coincide con lo que reporta Airtable."""


class PortfolioSyncService:
    """
    Orquestador del sync para un modo de portfolio.
    """

    def __init__(
        self,
        *,
        airtable: AirtableClient,
        store: PortfolioSnapshotStore,
        portfolio_mode: str = "directing",
        tables: Iterable[TableSyncConfig] = PORTFOLIO_TABLES,
        max_workers: int = 5,
        skip_file_writes: bool = False,
        clock: Callable[[], Any] = utc_now,
    ) -> None:
        self._airtable = airtable
        self._store = store
        self._portfolio_mode = portfolio_mode
        self._tables = tuple(tables)
        self._max_workers = max(1, max_workers)
        self._skip_file_writes = skip_file_writes
        self._clock = clock
        self._normalizer = PortfolioNormalizer(portfolio_mode=portfolio_mode)

    @property
    def airtable(self) -> AirtableClient:
        return self._airtable

    @property
    def store(self) -> PortfolioSnapshotStore:
        return self._store

    def run(self, *, force_full_sync: bool = False) -> SyncResult:
        """
        Ejecuta una corrida del sync y retorna el resultado.

        Raises:
            AirtableApiError: si falla Airtable durante un full sync
            SnapshotWriteException: si no se pudo escribir el snapshot
        """
        timestamp = isoformat_z(self._clock())
        stats = SyncStats()
        logger.info(f"Iniciando sync del portfolio '{self._portfolio_mode}'")

        if force_full_sync:
            logger.info("Full sync forzado")
            return self._run_full(stats, timestamp)

        previous = self._store.load()
        if not self._has_usable_metadata(previous):
            logger.info("Full sync: no hay metadata previa utilizable")
            return self._run_full(stats, timestamp)

        try:
            return self._run_incremental(previous, stats, timestamp)
        except (AirtableApiError, SnapshotCacheMismatch) as e:
            logger.warning(f"Chequeo incremental falló ({e}); se degrada a full sync")
            fallback_stats = SyncStats(api_calls=stats.api_calls, fallback_reason=str(e))
            return self._run_full(fallback_stats, timestamp)

    @staticmethod
    def _has_usable_metadata(previous: Optional[dict[str, Any]]) -> bool:
        if not previous:
            return False
        metadata = previous.get("syncMetadata")
        return (
            isinstance(metadata, dict)
            and isinstance(metadata.get("timestamps"), dict)
            and isinstance(previous.get("_rawRecords"), dict)
        )

    def _fan_out(self, fn: Callable[[TableSyncConfig], T]) -> dict[str, T]:
        """Ejecuta fn por tabla en paralelo (las tablas no comparten estado)."""
        workers = max(1, min(self._max_workers, len(self._tables)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(fn, self._tables))
        return {table.table_name: result for table, result in zip(self._tables, results)}

    def _run_incremental(
        self,
        previous: dict[str, Any],
        stats: SyncStats,
        timestamp: str,
    ) -> SyncResult:
        logger.info("Buscando cambios (chequeo de timestamps)...")
        current_timestamps: dict[str, list[RecordTimestamp]] = self._fan_out(
            lambda table: self._airtable.list_timestamps(table.table_name)
        )
        stats.api_calls += len(self._tables)

        changes = detect_changes(previous["syncMetadata"]["timestamps"], current_timestamps)
        total_records = sum(len(ts) for ts in current_timestamps.values())

        if total_changes(changes) == 0:
            logger.success("Sin cambios en Airtable, se reutiliza el snapshot")
            stats.mode = SyncMode.CACHED
            stats.unchanged_records = total_records
            return SyncResult(
                portfolio_mode=self._portfolio_mode,
                timestamp=timestamp,
                stats=stats,
                projects=previous.get("projects") or [],
                posts=previous.get("posts") or [],
                config=previous.get("config") or {},
                output_file=str(self._store.path),
                written=False,
            )

        self._log_changes(changes)
        stats.mode = SyncMode.INCREMENTAL
        stats.new_records = sum(len(c.new) for c in changes.values())
        stats.changed_records = sum(len(c.changed) for c in changes.values())
        stats.deleted_records = sum(len(c.deleted) for c in changes.values())
        stats.unchanged_records = sum(c.unchanged for c in changes.values())

        fetched_raw: dict[str, list[dict[str, Any]]] = {}
        for table in self._tables:
            ids_to_fetch = changes[table.table_name].ids_to_fetch
            if not ids_to_fetch:
                continue
            records = self._airtable.list_records_by_ids(
                table.table_name,
                ids_to_fetch,
                sort_field=table.sort_field,
                sort_direction=table.sort_direction,
            )
            stats.api_calls += 1
            self._ensure_fetched(table.table_name, ids_to_fetch, records)
            fetched_raw[table.table_name] = [r.to_raw() for r in records]
            stats.fetched_records += len(records)

        merged = merge_raw_records(previous["_rawRecords"], fetched_raw, changes)
        self._ensure_cache_matches(merged, current_timestamps)

        return self._build_and_persist(merged, stats, timestamp)

    def _run_full(self, stats: SyncStats, timestamp: str) -> SyncResult:
        stats.mode = SyncMode.FULL
        records_by_table: dict[str, list[AirtableRecord]] = self._fan_out(
            lambda table: self._airtable.list_records(
                table.table_name,
                sort_field=table.sort_field,
                sort_direction=table.sort_direction,
            )
        )
        stats.api_calls += len(self._tables)

        raw_records = {
            table_name: canonical_order(r.to_raw() for r in records)
            for table_name, records in records_by_table.items()
        }
        stats.fetched_records += sum(len(records) for records in raw_records.values())
        return self._build_and_persist(raw_records, stats, timestamp)

    @staticmethod
    def _ensure_fetched(table_name: str, requested: list[str], records: list[AirtableRecord]) -> None:
        returned = {r.record_id for r in records}
        missing = set(requested) - returned
        if missing:
            raise AirtableApiError(
                f"Airtable no devolvió {len(missing)} record(s) pedidos de '{table_name}'"
            )

    @staticmethod
    def _ensure_cache_matches(
        merged: dict[str, list[dict[str, Any]]],
        current_timestamps: dict[str, list[RecordTimestamp]],
    ) -> None:
        for table_name, timestamps in current_timestamps.items():
            expected = {ts.record_id for ts in timestamps}
            actual = {str(r.get("id")) for r in merged.get(table_name) or []}
            if expected != actual:
                raise SnapshotCacheMismatch(
                    f"El cache de '{table_name}' tiene {len(actual)} records, Airtable reporta {len(expected)}"
                )

    def _build_and_persist(
        self,
        raw_records: dict[str, list[dict[str, Any]]],
        stats: SyncStats,
        timestamp: str,
    ) -> SyncResult:
        content = self._normalizer.build(raw_records)
        payload = self.build_snapshot(raw_records, content.projects, content.posts, content.config, timestamp)

        written = False
        if self._skip_file_writes:
            logger.info(f"Escritura omitida (skip_file_writes): {self._store.path}")
        else:
            self._store.save(payload)
            written = True

        logger.success(
            f"Sync '{self._portfolio_mode}' completado en modo {stats.mode.value}: "
            f"{len(content.projects)} proyectos, {len(content.posts)} posts, api_calls={stats.api_calls}"
        )
        return SyncResult(
            portfolio_mode=self._portfolio_mode,
            timestamp=timestamp,
            stats=stats,
            projects=content.projects,
            posts=content.posts,
            config=content.config,
            output_file=str(self._store.path),
            written=written,
        )

    def build_snapshot(
        self,
        raw_records: dict[str, list[dict[str, Any]]],
        projects: list[dict[str, Any]],
        posts: list[dict[str, Any]],
        config: dict[str, Any],
        timestamp: str,
    ) -> dict[str, Any]:
        """Documento completo que se persiste (contenido + bookkeeping del sync)."""
        last_modified_field = self._airtable.last_modified_field
        timestamps: dict[str, dict[str, Optional[str]]] = {}
        tables_meta: dict[str, dict[str, Any]] = {}

        for table_name, records in raw_records.items():
            table_ts = {str(r["id"]): (r.get("fields") or {}).get(last_modified_field) for r in records}
            timestamps[table_name] = table_ts
            known = [lm for lm in table_ts.values() if lm]
            tables_meta[table_name] = {
                "lastSync": timestamp,
                "recordCount": len(records),
                "latestModified": max(known) if known else None,
            }

        return {
            "projects": projects,
            "posts": posts,
            "config": config,
            "portfolioMode": self._portfolio_mode,
            "lastUpdated": timestamp,
            "version": SNAPSHOT_VERSION,
            "source": SNAPSHOT_SOURCE,
            "_rawRecords": raw_records,
            "syncMetadata": {
                "lastSync": timestamp,
                "timestamps": timestamps,
                "tables": tables_meta,
            },
        }

    @staticmethod
    def _log_changes(changes: dict[str, TableChanges]) -> None:
        for table_name, table_changes in changes.items():
            if table_changes.total:
                logger.info(
                    f"  {table_name}: {len(table_changes.new)} nuevos, "
                    f"{len(table_changes.changed)} modificados, {len(table_changes.deleted)} borrados"
                )


def validate_portfolio_mode(portfolio_mode: str) -> str:
    mode = (portfolio_mode or "").strip().lower()
    if mode not in PORTFOLIO_MODES:
        raise InvalidPortfolioModeException(portfolio_mode, list(PORTFOLIO_MODES))
    return mode


def build_airtable_client(settings: Settings) -> AirtableClient:
    """
    Cliente de Airtable a partir de Settings.

    Valida credenciales antes de crear el cliente HTTP: si faltan, no se
    hace ninguna request.
    """
    missing = []
    if not settings.effective_airtable_token:
        missing.append("AIRTABLE_TOKEN")
    if not settings.effective_airtable_base_id:
        missing.append("AIRTABLE_BASE_ID")
    if missing:
        raise MissingCredentialsException(missing)

    return AirtableClient(
        AirtableCredentials(
            token=settings.effective_airtable_token,
            base_id=settings.effective_airtable_base_id,
        ),
        base_url=settings.AIRTABLE_API_URL,
        last_modified_field=settings.AIRTABLE_LAST_MOD_FIELD,
        timeout_s=settings.AIRTABLE_TIMEOUT_S,
        max_retries=settings.AIRTABLE_MAX_RETRIES,
    )


def build_from_settings(
    settings: Settings,
    *,
    portfolio_mode: Optional[str] = None,
    output_dir: Optional[str] = None,
    airtable: Optional[AirtableClient] = None,
) -> PortfolioSyncService:
    """
    Constructor "oficial" del servicio a partir de Settings.

    Si se pasa `airtable`, se reutiliza ese cliente (varios portfolios en la
    misma corrida); si no, se crea uno nuevo.
    """
    if airtable is None:
        airtable = build_airtable_client(settings)
    mode = validate_portfolio_mode(portfolio_mode or settings.PORTFOLIO_MODE)
    store = PortfolioSnapshotStore(Path(output_dir or settings.OUTPUT_DIR) / snapshot_file_name(mode))
    return PortfolioSyncService(
        airtable=airtable,
        store=store,
        portfolio_mode=mode,
        max_workers=settings.SYNC_MAX_WORKERS,
        skip_file_writes=settings.SYNC_SKIP_FILE_WRITES,
    )
