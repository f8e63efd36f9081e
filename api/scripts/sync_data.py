"""
CLI: Airtable -> snapshot JSON del portfolio.

Pensado para correr antes del build del sitio (prebuild). Por defecto es
incremental: si Airtable no cambio reutiliza el snapshot, y si cambio solo
re-trae los records nuevos/modificados.

Variables de entorno requeridas:
  - AIRTABLE_TOKEN (o VITE_AIRTABLE_TOKEN)
  - AIRTABLE_BASE_ID (o VITE_AIRTABLE_BASE_ID)

Opcionales:
  - FORCE_FULL_SYNC=true   fuerza full sync
  - PORTFOLIO_MODE         directing | postproduction
  - OUTPUT_DIR             carpeta donde se escribe portfolio-data-<modo>.json

Ejecucion:
  python scripts/sync_data.py
  python scripts/sync_data.py --force
  python scripts/sync_data.py --mode directing --mode postproduction
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raiz `portfolio_sync/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (antes de construir Settings).
# - api/.env
# - repo_root/.env (donde vive el .env del sitio)
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from portfolio_sync.application.use_cases.sync_use_cases import PortfolioSyncUseCases
from portfolio_sync.core.config import is_truthy, settings
from portfolio_sync.core.logging_config import configure_logging
from portfolio_sync.domain.entities.sync import SyncResult
from portfolio_sync.shared.exceptions.base import AppException


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincroniza Airtable con el snapshot JSON del portfolio.")
    parser.add_argument(
        "--mode",
        action="append",
        dest="modes",
        help="Portfolio a sincronizar (repetible). Default: PORTFOLIO_MODE.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignora la metadata previa y re-trae todo (full sync).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Carpeta de salida del snapshot. Default: OUTPUT_DIR.",
    )
    return parser


def resolve_force(flag: bool) -> bool:
    """--force o FORCE_FULL_SYNC=true en el entorno."""
    return flag or settings.FORCE_FULL_SYNC or is_truthy(os.getenv("FORCE_FULL_SYNC"))


def print_report(result: SyncResult) -> None:
    stats = result.stats
    print("")
    print("=" * 60)
    print(f"Portfolio:  {result.portfolio_mode}")
    print(f"Modo:       {stats.mode.value}")
    print(f"Proyectos:  {len(result.projects)}")
    print(f"Journal:    {len(result.posts)}")
    print(f"API calls:  {stats.api_calls}")
    if stats.mode.value == "incremental":
        print(
            f"Cambios:    {stats.new_records} nuevos, {stats.changed_records} modificados, "
            f"{stats.deleted_records} borrados, {stats.unchanged_records} sin cambios"
        )
    if stats.fallback_reason:
        print(f"Fallback:   {stats.fallback_reason}")
    if result.written:
        print(f"Archivo:    {result.output_file}")
    else:
        print("Archivo:    sin cambios (no se reescribio)")
    print("=" * 60)


def main(argv: Optional[Sequence[str]] = None, use_cases: Optional[PortfolioSyncUseCases] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    use_cases = use_cases or PortfolioSyncUseCases(settings)
    force = resolve_force(args.force)
    modes = args.modes or [settings.PORTFOLIO_MODE]

    try:
        results = use_cases.execute_many(
            modes,
            force_full_sync=force,
            output_dir=args.output_dir,
        )
    except AppException as e:
        logger.error(f"Sync fallo ({', '.join(modes)}): {e.message}")
        return 1

    for result in results:
        print_report(result)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
