"""
Configuración del sync (qué tablas de Airtable alimentan el snapshot).

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


PROJECTS_TABLE = "Projects"
JOURNAL_TABLE = "Journal"
FESTIVALS_TABLE = "Festivals"
CLIENTS_TABLE = "Client Book"
SETTINGS_TABLE = "Settings"

PORTFOLIO_MODES = ("directing", "postproduction")


@dataclass(frozen=True)
class TableSyncConfig:
    """
    Config de una tabla Airtable que forma parte del snapshot.

    - table_name: nombre de la tabla en Airtable
    - sort_field: campo para ordenar desc en el fetch (opcional)
    """

    table_name: str
    sort_field: Optional[str] = None
    sort_direction: str = "desc"


PORTFOLIO_TABLES: tuple[TableSyncConfig, ...] = (
    TableSyncConfig(table_name=PROJECTS_TABLE, sort_field="Release Date"),
    TableSyncConfig(table_name=JOURNAL_TABLE, sort_field="Date"),
    TableSyncConfig(table_name=FESTIVALS_TABLE),
    TableSyncConfig(table_name=CLIENTS_TABLE),
    TableSyncConfig(table_name=SETTINGS_TABLE),
)


def snapshot_file_name(portfolio_mode: str) -> str:
    """Nombre del documento JSON que consume el sitio para un portfolio."""
    return f"portfolio-data-{portfolio_mode}.json"
