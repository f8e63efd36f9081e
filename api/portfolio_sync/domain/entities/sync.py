"""
Entidades del sync de portfolio.

SyncMode describe cómo se resolvió una corrida; SyncStats y SyncResult
son lo que reportan las dos superficies (CLI y HTTP).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SyncMode(str, Enum):
    """
    Modo en que terminó una corrida del sync.
    """
    CACHED = "cached"            # Sin cambios en Airtable: se reutiliza el snapshot
    INCREMENTAL = "incremental"  # Solo se re-traen los records nuevos/modificados
    FULL = "full"                # Re-fetch completo de todas las tablas


@dataclass
class SyncStats:
    """Contadores de una corrida (se serializan en camelCase para el sitio)."""
    mode: SyncMode = SyncMode.FULL
    api_calls: int = 0
    fetched_records: int = 0
    new_records: int = 0
    changed_records: int = 0
    deleted_records: int = 0
    unchanged_records: int = 0
    fallback_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "apiCalls": self.api_calls,
            "fetchedRecords": self.fetched_records,
            "newRecords": self.new_records,
            "changedRecords": self.changed_records,
            "deletedRecords": self.deleted_records,
            "unchangedRecords": self.unchanged_records,
            "fallbackReason": self.fallback_reason,
        }


@dataclass
class SyncResult:
    """
    Resultado de una corrida del sync.

    projects/posts/config es el contenido publicado (igual al que quedó
    en el snapshot, o al reutilizado en modo cached).
    """
    portfolio_mode: str
    timestamp: str
    stats: SyncStats
    projects: List[Dict[str, Any]] = field(default_factory=list)
    posts: List[Dict[str, Any]] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)
    output_file: Optional[str] = None
    written: bool = False

    @property
    def mode(self) -> SyncMode:
        return self.stats.mode
