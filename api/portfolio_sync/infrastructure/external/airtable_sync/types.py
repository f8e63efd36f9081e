"""
Tipos y utilidades puras para el pipeline Airtable -> snapshot JSON.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def isoformat_z(dt: datetime) -> str:
    """
    Serializa datetime a ISO8601 con milisegundos y 'Z', el mismo formato
    que usa Airtable en sus timestamps.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt_utc.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class AirtableRecord:
    """
    Registro Airtable tal como se guarda en el cache de raw records.

    last_modified se conserva como string crudo: la comparación entre
    corridas es por igualdad exacta, no por orden temporal.
    """

    record_id: str
    fields: dict[str, Any]
    created_time: Optional[str] = None
    last_modified: Optional[str] = None

    def to_raw(self) -> dict[str, Any]:
        """Forma JSON del record (la misma que devuelve la API de Airtable)."""
        raw: dict[str, Any] = {"id": self.record_id, "fields": self.fields}
        if self.created_time is not None:
            raw["createdTime"] = self.created_time
        return raw

    @classmethod
    def from_raw(cls, raw: dict[str, Any], *, last_modified_field: str) -> "AirtableRecord":
        fields = raw.get("fields") or {}
        return cls(
            record_id=str(raw["id"]),
            fields=fields,
            created_time=raw.get("createdTime"),
            last_modified=fields.get(last_modified_field),
        )


@dataclass(frozen=True)
class RecordTimestamp:
    """Par (record_id, last_modified) usado para detectar cambios."""

    record_id: str
    last_modified: Optional[str]


@dataclass
class TableChanges:
    """
    Clasificación de los records de una tabla entre dos corridas.

    Un record_id aparece como mucho en una de las listas.
    """

    new: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def total(self) -> int:
        return len(self.new) + len(self.changed) + len(self.deleted)

    @property
    def ids_to_fetch(self) -> list[str]:
        return [*self.new, *self.changed]
