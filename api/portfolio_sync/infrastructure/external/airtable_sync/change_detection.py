"""
Detección de cambios entre dos corridas del sync.

Funciones puras: reciben los timestamps guardados en syncMetadata y los
recién traídos de Airtable, y devuelven qué records son nuevos, cuáles
cambiaron y cuáles se borraron.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from .types import RecordTimestamp, TableChanges

def detect_changes(
    previous_timestamps: Optional[Mapping[str, Mapping[str, Optional[str]]]],
    current_timestamps: Mapping[str, Iterable[RecordTimestamp]],
) -> dict[str, TableChanges]:
    """
    Clasifica cada record de cada tabla como new / changed / deleted / unchanged.

    - new: el id no existía en la corrida anterior
    - changed: existía con otro Last Modified
    - deleted: existía antes y ya no viene en el fetch actual
    """
    previous_timestamps = previous_timestamps or {}
    changes: dict[str, TableChanges] = {}

    for table_name, timestamps in current_timestamps.items():
        prev = previous_timestamps.get(table_name) or {}
        table_changes = TableChanges()
        seen: set[str] = set()

        for ts in timestamps:
            if ts.record_id in seen:
                continue
            seen.add(ts.record_id)

            if ts.record_id not in prev:
                table_changes.new.append(ts.record_id)
            elif prev[ts.record_id] != ts.last_modified:
                table_changes.changed.append(ts.record_id)
            else:
                table_changes.unchanged += 1

        table_changes.deleted = [record_id for record_id in prev if record_id not in seen]
        changes[table_name] = table_changes

    return changes


def total_changes(changes: Mapping[str, TableChanges]) -> int:
    return sum(table.total for table in changes.values())


def canonical_order(raw_records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Orden canónico de raw records (por id).

    Full e incremental terminan con el mismo orden, así el contenido
    derivado es idéntico en ambos caminos.
    """
    return sorted(raw_records, key=lambda r: str(r.get("id", "")))


def merge_raw_records(
    previous_raw: Mapping[str, list[dict[str, Any]]],
    fetched_raw: Mapping[str, list[dict[str, Any]]],
    changes: Mapping[str, TableChanges],
) -> dict[str, list[dict[str, Any]]]:
    """
    Combina el cache de raw records con los records re-traídos.

    Por tabla: se quitan los borrados y los reemplazados, se agregan los
    nuevos/actualizados, y se deja todo en orden canónico. Solo sobreviven
    las tablas presentes en `changes` (las configuradas hoy).
    """
    merged: dict[str, list[dict[str, Any]]] = {}

    for table_name in changes:
        existing = previous_raw.get(table_name) or []
        fetched = fetched_raw.get(table_name) or []
        table_changes = changes.get(table_name) or TableChanges()

        drop_ids = set(table_changes.deleted) | {str(r.get("id")) for r in fetched}
        kept = [r for r in existing if str(r.get("id")) not in drop_ids]
        merged[table_name] = canonical_order([*kept, *fetched])

    return merged
