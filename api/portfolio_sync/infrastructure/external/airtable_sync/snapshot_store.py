"""
Store local del snapshot: un único documento JSON por portfolio.

No hay base de datos: el "estado del sync" (timestamps por record,
conteos por tabla) vive dentro del mismo documento que consume el sitio,
bajo la key `syncMetadata`.

Escritura atómica: temp file en el mismo directorio + os.replace. Si la
escritura falla, el documento anterior queda intacto.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from portfolio_sync.shared.exceptions.sync import SnapshotWriteException


def dump_snapshot(payload: dict[str, Any]) -> str:
    """Serialización estable del snapshot (misma entrada -> mismos bytes)."""
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


class PortfolioSnapshotStore:
    """
    Lectura/escritura del documento portfolio-data-<mode>.json.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[dict[str, Any]]:
        """
        Carga el snapshot previo.

        Retorna None si no existe o no se puede leer: en ambos casos el
        orquestador hace full sync, así que no tiene sentido fallar acá.
        """
        if not self._path.exists():
            logger.info(f"No existe snapshot previo en {self._path}")
            return None

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"No se pudo leer el snapshot {self._path}: {e}. Se hará full sync.")
            return None

        if not isinstance(data, dict):
            logger.warning(f"El snapshot {self._path} no es un objeto JSON. Se hará full sync.")
            return None
        return data

    def save(self, payload: dict[str, Any]) -> None:
        """
        Escribe el snapshot de forma atómica.

        Raises:
            SnapshotWriteException: si no se pudo escribir (el archivo previo no se toca)
        """
        content = dump_snapshot(payload)
        tmp_path: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                suffix=".tmp", prefix=self._path.stem + "_", dir=str(self._path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path)
            tmp_path = None
        except OSError as e:
            logger.error(f"Fallo escribiendo snapshot {self._path}: {e}")
            raise SnapshotWriteException(str(self._path), str(e)) from e
        finally:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)

        logger.info(f"Snapshot escrito: {self._path} ({len(content)} bytes)")
