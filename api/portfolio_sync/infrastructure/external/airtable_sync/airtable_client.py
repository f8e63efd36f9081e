"""
Cliente mínimo de Airtable REST API (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginación por offset
- rate-limit/backoff (429, 5xx)
- fetch "liviano" de timestamps (solo el campo Last Modified)
- fetch de records puntuales por RECORD_ID() para el sync incremental
"""

from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional
from urllib.parse import quote

import requests
from loguru import logger

from .types import AirtableRecord, RecordTimestamp


DEFAULT_LAST_MODIFIED_FIELD = "Last Modified"

# Airtable limita el largo de la URL; partimos los OR(RECORD_ID()=...) en bloques.
RECORD_ID_CHUNK_SIZE = 50


@dataclass(frozen=True)
class AirtableCredentials:
    token: str
    base_id: str


class AirtableApiError(RuntimeError):
    """Error de integración con Airtable."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_rate_limit(self) -> bool:
        return self.status_code == 429


def build_record_id_formula(record_ids: Iterable[str]) -> str:
    """
    Construye una fórmula Airtable que matchea un conjunto de records por ID:

        OR(RECORD_ID()='rec1',RECORD_ID()='rec2')
    """
    conditions = []
    for record_id in record_ids:
        safe_id = str(record_id).replace("'", "\\'")
        conditions.append(f"RECORD_ID()='{safe_id}'")
    if not conditions:
        raise ValueError("build_record_id_formula requiere al menos un record_id")
    return "OR(" + ",".join(conditions) + ")"


def _chunked(items: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AirtableClient:
    """
    Cliente HTTP de Airtable.

    Importante:
    - No hace cast de tipos de campos: eso se decide al dar forma al contenido.
    - El campo last_modified_field se guarda crudo (string ISO8601) para
      comparar por igualdad entre corridas.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.airtable.com/v0",
        last_modified_field: str = DEFAULT_LAST_MODIFIED_FIELD,
        timeout_s: int = 30,
        max_retries: int = 6,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        page_size: int = 100,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._last_modified_field = last_modified_field
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._page_size = page_size
        # Session inyectada: compartida entre threads, responsabilidad del caller.
        # Sin inyectar: una requests.Session por thread del fan-out.
        self._shared_session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    @property
    def last_modified_field(self) -> str:
        return self._last_modified_field

    def table_url(self, table_name: str) -> str:
        return f"{self._base_url}/{self._creds.base_id}/{quote(table_name, safe='')}"

    def list_records(
        self,
        table_name: str,
        *,
        sort_field: Optional[str] = None,
        sort_direction: str = "desc",
        fields: Optional[list[str]] = None,
        filter_formula: Optional[str] = None,
    ) -> list[AirtableRecord]:
        """Trae todos los records de una tabla (todas las páginas)."""
        return [
            AirtableRecord.from_raw(raw, last_modified_field=self._last_modified_field)
            for raw in self._iter_raw_records(
                table_name,
                sort_field=sort_field,
                sort_direction=sort_direction,
                fields=fields,
                filter_formula=filter_formula,
            )
        ]

    def list_timestamps(self, table_name: str) -> list[RecordTimestamp]:
        """
        Trae solo id + Last Modified de cada record (chequeo liviano).
        """
        return [
            RecordTimestamp(
                record_id=str(raw["id"]),
                last_modified=(raw.get("fields") or {}).get(self._last_modified_field),
            )
            for raw in self._iter_raw_records(table_name, fields=[self._last_modified_field])
        ]

    def list_records_by_ids(
        self,
        table_name: str,
        record_ids: list[str],
        *,
        sort_field: Optional[str] = None,
        sort_direction: str = "desc",
    ) -> list[AirtableRecord]:
        """
        Trae únicamente los records indicados usando filterByFormula.

        Los IDs se consultan en bloques de RECORD_ID_CHUNK_SIZE.
        """
        if not record_ids:
            return []

        records: list[AirtableRecord] = []
        for chunk in _chunked(list(record_ids), RECORD_ID_CHUNK_SIZE):
            records.extend(
                self.list_records(
                    table_name,
                    sort_field=sort_field,
                    sort_direction=sort_direction,
                    filter_formula=build_record_id_formula(chunk),
                )
            )
        return records

    def _iter_raw_records(
        self,
        table_name: str,
        *,
        sort_field: Optional[str] = None,
        sort_direction: str = "desc",
        fields: Optional[list[str]] = None,
        filter_formula: Optional[str] = None,
    ) -> Iterator[dict[str, Any]]:
        """Itera los records crudos de una tabla manejando paginación por 'offset'."""
        url = self.table_url(table_name)
        offset: Optional[str] = None

        while True:
            query: list[tuple[str, Any]] = [("pageSize", self._page_size)]
            if filter_formula:
                query.append(("filterByFormula", filter_formula))

            # Serialización manual de 'sort' para evitar "sort=field&sort=direction"
            if sort_field:
                query.append(("sort[0][field]", sort_field))
                query.append(("sort[0][direction]", sort_direction))

            if fields:
                for f in fields:
                    query.append(("fields[]", f))

            if offset:
                query.append(("offset", offset))

            payload = self._request_json("GET", url, query=query)

            for rec in payload.get("records") or []:
                if not rec.get("id"):
                    # Caso raro; preferimos fallar temprano y visible.
                    raise AirtableApiError(f"Airtable devolvió un record sin 'id' en '{table_name}'")
                yield rec

            offset = payload.get("offset")
            if not offset:
                break

    def _request_json(
        self, method: str, url: str, *, query: list[tuple[str, Any]]
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal).
        - Error de red: se trata igual que un 5xx.
        """
        headers = {
            "Authorization": f"Bearer {self._creds.token}",
            "Content-Type": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self.session.request(
                    method=method,
                    url=url,
                    params=query,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                if attempt >= self._max_retries:
                    raise AirtableApiError(f"Airtable no respondió tras {attempt} reintentos: {e}") from e
                time.sleep(self._backoff_seconds(attempt))
                continue

            if 200 <= resp.status_code < 300:
                return self._parse_payload(resp)

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise AirtableApiError(
                        f"Airtable error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        status_code=resp.status_code,
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    sleep_s = self._backoff_seconds(attempt)

                logger.warning(
                    f"Airtable respondió {resp.status_code}; reintento {attempt + 1}/{self._max_retries} en {sleep_s:.1f}s"
                )
                time.sleep(sleep_s)
                continue

            # Errores no recuperables
            raise AirtableApiError(
                f"Airtable request falló {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        raise AirtableApiError("Airtable request agotó los reintentos")

    @staticmethod
    def _parse_payload(resp: requests.Response) -> dict[str, Any]:
        """
        Body de una respuesta 2xx. Un body que no es un objeto JSON (página
        de un proxy, respuesta truncada) es un error de Airtable como cualquier otro.
        """
        try:
            payload = resp.json()
        except ValueError as e:
            raise AirtableApiError(
                f"Airtable devolvió un body inválido ({resp.status_code}): {resp.text[:200]}",
                status_code=resp.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise AirtableApiError(
                f"Airtable devolvió {type(payload).__name__} en lugar de un objeto JSON",
                status_code=resp.status_code,
            )
        return payload

    def _backoff_seconds(self, attempt: int) -> float:
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)


class SharedFetchAirtableClient:
    """
    Envuelve un AirtableClient y memoriza cada lectura durante su vida.

    Se usa al sincronizar varios portfolios en la misma corrida: todos leen
    las mismas tablas, así que el chequeo de timestamps y los fetches se
    hacen una sola vez y se reparten entre los modos.
    """

    def __init__(self, client: AirtableClient) -> None:
        self._client = client
        self._cache: dict[tuple, list] = {}
        self._lock = threading.Lock()

    @property
    def last_modified_field(self) -> str:
        return self._client.last_modified_field

    def list_records(
        self,
        table_name: str,
        *,
        sort_field: Optional[str] = None,
        sort_direction: str = "desc",
        fields: Optional[list[str]] = None,
        filter_formula: Optional[str] = None,
    ) -> list[AirtableRecord]:
        key = ("list_records", table_name, sort_field, sort_direction, tuple(fields or ()), filter_formula)
        return self._memoized(
            key,
            lambda: self._client.list_records(
                table_name,
                sort_field=sort_field,
                sort_direction=sort_direction,
                fields=fields,
                filter_formula=filter_formula,
            ),
        )

    def list_timestamps(self, table_name: str) -> list[RecordTimestamp]:
        return self._memoized(("list_timestamps", table_name), lambda: self._client.list_timestamps(table_name))

    def list_records_by_ids(
        self,
        table_name: str,
        record_ids: list[str],
        *,
        sort_field: Optional[str] = None,
        sort_direction: str = "desc",
    ) -> list[AirtableRecord]:
        key = ("list_records_by_ids", table_name, tuple(sorted(record_ids)), sort_field, sort_direction)
        return self._memoized(
            key,
            lambda: self._client.list_records_by_ids(
                table_name, record_ids, sort_field=sort_field, sort_direction=sort_direction
            ),
        )

    def _memoized(self, key: tuple, fetch) -> list:
        with self._lock:
            if key in self._cache:
                return copy.deepcopy(self._cache[key])
        result = fetch()
        with self._lock:
            self._cache[key] = result
        return copy.deepcopy(result)
