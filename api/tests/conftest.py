"""
Configuración de fixtures para pytest.

FakeAirtableClient reemplaza al cliente HTTP en los tests del orquestador:
guarda las tablas en memoria y cuenta cada llamada.
"""
from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from portfolio_sync.infrastructure.external.airtable_sync.airtable_client import AirtableApiError
from portfolio_sync.infrastructure.external.airtable_sync.snapshot_store import PortfolioSnapshotStore
from portfolio_sync.infrastructure.external.airtable_sync.sync_service import PortfolioSyncService
from portfolio_sync.infrastructure.external.airtable_sync.types import AirtableRecord, RecordTimestamp


LAST_MODIFIED = "Last Modified"
FIXED_NOW = datetime(2025, 3, 10, 12, 30, 0, tzinfo=timezone.utc)


def make_record(record_id: str, last_modified: Optional[str], **fields: Any) -> dict[str, Any]:
    """Record crudo como lo devuelve Airtable."""
    all_fields = dict(fields)
    if last_modified is not None:
        all_fields[LAST_MODIFIED] = last_modified
    return {"id": record_id, "createdTime": "2024-01-01T00:00:00.000Z", "fields": all_fields}


def sample_tables() -> dict[str, list[dict[str, Any]]]:
    return {
        "Projects": [
            make_record(
                "recP1", "2025-01-01T10:00:00.000Z",
                **{
                    "Name": "night_swim",
                    "Display Status": "Featured",
                    "Role": ["Director"],
                    "Release Date": "2023-05-01",
                    "Project Type": "Short Film",
                    "Festivals": ["recF1"],
                    "Production Company": ["recC1"],
                    "Video URL": "https://vimeo.com/123456789",
                    "Credits": "DOP: Ana Ruiz, Editor: Tom Lee",
                },
            ),
            make_record(
                "recP2", "2025-01-02T10:00:00.000Z",
                **{"Name": "Hidden One", "Display Status": "Hidden", "Role": ["Director"]},
            ),
            make_record(
                "recP3", "2025-01-03T10:00:00.000Z",
                **{"Name": "Edit Job", "Display Status": "Featured", "Role": ["Editor"]},
            ),
            make_record(
                "recP4", "2025-01-04T10:00:00.000Z",
                **{
                    "Name": "Brand Film",
                    "Display Status": "Hero",
                    "Role": ["Director"],
                    "Release Date": "2024-09-15",
                    "Project Type": "Commercial",
                    "Gallery": [{"url": "https://cdn.example.com/brand.jpg"}],
                },
            ),
        ],
        "Journal": [
            make_record(
                "recJ1", "2025-02-01T09:00:00.000Z",
                **{"Title": "on set", "Status": "Published", "Date": "2025-01-20", "Content": "Short note."},
            ),
            make_record(
                "recJ2", "2025-02-02T09:00:00.000Z",
                **{"Title": "Draft", "Status": "Draft", "Date": "2025-01-25"},
            ),
        ],
        "Festivals": [
            make_record("recF1", "2024-06-01T00:00:00.000Z", **{"Name": "Sundance", "Display Name": "Sundance 2024"}),
        ],
        "Client Book": [
            make_record("recC1", "2024-06-02T00:00:00.000Z", **{"Company": "Acme Films"}),
        ],
        "Settings": [
            make_record(
                "recS1", "2024-12-01T00:00:00.000Z",
                **{
                    "Portfolio ID": "directing",
                    "Site Title": "Jane Doe",
                    "Owner Name": "Jane Doe",
                    "Allowed Roles": "Director",
                    "Has Journal": True,
                },
            ),
        ],
    }


class FakeAirtableClient:
    """
    Cliente Airtable en memoria con la misma interfaz que AirtableClient.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        self.tables = copy.deepcopy(tables)
        self.calls: list[tuple[str, str]] = []
        self.fetched_ids: dict[str, list[str]] = {}
        self.fail_timestamps = False
        self.fail_list_records = False
        self.fail_by_ids = False

    @property
    def last_modified_field(self) -> str:
        return LAST_MODIFIED

    def list_records(self, table_name, *, sort_field=None, sort_direction="desc", fields=None, filter_formula=None):
        self.calls.append(("list_records", table_name))
        if self.fail_list_records:
            raise AirtableApiError("Airtable caído", status_code=503)
        return [self._record(raw) for raw in self.tables.get(table_name, [])]

    def list_timestamps(self, table_name):
        self.calls.append(("list_timestamps", table_name))
        if self.fail_timestamps:
            raise AirtableApiError("rate limited", status_code=429)
        return [
            RecordTimestamp(record_id=raw["id"], last_modified=raw["fields"].get(LAST_MODIFIED))
            for raw in self.tables.get(table_name, [])
        ]

    def list_records_by_ids(self, table_name, record_ids, *, sort_field=None, sort_direction="desc"):
        self.calls.append(("list_records_by_ids", table_name))
        self.fetched_ids[table_name] = list(record_ids)
        if self.fail_by_ids:
            raise AirtableApiError("Airtable caído", status_code=500)
        wanted = set(record_ids)
        return [self._record(raw) for raw in self.tables.get(table_name, []) if raw["id"] in wanted]

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def reset_calls(self) -> None:
        self.calls.clear()
        self.fetched_ids.clear()

    @staticmethod
    def _record(raw: dict[str, Any]) -> AirtableRecord:
        return AirtableRecord.from_raw(copy.deepcopy(raw), last_modified_field=LAST_MODIFIED)


@pytest.fixture
def fake_airtable() -> FakeAirtableClient:
    return FakeAirtableClient(sample_tables())


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "public" / "portfolio-data-directing.json"


@pytest.fixture
def make_service(snapshot_path):
    """Factory de PortfolioSyncService con reloj fijo."""
    def _make(airtable, path=None, **kwargs) -> PortfolioSyncService:
        return PortfolioSyncService(
            airtable=airtable,
            store=PortfolioSnapshotStore(path or snapshot_path),
            portfolio_mode=kwargs.pop("portfolio_mode", "directing"),
            clock=lambda: FIXED_NOW,
            max_workers=2,
            **kwargs,
        )
    return _make
