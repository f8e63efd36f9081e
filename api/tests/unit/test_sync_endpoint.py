"""
Tests unitarios para los endpoints de sincronización.

Verifica el contrato HTTP:
- force/mode se pasan al caso de uso.
- El modo resuelto viaja en el header X-Sync-Mode.
- SYNC_TOKEN protege el endpoint cuando está configurado.
- Las AppException se traducen a {error, message, details}.
"""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from portfolio_sync.api.v1.dependencies.use_case_deps import get_portfolio_sync_use_cases
from portfolio_sync.application.dto.sync_dto import SyncStatusDTO, TableStatusDTO
from portfolio_sync.domain.entities.sync import SyncMode, SyncResult, SyncStats
from portfolio_sync.core import events
from portfolio_sync.shared.exceptions.base import AppException
from portfolio_sync.shared.exceptions.sync import InvalidPortfolioModeException, RemoteFetchException


def _result(mode: SyncMode = SyncMode.INCREMENTAL) -> SyncResult:
    return SyncResult(
        portfolio_mode="directing",
        timestamp="2025-03-10T12:30:00.000Z",
        stats=SyncStats(mode=mode, api_calls=6, fetched_records=1, changed_records=1, unchanged_records=8),
        projects=[{"id": "recP1"}, {"id": "recP4"}],
        posts=[{"id": "recJ1"}],
        output_file="public/portfolio-data-directing.json",
        written=mode is not SyncMode.CACHED,
    )


@pytest.fixture
def mock_use_cases() -> MagicMock:
    uc = MagicMock()
    uc.settings = SimpleNamespace(SYNC_TOKEN="")
    uc.execute.return_value = _result()
    return uc


@pytest.fixture
def app_with_mock(mock_use_cases: MagicMock):
    """Crea la app FastAPI con el use case mockeado via dependency_overrides."""
    from portfolio_sync.main import create_application
    app = create_application()
    app.dependency_overrides[get_portfolio_sync_use_cases] = lambda: mock_use_cases
    yield app
    app.dependency_overrides.clear()


async def _post(app, url: str, headers: dict | None = None):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post(url, headers=headers or {})


async def _get(app, url: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(url)


@pytest.mark.asyncio
async def test_sync_reports_mode_header_and_stats(app_with_mock, mock_use_cases: MagicMock) -> None:
    response = await _post(app_with_mock, "/api/v1/sync/airtable")

    assert response.status_code == 200
    assert response.headers["X-Sync-Mode"] == "incremental"
    data = response.json()
    assert data["success"] is True
    assert data["portfolioMode"] == "directing"
    assert data["stats"] == {"projects": 2, "journal": 1, "timestamp": "2025-03-10T12:30:00.000Z"}
    assert data["syncStats"]["apiCalls"] == 6
    assert data["syncStats"]["changedRecords"] == 1

    kwargs = mock_use_cases.execute.call_args.kwargs
    assert kwargs == {"force_full_sync": False, "portfolio_mode": None}


@pytest.mark.asyncio
async def test_force_and_mode_are_forwarded(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.execute.return_value = _result(SyncMode.FULL)

    response = await _post(app_with_mock, "/api/v1/sync/airtable?force=true&mode=postproduction")

    assert response.status_code == 200
    assert response.headers["X-Sync-Mode"] == "full"
    kwargs = mock_use_cases.execute.call_args.kwargs
    assert kwargs == {"force_full_sync": True, "portfolio_mode": "postproduction"}


@pytest.mark.asyncio
async def test_cached_run_reports_not_written(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.execute.return_value = _result(SyncMode.CACHED)

    response = await _post(app_with_mock, "/api/v1/sync/airtable")

    assert response.headers["X-Sync-Mode"] == "cached"
    assert response.json()["written"] is False


@pytest.mark.asyncio
async def test_sync_token_is_required_when_configured(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.settings.SYNC_TOKEN = "s3cret"

    unauthorized = await _post(app_with_mock, "/api/v1/sync/airtable")
    wrong = await _post(app_with_mock, "/api/v1/sync/airtable", headers={"Authorization": "Bearer nope"})
    ok = await _post(app_with_mock, "/api/v1/sync/airtable", headers={"Authorization": "Bearer s3cret"})

    assert unauthorized.status_code == 401
    assert unauthorized.json()["error"] == "UNAUTHORIZED"
    assert wrong.status_code == 401
    assert ok.status_code == 200
    assert mock_use_cases.execute.call_count == 1


@pytest.mark.asyncio
async def test_remote_failure_maps_to_502(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.execute.side_effect = RemoteFetchException("Airtable caído", upstream_status=503)

    response = await _post(app_with_mock, "/api/v1/sync/airtable?force=true")

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "REMOTE_FETCH_FAILED"
    assert body["details"] == {"upstream_status": 503}


@pytest.mark.asyncio
async def test_invalid_mode_maps_to_400(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.execute.side_effect = InvalidPortfolioModeException("photo", ["directing", "postproduction"])

    response = await _post(app_with_mock, "/api/v1/sync/airtable?mode=photo")

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_PORTFOLIO_MODE"


@pytest.mark.asyncio
async def test_status_endpoint_returns_stored_metadata(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.get_status.return_value = SyncStatusDTO(
        portfolio_mode="directing",
        output_file="public/portfolio-data-directing.json",
        exists=True,
        last_sync="2025-03-10T12:30:00.000Z",
        projects=2,
        journal=1,
        tables={"Projects": TableStatusDTO(record_count=4, latest_modified="2025-01-04T10:00:00.000Z")},
    )

    response = await _get(app_with_mock, "/api/v1/sync/status")

    assert response.status_code == 200
    data = response.json()
    assert data["lastSync"] == "2025-03-10T12:30:00.000Z"
    assert data["tables"]["Projects"]["recordCount"] == 4
    mock_use_cases.execute.assert_not_called()


@pytest.mark.asyncio
async def test_health(app_with_mock) -> None:
    response = await _get(app_with_mock, "/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_unexpected_error_returns_500_body(app_with_mock, mock_use_cases: MagicMock) -> None:
    mock_use_cases.get_status.side_effect = RuntimeError("disco lleno")

    response = await _get(app_with_mock, "/api/v1/sync/status")

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "INTERNAL_SERVER_ERROR"
    assert data["details"] == {"path": "/api/v1/sync/status"}
    assert "disco lleno" not in data["message"]


@pytest.mark.asyncio
async def test_lifespan_runs_startup_and_shutdown(monkeypatch) -> None:
    from portfolio_sync.main import create_application

    steps: list[str] = []
    monkeypatch.setattr(events, "configure_logging", lambda *args: steps.append("logging"))
    monkeypatch.setattr(events, "_validate_config", lambda: steps.append("config"))
    monkeypatch.setattr(events, "_print_available_urls", lambda: steps.append("urls"))

    app = create_application()
    async with app.router.lifespan_context(app):
        assert steps == ["logging", "config", "urls"]

    assert steps == ["logging", "config", "urls"]


def test_app_exception_body_and_client_error_flag() -> None:
    exc = AppException("No encontrado", status_code=404, error_code="NOT_FOUND", details={"id": "recX"})

    assert exc.is_client_error is True
    assert exc.to_dict() == {"error": "NOT_FOUND", "message": "No encontrado", "details": {"id": "recX"}}
    assert AppException("boom").is_client_error is False
