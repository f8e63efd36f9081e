"""
Tests del CLI scripts/sync_data.py.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

import sync_data
from portfolio_sync.domain.entities.sync import SyncMode, SyncResult, SyncStats
from portfolio_sync.shared.exceptions.sync import MissingCredentialsException


def _result(portfolio_mode: str, mode: SyncMode = SyncMode.FULL) -> SyncResult:
    return SyncResult(
        portfolio_mode=portfolio_mode,
        timestamp="2025-03-10T12:30:00.000Z",
        stats=SyncStats(mode=mode, api_calls=5, fetched_records=9),
        output_file=f"public/portfolio-data-{portfolio_mode}.json",
        written=mode is not SyncMode.CACHED,
    )


@pytest.fixture
def mock_use_cases() -> MagicMock:
    uc = MagicMock()
    uc.execute_many.side_effect = lambda modes, **kwargs: [_result(mode) for mode in modes]
    return uc


@pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("false", False), ("", False)])
def test_force_full_sync_env(monkeypatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("FORCE_FULL_SYNC", value)

    assert sync_data.resolve_force(False) is expected


def test_force_flag_wins(monkeypatch) -> None:
    monkeypatch.delenv("FORCE_FULL_SYNC", raising=False)

    assert sync_data.resolve_force(True) is True


def test_main_syncs_requested_modes_in_one_run(mock_use_cases: MagicMock, capsys, monkeypatch) -> None:
    monkeypatch.delenv("FORCE_FULL_SYNC", raising=False)

    code = sync_data.main(
        ["--mode", "directing", "--mode", "postproduction", "--force", "--output-dir", "dist"],
        use_cases=mock_use_cases,
    )

    assert code == 0
    mock_use_cases.execute_many.assert_called_once_with(
        ["directing", "postproduction"], force_full_sync=True, output_dir="dist"
    )
    out = capsys.readouterr().out
    assert "Portfolio:  postproduction" in out
    assert "Modo:       full" in out


def test_main_returns_1_on_failure(mock_use_cases: MagicMock) -> None:
    mock_use_cases.execute_many.side_effect = MissingCredentialsException(["AIRTABLE_TOKEN"])

    assert sync_data.main([], use_cases=mock_use_cases) == 1


def test_cached_report_says_file_was_not_rewritten(capsys) -> None:
    sync_data.print_report(_result("directing", SyncMode.CACHED))

    assert "no se reescribio" in capsys.readouterr().out


def test_main_defaults_to_configured_mode(mock_use_cases: MagicMock, monkeypatch) -> None:
    monkeypatch.setattr(sync_data.settings, "PORTFOLIO_MODE", "postproduction")

    assert sync_data.main([], use_cases=mock_use_cases) == 0
    assert mock_use_cases.execute_many.call_args.args == (["postproduction"],)
