import importlib.util
from pathlib import Path
from unittest.mock import patch

import pytest

from src.database.connection import build_engine, init_db

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "health_check.py"


@pytest.fixture(scope="module")
def health_check():
    spec = importlib.util.spec_from_file_location("health_check", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def database_url(tmp_path):
    url = f"sqlite:///{tmp_path}/health.db"
    engine = build_engine(url)
    init_db(engine)
    engine.dispose()
    return url


def test_healthy_database(health_check, database_url):
    assert health_check.run_health_check(database_url) == 0


def test_missing_tables(health_check, tmp_path):
    assert health_check.run_health_check(f"sqlite:///{tmp_path}/empty.db") == 1


def test_rpc_failure_only_fails_when_required(health_check, database_url):
    with patch.object(health_check, "check_rpc", return_value=None):
        assert health_check.run_health_check(database_url, "http://node", require_rpc=False) == 0
        assert health_check.run_health_check(database_url, "http://node", require_rpc=True) == 1


def test_rpc_required_but_not_configured(health_check, database_url):
    assert health_check.run_health_check(database_url, None, require_rpc=True) == 1


def test_reports_lag(health_check, database_url, capsys):
    with patch.object(health_check, "check_rpc", return_value=150):
        with patch.object(health_check.PersistenceGateway, "get_cursor", return_value=100):
            assert health_check.run_health_check(database_url, "http://node") == 0
    assert "Blocks behind: 50" in capsys.readouterr().out


def test_check_rpc_reports_tip(health_check):
    with patch.object(health_check, "ChainRPCService") as mock_rpc:
        rpc = mock_rpc.return_value
        rpc.test_connection.return_value = True
        rpc.get_block_number.return_value = 42

        assert health_check.check_rpc("http://node") == 42
        rpc.close.assert_called_once()


def test_check_rpc_unhealthy_connection(health_check, capsys):
    with patch.object(health_check, "ChainRPCService") as mock_rpc:
        rpc = mock_rpc.return_value
        rpc.test_connection.return_value = False
        rpc.get_connection_status.return_value = {"state": "degraded", "consecutive_failures": 2}

        assert health_check.check_rpc("http://node") is None
        rpc.get_block_number.assert_not_called()
        rpc.close.assert_called_once()

    assert "degraded, 2 consecutive failures" in capsys.readouterr().out
