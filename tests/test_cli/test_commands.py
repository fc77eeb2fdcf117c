"""Tests for the feedrelay CLI."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from feedrelay.cli import main
from feedrelay.engine.cycle import CycleStats


@pytest.fixture
def runner():
    return CliRunner()


def _mock_service(service_cls, stats):
    service = service_cls.return_value
    service.__aenter__ = AsyncMock(return_value=service)
    service.__aexit__ = AsyncMock(return_value=False)
    service.run_once = AsyncMock(return_value=stats)
    service.init_db = AsyncMock()
    return service


class TestRunOnce:
    """Tests for `feedrelay run-once`."""

    def test_prints_stats(self, runner):
        with patch("feedrelay.services.relay_service.RelayService") as service_cls:
            _mock_service(service_cls, CycleStats(subscribers=2, delivered=5))

            result = runner.invoke(main, ["run-once", "--memory"])

        assert result.exit_code == 0, result.output
        assert "delivered: 5" in result.output
        assert "subscribers: 2" in result.output
        service_cls.assert_called_once_with(use_memory=True)

    def test_skipped_cycle_exits_nonzero(self, runner):
        with patch("feedrelay.services.relay_service.RelayService") as service_cls:
            _mock_service(service_cls, None)

            result = runner.invoke(main, ["run-once"])

        assert result.exit_code == 1
        assert "skipped" in result.output


class TestInitDb:
    """Tests for `feedrelay init-db`."""

    def test_creates_tables(self, runner):
        with patch("feedrelay.services.relay_service.RelayService") as service_cls:
            service = _mock_service(service_cls, None)

            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        service.init_db.assert_awaited_once()
        assert "Database initialized" in result.output


class TestHelp:
    """Tests for command discovery."""

    def test_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("run", "run-once", "init-db", "health"):
            assert command in result.output


class TestHealth:
    """Tests for `feedrelay health`."""

    def test_all_dependencies_up(self, runner):
        with (
            patch("feedrelay.cli.get_settings") as get_settings,
            patch("feedrelay.cli._ping_redis", AsyncMock(return_value=True)),
            patch("feedrelay.cli._ping_postgres", AsyncMock(return_value=True)),
        ):
            get_settings.return_value.telegram_configured = True
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 0, result.output
        assert "FAIL" not in result.output

    def test_unreachable_postgres_fails(self, runner):
        with (
            patch("feedrelay.cli.get_settings") as get_settings,
            patch("feedrelay.cli._ping_redis", AsyncMock(return_value=True)),
            patch(
                "feedrelay.cli._ping_postgres",
                AsyncMock(side_effect=OSError("connection refused")),
            ),
        ):
            get_settings.return_value.telegram_configured = True
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 1
        assert "FAIL" in result.output
