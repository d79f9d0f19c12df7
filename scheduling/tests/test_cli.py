"""
Tests for the morning alarm CLI
"""

import pytest
from click.testing import CliRunner

from morning_alarm.cli import cli

WAV_URI = "data:audio/wav;base64,AAAA"


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("morning_alarm.cli.setup_logging", lambda **kwargs: None)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def env(tmp_path):
    return {
        "BASE_DIR": str(tmp_path / "media"),
        "DELIVERY_TIER": "full",
        "DURABLE_STORAGE": "true",
        "PERMISSION_MODE": "granted",
    }


class TestCli:
    """Test CLI commands"""

    def test_next(self, runner, env):
        result = runner.invoke(cli, ["next", "11:30"], env=env, obj={})

        assert result.exit_code == 0
        assert result.output.startswith("11:30 ")

    def test_next_invalid(self, runner, env):
        result = runner.invoke(cli, ["next", "25:00"], env=env, obj={})

        assert result.exit_code == 2
        assert "Invalid wake time" in result.output

    def test_cache_status_and_clear(self, runner, env, tmp_path):
        result = runner.invoke(cli, ["cache", "playback", WAV_URI], env=env, obj={})
        assert result.exit_code == 0
        assert "morning-alarm.mp3" in result.output
        assert (tmp_path / "media" / "morning-audio" / "morning-alarm.mp3").exists()

        result = runner.invoke(cli, ["status"], env=env, obj={})
        assert result.exit_code == 0
        assert "Delivery tier: full" in result.output
        assert "notification-sound: not cached" in result.output

        result = runner.invoke(cli, ["clear"], env=env, obj={})
        assert result.exit_code == 0
        assert not (tmp_path / "media" / "morning-audio" / "morning-alarm.mp3").exists()

    def test_cache_failure(self, runner, env):
        result = runner.invoke(cli, ["cache", "notification-sound", "data:audio/wav;base64,"], env=env, obj={})

        assert result.exit_code == 1
        assert "Could not cache notification-sound asset" in result.output

    def test_cache_rejects_unknown_kind(self, runner, env):
        result = runner.invoke(cli, ["cache", "ringtone", WAV_URI], env=env, obj={})
        assert result.exit_code == 2

    def test_run_reports_scheduling_failure(self, runner, env):
        result = runner.invoke(cli, ["run", "7:99", "Sam", WAV_URI], env=env, obj={})

        assert result.exit_code == 1
        assert "Scheduling failed: invalid request" in result.output
