"""Tests for the riskvanguard-server command line."""

import json

import pytest

from riskvanguard.server.cli import main


def print_config(capsys, *argv):
    main(["--print-config", *argv])
    return json.loads(capsys.readouterr().out)


class TestServerCli:
    """Tests for flag and environment resolution."""

    def test_defaults(self, capsys, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("RISKVANGUARD_API_KEYS", raising=False)

        data = print_config(capsys)
        assert data["port"] == 8000
        assert data["database_url"] == "sqlite:///./riskvanguard.db"
        assert data["api_keys"] == ["dev-analyst-key", "dev-reviewer-key"]
        assert data["policy"]["high_below"] == 60.0

    def test_policy_flags_override_environment(self, capsys, monkeypatch):
        monkeypatch.setenv("RISKVANGUARD_HIGH_BELOW", "65")
        monkeypatch.setenv("RISKVANGUARD_MINIMUM_ROYALTY_RATE", "15")

        data = print_config(capsys, "--minimum-royalty-rate", "18.75", "--port", "9100")
        assert data["policy"]["high_below"] == 65.0
        assert data["policy"]["minimum_royalty_rate"] == 18.75
        assert data["port"] == 9100

    def test_api_keys_flag_wins(self, capsys, monkeypatch):
        monkeypatch.setenv("RISKVANGUARD_API_KEYS", "env-key")
        data = print_config(capsys, "--api-keys", "ops-key, audit-key")
        assert data["api_keys"] == ["audit-key", "ops-key"]

    def test_misordered_bands_rejected(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--print-config", "--critical-below", "90"])
        assert exc_info.value.code == 2
        assert "Risk bands must be ordered" in capsys.readouterr().err
