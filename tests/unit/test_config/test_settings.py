"""
Tests for the dynaconf-backed configuration wrapper.
"""

from decimal import Decimal

import pytest

from cost_guard.config import settings as settings_module
from cost_guard.config.settings import CostGuardConfig, build_settings, load_config
from cost_guard.errors import ConfigurationError


@pytest.mark.unit
class TestCostGuardConfig:
    """Test cases for CostGuardConfig."""

    def test_defaults(self, monkeypatch):
        """Test every property falls back to its default on empty settings."""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("PORT", raising=False)
        config = CostGuardConfig(build_settings([]))

        assert config.store_backend == "postgres"
        assert config.database_url.startswith("postgres://")
        assert config.pool_min_size == 2
        assert config.pool_max_size == 10
        assert config.scheduler_enabled is True
        assert config.interval_seconds == 30.0
        assert config.backfill_days == 14
        assert config.backfill_seed == 42
        assert config.services == ["compute", "storage", "db", "network"]
        assert config.currency == "USD"
        assert config.sampler_name == "simulated"
        assert config.baselines["compute"] == Decimal("3.0")
        assert config.window_days is None
        assert config.spike_multiplier is None
        assert config.api_host == "0.0.0.0"
        assert config.api_port == 8080

    def test_repository_config_file_is_valid(self):
        """Test the shipped config/config.yaml passes validation."""
        config = load_config(str(settings_module.CONFIG_DIR / "config.yaml"))

        assert config.window_days == 7
        assert config.spike_multiplier == Decimal("1.5")
        assert config.services == ["compute", "storage", "db", "network"]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://env-host/db")
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("COSTGUARD_SCHEDULER__INTERVAL_SECONDS", "5")

        config = CostGuardConfig(build_settings([]))

        assert config.database_url == "postgres://env-host/db"
        assert config.api_port == 9090
        assert config.interval_seconds == 5.0

    def test_cli_port_beats_environment(self, monkeypatch, test_config):
        """Test an explicit --port wins over PORT, which still wins over the file."""
        monkeypatch.setenv("PORT", "8081")
        assert test_config.api_port == 8081

        test_config.override_from_cli({"port": 9001})

        assert test_config.api_port == 9001

    def test_yaml_file_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "store:\n"
            "  backend: memory\n"
            "services:\n"
            "  tracked: [compute, db]\n"
            "  currency: eur\n"
            "sampler:\n"
            "  baselines:\n"
            "    compute: 10.0\n"
            "    db: 2.5\n"
            "detection:\n"
            "  window_days: 3\n"
            "  spike_multiplier: 2.0\n"
        )

        config = load_config(str(path))

        assert config.store_backend == "memory"
        assert config.services == ["compute", "db"]
        assert config.currency == "EUR"
        assert config.baselines == {"compute": Decimal("10.0"), "db": Decimal("2.5")}
        assert config.window_days == 3
        assert config.spike_multiplier == Decimal("2.0")

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "absent.yaml"))

    def test_override_from_cli(self, test_config):
        test_config.override_from_cli(
            {"interval_seconds": 2, "backfill_days": 60, "port": 9000, "store": "memory", "host": None}
        )

        assert test_config.interval_seconds == 2.0
        assert test_config.backfill_days == 60
        assert test_config.api_port == 9000
        assert test_config.store_backend == "memory"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"interval_seconds": 0},
            {"backfill_days": 0},
            {"backfill_days": 366},
            {"window_days": 0},
            {"spike_multiplier": 0},
            {"store": "sqlite"},
            {"port": 70000},
        ],
    )
    def test_invalid_override_rejected(self, test_config, overrides):
        """Test CLI overrides are re-validated."""
        with pytest.raises(ConfigurationError):
            test_config.override_from_cli(overrides)

    def test_invalid_file_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scheduler:\n  interval_seconds: -1\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path))
