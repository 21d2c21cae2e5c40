"""Unit tests for settings loading."""

from pathlib import Path

from nvd_matcher import config
from nvd_matcher.config import DEFAULT_DB_PATH, Settings, get_settings, get_workers


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_dict({})
        assert settings.db_path == DEFAULT_DB_PATH
        assert settings.page_delay == 6.0
        assert settings.results_per_page is None
        assert settings.request_timeout == 60

    def test_from_file_sections(self):
        settings = Settings.from_dict(
            {
                "nvd": {"page_delay_seconds": 0.6, "results_per_page": 500, "timeout": 30},
                "database": {"path": "/tmp/nvd.db"},
                "parallelism": {"cve_resolution_workers": 4},
            }
        )
        assert settings.page_delay == 0.6
        assert settings.results_per_page == 500
        assert settings.request_timeout == 30
        assert settings.db_path == Path("/tmp/nvd.db")

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NVD_MATCHER_DB", str(tmp_path / "x.db"))
        monkeypatch.setenv("NVD_PAGE_DELAY", "1.5")
        monkeypatch.setenv("NVD_RESULTS_PER_PAGE", "100")

        settings = Settings().apply_env()

        assert settings.db_path == tmp_path / "x.db"
        assert settings.page_delay == 1.5
        assert settings.results_per_page == 100

    def test_invalid_env_ignored(self, monkeypatch):
        monkeypatch.setenv("NVD_PAGE_DELAY", "soon")
        monkeypatch.setenv("NVD_RESULTS_PER_PAGE", "many")

        settings = Settings().apply_env()

        assert settings.page_delay == 6.0
        assert settings.results_per_page is None


class TestGetSettings:
    def test_cached_until_reset(self, monkeypatch):
        monkeypatch.setattr(config, "_load_settings_file", lambda: {})
        first = get_settings()
        assert get_settings() is first

        config.reset_settings()
        assert get_settings() is not first

    def test_page_delay_from_env(self, monkeypatch):
        monkeypatch.setattr(config, "_load_settings_file", lambda: {})
        assert get_settings().page_delay == 0.0


class TestWorkers:
    def test_configured(self, monkeypatch):
        monkeypatch.setattr(
            config, "_load_settings_file", lambda: {"parallelism": {"cve_resolution_workers": 3}}
        )
        assert get_workers("cve_resolution_workers", 8) == 3

    def test_default(self, monkeypatch):
        monkeypatch.setattr(config, "_load_settings_file", lambda: {})
        assert get_workers("cve_resolution_workers", 8) == 8

    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(
            config,
            "_load_settings_file",
            lambda: {"parallelism": {"enabled": False, "cve_resolution_workers": 3}},
        )
        assert get_workers("cve_resolution_workers", 8) == 1
