"""
Unit tests for application configuration.
"""
from pathlib import Path
from unittest.mock import patch

from trayway import __version__
from trayway.config import Settings, default_data_dir, settings


class TestSettings:
    """Tests for Settings class."""

    def test_paths_under_data_dir(self):
        """Test that config, icons and updates live in the data directory."""
        assert settings.config_path == settings.data_dir / "config.json"
        assert settings.icons_dir == settings.data_dir / "icons"
        assert settings.downloads_dir == settings.data_dir / "updates"

    def test_default_values(self):
        """Test defaults for the clock and update checks."""
        s = Settings()
        assert s.app_version == __version__
        assert s.clock_utc_offset_hours == 5.0
        assert s.clock_interval_seconds == 1.0
        assert s.update_check_interval_hours == 168
        assert "/" in s.update_repo


class TestSettingsEnvironmentVariables:
    """Tests for environment variable configuration."""

    def test_data_dir_from_env(self, tmp_path):
        """Test that TRAYWAY_DATA_DIR overrides the data directory."""
        with patch.dict("os.environ", {"TRAYWAY_DATA_DIR": str(tmp_path)}):
            assert Settings().data_dir == tmp_path

    def test_clock_offset_from_env(self):
        with patch.dict("os.environ", {"TRAYWAY_CLOCK_UTC_OFFSET_HOURS": "-3.5"}):
            assert Settings().clock_utc_offset_hours == -3.5

    def test_hotkey_from_env(self):
        with patch.dict("os.environ", {"TRAYWAY_QUICK_MENU_HOTKEY": "<ctrl>+<alt>+t"}):
            assert Settings().quick_menu_hotkey == "<ctrl>+<alt>+t"


class TestDefaultDataDir:
    """Tests for the per-platform data directory."""

    def test_linux_uses_xdg_config_home(self, tmp_path):
        with patch("trayway.config.sys.platform", "linux"), \
                patch.dict("os.environ", {"XDG_CONFIG_HOME": str(tmp_path)}):
            assert default_data_dir() == tmp_path / "trayway"

    def test_macos_application_support(self):
        with patch("trayway.config.sys.platform", "darwin"):
            assert default_data_dir() == Path.home() / "Library" / "Application Support" / "TrayWay"
