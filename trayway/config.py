import os
import sys
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from trayway import __version__


def default_data_dir() -> Path:
    """Per-user directory holding config.json, the icon cache and logs."""
    if sys.platform == 'win32':
        return Path(os.environ.get('LOCALAPPDATA', Path.home())) / 'TrayWay'
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support' / 'TrayWay'
    return Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config')) / 'trayway'


class Settings(BaseSettings):
    app_version: str = __version__

    # Storage
    data_dir: Path = Field(default_factory=default_data_dir)
    config_filename: str = "config.json"
    icons_dirname: str = "icons"
    downloads_dirname: str = "updates"

    # Release feed (GitHub owner/repo)
    update_repo: str = "lidarvision/trayway"
    update_check_interval_hours: float = 24 * 7
    update_timeout_seconds: float = 10.0

    # Clock readout
    clock_utc_offset_hours: float = 5.0
    clock_interval_seconds: float = 1.0

    # Quick-access popup (pynput hotkey syntax); unset means Cmd+1 on macOS, Ctrl+1 elsewhere
    quick_menu_hotkey: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_filename: str = "trayway.log"

    class Config:
        env_prefix = "TRAYWAY_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def config_path(self) -> Path:
        return self.data_dir / self.config_filename

    @property
    def icons_dir(self) -> Path:
        return self.data_dir / self.icons_dirname

    @property
    def downloads_dir(self) -> Path:
        return self.data_dir / self.downloads_dirname

    @property
    def log_path(self) -> Path:
        return self.data_dir / self.log_filename


settings = Settings()
