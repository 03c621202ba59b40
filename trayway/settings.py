"""
Tray Configuration Store

Handles the user configuration (menu entries, icon and clock options) stored
in a single JSON file. Separate from config.py which handles
environment-based settings.
"""

import json
import os
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from trayway.tray.autostart import LoginItemRegistry
from trayway.utils.logger import get_logger

logger = get_logger(__name__)

NO_GLYPH = "✕"
DEFAULT_EMOJI = "😊"
DEFAULT_APP_NAME = "TrayWay"

SITE_TYPE_SITE = "site"
SITE_TYPE_APP = "app"


def _is_blank(value: Optional[str]) -> bool:
    return not value or not str(value).strip()


@dataclass
class FolderEntry:
    """A folder shortcut opened with the system file manager."""

    label: str = ""
    path: str = ""

    @property
    def is_valid(self) -> bool:
        return not _is_blank(self.label) and not _is_blank(self.path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FolderEntry':
        return cls(label=str(data.get('label') or ''), path=str(data.get('path') or ''))

    def to_dict(self) -> Dict[str, Any]:
        return {'label': self.label, 'path': self.path}


@dataclass
class SiteEntry:
    """A web link, or an application when ``type`` is ``app`` (``url`` is then a path)."""

    label: str = ""
    url: str = ""
    type: str = SITE_TYPE_SITE

    @property
    def is_app(self) -> bool:
        return self.type == SITE_TYPE_APP

    @property
    def is_valid(self) -> bool:
        return not _is_blank(self.label) and not _is_blank(self.url)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SiteEntry':
        site_type = data.get('type') or SITE_TYPE_SITE
        if site_type not in (SITE_TYPE_SITE, SITE_TYPE_APP):
            site_type = SITE_TYPE_SITE
        return cls(label=str(data.get('label') or ''), url=str(data.get('url') or ''), type=site_type)

    def to_dict(self) -> Dict[str, Any]:
        return {'label': self.label, 'url': self.url, 'type': self.type}


def default_folders() -> List[FolderEntry]:
    return [FolderEntry(label="Finder", path="/")]


def default_sites() -> List[SiteEntry]:
    return [SiteEntry(label="Google", url="https://google.com", type=SITE_TYPE_SITE)]


# Attribute name -> JSON key
JSON_KEYS = {
    'folders': 'folders',
    'sites': 'sites',
    'tray_emoji': 'trayEmoji',
    'tray_text': 'trayText',
    'allow_icon_change': 'allowIconChange',
    'show_clock': 'showClock',
    'show_battery': 'showBattery',
    'use_24_hour_format': 'use24HourFormat',
    'show_am_pm': 'showAmPm',
    'first_run': 'firstRun',
    'auto_start': 'autoStart',
    'app_name': 'appName',
}
ATTRIBUTES = {key: attr for attr, key in JSON_KEYS.items()}


@dataclass
class TrayConfig:
    """The user configuration document."""

    # Menu entries
    folders: List[FolderEntry] = field(default_factory=default_folders)
    sites: List[SiteEntry] = field(default_factory=default_sites)

    # Tray icon
    tray_emoji: str = DEFAULT_EMOJI
    tray_text: str = ""
    allow_icon_change: bool = True

    # Clock / battery readout
    show_clock: bool = False
    show_battery: bool = False
    use_24_hour_format: bool = True
    show_am_pm: bool = True

    # Lifecycle flags
    first_run: bool = True
    auto_start: bool = False

    app_name: str = DEFAULT_APP_NAME

    # Top-level keys this version does not know about, written back untouched
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def clock_enabled(self) -> bool:
        return self.show_clock or self.show_battery

    @property
    def display_name(self) -> str:
        return self.app_name or DEFAULT_APP_NAME

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrayConfig':
        """Overlay a JSON document onto the defaults."""
        if not isinstance(data, dict):
            raise ValueError(f"Config document must be an object, got {type(data).__name__}")

        config = cls()
        defaults = {f.name: getattr(config, f.name) for f in fields(cls)}
        for key, value in data.items():
            attr = ATTRIBUTES.get(key)
            if attr is None:
                config.extras[key] = value
            elif attr == 'folders':
                if isinstance(value, list):
                    config.folders = [FolderEntry.from_dict(item) for item in value if isinstance(item, dict)]
            elif attr == 'sites':
                if isinstance(value, list):
                    config.sites = [SiteEntry.from_dict(item) for item in value if isinstance(item, dict)]
            elif isinstance(defaults[attr], bool):
                if isinstance(value, bool):
                    setattr(config, attr, value)
                else:
                    logger.warning(f"Ignoring non-boolean {key}={value!r}")
            else:
                setattr(config, attr, defaults[attr] if value is None else str(value))
        return config

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'folders': [folder.to_dict() for folder in self.folders],
            'sites': [site.to_dict() for site in self.sites],
        }
        for attr, key in JSON_KEYS.items():
            if attr not in ('folders', 'sites'):
                data[key] = getattr(self, attr)
        for key, value in self.extras.items():
            data.setdefault(key, value)
        return data

    def with_updates(self, partial: Dict[str, Any]) -> 'TrayConfig':
        """Shallow overlay: each top-level key in ``partial`` replaces the current value."""
        data = self.to_dict()
        for key, value in partial.items():
            data[JSON_KEYS.get(key, key)] = value
        return TrayConfig.from_dict(data)

    def without_blank_folders(self) -> 'TrayConfig':
        data = self.to_dict()
        data['folders'] = [folder for folder in data['folders'] if not _is_blank(folder['path'])]
        return TrayConfig.from_dict(data)


ConfigListener = Callable[[TrayConfig], None]


class ConfigStore:
    """
    Owner of the in-memory configuration and its JSON file.

    All mutation goes through load/merge/replace/reset_to_defaults, each of
    which notifies subscribers with the resulting config.
    """

    def __init__(self, path: Path, login_items: Optional[LoginItemRegistry] = None):
        """
        Args:
            path: Location of config.json
            login_items: Registry used to reconcile ``autoStart`` with the OS
        """
        self.path = path
        self.login_items = login_items
        self._lock = threading.RLock()
        self._config = TrayConfig()
        self._listeners: List[ConfigListener] = []

    @property
    def config(self) -> TrayConfig:
        # Reads skip the lock; writers swap the whole object
        return self._config

    def subscribe(self, listener: ConfigListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: ConfigListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, config: TrayConfig) -> None:
        for listener in list(self._listeners):
            try:
                listener(config)
            except Exception as e:
                logger.error(f"Config listener {listener!r} failed: {e}")

    def _set(self, config: TrayConfig) -> TrayConfig:
        with self._lock:
            self._config = config
            self._notify(config)
        return config

    def load(self) -> TrayConfig:
        """Load config from the JSON file, falling back to defaults."""
        config = TrayConfig()
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                config = TrayConfig.from_dict(data).without_blank_folders()
                logger.info(f"Loaded config from {self.path}")
            except Exception as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
                config = TrayConfig()
        else:
            logger.info(f"Config file not found at {self.path}, using defaults")

        if self.login_items is not None:
            enabled = self.login_items.is_enabled()
            if enabled != config.auto_start:
                logger.info(f"Syncing autoStart with login item state: {enabled}")
                config.auto_start = enabled

        return self._set(config)

    def save(self, config: Optional[TrayConfig] = None) -> bool:
        """Save config to the JSON file. Returns False if writing failed."""
        with self._lock:
            config = (config or self._config).without_blank_folders()
            tmp_path = self.path.with_name(self.path.name + '.tmp')
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, 'w', encoding='utf-8') as f:
                    json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
                logger.info(f"Saved config to {self.path}")
                return True
            except Exception as e:
                logger.error(f"Failed to save config: {e}")
                return False

    def merge(self, partial: Dict[str, Any], persist: bool = False) -> TrayConfig:
        """Apply a partial update from the settings surface."""
        with self._lock:
            config = self._set(self._config.with_updates(partial))
            if persist:
                self.save()
            return config

    def replace(self, config: TrayConfig, persist: bool = True) -> TrayConfig:
        with self._lock:
            self._set(config)
            if persist:
                self.save()
            return config

    def reset_to_defaults(self) -> TrayConfig:
        """Restore default settings, keeping the OS-derived autoStart state."""
        with self._lock:
            config = TrayConfig(first_run=False, auto_start=self._config.auto_start)
            return self.replace(config)
