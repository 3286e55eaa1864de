"""
Manager Settings
Persists manager settings to manager-settings.json and derives the game paths
"""

import json
from pathlib import Path
from datetime import datetime

from mod_errors import PersistFailed

SETTINGS_FILE = 'manager-settings.json'
DEFAULT_USER_AGENT = 'TaikoModManager/1.0'
DEFAULT_LOADER_URL = (
    'https://github.com/BepInEx/BepInEx/releases/download/v6.0.0-pre.2/'
    'BepInEx-Unity.IL2CPP-win-x64-6.0.0-pre.2.zip'
)

DEFAULT_SETTINGS = {
    'game_path': '',
    'github_token': '',
    'user_agent': DEFAULT_USER_AGENT,
    'request_timeout': 10,
    'download_timeout': 30,
    'loader_url': DEFAULT_LOADER_URL,
    'mod_loader_plugin': 'RF.TekaTeka',
    'plugin_layout': 'any'
}


class ManagerSettings:
    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.settings_file = self.data_dir / SETTINGS_FILE
        self.settings = self._load_settings()

    def _load_settings(self):
        """Load settings from manager-settings.json"""
        if self.settings_file.exists():
            try:
                with open(self.settings_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    return loaded
            except (OSError, ValueError):
                pass
        return self._create_empty_structure()

    def _create_empty_structure(self):
        return {
            'version': '1.0',
            'last_updated': datetime.now().isoformat()
        }

    def save_settings(self):
        """Save settings to manager-settings.json"""
        self.settings['last_updated'] = datetime.now().isoformat()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise PersistFailed(f"Error saving settings: {e}") from e
        return True

    def get_setting(self, key, default=None):
        """Get a setting value, falling back to the built-in default"""
        if key in self.settings:
            return self.settings[key]
        if default is not None:
            return default
        return DEFAULT_SETTINGS.get(key)

    def set_setting(self, key, value):
        self.settings[key] = value
        return self.save_settings()

    def get_all_settings(self):
        merged = dict(DEFAULT_SETTINGS)
        merged.update({k: v for k, v in self.settings.items() if k in DEFAULT_SETTINGS})
        return merged


class ManagerPaths:
    """Every directory the manager touches, derived once from the game root.

    Layout:
        <game_root>/BepInEx/plugins/        installed plugin binaries
        <game_root>/BepInEx/config/         runtime configs (<plugin>.cfg, BepInEx.cfg)
        <game_root>/TekaSongs/              data mod folders
        <data_dir>/                         sidecar metadata and settings
    """

    def __init__(self, game_root, data_dir):
        self.game_root = Path(game_root)
        self.data_dir = Path(data_dir)
        self.loader_dir = self.game_root / 'BepInEx'
        self.plugins_dir = self.loader_dir / 'plugins'
        self.config_dir = self.loader_dir / 'config'
        self.loader_config_path = self.config_dir / 'BepInEx.cfg'
        self.mods_dir = self.game_root / 'TekaSongs'
        self.sidecar_dir = self.data_dir

    def ensure_dirs(self):
        """Create the manager data directory."""
        self.sidecar_dir.mkdir(parents=True, exist_ok=True)

    def is_loader_installed(self):
        return self.loader_dir.is_dir()
