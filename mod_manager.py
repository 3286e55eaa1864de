"""
Taiko Mod Manager
Wires the registry, resolver, installer and updater together for a host shell
"""

__version__ = "1.0"

from datetime import datetime

from artifact_registry import ArtifactRegistry, KIND_MOD, KIND_PLUGIN
from config_document import ConfigDocument
from installer import Installer
from manager_settings import ManagerPaths, ManagerSettings
from release_resolver import ReleaseResolver
from sidecar_store import SidecarStore
from update_coordinator import UpdateCoordinator


class ModManager:
    def __init__(self, game_root, data_dir, log_sink=print, http=None, scratch_root=None):
        """Initialize the mod manager for one game installation.

        Args:
            game_root: str/Path - Game installation root (from the path-discovery collaborator)
            data_dir: str/Path - Directory for sidecars and settings
            log_sink: callable - Receives timestamped progress/error lines
            http: Optional object - requests-compatible HTTP client
            scratch_root: Optional str/Path - Parent for download scratch directories
        """
        self.log_sink = log_sink
        self.paths = ManagerPaths(game_root, data_dir)
        self.paths.ensure_dirs()
        self.settings = ManagerSettings(self.paths.data_dir)

        self.sidecars = SidecarStore(self.paths.sidecar_dir)
        self.resolver = ReleaseResolver(
            http=http,
            user_agent=self.settings.get_setting('user_agent'),
            token=self.settings.get_setting('github_token') or None,
            timeout=self.settings.get_setting('request_timeout')
        )
        self.installer = Installer(
            self.resolver,
            self.sidecars,
            self.paths.plugins_dir,
            download_timeout=self.settings.get_setting('download_timeout'),
            scratch_root=scratch_root,
            log=self.log
        )
        self.updater = UpdateCoordinator(self.resolver, self.installer, self.sidecars, log=self.log)
        self.plugin_registry = ArtifactRegistry(
            self.paths.plugins_dir,
            KIND_PLUGIN,
            self.sidecars,
            layout=self.settings.get_setting('plugin_layout'),
            config_dir=self.paths.config_dir,
            log=self.log
        )
        self.mod_registry = ArtifactRegistry(self.paths.mods_dir, KIND_MOD, self.sidecars, log=self.log)

    def log(self, message):
        """Forward a message to the log sink."""
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.log_sink(f"[{timestamp}] {message}")

    def plugins(self):
        return self.plugin_registry.enumerate()

    def is_mod_loader_installed(self):
        """Check the mod loader plugin (RF.TekaTeka by default) is installed."""
        loader_id = f"{self.settings.get_setting('mod_loader_plugin')}.dll"
        return self.plugin_registry.find(loader_id) is not None

    def mods(self):
        """List data mods. Empty until the mod loader plugin has created TekaSongs."""
        if not self.is_mod_loader_installed():
            self.log("TekaTeka not found. Install RF.TekaTeka.dll first.")
            return []
        if not self.paths.mods_dir.is_dir():
            self.log("TekaTeka not initialized. Run the game to generate TekaSongs.")
            return []
        return self.mod_registry.enumerate()

    def install_plugin(self, repo_url):
        """Install a plugin from a repository URL collected by the host.

        Args:
            repo_url: str - Repository URL, or None/empty if the prompt was cancelled

        Returns:
            dict - Installer result, or None if no URL was given
        """
        if not repo_url or not repo_url.strip():
            self.log("Installation canceled: No URL provided.")
            return None
        self.log(f"Starting plugin installation from: {repo_url}")
        result = self.installer.install(repo_url.strip())
        self.log(result['message'])
        return result

    def check_for_updates(self):
        return self.updater.check_for_updates(self.plugins())

    def update_all(self, progress=None, report=None):
        """Update every outdated plugin; callbacks are forwarded to UpdateCoordinator.update_all."""
        self.log("Checking for plugin updates...")
        return self.updater.update_all(self.plugins(), progress=progress, report=report)

    def set_enabled(self, record, enabled):
        """Change a plugin or mod's enabled flag and persist it.

        Returns:
            bool - True if the config file was rewritten
        """
        record.enabled = bool(enabled)
        registry = self.plugin_registry if record.kind == KIND_PLUGIN else self.mod_registry
        written = registry.persist(record)
        if not written:
            self.log(f"'{record.id}' has no Enabled entry to update")
        return written

    def load_config(self, record=None):
        """Load a plugin's runtime config, or BepInEx.cfg when no record is given.

        Returns:
            ConfigDocument - Parsed config, or None if the file does not exist
        """
        config_path = record.config_path if record is not None else self.paths.loader_config_path
        if config_path is None or not config_path.is_file():
            self.log(f"Config file not found: {config_path}")
            return None
        return ConfigDocument.load(config_path)

    def save_config(self, document):
        document.save()
        self.log(f"Config saved: {document.path}")
        return True

    def install_loader(self):
        """Install BepInEx over the game root if it is missing."""
        if self.paths.is_loader_installed():
            return False
        self.log("BepInEx not found. Installing now...")
        return self.installer.install_loader(self.settings.get_setting('loader_url'), self.paths.game_root)

    def create_mod(self, folder_name, name, version='1.0', description=''):
        return self.installer.create_mod(self.paths.mods_dir, folder_name, name, version, description)
