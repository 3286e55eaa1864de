"""
Installer
Downloads release assets and places plugins, mods and the BepInEx loader
"""

import os
import shutil
import stat
import sys
import tempfile
import zipfile
from pathlib import Path

import requests
import tomli_w

from artifact_detector import ARCHIVE, BINARY, detect_asset_kind, detect_plugin_binaries
from artifact_registry import MOD_MANIFEST
from mod_errors import InstallationFailed, NetworkError, PersistFailed


def _discard(message):
    pass


class Installer:
    def __init__(self, resolver, sidecars, dest_root, download_timeout=30, scratch_root=None, log=None):
        """Initialize installer.

        Args:
            resolver: ReleaseResolver - Repository and release lookups
            sidecars: SidecarStore - Metadata written for installed plugins
            dest_root: str/Path - Plugin directory (BepInEx/plugins)
            download_timeout: float - Asset download timeout in seconds
            scratch_root: Optional str/Path - Parent for scratch directories
            log: Optional callable - Log sink for free-text messages
        """
        self.resolver = resolver
        self.sidecars = sidecars
        self.dest_root = Path(dest_root)
        self.download_timeout = download_timeout
        self.scratch_root = scratch_root
        self.log = log or _discard

    def _handle_remove_readonly(self, func, path, exc):
        """Clear the read-only bit and retry a failed removal."""
        os.chmod(path, stat.S_IWRITE)
        func(path)

    def _remove_directory_safe(self, path):
        path = Path(path)
        if not path.exists():
            return
        try:
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=self._handle_remove_readonly)
            else:
                shutil.rmtree(path, onerror=self._handle_remove_readonly)
        except OSError as e:
            self.log(f"Could not remove scratch directory {path}: {e}")

    def _make_scratch_dir(self):
        if self.scratch_root is not None:
            Path(self.scratch_root).mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix='taiko-mm-', dir=self.scratch_root))

    def _download(self, url, dest_path):
        """Stream a download to disk.

        Raises:
            NetworkError - Transport failure or non-success status
        """
        try:
            response = self.resolver.http.get(
                url,
                headers={'User-Agent': self.resolver.user_agent},
                stream=True,
                timeout=self.download_timeout
            )
            response.raise_for_status()

            with open(dest_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            raise NetworkError(f"Download of {url} failed: {e}") from e
        return dest_path

    def install(self, repo_url, dest_root=None):
        """Install the latest release of a plugin repository.

        Args:
            repo_url: str - Repository URL (https://github.com/OWNER/REPO)
            dest_root: Optional str/Path - Overrides the installer's plugin directory

        Returns:
            dict - Installation result with keys:
            - success: bool - Always True (failures raise)
            - message: str - Summary message
            - name: str - Repository name
            - version: str - Installed release tag
            - installed: list - Installed plugin file names

        Raises:
            InstallationFailed - Any step failed; files already placed stay in place
        """
        scratch_dir = self._make_scratch_dir()
        try:
            ref = self.resolver.parse_repo_ref(repo_url)
            repo_meta = self.resolver.fetch_repo_info(ref)
            repo_meta['source_ref'] = repo_url
            release = self.resolver.fetch_latest_release(ref)

            asset_path = scratch_dir / Path(release.asset_file_name).name
            self.log(f"Downloading {release.asset_file_name} ({release.tag})...")
            self._download(release.asset_url, asset_path)

            kind = detect_asset_kind(asset_path.name)
            if kind == ARCHIVE:
                installed = self._install_archive(asset_path, scratch_dir / 'extracted', repo_meta, release.tag, dest_root)
            elif kind == BINARY:
                installed = [self.install_one(asset_path, repo_meta, release.tag, dest_root)]
            else:
                raise InstallationFailed(f"Unknown file type: {release.asset_url}")

            names = [p.name for p in installed]
            return {
                'success': True,
                'message': f"Plugin \"{repo_meta['name']}\" {release.tag} installed ({', '.join(names)})",
                'name': repo_meta['name'],
                'version': release.tag,
                'installed': names
            }
        except InstallationFailed:
            raise
        except Exception as e:
            raise InstallationFailed(f"Error installing plugin from {repo_url}: {e}") from e
        finally:
            self._remove_directory_safe(scratch_dir)

    def _install_archive(self, archive_path, extract_dir, repo_meta, version, dest_root=None):
        """Extract a release archive and install every plugin binary inside."""
        extract_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive_path, 'r') as zip_ref:
            zip_ref.extractall(extract_dir)

        binaries = detect_plugin_binaries(extract_dir)
        if not binaries:
            raise InstallationFailed(f"{archive_path.name} contains no .dll files")

        return [self.install_one(dll, repo_meta, version, dest_root) for dll in binaries]

    def install_one(self, artifact_path, repo_meta, version, dest_root=None):
        """Place one plugin binary and create its sidecar.

        The binary goes to <dest_root>/<stem>/<file name>, replacing any
        previous copy. A copy of the same file placed directly in <dest_root>
        is removed so only one binary stays loaded. A sidecar is written only
        if none exists yet for the file name, so the first install's metadata
        is kept.

        Args:
            artifact_path: str/Path - Binary in the scratch area
            repo_meta: dict - name, description, author and source_ref
            version: str - Release tag
            dest_root: Optional str/Path - Overrides the installer's plugin directory

        Returns:
            Path - Installed file
        """
        artifact_path = Path(artifact_path)
        root = Path(dest_root) if dest_root else self.dest_root
        target_dir = root / artifact_path.stem
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / artifact_path.name

        shutil.copy2(artifact_path, target)
        flat_copy = root / artifact_path.name
        if flat_copy.is_file():
            try:
                flat_copy.unlink()
            except OSError as e:
                raise InstallationFailed(f"Could not remove previous copy {flat_copy}: {e}") from e
            self.log(f"Moved {artifact_path.name} into {target_dir.name}/")
        try:
            artifact_path.unlink()
        except OSError as e:
            self.log(f"Could not delete scratch copy {artifact_path}: {e}")

        created = self.sidecars.create(
            artifact_path.name,
            name=repo_meta.get('name', artifact_path.name),
            description=repo_meta.get('description', ''),
            author=repo_meta.get('author', 'Unknown'),
            source_ref=repo_meta.get('source_ref'),
            version=version
        )
        if created:
            self.log(f"Installed {artifact_path.name} {version}")
        else:
            self.log(f"Installed {artifact_path.name}, keeping existing metadata")
        return target

    def install_loader(self, download_url, game_root):
        """Download the BepInEx archive and extract it over the game root.

        Raises:
            InstallationFailed - Download or extraction failed
        """
        scratch_dir = self._make_scratch_dir()
        archive_path = scratch_dir / 'BepInEx.zip'
        try:
            self.log(f"Downloading BepInEx from: {download_url}")
            self._download(download_url, archive_path)
            self.log(f"Extracting BepInEx to: {game_root}")
            with zipfile.ZipFile(archive_path, 'r') as zip_ref:
                zip_ref.extractall(game_root)
            self.log('BepInEx installed successfully.')
        except Exception as e:
            raise InstallationFailed(f"Error installing BepInEx: {e}") from e
        finally:
            self._remove_directory_safe(scratch_dir)
        return True

    def create_mod(self, mods_root, folder_name, name, version='1.0', description=''):
        """Create an empty data mod with a disabled config.toml manifest.

        Args:
            mods_root: str/Path - Mods directory (TekaSongs)
            folder_name: str - Folder to create
            name: str - Display name
            version: str - Initial version
            description: str - Free text description

        Returns:
            Path - Manifest path
        """
        folder_name = (folder_name or '').strip()
        name = (name or '').strip()
        if not folder_name or not name:
            raise ValueError('Folder name and mod name cannot be empty')

        mod_dir = Path(mods_root) / folder_name
        manifest_path = mod_dir / MOD_MANIFEST
        manifest = {
            'enabled': False,
            'name': name,
            'version': (version or '').strip(),
            'description': (description or '').strip()
        }
        try:
            mod_dir.mkdir(parents=True, exist_ok=True)
            with open(manifest_path, 'wb') as f:
                tomli_w.dump(manifest, f)
        except OSError as e:
            raise PersistFailed(f"Error creating mod '{folder_name}': {e}") from e

        self.log(f"Mod '{name}' created in {mod_dir}")
        return manifest_path
