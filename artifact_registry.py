"""
Artifact Registry
Enumerates installed plugins and data mods and merges them with their metadata
"""

from dataclasses import dataclass
from pathlib import Path

import tomli

from config_document import split_lines
from mod_errors import MalformedMetadata, PersistFailed
from sidecar_store import normalize_source_ref

KIND_PLUGIN = 'plugin'
KIND_MOD = 'mod'

LAYOUT_FLAT = 'flat'
LAYOUT_NESTED = 'nested'
LAYOUT_ANY = 'any'

PLUGIN_EXTENSION = '.dll'
MOD_MANIFEST = 'config.toml'

# Key written back when toggling, per kind
ENABLED_KEYS = {
    KIND_PLUGIN: 'Enabled',
    KIND_MOD: 'enabled'
}


@dataclass
class ArtifactRecord:
    id: str
    kind: str
    path: Path
    display_name: str
    description: str = ''
    author: str = 'Unknown'
    source_ref: str = None
    installed_version: str = None
    config_path: Path = None
    enabled: bool = False


def _discard(message):
    pass


def read_enabled_flag(config_path):
    """Read the enabled flag from a runtime config or manifest.

    The first line whose trimmed text starts with 'enabled' (any case) decides;
    it counts as enabled when it contains 'true'.

    Returns:
        bool - Enabled state, False when no such line exists
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        for line in f:
            if line.strip().lower().startswith('enabled'):
                return 'true' in line.lower()
    return False


def write_enabled_flag(config_path, enabled, key='Enabled'):
    """Rewrite the first enabled line of a config file.

    Files without an enabled line are left untouched.

    Returns:
        bool - True if the file was rewritten

    Raises:
        PersistFailed - File could not be read or written
    """
    try:
        with open(config_path, 'r', encoding='utf-8', newline='') as f:
            lines = split_lines(f.read())

        for i, line in enumerate(lines):
            if line.strip().lower().startswith(key.lower()):
                ending = line[len(line.rstrip('\r\n')):]
                lines[i] = f"{key} = {str(bool(enabled)).lower()}{ending}"
                break
        else:
            return False

        with open(config_path, 'w', encoding='utf-8', newline='') as f:
            f.write(''.join(lines))
    except OSError as e:
        raise PersistFailed(f"Error writing enabled flag to {config_path}: {e}") from e
    return True


class ArtifactRegistry:
    def __init__(self, root_dir, kind, sidecars, layout=LAYOUT_FLAT, config_dir=None, log=None):
        """Initialize registry for one kind of artifact.

        Args:
            root_dir: str/Path - Directory holding the artifacts
            kind: str - 'plugin' or 'mod'
            sidecars: SidecarStore - Sidecar metadata store
            layout: str - 'flat', 'nested' or 'any' (plugins only)
            config_dir: Optional str/Path - Directory of <plugin>.cfg runtime configs
            log: Optional callable - Log sink for free-text messages
        """
        if kind not in [KIND_PLUGIN, KIND_MOD]:
            raise ValueError(f"Unknown artifact kind: {kind}")
        if layout not in [LAYOUT_FLAT, LAYOUT_NESTED, LAYOUT_ANY]:
            raise ValueError(f"Unknown layout: {layout}")

        self.root_dir = Path(root_dir)
        self.kind = kind
        self.sidecars = sidecars
        self.layout = layout
        self.config_dir = Path(config_dir) if config_dir else None
        self.log = log or _discard

    def _plugin_candidates(self):
        """Yield (artifact_id, path) for plugin binaries in the configured layout."""
        for entry in self.root_dir.iterdir():
            if entry.is_file() and self.layout != LAYOUT_NESTED:
                if entry.suffix.lower() == PLUGIN_EXTENSION:
                    yield entry.name, entry
            elif entry.is_dir() and self.layout != LAYOUT_FLAT:
                for child in entry.iterdir():
                    if child.is_file() and child.suffix.lower() == PLUGIN_EXTENSION:
                        yield child.name, child

    def _mod_candidates(self):
        for entry in self.root_dir.iterdir():
            if entry.is_dir() and (entry / MOD_MANIFEST).is_file():
                yield entry.name, entry

    def enumerate(self):
        """List installed artifacts in filesystem order.

        Returns:
            list - ArtifactRecord snapshot, recreated on every call
        """
        if not self.root_dir.is_dir():
            return []

        if self.kind == KIND_PLUGIN:
            candidates = self._plugin_candidates()
        else:
            candidates = self._mod_candidates()

        records = []
        seen = set()
        for artifact_id, path in candidates:
            if artifact_id in seen:
                self.log(f"Skipping duplicate {self.kind} '{artifact_id}' at {path}")
                continue
            seen.add(artifact_id)
            records.append(self._build_record(artifact_id, path))
        return records

    def find(self, artifact_id):
        for record in self.enumerate():
            if record.id == artifact_id:
                return record
        return None

    def _build_record(self, artifact_id, path):
        record = ArtifactRecord(id=artifact_id, kind=self.kind, path=path, display_name=artifact_id)
        self._apply_sidecar(record)

        if self.kind == KIND_PLUGIN:
            if self.config_dir is not None:
                config_path = self.config_dir / f"{Path(artifact_id).stem}.cfg"
                if config_path.is_file():
                    record.config_path = config_path
        else:
            record.config_path = path / MOD_MANIFEST
            self._apply_manifest(record)

        if record.config_path is not None:
            try:
                record.enabled = read_enabled_flag(record.config_path)
            except (OSError, UnicodeDecodeError) as e:
                self.log(f"Could not read enabled flag for '{artifact_id}': {e}")
                record.enabled = False
        return record

    def _apply_sidecar(self, record):
        try:
            meta = self.sidecars.load(record.id)
        except MalformedMetadata as e:
            self.log(f"Ignoring metadata for '{record.id}': {e}")
            return
        if not meta:
            return

        record.display_name = meta.get('name') or record.id
        record.description = meta.get('description') or ''
        record.author = meta.get('author') or 'Unknown'
        record.source_ref = normalize_source_ref(meta.get('source_ref'))
        version = meta.get('version')
        record.installed_version = str(version) if version else None

    def _apply_manifest(self, record):
        """Fill name, version and description from a mod's config.toml."""
        try:
            with open(record.config_path, 'rb') as f:
                manifest = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            self.log(f"Ignoring manifest for '{record.id}': {e}")
            return

        if manifest.get('name'):
            record.display_name = str(manifest['name'])
        if manifest.get('description'):
            record.description = str(manifest['description'])
        if manifest.get('version') and not record.installed_version:
            record.installed_version = str(manifest['version'])

    def persist(self, record):
        """Write a record's enabled flag back to its config file.

        Returns:
            bool - True if the file was rewritten, False if it has no config
            or no enabled line
        """
        if record.config_path is None or not Path(record.config_path).is_file():
            return False
        return write_enabled_flag(record.config_path, record.enabled, ENABLED_KEYS[record.kind])
