"""
Sidecar Store
Manages the <artifact-id>.meta files that track where installed plugins came from
"""

import json
from pathlib import Path
from datetime import datetime

from mod_errors import MalformedMetadata, PersistFailed

META_SUFFIX = '.meta'
MISSING_SOURCE = ('', 'none', 'no repo url')


def normalize_source_ref(value):
    """Return a repository reference, or None for the 'no source' sentinels."""
    if value is None:
        return None
    value = str(value).strip()
    if value.lower() in MISSING_SOURCE:
        return None
    return value


class SidecarStore:
    def __init__(self, sidecar_dir):
        self.sidecar_dir = Path(sidecar_dir)

    def path_for(self, artifact_id):
        return self.sidecar_dir / f"{artifact_id}{META_SUFFIX}"

    def exists(self, artifact_id):
        return self.path_for(artifact_id).is_file()

    def load(self, artifact_id):
        """Load sidecar metadata for an artifact.

        Args:
            artifact_id: str - Artifact file or folder name

        Returns:
            dict - Metadata, or None when no sidecar exists

        Raises:
            MalformedMetadata - Sidecar exists but is not a JSON object
        """
        meta_path = self.path_for(artifact_id)
        if not meta_path.is_file():
            return None

        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise MalformedMetadata(f"Could not read {meta_path.name}: {e}") from e

        if not isinstance(data, dict):
            raise MalformedMetadata(f"{meta_path.name} does not contain an object")
        return data

    def save(self, artifact_id, metadata):
        """Write sidecar metadata, replacing any existing file.

        Raises:
            PersistFailed - File could not be written
        """
        meta_path = self.path_for(artifact_id)
        try:
            self.sidecar_dir.mkdir(parents=True, exist_ok=True)
            with open(meta_path, 'w', encoding='utf-8') as f:
                json.dump(metadata, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise PersistFailed(f"Error saving {meta_path.name}: {e}") from e
        return True

    def create(self, artifact_id, name, description, author, source_ref, version):
        """Write a fresh sidecar unless one already exists.

        Returns:
            bool - True if a new sidecar was written
        """
        if self.exists(artifact_id):
            return False

        metadata = {
            'name': name,
            'author': author,
            'description': description,
            'source_ref': source_ref,
            'version': version,
            'installed_date': datetime.now().isoformat()
        }
        return self.save(artifact_id, metadata)

    def update_version(self, artifact_id, version):
        """Rewrite the version field of a sidecar.

        A missing or unreadable sidecar is replaced by one holding only the version.
        """
        try:
            metadata = self.load(artifact_id) or {}
        except MalformedMetadata:
            metadata = {}

        metadata['version'] = version
        metadata['updated_date'] = datetime.now().isoformat()
        return self.save(artifact_id, metadata)

