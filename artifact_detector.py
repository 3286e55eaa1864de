"""
Artifact Detector
Works out what a downloaded asset is and where the plugins inside it live
"""

from pathlib import Path

ARCHIVE = 'archive'
BINARY = 'binary'

ARCHIVE_EXTENSIONS = ('.zip',)
BINARY_EXTENSIONS = ('.dll',)

# Folders archive tools add that never hold real plugins
IGNORED_FOLDERS = {'__MACOSX'}


def detect_asset_kind(file_name):
    """Classify a downloaded asset by its file name.

    Args:
        file_name: str - Asset file name

    Returns:
        str - 'archive', 'binary', or None for anything else
    """
    lowered = file_name.lower()
    if lowered.endswith(ARCHIVE_EXTENSIONS):
        return ARCHIVE
    if lowered.endswith(BINARY_EXTENSIONS):
        return BINARY
    return None


def _is_ignored(relative):
    for part in relative.parts[:-1]:
        if part.startswith('.') or part in IGNORED_FOLDERS:
            return True
    return False


def detect_plugin_binaries(source_path):
    """Find every plugin binary below an extracted archive.

    Args:
        source_path: str/Path - Extraction directory

    Returns:
        list - Paths of .dll files, ordered by their path inside the archive
    """
    source_path = Path(source_path)
    found = []
    for candidate in source_path.rglob('*'):
        if not candidate.is_file() or not candidate.name.lower().endswith(BINARY_EXTENSIONS):
            continue
        if _is_ignored(candidate.relative_to(source_path)):
            continue
        found.append(candidate)
    return sorted(found, key=lambda p: p.relative_to(source_path).as_posix().lower())
