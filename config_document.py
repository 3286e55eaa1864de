"""
Config Document
Parses and rewrites BepInEx style `key = value` config files without
losing sections, comments or lines it does not understand
"""

import io
from dataclasses import dataclass, field

from mod_errors import PersistFailed

BLANK = 'blank'
SECTION = 'section'
COMMENT = 'comment'
KEYVALUE = 'keyvalue'
OPAQUE = 'opaque'


@dataclass
class ConfigLine:
    kind: str
    raw: str
    ending: str = ''
    key: str = None
    value: str = None


@dataclass
class ConfigSetting:
    key: str
    value: str
    description: str = ''


@dataclass
class ConfigSection:
    name: str
    settings: list = field(default_factory=list)


def split_lines(text):
    """Split text on \\r\\n, \\r and \\n only, keeping the line endings."""
    return list(io.StringIO(text, newline=''))


def _split_ending(line):
    """Split a line read with keepends into (text, line ending)."""
    if line.endswith('\r\n'):
        return line[:-2], '\r\n'
    if line.endswith('\n') or line.endswith('\r'):
        return line[:-1], line[-1]
    return line, ''


def classify_line(text):
    """Classify a single line of config text.

    Args:
        text: str - Line without its line ending

    Returns:
        ConfigLine - Classified line (without ending)
    """
    stripped = text.strip()

    if not stripped:
        return ConfigLine(BLANK, text)
    if stripped.startswith('[') and stripped.endswith(']'):
        return ConfigLine(SECTION, text)
    if stripped.startswith('#'):
        return ConfigLine(COMMENT, text)
    if '=' in stripped:
        key, value = stripped.split('=', 1)
        return ConfigLine(KEYVALUE, text, key=key.strip(), value=value.strip())
    return ConfigLine(OPAQUE, text)


class ConfigDocument:
    def __init__(self, lines=None, path=None):
        """Initialize a config document.

        Args:
            lines: Optional list - ConfigLine objects in file order
            path: Optional str/Path - File the document was loaded from
        """
        self.lines = lines or []
        self.path = path
        self.overrides = {}

    @classmethod
    def parse(cls, text, path=None):
        """Parse config text. Never fails; unknown lines are kept as opaque."""
        lines = []
        for raw in split_lines(text):
            body, ending = _split_ending(raw)
            line = classify_line(body)
            line.ending = ending
            lines.append(line)
        return cls(lines, path=path)

    @classmethod
    def load(cls, path):
        """Read and parse a config file.

        Args:
            path: str/Path - Config file to read

        Returns:
            ConfigDocument - Parsed document remembering its path
        """
        with open(path, 'r', encoding='utf-8', newline='') as f:
            return cls.parse(f.read(), path=path)

    def edit(self, key, value):
        """Record a pending value for key. The line sequence is left untouched."""
        self.overrides[key] = str(value)

    def is_modified(self):
        return any(
            line.kind == KEYVALUE and line.key in self.overrides
            and self.overrides[line.key] != line.value
            for line in self.lines
        )

    def get(self, key, default=None):
        if key in self.overrides and key in self.keys():
            return self.overrides[key]
        for line in self.lines:
            if line.kind == KEYVALUE and line.key == key:
                return line.value
        return default

    def keys(self):
        """Keys in file order, each listed once."""
        seen = []
        for line in self.lines:
            if line.kind == KEYVALUE and line.key not in seen:
                seen.append(line.key)
        return seen

    def values(self):
        """Mapping of key to current value, overrides applied."""
        return {key: self.get(key) for key in self.keys()}

    def sections(self):
        """Group settings by section header.

        Comment lines directly above a key become its description; a blank
        line or section header resets the collected description. Keys before
        the first header are grouped under a section named ''.

        Returns:
            list - ConfigSection objects in file order
        """
        sections = []
        current = None
        comments = []

        for line in self.lines:
            if line.kind == BLANK:
                comments = []
            elif line.kind == SECTION:
                current = ConfigSection(line.raw.strip()[1:-1])
                sections.append(current)
                comments = []
            elif line.kind == COMMENT:
                comments.append(line.raw.strip().lstrip('#').strip())
            elif line.kind == KEYVALUE:
                if current is None:
                    current = ConfigSection('')
                    sections.append(current)
                value = self.overrides.get(line.key, line.value)
                current.settings.append(ConfigSetting(line.key, value, '\n'.join(comments)))
                comments = []

        return sections

    def serialize(self):
        """Render the document back to text.

        Overridden key-value lines are rewritten as `key = value` in place.
        Overrides for keys the document never contained are not appended.
        """
        out = []
        for line in self.lines:
            if line.kind == KEYVALUE and line.key in self.overrides:
                out.append(f"{line.key} = {self.overrides[line.key]}{line.ending}")
            else:
                out.append(line.raw + line.ending)
        return ''.join(out)

    def save(self, path=None):
        """Write the serialized document to disk.

        Args:
            path: Optional str/Path - Target file, defaults to the loaded path

        Raises:
            PersistFailed - File could not be written
        """
        target = path or self.path
        if target is None:
            raise PersistFailed('Config document has no file path')
        try:
            with open(target, 'w', encoding='utf-8', newline='') as f:
                f.write(self.serialize())
        except OSError as e:
            raise PersistFailed(f"Error saving config file {target}: {e}") from e
        self.path = target
        return True
