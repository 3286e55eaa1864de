import io
import json
import zipfile

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b''):
        self.status_code = status_code
        self._payload = payload
        self.content = content

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON body')
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size=8192):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]


class FakeHttp:
    """requests-compatible client answering from a URL -> response table."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.calls.append({'url': url, 'headers': headers or {}, 'timeout': timeout, 'stream': stream})
        if url not in self.routes:
            return FakeResponse(status_code=404, payload={'message': 'Not Found'})
        route = self.routes[url]
        if isinstance(route, Exception):
            raise route
        return route

    def urls(self):
        return [call['url'] for call in self.calls]


API = 'https://api.github.com'


def repo_payload(name='TekaTeka', description='Custom songs', login='RF'):
    return {'name': name, 'description': description, 'owner': {'login': login}}


def release_payload(tag, assets):
    return {
        'tag_name': tag,
        'assets': [
            {'name': name, 'browser_download_url': f"https://downloads.example/{name}"}
            for name in assets
        ]
    }


def make_zip(files):
    """Build zip bytes from a {archive path: bytes} mapping."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def add_release(http, owner, repo, tag, assets, asset_bytes=None, repo_info=None):
    """Register repository, latest release and asset download routes."""
    http.routes[f"{API}/repos/{owner}/{repo}"] = FakeResponse(payload=repo_info or repo_payload(name=repo))
    http.routes[f"{API}/repos/{owner}/{repo}/releases/latest"] = FakeResponse(payload=release_payload(tag, assets))
    for name, data in (asset_bytes or {}).items():
        http.routes[f"https://downloads.example/{name}"] = FakeResponse(content=data)


def write_sidecar(sidecar_dir, artifact_id, **fields):
    sidecar_dir.mkdir(parents=True, exist_ok=True)
    with open(sidecar_dir / f"{artifact_id}.meta", 'w', encoding='utf-8') as f:
        json.dump(fields, f)


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def game_root(tmp_path):
    root = tmp_path / 'game'
    (root / 'BepInEx' / 'plugins').mkdir(parents=True)
    (root / 'BepInEx' / 'config').mkdir(parents=True)
    return root


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / 'data'


@pytest.fixture(scope='session')
def qapp():
    from PyQt6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
