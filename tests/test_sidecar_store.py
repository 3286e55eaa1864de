import pytest

from mod_errors import MalformedMetadata, PersistFailed
from sidecar_store import SidecarStore, normalize_source_ref


def test_load_missing_returns_none(tmp_path):
    assert SidecarStore(tmp_path).load('A.dll') is None


def test_create_only_once(tmp_path):
    store = SidecarStore(tmp_path / 'data')

    assert store.create('A.dll', 'A', 'desc', 'me', 'https://github.com/me/A', 'v1') is True
    assert store.create('A.dll', 'B', 'other', 'you', None, 'v2') is False

    meta = store.load('A.dll')
    assert meta['name'] == 'A'
    assert meta['version'] == 'v1'
    assert 'installed_date' in meta


def test_update_version_keeps_other_fields(tmp_path):
    store = SidecarStore(tmp_path)
    store.create('A.dll', 'A', 'desc', 'me', 'https://github.com/me/A', 'v1')

    store.update_version('A.dll', 'v2')

    meta = store.load('A.dll')
    assert meta['version'] == 'v2'
    assert meta['name'] == 'A'
    assert 'updated_date' in meta


def test_update_version_replaces_malformed_sidecar(tmp_path):
    (tmp_path / 'A.dll.meta').write_text('[1, 2')
    store = SidecarStore(tmp_path)
    store.update_version('A.dll', 'v3')
    assert store.load('A.dll')['version'] == 'v3'


@pytest.mark.parametrize('content', ['{broken', '["list"]'])
def test_malformed_sidecar_raises(tmp_path, content):
    (tmp_path / 'A.dll.meta').write_text(content)
    with pytest.raises(MalformedMetadata):
        SidecarStore(tmp_path).load('A.dll')


def test_save_into_file_path_fails(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('not a directory')
    with pytest.raises(PersistFailed):
        SidecarStore(blocker).save('A.dll', {})


@pytest.mark.parametrize('value,expected', [
    (None, None), ('', None), ('none', None), ('No Repo URL', None),
    (' https://github.com/a/b ', 'https://github.com/a/b'),
])
def test_normalize_source_ref(value, expected):
    assert normalize_source_ref(value) == expected
