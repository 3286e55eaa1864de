import pytest

from mod_errors import InstallationFailed
from mod_manager import ModManager

from conftest import FakeResponse, add_release, make_zip, write_sidecar


@pytest.fixture
def manager(game_root, data_dir, http, tmp_path, monkeypatch):
    monkeypatch.delenv('GITHUB_TOKEN', raising=False)
    lines = []
    manager = ModManager(game_root, data_dir, log_sink=lines.append, http=http,
                         scratch_root=tmp_path / 'scratch')
    manager.lines = lines
    return manager


def test_log_lines_are_timestamped(manager):
    manager.log('hello')
    assert manager.lines[-1].endswith('] hello')
    assert manager.lines[-1].startswith('[')


def test_install_then_list_plugins(manager, http, game_root):
    add_release(http, 'RF', 'TekaTeka', 'v1.0.0', ['RF.TekaTeka.dll'], {'RF.TekaTeka.dll': b'MZ'})
    (game_root / 'BepInEx' / 'config' / 'RF.TekaTeka.cfg').write_text('[General]\nEnabled = true\n')

    result = manager.install_plugin('https://github.com/RF/TekaTeka')

    assert result['installed'] == ['RF.TekaTeka.dll']
    plugins = manager.plugins()
    assert [p.id for p in plugins] == ['RF.TekaTeka.dll']
    assert plugins[0].installed_version == 'v1.0.0'
    assert plugins[0].enabled is True


def test_cancelled_prompt_installs_nothing(manager, http):
    assert manager.install_plugin(None) is None
    assert manager.install_plugin('   ') is None
    assert http.calls == []
    assert any('canceled' in line for line in manager.lines)


def test_install_failure_propagates(manager):
    with pytest.raises(InstallationFailed):
        manager.install_plugin('https://github.com/RF/Missing')


def test_check_and_update_all(manager, http):
    add_release(http, 'RF', 'TekaTeka', 'v1.0.0', ['RF.TekaTeka.dll'], {'RF.TekaTeka.dll': b'old'})
    manager.install_plugin('https://github.com/RF/TekaTeka')
    assert manager.check_for_updates() == []

    add_release(http, 'RF', 'TekaTeka', 'v1.1.0', ['RF.TekaTeka.dll'], {'RF.TekaTeka.dll': b'new'})
    notices = manager.check_for_updates()
    assert [(n.local_version, n.latest_version) for n in notices] == [('v1.0.0', 'v1.1.0')]

    outcomes = manager.update_all()
    assert [o.status for o in outcomes] == ['updated']
    assert manager.plugins()[0].installed_version == 'v1.1.0'
    assert manager.check_for_updates() == []


def test_set_enabled_persists(manager, game_root):
    (game_root / 'BepInEx' / 'plugins' / 'A.dll').write_bytes(b'MZ')
    cfg = game_root / 'BepInEx' / 'config' / 'A.cfg'
    cfg.write_text('[General]\nEnabled = true\n')

    record = manager.plugins()[0]
    assert manager.set_enabled(record, False) is True
    assert cfg.read_text() == '[General]\nEnabled = false\n'


def test_set_enabled_without_enabled_line(manager, game_root):
    (game_root / 'BepInEx' / 'plugins' / 'A.dll').write_bytes(b'MZ')
    cfg = game_root / 'BepInEx' / 'config' / 'A.cfg'
    cfg.write_text('[General]\nSpeed = 1\n')

    assert manager.set_enabled(manager.plugins()[0], True) is False
    assert cfg.read_text() == '[General]\nSpeed = 1\n'


def test_mods_require_loader_plugin_and_folder(manager, game_root):
    assert manager.mods() == []

    loader_dir = game_root / 'BepInEx' / 'plugins' / 'RF.TekaTeka'
    loader_dir.mkdir()
    (loader_dir / 'RF.TekaTeka.dll').write_bytes(b'MZ')
    assert manager.mods() == []

    manager.create_mod('pack', 'Pack', '1.0', 'Songs')
    mods = manager.mods()
    assert [m.display_name for m in mods] == ['Pack']
    assert mods[0].enabled is False

    assert manager.set_enabled(mods[0], True) is True
    assert manager.mods()[0].enabled is True


def test_loader_config_round_trip(manager, game_root):
    cfg = game_root / 'BepInEx' / 'config' / 'BepInEx.cfg'
    cfg.write_text('[Logging.Console]\n# Show console\nEnabled = false\n')

    document = manager.load_config()
    document.edit('Enabled', 'true')
    manager.save_config(document)

    assert cfg.read_text() == '[Logging.Console]\n# Show console\nEnabled = true\n'


def test_load_config_missing(manager):
    assert manager.load_config() is None


def test_install_loader_only_when_missing(manager, http, tmp_path, data_dir):
    assert manager.install_loader() is False

    game = tmp_path / 'fresh_game'
    game.mkdir()
    fresh = ModManager(game, data_dir, log_sink=manager.lines.append, http=http,
                       scratch_root=tmp_path / 'scratch')
    url = fresh.settings.get_setting('loader_url')
    http.routes[url] = FakeResponse(content=make_zip({'BepInEx/core/BepInEx.Core.dll': b'core'}))

    assert fresh.install_loader() is True
    assert fresh.paths.is_loader_installed()


def test_update_moves_flat_plugin_into_its_folder(manager, http, game_root, data_dir):
    plugins = game_root / 'BepInEx' / 'plugins'
    (plugins / 'A.dll').write_bytes(b'old')
    write_sidecar(data_dir, 'A.dll', name='A', source_ref='https://github.com/me/A', version='v1')
    add_release(http, 'me', 'A', 'v2', ['A.dll'], {'A.dll': b'new'})

    outcomes = manager.update_all()

    assert [o.status for o in outcomes] == ['updated']
    assert sorted(p.relative_to(plugins).as_posix() for p in plugins.rglob('*.dll')) == ['A/A.dll']
    plugins_listed = manager.plugins()
    assert [(p.id, p.installed_version) for p in plugins_listed] == [('A.dll', 'v2')]
    assert plugins_listed[0].path == plugins / 'A' / 'A.dll'
