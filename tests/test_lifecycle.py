import os

from tapkeeper.core.lifecycle import install_target, postflight_commands, removes_quarantine, zap_targets


def test_postflight_removes_quarantine(manifest):
    assert postflight_commands(manifest) == [
        ['xattr', '-dr', 'com.apple.quarantine', '/Applications/LogParser.app'],
    ]
    assert removes_quarantine(manifest)


def test_postflight_with_custom_appdir(manifest):
    commands = postflight_commands(manifest, '/Users/me/Applications/')
    assert commands[0][-1] == '/Users/me/Applications/LogParser.app'


def test_without_postflight(manifest):
    bare = manifest._replace(postflight=())
    assert postflight_commands(bare) == []
    assert not removes_quarantine(bare)


def test_install_target(manifest):
    assert install_target(manifest) == '/Applications/LogParser.app'


def test_zap_targets_expand_against_home(tmp_path, manifest):
    prefs = tmp_path / 'Library' / 'Preferences'
    prefs.mkdir(parents=True)
    (prefs / 'com.logparser.app.plist').write_text('')
    (prefs / 'com.logparser.helper.plist').write_text('')
    (tmp_path / 'Library' / 'Logs' / 'LogParser').mkdir(parents=True)

    targets = zap_targets(manifest, str(tmp_path))

    assert [t.pattern for t in targets] == list(manifest.zap_trash)
    by_pattern = {t.pattern: t for t in targets}
    assert by_pattern['~/Library/Preferences/com.logparser.*'].matches == [
        str(prefs / 'com.logparser.app.plist'),
        str(prefs / 'com.logparser.helper.plist'),
    ]
    assert by_pattern['~/Library/Logs/LogParser'].matches == [str(tmp_path / 'Library' / 'Logs' / 'LogParser')]
    assert by_pattern['~/Library/Caches/dev.logparser'].matches == []
    assert by_pattern['~/Library/Caches/dev.logparser'].path == os.path.join(
        str(tmp_path), 'Library/Caches/dev.logparser')
