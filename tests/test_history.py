import json

import pytest

from tapkeeper.core.history import ManifestHistory, history_path, load_history, save_history

from conftest import HISTORY_PATH


def test_shipped_history_matches_current_cask(manifest):
    history = load_history(HISTORY_PATH, 'logparser')
    assert history.versions() == ['0.4.30']
    assert history.latest == manifest
    assert history.contains(manifest)


def test_supersede_appends_without_removing(manifest):
    history = ManifestHistory('logparser', [manifest])
    successor = history.supersede('0.4.34', {'arm': 'a' * 64, 'intel': 'b' * 64})

    assert history.versions() == ['0.4.30', '0.4.34']
    assert history.latest is successor
    assert history.records[0] == manifest
    assert successor.url_template == manifest.url_template
    assert successor.zap_trash == manifest.zap_trash


def test_supersede_can_correct_metadata(manifest):
    history = ManifestHistory('logparser', [manifest])
    successor = history.supersede('0.4.32', {'arm': 'a' * 64, 'intel': 'b' * 64},
                                  homepage='https://github.com/seishio/homebrew-logparser')
    assert successor.homepage == 'https://github.com/seishio/homebrew-logparser'


def test_supersede_needs_a_record():
    with pytest.raises(ValueError, match='No manifest'):
        ManifestHistory('logparser').supersede('1.0', {})


def test_rejects_foreign_records(manifest):
    history = ManifestHistory('other')
    with pytest.raises(ValueError, match='cannot be added'):
        history.add(manifest)


def test_by_version_keeps_duplicates(manifest):
    rerelease = manifest._replace(sha256={'arm': 'a' * 64, 'intel': 'b' * 64})
    history = ManifestHistory('logparser', [manifest, rerelease])
    assert history.by_version('0.4.30') == [manifest, rerelease]


def test_save_and_load(tmp_path, manifest):
    history = ManifestHistory('logparser', [manifest])
    history.supersede('0.4.34', {'arm': 'a' * 64, 'intel': 'b' * 64})
    path = save_history(history, history_path(tmp_path, 'logparser'))

    assert path == tmp_path / 'history' / 'logparser.json'
    loaded = load_history(path, 'logparser')
    assert loaded.records == history.records


def test_missing_file_is_empty_history(tmp_path):
    history = load_history(tmp_path / 'nope.json', 'logparser')
    assert len(history) == 0
    assert history.latest is None


def test_invalid_history_file(tmp_path):
    path = tmp_path / 'logparser.json'
    path.write_text('{not json')
    with pytest.raises(ValueError, match='Invalid JSON'):
        load_history(path, 'logparser')

    path.write_text(json.dumps({'token': 'logparser'}))
    with pytest.raises(ValueError, match='must contain a list'):
        load_history(path, 'logparser')

    path.write_text(json.dumps([{'token': 'logparser'}]))
    with pytest.raises(ValueError, match='Malformed record'):
        load_history(path, 'logparser')
