import pytest

from tapkeeper.utils.versions import compare_versions, is_valid_version, latest


@pytest.mark.parametrize('older, newer', [
    ('0.4.9', '0.4.10'),
    ('0.4.30', '0.4.32'),
    ('1.0-beta', '1.0'),
    ('1.0', '1.0.1'),
    ('v0.4.30', '0.4.34'),
])
def test_ordering(older, newer):
    assert compare_versions(older, newer) == -1
    assert compare_versions(newer, older) == 1


def test_equal_versions():
    assert compare_versions('0.4.30', 'v0.4.30') == 0


@pytest.mark.parametrize('left, right', [
    ('1.0.0', '1.0'),
    ('1.0', '1'),
    ('1.0.0-beta', '1.0-beta'),
])
def test_trailing_zeros_are_ignored(left, right):
    assert compare_versions(left, right) == 0
    assert compare_versions(right, left) == 0


def test_zeros_inside_a_version_still_count():
    assert compare_versions('1.0.1', '1.1') == -1
    assert compare_versions('1.0.1', '1.0') == 1
    assert compare_versions('1.0-beta', '1.0') == -1


def test_latest():
    assert latest(['0.4.9', '0.4.34', '0.4.32']) == '0.4.34'
    assert latest([]) is None


def test_validity():
    assert is_valid_version('0.4.34')
    assert not is_valid_version('0.4 beta')
    assert not is_valid_version('')
    assert not is_valid_version('beta')
