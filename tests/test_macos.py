import pytest

from tapkeeper.core.macos import MacOSRequirement, parse_requirement, requirement_from_api, release_version


def test_parse_comparator_form():
    requirement = parse_requirement('>= :catalina')
    assert requirement == MacOSRequirement('>=', ['catalina'])
    assert requirement.minimum() == '10.15'


def test_bare_symbol_means_at_least():
    assert parse_requirement(':sonoma') == MacOSRequirement('>=', ['sonoma'])


def test_list_means_any_of():
    requirement = parse_requirement([':monterey', ':ventura'])
    assert requirement.comparator == '=='
    assert requirement.satisfied_by('13.4')
    assert not requirement.satisfied_by('14.0')


@pytest.mark.parametrize('os_version, expected', [
    ('10.14.6', False),
    ('10.15', True),
    ('10.15.7', True),
    ('11.7', True),
    ('15.1', True),
])
def test_catalina_minimum(os_version, expected):
    assert parse_requirement('>= :catalina').satisfied_by(os_version) is expected


def test_upper_bounds_include_point_releases():
    assert parse_requirement('<= :big_sur').satisfied_by('11.7.10')
    assert not parse_requirement('< :big_sur').satisfied_by('11.1')


def test_unknown_release_is_rejected():
    with pytest.raises(ValueError, match='Unknown macOS release'):
        parse_requirement('>= :leopard')
    with pytest.raises(ValueError):
        release_version('snow')


def test_api_form_maps_back_to_symbols():
    assert requirement_from_api({'>=': ['10.15']}) == MacOSRequirement('>=', ['catalina'])
    assert requirement_from_api({'>=': ['11']}) == MacOSRequirement('>=', ['big_sur'])
