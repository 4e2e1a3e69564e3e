import pytest

from tapkeeper.core.manifest import CaskManifest, fill_placeholders, placeholders

from conftest import ARM_SHA, INTEL_SHA


def test_resolve_url_for_new_version_on_arm(manifest):
    assert manifest.resolve_url('arm', '0.4.34') == (
        'https://github.com/seishio/homebrew-logparser/releases/download/'
        'v0.4.34/LogParser-0.4.34-macos-arm64.dmg'
    )


def test_resolve_url_defaults_to_own_version(manifest):
    assert manifest.resolve_url('intel') == (
        'https://github.com/seishio/homebrew-logparser/releases/download/'
        'v0.4.30/LogParser-0.4.30-macos-intel.dmg'
    )


def test_resolve_url_rejects_unknown_arch(manifest):
    with pytest.raises(ValueError, match='Unknown architecture'):
        manifest.resolve_url('ppc')


def test_checksum_lookup(manifest):
    assert manifest.architectures() == ['arm', 'intel']
    assert manifest.checksum_for('arm') == ARM_SHA
    assert manifest.checksum_for('intel') == INTEL_SHA
    assert manifest.checksum_for('ppc') is None


def test_single_checksum_applies_to_every_arch():
    manifest = CaskManifest(token='x', version='1.0', sha256={'all': 'a' * 64},
                            url_template='https://e.com/x-{version}.zip')
    assert manifest.architectures() == ['arm', 'intel']
    assert manifest.checksum_for('arm') == 'a' * 64
    assert manifest.resolve_url('arm') == 'https://e.com/x-1.0.zip'


def test_api_dict_round_trip(manifest):
    data = manifest.to_api_dict()
    assert data['url'].endswith('LogParser-0.4.30-macos-arm64.dmg')
    assert data['depends_on'] == {'macos': {'>=': ['10.15']}}
    assert data['conflicts_with'] == {'cask': ['logparser-beta', 'logparser-dev']}
    assert {'app': ['LogParser.app']} in data['artifacts']
    assert CaskManifest.from_api_dict(data) == manifest


def test_placeholder_helpers():
    assert placeholders('v{version}/{arch}') == ['version', 'arch']
    assert fill_placeholders('{appdir}/X.app', appdir='/Applications') == '/Applications/X.app'
    with pytest.raises(ValueError, match='No value for placeholder'):
        fill_placeholders('{arch}', version='1')


def test_verified_url_domain_in_api_dict(manifest):
    verified = manifest._replace(url_verified='github.com/seishio/homebrew-logparser/')
    data = verified.to_api_dict()
    assert data['url_specs'] == {'verified': 'github.com/seishio/homebrew-logparser/'}
    assert CaskManifest.from_api_dict(data) == verified
    assert manifest.to_api_dict()['url_specs'] == {}
