from tapkeeper.core.macos import MacOSRequirement
from tapkeeper.core.manifest import LivecheckRule
from tapkeeper.core.validator import (
    ERROR,
    WARNING,
    validate_all,
    validate_history,
    validate_manifest,
)


def test_shipped_cask_is_clean(manifest):
    report = validate_manifest(manifest)
    assert report.ok
    assert report.issues == []


def test_self_conflict_is_an_error(manifest):
    broken = manifest._replace(conflicts_with=manifest.conflicts_with + ('logparser',))
    report = validate_manifest(broken)
    assert not report.ok
    assert 'self-conflict' in report.codes()


def test_duplicate_conflict_is_a_warning(manifest):
    report = validate_manifest(manifest._replace(conflicts_with=('logparser-dev', 'logparser-dev')))
    assert report.ok
    assert [i.code for i in report.warnings] == ['duplicate-conflict']


def test_duplicate_zap_paths_are_rejected(manifest):
    paths = manifest.zap_trash + ('~/Library/Logs/LogParser',)
    report = validate_manifest(manifest._replace(zap_trash=paths))
    assert report.codes() == ['duplicate-zap-path']
    assert report.errors[0].field == 'zap'


def test_zap_paths_must_stay_in_user_library(manifest):
    paths = ('~/Documents/LogParser', '/Library/Preferences/com.logparser.plist', '~/Library/../.ssh')
    report = validate_manifest(manifest._replace(zap_trash=paths))
    assert report.codes() == ['zap-outside-library'] * 3


def test_checksum_format_is_checked(manifest):
    report = validate_manifest(manifest._replace(sha256={'arm': 'abc', 'intel': manifest.sha256['intel']}))
    assert report.codes() == ['invalid-checksum']


def test_missing_arch_checksum(manifest):
    report = validate_manifest(manifest._replace(sha256={'arm': manifest.sha256['arm']}))
    assert 'missing-checksum' in report.codes()


def test_no_check_is_only_a_warning(manifest):
    report = validate_manifest(manifest._replace(sha256={'all': 'no_check'}))
    assert report.ok
    assert set(report.codes()) == {'checksum-skipped'}


def test_url_template_checks(manifest):
    report = validate_manifest(manifest._replace(url_template='http://example.com/{version}/{build}.dmg'))
    assert 'unknown-placeholder' in report.codes()

    report = validate_manifest(manifest._replace(url_template='http://example.com/{version}/{arch}.dmg'))
    assert report.codes() == ['insecure-url']

    report = validate_manifest(manifest._replace(url_template='https://example.com/latest-{arch}.dmg'))
    assert report.codes() == ['unversioned-url']
    assert report.ok


def test_bad_livecheck_regex(manifest):
    rule = LivecheckRule(url=manifest.livecheck.url, regex='v(\\d+', flags='i')
    report = validate_manifest(manifest._replace(livecheck=rule))
    assert report.codes() == ['invalid-livecheck-regex']


def test_livecheck_without_group_warns(manifest):
    rule = LivecheckRule(url=manifest.livecheck.url, regex='v\\d+')
    report = validate_manifest(manifest._replace(livecheck=rule))
    assert [(i.severity, i.code) for i in report] == [(WARNING, 'livecheck-no-group')]


def test_unknown_macos_release(manifest):
    report = validate_manifest(manifest._replace(depends_on_macos=MacOSRequirement('>=', ['leopard'])))
    assert report.codes() == ['unknown-macos-release']


def test_app_must_be_a_bundle(manifest):
    report = validate_manifest(manifest._replace(app='LogParser'))
    assert report.codes() == ['invalid-app']


def test_same_version_different_checksums_is_flagged(manifest):
    rerelease = manifest._replace(
        sha256={'arm': 'a' * 64, 'intel': 'b' * 64},
        homepage='https://github.com/seishio/homebrew-logparser',
    )
    report = validate_history([manifest, rerelease])
    assert not report.ok
    assert [(i.severity, i.code) for i in report] == [
        (ERROR, 'version-checksum-mismatch'),
        (WARNING, 'version-metadata-drift'),
    ]
    assert report.errors[0].version == '0.4.30'


def test_identical_duplicate_is_accepted(manifest):
    assert validate_history([manifest, manifest]).issues == []


def test_history_ordering_and_reuse(manifest):
    newer = manifest._replace(version='0.4.32', sha256={'arm': 'c' * 64, 'intel': 'd' * 64})
    report = validate_history([newer, manifest])
    assert report.codes() == ['version-regression']

    reused = manifest._replace(version='0.4.32')
    report = validate_history([manifest, reused])
    assert report.codes() == ['checksum-reuse', 'checksum-reuse']


def test_validate_all_combines_passes(manifest):
    bad = manifest._replace(version='0.4.32', conflicts_with=('logparser',),
                            sha256={'arm': 'c' * 64, 'intel': 'd' * 64})
    clash = bad._replace(sha256={'arm': 'e' * 64, 'intel': 'f' * 64})
    report = validate_all([manifest, bad, clash])
    assert report.codes().count('self-conflict') == 2
    assert 'version-checksum-mismatch' in report.codes()
    assert report.to_dict()['summary']['errors'] == len(report.errors)


def test_verified_prefix_must_match_url(manifest):
    good = manifest._replace(url_verified='github.com/seishio/homebrew-logparser/')
    assert 'unverified-url' not in validate_manifest(good).codes()

    bad = manifest._replace(url_verified='example.com/')
    report = validate_manifest(bad)
    assert 'unverified-url' in report.codes()
    assert not report.ok
