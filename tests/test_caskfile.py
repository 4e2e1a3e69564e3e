import pytest

from tapkeeper.core.caskfile import CaskSyntaxError, parse_cask, render_cask, write_cask, load_cask
from tapkeeper.core.macos import MacOSRequirement
from tapkeeper.core.manifest import NO_CHECK, SystemCommand

from conftest import ARM_SHA, INTEL_SHA


def test_parses_shipped_cask(manifest):
    assert manifest.token == 'logparser'
    assert manifest.version == '0.4.30'
    assert manifest.sha256 == {'arm': ARM_SHA, 'intel': INTEL_SHA}
    assert manifest.url_template == (
        'https://github.com/seishio/homebrew-logparser/releases/download/'
        'v{version}/LogParser-{version}-macos-{arch}.dmg'
    )
    assert manifest.arch_labels == {'arm': 'arm64', 'intel': 'intel'}
    assert manifest.name == ('LogParser',)
    assert manifest.desc == 'LogParser is a fast log file analyzer supporting multiple formats.'
    assert manifest.homepage == 'https://github.com/seishio/LogParser'
    assert manifest.depends_on_macos == MacOSRequirement('>=', ['catalina'])
    assert manifest.conflicts_with == ('logparser-beta', 'logparser-dev')
    assert manifest.app == 'LogParser.app'


def test_parses_livecheck_block(manifest):
    rule = manifest.livecheck
    assert rule.url == 'https://github.com/seishio/homebrew-logparser/releases/latest'
    assert rule.regex == r'''href=.*?/tag/v?(\d+(?:\.\d+)+)["' >]'''
    assert rule.flags == 'i'
    assert rule.strategy is None


def test_parses_postflight_and_zap(manifest):
    assert manifest.postflight == (
        SystemCommand('xattr', ('-dr', 'com.apple.quarantine', '{appdir}/LogParser.app')),
    )
    assert manifest.zap_trash == (
        '~/Library/Preferences/com.logparser.*',
        '~/Library/Application Support/LogParser',
        '~/Library/Caches/dev.logparser',
        '~/Library/Logs/LogParser',
        '~/Library/Saved Application State/dev.logparser.savedState',
    )


def test_rendered_cask_parses_back_to_same_record(manifest):
    text = render_cask(manifest)
    assert parse_cask(text) == manifest
    assert '#{Hardware::CPU.arm? ? "arm64" : "intel"}' in text
    assert 'sha256 arm:   "' in text


def test_write_cask_creates_file(tmp_path, manifest):
    path = write_cask(manifest._replace(version='0.4.34'), tmp_path / 'Casks' / 'logparser.rb')
    assert load_cask(path).version == '0.4.34'


def test_arch_stanza_and_single_values():
    text = '''
cask "tool" do
  arch arm: "aarch64", intel: "x86_64"

  version "1.2.0"
  sha256 :no_check

  url "https://example.com/tool-#{version}-#{arch}.zip", verified: "example.com/"
  name "Tool"
  desc "Does things" # trailing comment
  homepage "https://example.com/"

  depends_on macos: :big_sur
  conflicts_with cask: "tool-nightly"

  app "Tool.app"

  zap trash: "~/Library/Preferences/com.example.tool.plist"
end
'''
    manifest = parse_cask(text)
    assert manifest.arch_labels == {'arm': 'aarch64', 'intel': 'x86_64'}
    assert manifest.sha256 == {'all': NO_CHECK}
    assert manifest.checksum_for('intel') == NO_CHECK
    assert manifest.resolve_url('intel') == 'https://example.com/tool-1.2.0-x86_64.zip'
    assert manifest.depends_on_macos == MacOSRequirement('>=', ['big_sur'])
    assert manifest.conflicts_with == ('tool-nightly',)
    assert manifest.zap_trash == ('~/Library/Preferences/com.example.tool.plist',)
    assert manifest.url_verified == 'example.com/'
    rendered = render_cask(manifest)
    assert 'verified: "example.com/"' in rendered
    assert parse_cask(render_cask(manifest)) == manifest


def test_intel_ternary_is_normalised():
    text = '''
cask "tool" do
  version "1.0"
  sha256 arm: "a", intel: "b"
  url "https://example.com/tool-#{Hardware::CPU.intel? ? "x64" : "arm64"}.dmg"
end
'''
    manifest = parse_cask(text)
    assert manifest.arch_labels == {'arm': 'arm64', 'intel': 'x64'}


@pytest.mark.parametrize('text, message', [
    ('', 'Empty cask file'),
    ('cask "x" do\n  version "1"\n', 'missing its `end`'),
    ('cask "x" do\n  version "1"\nend\nend\n', 'Unexpected `end`'),
    ('cask "x" do\n  version "1"\n  sha256 "a"\n  url "https://e.com/#{version.csv.first}"\nend\n',
     'Unsupported interpolation'),
    ('cask "x" do\n  version "1"\n  sha256 "a"\n  url "https://e.com/x"\n  pkg "x.pkg"\nend\n',
     "Unsupported stanza 'pkg'"),
    ('cask "x" do\n  version "1"\n  url "https://e.com/x"\nend\n', 'Missing `sha256` stanza'),
    ('cask "x" do\n  version "1"\n  sha256 "a"\n  url "https://e.com/x"\n  depends_on macos: ">= :leopard"\nend\n',
     'Unknown macOS release'),
])
def test_rejects_unsupported_input(text, message):
    with pytest.raises(CaskSyntaxError, match=message):
        parse_cask(text)


def test_syntax_error_reports_line_number():
    text = 'cask "x" do\n  version "1"\n  sha256 "a"\n  url "https://e.com/x"\n  pkg "x.pkg"\nend\n'
    with pytest.raises(CaskSyntaxError) as excinfo:
        parse_cask(text)
    assert excinfo.value.lineno == 5
    assert str(excinfo.value).startswith('line 5:')


def test_literal_interpolation_marker_survives_render(manifest):
    edited = manifest._replace(desc='Parses #{level} markers', name=('LogParser "#{beta}"',))
    parsed = parse_cask(render_cask(edited))
    assert parsed.desc == 'Parses #{level} markers'
    assert parsed.name == ('LogParser "#{beta}"',)
    assert parsed == edited


def test_array_items_need_commas():
    text = 'cask "x" do\n  version "1"\n  sha256 "a"\n  url "https://e.com/x"\n  name ["a" "b"]\nend\n'
    with pytest.raises(CaskSyntaxError, match="Expected ',' or ']'"):
        parse_cask(text)


def test_arch_labels_are_read_only(manifest):
    with pytest.raises(TypeError):
        manifest.arch_labels['arm'] = 'x86_64'
    plain = parse_cask('cask "x" do\n  version "1"\n  sha256 "a"\n  url "https://e.com/x"\nend\n')
    with pytest.raises(TypeError):
        plain.arch_labels['arm'] = 'arm64'
