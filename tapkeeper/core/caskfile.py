"""Read and write Homebrew cask files.

Only the subset of the cask DSL used by simple `app` casks is understood:
version, sha256, arch, url, name, desc, homepage, depends_on macos:,
conflicts_with cask:, livecheck, app, postflight system_command and
zap trash:. Anything else raises CaskSyntaxError rather than being
silently dropped.
"""

import re
import logging
from pathlib import Path
from types import MappingProxyType
from typing import List, NamedTuple, Tuple

from .macos import parse_requirement
from .manifest import (
    ALL_ARCHITECTURES,
    NO_CHECK,
    CaskManifest,
    LivecheckRule,
    SystemCommand,
)

# Set up logging for this module
logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*[?!]?')
_KEYWORD_ARG_RE = re.compile(r'([a-z_][a-z0-9_]*):(?!:)')
_NUMBER_RE = re.compile(r'-?\d+(\.\d+)?')
_TERNARY_RE = re.compile(
    r'^Hardware::CPU\.(?P<test>arm|intel)\?\s*\?\s*"(?P<yes>[^"]*)"\s*:\s*"(?P<no>[^"]*)"$'
)
_SIMPLE_INTERPOLATIONS = ('version', 'arch', 'appdir')


class CaskSyntaxError(ValueError):
    """Raised when a cask file cannot be understood."""

    def __init__(self, message, lineno=None):
        self.lineno = lineno
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)


class Symbol(str):
    """A Ruby symbol literal such as :no_check."""


class Regex(NamedTuple):
    pattern: str
    flags: str


class Statement(NamedTuple):
    lineno: int
    keyword: str
    rest: str
    body: list


# --- scanning -------------------------------------------------------------

def _scan_string(text: str, i: int, lineno=None) -> int:
    """Return the index just past the string literal starting at text[i]."""
    quote = text[i]
    i += 1
    while i < len(text):
        char = text[i]
        if char == '\\':
            i += 2
            continue
        if quote == '"' and text.startswith('#{', i):
            i = _scan_interpolation(text, i, lineno)
            continue
        if char == quote:
            return i + 1
        i += 1
    raise CaskSyntaxError("Unterminated string literal", lineno)


def _scan_interpolation(text: str, i: int, lineno=None) -> int:
    """Return the index just past the `#{...}` starting at text[i]."""
    i += 2
    depth = 1
    while i < len(text):
        char = text[i]
        if char in ('"', "'"):
            i = _scan_string(text, i, lineno)
            continue
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise CaskSyntaxError("Unterminated interpolation", lineno)


def _scan_regex(text: str, i: int, lineno=None) -> int:
    """Return the index just past the `%r{...}flags` starting at text[i]."""
    i += 3
    depth = 1
    while i < len(text):
        char = text[i]
        if char == '\\':
            i += 2
            continue
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                i += 1
                while i < len(text) and text[i].isalpha():
                    i += 1
                return i
        i += 1
    raise CaskSyntaxError("Unterminated regex literal", lineno)


def _strip_comment(line: str, lineno: int) -> Tuple[str, int]:
    """Drop a trailing comment and report the line's bracket balance."""
    depth = 0
    i = 0
    while i < len(line):
        char = line[i]
        if char in ('"', "'"):
            i = _scan_string(line, i, lineno)
            continue
        if line.startswith('%r{', i):
            i = _scan_regex(line, i, lineno)
            continue
        if char == '#':
            return line[:i].rstrip(), depth
        if char in '[(':
            depth += 1
        elif char in '])':
            depth -= 1
        i += 1
    return line.rstrip(), depth


def _logical_lines(text: str) -> List[Tuple[int, str]]:
    """Join continuation lines and strip comments."""
    lines = []
    buffer = []
    start = 0
    depth = 0
    for lineno, raw in enumerate(text.splitlines(), 1):
        code, delta = _strip_comment(raw, lineno)
        if not code.strip() and not buffer:
            continue
        if not buffer:
            start = lineno
        buffer.append(code.strip())
        depth += delta
        if depth > 0 or code.endswith(','):
            continue
        if depth < 0:
            raise CaskSyntaxError("Unbalanced closing bracket", lineno)
        lines.append((start, ' '.join(part for part in buffer if part)))
        buffer = []
    if buffer:
        raise CaskSyntaxError("Unexpected end of file inside an expression", start)
    return lines


def _split_statement(lineno: int, line: str) -> Tuple[str, str]:
    match = _IDENT_RE.match(line)
    if not match:
        raise CaskSyntaxError(f"Expected a stanza, got {line!r}", lineno)
    return match.group(0), line[match.end():].strip()


def _build_tree(lines, index=0, lineno=None) -> Tuple[List[Statement], int]:
    """Group logical lines into statements, nesting `do ... end` blocks."""
    statements = []
    while index < len(lines):
        number, line = lines[index]
        if line == 'end':
            if lineno is None:
                raise CaskSyntaxError("Unexpected `end`", number)
            return statements, index + 1
        keyword, rest = _split_statement(number, line)
        if rest == 'do' or rest.endswith(' do'):
            body, index = _build_tree(lines, index + 1, number)
            statements.append(Statement(number, keyword, rest[:-2].strip(), body))
            continue
        statements.append(Statement(number, keyword, rest, []))
        index += 1
    if lineno is not None:
        raise CaskSyntaxError("Block is missing its `end`", lineno)
    return statements, index


# --- values ---------------------------------------------------------------

class _ValueParser:
    """Parse the argument list of one stanza."""

    def __init__(self, text: str, lineno: int):
        self.text = text
        self.lineno = lineno
        self.pos = 0

    def _skip_ws(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _error(self, message):
        return CaskSyntaxError(message, self.lineno)

    def parse_args(self):
        text = self.text.strip()
        if text.startswith('(') and text.endswith(')'):
            self.text = text[1:-1]
        positional = []
        keywords = {}
        while True:
            self._skip_ws()
            if self.pos >= len(self.text):
                break
            match = _KEYWORD_ARG_RE.match(self.text, self.pos)
            if match:
                self.pos = match.end()
                keywords[match.group(1)] = self.parse_value()
            else:
                positional.append(self.parse_value())
            self._skip_ws()
            if self.pos >= len(self.text):
                break
            if self.text[self.pos] != ',':
                raise self._error(f"Unexpected {self.text[self.pos:]!r}")
            self.pos += 1
        return positional, keywords

    def parse_value(self):
        self._skip_ws()
        if self.pos >= len(self.text):
            raise self._error("Missing value")
        char = self.text[self.pos]
        if char in ('"', "'"):
            end = _scan_string(self.text, self.pos, self.lineno)
            raw = self.text[self.pos + 1:end - 1]
            self.pos = end
            return raw if char == '"' else raw.replace('#{', '\\#{')
        if self.text.startswith('%r{', self.pos):
            end = _scan_regex(self.text, self.pos, self.lineno)
            body = self.text[self.pos:end]
            close = body.rindex('}')
            self.pos = end
            return Regex(body[3:close], body[close + 1:])
        if char == '[':
            return self._parse_list()
        if char == ':':
            match = _IDENT_RE.match(self.text, self.pos + 1)
            if not match:
                raise self._error("Invalid symbol")
            self.pos = match.end()
            return Symbol(match.group(0))
        match = _NUMBER_RE.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            return match.group(0)
        match = _IDENT_RE.match(self.text, self.pos)
        if match and match.group(0) in ('true', 'false', 'nil'):
            self.pos = match.end()
            return {'true': True, 'false': False, 'nil': None}[match.group(0)]
        raise self._error(f"Unsupported expression {self.text[self.pos:]!r}")

    def _parse_list(self):
        self.pos += 1
        items = []
        while True:
            self._skip_ws()
            if self.pos >= len(self.text):
                raise self._error("Unterminated array")
            if self.text[self.pos] == ']':
                self.pos += 1
                return items
            items.append(self.parse_value())
            self._skip_ws()
            if self.pos < len(self.text) and self.text[self.pos] == ',':
                self.pos += 1
            elif self.pos < len(self.text) and self.text[self.pos] != ']':
                raise self._error(f"Expected ',' or ']' in array, got {self.text[self.pos:]!r}")


def _unescape(literal: str) -> str:
    return re.sub(r'\\(.)', r'\1', literal)


def _template(raw: str, lineno: int, labels=None) -> str:
    """Turn a Ruby string body into a {placeholder} template.

    Ternaries on Hardware::CPU become {arch}; their branches are stored in
    `labels` when given.
    """
    out = []
    i = 0
    literal_start = 0
    while i < len(raw):
        if raw[i] == '\\':
            i += 2
            continue
        if not raw.startswith('#{', i):
            i += 1
            continue
        out.append(_unescape(raw[literal_start:i]))
        end = _scan_interpolation(raw, i, lineno)
        expression = raw[i + 2:end - 1].strip()
        if expression in _SIMPLE_INTERPOLATIONS:
            out.append('{' + expression + '}')
        else:
            match = _TERNARY_RE.match(expression)
            if not match or labels is None:
                raise CaskSyntaxError(f"Unsupported interpolation #{{{expression}}}", lineno)
            arm, intel = match.group('yes'), match.group('no')
            if match.group('test') == 'intel':
                arm, intel = intel, arm
            labels.update({'arm': arm, 'intel': intel})
            out.append('{arch}')
        i = end
        literal_start = end
    out.append(_unescape(raw[literal_start:]))
    return ''.join(out)


def _plain(value, lineno, what):
    if not isinstance(value, str) or isinstance(value, Symbol):
        raise CaskSyntaxError(f"{what} must be a string", lineno)
    if '#{' in value.replace('\\#{', ''):
        raise CaskSyntaxError(f"{what} cannot use interpolation", lineno)
    return _unescape(value)


def _string_list(value, lineno, what) -> List[str]:
    values = value if isinstance(value, list) else [value]
    return [_plain(v, lineno, what) for v in values]


def _checksum(value, lineno) -> str:
    if isinstance(value, Symbol):
        if value != NO_CHECK:
            raise CaskSyntaxError(f"Unknown checksum symbol :{value}", lineno)
        return NO_CHECK
    return _plain(value, lineno, "sha256")


# --- parsing --------------------------------------------------------------

def _parse_livecheck(statement: Statement) -> LivecheckRule:
    url = None
    regex = None
    strategy = None
    for inner in statement.body:
        args, kwargs = _ValueParser(inner.rest, inner.lineno).parse_args()
        if inner.keyword == 'url':
            url = _template(args[0], inner.lineno) if args else None
        elif inner.keyword == 'regex':
            if not args or not isinstance(args[0], Regex):
                raise CaskSyntaxError("regex expects a %r{} literal", inner.lineno)
            regex = args[0]
        elif inner.keyword == 'strategy':
            strategy = str(args[0]) if args else None
        else:
            raise CaskSyntaxError(f"Unsupported livecheck stanza {inner.keyword!r}", inner.lineno)
    if url is None or regex is None:
        raise CaskSyntaxError("livecheck needs both url and regex", statement.lineno)
    return LivecheckRule(url=url, regex=regex.pattern, flags=regex.flags, strategy=strategy)


def _parse_postflight(statement: Statement) -> List[SystemCommand]:
    commands = []
    for inner in statement.body:
        if inner.keyword != 'system_command':
            raise CaskSyntaxError(f"Unsupported postflight call {inner.keyword!r}", inner.lineno)
        args, kwargs = _ValueParser(inner.rest, inner.lineno).parse_args()
        if len(args) != 1:
            raise CaskSyntaxError("system_command expects one executable", inner.lineno)
        unknown = set(kwargs) - {'args'}
        if unknown:
            raise CaskSyntaxError(f"Unsupported system_command options: {sorted(unknown)}", inner.lineno)
        argv = kwargs.get('args', [])
        if not isinstance(argv, list):
            raise CaskSyntaxError("args must be an array", inner.lineno)
        commands.append(SystemCommand(
            _template(args[0], inner.lineno),
            tuple(_template(a, inner.lineno) for a in argv),
        ))
    return commands


def parse_cask(text: str) -> CaskManifest:
    """Parse cask source text into a CaskManifest.

    Raises:
        CaskSyntaxError: If the text is not a supported cask definition
    """
    lines = _logical_lines(text)
    if not lines:
        raise CaskSyntaxError("Empty cask file")
    tree, _ = _build_tree(lines)
    if len(tree) != 1 or tree[0].keyword != 'cask' or not tree[0].body:
        raise CaskSyntaxError("Expected a single `cask \"token\" do ... end` block", lines[0][0])

    header = tree[0]
    args, _ = _ValueParser(header.rest, header.lineno).parse_args()
    if len(args) != 1:
        raise CaskSyntaxError("cask expects a token", header.lineno)

    fields = {
        'token': _plain(args[0], header.lineno, "cask token"),
        'name': [],
        'conflicts_with': [],
        'postflight': [],
        'zap_trash': [],
    }
    labels = {}

    for statement in header.body:
        lineno = statement.lineno
        keyword = statement.keyword
        if keyword == 'livecheck':
            fields['livecheck'] = _parse_livecheck(statement)
            continue
        if keyword == 'postflight':
            fields['postflight'].extend(_parse_postflight(statement))
            continue
        if statement.body:
            raise CaskSyntaxError(f"Unsupported block {keyword!r}", lineno)

        args, kwargs = _ValueParser(statement.rest, lineno).parse_args()
        if keyword in ('version', 'name', 'desc', 'homepage', 'app') and not args:
            raise CaskSyntaxError(f"{keyword} expects a value", lineno)
        if keyword == 'version':
            value = args[0]
            fields['version'] = str(value) if isinstance(value, Symbol) else _plain(value, lineno, "version")
        elif keyword == 'sha256':
            if args:
                fields['sha256'] = {ALL_ARCHITECTURES: _checksum(args[0], lineno)}
            else:
                fields['sha256'] = {arch: _checksum(v, lineno) for arch, v in kwargs.items()}
        elif keyword == 'arch':
            labels.update({arch: _plain(v, lineno, "arch label") for arch, v in kwargs.items()})
        elif keyword == 'url':
            if not args:
                raise CaskSyntaxError("url expects a string", lineno)
            fields['url_template'] = _template(args[0], lineno, labels)
            if set(kwargs) - {'verified'}:
                raise CaskSyntaxError(f"Unsupported url options: {sorted(kwargs)}", lineno)
            if 'verified' in kwargs:
                fields['url_verified'] = _plain(kwargs['verified'], lineno, "url verified")
        elif keyword == 'name':
            fields['name'].extend(_string_list(args[0], lineno, "name"))
        elif keyword in ('desc', 'homepage', 'app'):
            fields[keyword] = _plain(args[0], lineno, keyword)
        elif keyword == 'depends_on':
            if set(kwargs) != {'macos'}:
                raise CaskSyntaxError(f"Unsupported depends_on: {sorted(kwargs)}", lineno)
            try:
                fields['depends_on_macos'] = parse_requirement(kwargs['macos'])
            except ValueError as e:
                raise CaskSyntaxError(str(e), lineno) from e
        elif keyword == 'conflicts_with':
            if set(kwargs) != {'cask'}:
                raise CaskSyntaxError(f"Unsupported conflicts_with: {sorted(kwargs)}", lineno)
            fields['conflicts_with'].extend(_string_list(kwargs['cask'], lineno, "conflicts_with"))
        elif keyword == 'zap':
            if set(kwargs) != {'trash'}:
                raise CaskSyntaxError(f"Unsupported zap directives: {sorted(kwargs)}", lineno)
            fields['zap_trash'].extend(_string_list(kwargs['trash'], lineno, "zap trash"))
        else:
            raise CaskSyntaxError(f"Unsupported stanza {keyword!r}", lineno)

    for required in ('version', 'sha256', 'url_template'):
        if required not in fields:
            raise CaskSyntaxError(f"Missing `{required.replace('_template', '')}` stanza", header.lineno)

    for key in ('name', 'conflicts_with', 'postflight', 'zap_trash'):
        fields[key] = tuple(fields[key])
    fields['arch_labels'] = MappingProxyType(labels)

    logger.debug(f"Parsed cask {fields['token']} {fields['version']}")
    return CaskManifest(**fields)


def load_cask(path) -> CaskManifest:
    """Read and parse a cask file."""
    path = Path(path)
    logger.debug(f"Loading cask from {path}")
    return parse_cask(path.read_text(encoding='utf-8'))


# --- rendering ------------------------------------------------------------

def _escape(value: str) -> str:
    return value.replace('\\', '\\\\').replace('"', '\\"').replace('#{', '\\#{')


def _quote(value: str) -> str:
    return '"' + _escape(value) + '"'


def _ruby_template(template: str, manifest: CaskManifest) -> str:
    """Inverse of `_template`: {placeholder} back to #{...}."""
    labels = manifest.arch_labels

    def _interpolate(match):
        key = match.group(1)
        if key == 'arch' and set(labels) == {'arm', 'intel'}:
            return '#{Hardware::CPU.arm? ? ' + _quote(labels['arm']) + ' : ' + _quote(labels['intel']) + '}'
        return '#{' + key + '}'

    escaped = _escape(template)
    return '"' + re.sub(r'\{(\w+)\}', _interpolate, escaped) + '"'


def _render_list(keyword: str, items, indent='  ') -> List[str]:
    if len(items) == 1:
        return [f"{indent}{keyword} {_quote(items[0])}"]
    lines = [f"{indent}{keyword} ["]
    lines.extend(f"{indent}  {_quote(item)}," for item in items)
    lines.append(f"{indent}]")
    return lines


def _render_checksum(value: str) -> str:
    return ':no_check' if value == NO_CHECK else _quote(value)


def render_cask(manifest: CaskManifest) -> str:
    """Render a CaskManifest as cask source text."""
    lines = [f"cask {_quote(manifest.token)} do"]
    lines.append(f"  version {_quote(manifest.version)}")

    checksums = manifest.sha256
    if list(checksums) == [ALL_ARCHITECTURES]:
        lines.append(f"  sha256 {_render_checksum(checksums[ALL_ARCHITECTURES])}")
    else:
        width = max(len(arch) for arch in checksums) + 1
        entries = [f"{(arch + ':').ljust(width)} {_render_checksum(value)}" for arch, value in checksums.items()]
        lines.append("  sha256 " + entries[0] + ("," if len(entries) > 1 else ""))
        for i, entry in enumerate(entries[1:], 1):
            lines.append("         " + entry + ("," if i < len(entries) - 1 else ""))
    lines.append("")

    labels = manifest.arch_labels
    if labels and set(labels) != {'arm', 'intel'}:
        lines.append("  arch " + ", ".join(f"{arch}: {_quote(label)}" for arch, label in labels.items()))
        lines.append("")

    url = f"  url {_ruby_template(manifest.url_template, manifest)}"
    if manifest.url_verified:
        lines.append(url + ",")
        lines.append(f"      verified: {_quote(manifest.url_verified)}")
    else:
        lines.append(url)
    for name in manifest.name:
        lines.append(f"  name {_quote(name)}")
    if manifest.desc:
        lines.append(f"  desc {_quote(manifest.desc)}")
    if manifest.homepage:
        lines.append(f"  homepage {_quote(manifest.homepage)}")

    if manifest.depends_on_macos:
        lines.append("")
        lines.append(f"  depends_on macos: {manifest.depends_on_macos.to_ruby()}")

    if manifest.conflicts_with:
        lines.append("")
        lines.extend(_render_list("conflicts_with cask:", list(manifest.conflicts_with)))

    if manifest.livecheck:
        rule = manifest.livecheck
        lines.append("")
        lines.append("  livecheck do")
        lines.append(f"    url {_ruby_template(rule.url, manifest)}")
        if rule.strategy:
            lines.append(f"    strategy :{rule.strategy}")
        lines.append(f"    regex(%r{{{rule.regex}}}{rule.flags})")
        lines.append("  end")

    if manifest.app:
        lines.append("")
        lines.append(f"  app {_quote(manifest.app)}")

    if manifest.postflight:
        lines.append("")
        lines.append("  postflight do")
        for command in manifest.postflight:
            args = ", ".join(_ruby_template(arg, manifest) for arg in command.args)
            lines.append(f"    system_command {_ruby_template(command.executable, manifest)}, args: [{args}]")
        lines.append("  end")

    if manifest.zap_trash:
        lines.append("")
        lines.extend(_render_list("zap trash:", list(manifest.zap_trash)))

    lines.append("end")
    return "\n".join(lines) + "\n"


def write_cask(manifest: CaskManifest, path) -> Path:
    """Render a manifest and write it to a cask file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_cask(manifest), encoding='utf-8')
    logger.info(f"Wrote cask {manifest.token} {manifest.version} to {path}")
    return path


__all__ = [
    'CaskSyntaxError',
    'parse_cask',
    'load_cask',
    'render_cask',
    'write_cask',
]
