"""Cask manifest records and URL resolution."""

import re
import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

from .macos import MacOSRequirement, requirement_from_api

# Set up logging for this module
logger = logging.getLogger(__name__)

ARCHITECTURES = ('arm', 'intel')
ALL_ARCHITECTURES = 'all'
NO_CHECK = 'no_check'

PLACEHOLDER_RE = re.compile(r'\{(\w+)\}')

RUBY_REGEX_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.DOTALL,
    'x': re.VERBOSE,
}


def placeholders(template: str) -> List[str]:
    """List the {name} placeholders used in a template, in order."""
    return PLACEHOLDER_RE.findall(template)


def fill_placeholders(template: str, **values) -> str:
    """Substitute {name} placeholders in a template.

    Raises:
        ValueError: If the template uses a placeholder with no value
    """
    def _replace(match):
        key = match.group(1)
        if key not in values or values[key] is None:
            raise ValueError(f"No value for placeholder {{{key}}} in {template!r}")
        return str(values[key])

    return PLACEHOLDER_RE.sub(_replace, template)


class LivecheckRule(NamedTuple):
    """Where and how to look for newer upstream versions."""
    url: str
    regex: str
    flags: str = ''
    strategy: Optional[str] = None

    def compile(self):
        """Compile the Ruby-style regex into a Python pattern."""
        flags = 0
        for flag in self.flags:
            if flag not in RUBY_REGEX_FLAGS:
                raise ValueError(f"Unsupported regex flag: {flag!r}")
            flags |= RUBY_REGEX_FLAGS[flag]
        return re.compile(self.regex, flags)


class SystemCommand(NamedTuple):
    """One `system_command` operation from a postflight block."""
    executable: str
    args: Tuple[str, ...] = ()

    def argv(self, **values) -> List[str]:
        """Build the argument vector with placeholders filled in."""
        return [fill_placeholders(self.executable, **values)] + [
            fill_placeholders(arg, **values) for arg in self.args
        ]


class CaskManifest(NamedTuple):
    """A single version of a cask manifest."""
    token: str
    version: str
    sha256: Dict[str, str]
    url_template: str
    arch_labels: Mapping[str, str] = MappingProxyType({})
    name: Tuple[str, ...] = ()
    desc: str = ''
    homepage: str = ''
    depends_on_macos: Optional[MacOSRequirement] = None
    conflicts_with: Tuple[str, ...] = ()
    livecheck: Optional[LivecheckRule] = None
    app: str = ''
    postflight: Tuple[SystemCommand, ...] = ()
    zap_trash: Tuple[str, ...] = ()
    url_verified: str = ''

    def architectures(self) -> List[str]:
        """Architectures this manifest ships artifacts for."""
        if self.arch_labels:
            return [a for a in ARCHITECTURES if a in self.arch_labels] + sorted(
                a for a in self.arch_labels if a not in ARCHITECTURES)
        keys = [k for k in self.sha256 if k != ALL_ARCHITECTURES]
        return keys or list(ARCHITECTURES)

    def checksum_for(self, arch: str) -> Optional[str]:
        """Return the expected SHA-256 for an architecture."""
        if arch in self.sha256:
            return self.sha256[arch]
        return self.sha256.get(ALL_ARCHITECTURES)

    def resolve_url(self, arch: str, version: Optional[str] = None) -> str:
        """Resolve the download URL for an architecture.

        Args:
            arch: "arm" or "intel"
            version: Version to resolve for (defaults to the manifest's own)

        Raises:
            ValueError: If the architecture is not declared
        """
        label = None
        if 'arch' in placeholders(self.url_template):
            if arch not in self.arch_labels:
                raise ValueError(f"Unknown architecture {arch!r} for cask {self.token!r}")
            label = self.arch_labels[arch]
        elif arch not in self.architectures():
            raise ValueError(f"Unknown architecture {arch!r} for cask {self.token!r}")

        return fill_placeholders(
            self.url_template,
            version=version if version is not None else self.version,
            arch=label,
        )

    def resolved_urls(self, version: Optional[str] = None) -> Dict[str, str]:
        return {arch: self.resolve_url(arch, version) for arch in self.architectures()}

    def to_api_dict(self) -> dict:
        """Convert to the formulae.brew.sh cask.json record shape.

        The template and arch labels are kept alongside the resolved URL so
        the record can be read back without loss.
        """
        archs = self.architectures()
        artifacts = []
        if self.app:
            artifacts.append({'app': [self.app]})
        if self.postflight:
            artifacts.append({'postflight': [
                {'system_command': cmd.executable, 'args': list(cmd.args)}
                for cmd in self.postflight
            ]})
        if self.zap_trash:
            artifacts.append({'zap': [{'trash': list(self.zap_trash)}]})

        return {
            'token': self.token,
            'name': list(self.name),
            'desc': self.desc,
            'homepage': self.homepage,
            'version': self.version,
            'url': self.resolve_url(archs[0]) if archs else self.url_template,
            'url_template': self.url_template,
            'url_specs': {'verified': self.url_verified} if self.url_verified else {},
            'arch_labels': dict(self.arch_labels),
            'sha256': dict(self.sha256),
            'depends_on': {'macos': self.depends_on_macos.to_api()} if self.depends_on_macos else {},
            'conflicts_with': {'cask': list(self.conflicts_with)} if self.conflicts_with else None,
            'livecheck': self.livecheck._asdict() if self.livecheck else None,
            'artifacts': artifacts,
        }

    @classmethod
    def from_api_dict(cls, data: dict) -> 'CaskManifest':
        """Rebuild a manifest from `to_api_dict` output."""
        app = ''
        postflight = []
        zap_trash = []
        for artifact in data.get('artifacts', []):
            if not isinstance(artifact, dict):
                continue
            if 'app' in artifact and artifact['app']:
                app = artifact['app'][0]
            for item in artifact.get('postflight') or []:
                postflight.append(SystemCommand(item['system_command'], tuple(item.get('args', []))))
            for item in artifact.get('zap') or []:
                if isinstance(item, dict):
                    zap_trash.extend(item.get('trash', []))

        macos = (data.get('depends_on') or {}).get('macos')
        livecheck = data.get('livecheck')
        sha256 = data.get('sha256') or {}
        if isinstance(sha256, str):
            sha256 = {ALL_ARCHITECTURES: sha256}

        return cls(
            token=data['token'],
            version=data['version'],
            sha256=dict(sha256),
            url_template=data.get('url_template') or data.get('url', ''),
            arch_labels=MappingProxyType(dict(data.get('arch_labels') or {})),
            name=tuple(data.get('name') or ()),
            desc=data.get('desc') or '',
            homepage=data.get('homepage') or '',
            depends_on_macos=requirement_from_api(macos) if macos else None,
            conflicts_with=tuple((data.get('conflicts_with') or {}).get('cask', ())),
            livecheck=LivecheckRule(**livecheck) if livecheck else None,
            app=app,
            postflight=tuple(postflight),
            zap_trash=tuple(zap_trash),
            url_verified=(data.get('url_specs') or {}).get('verified', ''),
        )
