"""
tapkeeper - LogParser Homebrew tap maintenance

Reads the tap's cask manifests, resolves download URLs, validates records
(including superseded ones), audits checksums, checks for new upstream
releases and bumps the cask to new versions.
"""

__version__ = "0.1.0"
