"""Output formatters for manifests and merge decisions."""

import json
import logging
from datetime import datetime, timezone
from typing import Collection, List, Tuple

from . import __version__
from .merger import MergeDecision
from .models import Manifest, ModuleCoordinate, RequireEntry

logger = logging.getLogger(__name__)

# (leading comments, statement body, suffix comment)
Line = Tuple[List[str], str, str]


def auto_quote(token: str) -> str:
    """Quote a token if it cannot appear bare in a go.mod file."""
    if token == "" or any(c.isspace() for c in token) or any(s in token for s in ('"', '`', '//', '/*', '(', ')')):
        return json.dumps(token, ensure_ascii=False)
    return token


def _coordinate(mod: ModuleCoordinate) -> str:
    if mod.version:
        return f"{auto_quote(mod.path)} {auto_quote(mod.version)}"
    return auto_quote(mod.path)


def _require_line(entry: RequireEntry) -> Line:
    suffix = entry.suffix
    if entry.indirect:
        suffix = f"indirect; {suffix}" if suffix else "indirect"
    return entry.comments, _coordinate(entry.mod), suffix


class ManifestFormatter:
    """Serializer for the canonical go.mod layout."""

    @staticmethod
    def format(manifest: Manifest) -> str:
        """
        Render a manifest as go.mod text.

        Sections are written in the order module, go/toolchain, godebug,
        require, replace, exclude, then any remaining directives. A section
        with a single entry is written on one line, otherwise as a block.
        """
        sections: List[List[str]] = []

        header = list(manifest.module_comments)
        header.append(ManifestFormatter._with_suffix(
            f"module {auto_quote(manifest.module)}", manifest.module_suffix))
        sections.append(header)

        versions = []
        if manifest.go_version:
            versions.append(ManifestFormatter._with_suffix(f"go {manifest.go_version}", manifest.go_suffix))
        if manifest.toolchain:
            versions.append(ManifestFormatter._with_suffix(
                f"toolchain {manifest.toolchain}", manifest.toolchain_suffix))
        if versions:
            sections.append(versions)

        sections.extend(ManifestFormatter._directive_sections(manifest, ('godebug',)))

        if manifest.separate_indirect:
            require_groups = [
                [r for r in manifest.requires if not r.indirect],
                [r for r in manifest.requires if r.indirect],
            ]
        else:
            require_groups = [manifest.requires]
        for group in require_groups:
            if group:
                sections.append(ManifestFormatter._section('require', [_require_line(r) for r in group]))

        if manifest.replaces:
            sections.append(ManifestFormatter._section('replace', [
                (r.comments, f"{_coordinate(r.old)} => {_coordinate(r.new)}", r.suffix)
                for r in manifest.replaces
            ]))

        if manifest.excludes:
            sections.append(ManifestFormatter._section('exclude', [
                (e.comments, _coordinate(e.mod), e.suffix) for e in manifest.excludes
            ]))

        remaining = []
        for d in manifest.directives:
            if d.verb != 'godebug' and d.verb not in remaining:
                remaining.append(d.verb)
        sections.extend(ManifestFormatter._directive_sections(manifest, remaining))

        if manifest.trailing_comments:
            sections.append(list(manifest.trailing_comments))

        return '\n\n'.join('\n'.join(s) for s in sections) + '\n'

    @staticmethod
    def _directive_sections(manifest: Manifest, verbs) -> List[List[str]]:
        sections = []
        for verb in verbs:
            lines = [(d.comments, d.text, d.suffix) for d in manifest.directives if d.verb == verb]
            if lines:
                sections.append(ManifestFormatter._section(verb, lines))
        return sections

    @staticmethod
    def _section(verb: str, lines: List[Line]) -> List[str]:
        """Format a single statement, or a parenthesized block for several."""
        if len(lines) == 1:
            comments, body, suffix = lines[0]
            out = list(comments)
            out.append(ManifestFormatter._with_suffix(f"{verb} {body}", suffix))
            return out

        out = [f"{verb} ("]
        for comments, body, suffix in lines:
            out.extend(f"\t{c}" for c in comments)
            out.append(ManifestFormatter._with_suffix(f"\t{body}", suffix))
        out.append(")")
        return out

    @staticmethod
    def _with_suffix(text: str, suffix: str) -> str:
        return f"{text} // {suffix}" if suffix else text


class DecisionFormatter:
    """Formatter for merge decision records."""

    @staticmethod
    def format_as_lines(decisions: Collection[MergeDecision]) -> str:
        """Format decisions one per line, as printed on stderr."""
        return ''.join(f"{d}\n" for d in decisions)

    @staticmethod
    def format_as_json(decisions: Collection[MergeDecision], dest: str, src: str,
                       force_overwrite: bool = False) -> str:
        """
        Format a machine-readable merge report.

        Coordinates are reported both as path@version and as package URLs.
        """
        report = {
            'tool': {'name': 'modtransplant', 'version': __version__},
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'destination': dest,
            'source': src,
            'forceOverwrite': force_overwrite,
            'decisions': [d.to_dict() for d in decisions],
        }
        logger.debug(f"Formatted report with {len(decisions)} decisions")
        return json.dumps(report, indent=2) + '\n'
