"""Parser for go.mod manifest files."""

import json
import logging
import os
import ssl
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.ssl_ import create_urllib3_context

from .errors import ManifestIOError, ManifestParseError
from .models import (
    Directive,
    ExcludeDirective,
    Manifest,
    ModuleCoordinate,
    ReplaceDirective,
    RequireEntry,
)

logger = logging.getLogger(__name__)

# Verbs that may open a parenthesized block
BLOCK_VERBS = ('require', 'replace', 'exclude', 'retract', 'godebug', 'tool', 'ignore')
# Verbs copied through the merge without interpretation
PASSTHROUGH_VERBS = ('godebug', 'retract', 'tool', 'ignore')

# Known corporate SSL inspection cert bundle locations
CORPORATE_CERT_PATHS = [
    "/Library/Application Support/Netskope/STAgent/data/netskope-cert-bundle.pem",  # Netskope macOS
    "/etc/netskope/cert-bundle.pem",  # Netskope Linux
]


def _is_url(path: str) -> bool:
    """Check if a path is a URL."""
    try:
        result = urlparse(path)
    except ValueError:
        return False
    return result.scheme in ('http', 'https')


def get_corporate_cert_path() -> Optional[str]:
    """Find the corporate SSL certificate bundle if present."""
    for path in CORPORATE_CERT_PATHS:
        if os.path.exists(path):
            return path
    return None


class CorporateSSLAdapter(HTTPAdapter):
    """HTTP adapter that trusts a corporate SSL inspection bundle."""

    def __init__(self, cert_path: str, **kwargs):
        self.cert_path = cert_path
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        ctx = create_urllib3_context()
        ctx.load_verify_locations(self.cert_path)
        # OpenSSL 3.x rejects inspection certificates without key usage extensions
        ctx.verify_flags = ssl.VERIFY_DEFAULT
        kwargs['ssl_context'] = ctx
        return super().init_poolmanager(*args, **kwargs)


def create_session() -> requests.Session:
    """Create a requests session for fetching remote manifests."""
    session = requests.Session()
    session.headers.update({"Accept": "text/plain"})

    cert_path = get_corporate_cert_path()
    if cert_path:
        logger.info(f"Detected corporate SSL environment, using {cert_path}")
        session.mount('https://', CorporateSSLAdapter(cert_path=cert_path))

    return session


def read_content(location: str) -> str:
    """
    Read manifest content from either a file path or URL.

    Raises:
        ManifestIOError: If the file or URL cannot be read
    """
    if _is_url(location):
        logger.info(f"Fetching manifest from URL: {location}")
        session = create_session()
        try:
            response = session.get(location, timeout=30)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ManifestIOError(location, str(e)) from e
        finally:
            session.close()
        return response.text

    logger.info(f"Reading manifest from file: {location}")
    try:
        with open(location, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        raise ManifestIOError(location, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise ManifestIOError(location, f"not UTF-8 text (invalid byte at offset {e.start})") from e


def load_manifest(location: str) -> Manifest:
    """Read and parse a go.mod file from a path or URL."""
    return ManifestParser.parse(read_content(location), filename=location)


def tokenize(line: str, filename: str = "", line_num: int = 0) -> Tuple[List[str], Optional[str]]:
    """
    Split one go.mod line into raw tokens and an optional trailing comment.

    Quoted tokens keep their quotes; parentheses are separate tokens.

    Returns:
        (tokens, comment) where comment is the text after '//' or None
    """
    tokens: List[str] = []
    i = 0
    n = len(line)
    while i < n:
        c = line[i]
        if c in ' \t\r':
            i += 1
            continue
        if line.startswith('//', i):
            return tokens, line[i + 2:].strip()
        if c == '"':
            j = i + 1
            while j < n and line[j] != '"':
                if line[j] == '\\':
                    j += 1
                j += 1
            if j >= n:
                raise ManifestParseError("unterminated quoted string", filename, line_num)
            tokens.append(line[i:j + 1])
            i = j + 1
            continue
        if c == '`':
            j = line.find('`', i + 1)
            if j == -1:
                raise ManifestParseError("unterminated raw string", filename, line_num)
            tokens.append(line[i:j + 1])
            i = j + 1
            continue
        if c in '()':
            tokens.append(c)
            i += 1
            continue

        j = i
        while j < n and line[j] not in ' \t\r()"`' and not line.startswith('//', j):
            j += 1
        tokens.append(line[i:j])
        i = j

    return tokens, None


def unquote(token: str, filename: str = "", line_num: int = 0) -> str:
    """Strip Go string quoting from a token."""
    if token.startswith('`'):
        return token[1:-1]
    if token.startswith('"'):
        try:
            return json.loads(token)
        except json.JSONDecodeError:
            raise ManifestParseError(f"invalid quoted string {token}", filename, line_num)
    return token


def split_indirect(comment: Optional[str]) -> Tuple[bool, str]:
    """
    Split a suffix comment into the indirect marker and any remaining text.

    "indirect" and "indirect; note" mark an indirect requirement.
    """
    if comment is None:
        return False, ""
    if comment == 'indirect':
        return True, ""
    if comment.startswith('indirect;'):
        return True, comment[len('indirect;'):].strip()
    return False, comment


class ManifestParser:
    """Parser for go.mod files."""

    @staticmethod
    def parse(content: str, filename: str = "go.mod") -> Manifest:
        """
        Parse go.mod content into a Manifest.

        Args:
            content: File content
            filename: Name used in error messages

        Returns:
            Manifest instance

        Raises:
            ManifestParseError: On any syntax error or a missing module directive
        """
        manifest = Manifest(module="", filename=filename)
        module_seen = False
        pending: List[str] = []
        block_verb: Optional[str] = None
        block_start = 0
        require_groups: List[List[RequireEntry]] = []

        for line_num, line in enumerate(content.splitlines(), 1):
            tokens, comment = tokenize(line, filename, line_num)

            if not tokens:
                if comment is not None:
                    pending.append(f"// {comment}" if comment else "//")
                continue

            if block_verb is not None:
                if tokens == [')']:
                    block_verb = None
                    continue
                if ')' in tokens or '(' in tokens:
                    raise ManifestParseError("unexpected parenthesis in block", filename, line_num)
                ManifestParser._parse_statement(
                    manifest, block_verb, tokens, comment, pending, filename, line_num,
                    require_groups[-1] if block_verb == 'require' else [],
                )
                pending = []
                continue

            verb = tokens[0]
            args = tokens[1:]

            if args[-1:] == ['(']:
                if len(args) != 1:
                    raise ManifestParseError(f"malformed {verb} block", filename, line_num)
                if verb not in BLOCK_VERBS:
                    raise ManifestParseError(f"unknown block type: {verb}", filename, line_num)
                block_verb = verb
                block_start = line_num
                if verb == 'require':
                    require_groups.append([])
                continue

            if args == ['(', ')']:
                continue

            if verb == 'module':
                if module_seen:
                    raise ManifestParseError("repeated module statement", filename, line_num)
                if len(args) != 1:
                    raise ManifestParseError("usage: module module/path", filename, line_num)
                manifest.module = unquote(args[0], filename, line_num)
                manifest.module_comments = pending
                manifest.module_suffix = comment or ""
                module_seen = True
            elif verb in ('go', 'toolchain'):
                if len(args) != 1:
                    raise ManifestParseError(f"usage: {verb} <version>", filename, line_num)
                if verb == 'go':
                    manifest.go_version = args[0]
                    manifest.go_suffix = comment or ""
                else:
                    manifest.toolchain = args[0]
                    manifest.toolchain_suffix = comment or ""
            else:
                group: List[RequireEntry] = []
                if verb == 'require':
                    require_groups.append(group)
                ManifestParser._parse_statement(
                    manifest, verb, args, comment, pending, filename, line_num, group
                )
            pending = []

        if block_verb is not None:
            raise ManifestParseError(f"unterminated {block_verb} block", filename, block_start)
        if not module_seen:
            raise ManifestParseError("no module directive found", filename)

        manifest.trailing_comments = pending
        manifest.separate_indirect = ManifestParser._has_separate_indirect(require_groups)

        logger.debug(
            f"Parsed {filename}: {len(manifest.requires)} requires, "
            f"{len(manifest.replaces)} replaces, {len(manifest.excludes)} excludes"
        )
        return manifest

    @staticmethod
    def _parse_statement(manifest: Manifest, verb: str, args: List[str], comment: Optional[str],
                         comments: List[str], filename: str, line_num: int,
                         require_group: List[RequireEntry]) -> None:
        """Parse one directive (either a single line or a line inside a block)."""
        if verb == 'require':
            if len(args) != 2:
                raise ManifestParseError("usage: require module/path v1.2.3", filename, line_num)
            indirect, suffix = split_indirect(comment)
            entry = RequireEntry(
                mod=ModuleCoordinate(unquote(args[0], filename, line_num), unquote(args[1], filename, line_num)),
                indirect=indirect,
                comments=comments,
                suffix=suffix,
            )
            manifest.requires.append(entry)
            require_group.append(entry)
        elif verb == 'exclude':
            if len(args) != 2:
                raise ManifestParseError("usage: exclude module/path v1.2.3", filename, line_num)
            manifest.excludes.append(ExcludeDirective(
                mod=ModuleCoordinate(unquote(args[0], filename, line_num), unquote(args[1], filename, line_num)),
                comments=comments,
                suffix=comment or "",
            ))
        elif verb == 'replace':
            manifest.replaces.append(
                ManifestParser._parse_replace(args, comment, comments, filename, line_num)
            )
        elif verb in PASSTHROUGH_VERBS:
            if not args:
                raise ManifestParseError(f"usage: {verb} ...", filename, line_num)
            manifest.directives.append(Directive(
                verb=verb, text=' '.join(args), comments=comments, suffix=comment or "",
            ))
        else:
            raise ManifestParseError(f"unknown directive: {verb}", filename, line_num)

    @staticmethod
    def _parse_replace(args: List[str], comment: Optional[str], comments: List[str],
                       filename: str, line_num: int) -> ReplaceDirective:
        usage = "usage: replace module/path [v1.2.3] => other/module v1.4\n\t or replace module/path [v1.2.3] => ../local/directory"
        if '=>' not in args:
            raise ManifestParseError(usage, filename, line_num)
        arrow = args.index('=>')
        left = [unquote(a, filename, line_num) for a in args[:arrow]]
        right = [unquote(a, filename, line_num) for a in args[arrow + 1:]]
        if len(left) not in (1, 2) or len(right) not in (1, 2):
            raise ManifestParseError(usage, filename, line_num)

        new = ModuleCoordinate(*right)
        if len(right) == 1 and not new.is_local:
            raise ManifestParseError(
                f"replacement module without version must be directory path (rooted or starting with ./ or ../): {new.path}",
                filename, line_num,
            )
        if len(right) == 2 and new.is_local:
            raise ManifestParseError(
                f"replacement module directory path must not have version: {new.path}",
                filename, line_num,
            )

        return ReplaceDirective(
            old=ModuleCoordinate(*left),
            new=new,
            comments=comments,
            suffix=comment or "",
        )

    @staticmethod
    def _has_separate_indirect(groups: List[List[RequireEntry]]) -> bool:
        """Detect the go 1.17+ layout with indirect requirements in their own block."""
        groups = [g for g in groups if g]
        if len(groups) < 2:
            return False
        all_indirect = any(all(r.indirect for r in g) for g in groups)
        has_direct = any(not r.indirect for g in groups for r in g)
        return all_indirect and has_direct
