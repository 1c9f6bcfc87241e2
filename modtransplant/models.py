"""Core data models for modtransplant."""

import copy
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from packageurl import PackageURL

logger = logging.getLogger(__name__)


@dataclass
class ModuleCoordinate:
    """A module path plus a version; equal only when both strings match exactly."""

    path: str
    version: str = ""

    @property
    def key(self) -> str:
        """Return the coordinate in path@version form (path alone if unversioned)."""
        if self.version:
            return f"{self.path}@{self.version}"
        return self.path

    @property
    def is_local(self) -> bool:
        """True for filesystem replacement targets such as ../fork."""
        return self.path.startswith(('./', '../', '/')) or self.path in ('.', '..')

    @property
    def purl(self) -> Optional[str]:
        """Return the package URL for this coordinate, or None for local paths."""
        if self.is_local or not self.path:
            return None
        namespace, _, name = self.path.rpartition('/')
        purl = PackageURL(
            type='golang',
            namespace=namespace or None,
            name=name,
            version=self.version or None,
        )
        return purl.to_string()

    def __str__(self) -> str:
        return self.key


@dataclass
class RequireEntry:
    """A required dependency, direct or indirect."""

    mod: ModuleCoordinate
    indirect: bool = False
    comments: List[str] = field(default_factory=list, compare=False)  # Leading comment lines
    suffix: str = field(default="", compare=False)  # Trailing comment text besides "indirect"

    @property
    def path(self) -> str:
        return self.mod.path

    @property
    def version(self) -> str:
        return self.mod.version

    def __str__(self) -> str:
        return f"{self.mod} ({indirect_str(self.indirect)})"


@dataclass
class ReplaceDirective:
    """Redirects an old module coordinate to a new one (new.version may be empty)."""

    old: ModuleCoordinate
    new: ModuleCoordinate
    comments: List[str] = field(default_factory=list, compare=False)
    suffix: str = field(default="", compare=False)

    def __str__(self) -> str:
        return f"{self.old} => {self.new}"


@dataclass
class ExcludeDirective:
    """A module version that must never be selected."""

    mod: ModuleCoordinate
    comments: List[str] = field(default_factory=list, compare=False)
    suffix: str = field(default="", compare=False)

    def __str__(self) -> str:
        return str(self.mod)


@dataclass
class Directive:
    """A directive carried through the merge untouched (godebug, retract, tool, ignore)."""

    verb: str
    text: str
    comments: List[str] = field(default_factory=list, compare=False)
    suffix: str = field(default="", compare=False)


@dataclass
class Manifest:
    """Structured representation of a go.mod file."""

    module: str
    requires: List[RequireEntry] = field(default_factory=list)
    replaces: List[ReplaceDirective] = field(default_factory=list)
    excludes: List[ExcludeDirective] = field(default_factory=list)
    go_version: Optional[str] = None
    toolchain: Optional[str] = None
    directives: List[Directive] = field(default_factory=list)
    module_comments: List[str] = field(default_factory=list)
    module_suffix: str = ""
    go_suffix: str = ""
    toolchain_suffix: str = ""
    trailing_comments: List[str] = field(default_factory=list)
    separate_indirect: bool = False  # Indirect requirements kept in their own block
    filename: str = ""

    def copy(self) -> 'Manifest':
        """Return a deep copy that can be mutated independently."""
        return copy.deepcopy(self)

    def find_requires(self, path: str) -> List[RequireEntry]:
        """Return every requirement on the given module path, in file order."""
        return [r for r in self.requires if r.mod.path == path]

    def add_or_update_require(self, path: str, version: str, indirect: bool) -> RequireEntry:
        """
        Insert a requirement if the path is absent, otherwise update it in place.

        Returns:
            The created or updated RequireEntry
        """
        existing = self.find_requires(path)
        if existing:
            entry = existing[0]
            entry.mod.version = version
            entry.indirect = indirect
            return entry

        entry = RequireEntry(mod=ModuleCoordinate(path, version), indirect=indirect)
        self.requires.append(entry)
        return entry

    def drop_require(self, path: str) -> bool:
        """Remove all requirements on a path. Returns True if any were removed."""
        kept = [r for r in self.requires if r.mod.path != path]
        removed = len(kept) != len(self.requires)
        self.requires = kept
        return removed

    def find_replace(self, old_path: str, old_version: str) -> Optional[ReplaceDirective]:
        for r in self.replaces:
            if r.old.path == old_path and r.old.version == old_version:
                return r
        return None

    def add_replace(self, old_path: str, old_version: str, new_path: str, new_version: str) -> ReplaceDirective:
        """Add a replace directive, retargeting an existing one with the same old coordinate."""
        existing = self.find_replace(old_path, old_version)
        if existing:
            existing.new = ModuleCoordinate(new_path, new_version)
            return existing

        directive = ReplaceDirective(
            old=ModuleCoordinate(old_path, old_version),
            new=ModuleCoordinate(new_path, new_version),
        )
        self.replaces.append(directive)
        return directive

    def drop_replace(self, old_path: str, old_version: str) -> bool:
        """Remove the replace directive for an exact old coordinate."""
        kept = [r for r in self.replaces if not (r.old.path == old_path and r.old.version == old_version)]
        removed = len(kept) != len(self.replaces)
        self.replaces = kept
        return removed

    def add_exclude(self, path: str, version: str) -> ExcludeDirective:
        """Add an exclusion unless the exact coordinate is already excluded."""
        for e in self.excludes:
            if e.mod.path == path and e.mod.version == version:
                return e

        directive = ExcludeDirective(mod=ModuleCoordinate(path, version))
        self.excludes.append(directive)
        return directive

    def normalize(self) -> None:
        """
        Collapse duplicates left over from hand-edited input.

        Requirements keep the first entry for each path, marked direct if any
        duplicate was direct. Replace and exclude directives keep the first
        occurrence of each old/excluded coordinate.
        """
        by_path = {}
        requires: List[RequireEntry] = []
        for r in self.requires:
            first = by_path.get(r.mod.path)
            if first is None:
                by_path[r.mod.path] = r
                requires.append(r)
                continue
            logger.warning(f"Dropping duplicate requirement {r.mod} (keeping {first.mod})")
            if not r.indirect:
                first.indirect = False
        self.requires = requires

        seen = set()
        replaces: List[ReplaceDirective] = []
        for r in self.replaces:
            if r.old.key in seen:
                logger.warning(f"Dropping duplicate replacement {r}")
                continue
            seen.add(r.old.key)
            replaces.append(r)
        self.replaces = replaces

        seen = set()
        excludes: List[ExcludeDirective] = []
        for e in self.excludes:
            if e.mod.key in seen:
                logger.debug(f"Dropping duplicate exclusion {e.mod}")
                continue
            seen.add(e.mod.key)
            excludes.append(e)
        self.excludes = excludes


def indirect_str(indirect: bool) -> str:
    return "indirect" if indirect else "direct"
