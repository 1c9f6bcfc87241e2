"""
Manifest Merger
===============

Folds a source go.mod into a destination go.mod.

Three passes run in order, each mutating the destination in place:

- requirements: every source dependency ends up represented exactly once
- replacements: source redirections are added, conflicting ones rejected
- exclusions: union by exact coordinate

Any requirement or replacement pointing at the source module itself is
dropped, since the source no longer exists as an external dependency once
it has been absorbed.

Version policy:
- Without force-overwrite, the lower of two comparable versions wins. This
  keeps the merged manifest close to the destination and leaves upgrades to
  minimal version selection in the downstream build.
- A tagged release and a pre-release/pseudo-version are not comparable and
  stop the merge.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import ConflictingReplacementError, IrreconcilableVersionError
from .models import Manifest, ModuleCoordinate, RequireEntry
from .version_parser import SemanticVersion, VersionParser, can_compare

logger = logging.getLogger(__name__)


class Section(str, Enum):
    """Manifest section a decision applies to."""

    REQUIRE = "require"
    REPLACE = "replace"
    EXCLUDE = "exclude"


class Action(str, Enum):
    """What the merge decided to do with an entry."""

    MATCH = "match"
    REPLACE_VERSION = "replace version"
    FORCE_VERSION = "force version"
    KEEP_VERSION = "keep version"
    MAKE_DIRECT = "make direct"
    ADD = "add new"
    DROP = "drop"
    SKIP = "skip"


@dataclass
class MergeDecision:
    """A single decision taken during a merge pass."""

    section: Section
    action: Action
    mod: ModuleCoordinate
    message: str
    previous: Optional[ModuleCoordinate] = None  # Destination coordinate before the change
    target: Optional[ModuleCoordinate] = None  # Replacement target, for replace decisions

    def __str__(self) -> str:
        return f"({self.section.value}) {self.action.value}: {self.message}"

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            'section': self.section.value,
            'action': self.action.value,
            'message': self.message,
            'module': self.mod.key,
            'purl': self.mod.purl,
        }
        if self.previous is not None:
            data['previous'] = self.previous.key
        if self.target is not None:
            data['target'] = self.target.key
            data['targetPurl'] = self.target.purl
        return data


DecisionSink = Callable[[MergeDecision], None]


@dataclass
class MergeOptions:
    """Options controlling version reconciliation."""

    # Take the source version whenever the two manifests disagree
    force_overwrite: bool = False


@dataclass
class MergeResult:
    """Merged manifest plus every decision taken to produce it."""

    manifest: Manifest
    decisions: List[MergeDecision] = field(default_factory=list)

    def by_action(self, action: Action) -> List[MergeDecision]:
        return [d for d in self.decisions if d.action == action]


def _snapshot(mod: ModuleCoordinate) -> ModuleCoordinate:
    return ModuleCoordinate(mod.path, mod.version)


class ManifestMerger:
    """
    Merges a source manifest into a destination manifest.

    Decisions are collected on ``self.decisions``, logged at INFO and passed
    to the optional sink as they happen.
    """

    def __init__(self, options: Optional[MergeOptions] = None, sink: Optional[DecisionSink] = None):
        self.options = options or MergeOptions()
        self.sink = sink
        self.decisions: List[MergeDecision] = []

    def merge(self, dest: Manifest, src: Manifest) -> MergeResult:
        """
        Run all three passes on a copy of the destination.

        The caller's destination is left untouched, so a failed merge has
        no visible effect.

        Raises:
            VersionParseError: A differing version is not a semantic version
            IrreconcilableVersionError: Versions cannot be ordered without force-overwrite
            ConflictingReplacementError: Both manifests redirect a module differently
        """
        logger.info(f"Merging {src.module} ({src.filename}) into {dest.module} ({dest.filename})")
        self.decisions = []
        merged = dest.copy()

        self.merge_requires(merged, src)
        self.merge_replacements(merged, src)
        self.merge_excludes(merged, src)
        merged.normalize()

        logger.info(f"Merge complete: {len(self.decisions)} decisions")
        return MergeResult(manifest=merged, decisions=list(self.decisions))

    def _record(self, section: Section, action: Action, mod: ModuleCoordinate, message: str,
                previous: Optional[ModuleCoordinate] = None,
                target: Optional[ModuleCoordinate] = None) -> None:
        decision = MergeDecision(
            section=section,
            action=action,
            mod=_snapshot(mod),
            message=message,
            previous=previous,
            target=_snapshot(target) if target is not None else None,
        )
        self.decisions.append(decision)
        logger.info(str(decision))
        if self.sink is not None:
            self.sink(decision)

    def merge_requires(self, dest: Manifest, src: Manifest) -> List[RequireEntry]:
        """
        Merge "require" statements into the destination.

        - Requirements on the source module itself are removed.
        - Paths missing from the destination are added.
        - Mismatched versions resolve to the lower one (or the source's with
          force-overwrite).
        - Paths indirect in the destination but direct in the source become direct.
        """
        for r in dest.find_requires(src.module):
            self._record(Section.REQUIRE, Action.DROP, r.mod, f"{r.mod} (self-requirement of {src.module})")
        dest.drop_require(src.module)

        for src_r in src.requires:
            if src_r.path in (src.module, dest.module):
                self._record(Section.REQUIRE, Action.SKIP, src_r.mod, f"{src_r.mod} (self-reference)")
                continue

            matches = dest.find_requires(src_r.path)
            if not matches:
                dest.add_or_update_require(src_r.path, src_r.version, src_r.indirect)
                self._record(Section.REQUIRE, Action.ADD, src_r.mod, str(src_r))
                continue

            for dest_r in matches:
                if dest_r.version == src_r.version:
                    self._record(Section.REQUIRE, Action.MATCH, src_r.mod, str(src_r.mod))
                    self._reconcile_directness(dest_r, src_r)
                    break
                self._reconcile_version(dest_r, src_r)
                self._reconcile_directness(dest_r, src_r)

        return dest.requires

    def _reconcile_version(self, dest_r: RequireEntry, src_r: RequireEntry) -> None:
        dest_version = SemanticVersion.parse(dest_r.version)
        src_version = SemanticVersion.parse(src_r.version)
        previous = _snapshot(dest_r.mod)

        if self.options.force_overwrite:
            dest_r.mod.version = src_r.version
            self._record(
                Section.REQUIRE, Action.FORCE_VERSION, dest_r.mod,
                f"{dest_r.path} {previous.version} -> {src_r.version} "
                f"({VersionParser.describe(previous.version)} -> {VersionParser.describe(src_r.version)})",
                previous=previous,
            )
            return

        if not can_compare(dest_version, src_version):
            raise IrreconcilableVersionError(
                previous, _snapshot(src_r.mod),
                kinds=(VersionParser.describe(previous.version), VersionParser.describe(src_r.version)),
            )

        if src_version < dest_version:
            dest_r.mod.version = src_r.version
            self._record(
                Section.REQUIRE, Action.REPLACE_VERSION, dest_r.mod,
                f"{dest_r.path} {previous.version} -> {src_r.version}", previous=previous,
            )
        else:
            self._record(
                Section.REQUIRE, Action.KEEP_VERSION, dest_r.mod,
                f"{dest_r.path} {dest_r.version} (source has {src_r.version})",
            )

    def _reconcile_directness(self, dest_r: RequireEntry, src_r: RequireEntry) -> None:
        """Promote an indirect destination requirement that the source needs directly."""
        if dest_r.indirect and not src_r.indirect:
            dest_r.indirect = False
            self._record(Section.REQUIRE, Action.MAKE_DIRECT, dest_r.mod, str(dest_r.mod))

    def merge_replacements(self, dest: Manifest, src: Manifest):
        """
        Merge "replace" statements into the destination.

        - Replacements of the source module in the destination are removed.
        - Old coordinates missing from the destination are added.

        Raises:
            ConflictingReplacementError: The same old path/version is redirected
                to a different new path/version. This needs human intervention.
        """
        drop = [r for r in dest.replaces if r.old.path == src.module]
        for r in drop:
            self._record(Section.REPLACE, Action.DROP, r.old, str(r), target=r.new)
            dest.drop_replace(r.old.path, r.old.version)

        for src_r in src.replaces:
            if src_r.old.path == src.module:
                self._record(Section.REPLACE, Action.SKIP, src_r.old, f"{src_r} (self-replacement)", target=src_r.new)
                continue

            found = False
            for dest_r in dest.replaces:
                if dest_r.old != src_r.old:
                    continue
                if dest_r.new != src_r.new:
                    raise ConflictingReplacementError(str(dest_r), str(src_r))
                found = True

            if found:
                self._record(Section.REPLACE, Action.MATCH, src_r.old, str(src_r), target=src_r.new)
            else:
                dest.add_replace(src_r.old.path, src_r.old.version, src_r.new.path, src_r.new.version)
                self._record(Section.REPLACE, Action.ADD, src_r.old, str(src_r), target=src_r.new)

        return dest.replaces

    def merge_excludes(self, dest: Manifest, src: Manifest):
        """Merge "exclude" statements. Only exclusions missing from the destination are added."""
        for src_e in src.excludes:
            if any(dest_e.mod == src_e.mod for dest_e in dest.excludes):
                self._record(Section.EXCLUDE, Action.MATCH, src_e.mod, str(src_e.mod))
                continue
            dest.add_exclude(src_e.mod.path, src_e.mod.version)
            self._record(Section.EXCLUDE, Action.ADD, src_e.mod, str(src_e.mod))

        return dest.excludes


def merge_manifests(dest: Manifest, src: Manifest, force_overwrite: bool = False,
                    sink: Optional[DecisionSink] = None) -> MergeResult:
    """
    Merge src into a copy of dest.

    Args:
        dest: Destination manifest (not modified)
        src: Source manifest being absorbed (not modified)
        force_overwrite: Take the source version whenever versions differ
        sink: Optional callable receiving each MergeDecision as it is made

    Returns:
        MergeResult with the merged manifest and all decisions
    """
    merger = ManifestMerger(MergeOptions(force_overwrite=force_overwrite), sink=sink)
    return merger.merge(dest, src)

