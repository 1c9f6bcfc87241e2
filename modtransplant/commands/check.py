"""Check command for validating manifest uniqueness rules."""

import logging
from collections import Counter
from typing import List

from ..models import Manifest

logger = logging.getLogger(__name__)


def find_problems(manifest: Manifest) -> List[str]:
    """
    Find entries that violate the uniqueness rules a merged manifest must keep.

    Returns:
        One message per problem; empty when the manifest is clean
    """
    problems: List[str] = []

    require_paths = Counter(r.path for r in manifest.requires)
    for path, count in require_paths.items():
        if count > 1:
            versions = ', '.join(r.version for r in manifest.find_requires(path))
            problems.append(f"require: {path} listed {count} times ({versions})")

    if manifest.module in require_paths:
        problems.append(f"require: module requires itself ({manifest.module})")

    replace_olds = Counter(r.old.key for r in manifest.replaces)
    for old, count in replace_olds.items():
        if count > 1:
            targets = ', '.join(str(r.new) for r in manifest.replaces if r.old.key == old)
            problems.append(f"replace: {old} replaced {count} times ({targets})")

    exclude_mods = Counter(e.mod.key for e in manifest.excludes)
    for mod, count in exclude_mods.items():
        if count > 1:
            problems.append(f"exclude: {mod} listed {count} times")

    return problems


def check_manifest(manifest: Manifest) -> int:
    """Print check results for a manifest. Returns 0 when clean, 1 otherwise."""
    problems = find_problems(manifest)

    print("Manifest Check Results:")
    print(f"  File: {manifest.filename}")
    print(f"  Module: {manifest.module}")
    print(f"  Requires: {len(manifest.requires)} "
          f"({sum(1 for r in manifest.requires if r.indirect)} indirect)")
    print(f"  Replaces: {len(manifest.replaces)}")
    print(f"  Excludes: {len(manifest.excludes)}")
    print()

    if problems:
        print("Problems:")
        for problem in problems:
            print(f"  ✗ {problem}")
        print()
        print(f"Result: ✗ {len(problems)} problem(s)")
        logger.info(f"{manifest.filename}: {len(problems)} problem(s)")
        return 1

    print("Result: ✓ No duplicate or self-referencing entries")
    return 0
