"""modtransplant - fold one go.mod into another with minimal deviation."""

__version__ = "1.0.0"

from .errors import (  # noqa: E402
    ConflictingReplacementError,
    IrreconcilableVersionError,
    ManifestIOError,
    ManifestParseError,
    ModTransplantError,
    UsageError,
    VersionParseError,
)
from .merger import ManifestMerger, MergeDecision, MergeOptions, MergeResult, merge_manifests  # noqa: E402
from .models import Manifest, ModuleCoordinate  # noqa: E402
from .parsers import ManifestParser, load_manifest  # noqa: E402
from .formatters import ManifestFormatter  # noqa: E402
