"""Error types raised while loading and merging manifests."""


class ModTransplantError(Exception):
    """Base class for every fatal modtransplant error."""


class UsageError(ModTransplantError):
    """Raised when required command line inputs are missing."""


class ManifestIOError(ModTransplantError):
    """Raised when a manifest file or URL cannot be read."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"cannot read {location}: {reason}")


class ManifestParseError(ModTransplantError, ValueError):
    """Raised when manifest syntax is malformed."""

    def __init__(self, message: str, filename: str = "", line: int = 0):
        self.filename = filename
        self.line = line
        if filename and line:
            message = f"{filename}:{line}: {message}"
        elif filename:
            message = f"{filename}: {message}"
        super().__init__(message)


class VersionParseError(ManifestParseError):
    """Raised when a version string is not a semantic version."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"invalid semantic version: '{version}'")


class IrreconcilableVersionError(ModTransplantError):
    """
    Raised when two versions of the same module cannot be ordered.

    This happens when one side is a tagged release and the other carries a
    pre-release or pseudo-version tag.
    """

    def __init__(self, dest, src, kinds=None):
        self.dest = dest
        self.src = src
        self.kinds = kinds
        detail = f" ({kinds[0]} vs {kinds[1]})" if kinds else ""
        super().__init__(
            f"cannot reconcile difference between versions: dest={dest} src={src}{detail} "
            f"(resolve manually or rerun with --force-overwrite)"
        )


class ConflictingReplacementError(ModTransplantError):
    """Raised when both manifests redirect the same module to different targets."""

    def __init__(self, dest, src):
        self.dest = dest
        self.src = src
        super().__init__(
            f"(replace) source and destination old path/version match, "
            f"but new path/version do not: dest={dest} src={src}"
        )
