"""Exception classes for Buckle."""


class BuckleError(Exception):
    """Base exception for Buckle operations."""


class EnvironmentResolutionError(BuckleError):
    """Raised when required environment or home variables are missing."""


class UnsupportedPlatformError(BuckleError):
    """Raised when the running architecture/OS pair has no known target."""


class NetworkError(BuckleError):
    """Raised when network operations fail."""


class ParseError(BuckleError):
    """Raised when release metadata cannot be decoded."""


class ConfigError(ParseError):
    """Raised when a configuration document is malformed."""


class ArtifactNotFoundError(BuckleError):
    """Raised when no release asset matches the requested version and pattern."""


class BindingError(BuckleError):
    """Raised when a binary name cannot be mapped to an archive."""


class InstallError(BuckleError):
    """Raised when writing into the cache fails."""


class CorruptedCacheError(BuckleError):
    """Raised when an installed artifact is missing or not executable."""
