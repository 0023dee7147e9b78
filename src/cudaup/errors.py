"""User-facing errors with actionable context.

Errors are messages for humans. Each error should answer:
1. What went wrong?
2. What was the context (version, OS, arch, distribution)?
3. What can the user do about it?
"""

import dataclasses
import pathlib

import beartype


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class CudaupError(Exception):
    """Base error with structured context for user-facing messages."""

    message: str
    """What went wrong."""

    hint: str | None = None
    """What the user can do about it."""

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class ConfigError(CudaupError):
    """Command-line input or environment configuration is invalid."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class LockError(CudaupError):
    """Another cudaup process is installing."""

    lock_fpath: pathlib.Path = dataclasses.field(kw_only=True)
    """Path to the lock file."""

    @staticmethod
    def make(lock_fpath: pathlib.Path) -> "LockError":
        """Create a LockError with default message and hint."""
        return LockError(
            message=f"Another cudaup process is installing (lock: {lock_fpath})",
            hint=f"Wait for it to finish, or delete {lock_fpath} if stale.",
            lock_fpath=lock_fpath,
        )


# Host or requested target outside the supported matrix.


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnsupportedPlatformError(CudaupError):
    """Operating system is not Linux or Windows."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnsupportedArchitectureError(CudaupError):
    """CPU architecture is not x86_64 or arm64."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnsupportedCombinationError(CudaupError):
    """Version/OS/arch combination was never released."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnsupportedVersionError(CudaupError):
    """Version is older than the minimum supported version."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnsupportedDistributionError(CudaupError):
    """Linux distribution is neither Debian-like nor Fedora-like."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class MissingReleaseFileError(CudaupError):
    """The os-release file does not exist."""

    os_release_fpath: pathlib.Path = dataclasses.field(kw_only=True)


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnresolvedDistributionError(CudaupError):
    """The os-release file has no ID key."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UnparseableReleaseError(CudaupError):
    """Windows release string is not major.minor.build."""


# Upstream and resolution.


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class UpstreamFetchError(CudaupError):
    """An upstream page could not be fetched."""

    url: str = dataclasses.field(kw_only=True)
    """URL that was requested."""

    status: int | None = dataclasses.field(default=None, kw_only=True)
    """HTTP status, or None if the request never got a response."""

    @staticmethod
    def make(url: str, status: int | None, reason: str = "") -> "UpstreamFetchError":
        """Create an UpstreamFetchError from a failed response or transport error."""
        if status is None:
            message = f"Failed to fetch {url}: {reason}"
        else:
            message = f"Failed to fetch {url}: {status} {reason}".rstrip()
        return UpstreamFetchError(
            message=message,
            hint="Check your network connection, or try again later.",
            url=url,
            status=status,
        )


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class NoVersionsAvailableError(CudaupError):
    """The version catalog is empty."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class VersionNotFoundError(CudaupError):
    """The specifier matched no catalog entry."""

    specifier: str = dataclasses.field(kw_only=True)


# Locator failures. Messages always name what was tried.


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class NoMatchingInstallerError(CudaupError):
    """No standalone installer exists for the version/OS/arch triple."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class RepositoryNotFoundError(CudaupError):
    """NVIDIA publishes no package repository for this distribution."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class RepositoryFileNotFoundError(CudaupError):
    """The package repository has no keyring, pin or .repo file."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class PackageNotFoundError(CudaupError):
    """The package repository has no toolkit package for the version."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class InstallationFailedError(CudaupError):
    """An installer or package-manager command failed."""

    log_tail: str | None = dataclasses.field(default=None, kw_only=True)
    """Last lines of the installer log, if one could be read."""

    def __str__(self) -> str:
        text = super().__str__()
        if self.log_tail:
            text = f"{text}\nInstaller log (tail):\n{self.log_tail}"
        return text
