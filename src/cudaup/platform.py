"""OS/arch detection, Linux distribution and Windows release identification."""

import dataclasses
import enum
import pathlib
import platform

import beartype

import cudaup.errors

_OS_RELEASE_FPATH = pathlib.Path("/etc/os-release")

# Evaluated high to low; first threshold the build reaches wins.
_WINDOWS_BUILDS: tuple[tuple[int, str], ...] = (
    (22000, "Windows 11"),
    (20348, "Windows Server 2022"),
    (19041, "Windows 10"),
    (17763, "Windows Server 2019"),
    (10240, "Windows 10"),
)


class OS(enum.StrEnum):
    LINUX = "linux"
    WINDOWS = "windows"


class Arch(enum.StrEnum):
    X86_64 = "x86_64"
    ARM64_SBSA = "arm64-sbsa"


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class LinuxDistribution:
    """Linux distribution information from os-release."""

    id: str
    """Distribution id, e.g. "ubuntu" or "rhel"."""

    version: str
    """VERSION_ID, e.g. "22.04", or "unknown"."""

    name: str
    """Human-readable NAME, or the id."""

    id_like: str
    """Space-separated ID_LIKE hint, e.g. "debian" or "rhel centos fedora"."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class WindowsVersion:
    """Windows release information."""

    name: str
    release: str
    build: int


@beartype.beartype
def get_os() -> OS:
    """Get normalized OS name."""
    system = platform.system().lower()
    if system == "linux":
        return OS.LINUX
    if system == "windows":
        return OS.WINDOWS
    raise cudaup.errors.UnsupportedPlatformError(
        message=f"Unsupported platform: {system}",
        hint="The CUDA Toolkit can only be installed on Linux and Windows.",
    )


@beartype.beartype
def get_arch() -> Arch:
    """Get normalized architecture name."""
    machine = platform.machine().lower()
    if machine in {"x86_64", "amd64", "x64"}:
        return Arch.X86_64
    if machine in {"arm64", "aarch64"}:
        return Arch.ARM64_SBSA
    raise cudaup.errors.UnsupportedArchitectureError(
        message=f"Unsupported architecture: {machine}",
        hint="The CUDA Toolkit is published for x86_64 and arm64 (sbsa) only.",
    )


@beartype.beartype
def check_supported(os_name: OS, arch: Arch) -> None:
    """Reject platform combinations NVIDIA does not publish."""
    if os_name is OS.WINDOWS and arch is Arch.ARM64_SBSA:
        raise cudaup.errors.UnsupportedCombinationError(
            message="CUDA is not supported on Windows with Arm architecture",
        )


@beartype.beartype
def get_linux_distribution(
    os_release_fpath: pathlib.Path = _OS_RELEASE_FPATH,
) -> LinuxDistribution:
    """Parse os-release into a LinuxDistribution."""
    if not os_release_fpath.exists():
        raise cudaup.errors.MissingReleaseFileError(
            message=f"Could not find {os_release_fpath}",
            hint="cudaup reads the distribution from os-release(5).",
            os_release_fpath=os_release_fpath,
        )

    fields = parse_os_release(os_release_fpath.read_text(encoding="utf-8"))
    distro_id = fields.get("ID", "")
    if not distro_id:
        raise cudaup.errors.UnresolvedDistributionError(
            message=f"Could not determine Linux distribution ID from {os_release_fpath}",
        )

    return LinuxDistribution(
        id=distro_id,
        version=fields.get("VERSION_ID") or "unknown",
        name=fields.get("NAME") or distro_id,
        id_like=fields.get("ID_LIKE", ""),
    )


@beartype.beartype
def parse_os_release(text: str) -> dict[str, str]:
    """Parse KEY=value lines. Quotes are dropped; later keys win."""
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", maxsplit=1)
        fields[key.strip()] = value.replace('"', "").replace("'", "")
    return fields


@beartype.beartype
def get_windows_version(release: str | None = None) -> WindowsVersion:
    """Get Windows release information from a "10.0.<build>" string."""
    if release is None:
        release = platform.version()

    parts = release.split(".")
    if len(parts) < 3 or not parts[2].isdigit():
        raise cudaup.errors.UnparseableReleaseError(
            message=f"Unable to parse Windows version: {release}",
        )

    build = int(parts[2])
    return WindowsVersion(name=get_windows_name(build), release=release, build=build)


@beartype.beartype
def get_windows_name(build: int) -> str:
    """Map a Windows build number to its release name."""
    for threshold, name in _WINDOWS_BUILDS:
        if build >= threshold:
            return name
    return "Windows (Unknown)"
