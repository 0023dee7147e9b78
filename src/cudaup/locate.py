"""Locate the installer or repository package for a version/OS/arch.

Two strategies:

- Standalone installers (.run/.exe). Explicit URLs from cudaup.links
  win; CUDA 11 and later are otherwise found by scanning the release's
  md5sum.txt for the installer filename, since the bundled driver
  version in the name is not predictable.
- Native repositories (Linux). The repository for the distribution is
  found in NVIDIA's repos/ index, and its file listing is searched for
  the registration file (keyring, pin or .repo) and the toolkit package.
"""

import dataclasses
import logging
import re

import beartype

import cudaup.errors
import cudaup.families
import cudaup.links
import cudaup.nvidia
import cudaup.platform
import cudaup.versions

logger = logging.getLogger(__name__)

REPOS_INDEX_URL = f"{cudaup.nvidia.DOWNLOAD_BASE}/repos/"

_REPO_DIR_PATTERN = re.compile(r">([a-zA-Z0-9_\-]+)/")
_LINK_PATTERN = re.compile(r"""<a\s+href=['"]([^'"]+)['"]""", re.IGNORECASE)
_NETWORK_REWRITE_PATTERN = re.compile(r"local_installers/cuda_([^_]+)_[^_]+_(.+)\.exe")


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class LocalInstaller:
    """A standalone installer that performs an offline install."""

    download_url: str


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class NetworkInstaller:
    """A Windows network installer that downloads components while installing."""

    download_url: str


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class RepositoryPackage:
    """A package in one of NVIDIA's native package repositories."""

    repository_url: str
    """URL of the registration file (keyring .deb, .pin, or .repo)."""

    package_name: str
    """Installable reference, e.g. "cuda-toolkit=12.4.1-1"."""

    @property
    def repository_base_url(self) -> str:
        """Repository directory, with trailing slash."""
        return self.repository_url.rsplit("/", maxsplit=1)[0] + "/"

    @property
    def registration_filename(self) -> str:
        return self.repository_url.rsplit("/", maxsplit=1)[1]


InstallerReference = LocalInstaller | NetworkInstaller | RepositoryPackage


# Standalone installers.


@beartype.beartype
def get_md5sum_url(version: str) -> str:
    """URL of a release's md5sum.txt."""
    if cudaup.versions.get_major(version) >= 11:
        return cudaup.nvidia.get_download_url(version, "docs/sidebar", "md5sum.txt")

    links = cudaup.links.get_links(version)
    if links is None or links.md5sum_url is None:
        raise cudaup.errors.NoMatchingInstallerError(
            message=f"No checksum manifest is known for CUDA {version}",
        )
    return links.md5sum_url


@beartype.beartype
def parse_md5sum(text: str) -> dict[str, str]:
    """Map filename to md5 from "<md5> <filename>" lines. Order is kept."""
    md5sums = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        md5sum, filename = parts[0], parts[-1]
        md5sums[filename] = md5sum
    return md5sums


@beartype.beartype
def fetch_md5sum(version: str, client: cudaup.nvidia.NvidiaClient) -> dict[str, str]:
    """Fetch and parse a release's checksum manifest."""
    return parse_md5sum(client.get_text(get_md5sum_url(version)))


@beartype.beartype
def select_installer_filename(
    filenames: list[str],
    version: str,
    os_name: cudaup.platform.OS,
    arch: cudaup.platform.Arch,
) -> str | None:
    """Pick the local installer out of a release's files.

    Linux x86_64: cuda_<version>_<driver>_linux.run
    Linux arm64:  cuda_<version>_<driver>_linux_sbsa.run
    Windows:      *_windows.exe, or *_win10.exe for older releases
    """
    if os_name is cudaup.platform.OS.LINUX:
        suffix = "_linux.run" if arch is cudaup.platform.Arch.X86_64 else "_linux_sbsa.run"
        pattern = re.compile(
            rf"cuda_{re.escape(version)}_\d+\.\d+(\.\d+)?{re.escape(suffix)}"
        )
        for filename in filenames:
            if pattern.search(filename):
                return filename
        return None

    win10_filename = None
    for filename in filenames:
        if filename.endswith("_windows.exe"):
            return filename
        if filename.endswith("_win10.exe"):
            win10_filename = filename
    return win10_filename


@beartype.beartype
def get_local_installer_url(
    version: str,
    os_name: cudaup.platform.OS,
    arch: cudaup.platform.Arch,
    client: cudaup.nvidia.NvidiaClient,
) -> str:
    """URL of the standalone installer for a version/OS/arch."""
    if (
        cudaup.versions.compare_versions(
            version, cudaup.links.START_SUPPORTED_CUDA_VERSION
        )
        < 0
    ):
        raise cudaup.errors.UnsupportedVersionError(
            message=f"CUDA version {version} is not supported",
            hint=f"The oldest supported version is {cudaup.links.START_SUPPORTED_CUDA_VERSION}.",
        )

    major = cudaup.versions.get_major(version)
    linux = os_name is cudaup.platform.OS.LINUX
    if major <= 10 and linux and arch is cudaup.platform.Arch.ARM64_SBSA:
        raise cudaup.errors.UnsupportedCombinationError(
            message=(
                f"CUDA version {version} is not supported on Linux with Arm "
                "architecture for CUDA 10 and earlier"
            ),
            hint="Use CUDA 11 or later on arm64.",
        )

    url = _get_override_url(version, os_name, arch)
    if url is not None:
        logger.debug("Using known installer URL for CUDA %s: %s", version, url)
        return url

    if major <= 10:
        # Naming before CUDA 11 is too irregular to scrape.
        raise cudaup.errors.NoMatchingInstallerError(
            message=f"No known installer for CUDA {version} on {os_name} {arch}",
        )

    md5sums = fetch_md5sum(version, client)
    filename = select_installer_filename(list(md5sums), version, os_name, arch)
    if filename is None:
        raise cudaup.errors.NoMatchingInstallerError(
            message=(
                f"No matching CUDA installer found for version {version} "
                f"on {os_name} with architecture {arch}"
            ),
            hint=f"Checked {get_md5sum_url(version)}.",
        )
    return cudaup.nvidia.get_download_url(version, "local_installers", filename)


@beartype.beartype
def _get_override_url(
    version: str, os_name: cudaup.platform.OS, arch: cudaup.platform.Arch
) -> str | None:
    links = cudaup.links.get_links(version)
    if links is None:
        return None
    if os_name is cudaup.platform.OS.WINDOWS:
        return links.windows_local_installer_url
    if arch is cudaup.platform.Arch.X86_64:
        return links.linux_x86_url
    return links.linux_arm64_url


@beartype.beartype
def get_network_installer_url(local_url: str) -> str:
    """Rewrite a Windows local installer URL to its network installer URL.

    .../local_installers/cuda_<V>_<driver>_<os>.exe
    -> .../network_installers/cuda_<V>_<os>_network.exe
    """
    return _NETWORK_REWRITE_PATTERN.sub(
        r"network_installers/cuda_\1_\2_network.exe", local_url
    )


@beartype.beartype
def find_network_installer_windows(
    version: str, client: cudaup.nvidia.NvidiaClient
) -> str | None:
    """URL of the Windows network installer, or None if none is published."""
    links = cudaup.links.get_links(version)
    if links is not None and links.windows_network_installer_url:
        return links.windows_network_installer_url

    local_url = get_local_installer_url(
        version, cudaup.platform.OS.WINDOWS, cudaup.platform.Arch.X86_64, client
    )
    url = get_network_installer_url(local_url)
    logger.debug("CUDA Windows network installer URL: %s", url)

    if not client.exists(url):
        logger.info("CUDA Windows network installer not found for version %s", version)
        return None
    return url


# Native repositories.


@beartype.beartype
def parse_repo_os_listing(html: str) -> list[str]:
    """Sorted OS directory names (ubuntu2204, rhel9, ...) from the repos index."""
    names = {match.group(1) for match in _REPO_DIR_PATTERN.finditer(html)}
    names.discard("..")
    return sorted(names)


@beartype.beartype
def parse_repo_file_listing(html: str) -> list[str]:
    """File links from a repository listing, skipping ../ and subdirectories."""
    files = []
    seen = set()
    for match in _LINK_PATTERN.finditer(html):
        href = match.group(1)
        if href == "../" or href.endswith("/") or href in seen:
            continue
        seen.add(href)
        files.append(href)
    return files


@beartype.beartype
def build_target_os_name(distro: cudaup.platform.LinuxDistribution) -> str:
    """Repository directory name for a distribution.

    Ubuntu keeps major and minor (22.04 -> ubuntu2204); everything else
    uses the major version only (rhel 9.4 -> rhel9, debian 12 -> debian12).
    """
    distro_id = distro.id.lower()
    if distro_id == "ubuntu":
        version_part = distro.version.replace(".", "")
    else:
        version_part = distro.version.split(".")[0]
    return f"{distro_id}{version_part}"


@beartype.beartype
def build_repo_url(target_os_name: str, arch: cudaup.platform.Arch) -> str:
    subdir = "x86_64" if arch is cudaup.platform.Arch.X86_64 else "sbsa"
    return f"{REPOS_INDEX_URL}{target_os_name}/{subdir}/"


@beartype.beartype
def find_repo_and_package_linux(
    version: str,
    arch: cudaup.platform.Arch,
    distro: cudaup.platform.LinuxDistribution,
    client: cudaup.nvidia.NvidiaClient,
) -> RepositoryPackage:
    """Find the registration file and toolkit package for a distribution."""
    family = cudaup.families.get_family(distro)

    os_list = parse_repo_os_listing(client.get_text(REPOS_INDEX_URL))
    target_os_name = build_target_os_name(distro)
    if target_os_name not in os_list:
        raise cudaup.errors.RepositoryNotFoundError(
            message=f"CUDA repository for {target_os_name} not found",
            hint=f"Available repositories: {', '.join(os_list) or '(none)'}. "
            "Use --method local instead.",
        )

    repo_url = build_repo_url(target_os_name, arch)
    repo_files = parse_repo_file_listing(client.get_text(repo_url))
    logger.debug("%d files in %s", len(repo_files), repo_url)

    registration_filename = family.find_registration_file(repo_files)
    if registration_filename is None:
        raise cudaup.errors.RepositoryFileNotFoundError(
            message=f"CUDA repository file not found in {repo_url} ({distro.id} {arch})",
        )

    candidates = family.find_packages(repo_files, version)
    if not candidates:
        raise cudaup.errors.PackageNotFoundError(
            message=(
                f"No available packages found for CUDA {version} on "
                f"{distro.id} {distro.version} ({arch})"
            ),
            hint=f"Checked {repo_url}. Use --method local instead.",
        )

    package_name = family.extract_package_name(family.select_package(candidates))
    return RepositoryPackage(
        repository_url=f"{repo_url}{registration_filename}",
        package_name=package_name,
    )
