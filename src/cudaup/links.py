"""Static installer URLs for releases that cannot be discovered by scraping.

CUDA 10.x and earlier predate the md5sum.txt/local_installers layout that
later releases share, so their installers and checksum manifests are
listed explicitly. Entries here take precedence over scraping for every
version.
"""

import dataclasses
import types

import beartype

_BASE = "https://developer.download.nvidia.com/compute/cuda"

START_SUPPORTED_CUDA_VERSION = "10.0"
"""Oldest version cudaup will resolve or install."""

OLD_CUDA_VERSIONS: tuple[str, ...] = ("10.0", "10.1", "10.2")
"""Releases that are always part of the catalog, even when every upstream index fails."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class CudaLinks:
    """Explicit URLs for one release. None means "not published" or "discover it"."""

    linux_x86_url: str | None = None
    linux_arm64_url: str | None = None
    windows_local_installer_url: str | None = None
    windows_network_installer_url: str | None = None
    md5sum_url: str | None = None


CUDA_LINKS: types.MappingProxyType[str, CudaLinks] = types.MappingProxyType({
    "10.0": CudaLinks(
        linux_x86_url=f"{_BASE}/10.0/Prod/local_installers/cuda_10.0.130_410.48_linux",
        windows_local_installer_url=(
            f"{_BASE}/10.0/Prod/local_installers/cuda_10.0.130_411.31_win10"
        ),
        windows_network_installer_url=(
            f"{_BASE}/10.0/Prod/network_installers/cuda_10.0.130_win10_network"
        ),
        md5sum_url=f"{_BASE}/10.0/Prod/docs/sidebar/md5sum.txt",
    ),
    "10.1": CudaLinks(
        linux_x86_url=(
            f"{_BASE}/10.1/Prod/local_installers/cuda_10.1.243_418.87.00_linux.run"
        ),
        windows_local_installer_url=(
            f"{_BASE}/10.1/Prod/local_installers/cuda_10.1.243_426.00_win10.exe"
        ),
        windows_network_installer_url=(
            f"{_BASE}/10.1/Prod/network_installers/cuda_10.1.243_win10_network.exe"
        ),
        md5sum_url=f"{_BASE}/10.1/Prod/docs/sidebar/md5sum.txt",
    ),
    "10.2": CudaLinks(
        linux_x86_url=(
            f"{_BASE}/10.2/Prod/local_installers/cuda_10.2.89_440.33.01_linux.run"
        ),
        windows_local_installer_url=(
            f"{_BASE}/10.2/Prod/local_installers/cuda_10.2.89_441.22_win10.exe"
        ),
        windows_network_installer_url=(
            f"{_BASE}/10.2/Prod/network_installers/cuda_10.2.89_win10_network.exe"
        ),
        md5sum_url=f"{_BASE}/10.2/Prod/docs/sidebar/md5sum.txt",
    ),
})


@beartype.beartype
def get_links(version: str) -> CudaLinks | None:
    return CUDA_LINKS.get(version)
