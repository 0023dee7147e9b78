"""Run CUDA installers and package managers.

Local installs download a standalone installer and run it silently.
Network installs register NVIDIA's package repository and install the
toolkit package (Linux), or run the network installer (Windows). Either
way the install root must exist afterwards.
"""

import dataclasses
import enum
import logging
import os
import pathlib
import subprocess
import tempfile

import beartype

import cudaup.errors
import cudaup.families
import cudaup.locate
import cudaup.nvidia
import cudaup.platform
import cudaup.versions

logger = logging.getLogger(__name__)

_WINDOWS_CUDA_DPATH = r"C:\Program Files\NVIDIA GPU Computing Toolkit\CUDA"
_RUNFILE_LOG_FPATH = pathlib.Path("/var/log/cuda-installer.log")
_APT_PIN_FPATH = "/etc/apt/preferences.d/cuda-repository-pin-600"
_LOG_TAIL_LINES = 40


class Method(enum.StrEnum):
    AUTO = "auto"
    NETWORK = "network"
    LOCAL = "local"


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class InstallResult:
    """Result of an installation."""

    version: str
    cuda_dpath: pathlib.Path
    method: Method
    """The method that succeeded; never AUTO."""


@beartype.beartype
def get_toolkit_dpath() -> pathlib.Path:
    """Install root for the Linux runfile installer."""
    env_dpath = os.environ.get("CUDAUP_TOOLKIT_DPATH")
    if env_dpath:
        return pathlib.Path(env_dpath)
    return pathlib.Path("/usr/local/cuda")


@beartype.beartype
def get_windows_cuda_dpath(version: str) -> pathlib.Path:
    """Default Windows install root, e.g. ...\\CUDA\\v12.4."""
    major_minor = cudaup.versions.get_major_minor(version)
    return pathlib.Path(f"{_WINDOWS_CUDA_DPATH}\\v{major_minor}")


@beartype.beartype
def get_package_cuda_dpath(version: str) -> pathlib.Path:
    """Where NVIDIA's Linux packages put the toolkit, e.g. /usr/local/cuda-12.4."""
    return pathlib.Path(f"/usr/local/cuda-{cudaup.versions.get_major_minor(version)}")


@beartype.beartype
def has_root_privileges() -> bool:
    """True when running as root. Windows installers elevate themselves."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return False
    return geteuid() == 0


@beartype.beartype
def run_command(
    args: list[str],
    *,
    sudo: bool = False,
    log_fpath: pathlib.Path | None = None,
) -> None:
    """Run a command, raising InstallationFailedError on a non-zero exit."""
    if sudo and not has_root_privileges():
        args = ["sudo", *args]

    print(f"$ {' '.join(args)}")
    try:
        result = subprocess.run(args, check=False)
    except OSError as err:
        raise cudaup.errors.InstallationFailedError(
            message=f"Failed to run {args[0]}: {err}",
        ) from None

    if result.returncode != 0:
        raise cudaup.errors.InstallationFailedError(
            message=f"Command failed with exit code {result.returncode}: {' '.join(args)}",
            log_tail=read_log_tail(log_fpath) if log_fpath else None,
        )


@beartype.beartype
def read_log_tail(log_fpath: pathlib.Path, lines: int = _LOG_TAIL_LINES) -> str | None:
    """Last lines of a log file, or None if it can't be read."""
    try:
        text = log_fpath.read_text(encoding="utf-8", errors="replace")
    except OSError as err:
        logger.debug("Could not read %s: %s", log_fpath, err)
        return None
    return "\n".join(text.splitlines()[-lines:])


@beartype.beartype
def get_installer_fpath(
    temp_dpath: pathlib.Path, url: str, os_name: cudaup.platform.OS
) -> pathlib.Path:
    """Download path for an installer URL, with the suffix the OS needs to run it.

    Some CUDA 10.0 URLs have no extension, and Windows only starts .exe files.
    """
    filename = url.rsplit("/", maxsplit=1)[-1]
    suffix = ".exe" if os_name is cudaup.platform.OS.WINDOWS else ".run"
    if not filename.endswith(suffix):
        filename += suffix
    return temp_dpath / filename


@beartype.beartype
def verify_install(cuda_dpath: pathlib.Path) -> None:
    if not cuda_dpath.exists():
        raise cudaup.errors.InstallationFailedError(
            message=f"CUDA installation failed. Path not found: {cuda_dpath}",
        )


@beartype.beartype
def install_local(
    version: str,
    os_name: cudaup.platform.OS,
    arch: cudaup.platform.Arch,
    client: cudaup.nvidia.NvidiaClient,
    temp_dpath: pathlib.Path,
) -> pathlib.Path:
    """Download and run the standalone installer. Returns the install root."""
    url = cudaup.locate.get_local_installer_url(version, os_name, arch, client)
    installer_fpath = get_installer_fpath(temp_dpath, url, os_name)
    print(f"Downloading {url}")
    client.download(url, installer_fpath)

    if os_name is cudaup.platform.OS.LINUX:
        return _run_linux_runfile(installer_fpath)
    return _run_windows_installer(installer_fpath, version)


@beartype.beartype
def install_network(
    version: str,
    os_name: cudaup.platform.OS,
    arch: cudaup.platform.Arch,
    distro: cudaup.platform.LinuxDistribution | None,
    client: cudaup.nvidia.NvidiaClient,
    temp_dpath: pathlib.Path,
) -> pathlib.Path:
    """Install from NVIDIA's package repository (Linux) or network installer (Windows)."""
    if os_name is cudaup.platform.OS.WINDOWS:
        url = cudaup.locate.find_network_installer_windows(version, client)
        if url is None:
            raise cudaup.errors.NoMatchingInstallerError(
                message=f"No Windows network installer published for CUDA {version}",
                hint="Use --method local instead.",
            )
        installer_fpath = get_installer_fpath(temp_dpath, url, os_name)
        print(f"Downloading {url}")
        client.download(url, installer_fpath)
        return _run_windows_installer(installer_fpath, version)

    if distro is None:
        raise cudaup.errors.UnresolvedDistributionError(
            message="Network installation on Linux needs the distribution",
        )

    family = cudaup.families.get_family(distro)
    package = cudaup.locate.find_repo_and_package_linux(version, arch, distro, client)
    print(f"Repository: {package.repository_url}")
    print(f"Package: {package.package_name}")

    if family is cudaup.families.DEBIAN:
        _install_apt_package(package, client, temp_dpath)
    else:
        _install_rpm_package(package, family)

    cuda_dpath = get_package_cuda_dpath(version)
    verify_install(cuda_dpath)
    return cuda_dpath


@beartype.beartype
def install(
    version: str,
    method: Method,
    os_name: cudaup.platform.OS,
    arch: cudaup.platform.Arch,
    distro: cudaup.platform.LinuxDistribution | None,
    client: cudaup.nvidia.NvidiaClient,
    temp_dpath: pathlib.Path | None = None,
) -> InstallResult:
    """Install a resolved version with the given method.

    AUTO tries NETWORK once and falls back to LOCAL on any cudaup error.
    """
    if temp_dpath is None:
        with tempfile.TemporaryDirectory(prefix="cudaup-") as temp_dpath_str:
            return install(
                version,
                method,
                os_name,
                arch,
                distro,
                client,
                temp_dpath=pathlib.Path(temp_dpath_str),
            )

    if method is Method.LOCAL:
        cuda_dpath = install_local(version, os_name, arch, client, temp_dpath)
        return InstallResult(version=version, cuda_dpath=cuda_dpath, method=Method.LOCAL)

    if method is Method.NETWORK:
        cuda_dpath = install_network(version, os_name, arch, distro, client, temp_dpath)
        return InstallResult(version=version, cuda_dpath=cuda_dpath, method=Method.NETWORK)

    try:
        cuda_dpath = install_network(version, os_name, arch, distro, client, temp_dpath)
    except cudaup.errors.CudaupError as err:
        print(f"CUDA network installation failed for version {version}: {err.message}")
        print("Falling back to local installation")
    else:
        return InstallResult(version=version, cuda_dpath=cuda_dpath, method=Method.NETWORK)

    cuda_dpath = install_local(version, os_name, arch, client, temp_dpath)
    return InstallResult(version=version, cuda_dpath=cuda_dpath, method=Method.LOCAL)


@beartype.beartype
def _run_linux_runfile(installer_fpath: pathlib.Path) -> pathlib.Path:
    """Toolkit only, no driver."""
    cuda_dpath = get_toolkit_dpath()
    installer_fpath.chmod(0o755)
    run_command(
        [
            "sh",
            str(installer_fpath.resolve()),
            "--silent",
            "--toolkit",
            f"--toolkitpath={cuda_dpath}",
        ],
        sudo=True,
        log_fpath=_RUNFILE_LOG_FPATH,
    )
    verify_install(cuda_dpath)
    return cuda_dpath


@beartype.beartype
def _run_windows_installer(installer_fpath: pathlib.Path, version: str) -> pathlib.Path:
    run_command([str(installer_fpath), "-s"])
    cuda_dpath = get_windows_cuda_dpath(version)
    verify_install(cuda_dpath)
    return cuda_dpath


@beartype.beartype
def _install_apt_package(
    package: cudaup.locate.RepositoryPackage,
    client: cudaup.nvidia.NvidiaClient,
    temp_dpath: pathlib.Path,
) -> None:
    registration_fpath = temp_dpath / package.registration_filename
    client.download(package.repository_url, registration_fpath)

    if registration_fpath.suffix == ".deb":
        run_command(["dpkg", "-i", str(registration_fpath)], sudo=True)
    else:
        # Older repositories ship only an apt pin.
        run_command(["cp", str(registration_fpath), _APT_PIN_FPATH], sudo=True)
        run_command(
            ["add-apt-repository", "-y", f"deb {package.repository_base_url} /"],
            sudo=True,
        )

    run_command(["apt-get", "update"], sudo=True)
    run_command(["apt-get", "install", "-y", package.package_name], sudo=True)


@beartype.beartype
def _install_rpm_package(
    package: cudaup.locate.RepositoryPackage,
    family: cudaup.families.Family,
) -> None:
    package_manager = family.get_package_manager()
    if package_manager == "dnf":
        add_repo = ["dnf", "config-manager", "--add-repo", package.repository_url]
    else:
        add_repo = ["yum-config-manager", "--add-repo", package.repository_url]

    run_command(add_repo, sudo=True)
    run_command([package_manager, "clean", "all"], sudo=True)
    run_command([package_manager, "install", "-y", package.package_name], sudo=True)
