"""CLI definition using tyro."""

import dataclasses
import logging
import os
import sys
import typing as tp

import beartype
import tyro

import cudaup.catalog
import cudaup.environment
import cudaup.errors
import cudaup.install
import cudaup.locate
import cudaup.lock
import cudaup.nvidia
import cudaup.platform
import cudaup.resolver

MethodName = tp.Literal["auto", "network", "local"]


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Install:
    """Resolve a CUDA version, install it, and export its environment."""

    version: str | None = None
    """latest, <major>, <major>.<minor> or <major>.<minor>.<patch>. Defaults to $INPUT_VERSION, then latest."""

    method: MethodName | None = None
    """auto tries network, then local. Defaults to $INPUT_METHOD, then auto."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Resolve:
    """Print the version a specifier resolves to."""

    version: tp.Annotated[str, tyro.conf.Positional] = "latest"
    """Version specifier."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Versions:
    """Print every installable version, oldest first."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Locate:
    """Print the installer URL or repository package without installing."""

    version: str = "latest"
    """Version specifier."""

    method: tp.Literal["network", "local"] = "local"
    """Which installer to locate."""

    target_os: tp.Literal["linux", "windows"] | None = None
    """Target OS. Defaults to this host."""

    target_arch: tp.Literal["x86_64", "arm64-sbsa"] | None = None
    """Target architecture. Defaults to this host."""

    distro_id: str | None = None
    """Linux distribution id (e.g. ubuntu). Defaults to this host."""

    distro_version: str | None = None
    """Linux distribution VERSION_ID (e.g. 22.04)."""

    distro_like: str = ""
    """Linux distribution ID_LIKE (e.g. debian)."""

    verbose: bool = False
    """Show detailed output."""


@beartype.beartype
def run_install(cmd: Install) -> cudaup.install.InstallResult:
    """Run the install command."""
    specifier = cmd.version or os.environ.get("INPUT_VERSION") or "latest"
    method = _parse_method(cmd.method or os.environ.get("INPUT_METHOD") or "auto")
    print(f"Input version: {specifier}")
    print(f"Input method: {method}")

    os_name = cudaup.platform.get_os()
    arch = cudaup.platform.get_arch()
    print(f"OS: {os_name}")
    print(f"Architecture: {arch}")
    cudaup.platform.check_supported(os_name, arch)

    distro = None
    if os_name is cudaup.platform.OS.LINUX:
        distro = cudaup.platform.get_linux_distribution()
        print(
            f"Linux distribution: {distro.id} {distro.version} "
            f"{distro.name} {distro.id_like}".rstrip()
        )
    else:
        windows_version = cudaup.platform.get_windows_version()
        print(
            f"Windows version: {windows_version.name} "
            f"({windows_version.release}, build {windows_version.build})"
        )

    catalog = cudaup.catalog.fetch_available_versions()
    version = cudaup.resolver.require_version(specifier, catalog)
    print(f"Target CUDA version: {version}")

    with cudaup.nvidia.NvidiaClient() as client:
        with cudaup.lock.acquire_lock():
            result = cudaup.install.install(version, method, os_name, arch, distro, client)

    update = cudaup.environment.get_env_update(os_name, result.cuda_dpath)
    cudaup.environment.apply_env_update(update)
    cudaup.environment.set_outputs(
        {"version": result.version, "cuda-path": str(result.cuda_dpath)}
    )
    print(f"CUDA {result.version} installed at {result.cuda_dpath} ({result.method})")
    return result


@beartype.beartype
def run_resolve(cmd: Resolve) -> None:
    """Run the resolve command."""
    catalog = cudaup.catalog.fetch_available_versions()
    print(cudaup.resolver.require_version(cmd.version, catalog))


@beartype.beartype
def run_versions(cmd: Versions) -> None:
    """Run the versions command."""
    catalog = cudaup.catalog.fetch_available_versions()
    for version in catalog:
        print(version)


@beartype.beartype
def run_locate(cmd: Locate) -> cudaup.locate.InstallerReference:
    """Run the locate command."""
    os_name = (
        cudaup.platform.OS(cmd.target_os) if cmd.target_os else cudaup.platform.get_os()
    )
    arch = (
        cudaup.platform.Arch(cmd.target_arch)
        if cmd.target_arch
        else cudaup.platform.get_arch()
    )
    cudaup.platform.check_supported(os_name, arch)

    catalog = cudaup.catalog.fetch_available_versions()
    version = cudaup.resolver.require_version(cmd.version, catalog)
    print(f"version: {version}")

    with cudaup.nvidia.NvidiaClient() as client:
        reference = _locate(cmd, version, os_name, arch, client)

    match reference:
        case cudaup.locate.RepositoryPackage():
            print(f"repository: {reference.repository_url}")
            print(f"package: {reference.package_name}")
        case _:
            print(f"installer: {reference.download_url}")
    return reference


@beartype.beartype
def main() -> None:
    """Main entry point."""
    command = tyro.cli(Install | Resolve | Versions | Locate)  # type: ignore[arg-type]
    _setup_logging(command.verbose)

    try:
        match command:
            case Install() as cmd:
                run_install(cmd)
            case Resolve() as cmd:
                run_resolve(cmd)
            case Versions() as cmd:
                run_versions(cmd)
            case Locate() as cmd:
                run_locate(cmd)
    except cudaup.errors.CudaupError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)


@beartype.beartype
def _locate(
    cmd: Locate,
    version: str,
    os_name: cudaup.platform.OS,
    arch: cudaup.platform.Arch,
    client: cudaup.nvidia.NvidiaClient,
) -> cudaup.locate.InstallerReference:
    if cmd.method == "local":
        url = cudaup.locate.get_local_installer_url(version, os_name, arch, client)
        return cudaup.locate.LocalInstaller(download_url=url)

    if os_name is cudaup.platform.OS.WINDOWS:
        url = cudaup.locate.find_network_installer_windows(version, client)
        if url is None:
            raise cudaup.errors.NoMatchingInstallerError(
                message=f"No Windows network installer published for CUDA {version}",
            )
        return cudaup.locate.NetworkInstaller(download_url=url)

    if cmd.distro_id:
        distro = cudaup.platform.LinuxDistribution(
            id=cmd.distro_id,
            version=cmd.distro_version or "unknown",
            name=cmd.distro_id,
            id_like=cmd.distro_like,
        )
    else:
        distro = cudaup.platform.get_linux_distribution()
    return cudaup.locate.find_repo_and_package_linux(version, arch, distro, client)


@beartype.beartype
def _parse_method(value: str) -> cudaup.install.Method:
    try:
        return cudaup.install.Method(value)
    except ValueError:
        raise cudaup.errors.ConfigError(
            message=f"Invalid method: {value}",
            hint="Valid methods are: local, network, auto",
        ) from None


@beartype.beartype
def _setup_logging(verbose: bool) -> None:
    """Send cudaup's log records to stderr."""
    logger = logging.getLogger("cudaup")
    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
