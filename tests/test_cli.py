"""Tests for CLI module."""

import pathlib
import sys

import pytest

import cudaup.catalog
import cudaup.cli
import cudaup.errors
import cudaup.install
import cudaup.locate
import cudaup.platform

CATALOG = ("10.0", "10.1", "10.2", "11.0", "11.0.1", "11.2", "12.4.1")
BASE = "https://developer.download.nvidia.com/compute/cuda"


@pytest.fixture(autouse=True)
def fake_catalog(monkeypatch) -> None:
    monkeypatch.setattr(
        cudaup.catalog, "fetch_available_versions", lambda: CATALOG
    )


def test_run_resolve_prints_version(capsys) -> None:
    """run_resolve prints the resolved version only."""
    cudaup.cli.run_resolve(cudaup.cli.Resolve(version="11.0"))
    assert capsys.readouterr().out == "11.0.1\n"


def test_run_resolve_unknown_version() -> None:
    """run_resolve raises VersionNotFoundError for unknown specifiers."""
    with pytest.raises(cudaup.errors.VersionNotFoundError, match=r"\(13\)"):
        cudaup.cli.run_resolve(cudaup.cli.Resolve(version="13"))


def test_run_versions_prints_catalog(capsys) -> None:
    """run_versions prints one version per line, oldest first."""
    cudaup.cli.run_versions(cudaup.cli.Versions())
    assert capsys.readouterr().out.splitlines() == list(CATALOG)


def test_run_locate_local(monkeypatch, capsys) -> None:
    """run_locate prints the local installer for the target platform."""
    calls = []

    def fake_get_local_installer_url(version, os_name, arch, client):
        calls.append((version, os_name, arch))
        return f"{BASE}/12.4.1/local_installers/cuda_12.4.1_551.78_windows.exe"

    monkeypatch.setattr(
        cudaup.locate, "get_local_installer_url", fake_get_local_installer_url
    )

    cmd = cudaup.cli.Locate(version="12", target_os="windows", target_arch="x86_64")
    reference = cudaup.cli.run_locate(cmd)

    assert isinstance(reference, cudaup.locate.LocalInstaller)
    assert calls == [
        ("12.4.1", cudaup.platform.OS.WINDOWS, cudaup.platform.Arch.X86_64)
    ]
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "version: 12.4.1",
        f"installer: {BASE}/12.4.1/local_installers/cuda_12.4.1_551.78_windows.exe",
    ]


def test_run_locate_network_linux_uses_distro_flags(monkeypatch, capsys) -> None:
    """Distribution flags replace /etc/os-release for network lookups."""
    seen = []
    package = cudaup.locate.RepositoryPackage(
        repository_url=f"{BASE}/repos/rhel9/sbsa/cuda-rhel9.repo",
        package_name="cuda-12.4.1-1",
    )

    def fake_find(version, arch, distro, client):
        seen.append((version, arch, distro))
        return package

    monkeypatch.setattr(cudaup.locate, "find_repo_and_package_linux", fake_find)

    cmd = cudaup.cli.Locate(
        version="latest",
        method="network",
        target_os="linux",
        target_arch="arm64-sbsa",
        distro_id="rocky",
        distro_version="9.4",
        distro_like="rhel centos fedora",
    )
    assert cudaup.cli.run_locate(cmd) == package

    (version, arch, distro), = seen
    assert version == "12.4.1"
    assert arch is cudaup.platform.Arch.ARM64_SBSA
    assert distro.id == "rocky"
    assert distro.id_like == "rhel centos fedora"
    out = capsys.readouterr().out
    assert "repository: " in out
    assert "package: cuda-12.4.1-1" in out


def test_run_locate_network_windows_missing(monkeypatch) -> None:
    """A Windows network lookup without an installer raises NoMatchingInstallerError."""
    monkeypatch.setattr(
        cudaup.locate, "find_network_installer_windows", lambda version, client: None
    )
    cmd = cudaup.cli.Locate(
        version="11.0", method="network", target_os="windows", target_arch="x86_64"
    )
    with pytest.raises(cudaup.errors.NoMatchingInstallerError):
        cudaup.cli.run_locate(cmd)


def test_run_locate_rejects_windows_arm() -> None:
    """Windows on arm64 is rejected before any lookup."""
    cmd = cudaup.cli.Locate(target_os="windows", target_arch="arm64-sbsa")
    with pytest.raises(cudaup.errors.UnsupportedCombinationError):
        cudaup.cli.run_locate(cmd)


@pytest.mark.parametrize("value", ["runfile", "", "AUTO"])
def test_parse_method_rejects_unknown(value: str) -> None:
    """Unknown methods raise ConfigError listing the valid ones."""
    with pytest.raises(cudaup.errors.ConfigError, match="Invalid method"):
        cudaup.cli._parse_method(value)


def _fake_linux_host(monkeypatch, tmp_path: pathlib.Path) -> list[tuple]:
    """Pretend to be an Ubuntu x86_64 host and record install calls."""
    calls = []

    def fake_install(version, method, os_name, arch, distro, client):
        calls.append((version, method))
        return cudaup.install.InstallResult(
            version=version, cuda_dpath=tmp_path / "cuda", method=cudaup.install.Method.LOCAL
        )

    monkeypatch.setattr(cudaup.platform, "get_os", lambda: cudaup.platform.OS.LINUX)
    monkeypatch.setattr(cudaup.platform, "get_arch", lambda: cudaup.platform.Arch.X86_64)
    monkeypatch.setattr(
        cudaup.platform,
        "get_linux_distribution",
        lambda: cudaup.platform.LinuxDistribution("ubuntu", "22.04", "Ubuntu", "debian"),
    )
    monkeypatch.setattr(cudaup.install, "install", fake_install)
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.setenv("GITHUB_PATH", str(tmp_path / "path"))
    monkeypatch.setenv("GITHUB_ENV", str(tmp_path / "env"))
    monkeypatch.setenv("GITHUB_OUTPUT", str(tmp_path / "output"))
    monkeypatch.delenv("INPUT_VERSION", raising=False)
    monkeypatch.delenv("INPUT_METHOD", raising=False)
    return calls


def test_run_install_exports_environment(tmp_path: pathlib.Path, monkeypatch, capsys) -> None:
    """run_install resolves, installs, and writes GitHub Actions files."""
    calls = _fake_linux_host(monkeypatch, tmp_path)

    result = cudaup.cli.run_install(cudaup.cli.Install(version="11", method="local"))

    assert calls == [("11.2", cudaup.install.Method.LOCAL)]
    assert result.version == "11.2"
    cuda_dpath = tmp_path / "cuda"
    assert (tmp_path / "path").read_text() == f"{cuda_dpath / 'bin'}\n"
    assert f"CUDA_HOME={cuda_dpath}\n" in (tmp_path / "env").read_text()
    assert (tmp_path / "output").read_text() == (
        f"version=11.2\ncuda-path={cuda_dpath}\n"
    )
    out = capsys.readouterr().out
    assert "Linux distribution: ubuntu 22.04 Ubuntu debian" in out
    assert "Target CUDA version: 11.2" in out


def test_run_install_reads_action_inputs(tmp_path: pathlib.Path, monkeypatch) -> None:
    """INPUT_VERSION and INPUT_METHOD are used when no flags are given."""
    calls = _fake_linux_host(monkeypatch, tmp_path)
    monkeypatch.setenv("INPUT_VERSION", "10.2")
    monkeypatch.setenv("INPUT_METHOD", "network")

    cudaup.cli.run_install(cudaup.cli.Install())

    assert calls == [("10.2", cudaup.install.Method.NETWORK)]


def test_run_install_defaults_to_latest_auto(tmp_path: pathlib.Path, monkeypatch) -> None:
    """Without flags or inputs, run_install installs latest with auto."""
    calls = _fake_linux_host(monkeypatch, tmp_path)

    cudaup.cli.run_install(cudaup.cli.Install())

    assert calls == [("12.4.1", cudaup.install.Method.AUTO)]


def test_run_install_invalid_method(tmp_path: pathlib.Path, monkeypatch) -> None:
    """An invalid INPUT_METHOD fails before anything is installed."""
    calls = _fake_linux_host(monkeypatch, tmp_path)
    monkeypatch.setenv("INPUT_METHOD", "runfile")

    with pytest.raises(cudaup.errors.ConfigError):
        cudaup.cli.run_install(cudaup.cli.Install())
    assert calls == []


def test_main_exits_on_error(monkeypatch, capsys) -> None:
    """main prints the error and hint to stderr and exits 1."""
    monkeypatch.setattr(sys, "argv", ["cudaup", "resolve", "13"])

    with pytest.raises(SystemExit) as err:
        cudaup.cli.main()

    assert err.value.code == 1
    stderr = capsys.readouterr().err
    assert "Error: CUDA version (13) is not found" in stderr
    assert "Hint: " in stderr


def test_main_resolve(monkeypatch, capsys) -> None:
    """main dispatches the resolve subcommand."""
    monkeypatch.setattr(sys, "argv", ["cudaup", "resolve", "12.4"])
    cudaup.cli.main()
    assert capsys.readouterr().out.strip() == "12.4.1"
