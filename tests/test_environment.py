"""Tests for environment export."""

import pathlib

import cudaup.environment
import cudaup.platform


def test_get_env_update_linux() -> None:
    """Linux adds bin/ to PATH and prepends lib64/ to LD_LIBRARY_PATH."""
    update = cudaup.environment.get_env_update(
        cudaup.platform.OS.LINUX, pathlib.Path("/usr/local/cuda"), "/opt/lib"
    )
    assert update.paths == ("/usr/local/cuda/bin",)
    assert update.variables == {
        "CUDA_PATH": "/usr/local/cuda",
        "CUDA_HOME": "/usr/local/cuda",
        "LD_LIBRARY_PATH": "/usr/local/cuda/lib64:/opt/lib",
    }


def test_get_env_update_linux_reads_environment(monkeypatch) -> None:
    """LD_LIBRARY_PATH defaults to the current environment."""
    monkeypatch.delenv("LD_LIBRARY_PATH", raising=False)
    update = cudaup.environment.get_env_update(
        cudaup.platform.OS.LINUX, pathlib.Path("/usr/local/cuda-12.4")
    )
    assert update.variables["LD_LIBRARY_PATH"] == "/usr/local/cuda-12.4/lib64:"


def test_get_env_update_windows() -> None:
    """Windows adds bin and lib\\x64 and sets no LD_LIBRARY_PATH."""
    root = r"C:\Program Files\NVIDIA GPU Computing Toolkit\CUDA\v12.4"
    update = cudaup.environment.get_env_update(
        cudaup.platform.OS.WINDOWS, pathlib.Path(root)
    )
    assert update.paths == (root + r"\bin", root + r"\lib\x64")
    assert update.variables == {"CUDA_PATH": root, "CUDA_HOME": root}


def test_apply_env_update_github_actions(tmp_path: pathlib.Path, monkeypatch, capsys) -> None:
    """Inside GitHub Actions the updates are appended to GITHUB_PATH/GITHUB_ENV."""
    path_fpath = tmp_path / "path"
    env_fpath = tmp_path / "env"
    path_fpath.write_text("/existing\n")
    monkeypatch.setenv("GITHUB_PATH", str(path_fpath))
    monkeypatch.setenv("GITHUB_ENV", str(env_fpath))

    update = cudaup.environment.EnvUpdate(
        paths=("/usr/local/cuda/bin",), variables={"CUDA_PATH": "/usr/local/cuda"}
    )
    cudaup.environment.apply_env_update(update)

    assert path_fpath.read_text() == "/existing\n/usr/local/cuda/bin\n"
    assert env_fpath.read_text() == "CUDA_PATH=/usr/local/cuda\n"
    assert capsys.readouterr().out == ""


def test_apply_env_update_prints_exports(monkeypatch, capsys) -> None:
    """Outside GitHub Actions the updates are printed as export lines."""
    monkeypatch.delenv("GITHUB_PATH", raising=False)
    monkeypatch.delenv("GITHUB_ENV", raising=False)

    update = cudaup.environment.EnvUpdate(
        paths=("/usr/local/cuda/bin",), variables={"CUDA_HOME": "/usr/local/cuda"}
    )
    cudaup.environment.apply_env_update(update)

    out = capsys.readouterr().out.splitlines()
    assert out == [
        'export PATH="/usr/local/cuda/bin:$PATH"',
        'export CUDA_HOME="/usr/local/cuda"',
    ]


def test_set_outputs(tmp_path: pathlib.Path, monkeypatch) -> None:
    """set_outputs appends key=value lines to GITHUB_OUTPUT."""
    output_fpath = tmp_path / "output"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_fpath))
    cudaup.environment.set_outputs({"version": "12.4.1", "cuda-path": "/usr/local/cuda"})
    assert output_fpath.read_text() == "version=12.4.1\ncuda-path=/usr/local/cuda\n"


def test_set_outputs_without_github(monkeypatch) -> None:
    """set_outputs is a no-op outside GitHub Actions."""
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    cudaup.environment.set_outputs({"version": "12.4.1"})


def test_apply_env_update_partial_github_files(
    tmp_path: pathlib.Path, monkeypatch, capsys
) -> None:
    """With only GITHUB_PATH set, variables are printed and PATH is not."""
    path_fpath = tmp_path / "path"
    monkeypatch.setenv("GITHUB_PATH", str(path_fpath))
    monkeypatch.delenv("GITHUB_ENV", raising=False)

    update = cudaup.environment.EnvUpdate(
        paths=("/usr/local/cuda/bin",), variables={"CUDA_PATH": "/usr/local/cuda"}
    )
    cudaup.environment.apply_env_update(update)

    assert path_fpath.read_text() == "/usr/local/cuda/bin\n"
    assert capsys.readouterr().out.splitlines() == ['export CUDA_PATH="/usr/local/cuda"']


def test_apply_env_update_only_github_env(
    tmp_path: pathlib.Path, monkeypatch, capsys
) -> None:
    """With only GITHUB_ENV set, PATH is printed and variables are not."""
    env_fpath = tmp_path / "env"
    monkeypatch.delenv("GITHUB_PATH", raising=False)
    monkeypatch.setenv("GITHUB_ENV", str(env_fpath))

    update = cudaup.environment.EnvUpdate(
        paths=("/usr/local/cuda/bin",), variables={"CUDA_PATH": "/usr/local/cuda"}
    )
    cudaup.environment.apply_env_update(update)

    assert env_fpath.read_text() == "CUDA_PATH=/usr/local/cuda\n"
    assert capsys.readouterr().out.splitlines() == [
        'export PATH="/usr/local/cuda/bin:$PATH"'
    ]
