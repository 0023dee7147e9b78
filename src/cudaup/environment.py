"""Export the toolkit to later steps: PATH, CUDA_PATH/CUDA_HOME, LD_LIBRARY_PATH.

Inside GitHub Actions the updates are appended to the files named by
GITHUB_PATH, GITHUB_ENV and GITHUB_OUTPUT. Elsewhere they are printed as
shell lines for `eval`.
"""

import dataclasses
import os
import pathlib

import beartype

import cudaup.platform


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class EnvUpdate:
    """Environment changes for one install root."""

    paths: tuple[str, ...]
    """Directories to prepend to PATH, in order."""

    variables: dict[str, str]
    """Variables to set."""


@beartype.beartype
def get_env_update(
    os_name: cudaup.platform.OS, cuda_dpath: pathlib.Path, ld_library_path: str | None = None
) -> EnvUpdate:
    """Compute the environment changes for an install root."""
    root = str(cuda_dpath)
    if os_name is cudaup.platform.OS.WINDOWS:
        win_root = pathlib.PureWindowsPath(root)
        return EnvUpdate(
            paths=(str(win_root / "bin"), str(win_root / "lib" / "x64")),
            variables={"CUDA_PATH": root, "CUDA_HOME": root},
        )

    posix_root = pathlib.PurePosixPath(root)
    if ld_library_path is None:
        ld_library_path = os.environ.get("LD_LIBRARY_PATH", "")
    return EnvUpdate(
        paths=(str(posix_root / "bin"),),
        variables={
            "CUDA_PATH": root,
            "CUDA_HOME": root,
            "LD_LIBRARY_PATH": f"{posix_root / 'lib64'}:{ld_library_path}",
        },
    )


@beartype.beartype
def apply_env_update(update: EnvUpdate) -> None:
    """Write to GitHub Actions files if present, else print export lines.

    PATH entries and variables are handled separately: whichever has no
    file to go to is printed.
    """
    path_fpath = os.environ.get("GITHUB_PATH")
    env_fpath = os.environ.get("GITHUB_ENV")

    if path_fpath:
        _append_lines(pathlib.Path(path_fpath), update.paths)
    else:
        for path in update.paths:
            print(f'export PATH="{path}:$PATH"')

    if env_fpath:
        _append_lines(
            pathlib.Path(env_fpath),
            [f"{key}={value}" for key, value in update.variables.items()],
        )
    else:
        for key, value in update.variables.items():
            print(f'export {key}="{value}"')


@beartype.beartype
def set_outputs(outputs: dict[str, str]) -> None:
    """Write step outputs to GITHUB_OUTPUT, if set."""
    output_fpath = os.environ.get("GITHUB_OUTPUT")
    if not output_fpath:
        return
    _append_lines(
        pathlib.Path(output_fpath), [f"{key}={value}" for key, value in outputs.items()]
    )


@beartype.beartype
def _append_lines(fpath: pathlib.Path, lines: tuple[str, ...] | list[str]) -> None:
    with fpath.open("a", encoding="utf-8") as fd:
        for line in lines:
            fd.write(f"{line}\n")
