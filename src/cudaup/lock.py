"""Install lock, so two cudaup runs never drive installers at once.

Installers and package managers hold their own locks (dpkg, rpm, the
runfile's /tmp marker), but they fail late and with unhelpful messages.
cudaup takes its own lock up front instead.
"""

import collections.abc
import contextlib
import os
import pathlib

import beartype
import filelock

import cudaup.errors


@beartype.beartype
def get_state_dpath() -> pathlib.Path:
    """Directory holding cudaup's lock: $XDG_STATE_HOME/cudaup, else ~/.local/state/cudaup."""
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        return pathlib.Path(xdg_state) / "cudaup"
    return pathlib.Path.home() / ".local" / "state" / "cudaup"


@beartype.beartype
def get_lock_fpath() -> pathlib.Path:
    return get_state_dpath() / "install.lock"


@contextlib.contextmanager
@beartype.beartype
def acquire_lock() -> collections.abc.Iterator[None]:
    """Hold the install lock for the duration of one install.

    Never waits: a second run fails with LockError naming the lock file.
    """
    lock_fpath = get_lock_fpath()
    lock_fpath.parent.mkdir(parents=True, exist_ok=True)

    install_lock = filelock.FileLock(lock_fpath)
    try:
        install_lock.acquire(timeout=0)
    except filelock.Timeout:
        raise cudaup.errors.LockError.make(lock_fpath) from None

    try:
        yield
    finally:
        install_lock.release()
