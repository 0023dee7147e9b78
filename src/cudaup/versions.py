"""Dotted numeric version strings: comparison, sorting, normalization."""

import collections.abc
import functools

import beartype


@beartype.beartype
def split_version(version: str) -> tuple[int, ...]:
    """Split "12.4.1" into (12, 4, 1)."""
    return tuple(int(part) for part in version.split("."))


@beartype.beartype
def get_major(version: str) -> int:
    return int(version.split(".")[0])


@beartype.beartype
def get_major_minor(version: str) -> str:
    """Return "12.4" for "12.4.1"."""
    return ".".join(version.split(".")[:2])


@beartype.beartype
def compare_versions(a: str, b: str) -> int:
    """Compare component-wise; a missing component counts as 0.

    Returns a negative number if a < b, 0 if equal, positive if a > b.
    "10.2" and "10.2.0" compare equal.
    """
    a_parts = split_version(a)
    b_parts = split_version(b)
    for i in range(max(len(a_parts), len(b_parts))):
        a_val = a_parts[i] if i < len(a_parts) else 0
        b_val = b_parts[i] if i < len(b_parts) else 0
        if a_val != b_val:
            return a_val - b_val
    return 0


@beartype.beartype
def sort_versions(versions: collections.abc.Iterable[str]) -> list[str]:
    """Sort ascending with compare_versions. Stable for equal versions."""
    return sorted(versions, key=functools.cmp_to_key(compare_versions))


@beartype.beartype
def normalize_version(version: str) -> str:
    """Truncate CUDA 10 and earlier to major.minor.

    NVIDIA only publishes major.minor for those releases (e.g. "10.2"),
    while 11 and later always carry a patch (e.g. "11.0.3").
    """
    if get_major(version) <= 10:
        return get_major_minor(version)
    return version
