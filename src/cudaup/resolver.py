"""Resolve a version specifier ("latest", "12", "12.4", "12.4.1") to a catalog entry."""

import collections.abc
import logging

import beartype

import cudaup.catalog
import cudaup.errors

logger = logging.getLogger(__name__)

LATEST = "latest"


@beartype.beartype
def match_version(
    specifier: str, catalog: collections.abc.Sequence[str]
) -> str | None:
    """Match a specifier against an ascending catalog.

    - "latest" is the last entry.
    - Otherwise the highest entry starting with "<specifier>." wins, so
      "11.0" picks "11.0.1" over a bare "11.0" label.
    - Otherwise an exact entry is returned as-is.
    - Otherwise None: the version simply doesn't exist (yet).
    """
    if specifier == LATEST:
        if not catalog:
            raise cudaup.errors.NoVersionsAvailableError(
                message="No CUDA versions are available",
                hint="Every upstream version index failed. Check your network connection.",
            )
        return catalog[-1]

    prefix = specifier + "."
    matches = [version for version in catalog if version.startswith(prefix)]
    if matches:
        return matches[-1]

    if specifier in catalog:
        return specifier

    return None


@beartype.beartype
def find_cuda_version(specifier: str) -> str | None:
    """Fetch a fresh catalog and resolve the specifier against it."""
    catalog = cudaup.catalog.fetch_available_versions()
    logger.debug("Catalog: %s", ", ".join(catalog))
    return match_version(specifier, catalog)


@beartype.beartype
def require_version(
    specifier: str, catalog: collections.abc.Sequence[str]
) -> str:
    """match_version, raising VersionNotFoundError with nearby versions as a hint."""
    version = match_version(specifier, catalog)
    if version is not None:
        return version

    recent = ", ".join(catalog[-5:]) if catalog else "(none)"
    raise cudaup.errors.VersionNotFoundError(
        message=f"CUDA version ({specifier}) is not found",
        hint=f"Most recent versions: {recent}. Run 'cudaup versions' for all.",
        specifier=specifier,
    )
