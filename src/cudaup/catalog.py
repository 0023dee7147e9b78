"""Build the catalog of installable CUDA versions from NVIDIA's indexes.

Three independent sources are scraped concurrently:

A. The redistrib manifest directory (redistrib_<version>.json files).
B. The CUDA Toolkit Archive page ("CUDA Toolkit X.Y.Z" labels and
   cuda-X-Y-Z- link slugs).
C. The opensource directory (one <version>/ folder per release).

Any source may fail; it then contributes nothing and the others still
count. The union is merged with the static legacy list, deduplicated,
sorted and filtered to the minimum supported version.
"""

import collections.abc
import concurrent.futures
import logging
import re

import beartype

import cudaup.errors
import cudaup.links
import cudaup.nvidia
import cudaup.versions

logger = logging.getLogger(__name__)

REDIST_INDEX_URL = f"{cudaup.nvidia.DOWNLOAD_BASE}/redist/"
OPENSOURCE_INDEX_URL = f"{cudaup.nvidia.DOWNLOAD_BASE}/opensource/"

_REDISTRIB_PATTERN = re.compile(
    r"redistrib_([0-9]+\.[0-9]+(?:\.[0-9]+)?(?:\.[0-9]+)?)\.json"
)
_ARCHIVE_LABEL_PATTERN = re.compile(r"CUDA Toolkit\s+(\d+\.\d+(?:\.\d+)?)", re.IGNORECASE)
_ARCHIVE_SLUG_PATTERN = re.compile(r"cuda-(\d+)-(\d+)(?:-(\d+))?-")
_OPENSOURCE_DIR_PATTERN = re.compile(r">([0-9]+\.[0-9]+(?:\.[0-9]+)?)/")


@beartype.beartype
def parse_redistrib_versions(html: str) -> list[str]:
    """Versions from redistrib_<version>.json names in a directory index."""
    versions = {match.group(1) for match in _REDISTRIB_PATTERN.finditer(html)}
    return cudaup.versions.sort_versions(versions)


@beartype.beartype
def parse_archive_versions(html: str) -> list[str]:
    """Versions from the archive page's labels and link slugs, unioned."""
    versions = {match.group(1) for match in _ARCHIVE_LABEL_PATTERN.finditer(html)}
    for match in _ARCHIVE_SLUG_PATTERN.finditer(html):
        major, minor, patch = match.groups()
        versions.add(f"{major}.{minor}.{patch}" if patch else f"{major}.{minor}")
    return cudaup.versions.sort_versions(versions)


@beartype.beartype
def parse_opensource_versions(html: str) -> list[str]:
    """Versions from opensource directory names, normalized.

    The opensource tree uses full versions (10.1.243/) even for releases
    that are otherwise only known as major.minor, hence the normalization.
    """
    versions = {
        cudaup.versions.normalize_version(match.group(1))
        for match in _OPENSOURCE_DIR_PATTERN.finditer(html)
    }
    return cudaup.versions.sort_versions(versions)


@beartype.beartype
def fetch_redistrib_versions(client: cudaup.nvidia.NvidiaClient) -> list[str]:
    """Source A."""
    return parse_redistrib_versions(client.get_text(REDIST_INDEX_URL))


@beartype.beartype
def fetch_archive_versions(client: cudaup.nvidia.NvidiaClient) -> list[str]:
    """Source B."""
    return parse_archive_versions(client.get_text(cudaup.nvidia.ARCHIVE_PAGE_URL))


@beartype.beartype
def fetch_opensource_versions(client: cudaup.nvidia.NvidiaClient) -> list[str]:
    """Source C."""
    return parse_opensource_versions(client.get_text(OPENSOURCE_INDEX_URL))


_SOURCES = (
    ("redistrib", fetch_redistrib_versions),
    ("archive", fetch_archive_versions),
    ("opensource", fetch_opensource_versions),
)


@beartype.beartype
def fetch_available_versions(
    client_factory: collections.abc.Callable[
        [], cudaup.nvidia.NvidiaClient
    ] = cudaup.nvidia.NvidiaClient,
) -> tuple[str, ...]:
    """Fetch all sources concurrently and merge them into a catalog.

    Each source runs on its own worker with its own client (and so its own
    requests session), built by client_factory. A source that fails with
    any cudaup error is logged and contributes no versions. With every
    source down the result is the legacy list alone.
    """
    results: dict[str, list[str]] = {}
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(_SOURCES)) as executor:
        futures = {
            executor.submit(_fetch_source, fetch_fn, client_factory): name
            for name, fetch_fn in _SOURCES
        }
        for future in concurrent.futures.as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except cudaup.errors.CudaupError as err:
                logger.warning("Version source '%s' unavailable: %s", name, err.message)
                results[name] = []
            else:
                logger.debug("Version source '%s': %d versions", name, len(results[name]))

    merged = [version for name, _ in _SOURCES for version in results[name]]
    return build_catalog(merged)


@beartype.beartype
def _fetch_source(
    fetch_fn: collections.abc.Callable[[cudaup.nvidia.NvidiaClient], list[str]],
    client_factory: collections.abc.Callable[[], cudaup.nvidia.NvidiaClient],
) -> list[str]:
    with client_factory() as client:
        return fetch_fn(client)


@beartype.beartype
def build_catalog(versions: collections.abc.Iterable[str]) -> tuple[str, ...]:
    """Merge with the legacy list, dedupe, sort ascending, drop unsupported.

    Strings that compare equal ("12.0" and "12.0.0") collapse to one
    spelling so the result is strictly ascending: the most specific one,
    except for CUDA 10 and earlier, which keep major.minor.
    """
    unique = set(versions) | set(cudaup.links.OLD_CUDA_VERSIONS)

    catalog: list[str] = []
    for version in cudaup.versions.sort_versions(unique):
        if (
            cudaup.versions.compare_versions(
                version, cudaup.links.START_SUPPORTED_CUDA_VERSION
            )
            < 0
        ):
            continue
        if catalog and cudaup.versions.compare_versions(catalog[-1], version) == 0:
            catalog[-1] = _preferred_spelling(catalog[-1], version)
            continue
        catalog.append(version)

    return tuple(catalog)


@beartype.beartype
def _preferred_spelling(a: str, b: str) -> str:
    """Pick one of two equal versions."""
    if cudaup.versions.get_major(a) <= 10:
        return cudaup.versions.normalize_version(a)
    return max(a, b, key=len)
