"""Debian-like vs Fedora-like distribution behavior.

Everything that differs between the two families (repository
registration files, package filenames, which candidate to pick, how to
turn a filename into an installable reference, which package manager to
drive) lives on one Family object, chosen once per distribution.
"""

import collections.abc
import dataclasses
import re
import shutil

import beartype

import cudaup.errors
import cudaup.platform


@beartype.beartype
@dataclasses.dataclass(frozen=True)
class Family:
    """Package conventions shared by a group of distributions."""

    name: str
    """"debian" or "fedora"."""

    registration_patterns: tuple[re.Pattern[str], ...]
    """Repository registration files, in order of preference."""

    package_prefixes: tuple[str, ...]
    """Toolkit package filename prefixes; "{version}" is substituted."""

    package_pattern: re.Pattern[str]
    """Matches a package filename; groups are joined by package_format."""

    package_format: str
    """Format for the installable reference, e.g. "{0}={1}"."""

    select_last: bool
    """Pick the last sorted candidate instead of the first."""

    package_managers: tuple[str, ...]
    """Package manager commands to look for, in order of preference."""

    def classify(self, distro: cudaup.platform.LinuxDistribution) -> bool:
        """True if the distribution belongs to this family."""
        return distro.id == self.name or self.name in distro.id_like.split()

    def find_registration_file(self, filenames: collections.abc.Iterable[str]) -> str | None:
        """Newest (last sorted) file for the first pattern with any match."""
        filenames = list(filenames)
        for pattern in self.registration_patterns:
            matches = sorted(name for name in filenames if pattern.fullmatch(name))
            if matches:
                return matches[-1]
        return None

    def find_packages(
        self, filenames: collections.abc.Iterable[str], version: str
    ) -> list[str]:
        """Sorted toolkit package files for a version."""
        prefixes = tuple(prefix.format(version=version) for prefix in self.package_prefixes)
        return sorted(name for name in filenames if name.startswith(prefixes))

    def select_package(self, candidates: collections.abc.Sequence[str]) -> str:
        # TODO: check against current repo listings whether first/last is
        # still the preferred variant for both families.
        return candidates[-1] if self.select_last else candidates[0]

    def extract_package_name(self, filename: str) -> str:
        """Installable reference for a package file, or the filename unchanged."""
        match = self.package_pattern.fullmatch(filename)
        if match is None:
            return filename
        return self.package_format.format(*match.groups())

    def get_package_manager(self) -> str:
        """First available package manager command."""
        for command in self.package_managers:
            if shutil.which(command):
                return command
        raise cudaup.errors.InstallationFailedError(
            message=f"Package manager not found (tried {', '.join(self.package_managers)})",
        )


DEBIAN = Family(
    name="debian",
    registration_patterns=(
        # cuda-keyring_<version>-<build>_all.deb
        re.compile(r"cuda-keyring_[\w.-]+\.deb", re.IGNORECASE),
        # Older repositories: cuda-<os>.pin
        re.compile(r"cuda-[\w.-]+\.pin", re.IGNORECASE),
    ),
    package_prefixes=("cuda-toolkit_{version}", "cuda_{version}"),
    # <package>_<version>_<arch>.deb -> apt-get install <package>=<version>
    package_pattern=re.compile(r"([^_]+)_([^_]+)_.*\.deb"),
    package_format="{0}={1}",
    select_last=False,
    package_managers=("apt-get",),
)

FEDORA = Family(
    name="fedora",
    registration_patterns=(re.compile(r"cuda-[\w.-]+\.repo", re.IGNORECASE),),
    package_prefixes=("cuda-toolkit-{version}", "cuda-{version}"),
    # <package>-<version>-<release>.<arch>.rpm -> dnf install <package>-<version>-<release>
    package_pattern=re.compile(r"(.+)-(\d+\.\d+\.\d+)-(\d+)\..+\.rpm"),
    package_format="{0}-{1}-{2}",
    select_last=True,
    package_managers=("dnf", "yum"),
)

FAMILIES = (DEBIAN, FEDORA)


@beartype.beartype
def get_family(distro: cudaup.platform.LinuxDistribution) -> Family:
    """Classify a distribution once; everything downstream uses the result."""
    for family in FAMILIES:
        if family.classify(distro):
            return family
    raise cudaup.errors.UnsupportedDistributionError(
        message=f"Unsupported distribution: {distro.id} {distro.version}",
        hint="Only Debian-like and Fedora-like distributions have CUDA repositories.",
    )
