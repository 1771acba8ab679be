"""Base classes for repository builders and mergers.

Defines the package and snapshot data structures and the narrow interfaces
the orchestrator uses to turn directories of packages into catalogs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import List

from .catalog import Catalog

RPM_MAGIC = b"\xed\xab\xee\xdb"


class SignatureState(Enum):
    """Signature state of a package artifact."""

    UNSIGNED = auto()
    SIGNED = auto()


@dataclass
class PackageArtifact:
    """A single binary package file."""

    source_path: Path
    signature: SignatureState = SignatureState.UNSIGNED

    @property
    def filename(self) -> str:
        """Base filename; the identity key within a repository."""
        return self.source_path.name

    def looks_like_rpm(self) -> bool:
        """Check for RPM magic bytes, falling back to the extension."""
        try:
            with open(self.source_path, "rb") as f:
                if f.read(4) == RPM_MAGIC:
                    return True
        except OSError:
            pass
        return self.source_path.suffix.lower() == ".rpm"


@dataclass
class RepositorySnapshot:
    """A directory of packages plus their catalog."""

    root: Path

    @property
    def catalog(self) -> Catalog:
        """Catalog rooted in this snapshot."""
        return Catalog(self.root)

    def package_files(self) -> List[Path]:
        """Package files physically present at the top of the snapshot."""
        if not self.root.is_dir():
            return []
        return sorted(
            p for p in self.root.iterdir()
            if p.is_file() and p.suffix.lower() == ".rpm"
        )

    def files(self) -> List[Path]:
        """Every regular file in the snapshot, recursively."""
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.rglob("*") if p.is_file())


class RepositoryBuilder(ABC):
    """Builds a catalog for a directory of packages."""

    @abstractmethod
    def build(self, directory: Path) -> Catalog:
        """Generate the catalog of every package directly inside directory.

        Args:
            directory: Snapshot directory

        Returns:
            Catalog written to directory/repodata

        Raises:
            ExternalToolError: If the index tool fails
        """
        pass


class RepositoryMerger(ABC):
    """Merges two repository snapshots into a third."""

    @abstractmethod
    def merge(self, old_dir: Path, new_dir: Path, out_dir: Path) -> Catalog:
        """Write the union of old_dir and new_dir into out_dir.

        On a filename collision the package from new_dir wins.

        Args:
            old_dir: Previously published snapshot
            new_dir: Snapshot with newly supplied packages
            out_dir: Output snapshot directory

        Returns:
            Catalog written to out_dir/repodata

        Raises:
            ExternalToolError: If the merge tool fails
        """
        pass
