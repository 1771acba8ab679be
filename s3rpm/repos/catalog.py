"""Reading generated repository catalogs.

The catalog format itself is produced by createrepo_c and mergerepo_c;
this module only reads back what it needs: the manifest (repomd.xml), the
primary metadata it points to, and the package locations listed there.
"""

import bz2
import gzip
import lzma
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Optional, Set

from ..common.errors import LocalIOError

REPODATA_DIR = "repodata"
MANIFEST_NAME = "repomd.xml"
SIGNATURE_SUFFIX = ".asc"

REPO_NS = "http://linux.duke.edu/metadata/repo"
COMMON_NS = "http://linux.duke.edu/metadata/common"

_OPENERS = {
    ".gz": gzip.open,
    ".bz2": bz2.open,
    ".xz": lzma.open,
}


class Catalog:
    """Catalog rooted at ``<root>/repodata/repomd.xml``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"Catalog({str(self.root)!r})"

    @property
    def repodata_dir(self) -> Path:
        return self.root / REPODATA_DIR

    @property
    def manifest_path(self) -> Path:
        return self.repodata_dir / MANIFEST_NAME

    def exists(self) -> bool:
        return self.manifest_path.is_file()

    def data_locations(self) -> Dict[str, str]:
        """Map each metadata type in the manifest to its relative location.

        Raises:
            LocalIOError: If the manifest is missing or unparsable
        """
        try:
            tree = ET.parse(self.manifest_path)
        except (OSError, ET.ParseError) as e:
            raise LocalIOError("read manifest", str(self.manifest_path), e) from e

        locations = {}
        for data in tree.getroot().iter(f"{{{REPO_NS}}}data"):
            location = data.find(f"{{{REPO_NS}}}location")
            if location is not None and data.get("type"):
                locations[data.get("type")] = location.get("href", "")
        return locations

    def package_locations(self) -> Set[str]:
        """Return the ``location href`` of every package in the catalog.

        Raises:
            LocalIOError: If the manifest or primary metadata can't be read
        """
        href = self.data_locations().get("primary")
        if not href:
            raise LocalIOError(
                "read manifest", str(self.manifest_path), "no primary metadata entry"
            )

        primary_path = self.root / href
        opener = _OPENERS.get(primary_path.suffix, open)
        try:
            with opener(primary_path, "rb") as f:
                tree = ET.parse(f)
        except (OSError, EOFError, lzma.LZMAError, ET.ParseError) as e:
            raise LocalIOError("read primary metadata", str(primary_path), e) from e

        packages = set()
        for package in tree.getroot().iter(f"{{{COMMON_NS}}}package"):
            location = package.find(f"{{{COMMON_NS}}}location")
            if location is not None:
                packages.add(location.get("href", ""))
        return packages

    def package_filenames(self) -> Set[str]:
        """Base filenames of every package in the catalog."""
        return {Path(href).name for href in self.package_locations()}

    def revision(self) -> Optional[str]:
        """Return the manifest revision (a generation timestamp), if present."""
        try:
            tree = ET.parse(self.manifest_path)
        except (OSError, ET.ParseError) as e:
            raise LocalIOError("read manifest", str(self.manifest_path), e) from e
        revision = tree.getroot().find(f"{{{REPO_NS}}}revision")
        return revision.text if revision is not None else None
