"""Ephemeral local working directories for one run."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from ..common.errors import LocalIOError
from ..common.logger import get_logger

logger = get_logger("sync")

OLD_DIR = "old_repo"
NEW_DIR = "new_repo"
MERGED_DIR = "merged_repo"


class Workspace:
    """Fresh ``old``, ``new`` and ``merged`` snapshot directories.

    Created under a unique temporary root and removed on exit unless
    ``keep`` is set, in which case the location is logged for inspection.
    """

    def __init__(self, base_dir: Optional[str] = None, keep: bool = False):
        self.base_dir = base_dir
        self.keep = keep
        self.root: Optional[Path] = None

    def __enter__(self) -> "Workspace":
        try:
            if self.base_dir:
                Path(self.base_dir).mkdir(parents=True, exist_ok=True)
            self.root = Path(tempfile.mkdtemp(prefix="s3rpm-", dir=self.base_dir))
            for name in (OLD_DIR, NEW_DIR, MERGED_DIR):
                (self.root / name).mkdir()
        except OSError as e:
            raise LocalIOError("create working directory", str(self.base_dir or tempfile.gettempdir()), e) from e

        logger.debug(f"Working directory: {self.root}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    @property
    def old(self) -> Path:
        return self._path(OLD_DIR)

    @property
    def new(self) -> Path:
        return self._path(NEW_DIR)

    @property
    def merged(self) -> Path:
        return self._path(MERGED_DIR)

    def _path(self, name: str) -> Path:
        if self.root is None:
            raise RuntimeError("Workspace is not open")
        return self.root / name

    def local_path(self, snapshot_dir: Path, relative_path: str) -> Path:
        """Resolve a remote relative path inside a snapshot directory.

        Raises:
            LocalIOError: If the path would escape the snapshot directory
        """
        parts = [p for p in relative_path.split("/") if p not in ("", ".")]
        if not parts or ".." in parts:
            raise LocalIOError("map remote key", relative_path, "unsafe relative path")
        return snapshot_dir.joinpath(*parts)

    def cleanup(self) -> None:
        if self.root is None:
            return
        if self.keep:
            logger.info(f"Working directories left for inspection at {self.root}")
            return
        shutil.rmtree(self.root, ignore_errors=True)
        self.root = None
