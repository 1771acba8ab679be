"""createrepo_c / mergerepo_c repository tools.

Wraps the createrepo_c and mergerepo_c command-line tools that generate
and merge yum repository metadata.
"""

import shutil
from pathlib import Path
from typing import List, Optional

from ..common.config import ToolsConfig
from ..common.errors import ExternalToolError, LocalIOError
from ..common.logger import get_logger
from ..common.process import run_tool
from .base import RepositoryBuilder, RepositoryMerger, RepositorySnapshot
from .catalog import Catalog

logger = get_logger("repos")


def _require_manifest(catalog: Catalog, cmd: List[str]) -> Catalog:
    if not catalog.exists():
        raise ExternalToolError(
            cmd, 0, reason=f"did not produce {catalog.manifest_path}"
        )
    return catalog


class CreaterepoBuilder(RepositoryBuilder):
    """Builds catalogs with createrepo_c using sha256 checksums."""

    def __init__(self, tools: Optional[ToolsConfig] = None):
        self.tools = tools or ToolsConfig()

    def command(self, directory: Path) -> List[str]:
        cmd = [self.tools.createrepo, "--checksum", "sha256"]
        if self.tools.compress_type:
            cmd.extend(["--general-compress-type", self.tools.compress_type])
        cmd.append(str(directory))
        return cmd

    def build(self, directory: Path) -> Catalog:
        cmd = self.command(directory)
        logger.info(f"Running createrepo_c for {directory}")
        run_tool(cmd, timeout=self.tools.timeout)

        catalog = _require_manifest(Catalog(directory), cmd)
        logger.info(f"Repodata created at: {catalog.repodata_dir}")
        return catalog


class MergerepoMerger(RepositoryMerger):
    """Merges catalogs with mergerepo_c.

    mergerepo_c only writes metadata, and keeps the first occurrence of a
    package present in several repositories. The new repository is passed
    first so that it wins, and its package files are copied next to the
    merged metadata. Old packages are referenced, not copied: they are
    already published.
    """

    def __init__(self, tools: Optional[ToolsConfig] = None):
        self.tools = tools or ToolsConfig()

    def command(self, old_dir: Path, new_dir: Path, out_dir: Path) -> List[str]:
        cmd = [
            self.tools.mergerepo,
            f"--repo={new_dir}",
            f"--repo={old_dir}",
            "--all",
            "--omit-baseurl",
        ]
        if self.tools.compress_type:
            cmd.extend(["--compress-type", self.tools.compress_type])
        cmd.extend(["-o", str(out_dir)])
        return cmd

    def merge(self, old_dir: Path, new_dir: Path, out_dir: Path) -> Catalog:
        try:
            if out_dir.exists():
                shutil.rmtree(out_dir)
            out_dir.mkdir(parents=True)
        except OSError as e:
            raise LocalIOError("prepare merge directory", str(out_dir), e) from e

        cmd = self.command(old_dir, new_dir, out_dir)
        logger.info(f"Merging {old_dir} and {new_dir} into {out_dir}")
        run_tool(cmd, timeout=self.tools.timeout)
        catalog = _require_manifest(Catalog(out_dir), cmd)

        for package in RepositorySnapshot(new_dir).package_files():
            dest = out_dir / package.name
            try:
                shutil.copyfile(package, dest)
            except OSError as e:
                raise LocalIOError("copy", str(package), e) from e

        logger.info(f"Merged repodata created at: {catalog.repodata_dir}")
        return catalog
