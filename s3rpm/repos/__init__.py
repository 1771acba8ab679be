"""Repository snapshots, catalogs and the tools that build them."""

from .base import (
    PackageArtifact,
    RepositoryBuilder,
    RepositoryMerger,
    RepositorySnapshot,
    SignatureState,
)
from .catalog import Catalog
from .createrepo import CreaterepoBuilder, MergerepoMerger

__all__ = [
    "Catalog",
    "CreaterepoBuilder",
    "MergerepoMerger",
    "PackageArtifact",
    "RepositoryBuilder",
    "RepositoryMerger",
    "RepositorySnapshot",
    "SignatureState",
]
