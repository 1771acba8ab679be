"""Base class for package and catalog signers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class Signer(ABC):
    """Signs packages in place and produces detached catalog signatures.

    An empty passphrase delegates to an already-unlocked agent; a non-empty
    one is typed into the tool's passphrase prompt.
    """

    @abstractmethod
    def sign_package(self, path: Path, passphrase: Optional[str] = None) -> None:
        """Embed a signature into a package file, replacing any prior one.

        Raises:
            ExternalToolError: If the signing tool fails
        """
        pass

    @abstractmethod
    def sign_manifest(self, manifest_path: Path, passphrase: Optional[str] = None) -> Path:
        """Write a detached, ASCII-armored signature next to a manifest.

        Returns:
            Path of the signature file

        Raises:
            ExternalToolError: If the signing tool fails
        """
        pass
