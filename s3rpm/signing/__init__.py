"""Package and catalog signing."""

from .base import Signer
from .gpg import GpgSigner

__all__ = ["GpgSigner", "Signer"]
