"""Key prefix handling for a published repository.

An empty prefix means keys live at the bucket root. A non-empty prefix is
one literal path segment (or several) joined to relative paths with a
single "/". Listings always include the trailing separator so that a
prefix never matches a sibling sharing its leading characters ("foo" does
not reach "foobar/").
"""

from dataclasses import dataclass

from ..common.errors import ValidationError

SEPARATOR = "/"
REPODATA_DIR = "repodata"


def normalize_prefix(prefix: str) -> str:
    """Strip surrounding separators and reject empty path segments."""
    normalized = (prefix or "").strip(SEPARATOR)
    if normalized and "" in normalized.split(SEPARATOR):
        raise ValidationError(f"Invalid prefix {prefix!r}: empty path segment")
    return normalized


@dataclass(frozen=True)
class RemotePrefix:
    """Bucket plus key prefix holding one published repository."""

    bucket: str
    prefix: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "prefix", normalize_prefix(self.prefix))

    @property
    def listing_prefix(self) -> str:
        """Prefix to list everything in this repository."""
        return self.prefix + SEPARATOR if self.prefix else ""

    @property
    def repodata_prefix(self) -> str:
        """Prefix to list the catalog objects of this repository."""
        return self.key_for(REPODATA_DIR) + SEPARATOR

    def key_for(self, relative_path: str) -> str:
        """Build the object key for a path relative to the repository root."""
        relative = relative_path.replace("\\", SEPARATOR).lstrip(SEPARATOR)
        if not self.prefix:
            return relative
        return self.prefix + SEPARATOR + relative

    def contains(self, key: str) -> bool:
        """Check if key belongs to this repository."""
        return key.startswith(self.listing_prefix) and len(key) > len(self.listing_prefix)

    def relative_path(self, key: str) -> str:
        """Strip the prefix from a key.

        Raises:
            ValueError: If key is outside this repository
        """
        if not self.contains(key):
            raise ValueError(f"Key {key!r} is outside prefix {self.prefix!r}")
        return key[len(self.listing_prefix):]

    def url(self, key: str = "") -> str:
        """Render an s3:// URL for logging."""
        return f"s3://{self.bucket}/{key or self.listing_prefix}"
