"""Configuration management for s3rpm.

A run is parameterized by one immutable PublishConfig. It is built from an
optional YAML file (environment variables expanded) and then overridden by
command-line flags with dataclasses.replace().
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from ..store.base import Visibility
from .errors import ValidationError

DEFAULT_REGION = "us-east-1"


class ReplaceStrategy(Enum):
    """How the remote catalog is replaced."""

    # Upload new objects first, flip repomd.xml last, then drop stale keys
    STAGED = "staged"
    # Delete all remote repodata, then upload
    REPLACE = "replace"


@dataclass(frozen=True)
class ToolsConfig:
    """External tool locations and options."""

    createrepo: str = "createrepo_c"
    mergerepo: str = "mergerepo_c"
    rpm: str = "rpm"
    rpmsign: str = "rpmsign"
    gpg: str = "gpg"
    expect: str = "expect"
    compress_type: Optional[str] = "gz"
    timeout: Optional[int] = None


@dataclass(frozen=True)
class LockConfig:
    """Configuration for the publish lease."""

    enabled: bool = True
    ttl_seconds: int = 3600
    owner: Optional[str] = None


@dataclass(frozen=True)
class PublishConfig:
    """Everything one publish or rebuild run needs."""

    bucket: str = ""
    prefix: str = ""
    visibility: Visibility = Visibility.PRIVATE
    access_key: str = ""
    secret_key: str = ""
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None
    sign: bool = False
    sign_passphrase: str = ""
    sign_key_id: Optional[str] = None
    rebuild: bool = False
    regenerate_catalog: bool = False
    packages: Tuple[str, ...] = ()
    replace_strategy: ReplaceStrategy = ReplaceStrategy.STAGED
    work_dir: Optional[str] = None
    keep_workdir: bool = False
    lock: LockConfig = field(default_factory=LockConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    def validate(self) -> None:
        """Check the configuration before any remote I/O.

        Raises:
            ValidationError: If a required value is missing
        """
        if not self.bucket:
            raise ValidationError("A bucket is required")
        if not self.access_key or not self.secret_key:
            raise ValidationError("AWS access key and secret key are required")
        if not self.rebuild and not self.packages:
            raise ValidationError("At least one RPM file must be provided")
        if self.lock.ttl_seconds <= 0:
            raise ValidationError("Lock TTL must be positive")


_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off", "")


def parse_bool(value: Any, name: str) -> bool:
    """Parse a boolean setting, accepting YAML booleans and their string forms.

    Raises:
        ValidationError: If the value is not recognizable as a boolean
    """
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValidationError(f"Invalid value for {name}: {value!r}. Must be true or false")


def _optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid value for {name}: {value!r}. Must be an integer") from None


def parse_visibility(value: Any) -> Visibility:
    """Parse a visibility name.

    Accepts ``public``/``public-read`` and ``private``.

    Raises:
        ValidationError: If the name is unknown
    """
    if isinstance(value, Visibility):
        return value
    name = str(value).strip().lower()
    if name in ("public", "public-read"):
        return Visibility.PUBLIC_READ
    if name == "private":
        return Visibility.PRIVATE
    raise ValidationError(f"Invalid visibility: {value!r}. Must be 'public' or 'private'")


def parse_replace_strategy(value: Any) -> ReplaceStrategy:
    """Parse a replace strategy name.

    Raises:
        ValidationError: If the name is unknown
    """
    if isinstance(value, ReplaceStrategy):
        return value
    try:
        return ReplaceStrategy(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(s.value for s in ReplaceStrategy)
        raise ValidationError(
            f"Invalid replace strategy: {value!r}. Must be one of: {choices}"
        ) from None


def parse_tools_config(tools_dict: Dict[str, Any]) -> ToolsConfig:
    """Parse the ``tools`` section."""
    defaults = ToolsConfig()
    return ToolsConfig(
        createrepo=tools_dict.get("createrepo", defaults.createrepo),
        mergerepo=tools_dict.get("mergerepo", defaults.mergerepo),
        rpm=tools_dict.get("rpm", defaults.rpm),
        rpmsign=tools_dict.get("rpmsign", defaults.rpmsign),
        gpg=tools_dict.get("gpg", defaults.gpg),
        expect=tools_dict.get("expect", defaults.expect),
        compress_type=tools_dict.get("compress_type", defaults.compress_type),
        timeout=_optional_int(tools_dict.get("timeout", defaults.timeout), "tools.timeout"),
    )


def parse_lock_config(lock_dict: Dict[str, Any]) -> LockConfig:
    """Parse the ``lock`` section."""
    return LockConfig(
        enabled=parse_bool(lock_dict.get("enabled", True), "lock.enabled"),
        ttl_seconds=_optional_int(lock_dict.get("ttl_seconds", 3600), "lock.ttl_seconds"),
        owner=lock_dict.get("owner"),
    )


def parse_config(config_dict: Dict[str, Any]) -> PublishConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Configuration dictionary (as loaded from YAML)

    Returns:
        PublishConfig instance
    """
    credentials = config_dict.get("credentials", {}) or {}
    signing = config_dict.get("signing", {}) or {}
    logging_dict = config_dict.get("logging", {}) or {}

    return PublishConfig(
        bucket=config_dict.get("bucket", "") or "",
        prefix=config_dict.get("prefix", "") or "",
        visibility=parse_visibility(config_dict.get("visibility", "private")),
        access_key=credentials.get("access_key", "") or "",
        secret_key=credentials.get("secret_key", "") or "",
        region=config_dict.get("region", DEFAULT_REGION) or DEFAULT_REGION,
        endpoint_url=config_dict.get("endpoint_url"),
        sign=parse_bool(signing.get("enabled", False), "signing.enabled"),
        sign_passphrase=signing.get("passphrase", "") or "",
        sign_key_id=signing.get("key_id"),
        regenerate_catalog=parse_bool(config_dict.get("regenerate_catalog", False), "regenerate_catalog"),
        replace_strategy=parse_replace_strategy(
            config_dict.get("replace_strategy", ReplaceStrategy.STAGED.value)
        ),
        work_dir=config_dict.get("work_dir"),
        keep_workdir=parse_bool(config_dict.get("keep_workdir", False), "keep_workdir"),
        lock=parse_lock_config(config_dict.get("lock", {}) or {}),
        tools=parse_tools_config(config_dict.get("tools", {}) or {}),
        log_level=logging_dict.get("level", "INFO"),
        log_dir=logging_dict.get("dir"),
    )


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(config_path: Optional[str] = None) -> PublishConfig:
    """Load and parse configuration into a PublishConfig.

    Args:
        config_path: Path to configuration file; defaults only when None

    Returns:
        PublishConfig instance
    """
    if config_path is None:
        return PublishConfig()
    return parse_config(load_config(config_path))
