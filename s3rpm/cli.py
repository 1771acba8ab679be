"""Command-line interface for s3rpm.

Publishes RPM packages into a yum repository kept in an S3 bucket, or
rebuilds the repository already there. Requires createrepo_c and
mergerepo_c on PATH, plus rpm/rpmsign, gpg and expect when signing.
"""

import argparse
import dataclasses
import os
import sys
from typing import Any, Dict, List, Optional

import yaml

from . import __version__
from .common.config import (
    PublishConfig,
    load_typed_config,
    parse_replace_strategy,
    parse_visibility,
)
from .common.errors import PublishError
from .common.logger import get_logger, setup_logger
from .repos.createrepo import CreaterepoBuilder, MergerepoMerger
from .signing.gpg import GpgSigner
from .store.s3 import S3ObjectStore
from .sync.orchestrator import SyncOrchestrator

logger = get_logger("cli")

EXAMPLES = """\
Examples:
  s3rpm -b my-bucket -p el9/x86_64 --aws-access-key AK --aws-secret-key SK foo-1.0-1.x86_64.rpm
  s3rpm -b my-bucket --visibility public --sign --sign-pass "$PASS" *.rpm
  s3rpm -b my-bucket -p el9/x86_64 --rebuild --sign
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3rpm",
        description="Handle RPMs in an S3 bucket",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    # Defaults are None so that only flags actually given override the config file
    parser.add_argument("rpms", nargs="*", metavar="RPM", help="RPM files to publish")
    parser.add_argument("-b", "--bucket", help="S3 bucket")
    parser.add_argument("-p", "--prefix", help="S3 prefix")
    parser.add_argument(
        "--visibility", choices=["public", "private"], help="S3 ACL (default: private)"
    )
    parser.add_argument("--aws-access-key", help="AWS Access Key ID (env: AWS_ACCESS_KEY)")
    parser.add_argument("--aws-secret-key", help="AWS Secret Access Key (env: AWS_SECRET_KEY)")
    parser.add_argument("--aws-region", help="AWS region (default: us-east-1)")
    parser.add_argument("--endpoint-url", help="Endpoint for S3-compatible storage")
    parser.add_argument("--sign", action="store_true", default=None, help="Sign RPMs and repodata")
    parser.add_argument(
        "--sign-pass", help="Passphrase for signing (empty uses the gpg agent)"
    )
    parser.add_argument("--sign-key", help="GPG key id to sign with")
    parser.add_argument(
        "--rebuild", action="store_true", default=None, help="Rebuild the repository metadata"
    )
    parser.add_argument(
        "--regenerate-catalog",
        action="store_true",
        default=None,
        help="With --rebuild, regenerate repodata from the downloaded RPMs",
    )
    parser.add_argument(
        "--replace-strategy",
        choices=["staged", "replace"],
        help="How remote repodata is replaced (default: staged)",
    )
    parser.add_argument(
        "--no-lock", action="store_true", default=None, help="Do not take the publish lease"
    )
    parser.add_argument("--work-dir", help="Parent directory for working directories")
    parser.add_argument(
        "--keep-workdir",
        action="store_true",
        default=None,
        help="Leave working directories behind for inspection",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument("--log-dir", help="Also write logs to this directory")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> PublishConfig:
    """Merge the config file, environment and command-line flags.

    Raises:
        ValidationError: If a flag value is invalid
    """
    config = load_typed_config(args.config)

    overrides: Dict[str, Any] = {}
    simple = {
        "bucket": args.bucket,
        "prefix": args.prefix,
        "region": args.aws_region,
        "endpoint_url": args.endpoint_url,
        "sign": args.sign,
        "sign_passphrase": args.sign_pass,
        "sign_key_id": args.sign_key,
        "rebuild": args.rebuild,
        "regenerate_catalog": args.regenerate_catalog,
        "work_dir": args.work_dir,
        "keep_workdir": args.keep_workdir,
        "log_level": args.log_level,
        "log_dir": args.log_dir,
    }
    overrides.update({name: value for name, value in simple.items() if value is not None})

    if args.visibility is not None:
        overrides["visibility"] = parse_visibility(args.visibility)
    if args.replace_strategy is not None:
        overrides["replace_strategy"] = parse_replace_strategy(args.replace_strategy)
    if args.no_lock:
        overrides["lock"] = dataclasses.replace(config.lock, enabled=False)
    if args.rpms:
        overrides["packages"] = tuple(args.rpms)

    access_key = args.aws_access_key or config.access_key or os.environ.get("AWS_ACCESS_KEY", "")
    secret_key = args.aws_secret_key or config.secret_key or os.environ.get("AWS_SECRET_KEY", "")
    overrides["access_key"] = access_key
    overrides["secret_key"] = secret_key

    return dataclasses.replace(config, **overrides)


def build_orchestrator(config: PublishConfig) -> SyncOrchestrator:
    """Wire the production collaborators for a run."""
    store = S3ObjectStore.from_credentials(
        config.access_key,
        config.secret_key,
        region=config.region,
        endpoint_url=config.endpoint_url,
    )
    return SyncOrchestrator(
        config,
        store=store,
        builder=CreaterepoBuilder(config.tools),
        merger=MergerepoMerger(config.tools),
        signer=GpgSigner(config.tools, key_id=config.sign_key_id),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the s3rpm CLI.

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except (OSError, ValueError, TypeError, yaml.YAMLError, PublishError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        setup_logger(level=config.log_level, log_dir=config.log_dir)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        config.validate()
        build_orchestrator(config).run()
    except PublishError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    return 0
