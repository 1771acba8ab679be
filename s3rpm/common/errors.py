"""Error hierarchy for s3rpm.

Every failure that aborts a run derives from PublishError so the CLI can
report it and exit non-zero without a traceback.
"""

from typing import List, Optional, Union


class PublishError(Exception):
    """Base class for all errors that abort a publish or rebuild run."""


class ValidationError(PublishError):
    """Invalid run configuration or inputs, detected before any remote I/O."""


class RemoteStoreError(PublishError):
    """Failure talking to the object store."""

    def __init__(
        self,
        operation: str,
        bucket: str,
        key: Optional[str] = None,
        cause: Optional[Union[BaseException, str]] = None,
    ):
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.cause = cause

        target = f"s3://{bucket}/{key}" if key is not None else f"s3://{bucket}"
        message = f"{operation} failed for {target}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class LeaseError(RemoteStoreError):
    """The publish lease for a prefix is held by another run."""

    def __init__(self, bucket: str, key: str, holder: str):
        self.holder = holder
        super().__init__("acquire lease", bucket, key, f"held by {holder}")


class ExternalToolError(PublishError):
    """An external tool (createrepo_c, mergerepo_c, rpmsign, gpg) failed."""

    def __init__(
        self,
        command: List[str],
        returncode: Optional[int] = None,
        stderr: str = "",
        reason: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr

        tool = self.command[0] if self.command else "<unknown>"
        if reason is None:
            reason = f"exited with status {returncode}"
        self.reason = reason
        message = f"{tool} {reason}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


class LocalIOError(PublishError):
    """Filesystem failure on a local snapshot directory."""

    def __init__(
        self,
        operation: str,
        path: str,
        cause: Optional[Union[BaseException, str]] = None,
    ):
        self.operation = operation
        self.path = path
        self.cause = cause

        message = f"{operation} failed for {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
