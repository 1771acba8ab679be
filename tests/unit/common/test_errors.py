"""Tests for the error hierarchy."""

from s3rpm.common.errors import (
    ExternalToolError,
    LeaseError,
    LocalIOError,
    PublishError,
    RemoteStoreError,
    ValidationError,
)


class TestErrorHierarchy:
    """All run-aborting errors share one base class."""

    def test_subclasses(self):
        for cls in (ValidationError, RemoteStoreError, ExternalToolError, LocalIOError):
            assert issubclass(cls, PublishError)
        assert issubclass(LeaseError, RemoteStoreError)


class TestRemoteStoreError:
    """Tests for RemoteStoreError messages."""

    def test_message_with_key_and_cause(self):
        error = RemoteStoreError("upload", "repo-bucket", "el9/a.rpm", "AccessDenied")

        assert str(error) == "upload failed for s3://repo-bucket/el9/a.rpm: AccessDenied"
        assert error.operation == "upload"
        assert error.key == "el9/a.rpm"

    def test_message_without_key(self):
        error = RemoteStoreError("list", "repo-bucket")

        assert str(error) == "list failed for s3://repo-bucket"

    def test_lease_error_names_holder(self):
        error = LeaseError("repo-bucket", "el9/.s3rpm.lock", "ci@host:42")

        assert error.holder == "ci@host:42"
        assert "held by ci@host:42" in str(error)


class TestExternalToolError:
    """Tests for ExternalToolError messages."""

    def test_exit_status(self):
        """Test the default reason reports the exit status."""
        error = ExternalToolError(["createrepo_c", "/tmp/repo"], 1, "bad things\n")

        assert str(error) == "createrepo_c exited with status 1: bad things"
        assert error.returncode == 1
        assert error.command == ["createrepo_c", "/tmp/repo"]

    def test_custom_reason(self):
        error = ExternalToolError(["gpg"], reason="not found on PATH")

        assert str(error) == "gpg not found on PATH"
        assert error.returncode is None

    def test_empty_command(self):
        assert str(ExternalToolError([], 2)).startswith("<unknown>")


def test_local_io_error_message():
    error = LocalIOError("copy", "/tmp/a.rpm", "No space left on device")

    assert str(error) == "copy failed for /tmp/a.rpm: No space left on device"
