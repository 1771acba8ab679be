"""Tests for the boto3-backed object store."""

import io
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from s3rpm.common.errors import LocalIOError, RemoteStoreError
from s3rpm.store.base import Visibility
from s3rpm.store.s3 import DELETE_BATCH_SIZE, S3ObjectStore


def client_error(code, operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def s3_store(client):
    return S3ObjectStore(client)


class TestFromCredentials:
    """Tests for client construction."""

    @patch("boto3.session.Session")
    def test_session_from_credentials(self, mock_session):
        """Test the session gets static credentials and the region."""
        S3ObjectStore.from_credentials(
            "AK", "SK", region="eu-west-1", endpoint_url="http://localhost:9000"
        )

        mock_session.assert_called_once_with(
            aws_access_key_id="AK",
            aws_secret_access_key="SK",
            region_name="eu-west-1",
        )
        mock_session.return_value.client.assert_called_once_with(
            "s3", endpoint_url="http://localhost:9000"
        )


class TestList:
    """Tests for listing objects."""

    def test_list_paginates(self, s3_store, client):
        """Test objects from every page are returned and markers skipped."""
        paginator = client.get_paginator.return_value
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "el9/a.rpm", "Size": 10}, {"Key": "el9/dir/", "Size": 0}]},
            {"Contents": [{"Key": "el9/repodata/repomd.xml", "Size": 3}]},
            {},
        ]

        objects = s3_store.list("repo-bucket", "el9/")

        client.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(Bucket="repo-bucket", Prefix="el9/")
        assert [o.key for o in objects] == ["el9/a.rpm", "el9/repodata/repomd.xml"]
        assert objects[0].size == 10

    def test_list_empty_prefix_lists_bucket(self, s3_store, client):
        client.get_paginator.return_value.paginate.return_value = []

        assert s3_store.list("repo-bucket", "") == []
        client.get_paginator.return_value.paginate.assert_called_once_with(Bucket="repo-bucket")

    def test_list_error(self, s3_store, client):
        client.get_paginator.return_value.paginate.side_effect = client_error("AccessDenied")

        with pytest.raises(RemoteStoreError, match="list failed for s3://repo-bucket/el9/"):
            s3_store.list("repo-bucket", "el9/")


class TestTransfer:
    """Tests for downloads and uploads."""

    def test_get_creates_parent(self, s3_store, client, tmp_path):
        dest = tmp_path / "old" / "repodata" / "repomd.xml"

        s3_store.get("repo-bucket", "el9/repodata/repomd.xml", str(dest))

        assert dest.parent.is_dir()
        client.download_file.assert_called_once_with(
            "repo-bucket", "el9/repodata/repomd.xml", str(dest)
        )

    def test_get_error(self, s3_store, client, tmp_path):
        client.download_file.side_effect = client_error("404")

        with pytest.raises(RemoteStoreError, match="download"):
            s3_store.get("repo-bucket", "el9/a.rpm", str(tmp_path / "a.rpm"))

    def test_put_sets_acl(self, s3_store, client, tmp_path):
        """Test uploads carry the visibility as a canned ACL."""
        src = tmp_path / "a.rpm"
        src.write_bytes(b"rpm")

        s3_store.put("repo-bucket", "el9/a.rpm", str(src), Visibility.PUBLIC_READ)

        client.upload_file.assert_called_once_with(
            str(src), "repo-bucket", "el9/a.rpm", ExtraArgs={"ACL": "public-read"}
        )

    def test_put_missing_file(self, s3_store, client, tmp_path):
        with pytest.raises(LocalIOError):
            s3_store.put("repo-bucket", "el9/a.rpm", str(tmp_path / "a.rpm"), Visibility.PRIVATE)

        client.upload_file.assert_not_called()

    def test_put_error(self, s3_store, client, tmp_path):
        src = tmp_path / "a.rpm"
        src.write_bytes(b"rpm")
        client.upload_file.side_effect = client_error("AccessDenied")

        with pytest.raises(RemoteStoreError, match="upload failed for s3://repo-bucket/el9/a.rpm"):
            s3_store.put("repo-bucket", "el9/a.rpm", str(src), Visibility.PRIVATE)


class TestDeleteBatch:
    """Tests for batch deletes."""

    def test_chunks_requests(self, s3_store, client):
        """Test keys are sent in chunks of at most the service limit."""
        keys = [f"el9/repodata/{i}.xml.gz" for i in range(DELETE_BATCH_SIZE + 5)]
        client.delete_objects.side_effect = lambda Bucket, Delete: {
            "Deleted": [{"Key": o["Key"]} for o in Delete["Objects"]]
        }

        result = s3_store.delete_batch("repo-bucket", keys)

        assert client.delete_objects.call_count == 2
        first = client.delete_objects.call_args_list[0].kwargs["Delete"]["Objects"]
        assert len(first) == DELETE_BATCH_SIZE
        assert result.deleted == keys
        assert result.is_complete

    def test_per_key_errors_collected(self, s3_store, client):
        client.delete_objects.return_value = {
            "Deleted": [{"Key": "el9/repodata/a.xml"}],
            "Errors": [{"Key": "el9/repodata/b.xml", "Code": "AccessDenied", "Message": "Access Denied"}],
        }

        result = s3_store.delete_batch("repo-bucket", ["el9/repodata/a.xml", "el9/repodata/b.xml"])

        assert result.deleted == ["el9/repodata/a.xml"]
        assert result.failed == {"el9/repodata/b.xml": "Access Denied"}
        assert not result.is_complete

    def test_request_error(self, s3_store, client):
        client.delete_objects.side_effect = client_error("InternalError")

        with pytest.raises(RemoteStoreError, match="delete"):
            s3_store.delete_batch("repo-bucket", ["el9/repodata/a.xml"])

    def test_empty_batch(self, s3_store, client):
        result = s3_store.delete_batch("repo-bucket", [])

        assert result.deleted == []
        client.delete_objects.assert_not_called()


class TestConditionalObjects:
    """Tests for put_if_absent and read."""

    def test_put_if_absent_created(self, s3_store, client):
        assert s3_store.put_if_absent("repo-bucket", "el9/.s3rpm.lock", b"{}") is True
        client.put_object.assert_called_once_with(
            Bucket="repo-bucket", Key="el9/.s3rpm.lock", Body=b"{}", IfNoneMatch="*"
        )

    @pytest.mark.parametrize("code", ["PreconditionFailed", "412", "ConditionalRequestConflict"])
    def test_put_if_absent_exists(self, s3_store, client, code):
        client.put_object.side_effect = client_error(code, "PutObject")

        assert s3_store.put_if_absent("repo-bucket", "el9/.s3rpm.lock", b"{}") is False

    def test_put_if_absent_error(self, s3_store, client):
        client.put_object.side_effect = client_error("AccessDenied", "PutObject")

        with pytest.raises(RemoteStoreError, match="conditional put"):
            s3_store.put_if_absent("repo-bucket", "el9/.s3rpm.lock", b"{}")

    def test_read(self, s3_store, client):
        client.get_object.return_value = {"Body": io.BytesIO(b"lease")}

        assert s3_store.read("repo-bucket", "el9/.s3rpm.lock") == b"lease"

    def test_read_missing(self, s3_store, client):
        client.get_object.side_effect = client_error("NoSuchKey", "GetObject")

        assert s3_store.read("repo-bucket", "el9/.s3rpm.lock") is None

    def test_read_error(self, s3_store, client):
        client.get_object.side_effect = client_error("AccessDenied", "GetObject")

        with pytest.raises(RemoteStoreError, match="read"):
            s3_store.read("repo-bucket", "el9/.s3rpm.lock")
