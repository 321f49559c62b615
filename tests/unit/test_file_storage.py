"""
Unit tests for the file storage adapters
"""

import pytest
from botocore.exceptions import ClientError

from sendeasy.core.config import Settings
from sendeasy.core.exceptions import StorageFailure
from sendeasy.services.file_storage import (
    LocalFileStorage,
    S3FileStorage,
    create_file_storage,
    safe_file_name,
)

pytestmark = pytest.mark.unit


class TestSafeFileName:
    @pytest.mark.parametrize("raw, expected", [
        ("report.pdf", "report.pdf"),
        ("../../../etc/passwd", "passwd"),
        ("..\\..\\windows\\system32\\hosts", "hosts"),
        ("my photo (1).jpg", "my_photo_1_.jpg"),
        ("...", "file"),
        ("", "file"),
    ])
    def test_cleaning(self, raw, expected):
        assert safe_file_name(raw) == expected


class TestLocalFileStorage:
    def test_save_and_delete(self, file_storage):
        url = file_storage.save(b"hello", "notes.txt", "text/plain")

        assert url.startswith("/api/files/download/")
        stored_name = url.rsplit("/", 1)[-1]
        assert stored_name.endswith("_notes.txt")
        path = file_storage.resolve(stored_name)
        assert path.read_bytes() == b"hello"

        file_storage.delete(url)
        assert not path.exists()

    def test_delete_missing_file_is_quiet(self, file_storage):
        file_storage.delete("/api/files/download/0000_missing.txt")

    def test_names_do_not_collide(self, file_storage):
        assert file_storage.save(b"a", "same.txt", "text/plain") != file_storage.save(b"b", "same.txt", "text/plain")

    @pytest.mark.parametrize("stored_name", ["../secret", "..", ".hidden", "", "a/b"])
    def test_resolve_refuses_escape(self, file_storage, stored_name):
        assert file_storage.resolve(stored_name) is None

    def test_custom_prefix(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path), url_prefix="/files/")
        assert storage.save(b"x", "x.bin", "application/octet-stream").startswith("/files/")

    def test_write_failure(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path / "uploads"))
        storage.upload_dir.rmdir()
        storage.upload_dir.write_text("not a directory")
        with pytest.raises(StorageFailure):
            storage.save(b"x", "x.bin", "application/octet-stream")


class TestS3FileStorage:
    def test_save(self, mock_boto3_client):
        storage = S3FileStorage("share-bucket", prefix="uploads/", client=mock_boto3_client)
        url = storage.save(b"hello", "notes.txt", "text/plain")

        assert url.startswith("s3://share-bucket/uploads/")
        kwargs = mock_boto3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "share-bucket"
        assert kwargs["Body"] == b"hello"
        assert kwargs["ContentType"] == "text/plain"
        assert url.endswith(kwargs["Key"])

    def test_save_failure(self, mock_boto3_client):
        mock_boto3_client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        storage = S3FileStorage("share-bucket", client=mock_boto3_client)
        with pytest.raises(StorageFailure):
            storage.save(b"hello", "notes.txt", "text/plain")

    def test_delete(self, mock_boto3_client):
        storage = S3FileStorage("share-bucket", client=mock_boto3_client)
        storage.delete("s3://share-bucket/uploads/abc_notes.txt")
        mock_boto3_client.delete_object.assert_called_once_with(
            Bucket="share-bucket", Key="uploads/abc_notes.txt"
        )

    def test_delete_outside_bucket_ignored(self, mock_boto3_client):
        storage = S3FileStorage("share-bucket", client=mock_boto3_client)
        storage.delete("s3://other-bucket/key")
        mock_boto3_client.delete_object.assert_not_called()

    def test_delete_failure_is_logged_not_raised(self, mock_boto3_client):
        mock_boto3_client.delete_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "DeleteObject"
        )
        storage = S3FileStorage("share-bucket", client=mock_boto3_client)
        storage.delete("s3://share-bucket/uploads/abc_notes.txt")


class TestCreateFileStorage:
    def test_local(self, tmp_path):
        storage = create_file_storage(Settings(upload_dir=str(tmp_path), storage_backend="local"))
        assert isinstance(storage, LocalFileStorage)

    def test_s3(self, monkeypatch, mock_boto3_client):
        monkeypatch.setattr("sendeasy.services.file_storage.boto3.client", lambda *a, **kw: mock_boto3_client)
        storage = create_file_storage(Settings(storage_backend="s3", s3_bucket="share-bucket"))
        assert isinstance(storage, S3FileStorage)
        assert storage.client is mock_boto3_client
