"""
Tests for upload validation and the object store helpers
"""

import io
import pytest

from fastapi import UploadFile
from starlette.datastructures import Headers

from skuld.common.exceptions import ValidationError
from skuld.modules.files.storage import MinIOStorage, delete_objects
from skuld.modules.files.uploads import object_key, read_upload


# ===== FIXTURES =====

def make_upload(data=b"data", filename="scan.png", content_type="image/png"):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class FakeObject:

    def __init__(self, data):
        self.data = data
        self.closed = False

    def read(self):
        return self.data

    def close(self):
        self.closed = True

    def release_conn(self):
        pass


class FakeMinio:
    """Records calls the way the minio client receives them"""

    def __init__(self):
        self.buckets = set()
        self.objects = {}

    def bucket_exists(self, bucket):
        return bucket in self.buckets

    def make_bucket(self, bucket):
        self.buckets.add(bucket)

    def put_object(self, bucket, key, stream, length, content_type):
        self.objects[(bucket, key)] = (stream.read(length), content_type)

    def get_object(self, bucket, key):
        return FakeObject(self.objects[(bucket, key)][0])

    def stat_object(self, bucket, key):
        return self.objects[(bucket, key)]

    def remove_object(self, bucket, key):
        del self.objects[(bucket, key)]


# ===== UPLOADS =====

class TestReadUpload:

    async def test_valid_upload(self):
        upload = await read_upload(make_upload(b"12345"), ["image/png"], 10)

        assert upload.filename == "scan.png"
        assert upload.content_type == "image/png"
        assert upload.size == 5

    async def test_type_not_allowed(self):
        with pytest.raises(ValidationError) as exc_info:
            await read_upload(make_upload(content_type="text/html"), ["image/png"], 10)
        assert exc_info.value.errors == {"file": "type"}

    async def test_too_large(self):
        with pytest.raises(ValidationError) as exc_info:
            await read_upload(make_upload(b"x" * 11), ["image/png"], 10)
        assert exc_info.value.errors == {"file": "size"}

    async def test_missing_file(self):
        with pytest.raises(ValidationError):
            await read_upload(None, ["image/png"], 10)

    def test_object_key(self):
        key = object_key("proofs", "bundle-1", "recu.pdf")
        prefix, owner, name = key.split("/")
        assert (prefix, owner) == ("proofs", "bundle-1")
        assert name.endswith("-recu.pdf")
        assert object_key("proofs", "bundle-1", "recu.pdf") != key


# ===== STORAGE =====

class TestMinIOStorage:

    async def test_round_trip_creates_bucket(self):
        client = FakeMinio()
        storage = MinIOStorage(client=client, bucket_name="skuld-test")

        await storage.put("documents/1.pdf", b"%PDF-1.4", "application/pdf")

        assert "skuld-test" in client.buckets
        assert client.objects[("skuld-test", "documents/1.pdf")] == (b"%PDF-1.4", "application/pdf")
        assert await storage.get("documents/1.pdf") == b"%PDF-1.4"
        assert await storage.exists("documents/1.pdf") is True

        await storage.delete("documents/1.pdf")
        assert client.objects == {}


class TestDeleteObjects:

    async def test_failures_are_counted_not_raised(self):
        deleted = []

        class FlakyStorage:
            async def delete(self, key):
                if key.startswith("broken"):
                    raise RuntimeError("unreachable")
                deleted.append(key)

        failures = await delete_objects(FlakyStorage(), ["a", "broken/b", "c"])

        assert failures == 1
        assert sorted(deleted) == ["a", "c"]

    async def test_nothing_to_delete(self):
        assert await delete_objects(object(), []) == 0
