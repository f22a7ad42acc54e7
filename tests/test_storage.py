"""Tests for object storage backends."""

import json

import httpx
import pytest

from conftest import PNG_BYTES
from snaplinks.errors import StorageError, ValidationError
from snaplinks.storage.base import is_valid_storage_key, key_in_scope, make_storage_key
from snaplinks.storage.local import LocalStorage
from snaplinks.storage.supabase import SupabaseStorage


SUPABASE_URL = "https://proj.supabase.co"


class TestStorageKeys:

    def test_make_storage_key(self):
        key = make_storage_key("u1", "Screen Shot.PNG", "image/png")

        owner, name = key.split("/")
        assert owner == "u1"
        assert name.endswith(".png")
        assert is_valid_storage_key(key)

    def test_extension_from_content_type(self):
        assert make_storage_key("u1", None, "image/jpeg").split(".")[-1] in ("jpg", "jpeg", "jpe")

    def test_keys_are_unique(self):
        assert len({make_storage_key("u1", "a.png", "image/png") for _ in range(100)}) == 100

    @pytest.mark.parametrize("scope", ["", "../x", "a/b", "x" * 200])
    def test_bad_scope(self, scope):
        with pytest.raises(ValidationError):
            make_storage_key(scope, "a.png", "image/png")

    def test_key_in_scope(self):
        assert key_in_scope("u1/abc.png", "u1")
        assert not key_in_scope("u2/abc.png", "u1")
        assert not key_in_scope("u1/../u2/abc.png", "u1")
        assert not key_in_scope(None, "u1")


@pytest.mark.asyncio
class TestLocalStorage:

    async def test_put_exists_delete(self, storage):
        key = await storage.put_object("u1", PNG_BYTES, "image/png", "shot.png")

        assert await storage.exists(key)
        assert (storage.root / key).read_bytes() == PNG_BYTES
        assert storage.public_url(key) == f"http://testserver/files/{key}"

        assert await storage.delete_object(key) is True
        assert not await storage.exists(key)
        assert await storage.delete_object(key) is False

    async def test_no_temp_files_left(self, storage):
        await storage.put_object("u1", PNG_BYTES, "image/png", "shot.png")
        leftovers = [p for p in storage.root.rglob(".upload-*")]
        assert leftovers == []

    async def test_rejects_traversal_keys(self, storage):
        assert not await storage.exists("../outside.png")
        with pytest.raises(ValidationError):
            await storage.delete_object("../outside.png")

    async def test_write_failure_is_storage_error(self, storage, monkeypatch):
        def fail(path, data):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(LocalStorage, "_write_atomic", staticmethod(fail))

        with pytest.raises(StorageError) as exc_info:
            await storage.put_object("u1", PNG_BYTES, "image/png", "shot.png")
        assert exc_info.value.status_code == 502

    async def test_health(self, storage):
        assert await storage.health_check()


def _supabase(handler) -> SupabaseStorage:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseStorage(SUPABASE_URL, "service-key", bucket="shots", client=client)


@pytest.mark.asyncio
class TestSupabaseStorage:

    async def test_put_object(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["headers"] = request.headers
            seen["body"] = request.content
            return httpx.Response(200, json={"Key": "shots/whatever"})

        storage = _supabase(handler)
        key = await storage.put_object("u1", PNG_BYTES, "image/png", "shot.png")

        assert seen["method"] == "POST"
        assert seen["path"] == f"/storage/v1/object/shots/{key}"
        assert seen["headers"]["authorization"] == "Bearer service-key"
        assert seen["headers"]["x-upsert"] == "false"
        assert seen["headers"]["content-type"] == "image/png"
        assert seen["body"] == PNG_BYTES
        assert storage.public_url(key) == f"{SUPABASE_URL}/storage/v1/object/public/shots/{key}"
        await storage.close()

    async def test_put_object_rejected(self):
        storage = _supabase(lambda request: httpx.Response(400, text=json.dumps({"error": "Duplicate"})))

        with pytest.raises(StorageError) as exc_info:
            await storage.put_object("u1", PNG_BYTES, "image/png", "shot.png")
        assert exc_info.value.details == {"status": 400}

    async def test_put_object_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(StorageError, match="unreachable"):
            await _supabase(handler).put_object("u1", PNG_BYTES, "image/png", "shot.png")

    async def test_exists(self):
        def handler(request):
            assert request.method == "HEAD"
            return httpx.Response(200 if request.url.path.endswith("here.png") else 404)

        storage = _supabase(handler)
        assert await storage.exists("u1/here.png")
        assert not await storage.exists("u1/gone.png")
        assert not await storage.exists("../bad")

    async def test_delete(self):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(200 if request.url.path.endswith("here.png") else 404)

        storage = _supabase(handler)
        assert await storage.delete_object("u1/here.png") is True
        assert await storage.delete_object("u1/gone.png") is False

    async def test_delete_server_error(self):
        storage = _supabase(lambda request: httpx.Response(500))
        with pytest.raises(StorageError):
            await storage.delete_object("u1/here.png")

    async def test_health(self):
        def handler(request):
            assert request.url.path == "/storage/v1/bucket/shots"
            return httpx.Response(200, json={"id": "shots"})

        assert await _supabase(handler).health_check()
        assert not await _supabase(lambda request: httpx.Response(401)).health_check()
