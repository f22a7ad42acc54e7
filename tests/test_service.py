"""Tests for service layer."""

import asyncio

import pytest

from conftest import GIF_BYTES, JPEG_BYTES, WEBP_BYTES
from snaplinks.database.models import AssetRecord
from snaplinks.errors import (
    AuthenticationRequiredError,
    CodeSpaceExhaustedError,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from snaplinks.identity import ANONYMOUS
from snaplinks.library import current_month
from snaplinks.service import ScreenshotService


def _stored_files(storage):
    return [p for p in storage.root.rglob("*") if p.is_file()]


class TestUpload:
    """Uploading images."""

    @pytest.mark.asyncio
    async def test_upload_png(self, service, storage, owner, png_bytes):
        record = await service.upload(owner, png_bytes, "shot.png", "image/png")

        assert record.owner_id == "u1"
        assert record.mime_type == "image/png"
        assert record.byte_size == len(png_bytes)
        assert record.is_public is True
        assert record.storage_key.startswith("u1/")
        assert await storage.exists(record.storage_key)
        assert service.public_url(record) == f"http://testserver/files/{record.storage_key}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data,mime_type",
        [(JPEG_BYTES, "image/jpeg"), (GIF_BYTES, "image/gif"), (WEBP_BYTES, "image/webp")],
    )
    async def test_upload_other_formats(self, service, owner, data, mime_type):
        record = await service.upload(owner, data, "image", mime_type)
        assert record.mime_type == mime_type

    @pytest.mark.asyncio
    async def test_type_sniffed_when_not_declared(self, service, owner, png_bytes):
        record = await service.upload(owner, png_bytes, "clipboard", content_type=None)
        assert record.mime_type == "image/png"
        assert record.storage_key.endswith(".png")

    @pytest.mark.asyncio
    async def test_private_upload(self, service, owner, png_bytes):
        record = await service.upload(owner, png_bytes, "shot.png", "image/png", is_public=False)
        assert record.is_public is False

    @pytest.mark.asyncio
    async def test_anonymous_upload_rejected(self, service, storage, png_bytes):
        with pytest.raises(AuthenticationRequiredError):
            await service.upload(ANONYMOUS, png_bytes, "shot.png", "image/png")
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_declared_type_must_match(self, service, owner, png_bytes):
        with pytest.raises(ValidationError, match="does not match"):
            await service.upload(owner, png_bytes, "shot.jpg", "image/jpeg")

    @pytest.mark.asyncio
    async def test_not_an_image(self, service, storage, owner):
        with pytest.raises(ValidationError, match="not a supported image"):
            await service.upload(owner, b"<html>hello</html>", "page.png", "image/png")
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_disallowed_type(self, test_db, storage, owner, png_bytes, logger):
        service = ScreenshotService(
            db=test_db, storage=storage, logger=logger, allowed_image_types=["image/jpeg"]
        )
        with pytest.raises(ValidationError, match="not allowed"):
            await service.upload(owner, png_bytes, "shot.png", "image/png")

    @pytest.mark.asyncio
    async def test_too_large(self, service, storage, owner, png_bytes):
        data = png_bytes + b"\x00" * service.max_upload_bytes
        with pytest.raises(QuotaExceededError) as exc_info:
            await service.upload(owner, data, "big.png", "image/png")
        assert exc_info.value.status_code == 413
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_empty_file(self, service, owner):
        with pytest.raises(ValidationError, match="empty"):
            await service.upload(owner, b"", "shot.png", "image/png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["", "   ", "../../etc/passwd", "dir/shot.png", "x" * 300])
    async def test_bad_filename(self, service, owner, png_bytes, filename):
        with pytest.raises(ValidationError):
            await service.upload(owner, png_bytes, filename, "image/png")

    @pytest.mark.asyncio
    async def test_stored_object_removed_when_registration_fails(
        self, test_db, storage, sequence_generator, owner, png_bytes, logger
    ):
        await test_db.insert_if_absent(
            AssetRecord(
                id="taken",
                owner_id="u9",
                storage_key="u9/taken.png",
                original_name="taken.png",
                mime_type="image/png",
                byte_size=1,
                short_code="ab12cd",
            )
        )
        service = ScreenshotService(
            db=test_db,
            storage=storage,
            short_code_generator=sequence_generator(["ab12cd"] * 10),
            logger=logger,
            max_collision_retries=2,
        )

        with pytest.raises(CodeSpaceExhaustedError):
            await service.upload(owner, png_bytes, "shot.png", "image/png")

        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_stored_object_removed_when_store_is_down(
        self, service, test_db, storage, owner, png_bytes, monkeypatch
    ):
        async def unreachable(record):
            raise ConnectionError("connection refused")

        monkeypatch.setattr(test_db, "insert_if_absent", unreachable)

        with pytest.raises(ConnectionError):
            await service.upload(owner, png_bytes, "shot.png", "image/png")
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_stored_object_removed_when_cancelled(
        self, service, test_db, storage, owner, png_bytes, monkeypatch
    ):
        inserting = asyncio.Event()

        async def hanging_insert(record):
            inserting.set()
            await asyncio.Event().wait()

        monkeypatch.setattr(test_db, "insert_if_absent", hanging_insert)

        task = asyncio.create_task(service.upload(owner, png_bytes, "shot.png", "image/png"))
        await inserting.wait()
        assert len(_stored_files(storage)) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_storage_failure(self, service, storage, owner, png_bytes, monkeypatch):
        async def broken_put(*args, **kwargs):
            raise StorageError("disk full")

        monkeypatch.setattr(storage, "put_object", broken_put)

        with pytest.raises(StorageError):
            await service.upload(owner, png_bytes, "shot.png", "image/png")
        assert (await service.get_statistics())["total_assets"] == 0


class TestBatchUpload:
    """Uploading several files at once."""

    @pytest.mark.asyncio
    async def test_each_file_reported(self, service, storage, owner, png_bytes):
        outcomes = await service.upload_batch(
            owner,
            [
                (png_bytes, "one.png", "image/png"),
                (b"<html>hello</html>", "page.png", "image/png"),
                (JPEG_BYTES, "two.jpg", "image/jpeg"),
            ],
            is_public=False,
        )

        assert [o.filename for o in outcomes] == ["one.png", "page.png", "two.jpg"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, ValidationError)
        assert all(not o.record.is_public for o in outcomes if o.ok)
        assert len(_stored_files(storage)) == 2

    @pytest.mark.asyncio
    async def test_anonymous_batch_rejected(self, service, png_bytes):
        with pytest.raises(AuthenticationRequiredError):
            await service.upload_batch(ANONYMOUS, [(png_bytes, "one.png", "image/png")])

    @pytest.mark.asyncio
    async def test_store_outage_stops_batch(self, service, test_db, storage, owner, png_bytes, monkeypatch):
        async def unreachable(record):
            raise ConnectionError("connection refused")

        monkeypatch.setattr(test_db, "insert_if_absent", unreachable)

        with pytest.raises(ConnectionError):
            await service.upload_batch(owner, [(png_bytes, "one.png", "image/png")] * 2)
        assert _stored_files(storage) == []


class TestRegisterStored:
    """Registering bytes the client put in storage itself."""

    @pytest.mark.asyncio
    async def test_register_existing_object(self, service, storage, owner, png_bytes):
        key = await storage.put_object("u1", png_bytes, "image/png", "shot.png")

        record = await service.register_stored(owner, key, "shot.png", "image/png", len(png_bytes))

        assert record.storage_key == key
        assert (await service.link_info(record.short_code, owner)).record.id == record.id

    @pytest.mark.asyncio
    async def test_key_outside_scope(self, service, storage, owner, png_bytes):
        key = await storage.put_object("u2", png_bytes, "image/png", "shot.png")
        with pytest.raises(ValidationError, match="does not belong"):
            await service.register_stored(owner, key, "shot.png", "image/png", len(png_bytes))

    @pytest.mark.asyncio
    async def test_missing_object(self, service, owner):
        with pytest.raises(ValidationError, match="No stored object"):
            await service.register_stored(owner, "u1/nothinghere.png", "shot.png", "image/png", 10)

    @pytest.mark.asyncio
    async def test_disallowed_type(self, service, storage, owner, png_bytes):
        key = await storage.put_object("u1", png_bytes, "image/png", "shot.png")
        with pytest.raises(ValidationError):
            await service.register_stored(owner, key, "shot.svg", "image/svg+xml", len(png_bytes))

    @pytest.mark.asyncio
    async def test_declared_size_over_limit(self, service, storage, owner, png_bytes):
        key = await storage.put_object("u1", png_bytes, "image/png", "shot.png")
        with pytest.raises(QuotaExceededError):
            await service.register_stored(owner, key, "shot.png", "image/png", service.max_upload_bytes + 1)


class TestBrowsing:
    """Listing and reading an owner's uploads."""

    @pytest.mark.asyncio
    async def test_list_current_month(self, service, owner, stranger, png_bytes):
        first = await service.upload(owner, png_bytes, "invoice-march.png", "image/png")
        second = await service.upload(owner, png_bytes, "cat.png", "image/png")
        await service.upload(stranger, png_bytes, "other.png", "image/png")

        records = await service.list_assets(owner)

        assert [r.id for r in records] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_list_with_search(self, service, owner, png_bytes):
        await service.upload(owner, png_bytes, "Invoice-March.png", "image/png")
        await service.upload(owner, png_bytes, "cat.png", "image/png")

        records = await service.list_assets(owner, month=current_month(), search="invoice")

        assert [r.original_name for r in records] == ["Invoice-March.png"]

    @pytest.mark.asyncio
    async def test_list_other_month_is_empty(self, service, owner, png_bytes):
        await service.upload(owner, png_bytes, "cat.png", "image/png")
        assert await service.list_assets(owner, month="2001-01") == []

    @pytest.mark.asyncio
    async def test_list_bad_month(self, service, owner):
        with pytest.raises(ValidationError):
            await service.list_assets(owner, month="March")

    @pytest.mark.asyncio
    async def test_list_other_owner_needs_admin(self, service, owner, stranger, admin, png_bytes):
        await service.upload(owner, png_bytes, "cat.png", "image/png")

        with pytest.raises(UnauthorizedError):
            await service.list_assets(stranger, owner_id="u1")
        assert len(await service.list_assets(admin, owner_id="u1")) == 1

    @pytest.mark.asyncio
    async def test_get_asset_hidden_from_strangers(self, service, owner, stranger, png_bytes):
        record = await service.upload(owner, png_bytes, "cat.png", "image/png")

        assert (await service.get_asset(record.id, owner)).id == record.id
        with pytest.raises(NotFoundError):
            await service.get_asset(record.id, stranger)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_bytes(self, service, storage, owner, png_bytes):
        record = await service.upload(owner, png_bytes, "cat.png", "image/png")

        assert await service.delete_asset(record.id, owner) is True

        assert not await storage.exists(record.storage_key)
        with pytest.raises(NotFoundError):
            await service.resolve(record.short_code, owner)

    @pytest.mark.asyncio
    async def test_delete_unknown_is_noop(self, service, owner):
        assert await service.delete_asset("missing", owner) is False

    @pytest.mark.asyncio
    async def test_delete_survives_missing_bytes(self, service, storage, owner, png_bytes):
        record = await service.upload(owner, png_bytes, "cat.png", "image/png")
        await storage.delete_object(record.storage_key)

        assert await service.delete_asset(record.id, owner) is True

    @pytest.mark.asyncio
    async def test_visibility_requires_login(self, service, owner, png_bytes):
        record = await service.upload(owner, png_bytes, "cat.png", "image/png")
        with pytest.raises(AuthenticationRequiredError):
            await service.set_visibility(record.id, False, ANONYMOUS)


class TestAccountsAndStatus:

    @pytest.mark.asyncio
    async def test_accounts_not_configured(self, service, admin):
        with pytest.raises(NotFoundError, match="not configured"):
            await service.list_accounts(admin)

    @pytest.mark.asyncio
    async def test_accounts_need_admin(self, service, owner):
        with pytest.raises(UnauthorizedError):
            await service.list_accounts(owner)
        with pytest.raises(AuthenticationRequiredError):
            await service.create_account(ANONYMOUS, "a@b.co", "password123")

    @pytest.mark.asyncio
    async def test_admin_cannot_delete_self(self, service, admin):
        with pytest.raises(ValidationError):
            await service.delete_account(admin, "admin1")

    @pytest.mark.asyncio
    async def test_statistics(self, service, owner, stranger, png_bytes):
        record = await service.upload(owner, png_bytes, "cat.png", "image/png")
        await service.upload(stranger, png_bytes, "dog.png", "image/png")
        await service.resolve(record.short_code, ANONYMOUS)

        stats = await service.get_statistics()

        assert stats["total_assets"] == 2
        assert stats["total_views"] == 1
        assert stats["total_owners"] == 2
        assert stats["cache_enabled"] is False
        assert stats["max_upload_bytes"] == service.max_upload_bytes

    @pytest.mark.asyncio
    async def test_health_check(self, service):
        health = await service.health_check()
        assert health == {"database": True, "storage": True, "cache": True, "overall": True}
