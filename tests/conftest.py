"""Pytest configuration and fixtures."""

import base64
from typing import AsyncGenerator, Iterable

import pytest
from httpx import ASGITransport, AsyncClient

from config import Config
from snaplinks.database.memory import AssetMemoryDB
from snaplinks.database.models import AssetDraft
from snaplinks.identity import Requester, Role, StaticTokenIdentityProvider, parse_token_table
from snaplinks.service import ScreenshotService
from snaplinks.shortcode import ShortCodeGenerator
from snaplinks.storage.local import LocalStorage
from snaplinks.common.logging_config import setup_logging
from web_app import create_app


# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32
GIF_BYTES = b"GIF89a\x01\x00\x01\x00\x80\x00\x00" + b"\x00" * 16
WEBP_BYTES = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 24

API_TOKENS = [
    "owner-token:u1",
    "other-token:u2",
    "admin-token:admin1:admin",
]


class SequenceCodeGenerator(ShortCodeGenerator):
    """Hands out a fixed sequence of codes, then falls back to random ones."""

    def __init__(self, codes: Iterable[str], default_length: int = 6):
        super().__init__(default_length=default_length)
        self.codes = list(codes)
        self.issued = []

    def generate(self, length=None) -> str:
        code = self.codes.pop(0) if self.codes else super().generate(length)
        self.issued.append(code)
        return code


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
async def test_db(logger) -> AsyncGenerator[AssetMemoryDB, None]:
    """Create test database instance."""
    db = AssetMemoryDB(logger=logger)
    yield db
    await db.close()


@pytest.fixture
def storage(tmp_path, logger) -> LocalStorage:
    return LocalStorage(
        root=str(tmp_path / "uploads"),
        public_base_url="http://testserver/files",
        logger=logger,
    )


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator(default_length=8)


@pytest.fixture
def sequence_generator():
    """Factory for generators with scripted codes."""
    return SequenceCodeGenerator


@pytest.fixture
async def service(test_db, storage, short_code_generator, logger) -> ScreenshotService:
    """Create service instance."""
    service = ScreenshotService(
        db=test_db,
        storage=storage,
        cache=None,  # No cache for tests
        short_code_generator=short_code_generator,
        logger=logger,
        max_upload_bytes=1024 * 1024,
    )
    yield service
    await service.close()


@pytest.fixture
def owner():
    return Requester(user_id="u1", role=Role.USER)


@pytest.fixture
def stranger():
    return Requester(user_id="u2", role=Role.USER)


@pytest.fixture
def admin():
    return Requester(user_id="admin1", role=Role.ADMIN)


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def make_draft():
    """Build drafts with sensible defaults."""
    def _make(**overrides) -> AssetDraft:
        fields = {
            "owner_id": "u1",
            "storage_key": "u1/0123456789abcdef.png",
            "original_name": "shot.png",
            "mime_type": "image/png",
            "byte_size": len(PNG_BYTES),
            "is_public": True,
        }
        fields.update(overrides)
        return AssetDraft(**fields)
    return _make


@pytest.fixture
def config(tmp_path):
    return Config(
        _env_file=None,
        base_url="http://testserver",
        storage_root=str(tmp_path / "uploads"),
        api_tokens=API_TOKENS,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
async def app(service, config, logger):
    """Create test FastAPI app."""
    identity = StaticTokenIdentityProvider(parse_token_table(config.api_tokens), logger=logger)
    return create_app(
        service_instance=service,
        identity_instance=identity,
        config=config,
        logger=logger,
    )


@pytest.fixture
async def client(app):
    """Create test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
