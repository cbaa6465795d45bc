"""pytest fixtures for the generation engine tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- settings: Test settings (file-backed SQLite in tmp_path, no poll delays)
- engine / session_factory / uow_factory: Fresh schema per test
- store: MediaStore rooted in tmp_path
- fake_transport: Records calls and replays scripted responses
- png_bytes / png_b64: Small two-color PNG built with Pillow
"""

import base64
import io
import os
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncEngine

from illustrate.core.config import Settings
from illustrate.core.database import create_engine, init_db, setup_db_session
from illustrate.services.artifacts.storage import MediaStore
from illustrate.services.transport import ResponseEnvelope
from illustrate.uow import create_uow_factory


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        APP_ENV="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        MEDIA_DIR=str(tmp_path / "media"),
        POLL_INTERVAL_SCALE=0,
        MAX_PARALLEL_REQUESTS=4,
        REPLICATE_API_TOKEN="r8_test",
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(settings.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return setup_db_session(engine=engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    return create_uow_factory(session_factory)


@pytest.fixture
def store(tmp_path) -> MediaStore:
    return MediaStore(tmp_path / "media")


@pytest.fixture
def png_bytes() -> bytes:
    """100x50 PNG: left half red, right half blue."""
    img = Image.new("RGB", (100, 50), (220, 30, 30))
    img.paste((30, 30, 220), (50, 0, 100, 50))
    buffer = io.BytesIO()
    img.save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def png_b64(png_bytes: bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


class FakeTransport:
    """Stands in for HttpTransport.

    ``responses`` is consumed in order by ``perform``; an exception instance
    in the list is raised instead of returned. ``downloads`` maps URLs to bytes.
    Once the scripted responses run out, ``default`` is returned.
    """

    def __init__(self, responses: list | None = None, default: ResponseEnvelope | None = None):
        self.responses = list(responses or [])
        self.default = default
        self.downloads: dict[str, bytes] = {}
        self.calls: list[dict[str, Any]] = []
        self.download_calls: list[dict[str, Any]] = []

    async def perform(
        self, url, method="POST", body=None, headers=None, attachments=None, params=None
    ):
        self.calls.append(
            {
                "url": url,
                "method": method,
                "body": body,
                "headers": headers or {},
                "attachments": attachments,
                "params": params,
            }
        )
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default
        else:
            raise AssertionError(f"Unexpected request to {url}")
        if isinstance(response, Exception):
            raise response
        return response

    async def download(self, url, headers=None, params=None) -> bytes:
        self.download_calls.append({"url": url, "headers": headers, "params": params})
        return self.downloads[url]

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()

