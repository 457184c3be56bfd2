from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from voicemix.app.config import get_settings
from voicemix.app.core.errors import PipelineError, StoreAuthError, StoreWriteError
from voicemix.app.ports.storage import IObjectStore

PUBLIC_BASE = "https://cdn.example.com"


class FakeStore(IObjectStore):
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str | None]] = {}
        self.calls: list[tuple] = []
        self.fail_sign_for: set[str] = set()
        self.fail_put = False
        self._grants = 0

    def put_object(self, key: str, body: bytes, content_type: str | None = None) -> str:
        self.calls.append(("put_object", key, content_type))
        if self.fail_put:
            raise StoreWriteError(f"put_object failed for {key}")
        self.objects[key] = (bytes(body), content_type)
        return key

    def signed_read_url(self, key: str, ttl_seconds: int) -> str:
        self.calls.append(("signed_read_url", key, ttl_seconds))
        if key in self.fail_sign_for:
            raise StoreAuthError(f"presign failed for {key}")
        self._grants += 1
        return f"https://signed.example.com/{key}?ttl={ttl_seconds}&grant={self._grants}"

    def public_url(self, key: str) -> str:
        return f"{PUBLIC_BASE}/{key}"

    @property
    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "put_object"]


class FakeMixer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Path]] = []
        self.payload = b"ID3fake-mp3"
        self.error: str | None = None
        self.write_partial = False
        self.skip_write = False
        self.delay = 0.0

    async def mix(self, voice_url: str, music_url: str, output_path: Path) -> Path:
        self.calls.append((voice_url, music_url, Path(output_path)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            if self.write_partial:
                Path(output_path).write_bytes(b"partial")
            raise PipelineError(self.error)
        if not self.skip_write:
            Path(output_path).write_bytes(self.payload)
        return Path(output_path)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def mixer() -> FakeMixer:
    return FakeMixer()


@pytest.fixture
def client(store, mixer):
    from voicemix.app.deps import get_mixer, get_object_store
    from voicemix.main import app

    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_mixer] = lambda: mixer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
