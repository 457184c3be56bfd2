from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from voicemix.app.core.errors import ConfigurationError, InvalidRequest, StagingIOError
from voicemix.app.core.logging_config import current_request_id
from voicemix.app.core.workspace import staged_output
from voicemix.app.ports.storage import IObjectStore
from voicemix.app.utils.keys import KeyBuilder

logger = logging.getLogger(__name__)

MP3_CONTENT_TYPE = "audio/mpeg"
DEFAULT_SIGNED_URL_TTL = 600


class Mixer(Protocol):
    async def mix(self, voice_url: str, music_url: str, output_path: Path) -> Path:
        ...


@dataclass(frozen=True)
class MixResult:
    output_key: str
    public_url: str


@dataclass(frozen=True)
class UploadResult:
    key: str
    public_url: str


class RenderOrchestrator:
    """
    Turns two stored input keys into one mixed MP3 in the store.

    Steps run strictly in order: validate, issue both signed URLs, mix into
    a staged temp file, read it, upload under a new output key. The staged
    file is removed whichever step fails.
    """

    def __init__(
        self,
        store: IObjectStore | None,
        mixer: Mixer,
        *,
        signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL,
        tmp_dir: Path | None = None,
    ):
        self.store = store
        self.mixer = mixer
        self.signed_url_ttl = signed_url_ttl
        self.tmp_dir = tmp_dir

    def _require_store(self) -> IObjectStore:
        if self.store is None:
            raise ConfigurationError("Storage is not configured")
        return self.store

    async def render(self, voice_key: str | None, music_key: str | None) -> MixResult:
        request_id = current_request_id() or uuid4().hex[:12]
        start_time = time.perf_counter()

        def log_stage(phase: str, **fields) -> None:
            logger.info(
                phase,
                extra={
                    "request_id": request_id,
                    "step": "render",
                    "phase": phase,
                    "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
                    **fields,
                },
            )

        voice_key = voice_key.strip() if isinstance(voice_key, str) else ""
        music_key = music_key.strip() if isinstance(music_key, str) else ""
        if not voice_key or not music_key:
            raise InvalidRequest("Missing voiceKey or musicKey")
        store = self._require_store()
        log_stage("VALIDATED", voice_key=voice_key, music_key=music_key)

        voice_url = await asyncio.to_thread(store.signed_read_url, voice_key, self.signed_url_ttl)
        music_url = await asyncio.to_thread(store.signed_read_url, music_key, self.signed_url_ttl)
        log_stage("URLS_ISSUED", ttl=self.signed_url_ttl)

        with staged_output(self.tmp_dir) as out_path:
            log_stage("MIX_START", staged=str(out_path))
            await self.mixer.mix(voice_url, music_url, out_path)
            log_stage("MIX_DONE")

            try:
                data = await asyncio.to_thread(out_path.read_bytes)
            except OSError as exc:
                raise StagingIOError(f"read staged output failed: {exc}", cause=exc) from exc
            log_stage("STAGED", size=len(data))

            output_key = KeyBuilder.output()
            await asyncio.to_thread(store.put_object, output_key, data, MP3_CONTENT_TYPE)
            log_stage("UPLOADED", output_key=output_key)

        result = MixResult(output_key=output_key, public_url=store.public_url(output_key))
        log_stage("DONE", output_key=output_key)
        return result

    async def upload(self, filename: str | None, data: bytes | None, content_type: str | None = None) -> UploadResult:
        if not data:
            raise InvalidRequest("Missing file")
        store = self._require_store()
        key = KeyBuilder.upload(filename)
        await asyncio.to_thread(store.put_object, key, data, content_type or None)
        logger.info("Uploaded %s", key, extra={"step": "upload", "phase": "UPLOADED"})
        return UploadResult(key=key, public_url=store.public_url(key))
