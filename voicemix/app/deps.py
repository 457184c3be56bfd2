"""FastAPI dependency providers for the object store, mixer and orchestrator."""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from voicemix.app.adapters.storage_r2 import R2ObjectStore
from voicemix.app.config import Settings, StorageConfig, get_settings
from voicemix.app.core.errors import ConfigurationError
from voicemix.app.ports.storage import IObjectStore
from voicemix.app.services.mixer import FfmpegMixer
from voicemix.app.services.render import RenderOrchestrator

logger = logging.getLogger(__name__)


def create_object_store(settings: Settings) -> IObjectStore | None:
    """Build the store, or log why it can't be built and return None."""
    try:
        config = StorageConfig.from_settings(settings)
    except ConfigurationError as exc:
        logger.warning("Object store disabled: %s", "; ".join(exc.problems))
        return None
    logger.info("Object store ready bucket=%s endpoint=%s", config.bucket, config.endpoint)
    return R2ObjectStore(config)


def create_mixer(settings: Settings) -> FfmpegMixer:
    return FfmpegMixer(settings.ffmpeg_bin, timeout_sec=settings.mix_timeout_sec)


def get_object_store(request: Request) -> IObjectStore | None:
    # None when storage failed to configure; the orchestrator reports it after validating input.
    return getattr(request.app.state, "object_store", None)


def get_mixer(request: Request) -> FfmpegMixer:
    mixer = getattr(request.app.state, "mixer", None)
    if mixer is None:
        mixer = create_mixer(get_settings())
        request.app.state.mixer = mixer
    return mixer


def get_orchestrator(
    store: IObjectStore | None = Depends(get_object_store),
    mixer: FfmpegMixer = Depends(get_mixer),
) -> RenderOrchestrator:
    return RenderOrchestrator(store, mixer, signed_url_ttl=get_settings().signed_url_ttl_sec)
