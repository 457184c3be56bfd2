import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from voicemix.app.core.errors import VoicemixError
from voicemix.app.deps import get_orchestrator
from voicemix.app.services.render import RenderOrchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


class RenderRequest(BaseModel):
    # Optional so that missing keys get our 400, not FastAPI's 422.
    voiceKey: Optional[str] = None
    musicKey: Optional[str] = None


def error_response(exc: VoicemixError, default: str) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", default, exc.message, exc_info=exc)
    else:
        logger.info("%s: %s", default, exc.message)
    return JSONResponse(
        {"ok": False, "error": exc.public_message(default)},
        status_code=exc.status_code,
    )


@router.post("/render")
async def render_mix(
    payload: Optional[RenderRequest] = None,
    orchestrator: RenderOrchestrator = Depends(get_orchestrator),
):
    payload = payload or RenderRequest()
    try:
        result = await orchestrator.render(payload.voiceKey, payload.musicKey)
    except VoicemixError as exc:
        return error_response(exc, "Render failed")
    except Exception:
        logger.exception("Render failed")
        return JSONResponse({"ok": False, "error": "Render failed"}, status_code=500)
    return {"ok": True, "outputKey": result.output_key, "url": result.public_url}
