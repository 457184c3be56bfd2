import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from voicemix.app.config import get_settings
from voicemix.app.core.errors import VoicemixError
from voicemix.app.deps import get_orchestrator
from voicemix.app.services.render import RenderOrchestrator
from voicemix.routes.render import error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/upload")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    orchestrator: RenderOrchestrator = Depends(get_orchestrator),
):
    if file is None:
        return JSONResponse({"ok": False, "error": "Missing file"}, status_code=400)

    limit = get_settings().max_upload_bytes
    data = await file.read(limit + 1)
    if len(data) > limit:
        return JSONResponse({"ok": False, "error": "File too large"}, status_code=413)

    try:
        result = await orchestrator.upload(file.filename, data, file.content_type)
    except VoicemixError as exc:
        return error_response(exc, "Upload failed")
    except Exception:
        logger.exception("Upload failed")
        return JSONResponse({"ok": False, "error": "Upload failed"}, status_code=500)
    return {"ok": True, "key": result.key, "url": result.public_url}
