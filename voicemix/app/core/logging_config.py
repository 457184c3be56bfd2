import logging
import os
from contextvars import ContextVar, Token
from typing import Optional
from uuid import uuid4

REQUEST_ID_HEADER = "X-Request-ID"

_CONFIGURED = False
_request_id: ContextVar[Optional[str]] = ContextVar("voicemix_request_id", default=None)


def new_request_id() -> str:
    return uuid4().hex[:12]


def bind_request_id(request_id: Optional[str] = None) -> Token:
    """Tag every log line emitted in the current context with ``request_id``."""
    return _request_id.set((request_id or "").strip()[:64] or new_request_id())


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> Optional[str]:
    return _request_id.get()


class SafeFormatter(logging.Formatter):
    """key=value formatter; fields a record doesn't carry print as ``-``."""

    def format(self, record: logging.LogRecord) -> str:
        if "request" not in record.__dict__:
            record.__dict__["request"] = record.__dict__.get("request_id") or current_request_id() or "-"
        for key in ("step", "phase", "elapsed_ms"):
            if key not in record.__dict__:
                record.__dict__[key] = "-"
        return super().format(record)


def configure_logging(level: Optional[str] = None) -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    level_name = (
        level
        or os.getenv("APP_LOG_LEVEL")
        or os.getenv("UVICORN_LOG_LEVEL")
        or os.getenv("LOG_LEVEL")
        or "INFO"
    ).upper()
    resolved_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        fmt = (
            "%(levelname)s %(name)s "
            "request=%(request)s step=%(step)s phase=%(phase)s "
            "elapsed_ms=%(elapsed_ms)s "
            "%(message)s"
        )
        handler = logging.StreamHandler()
        handler.setFormatter(SafeFormatter(fmt))
        root.addHandler(handler)

    root.setLevel(resolved_level)
    # botocore is chatty at DEBUG (signing, retries); keep it at WARNING unless asked.
    logging.getLogger("botocore").setLevel(max(resolved_level, logging.WARNING))
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(resolved_level)

    _CONFIGURED = True
