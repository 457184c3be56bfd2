import re
from uuid import uuid4

UPLOADS_PREFIX = "uploads"
OUTPUT_PREFIX = "output"

_WHITESPACE_RE = re.compile(r"\s+")


class KeyBuilder:
    """
    Object key factory.
    Uploads:  uploads/{uuid}-{original_name}
    Mixes:    output/{uuid}.mp3
    Every call returns a new key; keys are never reused.
    """

    @staticmethod
    def upload(original_name: str | None) -> str:
        name = (original_name or "").strip() or "upload.bin"
        name = _WHITESPACE_RE.sub("-", name.replace("\\", "/").split("/")[-1]) or "upload.bin"
        return f"{UPLOADS_PREFIX}/{uuid4()}-{name}"

    @staticmethod
    def output(extension: str = "mp3") -> str:
        return f"{OUTPUT_PREFIX}/{uuid4()}.{extension.lstrip('.')}"
