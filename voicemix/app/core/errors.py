from typing import Optional


class VoicemixError(Exception):
    """Base for failures raised while serving an upload or render request."""

    status_code = 500
    # Only messages of exposed errors are returned to the caller.
    expose = False

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def public_message(self, default: str) -> str:
        return self.message if self.expose else default


class InvalidRequest(VoicemixError):
    """Caller input is missing or malformed."""

    status_code = 400
    expose = True


class ConfigurationError(VoicemixError):
    """Storage settings are missing or malformed."""

    status_code = 503
    expose = True

    def __init__(self, message: str, *, problems: Optional[list[str]] = None):
        super().__init__(message)
        self.problems = list(problems or [])


class StoreAuthError(VoicemixError):
    """The object store rejected our credentials while issuing a signed URL."""


class StoreWriteError(VoicemixError):
    """Writing an object to the store failed."""


class PipelineError(VoicemixError):
    """ffmpeg failed, timed out or could not read its inputs."""


class StagingIOError(VoicemixError):
    """Reading the locally staged mix output failed."""
