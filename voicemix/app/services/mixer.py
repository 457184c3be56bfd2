from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from voicemix.app.core.errors import PipelineError

logger = logging.getLogger(__name__)

DEFAULT_MIX_TIMEOUT_SEC = 600.0
STDERR_TAIL = 800


@dataclass(frozen=True)
class MixSpec:
    # Music sits at 0.8 of the voice so narration stays intelligible.
    voice_gain: float = 1.0
    music_gain: float = 0.8
    channels: int = 2
    sample_rate: int = 44100
    bitrate: str = "192k"

    def filter_graph(self) -> str:
        return (
            f"[0:a]volume={self.voice_gain}[a0];"
            f"[1:a]volume={self.music_gain}[a1];"
            "[a0][a1]amix=inputs=2:duration=shortest:dropout_transition=0[a]"
        )


class FfmpegMixer:
    """Mixes a voice track over a music track with one ffmpeg process per call."""

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        *,
        spec: MixSpec | None = None,
        timeout_sec: float | None = DEFAULT_MIX_TIMEOUT_SEC,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.spec = spec or MixSpec()
        self.timeout_sec = timeout_sec

    def ffmpeg_path(self) -> str | None:
        return shutil.which(self.ffmpeg_bin)

    def ffmpeg_status(self) -> dict:
        path = self.ffmpeg_path()
        return {"path": path or self.ffmpeg_bin, "exists": bool(path)}

    def build_command(self, voice_url: str, music_url: str, output_path: Path, ffmpeg: str | None = None) -> list[str]:
        spec = self.spec
        return [
            ffmpeg or self.ffmpeg_bin,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i",
            voice_url,
            "-i",
            music_url,
            "-filter_complex",
            spec.filter_graph(),
            "-map",
            "[a]",
            "-ac",
            str(spec.channels),
            "-ar",
            str(spec.sample_rate),
            "-b:a",
            spec.bitrate,
            "-f",
            "mp3",
            str(output_path),
        ]

    async def mix(self, voice_url: str, music_url: str, output_path: Path) -> Path:
        ffmpeg = self.ffmpeg_path()
        if not ffmpeg:
            raise PipelineError(f"ffmpeg not found in PATH ({self.ffmpeg_bin})")

        output_path = Path(output_path)
        cmd = self.build_command(voice_url, music_url, output_path, ffmpeg=ffmpeg)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise PipelineError(f"ffmpeg could not start: {exc}", cause=exc) from exc

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_sec)
        except asyncio.TimeoutError:
            await _kill(proc)
            raise PipelineError(f"ffmpeg timed out after {self.timeout_sec}s")
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        if proc.returncode != 0:
            tail = stderr.decode("utf-8", errors="replace")[-STDERR_TAIL:]
            raise PipelineError(f"ffmpeg exited with {proc.returncode}: {tail}")
        if not output_path.exists() or output_path.stat().st_size == 0:
            raise PipelineError(f"ffmpeg output missing: {output_path}")
        return output_path


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()
