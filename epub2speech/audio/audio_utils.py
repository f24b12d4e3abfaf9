"""Audio utility functions - executable discovery, ffmpeg paths and WAV normalization."""

import io
import logging
import shutil
import subprocess
import wave
from functools import lru_cache
from typing import Optional

import static_ffmpeg

from epub2speech.errors import SynthesisError

logger = logging.getLogger(__name__)


def find_executable(name: str) -> Optional[str]:
    """Return the full path of ``name`` on PATH, or None."""
    return shutil.which(name)


@lru_cache(maxsize=1)
def get_bundled_ffmpeg() -> Optional[str]:
    """Return the static-ffmpeg binary, downloading it on first use.

    Returns None when it cannot be obtained (offline, unsupported platform).
    """
    try:
        ffmpeg_path, _ = static_ffmpeg.run.get_or_fetch_platform_executables_else_raise()
    except Exception as e:
        logger.debug("Bundled ffmpeg unavailable: %s", e)
        return None
    return ffmpeg_path


def get_ffmpeg() -> Optional[str]:
    """Return the ffmpeg on PATH, falling back to the bundled one."""
    return find_executable("ffmpeg") or get_bundled_ffmpeg()


def read_wav(data: bytes) -> tuple:
    """Parse WAV bytes, tolerating streamed headers with bogus sizes."""
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            params = wav.getparams()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as e:
        raise SynthesisError(f"Engine produced invalid WAV output: {e}") from e
    return params, frames


def write_wav(params, frames: bytes) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(params.nchannels)
        wav.setsampwidth(params.sampwidth)
        wav.setframerate(params.framerate)
        wav.writeframes(frames)
    return buf.getvalue()


_warned_no_resampler = False


def normalize_wav(data: bytes, sample_rate: int) -> bytes:
    """Rewrite raw engine output as a well-formed WAV at ``sample_rate``.

    Resampling goes through ffmpeg. Without one, the native rate is kept.
    """
    global _warned_no_resampler

    if not data:
        raise SynthesisError("Engine produced no audio")

    params, frames = read_wav(data)
    if not frames:
        raise SynthesisError("Engine produced an empty waveform")

    wav_bytes = write_wav(params, frames)
    if params.framerate == sample_rate:
        return wav_bytes

    ffmpeg = get_ffmpeg()
    if ffmpeg is None:
        if not _warned_no_resampler:
            logger.warning(
                "ffmpeg not available, keeping native sample rate %d Hz instead of %d Hz",
                params.framerate, sample_rate,
            )
            _warned_no_resampler = True
        return wav_bytes

    return resample_wav(ffmpeg, wav_bytes, sample_rate)


def resample_wav(ffmpeg: str, wav_bytes: bytes, sample_rate: int) -> bytes:
    result = subprocess.run(
        [
            ffmpeg, "-hide_banner", "-loglevel", "error",
            "-f", "wav", "-i", "pipe:0",
            "-ar", str(sample_rate),
            "-f", "wav", "pipe:1",
        ],
        input=wav_bytes,
        capture_output=True,
    )
    if result.returncode != 0:
        raise SynthesisError(
            f"Resampling to {sample_rate} Hz failed: {result.stderr.decode(errors='replace').strip()}"
        )
    # ffmpeg streams the header with unknown sizes; rewrite it
    params, frames = read_wav(result.stdout)
    return write_wav(params, frames)
