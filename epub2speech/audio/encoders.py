"""Audio encoders - per-format candidates with fallback ordering."""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from epub2speech.audio.audio_utils import find_executable, get_ffmpeg
from epub2speech.errors import EncoderNotFoundError, EncodingError
from epub2speech.models import AudioFormat

logger = logging.getLogger(__name__)


def vorbis_quality(quality: float) -> int:
    """0.0-1.0 -> oggenc/libvorbis quality 0-10."""
    return int(quality * 10)


def flac_level(quality: float) -> int:
    """0.0-1.0 -> FLAC compression level 0-8."""
    return round(quality * 8)


def lame_vbr(quality: float) -> int:
    """0.0-1.0 -> LAME VBR setting 9 (worst) - 0 (best)."""
    return int(9 - quality * 9)


class AudioEncoder(ABC):
    """Converts a cached WAV into one target format."""

    name: str = ""

    def __init__(self):
        self._path: Optional[str] = None

    def resolve(self) -> Optional[str]:
        return find_executable(self.name)

    def is_available(self) -> bool:
        self._path = self.resolve()
        return self._path is not None

    @abstractmethod
    def build_command(
        self, input_path: Path, output_path: Path, fmt: AudioFormat, quality: float
    ) -> list[str]:
        ...

    def encode(self, input_path: Path, output_path: Path, fmt: AudioFormat, quality: float) -> None:
        """Encode ``input_path`` into ``output_path``.

        Raises:
            EncodingError: If the encoder exits non-zero.
        """
        if self._path is None:
            self._path = self.resolve() or self.name
        cmd = self.build_command(input_path, output_path, fmt, quality)
        cmd[0] = self._path
        logger.debug("Encoding %s -> %s with %s", input_path.name, output_path.name, self.name)

        try:
            result = subprocess.run(cmd, capture_output=True)
        except OSError as e:
            raise EncodingError(f"Cannot run {self.name}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise EncodingError(
                f"{self.name} {fmt.value} encoding failed (exit {result.returncode}): {stderr}"
            )


class CopyEncoder(AudioEncoder):
    """WAV output: the cached waveform is already the target."""

    name = "copy"

    def resolve(self) -> Optional[str]:
        return self.name

    def build_command(self, input_path, output_path, fmt, quality):
        return []

    def encode(self, input_path: Path, output_path: Path, fmt: AudioFormat, quality: float) -> None:
        shutil.copyfile(input_path, output_path)


class OggencEncoder(AudioEncoder):
    name = "oggenc"

    def build_command(self, input_path, output_path, fmt, quality):
        return [
            self.name, "--quiet",
            "-q", str(vorbis_quality(quality)),
            "-o", str(output_path),
            str(input_path),
        ]


class FlacEncoder(AudioEncoder):
    name = "flac"

    def build_command(self, input_path, output_path, fmt, quality):
        return [
            self.name, "--silent", "--force",
            f"--compression-level-{flac_level(quality)}",
            "-o", str(output_path),
            str(input_path),
        ]


class LameEncoder(AudioEncoder):
    name = "lame"

    def build_command(self, input_path, output_path, fmt, quality):
        return [
            self.name, "--quiet",
            "-V", str(lame_vbr(quality)),
            str(input_path),
            str(output_path),
        ]


class FfmpegEncoder(AudioEncoder):
    """Last-resort encoder for every compressed format.

    Falls back to the bundled static-ffmpeg binary when none is on PATH.
    """

    name = "ffmpeg"

    def resolve(self) -> Optional[str]:
        return get_ffmpeg()

    def build_command(self, input_path, output_path, fmt, quality):
        if fmt is AudioFormat.VORBIS:
            codec = ["-c:a", "libvorbis", "-q:a", str(vorbis_quality(quality))]
        elif fmt is AudioFormat.FLAC:
            codec = ["-c:a", "flac", "-compression_level", str(flac_level(quality))]
        elif fmt is AudioFormat.MP3:
            codec = ["-c:a", "libmp3lame", "-q:a", str(lame_vbr(quality))]
        else:
            codec = ["-c:a", "pcm_s16le"]
        return [
            self.name, "-y", "-hide_banner", "-loglevel", "error",
            "-i", str(input_path),
            *codec,
            str(output_path),
        ]


# Candidates per format, most preferred first
ENCODER_PREFERENCES: dict[AudioFormat, list[type[AudioEncoder]]] = {
    AudioFormat.VORBIS: [OggencEncoder, FfmpegEncoder],
    AudioFormat.FLAC: [FlacEncoder, FfmpegEncoder],
    AudioFormat.MP3: [LameEncoder, FfmpegEncoder],
    AudioFormat.WAV: [CopyEncoder],
}


def probe_encoders(fmt: AudioFormat) -> dict[str, bool]:
    """Availability of every candidate encoder for ``fmt``, in preference order."""
    return {cls.name: cls().is_available() for cls in ENCODER_PREFERENCES[fmt]}


def select_encoder(fmt: AudioFormat) -> AudioEncoder:
    """Return the first available encoder for ``fmt``.

    Raises:
        EncoderNotFoundError: If no candidate is installed.
    """
    candidates = ENCODER_PREFERENCES[fmt]
    for cls in candidates:
        encoder = cls()
        if encoder.is_available():
            logger.info("Using %s encoder: %s", fmt.value, encoder.name)
            return encoder
    raise EncoderNotFoundError(fmt, [cls.name for cls in candidates])
