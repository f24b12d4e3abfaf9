"""Content-addressed cache of synthesized waveforms."""

import hashlib
import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import Callable

from epub2speech.errors import OutputError
from epub2speech.models import VoiceParameters

logger = logging.getLogger(__name__)

# speed, pitch as big-endian float64, sample rate as big-endian uint32
_VOICE_LAYOUT = ">ddI"


def cache_key(text: str, voice: VoiceParameters, engine: str = "") -> str:
    """Return the hex SHA-256 digest identifying a rendered waveform.

    ``engine`` is the name of the TTS engine; two engines never share
    cached audio for the same text and voice.
    """
    hasher = hashlib.sha256()
    hasher.update(text.encode("utf-8"))
    hasher.update(struct.pack(_VOICE_LAYOUT, voice.speed, voice.pitch, voice.sample_rate))
    if engine:
        hasher.update(b"\x00" + engine.encode("utf-8"))
    return hasher.hexdigest()


class SpeechCache:
    """Maps cache keys to WAV files under ``cache_dir``.

    Entries are written to a temporary file and renamed into place, so a
    reader never sees a partial file. Concurrent misses on the same key may
    both synthesize; the last rename wins over identical content.

    When disabled, every call synthesizes into an ephemeral file that the
    caller must delete.
    """

    def __init__(self, cache_dir: str | Path, enabled: bool = True):
        self.cache_dir = Path(cache_dir)
        self.enabled = enabled
        if enabled:
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise OutputError(f"Cannot create cache directory {self.cache_dir}: {e}") from e

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}.wav"

    def get_or_create(self, key: str, generator: Callable[[], bytes]) -> Path:
        if not self.enabled:
            data = generator()
            fd, tmp = tempfile.mkstemp(prefix="e2s_", suffix=".wav")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return Path(tmp)

        path = self.path_for(key)
        if path.exists():
            logger.debug("Cache hit: %s", key)
            return path

        logger.debug("Cache miss: %s", key)
        data = generator()
        self._write_atomic(path, data)
        return path

    def _write_atomic(self, path: Path, data: bytes) -> None:
        try:
            fd, tmp = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{path.stem[:16]}_", suffix=".tmp")
        except OSError as e:
            raise OutputError(f"Cache directory not writable: {self.cache_dir}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise OutputError(f"Cannot write cache entry {path}: {e}") from e
