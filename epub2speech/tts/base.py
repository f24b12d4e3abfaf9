"""Abstract base class for TTS engines."""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

from epub2speech.audio.audio_utils import find_executable, normalize_wav
from epub2speech.errors import SynthesisError
from epub2speech.models import VoiceParameters

logger = logging.getLogger(__name__)


class TTSEngine(ABC):
    """An external speech synthesizer invoked as a subprocess.

    Subclasses describe the executable and how voice parameters map onto
    its command line; the base class runs it, feeding the text on stdin
    and reading WAV audio from stdout.
    """

    #: Executable looked up on PATH
    executable: str = ""

    def __init__(self, language: str = "en"):
        self.language = language
        self._path: Optional[str] = None

    @property
    def name(self) -> str:
        return self.executable

    def is_available(self) -> bool:
        """Check whether the engine is invocable in this environment."""
        self._path = find_executable(self.executable)
        return self._path is not None

    @abstractmethod
    def build_command(self, voice: VoiceParameters) -> list[str]:
        """Return the argv for one synthesis call (text comes on stdin)."""
        ...

    def synthesize(self, text: str, voice: VoiceParameters) -> bytes:
        """Synthesize ``text`` and return a normalized WAV.

        Raises:
            SynthesisError: If the process cannot be run, exits non-zero or
                produces no usable audio.
        """
        cmd = self.build_command(voice)
        if self._path:
            cmd[0] = self._path
        logger.debug("Running %s (%d chars)", self.name, len(text))

        try:
            result = subprocess.run(cmd, input=text.encode("utf-8"), capture_output=True)
        except OSError as e:
            raise SynthesisError(f"Cannot run {self.name}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise SynthesisError(
                f"TTS generation failed with {self.name} (exit {result.returncode}): {stderr}"
            )

        return normalize_wav(result.stdout, voice.sample_rate)
