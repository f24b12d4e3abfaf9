"""eSpeak NG / eSpeak engines - compact formant synthesis, fast on any CPU."""

from epub2speech.models import VoiceParameters
from epub2speech.tts import register_engine
from epub2speech.tts.base import TTSEngine

# Words per minute at speed 1.0
BASE_WPM = 175
# espeak pitch scale is 0-99, 50 is the voice default
BASE_PITCH = 50


@register_engine("espeak-ng", priority=0)
class EspeakNgEngine(TTSEngine):
    """TTS engine using espeak-ng, writing WAV to stdout."""

    executable = "espeak-ng"

    def build_command(self, voice: VoiceParameters) -> list[str]:
        return [
            self.executable,
            "-v", self.language,
            "-s", str(self._speed_to_wpm(voice.speed)),
            "-p", str(self._pitch_to_scale(voice.pitch)),
            "-a", "100",
            "--stdout",
            "--stdin",
        ]

    @staticmethod
    def _speed_to_wpm(speed: float) -> int:
        """Convert speed multiplier (e.g. 1.2) to words per minute (e.g. 210)."""
        return int(speed * BASE_WPM)

    @staticmethod
    def _pitch_to_scale(pitch: float) -> int:
        return max(0, min(99, int(pitch * BASE_PITCH)))


@register_engine("espeak", priority=1)
class EspeakEngine(EspeakNgEngine):
    """Legacy espeak, same command line as espeak-ng."""

    executable = "espeak"
