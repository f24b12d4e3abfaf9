"""Festival engine via text2wave - diphone synthesis with native sample-rate control."""

from epub2speech.models import VoiceParameters
from epub2speech.tts import register_engine
from epub2speech.tts.base import TTSEngine

# Mean F0 target (Hz) of the default Festival voice at pitch 1.0
BASE_F0_MEAN = 105


@register_engine("festival", priority=2)
class FestivalEngine(TTSEngine):
    """TTS engine using Festival's ``text2wave`` script.

    ``festival --tts`` plays through the sound card, whereas ``text2wave``
    reads text from stdin and writes a WAV to stdout.
    """

    executable = "text2wave"

    @property
    def name(self) -> str:
        return "festival"

    def build_command(self, voice: VoiceParameters) -> list[str]:
        return [
            self.executable,
            "-F", str(voice.sample_rate),
            "-eval", self._duration_expr(voice.speed),
            "-eval", self._intonation_expr(voice.pitch),
        ]

    @staticmethod
    def _duration_expr(speed: float) -> str:
        """Festival stretches durations, so faster speech is a factor below 1."""
        return f"(Parameter.set 'Duration_Stretch {1.0 / speed:.3f})"

    @staticmethod
    def _intonation_expr(pitch: float) -> str:
        f0_mean = round(BASE_F0_MEAN * pitch)
        return (
            "(set! int_lr_params (list "
            f"(list 'target_f0_mean {f0_mean}) (list 'target_f0_std 14) "
            "(list 'model_f0_mean 170) (list 'model_f0_std 34)))"
        )
