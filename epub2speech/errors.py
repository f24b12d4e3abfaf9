"""Exception hierarchy for the conversion pipeline.

``ConversionError`` subclasses abort the whole run. ``SegmentError``
subclasses only affect a single segment and are collected by the
converter.
"""


class ConversionError(Exception):
    """Fatal, run-level failure."""


class DocumentError(ConversionError):
    """The source document cannot be parsed or contains no chapters."""


class EngineNotFoundError(ConversionError):
    def __init__(self, candidates):
        self.candidates = list(candidates)
        super().__init__(
            "No TTS engine found. Please install one of: " + ", ".join(self.candidates)
        )


class EncoderNotFoundError(ConversionError):
    def __init__(self, audio_format, candidates):
        self.audio_format = audio_format
        self.candidates = list(candidates)
        super().__init__(
            f"No {audio_format.value} encoder found. Please install one of: "
            + ", ".join(self.candidates)
        )


class OutputError(ConversionError):
    """Output or cache directory is not writable."""


class SegmentError(Exception):
    """Recoverable failure limited to one segment."""


class SynthesisError(SegmentError):
    pass


class EncodingError(SegmentError):
    pass
