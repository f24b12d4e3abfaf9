"""Convert EPUB books into sequenced audio files with external TTS engines."""

__version__ = "0.1.0"

from epub2speech.converter import Converter, DependencyReport, check_dependencies
from epub2speech.models import AudioFormat, ConversionConfig, ProgressEvent
from epub2speech.progress import ProgressChannel, ProgressReporter

__all__ = [
    "AudioFormat",
    "ConversionConfig",
    "Converter",
    "DependencyReport",
    "ProgressChannel",
    "ProgressEvent",
    "ProgressReporter",
    "check_dependencies",
]
