"""Data models for the epub2speech pipeline."""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Nominal range for speed/pitch multipliers
VOICE_RANGE = (0.5, 2.0)


class AudioFormat(Enum):
    """Target container/codec for the rendered segments."""
    VORBIS = "vorbis"
    FLAC = "flac"
    MP3 = "mp3"
    WAV = "wav"

    @property
    def extension(self) -> str:
        return "ogg" if self is AudioFormat.VORBIS else self.value

    @classmethod
    def parse(cls, value: "AudioFormat | str") -> "AudioFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            available = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown audio format '{value}'. Available: {available}") from None


class ConversionState(Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    SYNTHESIZING = "synthesizing"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Chapter:
    """A single chapter extracted from an EPUB."""
    title: str
    content: str
    order: int
    word_count: int


@dataclass(frozen=True)
class TextSegment:
    """One synthesis unit of a chapter."""
    chapter_order: int
    segment_index: int
    text: str


@dataclass(frozen=True)
class VoiceParameters:
    speed: float = 1.0
    pitch: float = 1.0
    sample_rate: int = 22050


@dataclass
class BookMetadata:
    """Metadata extracted from the EPUB file."""
    title: str
    author: str
    language: str


@dataclass(frozen=True)
class ConversionConfig:
    """Settings for one conversion run, resolved by the caller."""
    output_format: AudioFormat = AudioFormat.VORBIS
    quality: float = 0.7
    voice_speed: float = 1.0
    voice_pitch: float = 1.0
    sample_rate: int = 22050
    chunk_size: int = 1000
    max_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    cache_enabled: bool = True
    preprocessing_aggressive: bool = True
    cache_dir: str = "./tts_cache"
    language: str = "en"

    def __post_init__(self):
        # frozen: coerce through object.__setattr__
        object.__setattr__(self, "output_format", AudioFormat.parse(self.output_format))

        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"quality must be within [0.0, 1.0], got {self.quality}")
        for name in ("voice_speed", "voice_pitch"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
            if not VOICE_RANGE[0] <= value <= VOICE_RANGE[1]:
                logger.warning(
                    "%s=%.2f is outside the nominal range %.1f-%.1f",
                    name, value, *VOICE_RANGE,
                )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {self.chunk_size}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")

    @property
    def voice(self) -> VoiceParameters:
        return VoiceParameters(
            speed=self.voice_speed,
            pitch=self.voice_pitch,
            sample_rate=self.sample_rate,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ConversionConfig":
        """Build a config from a plain mapping (e.g. saved GUI settings)."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config options: {', '.join(sorted(unknown))}")
        return cls(**data)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["output_format"] = self.output_format.value
        return data


@dataclass(frozen=True)
class ProgressEvent:
    """Progress snapshot delivered to the caller.

    ``done`` marks the terminal event of a run; ``error`` is set when the
    run failed.
    """
    stage: str
    chapters_completed: int = 0
    chapters_total: int = 0
    eta_seconds: Optional[float] = None
    done: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class SegmentFailure:
    """A segment whose audio could not be produced."""
    chapter_order: int
    segment_index: int
    error: str


@dataclass
class ChapterResult:
    chapter: Chapter
    directory: Path
    audio_files: list[Path] = field(default_factory=list)
    failures: list[SegmentFailure] = field(default_factory=list)
    chunk_count: int = 0
    skipped: bool = False


@dataclass
class ConversionResult:
    """Outcome of a finished (possibly partial) run."""
    output_dir: Path
    playlist_path: Path
    chapters: list[ChapterResult]
    elapsed_seconds: float
    cancelled: bool = False

    @property
    def failures(self) -> list[SegmentFailure]:
        return [f for ch in self.chapters for f in ch.failures]

    @property
    def warnings(self) -> list[str]:
        messages = [
            f"Chapter {f.chapter_order}, segment {f.segment_index}: {f.error}"
            for f in self.failures
        ]
        if self.cancelled:
            skipped = sum(1 for ch in self.chapters if ch.skipped)
            messages.append(f"Conversion cancelled, {skipped} chapter(s) not processed")
        return messages
