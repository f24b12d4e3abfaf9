"""Converter - orchestrates the full EPUB -> TTS -> audio files pipeline."""

import json
import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from epub2speech.audio.encoders import AudioEncoder, probe_encoders, select_encoder
from epub2speech.audio.playlist import build_playlist
from epub2speech.cache import SpeechCache, cache_key
from epub2speech.epub_parser import EpubParser
from epub2speech.errors import ConversionError, OutputError, SegmentError
from epub2speech.models import (
    AudioFormat,
    Chapter,
    ChapterResult,
    ConversionConfig,
    ConversionResult,
    ConversionState,
    ProgressEvent,
    SegmentFailure,
    TextSegment,
)
from epub2speech.progress import ProgressChannel
from epub2speech.text.chunker import split_into_chunks
from epub2speech.tts import detect_engine, probe_engines
from epub2speech.tts.base import TTSEngine

logger = logging.getLogger(__name__)

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str) -> str:
    safe = _INVALID_FILENAME_CHARS.sub("_", name).strip()
    return safe or "untitled"


@dataclass
class DependencyReport:
    """Which external tools are installed, independent of any conversion."""
    engines: dict[str, bool]
    encoders: dict[str, dict[str, bool]] = field(default_factory=dict)

    @property
    def engine(self) -> Optional[str]:
        return next((name for name, ok in self.engines.items() if ok), None)

    def encoder_for(self, fmt: AudioFormat | str) -> Optional[str]:
        candidates = self.encoders.get(AudioFormat.parse(fmt).value, {})
        return next((name for name, ok in candidates.items() if ok), None)

    @property
    def ok(self) -> bool:
        return self.engine is not None and all(
            any(candidates.values()) for candidates in self.encoders.values()
        )


def check_dependencies(output_format: AudioFormat | str | None = None) -> DependencyReport:
    """Probe PATH for speech engines and encoders (one format, or all)."""
    formats = [AudioFormat.parse(output_format)] if output_format else list(AudioFormat)
    return DependencyReport(
        engines=probe_engines(),
        encoders={fmt.value: probe_encoders(fmt) for fmt in formats},
    )


class Converter:
    """Orchestrates the full conversion pipeline.

    Chapters are fanned out to a thread pool; inside one chapter the
    segments are rendered strictly in order, so file numbering never
    interleaves. Chapters may finish in any order, the playlist re-imposes
    order from the zero-padded names.
    """

    def __init__(
        self,
        config: ConversionConfig,
        engine: Optional[TTSEngine] = None,
        encoder: Optional[AudioEncoder] = None,
        progress: Optional[ProgressChannel] = None,
    ):
        self.config = config
        self.engine = engine
        self.encoder = encoder
        self.progress = progress or ProgressChannel()
        self.state = ConversionState.IDLE
        self._cancelled = threading.Event()
        self._completed = 0
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Stop scheduling new chapters; running ones finish normally.

        Applies to the current run, or to the next one if none is running.
        The flag is cleared when that run ends.
        """
        logger.info("Cancellation requested")
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def convert(self, epub_path: str, output_dir: str) -> ConversionResult:
        """Full pipeline: EPUB -> chapters -> segments -> audio -> playlist.

        Raises:
            ConversionError: On any fatal error. Per-segment failures are
                reported in the result instead.
        """
        start = time.monotonic()
        try:
            result = self._run(epub_path, Path(output_dir), start)
        except ConversionError as e:
            self._fail(str(e))
            raise
        except OSError as e:
            self._fail(str(e))
            raise OutputError(f"Cannot write output: {e}") from e
        except Exception as e:
            self._fail(f"Unexpected error: {e}")
            raise
        finally:
            self._cancelled.clear()

        self.state = ConversionState.COMPLETED
        self.progress.send(ProgressEvent(
            stage="completed",
            chapters_completed=self._completed,
            chapters_total=len(result.chapters),
            done=True,
        ))
        for warning in result.warnings:
            logger.warning("%s", warning)
        logger.info("Conversion completed in %.2fs", result.elapsed_seconds)
        return result

    def _fail(self, message: str) -> None:
        self.state = ConversionState.FAILED
        logger.error("Conversion failed: %s", message)
        self.progress.send(ProgressEvent(stage="failed", done=True, error=message))

    def _run(self, epub_path: str, output_dir: Path, start: float) -> ConversionResult:
        # Resolve tools once per run, before any chapter work
        if self.engine is None:
            self.engine = detect_engine(self.config.language)
        if self.encoder is None:
            self.encoder = select_encoder(self.config.output_format)
        cache = SpeechCache(self.config.cache_dir, enabled=self.config.cache_enabled)

        self.state = ConversionState.EXTRACTING
        self.progress.send(ProgressEvent(stage="extracting"))
        logger.info("Parsing EPUB: %s", epub_path)
        metadata, chapters = EpubParser(epub_path, self.config.preprocessing_aggressive).parse()
        total_words = sum(ch.word_count for ch in chapters)
        logger.info(
            "Book: '%s' by %s - %d chapters, %d words",
            metadata.title, metadata.author, len(chapters), total_words,
        )

        output_dir.mkdir(parents=True, exist_ok=True)

        self.state = ConversionState.SYNTHESIZING
        self._completed = 0
        self.progress.send(ProgressEvent(stage="synthesizing", chapters_total=len(chapters)))

        results = []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = [
                pool.submit(self._process_chapter, chapter, output_dir, cache, len(chapters), start)
                for chapter in chapters
            ]
            try:
                for future in as_completed(futures):
                    results.append(future.result())
            except BaseException:
                self._cancelled.set()
                raise

        self.state = ConversionState.WRITING
        self.progress.send(ProgressEvent(
            stage="writing playlist",
            chapters_completed=self._completed,
            chapters_total=len(chapters),
        ))
        playlist = build_playlist(output_dir, self.config.output_format, metadata.title)

        results.sort(key=lambda r: r.chapter.order)
        return ConversionResult(
            output_dir=output_dir,
            playlist_path=playlist,
            chapters=results,
            elapsed_seconds=time.monotonic() - start,
            cancelled=self.cancelled,
        )

    def _process_chapter(
        self,
        chapter: Chapter,
        output_dir: Path,
        cache: SpeechCache,
        total: int,
        start: float,
    ) -> ChapterResult:
        safe_title = sanitize_filename(chapter.title)
        chapter_dir = output_dir / f"{chapter.order:03d}_{safe_title}"
        result = ChapterResult(chapter=chapter, directory=chapter_dir)

        if self.cancelled:
            result.skipped = True
            return result

        chapter_start = time.monotonic()
        chapter_dir.mkdir(parents=True, exist_ok=True)

        chunks = split_into_chunks(chapter.content, self.config.chunk_size)
        result.chunk_count = len(chunks)
        ext = self.config.output_format.extension

        # Sequential on purpose: one waveform in memory, stable numbering
        for index, text in enumerate(chunks):
            segment = TextSegment(chapter_order=chapter.order, segment_index=index, text=text)
            output_path = chapter_dir / f"{index:03d}_{safe_title}.{ext}"
            try:
                self._render_segment(segment, output_path, cache)
            except SegmentError as e:
                # A failed encoder may leave a truncated file behind
                output_path.unlink(missing_ok=True)
                logger.warning(
                    "Segment %d of chapter %d ('%s') failed: %s",
                    index, chapter.order, chapter.title, e,
                )
                result.failures.append(SegmentFailure(chapter.order, index, str(e)))
                continue
            result.audio_files.append(output_path)

        self._write_metadata(result, time.monotonic() - chapter_start)
        self._report_chapter_done(chapter, total, start)
        return result

    def _render_segment(self, segment: TextSegment, output_path: Path, cache: SpeechCache) -> None:
        voice = self.config.voice
        key = cache_key(segment.text, voice, self.engine.name)
        wav_path = cache.get_or_create(key, lambda: self.engine.synthesize(segment.text, voice))
        try:
            self.encoder.encode(wav_path, output_path, self.config.output_format, self.config.quality)
        finally:
            if not cache.enabled:
                wav_path.unlink(missing_ok=True)

    def _write_metadata(self, result: ChapterResult, elapsed: float) -> None:
        chapter = result.chapter
        metadata = {
            "title": chapter.title,
            "order": chapter.order,
            "word_count": chapter.word_count,
            "chunk_count": result.chunk_count,
            "rendered_chunks": len(result.audio_files),
            "failed_chunks": [
                {"index": f.segment_index, "error": f.error} for f in result.failures
            ],
            "config": self.config.to_dict(),
            "elapsed_seconds": round(elapsed, 3),
        }
        with open(result.directory / "metadata.json", "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2, ensure_ascii=False)

    def _report_chapter_done(self, chapter: Chapter, total: int, start: float) -> None:
        # Sent under the lock so counts reach the channel in order
        with self._lock:
            self._completed += 1
            completed = self._completed
            elapsed = time.monotonic() - start
            self.progress.send(ProgressEvent(
                stage=f"synthesized '{chapter.title}'",
                chapters_completed=completed,
                chapters_total=total,
                eta_seconds=elapsed / completed * (total - completed),
            ))
        logger.info("Chapter %d/%d done: %s", completed, total, chapter.title)
