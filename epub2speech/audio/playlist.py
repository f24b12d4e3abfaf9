"""M3U playlist builder - orders segments by their zero-padded file names."""

import logging
import re
from pathlib import Path
from typing import Optional

from epub2speech.models import AudioFormat

logger = logging.getLogger(__name__)

PLAYLIST_NAME = "audiobook.m3u"

# Chapter directories are named "{order:03d}_{title}"
_CHAPTER_DIR = re.compile(r"^\d{3,}_")


def collect_audio_files(output_dir: Path, fmt: AudioFormat) -> list[Path]:
    """List segment files of ``fmt`` in chapter/segment order."""
    suffix = f".{fmt.extension}"
    files = []
    chapter_dirs = (p for p in output_dir.iterdir() if p.is_dir() and _CHAPTER_DIR.match(p.name))
    for chapter_dir in sorted(chapter_dirs):
        files.extend(
            sorted(p for p in chapter_dir.iterdir() if p.is_file() and p.suffix.lower() == suffix)
        )
    return files


def build_playlist(
    output_dir: Path,
    fmt: AudioFormat,
    title: Optional[str] = None,
) -> Path:
    """Write ``audiobook.m3u`` listing all produced segments relative to ``output_dir``."""
    files = collect_audio_files(output_dir, fmt)

    lines = ["#EXTM3U"]
    if title:
        lines.append(f"#PLAYLIST:{title}")
    lines.extend(f.relative_to(output_dir).as_posix() for f in files)

    playlist_path = output_dir / PLAYLIST_NAME
    playlist_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info("Playlist written: %s (%d entries)", playlist_path, len(files))
    return playlist_path
