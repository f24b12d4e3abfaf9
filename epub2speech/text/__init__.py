"""Text preparation: cleanup for TTS and segmentation."""

from epub2speech.text.chunker import split_into_chunks
from epub2speech.text.normalizer import normalize

__all__ = ["normalize", "split_into_chunks"]
