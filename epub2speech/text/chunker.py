"""Sentence-aligned segmentation of chapter text."""

import re

# Sentence-ending punctuation followed by whitespace
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]


def split_into_chunks(text: str, max_chunk_size: int) -> list[str]:
    """Greedily pack sentences into segments of at most ``max_chunk_size`` bytes.

    The limit is measured on the UTF-8 encoding and is a soft target: a
    single sentence larger than the limit becomes its own segment and is
    never truncated. Sentences are joined by single spaces.
    """
    chunks = []
    current: list[str] = []
    current_size = 0

    for sentence in split_sentences(text):
        size = len(sentence.encode("utf-8"))
        joined_size = current_size + size + (1 if current else 0)

        if current and joined_size > max_chunk_size:
            chunks.append(" ".join(current))
            current = [sentence]
            current_size = size
        else:
            current.append(sentence)
            current_size = joined_size

    if current:
        chunks.append(" ".join(current))

    return chunks
