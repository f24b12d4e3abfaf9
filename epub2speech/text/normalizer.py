"""Cleanup of extracted chapter text for TTS pronunciation."""

import html
import re

# Structural fixes, applied in order. Line breaks survive this stage so the
# hyphenation repair can still see them.
STRUCTURAL_PATTERNS = [
    # Leftover entities that html.unescape did not resolve
    (re.compile(r"&[a-zA-Z0-9#]+;"), " "),
    # Normalize whitespace
    (re.compile(r"[^\S\n]+"), " "),
    (re.compile(r" ?\n[\n ]*"), "\n"),
    # Unify quotation marks
    (re.compile(r"[“”„«»]"), '"'),
    (re.compile(r"[‘’‚`]"), "'"),
    # Normalize dashes
    (re.compile(r"[‐‑‒–—―]"), "-"),
    # Remove page numbers and bare number ranges
    (re.compile(r"\b[Pp]age\s+\d+\b"), ""),
    (re.compile(r"\b\d+\s*-\s*\d+\b"), ""),
    # Collapse runs of periods
    (re.compile(r"…"), "..."),
    (re.compile(r"\.{3,}"), "..."),
    # Fix spacing around punctuation
    (re.compile(r" +([,.!?;:])"), r"\1"),
]

HYPHENATION = re.compile(r"(\w+)- *\n *(\w+)")

# Abbreviations expanded for better TTS
ABBREVIATIONS = [
    ("Mr.", "Mister"),
    ("Mrs.", "Missus"),
    ("Dr.", "Doctor"),
    ("Prof.", "Professor"),
    ("St.", "Saint"),
    ("vs.", "versus"),
    ("etc.", "etcetera"),
    ("i.e.", "that is"),
    ("e.g.", "for example"),
]

_ABBREVIATION_PATTERNS = [
    (re.compile(r"(?<![\w.])" + re.escape(abbrev)), expansion)
    for abbrev, expansion in ABBREVIATIONS
]

MISSING_SENTENCE_SPACE = re.compile(r"([.!?])([A-Z])")


def normalize(text: str, aggressive: bool = False) -> str:
    """Return ``text`` cleaned into TTS-friendly prose.

    The structural fixes always run first; the aggressive rewrites
    (hyphenation repair, abbreviation expansion, sentence spacing) rely on
    their whitespace normalization.
    """
    text = html.unescape(text)
    for pattern, replacement in STRUCTURAL_PATTERNS:
        text = pattern.sub(replacement, text)

    if aggressive:
        text = fix_hyphenation(text)
        text = expand_abbreviations(text)
        text = fix_sentence_boundaries(text)

    text = re.sub(r"\s+", " ", text)
    return text.strip()


def fix_hyphenation(text: str) -> str:
    """Join words split across lines: ``word-\\nbreak`` -> ``wordbreak``."""
    return HYPHENATION.sub(r"\1\2", text)


def expand_abbreviations(text: str) -> str:
    for pattern, expansion in _ABBREVIATION_PATTERNS:
        text = pattern.sub(expansion, text)
    return text


def fix_sentence_boundaries(text: str) -> str:
    return MISSING_SENTENCE_SPACE.sub(r"\1 \2", text)
