"""EPUB file parser - extracts chapters and metadata."""

import logging

import ebooklib
from bs4 import BeautifulSoup
from ebooklib import epub

from epub2speech.errors import DocumentError
from epub2speech.models import BookMetadata, Chapter
from epub2speech.text.normalizer import normalize

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
BLOCK_TAGS = ["p", *HEADING_TAGS, "li", "blockquote"]


class EpubParser:
    """Parse an EPUB file into structured chapters and metadata."""

    def __init__(self, epub_path: str, aggressive: bool = True):
        self.epub_path = epub_path
        self.aggressive = aggressive
        self._book: epub.EpubBook | None = None

    def parse(self) -> tuple[BookMetadata, list[Chapter]]:
        """Parse the EPUB and return metadata + ordered chapters.

        Raises:
            DocumentError: If the file cannot be read or has no text.
        """
        try:
            self._book = epub.read_epub(self.epub_path)
        except Exception as e:
            raise DocumentError(f"Cannot read EPUB {self.epub_path}: {e}") from e

        metadata = self._extract_metadata()
        chapters = self._extract_chapters()
        return metadata, chapters

    def _extract_metadata(self) -> BookMetadata:
        """Extract book metadata from EPUB Dublin Core fields."""
        title = self._book.get_metadata("DC", "title")
        author = self._book.get_metadata("DC", "creator")
        language = self._book.get_metadata("DC", "language")

        return BookMetadata(
            title=title[0][0] if title else "Unknown",
            author=author[0][0] if author else "Unknown",
            language=language[0][0] if language else "en",
        )

    def _extract_chapters(self) -> list[Chapter]:
        """Extract chapters in spine (reading) order.

        ``Chapter.order`` is the spine position, so skipped items leave gaps.
        """
        chapters = []

        for order, (item_id, _) in enumerate(self._book.spine):
            item = self._book.get_item_with_id(item_id)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue

            html_content = item.get_body_content()
            if not html_content:
                continue

            soup = BeautifulSoup(html_content, "lxml")
            title = self._extract_title(soup) or f"Chapter {order + 1}"
            content = normalize(self._html_to_text(soup), self.aggressive)
            if not content:
                logger.debug("Skipped empty item: %s", item_id)
                continue

            chapters.append(Chapter(
                title=title,
                content=content,
                order=order,
                word_count=len(content.split()),
            ))

        if not chapters:
            raise DocumentError(f"No chapters found in {self.epub_path}")

        logger.info("Extracted %d chapters from '%s'", len(chapters), self.epub_path)
        return chapters

    @staticmethod
    def _html_to_text(soup: BeautifulSoup) -> str:
        """Convert HTML content to plain text, one line per block element."""
        # Remove non-text elements
        for tag in soup(["script", "style", "nav", "aside", "figure"]):
            tag.decompose()

        # Extract text from leaf block elements only (avoid parent divs that
        # contain child blocks, which would duplicate the text).
        leaves = soup.find_all(BLOCK_TAGS)

        if leaves:
            parts = []
            for tag in leaves:
                if tag.find(BLOCK_TAGS):
                    continue
                text = tag.get_text().strip()
                if text:
                    parts.append(text)
            return "\n".join(parts)

        return soup.get_text(separator="\n", strip=True)

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str | None:
        """Return the text of the first heading, if any."""
        for tag in soup.find_all(HEADING_TAGS):
            title = " ".join(tag.get_text().split())
            if title:
                return title
        return None
