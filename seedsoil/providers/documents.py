"""
Text extraction from local files for intake.
"""

import logging
from pathlib import Path

from .base import get_registry

logger = logging.getLogger(__name__)


class FileTextExtractor:
    """
    Reads plain-text formats directly and PDFs through pypdf.

    Other binary formats are rejected rather than captured as garbage.
    """

    # Default max file size: 20MB
    MAX_FILE_SIZE = 20_000_000

    TEXT_SUFFIXES = {
        ".txt", ".md", ".markdown", ".rst", ".org", ".html", ".htm",
        ".json", ".csv", ".py", ".js", ".ts", ".yaml", ".yml", ".xml",
    }

    def __init__(self, max_size: int | None = None):
        self.max_size = max_size or self.MAX_FILE_SIZE

    def supports(self, path: Path) -> bool:
        suffix = Path(path).suffix.lower()
        return suffix == ".pdf" or suffix in self.TEXT_SUFFIXES or suffix == ""

    def extract(self, path: Path) -> str:
        """Return the text of a file.

        Raises:
            IOError: Missing, unreadable, or oversized file
            ValueError: Unsupported file type
        """
        path = Path(path).expanduser().resolve()
        if not path.is_file():
            raise IOError(f"File not found: {path}")

        size = path.stat().st_size
        if size > self.max_size:
            raise IOError(
                f"File too large: {size:,} bytes (limit: {self.max_size:,} bytes)"
            )
        if not self.supports(path):
            raise ValueError(f"Unsupported file type: {path.suffix}")

        if path.suffix.lower() == ".pdf":
            return self._extract_pdf_text(path)
        return path.read_text(encoding="utf-8", errors="replace")

    def _extract_pdf_text(self, path: Path) -> str:
        from pypdf import PdfReader

        try:
            reader = PdfReader(path)
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            raise IOError(f"Failed to extract text from PDF {path}: {e}") from e

        text = "\n\n".join(p for p in pages if p.strip())
        if not text:
            raise IOError(f"No text extracted from PDF: {path}")
        logger.debug("Extracted %d chars from %d pages of %s", len(text), len(pages), path.name)
        return text


get_registry().register_extractor("file", FileTextExtractor)
