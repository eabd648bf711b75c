"""PDF access using pdfplumber (positioned text) and PyMuPDF (page rasters).

The scanner never touches a PDF library directly; it talks to a document
object with three operations:

- page_count: number of pages
- get_page_content(n): positioned text fragments of page n (1-indexed)
- render_page_png(n, dpi): PNG bytes of page n, for the AI vision pass

PdfDocument implements them for a file on disk. Text fragments come out in
the rendering layer's shape ``{"text", "transform", "width", "height",
"fontName"}`` with y measured from the bottom of the page, which is what
the spatial text reconstruction expects.
"""
import os
from typing import Any, Dict, List, Optional

try:
    import pdfplumber
except ImportError:
    pdfplumber = None

try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None

from .models import PageContent


class DocumentError(Exception):
    """The source document could not be opened or a page could not be read.

    When raised mid-scan, ``result`` carries the partial ExtractionResult.
    """

    def __init__(self, message: str, page: Optional[int] = None):
        super().__init__(message)
        self.page = page
        self.result = None


def words_to_items(words: List[Dict[str, Any]], page_height: float) -> List[Dict[str, Any]]:
    """
    Convert pdfplumber words into positioned text fragments.

    pdfplumber measures ``top``/``bottom`` from the top of the page; the
    fragments use a baseline y measured from the bottom.

    Args:
        words: Output of ``page.extract_words(extra_attrs=["fontname", "size"])``
        page_height: Page height in points

    Returns:
        List of fragment dicts
    """
    items = []
    for word in words:
        size = float(word.get("size") or 0)
        items.append({
            "text": word["text"],
            "transform": [size, 0, 0, size, float(word["x0"]), page_height - float(word["bottom"])],
            "width": float(word["x1"]) - float(word["x0"]),
            "height": float(word["bottom"]) - float(word["top"]),
            "fontName": word.get("fontname", ""),
        })
    return items


class PdfDocument:
    """
    A PDF opened for scanning.

    Usage:
        with PdfDocument("plans.pdf") as doc:
            content = doc.get_page_content(1)
    """

    def __init__(self, pdf_path: str):
        if pdfplumber is None:
            raise ImportError("pdfplumber required. Install with: pip install pdfplumber")
        if not os.path.exists(pdf_path):
            raise DocumentError(f"PDF not found: {pdf_path}")

        self.pdf_path = pdf_path
        try:
            self._pdf = pdfplumber.open(pdf_path)
        except Exception as e:
            raise DocumentError(f"Could not open {pdf_path}: {e}") from e
        self._fitz_doc = None

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def get_page_content(self, page_number: int) -> PageContent:
        """
        Read positioned text from one page.

        Args:
            page_number: 1-indexed page number

        Returns:
            PageContent with fragments and page size
        """
        if not 1 <= page_number <= self.page_count:
            raise DocumentError(f"Page {page_number} out of range (1-{self.page_count})", page_number)

        try:
            page = self._pdf.pages[page_number - 1]
            words = page.extract_words(extra_attrs=["fontname", "size"])
        except Exception as e:
            raise DocumentError(f"Could not read page {page_number}: {e}", page_number) from e

        return PageContent(
            page_number=page_number,
            items=words_to_items(words, float(page.height)),
            width=float(page.width),
            height=float(page.height),
        )

    def render_page_png(self, page_number: int, dpi: int = 150) -> bytes:
        """
        Rasterise one page to PNG bytes.

        Args:
            page_number: 1-indexed page number
            dpi: Render resolution

        Returns:
            PNG image bytes
        """
        if fitz is None:
            raise ImportError("PyMuPDF required. Install with: pip install pymupdf")

        if self._fitz_doc is None:
            self._fitz_doc = fitz.open(self.pdf_path)

        try:
            pix = self._fitz_doc[page_number - 1].get_pixmap(dpi=dpi)
            return pix.tobytes("png")
        except Exception as e:
            raise DocumentError(f"Could not render page {page_number}: {e}", page_number) from e

    def close(self) -> None:
        self._pdf.close()
        if self._fitz_doc is not None:
            self._fitz_doc.close()
            self._fitz_doc = None

    def __enter__(self) -> 'PdfDocument':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def get_pdf_page_count(pdf_path: str) -> int:
    """Get the total number of pages in a PDF."""
    with PdfDocument(pdf_path) as doc:
        return doc.page_count
