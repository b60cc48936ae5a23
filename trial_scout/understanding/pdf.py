"""Research paper PDF reading for criteria extraction (pymupdf, optional extra)."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def extract_text_from_pdf(path: str | Path) -> str:
    """Return the text of a trial paper, its pages joined by newlines.

    The result feeds LLMPaperCriteriaExtractor, which reads the eligibility
    section out of it.

    Raises:
        FileNotFoundError: If the PDF file does not exist.
        ImportError: If pymupdf is not installed.
    """
    path = Path(path)
    if not path.exists():
        msg = f"PDF file not found: {path}"
        raise FileNotFoundError(msg)

    try:
        import pymupdf
    except ImportError:
        msg = (
            "pymupdf is required for PDF extraction. "
            "Install with: pip install 'trial-scout[pdf]'"
        )
        raise ImportError(msg) from None

    doc = pymupdf.open(str(path))
    try:
        text_parts = [page.get_text() for page in doc]
    finally:
        doc.close()

    logger.info("Read %d pages from paper %s", len(text_parts), path.name)
    return "\n".join(text_parts)
