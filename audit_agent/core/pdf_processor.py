"""
PDF Processor
Extracts plain text from an uploaded PDF so it can be used as workflow input.
"""

from io import BytesIO
from typing import Dict

import PyPDF2
from PyPDF2.errors import PdfReadError
from pydantic import BaseModel, Field

from audit_agent.exceptions import PDFExtractionError
from audit_agent.settings import settings
from audit_agent.utils.logger import get_logger

logger = get_logger(__name__)


class ExtractedDocument(BaseModel):
    """Text and basic facts pulled out of a PDF."""
    text: str = Field(..., description="Page texts joined by blank lines")
    page_count: int = Field(..., description="Number of pages in the PDF")
    word_count: int = Field(default=0, description="Whitespace-separated word count")
    metadata: Dict[str, str] = Field(default_factory=dict, description="Title, author, subject, creator")


def validate_pdf(pdf_bytes: bytes) -> None:
    """
    Check size and header before parsing.

    Raises:
        PDFExtractionError: If the data is empty, too large or not a PDF
    """
    if not pdf_bytes:
        raise PDFExtractionError("No PDF data provided.")

    size_mb = len(pdf_bytes) / (1024 * 1024)
    if len(pdf_bytes) > settings.max_pdf_size_bytes:
        logger.warning(
            f"PDF size ({size_mb:.2f} MB) exceeds limit ({settings.max_pdf_size_mb} MB)"
        )
        raise PDFExtractionError(
            f"PDF too large: {size_mb:.2f} MB (max: {settings.max_pdf_size_mb} MB)"
        )

    if not pdf_bytes.startswith(b"%PDF"):
        logger.warning("Invalid PDF: does not start with %PDF header")
        raise PDFExtractionError("Invalid PDF file format.")


def _read_metadata(reader: PyPDF2.PdfReader) -> Dict[str, str]:
    if not reader.metadata:
        return {}
    return {
        "title": str(reader.metadata.get("/Title", "") or ""),
        "author": str(reader.metadata.get("/Author", "") or ""),
        "subject": str(reader.metadata.get("/Subject", "") or ""),
        "creator": str(reader.metadata.get("/Creator", "") or ""),
    }


def extract_pdf_text(pdf_bytes: bytes) -> ExtractedDocument:
    """
    Extract the text of every page of a PDF.

    Pages whose extraction fails are logged and skipped.

    Args:
        pdf_bytes: Raw PDF file contents

    Returns:
        ExtractedDocument with the joined text

    Raises:
        PDFExtractionError: If the PDF is invalid, unreadable or has no text
    """
    validate_pdf(pdf_bytes)

    try:
        reader = PyPDF2.PdfReader(BytesIO(pdf_bytes))
        pages = list(reader.pages)
    except (PdfReadError, ValueError, OSError) as e:
        logger.error(f"PDF parsing failed: {str(e)}", extra={"error_type": type(e).__name__})
        raise PDFExtractionError(f"Could not read PDF: {str(e)}") from e

    logger.info(f"PDF has {len(pages)} pages")

    page_texts = []
    for page_num, page in enumerate(pages, start=1):
        try:
            page_text = page.extract_text() or ""
        except Exception as e:
            logger.warning(f"Could not extract text from page {page_num}: {e}")
            continue
        if page_text.strip():
            page_texts.append(page_text.strip())

    text = "\n\n".join(page_texts)
    if not text:
        raise PDFExtractionError("No text could be extracted from the PDF.")

    document = ExtractedDocument(
        text=text,
        page_count=len(pages),
        word_count=len(text.split()),
        metadata=_read_metadata(reader)
    )

    logger.info(
        "PDF parsing completed",
        extra={
            "page_count": document.page_count,
            "text_length": len(text),
            "word_count": document.word_count,
            "has_metadata": bool(document.metadata)
        }
    )
    return document
