"""DOCX → PDF derivation for manuscript submissions.

The PDF is produced by extracting the document's text (paragraphs, then
table rows) and laying it out again as plain paragraphs on A4 pages.
Formatting, images and footnotes are not carried over.
"""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from docx import Document
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from app.errors import ConversionError

logger = logging.getLogger(__name__)


def extract_docx_text(docx_path: Path) -> List[str]:
    """Return the non-empty paragraphs of a DOCX file.

    Table rows are appended after the body paragraphs, cells joined by
    `` | ``.
    """
    doc = Document(str(docx_path))
    chunks: List[str] = []
    for para in doc.paragraphs:
        text = (para.text or "").strip()
        if text:
            chunks.append(text)
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            row_text = " | ".join(value for value in cells if value)
            if row_text:
                chunks.append(row_text)
    return chunks


def render_text_pdf(paragraphs: List[str], pdf_path: Path, title: Optional[str] = None) -> Path:
    """Write *paragraphs* to *pdf_path* as a plain A4 document."""
    styles = getSampleStyleSheet()
    story = []
    if title:
        story.append(Paragraph(escape(title), styles["Title"]))
        story.append(Spacer(1, 12))
    for text in paragraphs:
        story.append(Paragraph(escape(text).replace("\n", "<br/>"), styles["BodyText"]))
        story.append(Spacer(1, 6))

    doc = SimpleDocTemplate(
        str(pdf_path),
        pagesize=A4,
        title=title or pdf_path.stem,
    )
    doc.build(story)
    return pdf_path


def convert_docx_to_pdf_sync(docx_path: Path, title: Optional[str] = None) -> Path:
    """Convert *docx_path* to a sibling ``.pdf`` file.

    Raises:
        ConversionError: if the DOCX is empty, unreadable, or the PDF could
            not be written.
    """
    docx_path = Path(docx_path)
    pdf_path = docx_path.with_suffix(".pdf")

    if not docx_path.exists() or docx_path.stat().st_size == 0:
        raise ConversionError(f"DOCX file is missing or empty: {docx_path.name}")

    try:
        paragraphs = extract_docx_text(docx_path)
    except Exception as exc:
        raise ConversionError(f"Failed to read DOCX: {exc}") from exc

    if not paragraphs:
        raise ConversionError("Extracted text is empty")

    try:
        render_text_pdf(paragraphs, pdf_path, title=title)
    except Exception as exc:
        pdf_path.unlink(missing_ok=True)
        raise ConversionError(f"Failed to render PDF: {exc}") from exc

    if not pdf_path.exists() or pdf_path.stat().st_size == 0:
        pdf_path.unlink(missing_ok=True)
        raise ConversionError("Generated PDF file is empty")

    logger.info(
        "Converted %s -> %s (%d paragraphs, %d bytes)",
        docx_path.name, pdf_path.name, len(paragraphs), pdf_path.stat().st_size,
    )
    return pdf_path


async def convert_docx_to_pdf(docx_path: Path, title: Optional[str] = None) -> Path:
    """Async wrapper: runs the conversion in a worker thread."""
    return await asyncio.to_thread(convert_docx_to_pdf_sync, docx_path, title)
