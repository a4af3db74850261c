"""
Direct text extraction for PDF and DOCX attachments.

No OCR happens here; scanned PDFs simply come back (nearly) empty and the
caller decides whether the OCR fallback is worth running.
"""

import io
import logging

from docx import Document
from docx.table import Table
from docx.text.hyperlink import Hyperlink
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from ..errors import ConversionError
from ..models import DocumentKind

try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None

logger = logging.getLogger(__name__)


def pdf_to_text(data: bytes) -> str:
    """
    Extract text from PDF bytes, preserving reading order per page.

    Args:
        data: Raw PDF file bytes

    Returns:
        Text of all pages joined by blank lines

    Raises:
        ConversionError: If the bytes are not a readable PDF
    """
    if fitz is None:
        raise ImportError(
            "PyMuPDF is required for PDF text extraction. "
            "Install with: pip install PyMuPDF"
        )

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ConversionError(f"Cannot open PDF: {e}") from e

    try:
        parts = []
        for page in doc:
            page_text = page.get_text("text", sort=True)
            if page_text.strip():
                parts.append(page_text.strip())
        logger.debug(f"Extracted text from {len(parts)}/{doc.page_count} PDF pages")
        return "\n\n".join(parts)
    except Exception as e:
        raise ConversionError(f"PDF text extraction failed: {e}") from e
    finally:
        doc.close()


def docx_to_text(data: bytes) -> str:
    """
    Convert DOCX bytes to markdown-style text.

    Headings become ATX headings, list paragraphs become ``-`` bullets,
    bold/italic runs keep their emphasis and tables become pipe tables.
    Hyperlinks become markdown links. Embedded images are dropped.

    Raises:
        ConversionError: If the bytes are not a readable DOCX document
    """
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        raise ConversionError(f"Cannot open DOCX: {e}") from e

    blocks = []
    try:
        for item in doc.iter_inner_content():
            if isinstance(item, Table):
                block = _table_to_markdown(item)
            else:
                block = _paragraph_to_markdown(item)
            if block:
                blocks.append(block)
    except Exception as e:
        raise ConversionError(f"DOCX conversion failed: {e}") from e

    logger.debug(f"Converted DOCX to {len(blocks)} markdown blocks")
    return "\n\n".join(blocks)


def extract_text(data: bytes, kind: DocumentKind) -> str:
    """Dispatch direct extraction by document kind."""
    if kind is DocumentKind.DOCX:
        return docx_to_text(data)
    return pdf_to_text(data)


def _paragraph_to_markdown(paragraph: Paragraph) -> str:
    text = _runs_to_markdown(paragraph).strip()
    if not text:
        return ""

    style_name = paragraph.style.name if paragraph.style is not None else ""
    if style_name == "Title":
        return f"# {text}"
    if style_name.startswith("Heading"):
        level = style_name.replace("Heading", "").strip()
        depth = int(level) if level.isdigit() else 1
        return f"{'#' * min(depth, 6)} {text}"
    if "List" in style_name or _has_numbering(paragraph):
        return f"- {text}"
    return text


def _runs_to_markdown(paragraph: Paragraph) -> str:
    parts = []
    for item in paragraph.iter_inner_content():
        if isinstance(item, Hyperlink):
            parts.append(_hyperlink_to_markdown(item))
        else:
            parts.append(_run_to_markdown(item))
    return "".join(parts)


def _run_to_markdown(run: Run) -> str:
    text = run.text
    if not text:
        return ""
    # Emphasis markers must hug the text, so keep surrounding spaces outside
    stripped = text.strip()
    if stripped and (run.bold or run.italic):
        marker = "**" if run.bold else "*"
        if run.bold and run.italic:
            marker = "***"
        lead = text[: len(text) - len(text.lstrip())]
        trail = text[len(text.rstrip()):]
        text = f"{lead}{marker}{stripped}{marker}{trail}"
    return text


def _hyperlink_to_markdown(hyperlink: Hyperlink) -> str:
    text = hyperlink.text
    url = hyperlink.url
    if not text.strip() or not url:
        return text
    return f"[{text.strip()}]({url})"


def _has_numbering(paragraph: Paragraph) -> bool:
    p_pr = paragraph._p.pPr
    return p_pr is not None and p_pr.numPr is not None


def _table_to_markdown(table: Table) -> str:
    rows = []
    for row in table.rows:
        cells = [cell.text.strip().replace("\n", " ").replace("|", "\\|") for cell in row.cells]
        if any(cells):
            rows.append(cells)
    if not rows:
        return ""

    width = max(len(r) for r in rows)
    lines = []
    for i, cells in enumerate(rows):
        cells = cells + [""] * (width - len(cells))
        lines.append("| " + " | ".join(cells) + " |")
        if i == 0:
            lines.append("| " + " | ".join(["---"] * width) + " |")
    return "\n".join(lines)
