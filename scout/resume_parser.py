"""Extract plain resume text from an uploaded file.

Supports PDF (via pypdf), DOCX (via stdlib zipfile) and TXT.
"""
from __future__ import annotations

import io
import re
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from pypdf import PdfReader

from scout.log import get_logger

log = get_logger(__name__)

SUPPORTED_SUFFIXES: tuple[str, ...] = (".pdf", ".docx", ".txt", ".md")


def extract_text(filename: str, data: bytes) -> str:
    """Return plain text from PDF, DOCX, or TXT bytes."""
    suffix = Path(filename).suffix.lower()
    if suffix in (".txt", ".md"):
        text = data.decode("utf-8", errors="ignore")
    elif suffix == ".docx":
        text = _extract_docx(data)
    elif suffix == ".pdf":
        text = _extract_pdf(data)
    else:
        raise ValueError(f"Unsupported resume format: {suffix or filename}")
    log.info("Extracted %d chars from %s", len(text), filename)
    return text.strip()


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction merges words together.

    Only kicks in when the space-to-character ratio is abnormally low.
    """
    if not text or len(text) < 50:
        return text
    space_ratio = text.count(" ") / len(text)
    if space_ratio > 0.08:
        return text

    log.debug("Low space ratio (%.2f%%) — applying spacing fix", space_ratio * 100)
    fixed = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    fixed = re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", fixed)
    return fixed


def _extract_pdf(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(_fix_spacing(page.extract_text() or "") for page in reader.pages)


def _extract_docx(data: bytes) -> str:
    ns = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
    texts: list[str] = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        with zf.open("word/document.xml") as f:
            tree = ElementTree.parse(f)
            for para in tree.iter(f"{ns}p"):
                parts = [node.text for node in para.iter(f"{ns}t") if node.text]
                if parts:
                    texts.append("".join(parts))
    return "\n".join(texts)
