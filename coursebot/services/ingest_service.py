"""Turn uploaded course files into raw text for the ingestion pipeline."""

import io
from pathlib import Path

from coursebot.core.errors import InvalidInput

MIME_TYPES = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def mime_type_for(file_name: str) -> str:
    return MIME_TYPES.get(Path(file_name).suffix.lower(), "application/octet-stream")


def extract_txt(content: bytes) -> str:
    return content.decode("utf-8", errors="ignore")


def extract_docx(content: bytes) -> str:
    from docx import Document as Docx

    d = Docx(io.BytesIO(content))
    parts = []
    for para in d.paragraphs:
        if para.text.strip():
            parts.append(para.text)
    return "\n".join(parts)


def extract_pdf(content: bytes) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(content))
    parts = []
    for page in reader.pages:
        t = page.extract_text() or ""
        if t.strip():
            parts.append(t)
    return "\n\n".join(parts)


def extract_text(file_name: str, content: bytes) -> str:
    suffix = Path(file_name).suffix.lower()
    if suffix == ".pdf":
        return extract_pdf(content)
    if suffix == ".docx":
        return extract_docx(content)
    if suffix in (".txt", ".md", ""):
        return extract_txt(content)
    raise InvalidInput(f"Unsupported file type: {suffix}", {"file_name": file_name})
