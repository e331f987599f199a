"""parsers/pdf_parser.py — Parse a PDF into a single chapter using pymupdf."""

from pathlib import Path

from models import BookMetadata, Chapter
from parsers.base import (
    CorruptContainer,
    Deadline,
    NoChaptersFound,
    ParseResult,
    ReadError,
    normalize_text,
)


def _page_text(page) -> str:
    """Join the page's text runs (pymupdf "words") with single spaces."""
    return " ".join(word[4] for word in page.get_text("words"))


def parse_pdf(file_path: Path, deadline: Deadline | None = None, on_section=None) -> ParseResult:
    """
    Extract the whole PDF, page by page, as one chapter.
    Pages are separated by a paragraph break; no per-page chapters.
    """
    import fitz  # pymupdf

    file_path = Path(file_path)
    try:
        doc = fitz.open(str(file_path))
    except OSError as e:
        raise ReadError(str(e)) from e
    except Exception as e:
        raise CorruptContainer(f"pymupdf could not open {file_path.name}: {e}") from e

    try:
        if doc.needs_pass:
            raise CorruptContainer(f"{file_path.name} is password protected")
        if doc.page_count == 0:
            raise CorruptContainer(f"{file_path.name} has no pages")

        pdf_meta = doc.metadata or {}
        title = (pdf_meta.get("title") or "").strip() or file_path.stem.replace("_", " ").title()
        author = (pdf_meta.get("author") or "").strip() or "Unknown"

        page_texts = []
        for page_num in range(doc.page_count):
            if deadline is not None:
                deadline.check()
            try:
                page_texts.append(_page_text(doc[page_num]))
            except Exception as e:
                raise CorruptContainer(f"Page {page_num + 1} could not be decoded: {e}") from e
            if on_section is not None:
                on_section(page_num + 1, doc.page_count)
    finally:
        doc.close()

    text = normalize_text("\n\n".join(page_texts))
    if not text:
        raise NoChaptersFound(f"No extractable text in {file_path.name}")

    return ParseResult(
        chapters=[Chapter(title=title, text=text, index=0)],
        metadata=BookMetadata(title=title, author=author, source_format="pdf"),
    )
