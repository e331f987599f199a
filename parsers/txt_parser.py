"""parsers/txt_parser.py — Load a plain text file as a single chapter."""

from pathlib import Path

from models import BookMetadata, Chapter
from parsers.base import Deadline, NoChaptersFound, ParseResult, ReadError, normalize_text


def _title_from_stem(file_path: Path) -> str:
    return file_path.stem.replace("_", " ").replace("-", " ").strip() or "Untitled"


def parse_txt(file_path: Path, deadline: Deadline | None = None, on_section=None) -> ParseResult:
    """Read the whole file; it becomes one chapter titled after the file."""
    file_path = Path(file_path)
    try:
        raw = file_path.read_bytes()
    except OSError as e:
        raise ReadError(str(e)) from e

    if deadline is not None:
        deadline.check()

    text = normalize_text(raw.decode("utf-8", errors="replace").lstrip("\ufeff"))
    if on_section is not None:
        on_section(1, 1)
    if not text:
        raise NoChaptersFound(f"{file_path.name} contains no text")

    title = _title_from_stem(file_path)
    return ParseResult(
        chapters=[Chapter(title=title, text=text, index=0)],
        metadata=BookMetadata(title=title, author="Unknown", source_format="txt"),
    )
