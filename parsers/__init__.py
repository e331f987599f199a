"""parsers/ — Multi-format document loader package."""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from parsers.base import (
    CorruptContainer,
    Deadline,
    LoadError,
    LoadTimedOut,
    NoChaptersFound,
    ParseResult,
    ReadError,
    UnsupportedFormat,
)

SUPPORTED_EXTENSIONS = {".epub", ".pdf", ".txt"}

# Ceiling for decode + extraction of one file, in seconds.
LOAD_TIMEOUT_S = 20

__all__ = [
    "LOAD_TIMEOUT_S",
    "SUPPORTED_EXTENSIONS",
    "CorruptContainer",
    "LoadError",
    "LoadTimedOut",
    "NoChaptersFound",
    "ParseResult",
    "ReadError",
    "UnsupportedFormat",
    "load_document",
]


def _parser_for(suffix: str):
    if suffix == ".epub":
        from parsers.epub_parser import parse_epub
        return parse_epub
    elif suffix == ".pdf":
        from parsers.pdf_parser import parse_pdf
        return parse_pdf
    elif suffix == ".txt":
        from parsers.txt_parser import parse_txt
        return parse_txt
    raise UnsupportedFormat(
        f"Unsupported file format: '{suffix}'. "
        f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
    )


def _run_parser(parser, file_path: Path, deadline: Deadline, on_section) -> ParseResult:
    try:
        return parser(file_path, deadline=deadline, on_section=on_section)
    except LoadError:
        raise
    except OSError as e:
        raise ReadError(str(e)) from e
    except Exception as e:
        raise CorruptContainer(f"{type(e).__name__}: {e}") from e


def load_document(file_path: Path, timeout: float | None = LOAD_TIMEOUT_S, on_section=None) -> ParseResult:
    """
    Load a document into chapters, dispatching on the file extension.

    Raises a LoadError subclass on every failure. The format is checked before
    the file is touched. Decoding runs on a worker thread; if it does not
    finish within `timeout` seconds the load is abandoned with LoadTimedOut
    and whatever the worker had extracted is thrown away.
    """
    file_path = Path(file_path)
    parser = _parser_for(file_path.suffix.lower())

    if not file_path.exists():
        raise ReadError(f"File not found: {file_path}")

    deadline = Deadline(timeout)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speedread-load")
    try:
        future = executor.submit(_run_parser, parser, file_path, deadline, on_section)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            deadline.cancel()
            raise LoadTimedOut(f"{file_path.name} took longer than {timeout}s to parse") from None
    finally:
        executor.shutdown(wait=False)
