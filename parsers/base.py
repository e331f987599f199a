"""parsers/base.py — Shared parser utilities, types, and load failures."""

import re
import threading
import time
import warnings
from dataclasses import dataclass

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from models import BookMetadata, Chapter

# Only these elements count as reading prose; headings, tables and captions are dropped.
PROSE_BLOCK_TAGS = ("p", "li")

_TAG_RE = re.compile(r"<[^>]*>")
_HSPACE_RE = re.compile(r"[^\S\n]+")
_EDGE_SPACE_RE = re.compile(r" ?\n ?")
_EXTRA_BREAKS_RE = re.compile(r"\n{3,}")
_SENTENCE_END_RE = re.compile(r"([.!?]+)(?=[^\s.!?])")


@dataclass
class ParseResult:
    """Standard return type for all parsers."""
    chapters: list[Chapter]
    metadata: BookMetadata


class LoadError(Exception):
    """Base class for every way a document import can fail."""

    reason = "LoadError"
    user_message = "Failed to load the file."

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.user_message)
        self.detail = detail


class UnsupportedFormat(LoadError):
    reason = "UnsupportedFormat"
    user_message = "Only EPUB, PDF, and TXT files are supported."


class ReadError(LoadError):
    reason = "ReadError"
    user_message = "Could not read the file."


class CorruptContainer(LoadError):
    reason = "CorruptContainer"
    user_message = "Failed to parse the file. It may be damaged or incompatible."


class NoChaptersFound(LoadError):
    reason = "NoChaptersFound"
    user_message = "No chapters found in the document."


class LoadTimedOut(LoadError):
    reason = "TimedOut"
    user_message = "Parsing timed out. This file may be incompatible."


class Deadline:
    """Cooperative cancellation point for parsers.

    Parsers call ``check()`` between sections/pages. It raises ``LoadTimedOut``
    once the time budget is spent or the waiting caller gave up.
    """

    def __init__(self, seconds: float | None, clock=time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def expired(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self) -> None:
        if self.expired:
            raise LoadTimedOut()


def normalize_text(text: str) -> str:
    """Canonicalize whitespace and sentence spacing of already-extracted text.

    The output is a fixed point: normalizing it again returns it unchanged.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HSPACE_RE.sub(" ", text)
    text = _EDGE_SPACE_RE.sub("\n", text)
    text = _EXTRA_BREAKS_RE.sub("\n\n", text)
    # "Next.See" -> "Next. See"; "Wait...what" -> "Wait... what"
    text = _SENTENCE_END_RE.sub(r"\1 ", text)
    return text.strip()


def strip_tags(markup: str | bytes) -> str:
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="replace")
    return _TAG_RE.sub(" ", markup)


def normalize_markup(markup: str | bytes) -> str:
    """Reduce an HTML/XHTML section to paragraph-delimited prose.

    Only ``<p>`` and ``<li>`` blocks are kept, each followed by a blank line.
    Without any such block the whole body text is used. Parser failures
    propagate so the caller can fall back to plain tag stripping.

    The result is plain text with entities decoded (``&lt;b&gt;`` becomes a
    literal ``<b>``), so it is re-normalized with normalize_text(), for which
    it is a fixed point. Feeding it back in here would parse it as markup again.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(markup, "lxml")
    parts: list[str] = []
    for tag in soup.find_all(PROSE_BLOCK_TAGS):
        if tag.find_parent(PROSE_BLOCK_TAGS) is not None:
            continue
        block = tag.get_text()
        if block.strip():
            parts.append(block + "\n\n")
    if not parts:
        root = soup.body if soup.body is not None else soup
        parts.append(root.get_text(" "))
    return normalize_text("".join(parts))
