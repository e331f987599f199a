"""models.py — Shared data types for speedread."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Chapter:
    title: str       # Display title, from the TOC or "Chapter 3"
    text: str        # Normalized prose, paragraphs separated by blank lines
    index: int       # 0-based position in the source spine (not renumbered)


@dataclass
class BookMetadata:
    title: str
    author: str
    source_format: str = ""         # "epub", "pdf", "txt"


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass
class ReadingCursor:
    chapter_index: int | None = None
    word_index: int = 0


@dataclass(frozen=True)
class SelectionHighlight:
    word: str
    word_index: int


@dataclass(frozen=True)
class PersistedSession:
    """Reading coordinates written to local storage. Never holds book content."""
    file_name: str
    selected_chapter_idx: int | None
    current_word_idx: int = 0
    show_chapters: bool = True

    def to_payload(self) -> dict:
        return {
            "fileName": self.file_name,
            "selectedChapterIdx": self.selected_chapter_idx,
            "currentWordIdx": self.current_word_idx,
            "showChapters": self.show_chapters,
        }

    @classmethod
    def from_payload(cls, payload: object) -> "PersistedSession | None":
        if not isinstance(payload, dict):
            return None
        file_name = payload.get("fileName")
        if not isinstance(file_name, str) or not file_name:
            return None
        chapter_idx = payload.get("selectedChapterIdx")
        word_idx = payload.get("currentWordIdx", 0)
        show_chapters = payload.get("showChapters", True)
        # bool is an int subclass; reject it for the index fields
        if chapter_idx is not None and (not isinstance(chapter_idx, int) or isinstance(chapter_idx, bool)):
            return None
        if not isinstance(word_idx, int) or isinstance(word_idx, bool) or word_idx < 0:
            return None
        if not isinstance(show_chapters, bool):
            return None
        return cls(
            file_name=file_name,
            selected_chapter_idx=chapter_idx,
            current_word_idx=word_idx,
            show_chapters=show_chapters,
        )


@dataclass(frozen=True)
class PendingResume:
    selected_chapter_idx: int
    current_word_idx: int
    show_chapters: bool


class LookupStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class DefinitionLookup:
    word: str
    status: LookupStatus = LookupStatus.IDLE
    text: str = ""
