"""reader.py — The reading session controller: import, playback, resume, lookup."""

import threading
from concurrent.futures import Future
from pathlib import Path

from dictionary import DictionaryLookupCache
from models import Chapter, DefinitionLookup, PersistedSession, PlaybackState
from parsers import LoadError, ParseResult, load_document
from playback import PlaybackScheduler, RepeatingTimer
from session_store import ResumeReconciler, SessionStore


class ReadingSession:
    """One imported document and the reader's position in it.

    Created by a successful import and discarded by the next one.
    """

    def __init__(self, file_name: str, result: ParseResult, timer_factory=RepeatingTimer):
        self.file_name = file_name
        self.chapters: tuple[Chapter, ...] = tuple(result.chapters)
        self.metadata = result.metadata
        self.selected_chapter_idx: int | None = None
        self.show_chapters = True
        self.on_change = None
        self.scheduler = PlaybackScheduler(timer_factory=timer_factory, on_change=self._changed)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    @property
    def chapter(self) -> Chapter | None:
        if self.selected_chapter_idx is None:
            return None
        return self.chapters[self.selected_chapter_idx]

    @property
    def tokens(self) -> tuple[str, ...]:
        return self.scheduler.tokens

    @property
    def word_index(self) -> int:
        return self.scheduler.word_index

    @property
    def current_word(self) -> str:
        return self.scheduler.current_word

    @property
    def state(self) -> PlaybackState:
        return self.scheduler.state

    @property
    def progress_label(self) -> str:
        return f"Word {self.word_index + 1} / {len(self.tokens)}"

    def select_chapter(self, idx: int) -> None:
        if not 0 <= idx < len(self.chapters):
            raise IndexError(f"chapter {idx} out of range (0..{len(self.chapters) - 1})")
        self.selected_chapter_idx = idx
        self.scheduler.select_chapter(idx, self.chapters[idx])

    def play(self) -> bool:
        started = self.scheduler.play()
        if started:
            # The chapter list folds away once reading starts.
            self.set_show_chapters(False)
        return started

    def pause(self) -> None:
        self.scheduler.pause()

    def reset(self) -> None:
        self.scheduler.reset()

    def seek(self, word_index: int) -> None:
        self.scheduler.seek(word_index)

    def restore_word(self, word_index: int) -> None:
        self.scheduler.restore(word_index)

    def set_show_chapters(self, visible: bool) -> None:
        if self.show_chapters == visible:
            return
        self.show_chapters = visible
        self._changed()

    def snapshot(self) -> PersistedSession:
        return PersistedSession(
            file_name=self.file_name,
            selected_chapter_idx=self.selected_chapter_idx,
            current_word_idx=self.word_index,
            show_chapters=self.show_chapters,
        )

    def close(self) -> None:
        self.on_change = None
        self.scheduler.stop()


class Reader:
    """
    Owns the active ReadingSession plus everything that outlives it: the
    session store, the pending resume, the dictionary, and the single
    user-facing error message.
    """

    def __init__(self, store: SessionStore | None = None, dictionary: DictionaryLookupCache | None = None,
                 timer_factory=RepeatingTimer, loader=load_document):
        self.store = store if store is not None else SessionStore()
        self.dictionary = dictionary if dictionary is not None else DictionaryLookupCache()
        self._timer_factory = timer_factory
        self._loader = loader
        # Stored state is read once, at startup.
        self.reconciler = ResumeReconciler(self.store.load())
        self.session: ReadingSession | None = None
        self.error = ""
        self.storage_error = ""
        self.loading = False
        self._persist_lock = threading.Lock()
        self._last_saved: PersistedSession | None = None

    @property
    def resume_offer(self) -> PersistedSession | None:
        return self.reconciler.offer

    def accept_resume(self) -> str | None:
        return self.reconciler.accept()

    def dismiss_resume(self) -> None:
        self.reconciler.dismiss()

    def import_file(self, file_path: Path, on_section=None) -> bool:
        """
        Load a document and make it the active session.

        On failure the error message is replaced, any pending resume is dropped
        and the previous session (if any) stays as it was.
        """
        file_path = Path(file_path)
        self.loading = True
        self.error = ""
        try:
            result = self._loader(file_path, on_section=on_section)
        except LoadError as e:
            self.error = e.user_message
            self.reconciler.discard()
            return False
        finally:
            self.loading = False
        self._open_session(file_path.name, result)
        return True

    def _open_session(self, file_name: str, result: ParseResult) -> None:
        if self.session is not None:
            self.session.close()
        session = ReadingSession(file_name, result, timer_factory=self._timer_factory)
        session.select_chapter(0)
        self.reconciler.reconcile(session)
        # Persist only once the starting position has settled.
        session.on_change = self._persist
        self.session = session
        self._persist()

    def _persist(self) -> None:
        with self._persist_lock:
            session = self.session
            if session is None:
                return
            snapshot = session.snapshot()
            if snapshot == self._last_saved:
                return
            try:
                self.store.save(snapshot)
            except OSError as e:
                self.storage_error = f"Could not save reading position: {e}"
                return
            self._last_saved = snapshot
            self.storage_error = ""

    def define(self, word: str) -> DefinitionLookup:
        return self.dictionary.define(word)

    def define_current(self) -> DefinitionLookup | None:
        """Look up the word under the cursor and mark it as selected."""
        session = self.session
        if session is None or not session.tokens:
            return None
        selection = session.scheduler.highlight(session.word_index)
        return self.dictionary.define(selection.word)

    def define_current_async(self) -> Future | None:
        """Like define_current(), but the request runs on the dictionary's worker."""
        session = self.session
        if session is None or not session.tokens:
            return None
        selection = session.scheduler.highlight(session.word_index)
        return self.dictionary.define_async(selection.word)

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
        self.dictionary.close()
