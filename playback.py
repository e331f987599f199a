"""playback.py — Timed word-by-word playback over one chapter's tokens."""

import threading

from models import Chapter, PlaybackState, ReadingCursor, SelectionHighlight
from tokenizer import tokenize

# 200 ms per word, i.e. 300 words per minute
TICK_INTERVAL_S = 0.2


class RepeatingTimer(threading.Thread):
    """Call `callback` every `interval` seconds until cancelled."""

    def __init__(self, interval: float, callback):
        super().__init__(name="speedread-tick", daemon=True)
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            self.callback()

    def cancel(self) -> None:
        self._stopped.set()


class PlaybackScheduler:
    """
    Owns the reading cursor and the play/pause/reset/seek state machine.

    IDLE -> PLAYING -> PAUSED | IDLE, PAUSED -> PLAYING, anything -> IDLE on
    reset or chapter change. At most one timer exists at a time; every stop
    drops the timer under the lock, and ticks from a dropped timer are ignored,
    so the cursor never moves after pause/reset/seek/select_chapter returns.

    `timer_factory(interval, callback)` must return an object with `start()`
    and `cancel()`. `on_change()` is called after each change, outside the lock.
    """

    def __init__(self, timer_factory=RepeatingTimer, interval: float = TICK_INTERVAL_S, on_change=None):
        self._timer_factory = timer_factory
        self._interval = interval
        self._lock = threading.RLock()
        self._timer = None
        self.on_change = on_change
        self.tokens: tuple[str, ...] = ()
        self.cursor = ReadingCursor()
        self.state = PlaybackState.IDLE
        self.selection: SelectionHighlight | None = None

    @property
    def word_index(self) -> int:
        return self.cursor.word_index

    @property
    def current_word(self) -> str:
        if not self.tokens:
            return ""
        return self.tokens[self.cursor.word_index]

    @property
    def at_end(self) -> bool:
        return bool(self.tokens) and self.cursor.word_index >= len(self.tokens) - 1

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self, timer) -> None:
        with self._lock:
            if timer is not self._timer:
                return
            if self.cursor.word_index < len(self.tokens) - 1:
                self.cursor.word_index += 1
            else:
                self._stop_timer()
                self.state = PlaybackState.IDLE
        self._notify()

    def play(self) -> bool:
        """Start ticking. Returns False when already playing, empty, or finished."""
        with self._lock:
            if self.state is PlaybackState.PLAYING or not self.tokens or self.at_end:
                return False
            timer = None

            def tick():
                self._tick(timer)

            timer = self._timer_factory(self._interval, tick)
            self._timer = timer
            self.state = PlaybackState.PLAYING
            timer.start()
        self._notify()
        return True

    def pause(self) -> None:
        with self._lock:
            if self.state is not PlaybackState.PLAYING:
                return
            self._stop_timer()
            self.state = PlaybackState.PAUSED
        self._notify()

    def reset(self) -> None:
        with self._lock:
            self._stop_timer()
            self.cursor.word_index = 0
            self.state = PlaybackState.IDLE
        self._notify()

    def seek(self, index: int) -> None:
        """Jump to a word (a click in the preview). Never resumes playing."""
        with self._lock:
            if not 0 <= index < len(self.tokens):
                raise IndexError(f"word index {index} out of range (0..{len(self.tokens) - 1})")
            self._stop_timer()
            self.cursor.word_index = index
            if self.state is PlaybackState.PLAYING:
                self.state = PlaybackState.PAUSED
            self.selection = SelectionHighlight(word=self.tokens[index], word_index=index)
        self._notify()

    def highlight(self, index: int) -> SelectionHighlight:
        with self._lock:
            self.selection = SelectionHighlight(word=self.tokens[index], word_index=index)
            return self.selection

    def select_chapter(self, chapter_index: int, chapter: Chapter) -> None:
        with self._lock:
            self._stop_timer()
            self.tokens = tokenize(chapter.text)
            self.cursor = ReadingCursor(chapter_index=chapter_index, word_index=0)
            self.selection = None
            self.state = PlaybackState.IDLE
        self._notify()

    def restore(self, word_index: int) -> None:
        """Put the cursor back on a saved word, clamped to the chapter."""
        with self._lock:
            last = max(len(self.tokens) - 1, 0)
            self.cursor.word_index = min(max(word_index, 0), last)
        self._notify()

    def stop(self) -> None:
        """Drop the timer without reporting a change (session teardown)."""
        with self._lock:
            self._stop_timer()
            if self.state is PlaybackState.PLAYING:
                self.state = PlaybackState.PAUSED
