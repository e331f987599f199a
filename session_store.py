"""session_store.py — Saved reading position and resuming it after a reload."""

import json
import os
from pathlib import Path

from models import PendingResume, PersistedSession

STATE_KEY = "speedreaderState"
DEFAULT_STATE_FILE = Path.home() / ".speedread" / "state.json"


def default_state_path() -> Path:
    """SPEEDREAD_STATE_FILE from the environment, else ~/.speedread/state.json."""
    env_path = os.getenv("SPEEDREAD_STATE_FILE", "").strip()
    return Path(env_path).expanduser() if env_path else DEFAULT_STATE_FILE


class SessionStore:
    """
    One JSON file with one fixed key holding the last reading position.
    Every save overwrites the slot; there is no history.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else default_state_path()

    def _read_all(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def load(self) -> PersistedSession | None:
        """Missing or malformed state means there is nothing to resume."""
        return PersistedSession.from_payload(self._read_all().get(STATE_KEY))

    def save(self, session: PersistedSession) -> None:
        data = self._read_all()
        data[STATE_KEY] = session.to_payload()
        self._write_all(data)

    def clear(self) -> None:
        data = self._read_all()
        if STATE_KEY in data:
            del data[STATE_KEY]
            self._write_all(data)


class ResumeReconciler:
    """
    Two-phase resume. The book itself is never stored, so accepting the
    offer only records a PendingResume; it is applied once, by reconcile(),
    when the user has re-opened the file and its chapters are loaded.
    """

    def __init__(self, offer: PersistedSession | None = None):
        self.offer = offer
        self.pending: PendingResume | None = None

    def accept(self) -> str | None:
        """Turn the offer into a pending resume. Returns the file to re-open."""
        offer = self.offer
        if offer is None:
            return None
        self.pending = PendingResume(
            selected_chapter_idx=offer.selected_chapter_idx if offer.selected_chapter_idx is not None else 0,
            current_word_idx=offer.current_word_idx,
            show_chapters=offer.show_chapters,
        )
        self.offer = None
        return offer.file_name

    def dismiss(self) -> None:
        self.offer = None

    def discard(self) -> None:
        self.pending = None

    def reconcile(self, session) -> bool:
        """
        Apply the pending resume to a freshly loaded session, if it fits.

        The pending resume is consumed whether or not it applies. A chapter
        index outside the new chapter list leaves the session as a fresh import.
        """
        pending, self.pending = self.pending, None
        if pending is None or not session.chapters:
            return False
        if not 0 <= pending.selected_chapter_idx < len(session.chapters):
            return False
        session.select_chapter(pending.selected_chapter_idx)
        session.restore_word(pending.current_word_idx)
        session.set_show_chapters(pending.show_chapters)
        return True
