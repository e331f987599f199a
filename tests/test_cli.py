from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

import speedread
from dictionary import DictionaryLookupCache
from models import DefinitionLookup, LookupStatus, PersistedSession
from session_store import STATE_KEY, SessionStore


def _run(capsys, *argv: str) -> str:
    speedread.main(list(argv))
    return capsys.readouterr().out


def test_list_prints_chapters(tmp_path, capsys) -> None:
    book = tmp_path / "field_notes.txt"
    book.write_text("One two three.\n\nFour five.", encoding="utf-8")
    state = tmp_path / "state.json"

    out = _run(capsys, str(book), "--list", "--state-file", str(state))
    assert "Title:  field notes" in out
    assert "Format: txt" in out
    assert "Found 1 chapters:" in out
    assert "5 words" in out
    # Opening a book saves the starting position even without reading.
    assert SessionStore(state).load() == PersistedSession("field_notes.txt", 0, 0, True)


def test_unsupported_file_exits_with_message(tmp_path, capsys) -> None:
    doc = tmp_path / "report.docx"
    doc.write_bytes(b"PK")
    with pytest.raises(SystemExit) as exc:
        speedread.main([str(doc), "--state-file", str(tmp_path / "state.json")])
    assert exc.value.code == 1
    assert "ERROR: Only EPUB, PDF, and TXT files are supported." in capsys.readouterr().out


def test_missing_input_exits(tmp_path, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        speedread.main(["--state-file", str(tmp_path / "state.json")])
    assert exc.value.code == 1
    assert "no input file given" in capsys.readouterr().out


def test_forget_clears_saved_position(tmp_path, capsys) -> None:
    state = tmp_path / "state.json"
    SessionStore(state).save(PersistedSession("book.epub", 1, 4))

    out = _run(capsys, "--forget", "--state-file", str(state))
    assert "cleared" in out
    assert SessionStore(state).load() is None


def test_resume_without_book_prints_offer(tmp_path, capsys) -> None:
    state = tmp_path / "state.json"
    SessionStore(state).save(PersistedSession("book.epub", 1, 4))

    out = _run(capsys, "--resume", "--state-file", str(state))
    assert "Continue reading: book.epub (Chapter 2, word 5)" in out
    assert "Re-open the book" in out


def test_resume_applies_saved_chapter(tmp_path, capsys) -> None:
    book = tmp_path / "notes.txt"
    book.write_text("alpha beta gamma delta", encoding="utf-8")
    state = tmp_path / "state.json"
    SessionStore(state).save(PersistedSession("notes.txt", 0, 2, True))

    out = _run(capsys, str(book), "--resume", "--list", "--state-file", str(state))
    assert "Continue reading: notes.txt" in out
    assert SessionStore(state).load() == PersistedSession("notes.txt", 0, 2, True)


def test_chapter_out_of_range(tmp_path, capsys) -> None:
    book = tmp_path / "notes.txt"
    book.write_text("alpha beta", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        speedread.main([str(book), "--chapter", "3", "--state-file", str(tmp_path / "state.json")])
    assert exc.value.code == 1
    assert "No chapter 3" in capsys.readouterr().out


def test_plays_short_file_to_the_end(tmp_path, capsys) -> None:
    book = tmp_path / "short.txt"
    book.write_text("Hello world.", encoding="utf-8")
    state = tmp_path / "state.json"

    out = _run(capsys, str(book), "--state-file", str(state))
    assert "Finished: short" in out
    saved = json.loads(state.read_text(encoding="utf-8"))[STATE_KEY]
    assert saved == {"fileName": "short.txt", "selectedChapterIdx": 0, "currentWordIdx": 1, "showChapters": False}


def test_define_prints_definition(tmp_path, capsys, monkeypatch) -> None:
    class FakeDictionary:
        def define(self, word):
            return DefinitionLookup(word=word, status=LookupStatus.FOUND, text="A happy accident.")

        def close(self):
            pass

    monkeypatch.setattr("reader.DictionaryLookupCache", FakeDictionary)
    out = _run(capsys, "--define", "serendipity", "--state-file", str(tmp_path / "state.json"))
    assert "Definition for: serendipity" in out
    assert "A happy accident." in out


def test_define_on_pause_looks_up_the_word_on_screen(tmp_path, capsys, monkeypatch) -> None:
    book = tmp_path / "greeting.txt"
    book.write_text("Hello there reader.", encoding="utf-8")
    state = tmp_path / "state.json"

    http = Mock()
    http.get.return_value = Mock(
        status_code=200,
        json=Mock(return_value=[{"meanings": [{"definitions": [{"definition": "A greeting."}]}]}]),
    )
    monkeypatch.setattr("reader.DictionaryLookupCache", lambda: DictionaryLookupCache(session=http))

    def interrupt(seconds):
        raise KeyboardInterrupt

    monkeypatch.setattr(speedread, "time", SimpleNamespace(sleep=interrupt))

    out = _run(capsys, str(book), "--define-on-pause", "--state-file", str(state))
    assert "Paused at word 1 / 3. Position saved." in out
    assert "Looking up: Hello" in out
    assert "Definition for: Hello" in out
    assert "A greeting." in out
    assert http.get.call_args.args[0].endswith("/Hello")
    assert SessionStore(state).load() == PersistedSession("greeting.txt", 0, 0, False)
