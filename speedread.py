#!/usr/bin/env python3
"""
speedread — Read EPUB, PDF, and TXT documents one word at a time.

Words are flashed in the terminal at 300 words per minute. Ctrl+C pauses
and saves your place; the next run offers to continue from there.

Quick start:
  1. python speedread.py book.epub --list
  2. python speedread.py book.epub --chapter 3
  3. Ctrl+C to pause, then later:
     python speedread.py book.epub --resume

Dictionary:
  python speedread.py --define serendipity
  python speedread.py book.epub --define-on-pause
"""

import argparse
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

# How often the terminal redraws while playing, in seconds.
REFRESH_S = 0.05


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Speed-read EPUB, PDF, and TXT documents one word at a time",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List chapters without reading:
  python speedread.py book.epub --list

  # Start at chapter 2, word 150:
  python speedread.py book.epub --chapter 2 --start-word 150

  # Continue where you stopped last time:
  python speedread.py book.epub --resume

  # Forget the saved position:
  python speedread.py --forget
        """,
    )
    parser.add_argument("input_path", type=Path, nargs="?", default=None,
                        help="Path to an EPUB, PDF, or TXT file")
    parser.add_argument(
        "--list", action="store_true",
        help="List chapters and exit",
    )
    parser.add_argument(
        "--chapter", type=int, default=None, metavar="N",
        help="Start at chapter N (1-based, as numbered by --list)",
    )
    parser.add_argument(
        "--start-word", type=int, default=None, metavar="N",
        help="Start at word N of the chapter (1-based)",
    )
    parser.add_argument(
        "--resume", action="store_true",
        help="Continue from the saved reading position",
    )
    parser.add_argument(
        "--forget", action="store_true",
        help="Clear the saved reading position",
    )
    parser.add_argument(
        "--define", type=str, default=None, metavar="WORD",
        help="Look up WORD in the dictionary",
    )
    parser.add_argument(
        "--define-on-pause", action="store_true",
        help="Look up the word on screen when you pause with Ctrl+C",
    )
    parser.add_argument(
        "--state-file", type=Path, default=None, metavar="PATH",
        help="Where the reading position is saved (default: $SPEEDREAD_STATE_FILE or ~/.speedread/state.json)",
    )
    return parser.parse_args(argv)


def print_chapter_list(session) -> None:
    from tokenizer import word_count

    metadata = session.metadata
    print(f"Title:  {metadata.title}")
    print(f"Author: {metadata.author}")
    print(f"Format: {metadata.source_format}")
    print(f"\nFound {len(session.chapters)} chapters:")
    print("-" * 70)
    total_words = 0
    for position, ch in enumerate(session.chapters, start=1):
        words = word_count(ch.text)
        total_words += words
        print(f"  {position:2d}. {ch.title[:50]:<50} {words:>8} words")
    print("-" * 70)
    minutes = total_words / 300
    print(f"  Total: {total_words:,} words | ~{minutes:.0f} min at 300 wpm")
    print()


def print_resume_offer(offer) -> None:
    chapter = (offer.selected_chapter_idx or 0) + 1
    print(f"Continue reading: {offer.file_name} (Chapter {chapter}, word {offer.current_word_idx + 1})")


def print_definition(lookup) -> None:
    print(f"Definition for: {lookup.word}")
    print(f"  {lookup.text}")


def _progress_callback(bar):
    def update(done: int, total: int) -> None:
        if bar.total != total:
            bar.total = total
        bar.n = done
        bar.refresh()
    return update


def run_playback(reader, define_on_pause: bool = False) -> None:
    """Flash words until the chapter ends or the user presses Ctrl+C."""
    from models import PlaybackState

    session = reader.session
    title = session.chapter.title if session.chapter else session.file_name
    print(f"\n{title}\n")

    if not session.play():
        print("  Nothing to play from here. Use --start-word 1 to read the chapter again.")
        return

    shown = None
    try:
        while True:
            position = (session.word_index, session.state)
            if position != shown:
                shown = position
                print(f"\r\033[K  {session.current_word:^30}  {session.progress_label}", end="", flush=True)
            if session.state is not PlaybackState.PLAYING:
                break
            time.sleep(REFRESH_S)
    except KeyboardInterrupt:
        session.pause()
        print(f"\n\nPaused at {session.progress_label.lower()}. Position saved.")
        if define_on_pause:
            future = reader.define_current_async()
            if future is not None:
                print(f"Looking up: {reader.dictionary.current.word}")
                print_definition(future.result())
        return

    print(f"\n\nFinished: {title}")


def main(argv=None):
    args = parse_args(argv)
    load_dotenv()

    # Imported here to keep --help fast
    from reader import Reader
    from session_store import SessionStore

    store = SessionStore(args.state_file)
    if args.forget:
        store.clear()
        print("Saved reading position cleared.")
        if args.input_path is None and args.define is None:
            return

    reader = Reader(store=store)
    try:
        _read(args, reader)
    finally:
        reader.close()


def _read(args, reader) -> None:
    from tqdm import tqdm

    if args.define:
        print_definition(reader.define(args.define))
        if args.input_path is None:
            return

    offer = reader.resume_offer
    if offer is not None:
        print_resume_offer(offer)
        if args.resume:
            expected = reader.accept_resume()
            if args.input_path is None:
                print(f"Re-open the book to continue: python speedread.py {expected!r} --resume")
                return
            if args.input_path.name != expected:
                print(f"  Note: the saved position belongs to {expected}")
        else:
            print("  (pass --resume to continue from there)")
            reader.dismiss_resume()
    elif args.resume:
        print("No saved reading position to resume.")

    if args.input_path is None:
        print("ERROR: no input file given.")
        sys.exit(1)

    print(f"Loading: {args.input_path}")
    with tqdm(total=0, desc="  Extracting", unit="section", leave=False) as bar:
        ok = reader.import_file(args.input_path, on_section=_progress_callback(bar))
    if not ok:
        print(f"ERROR: {reader.error}")
        sys.exit(1)

    session = reader.session
    if args.list:
        print_chapter_list(session)
        return

    if args.chapter is not None:
        if not 1 <= args.chapter <= len(session.chapters):
            print(f"ERROR: No chapter {args.chapter} (book has {len(session.chapters)} chapters)")
            sys.exit(1)
        session.select_chapter(args.chapter - 1)

    if args.start_word is not None:
        if not 1 <= args.start_word <= len(session.tokens):
            print(f"ERROR: No word {args.start_word} (chapter has {len(session.tokens)} words)")
            sys.exit(1)
        session.seek(args.start_word - 1)

    run_playback(reader, define_on_pause=args.define_on_pause)

    if reader.storage_error:
        print(f"Warning: {reader.storage_error}")


if __name__ == "__main__":
    main()
