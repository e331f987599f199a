from __future__ import annotations

from tokenizer import tokenize, word_count


def test_splits_normalized_chapter_text() -> None:
    assert tokenize("Hello world.\n\nNext. See") == ("Hello", "world.", "Next.", "See")


def test_keeps_punctuation_and_case() -> None:
    assert tokenize('"Quoted," she said—loudly!') == ('"Quoted,"', "she", "said—loudly!")


def test_no_empty_tokens_at_edges() -> None:
    assert tokenize("  \n padded\ttext \n\n ") == ("padded", "text")


def test_empty_text_has_no_tokens() -> None:
    assert tokenize("") == ()
    assert tokenize(" \n\n ") == ()


def test_same_text_gives_same_tokens() -> None:
    text = "It was the best of times.\n\nIt was the worst of times."
    assert tokenize(text) == tokenize(text)


def test_word_count_matches_tokens() -> None:
    text = "one two\n\nthree"
    assert word_count(text) == len(tokenize(text)) == 3
