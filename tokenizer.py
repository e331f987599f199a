"""tokenizer.py — Split chapter text into the word tokens shown one at a time."""


def tokenize(chapter_text: str) -> tuple[str, ...]:
    """
    Split on runs of whitespace. Tokens keep their punctuation and case,
    so the displayed word and the dictionary query are the literal text.
    The same text always yields the same sequence, which keeps a stored
    word index meaningful after the chapter is re-tokenized.
    """
    return tuple(chapter_text.split())


def word_count(chapter_text: str) -> int:
    return len(chapter_text.split())
