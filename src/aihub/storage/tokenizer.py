"""Word segmentation shared by FTS indexing and querying.

SQLite's unicode61 tokenizer only splits on separators, so text in scripts
written without spaces (Chinese, Japanese, Thai, ...) would be indexed as one
giant token per sentence. Text is segmented here before it reaches FTS5:
letters, marks and digits form words, and every character of a
non-space-delimited script becomes a token of its own. The same segmentation
runs on stored content and on queries, so "你好，world!" is indexed as
"你 好 world" and the query "你好 world" becomes "你"* AND "好"* AND "world"*.

Example:
    >>> tokenize("你好，world!")
    ['你', '好', 'world']
    >>> match_expression("你好 world")
    '"你"* AND "好"* AND "world"*'
"""

import unicodedata
from typing import Optional

# Scripts without word separators; each character is indexed on its own
_PER_CHARACTER_RANGES = (
    (0x0E00, 0x0E7F),  # Thai
    (0x0E80, 0x0EFF),  # Lao
    (0x1000, 0x109F),  # Myanmar
    (0x1780, 0x17FF),  # Khmer
    (0x3040, 0x309F),  # Hiragana
    (0x30A0, 0x30FF),  # Katakana
    (0x31F0, 0x31FF),  # Katakana phonetic extensions
    (0x3400, 0x4DBF),  # CJK extension A
    (0x4E00, 0x9FFF),  # CJK unified ideographs
    (0xF900, 0xFAFF),  # CJK compatibility ideographs
    (0x20000, 0x2FA1F),  # CJK extensions B-F and supplement
)


def _is_per_character(ch: str) -> bool:
    code = ord(ch)
    return any(start <= code <= end for start, end in _PER_CHARACTER_RANGES)


def tokenize(text: str) -> list[str]:
    """Split text into word tokens.

    Args:
        text: Arbitrary text

    Returns:
        Non-empty tokens in order of appearance
    """
    tokens: list[str] = []
    current: list[str] = []
    attach_marks = False

    def flush() -> None:
        if current:
            tokens.append("".join(current))
            current.clear()

    for ch in unicodedata.normalize("NFKC", text):
        category = unicodedata.category(ch)

        if category[0] == "M":
            # Combining marks belong to the preceding character
            if current:
                current.append(ch)
            elif attach_marks and tokens:
                tokens[-1] += ch
            continue

        if _is_per_character(ch):
            flush()
            tokens.append(ch)
            attach_marks = True
        elif category[0] in ("L", "N"):
            current.append(ch)
            attach_marks = False
        else:
            flush()
            attach_marks = False

    flush()
    return [token for token in tokens if token.strip()]


def searchable_text(text: Optional[str]) -> str:
    """Text stored in the FTS index for a conversation.

    Tokens joined by single spaces; the original text when nothing tokenizes.
    """
    if not text:
        return ""
    tokens = tokenize(text)
    if not tokens:
        return text
    return " ".join(tokens)


def match_expression(query: str) -> Optional[str]:
    """Build an FTS5 MATCH expression requiring every query token as a prefix.

    Returns:
        The expression, or None when the query has no tokens
    """
    terms = []
    for token in tokenize(query):
        sanitized = token.replace('"', "")
        if sanitized:
            terms.append(f'"{sanitized}"*')
    if not terms:
        return None
    return " AND ".join(terms)
