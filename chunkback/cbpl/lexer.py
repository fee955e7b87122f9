"""CBPL lexer: script text to a flat token sequence."""

from __future__ import annotations

from chunkback.cbpl.tokens import KEYWORDS, Token

_ESCAPES = {
    '"': '"',
    "n": "\n",
    "t": "\t",
    "\\": "\\",
}
_INLINE_WHITESPACE = {" ", "\t", "\r"}
# Longer digit runs saturate; every catalog bound is far below this.
_MAX_NUMBER_DIGITS = 9


class Lexer:
    """Single left-to-right scanner. Never raises; unknown input becomes INVALID tokens."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._position = 0
        self._line = 1
        self._column = 1

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while not self._at_end():
            char = self._text[self._position]
            if char in _INLINE_WHITESPACE:
                self._advance()
                continue
            if char == "\n":
                tokens.append(Token("NEWLINE", "\n", self._line, self._column))
                self._advance()
                continue
            if char == '"':
                tokens.append(self._read_string())
                continue
            if _is_digit(char):
                tokens.append(self._read_number())
                continue
            if _is_alpha(char):
                tokens.append(self._read_word())
                continue
            tokens.append(Token("INVALID", char, self._line, self._column))
            self._advance()

        tokens.append(Token("END", "", self._line, self._column))
        return tokens

    def _at_end(self) -> bool:
        return self._position >= len(self._text)

    def _current(self) -> str:
        return self._text[self._position]

    def _peek(self) -> str | None:
        index = self._position + 1
        if index < len(self._text):
            return self._text[index]
        return None

    def _advance(self) -> None:
        if self._text[self._position] == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        self._position += 1

    def _read_string(self) -> Token:
        line, column = self._line, self._column
        self._advance()
        parts: list[str] = []
        while not self._at_end() and self._current() != '"':
            char = self._current()
            following = self._peek()
            if char == "\\" and following in _ESCAPES:
                parts.append(_ESCAPES[following])
                self._advance()
                self._advance()
                continue
            parts.append(char)
            self._advance()
        # Unterminated strings keep whatever was read.
        if not self._at_end():
            self._advance()
        return Token("STRING", "".join(parts), line, column)

    def _read_number(self) -> Token:
        line, column = self._line, self._column
        start = self._position
        while not self._at_end() and _is_digit(self._current()):
            self._advance()
        digits = self._text[start : self._position].lstrip("0") or "0"
        if len(digits) > _MAX_NUMBER_DIGITS:
            value = 10**_MAX_NUMBER_DIGITS
        else:
            value = int(digits)
        return Token("NUMBER", value, line, column)

    def _read_word(self) -> Token:
        line, column = self._line, self._column
        start = self._position
        while not self._at_end() and (_is_alpha(self._current()) or _is_digit(self._current())):
            self._advance()
        word = self._text[start : self._position].upper()
        return Token(KEYWORDS.get(word, "INVALID"), word, line, column)


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_alpha(char: str) -> bool:
    return ("a" <= char <= "z") or ("A" <= char <= "Z")


def tokenize(text: str) -> list[Token]:
    """Tokenize CBPL source. Output always ends with exactly one END token."""
    return Lexer(text).tokenize()
