"""
Lexer (tokenizer) for the nginx-like configuration syntax.

Supports:
- Identifiers (block types, directive names, bare words like "last")
- Quoted strings (single or double quotes, backslash escapes)
- Numbers (integers and floats) and durations (500ms, 10s, 5m, 1h, 1d)
- Booleans (on, off, true, false)
- Braces and semicolons
- Single-line (#) and multi-line (/* */) comments
- The include keyword
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Token types for the configuration syntax."""

    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    DURATION = auto()  # value is always seconds (float)
    BOOLEAN = auto()

    LBRACE = auto()
    RBRACE = auto()
    SEMICOLON = auto()

    INCLUDE = auto()
    EOF = auto()


@dataclass
class Token:
    """A single token from the lexer."""

    type: TokenType
    value: str | int | float | bool
    line: int
    column: int
    raw: str = ""

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class LexerError(Exception):
    """Exception raised for lexer errors."""

    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(f"Line {line}, column {column}: {message}")


_WHITESPACE = re.compile(r"[ \t\r\n]+")
_LINE_COMMENT = re.compile(r"#[^\n]*")
_NUMBER = re.compile(r"(?P<num>\d+(?:\.\d+)?)(?P<unit>[A-Za-z]*)")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_\-.]*")

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\"}


class Lexer:
    """
    Tokenizer for the configuration syntax.

    Example:
        collector {
            settle_interval 500ms;
            sensor_selection last;
        }
    """

    BOOLEAN_KEYWORDS = {"on": True, "off": False, "true": True, "false": False}

    # Duration units in seconds
    DURATION_UNITS = {
        "ms": 0.001,
        "s": 1.0,
        "m": 60.0,
        "h": 3600.0,
        "d": 86400.0,
    }

    def __init__(self, source: str, filename: str = "<string>"):
        self.source = source
        self.filename = filename
        self.pos = 0

    def _location(self, pos: int) -> tuple[int, int]:
        """Translate an absolute offset into (line, column), both 1-based."""
        line = self.source.count("\n", 0, pos) + 1
        line_start = self.source.rfind("\n", 0, pos) + 1
        return line, pos - line_start + 1

    def _skip_ignored(self) -> None:
        """Skip whitespace and comments."""
        while self.pos < len(self.source):
            match = _WHITESPACE.match(self.source, self.pos) or _LINE_COMMENT.match(
                self.source, self.pos
            )
            if match:
                self.pos = match.end()
                continue

            if self.source.startswith("/*", self.pos):
                end = self.source.find("*/", self.pos + 2)
                if end < 0:
                    raise LexerError("Unterminated multi-line comment", *self._location(self.pos))
                self.pos = end + 2
                continue

            break

    def _read_string(self) -> Token:
        start = self.pos
        quote = self.source[start]
        chars: list[str] = []
        pos = start + 1

        while True:
            if pos >= len(self.source) or self.source[pos] == "\n":
                raise LexerError("Unterminated string literal", *self._location(start))
            char = self.source[pos]
            if char == quote:
                break
            if char == "\\":
                pos += 1
                if pos >= len(self.source):
                    raise LexerError("Unexpected end of string", *self._location(pos))
                escaped = self.source[pos]
                chars.append(_ESCAPES.get(escaped, escaped))
            else:
                chars.append(char)
            pos += 1

        self.pos = pos + 1
        line, column = self._location(start)
        return Token(TokenType.STRING, "".join(chars), line, column, self.source[start : self.pos])

    def _read_number(self) -> Token:
        start = self.pos
        match = _NUMBER.match(self.source, start)
        assert match is not None  # caller checked for a digit
        self.pos = match.end()

        line, column = self._location(start)
        num_str, unit = match.group("num"), match.group("unit").lower()
        value: int | float = float(num_str) if "." in num_str else int(num_str)

        if not unit:
            return Token(TokenType.NUMBER, value, line, column, match.group(0))

        if unit not in self.DURATION_UNITS:
            raise LexerError(f"Unknown duration unit: {unit}", line, column)
        return Token(
            TokenType.DURATION,
            float(value) * self.DURATION_UNITS[unit],
            line,
            column,
            match.group(0),
        )

    def _read_word(self) -> Token:
        start = self.pos
        match = _IDENTIFIER.match(self.source, start)
        assert match is not None
        self.pos = match.end()

        raw = match.group(0)
        lowered = raw.lower()
        line, column = self._location(start)

        if lowered in self.BOOLEAN_KEYWORDS:
            return Token(TokenType.BOOLEAN, self.BOOLEAN_KEYWORDS[lowered], line, column, raw)
        if lowered == "include":
            return Token(TokenType.INCLUDE, raw, line, column, raw)
        return Token(TokenType.IDENTIFIER, raw, line, column, raw)

    def next_token(self) -> Token:
        """Get the next token from the source."""
        self._skip_ignored()

        if self.pos >= len(self.source):
            line, column = self._location(self.pos)
            return Token(TokenType.EOF, "", line, column)

        char = self.source[self.pos]
        punctuation = {"{": TokenType.LBRACE, "}": TokenType.RBRACE, ";": TokenType.SEMICOLON}
        if char in punctuation:
            line, column = self._location(self.pos)
            self.pos += 1
            return Token(punctuation[char], char, line, column, char)

        if char in "\"'":
            return self._read_string()
        if char.isdigit():
            return self._read_number()
        if char.isalpha() or char == "_":
            return self._read_word()

        raise LexerError(f"Unexpected character: {char!r}", *self._location(self.pos))

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: str = "<string>") -> list[Token]:
    """Tokenize a source string into a list ending with EOF."""
    return list(Lexer(source, filename))
