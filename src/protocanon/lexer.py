from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ParseError
from .spans import Position, Span
from .tokens import PUNCTUATION, Token, TokenKind


_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INT_RE = re.compile(r"[+-]?(?:0[xX][0-9A-Fa-f]+|0[0-7]*|[1-9][0-9]*)(?![A-Za-z0-9_.])")
_FLOAT_RE = re.compile(
    r"[+-]?(?:"
    r"(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|[0-9]+[eE][+-]?[0-9]+"
    r")"
    # Unsigned inf/nan lex as identifiers; only the signed spellings are numeric.
    r"|[+-](?:inf|nan)(?![A-Za-z0-9_])"
)

_SIMPLE_ESCAPES = {
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "n": b"\n",
    "r": b"\r",
    "t": b"\t",
    "v": b"\v",
    "\\": b"\\",
    "'": b"'",
    '"': b'"',
    "?": b"?",
}

_HEX = "0123456789abcdefABCDEF"


@dataclass(slots=True)
class _Cursor:
    file: str
    src: str
    i: int = 0
    line: int = 1
    col: int = 1

    def eof(self) -> bool:
        return self.i >= len(self.src)

    def peek(self, n: int = 0) -> str:
        j = self.i + n
        if j >= len(self.src):
            return ""
        return self.src[j]

    def advance(self, n: int = 1) -> None:
        for _ in range(n):
            if self.eof():
                return
            ch = self.src[self.i]
            self.i += 1
            if ch == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1

    def pos(self) -> Position:
        return Position(offset=self.i, line=self.line, column=self.col)


def parse_int_literal(lexeme: str) -> int:
    sign = -1 if lexeme.startswith("-") else 1
    body = lexeme.lstrip("+-")
    if body[:2] in ("0x", "0X"):
        return sign * int(body[2:], 16)
    if len(body) > 1 and body.startswith("0"):
        return sign * int(body, 8)
    return sign * int(body)


def tokenize(src: str, *, file: str = "<memory>") -> list[Token]:
    cur = _Cursor(file=file, src=src)
    tokens: list[Token] = []
    pending: list[str] = []

    def make_span(start: Position, end: Position) -> Span:
        return Span(file=file, start=start, end=end)

    def error_at(start: Position, msg: str, hint: str | None = None) -> ParseError:
        end = cur.pos()
        if end.offset < start.offset:
            end = start
        return ParseError(span=make_span(start, end), message=msg, hint=hint)

    def emit(kind: TokenKind, lexeme: str, start: Position) -> None:
        tokens.append(Token(kind, lexeme, make_span(start, cur.pos()), tuple(pending)))
        pending.clear()

    def read_code_point(start: Position, esc: str) -> int:
        width = 4 if esc == "u" else 8
        digits = cur.src[cur.i : cur.i + width]
        if len(digits) != width or any(c not in _HEX for c in digits):
            raise error_at(start, f"invalid \\{esc} escape", hint=f"use exactly {width} hex digits")
        cur.advance(width)
        cp = int(digits, 16)
        if cp > 0x10FFFF:
            raise error_at(start, f"\\{esc}{digits} is not a Unicode code point")
        return cp

    def read_escape(start: Position) -> bytes:
        # cursor sits just past the backslash
        esc = cur.peek()
        if esc == "":
            raise error_at(start, "unterminated string escape")
        if esc in _SIMPLE_ESCAPES:
            cur.advance()
            return _SIMPLE_ESCAPES[esc]
        if esc in "xX":
            cur.advance()
            digits = ""
            while len(digits) < 2 and cur.peek() and cur.peek() in _HEX:
                digits += cur.peek()
                cur.advance()
            if not digits:
                raise error_at(start, "invalid \\x escape", hint="use \\x followed by hex digits")
            return bytes([int(digits, 16)])
        if esc in "01234567":
            digits = ""
            while len(digits) < 3 and cur.peek() and cur.peek() in "01234567":
                digits += cur.peek()
                cur.advance()
            # \400 and up wrap to one byte.
            return bytes([int(digits, 8) & 0xFF])
        if esc in "uU":
            cur.advance()
            cp = read_code_point(start, esc)
            if 0xD800 <= cp <= 0xDBFF and cur.peek() == "\\" and cur.peek(1) == "u":
                cur.advance(2)
                low = read_code_point(start, "u")
                if not 0xDC00 <= low <= 0xDFFF:
                    raise error_at(start, "high surrogate not followed by a low surrogate")
                cp = 0x10000 + ((cp - 0xD800) << 10) + (low - 0xDC00)
            if 0xD800 <= cp <= 0xDFFF:
                raise error_at(start, "unpaired surrogate in \\u escape")
            return chr(cp).encode("utf-8")
        raise error_at(start, f"unknown escape sequence \\{esc}")

    while not cur.eof():
        ch = cur.peek()

        # whitespace
        if ch in " \t\r\n\f\v":
            cur.advance()
            continue

        # line comment //
        if ch == "/" and cur.peek(1) == "/":
            cur.advance(2)
            j = cur.i
            while not cur.eof() and cur.peek() != "\n":
                cur.advance()
            pending.append(src[j : cur.i].strip())
            continue

        # block comment /* ... */
        if ch == "/" and cur.peek(1) == "*":
            start = cur.pos()
            cur.advance(2)
            j = cur.i
            while not cur.eof():
                if cur.peek() == "*" and cur.peek(1) == "/":
                    pending.append(src[j : cur.i].strip())
                    cur.advance(2)
                    break
                cur.advance()
            else:
                raise error_at(start, "unterminated block comment", hint="add closing */")
            continue

        start = cur.pos()

        # strings: "..." or '...'
        if ch in "\"'":
            quote = ch
            cur.advance()
            buf = bytearray()
            while not cur.eof():
                c = cur.peek()
                if c == quote:
                    cur.advance()
                    data = bytes(buf)
                    lexeme = data.decode("utf-8", errors="backslashreplace")
                    tokens.append(Token(TokenKind.STRING, lexeme, make_span(start, cur.pos()), tuple(pending), data))
                    pending.clear()
                    break
                if c == "\n":
                    raise error_at(start, "unterminated string literal", hint="close the quote")
                if c == "\\":
                    cur.advance()
                    buf += read_escape(start)
                    continue
                buf += c.encode("utf-8")
                cur.advance()
            else:
                raise error_at(start, "unterminated string literal", hint="close the quote")
            continue

        # numbers (float before int)
        m = _FLOAT_RE.match(src, cur.i)
        if m:
            cur.advance(len(m.group(0)))
            emit(TokenKind.FLOAT, m.group(0), start)
            continue

        m = _INT_RE.match(src, cur.i)
        if m:
            cur.advance(len(m.group(0)))
            emit(TokenKind.INT, m.group(0), start)
            continue

        # identifiers / contextual keywords
        m = _IDENT_RE.match(src, cur.i)
        if m:
            cur.advance(len(m.group(0)))
            emit(TokenKind.IDENT, m.group(0), start)
            continue

        k = PUNCTUATION.get(ch)
        if k is not None:
            cur.advance()
            emit(k, ch, start)
            continue

        if ch in "0123456789+-":
            raise error_at(start, "malformed number literal")
        raise error_at(
            start,
            f"unexpected character {ch!r}",
            hint="remove the character or replace with valid protobuf syntax",
        )

    eof_pos = cur.pos()
    tokens.append(Token(TokenKind.EOF, "", Span(file=file, start=eof_pos, end=eof_pos), tuple(pending)))
    return tokens
