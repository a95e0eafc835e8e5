from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .spans import Span


class TokenKind(str, Enum):
    # Identifiers and literals. Keywords are contextual and lex as IDENT.
    IDENT = "IDENT"
    INT = "INT"
    FLOAT = "FLOAT"
    STRING = "STRING"

    # Punctuation / operators
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    LPAREN = "("
    RPAREN = ")"
    LANGLE = "<"
    RANGLE = ">"
    SEMI = ";"
    COMMA = ","
    DOT = "."
    EQ = "="
    COLON = ":"
    SLASH = "/"

    EOF = "EOF"


PUNCTUATION: dict[str, TokenKind] = {
    k.value: k for k in TokenKind if len(k.value) == 1
}


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    lexeme: str
    span: Span
    # Comments immediately preceding the token, without their delimiters.
    comments: tuple[str, ...] = ()
    # Decoded bytes of a STRING literal; `lexeme` is their readable form.
    data: bytes = b""

    def is_word(self, word: str) -> bool:
        return self.kind is TokenKind.IDENT and self.lexeme == word

    def display(self) -> str:
        if self.kind is TokenKind.EOF:
            return "end of file"
        if self.kind in (TokenKind.IDENT, TokenKind.INT, TokenKind.FLOAT):
            return repr(self.lexeme)
        if self.kind is TokenKind.STRING:
            return "string literal"
        return repr(self.kind.value)

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.lexeme!r}, {self.span.format()})"
