"""
Token definitions for the macro language lexer.
"""

from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    """Token kinds produced by the lexer. Values double as printable tags."""

    RTN = "RTN"  # line terminator, also the statement separator

    LETTER = "LETTER"  # G, X, M, ... (command / parameter prefix)
    O = "O"  # O-word marker

    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE"

    ASSIGN = "ASSIGN"  # =
    RELATIONAL = "RELATIONAL"  # == != >= <= > < gt lt ge le eq ne
    ADDITIVE = "ADDITIVE"  # + -
    MULTIPLICATIVE = "MULTIPLICATIVE"  # * /
    POWER = "POWER"  # **
    LOGICAL = "LOGICAL"  # and or xor

    LBRACKET = "["
    RBRACKET = "]"
    HASH = "#"

    VAR_NAME = "VAR_NAME"  # <name>, only after # or O
    IDENTIFIER = "IDENTIFIER"  # built-in function names

    # Control-flow keywords
    IF = "if"
    ELSEIF = "elseif"
    ELSE = "else"
    ENDIF = "endif"
    WHILE = "while"
    ENDWHILE = "endwhile"
    BREAK = "break"
    CONTINUE = "continue"
    SUB = "sub"
    ENDSUB = "endsub"
    RETURN = "return"
    REPEAT = "repeat"
    ENDREPEAT = "endrepeat"
    CALL = "call"

    def __str__(self):
        return self.value


KEYWORDS: frozenset[TokenKind] = frozenset(
    {
        TokenKind.IF,
        TokenKind.ELSEIF,
        TokenKind.ELSE,
        TokenKind.ENDIF,
        TokenKind.WHILE,
        TokenKind.ENDWHILE,
        TokenKind.BREAK,
        TokenKind.CONTINUE,
        TokenKind.SUB,
        TokenKind.ENDSUB,
        TokenKind.RETURN,
        TokenKind.REPEAT,
        TokenKind.ENDREPEAT,
        TokenKind.CALL,
    }
)


@dataclass(frozen=True)
class Token:
    """A single lexeme with the position of its first character."""

    kind: TokenKind
    text: str
    line: int = 0
    column: int = 0

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.text!r}, L{self.line}:{self.column})"

    def describe(self) -> str:
        if self.kind is TokenKind.RTN:
            return "end of line"
        return f"{self.kind.value} {self.text!r}"
