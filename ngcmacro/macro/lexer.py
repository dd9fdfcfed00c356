"""
Lexer for the RS274/NGC macro dialect.

Converts source text into a lazy sequence of tokens. Patterns are tried in
order and the first one that matches at the cursor wins, so keywords come
before identifiers, doubles before integers and line ends before other
whitespace.
"""

import logging
import re
from collections.abc import Callable, Iterator

from ngcmacro.config import TRACE
from ngcmacro.utils.errors import LexError

from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)

CommentObserver = Callable[[str, int], None]

# Nothing word-like may follow a keyword or a single letter
_NOT_WORD = r"(?![A-Za-z_])"

_KEYWORD_NAMES = (
    "elseif",
    "else",
    "endif",
    "if",
    "endwhile",
    "while",
    "break",
    "continue",
    "endsub",
    "sub",
    "return",
    "endrepeat",
    "repeat",
    "call",
)

_SKIP = "SKIP"
_COMMENT = "COMMENT"

# (pattern, kind); kind is a TokenKind, _SKIP or _COMMENT
_TOKEN_SPEC: list[tuple[re.Pattern, object]] = [
    (re.compile(r"\r?\n"), TokenKind.RTN),
    (re.compile(r"[ \t\r\f\v]+"), _SKIP),
    (re.compile(r"\([^)\n]*\)"), _COMMENT),
    (re.compile(r";[^\n]*"), _COMMENT),
    (re.compile(r"(?:%s)%s" % ("|".join(_KEYWORD_NAMES), _NOT_WORD), re.IGNORECASE), "KEYWORD"),
    (re.compile(r"(?:gt|lt|ge|le|eq|ne)%s" % _NOT_WORD, re.IGNORECASE), TokenKind.RELATIONAL),
    (re.compile(r"(?:and|or|xor)%s" % _NOT_WORD, re.IGNORECASE), TokenKind.LOGICAL),
    (re.compile(r"[oO]%s" % _NOT_WORD), TokenKind.O),
    (re.compile(r"[A-Za-z]%s" % _NOT_WORD), TokenKind.LETTER),
    (re.compile(r"\*\*"), TokenKind.POWER),
    (re.compile(r"[*/]"), TokenKind.MULTIPLICATIVE),
    (re.compile(r"[+-]"), TokenKind.ADDITIVE),
    (re.compile(r"==|!=|>=|<=|>|<"), TokenKind.RELATIONAL),
    (re.compile(r"="), TokenKind.ASSIGN),
    (re.compile(r"\["), TokenKind.LBRACKET),
    (re.compile(r"\]"), TokenKind.RBRACKET),
    (re.compile(r"#"), TokenKind.HASH),
    (re.compile(r"\d+\.\d*|\.\d+"), TokenKind.DOUBLE),
    (re.compile(r"\d+"), TokenKind.INTEGER),
    (re.compile(r"[A-Za-z_]+"), TokenKind.IDENTIFIER),
]

# Only tried directly after '#' or the O-word marker
_VAR_NAME_PATTERN = re.compile(r"<[^<>\n]+>")

_CASE_FOLDED = (TokenKind.RELATIONAL, TokenKind.LOGICAL, TokenKind.IDENTIFIER)


class Lexer:
    """Tokenizer with line/column tracking"""

    def __init__(self, source: str, on_comment: CommentObserver | None = None):
        """
        Initialize the lexer

        Args:
            source: Macro program text
            on_comment: Optional callback receiving (comment_text, line) for
                every comment the lexer discards
        """
        self.source = source
        self.on_comment = on_comment
        self._cursor = 0
        self._line = 1
        self._column = 1
        self._previous_kind: TokenKind | None = None

    @property
    def line(self) -> int:
        return self._line

    @property
    def column(self) -> int:
        return self._column

    def has_more(self) -> bool:
        return self._cursor < len(self.source)

    def next_token(self) -> Token | None:
        """
        Return the next significant token, or None at end of input

        Raises:
            LexError: if no pattern matches at the cursor
        """
        while self.has_more():
            if self._previous_kind in (TokenKind.HASH, TokenKind.O):
                match = _VAR_NAME_PATTERN.match(self.source, self._cursor)
                if match:
                    return self._emit(TokenKind.VAR_NAME, match.group(0))

            for pattern, kind in _TOKEN_SPEC:
                match = pattern.match(self.source, self._cursor)
                if not match:
                    continue
                text = match.group(0)
                if kind is _SKIP:
                    self._advance(text)
                    break
                if kind is _COMMENT:
                    line = self._line
                    self._advance(text)
                    if self.on_comment is not None:
                        self.on_comment(text[1:-1] if text.startswith("(") else text[1:], line)
                    break
                if kind == "KEYWORD":
                    text = text.lower()
                    return self._emit(TokenKind(text), text)
                if kind in _CASE_FOLDED:
                    text = text.lower()
                return self._emit(kind, text)
            else:
                char = self.source[self._cursor]
                raise LexError(f"Unexpected character {char!r}", self._line, self._column, char)
        return None

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            if token is None:
                return
            yield token

    def _emit(self, kind: TokenKind, text: str) -> Token:
        raw_length = len(text)
        token = Token(kind, text, self._line, self._column)
        self._advance(self.source[self._cursor : self._cursor + raw_length])
        self._previous_kind = kind
        logger.log(TRACE, "token kind=%s text=%r line=%d col=%d", kind.value, text, token.line, token.column)
        return token

    def _advance(self, text: str) -> None:
        self._cursor += len(text)
        newlines = text.count("\n")
        if newlines:
            self._line += newlines
            self._column = len(text) - text.rfind("\n")
        else:
            self._column += len(text)


def tokenize(source: str) -> list[Token]:
    """Tokenize a whole source text eagerly"""
    return list(Lexer(source))
