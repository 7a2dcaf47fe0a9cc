"""
Expression Tokenizer
====================

This module converts source text into a lazy, pull-based stream of tokens
for the parser. Each call to ``next_token()`` produces exactly one token;
the tokenizer never raises for malformed input. Problems such as an
unterminated string set a sticky lexical error and a best-effort token is
still returned.

Token Categories
----------------
- Keywords: int, float, char, bool, void, if, else, while, for, return,
  break, continue, true, false, null
- Identifiers: [A-Za-z_][A-Za-z0-9_]*
- Numbers: decimal integers, or decimals with a single '.' (floats)
- Strings: "double quoted", escapes \\n \\t \\r \\\\ \\"
- Characters: 'c', escapes as for strings plus \\'
- Operators: = + - * / % ++ -- == != < > <= >= && || ! & | ^ ~ << >>
- Delimiters: ( ) { } [ ] ; , . : ?
- Newlines: '\\n' is a significant token, not whitespace

Example Usage
-------------
>>> from exprc.lang.lexer import Tokenizer
>>> for token in Tokenizer("x + 42").tokenize():
...     print(token)
Token(IDENTIFIER, 'x', 1:1)
Token(PLUS, '+', 1:3)
Token(INTEGER_LITERAL, '42', 1:5)
Token(EOF, '', 1:7)
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, Union

from exprc.errors import SourceLocation
from exprc.lang.errors import (
    DiagnosticState,
    UnterminatedCharError,
    UnterminatedStringError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Token Types
# =============================================================================

class TokenType(Enum):
    """Every kind of token the tokenizer can produce."""

    # Special
    EOF = auto()
    NEWLINE = auto()
    UNKNOWN = auto()

    # Keywords
    INT = auto()
    FLOAT = auto()
    CHAR = auto()
    BOOL = auto()
    VOID = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Identifiers and literals
    IDENTIFIER = auto()
    INTEGER_LITERAL = auto()
    FLOAT_LITERAL = auto()
    STRING_LITERAL = auto()
    CHAR_LITERAL = auto()

    # Operators
    ASSIGN = auto()         # =
    PLUS = auto()           # +
    MINUS = auto()          # -
    MULTIPLY = auto()       # *
    DIVIDE = auto()         # /
    MODULO = auto()         # %
    INCREMENT = auto()      # ++
    DECREMENT = auto()      # --
    EQUAL = auto()          # ==
    NOT_EQUAL = auto()      # !=
    LESS = auto()           # <
    GREATER = auto()        # >
    LESS_EQUAL = auto()     # <=
    GREATER_EQUAL = auto()  # >=
    LOGICAL_AND = auto()    # &&
    LOGICAL_OR = auto()     # ||
    LOGICAL_NOT = auto()    # !
    BITWISE_AND = auto()    # &
    BITWISE_OR = auto()     # |
    BITWISE_XOR = auto()    # ^
    BITWISE_NOT = auto()    # ~
    LEFT_SHIFT = auto()     # <<
    RIGHT_SHIFT = auto()    # >>

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    SEMICOLON = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    QUESTION = auto()


KEYWORDS: dict[str, TokenType] = {
    "int": TokenType.INT,
    "float": TokenType.FLOAT,
    "char": TokenType.CHAR,
    "bool": TokenType.BOOL,
    "void": TokenType.VOID,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "return": TokenType.RETURN,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

# Checked before the single-character table
TWO_CHAR_OPERATORS: dict[str, TokenType] = {
    "==": TokenType.EQUAL,
    "!=": TokenType.NOT_EQUAL,
    "<=": TokenType.LESS_EQUAL,
    ">=": TokenType.GREATER_EQUAL,
    "&&": TokenType.LOGICAL_AND,
    "||": TokenType.LOGICAL_OR,
    "++": TokenType.INCREMENT,
    "--": TokenType.DECREMENT,
    "<<": TokenType.LEFT_SHIFT,
    ">>": TokenType.RIGHT_SHIFT,
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "=": TokenType.ASSIGN,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.MULTIPLY,
    "/": TokenType.DIVIDE,
    "%": TokenType.MODULO,
    "<": TokenType.LESS,
    ">": TokenType.GREATER,
    "!": TokenType.LOGICAL_NOT,
    "&": TokenType.BITWISE_AND,
    "|": TokenType.BITWISE_OR,
    "^": TokenType.BITWISE_XOR,
    "~": TokenType.BITWISE_NOT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    "?": TokenType.QUESTION,
}

TYPE_KEYWORDS = frozenset({
    TokenType.INT,
    TokenType.FLOAT,
    TokenType.CHAR,
    TokenType.BOOL,
    TokenType.VOID,
})

ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


# =============================================================================
# Token Class
# =============================================================================

LiteralValue = Union[int, float, str, None]


@dataclass(frozen=True)
class Token:
    """
    A single token from the source text.

    Attributes:
        type: The token type
        lexeme: Exact source text matched (string literals keep their quotes)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        value: Literal payload parsed at creation time, or None
        filename: Source filename for locations
    """
    type: TokenType
    lexeme: str
    line: int
    column: int
    value: LiteralValue = None
    filename: str = "<input>"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.lexeme!r}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Get the source location of this token."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_type_keyword(self) -> bool:
        """Check if this token names a declarable type."""
        return self.type in TYPE_KEYWORDS


# =============================================================================
# Tokenizer Class
# =============================================================================

class Tokenizer(DiagnosticState):
    """
    Pull-based tokenizer for the expression language.

    Attributes:
        source: The complete source text
        filename: Name of source file for locations
        had_error: Sticky flag set by the first lexical problem
        last_error: Most recent lexical diagnostic
    """

    IDENT_START = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
    DIGITS = frozenset("0123456789")
    IDENT_CHARS = IDENT_START | DIGITS
    WHITESPACE = frozenset(" \t\r")

    def __init__(self, source: str, filename: str = "<input>"):
        """
        Initialize the tokenizer.

        Args:
            source: Source text to tokenize (may be empty)
            filename: Name of source file for locations
        """
        super().__init__()
        self.source = source or ""
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1

    # =========================================================================
    # Public Interface
    # =========================================================================

    def next_token(self) -> Token:
        """
        Scan and return the next token, advancing the position.

        Always returns a token; at end of input returns EOF on every call.
        """
        self._skip_whitespace()

        start_line = self._line
        start_column = self._column

        if self._at_end():
            return self._make_token(TokenType.EOF, "", start_line, start_column)

        char = self._peek()

        if char == "\n":
            self._advance()
            return self._make_token(TokenType.NEWLINE, "\n", start_line, start_column)

        if char in self.IDENT_START:
            return self._scan_identifier(start_line, start_column)

        if char in self.DIGITS:
            return self._scan_number(start_line, start_column)

        if char == '"':
            return self._scan_string(start_line, start_column)

        if char == "'":
            return self._scan_char(start_line, start_column)

        return self._scan_operator(start_line, start_column)

    def peek_token(self) -> Token:
        """
        Return the next token without consuming it.

        Saves and restores the scanner position around a next_token() call.
        The error state is restored as well, so peeking never reports a
        diagnostic twice.
        """
        saved = (self._pos, self._line, self._column, self.had_error, self.last_error)
        try:
            return self.next_token()
        finally:
            self._pos, self._line, self._column, self.had_error, self.last_error = saved

    def tokenize(self) -> Iterator[Token]:
        """
        Yield tokens up to and including the first EOF.

        Yields:
            Token objects in source order
        """
        count = 0
        while True:
            token = self.next_token()
            count += 1
            yield token
            if token.type == TokenType.EOF:
                break
        logger.debug("%s: produced %d tokens", self.filename, count)

    def get_source_line(self, line: int) -> Optional[str]:
        """Return the text of a 1-based source line, for error context."""
        lines = self.source.split("\n")
        if 0 < line <= len(lines):
            return lines[line - 1].rstrip("\r")
        return None

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source) or self.source[self._pos] == "\0"

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset ('' past the end)."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, updating line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1

        return char

    def _make_token(
        self,
        token_type: TokenType,
        lexeme: str,
        line: int,
        column: int,
        value: LiteralValue = None,
    ) -> Token:
        return Token(
            type=token_type,
            lexeme=lexeme,
            line=line,
            column=column,
            value=value,
            filename=self.filename,
        )

    def _skip_whitespace(self) -> None:
        """Skip spaces, tabs and carriage returns. Newlines are tokens."""
        while not self._at_end() and self._peek() in self.WHITESPACE:
            self._advance()

    # =========================================================================
    # Token Scanning Methods
    # =========================================================================

    def _scan_identifier(self, start_line: int, start_column: int) -> Token:
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        name = "".join(chars)
        token_type = KEYWORDS.get(name, TokenType.IDENTIFIER)
        return self._make_token(token_type, name, start_line, start_column)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan a numeric literal.

        Digits with at most one '.'; the '.' selects a float literal. A
        trailing '.' with no fraction digits is still a float ("3." is 3.0).
        """
        chars = []
        has_decimal = False

        while not self._at_end():
            char = self._peek()
            if char in self.DIGITS:
                chars.append(self._advance())
            elif char == "." and not has_decimal:
                has_decimal = True
                chars.append(self._advance())
            else:
                break

        lexeme = "".join(chars)
        if has_decimal:
            return self._make_token(
                TokenType.FLOAT_LITERAL, lexeme, start_line, start_column, float(lexeme)
            )
        return self._make_token(
            TokenType.INTEGER_LITERAL, lexeme, start_line, start_column, int(lexeme)
        )

    def _scan_string(self, start_line: int, start_column: int) -> Token:
        """
        Scan a double-quoted string literal.

        An unterminated string records a lexical error but still yields a
        STRING_LITERAL token holding whatever was consumed.
        """
        self._advance()  # consume opening "

        chars = []
        while not self._at_end() and self._peek() != '"':
            if self._peek() == "\\":
                self._advance()
                if not self._at_end():
                    chars.append(self._scan_escape())
                continue
            chars.append(self._advance())

        if self._peek() == '"':
            self._advance()  # consume closing "
        else:
            location = SourceLocation(self.filename, start_line, start_column)
            self._report(
                UnterminatedStringError(location, self.get_source_line(start_line))
            )
            logger.debug("%s: unterminated string literal", location)

        content = "".join(chars)
        return self._make_token(
            TokenType.STRING_LITERAL, f'"{content}"', start_line, start_column, content
        )

    def _scan_char(self, start_line: int, start_column: int) -> Token:
        """
        Scan a single-quoted character literal.

        Unterminated literals record a lexical error and yield an UNKNOWN
        token for the opening quote.
        """
        self._advance()  # consume opening '

        if self._at_end():
            return self._unterminated_char(start_line, start_column)

        if self._peek() == "\\":
            self._advance()
            char = self._scan_escape() if not self._at_end() else ""
        else:
            char = self._advance()

        if self._peek() != "'":
            return self._unterminated_char(start_line, start_column)
        self._advance()  # consume closing '

        return self._make_token(
            TokenType.CHAR_LITERAL, f"'{char}'", start_line, start_column, char
        )

    def _unterminated_char(self, start_line: int, start_column: int) -> Token:
        location = SourceLocation(self.filename, start_line, start_column)
        self._report(UnterminatedCharError(location, self.get_source_line(start_line)))
        return self._make_token(TokenType.UNKNOWN, "'", start_line, start_column)

    def _scan_escape(self) -> str:
        """Consume the character after a backslash. Unknown escapes map to themselves."""
        char = self._advance()
        return ESCAPES.get(char, char)

    def _scan_operator(self, start_line: int, start_column: int) -> Token:
        """Scan an operator or delimiter, two-character forms first."""
        pair = self._peek() + self._peek(1)
        if pair in TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            return self._make_token(TWO_CHAR_OPERATORS[pair], pair, start_line, start_column)

        char = self._advance()
        token_type = SINGLE_CHAR_TOKENS.get(char, TokenType.UNKNOWN)
        return self._make_token(token_type, char, start_line, start_column)
