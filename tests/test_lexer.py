# =============================================================================
# test_lexer.py - Tokenizer Unit Tests
# =============================================================================
# Tests for the expression language tokenizer.
#
# Test coverage includes:
#   - Identifiers and keyword reclassification
#   - Integer and float literals
#   - String and character literals with escape sequences
#   - One- and two-character operators, delimiters
#   - Newlines as tokens, position tracking
#   - Sticky lexical errors and lookahead
# =============================================================================

import pytest
from exprc.lang.lexer import Token, Tokenizer, TokenType
from exprc.lang.errors import (
    ErrorKind,
    UnterminatedCharError,
    UnterminatedStringError,
)


# =============================================================================
# Helper Function
# =============================================================================

def tokenize(source: str) -> list:
    """
    Helper to tokenize and drop the trailing EOF token.
    Tests are focused on meaningful tokens, not the terminator.
    """
    tokens = list(Tokenizer(source, "<test>").tokenize())
    assert tokens[-1].type == TokenType.EOF
    return tokens[:-1]


def types(source: str) -> list:
    return [t.type for t in tokenize(source)]


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition for simple inputs."""

    def test_empty_source(self):
        """Empty input produces only EOF at 1:1."""
        tokenizer = Tokenizer("")
        token = tokenizer.next_token()
        assert token.type == TokenType.EOF
        assert token.lexeme == ""
        assert (token.line, token.column) == (1, 1)

    def test_whitespace_only(self):
        """Spaces, tabs and carriage returns are skipped."""
        assert tokenize("  \t \r ") == []

    def test_eof_is_repeated(self):
        """Calling next_token past the end keeps returning EOF."""
        tokenizer = Tokenizer("x")
        tokenizer.next_token()
        assert tokenizer.next_token().type == TokenType.EOF
        assert tokenizer.next_token().type == TokenType.EOF

    def test_simple_expression(self):
        """Tokens of 'x + 42' with positions."""
        tokens = tokenize("x + 42")
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER, TokenType.PLUS, TokenType.INTEGER_LITERAL,
        ]
        assert [(t.line, t.column) for t in tokens] == [(1, 1), (1, 3), (1, 5)]

    def test_token_repr(self):
        """Tokens print as Token(TYPE, 'lexeme', line:column)."""
        token = tokenize("foo")[0]
        assert repr(token) == "Token(IDENTIFIER, 'foo', 1:1)"

    def test_token_location_uses_filename(self):
        """Token locations carry the tokenizer's filename."""
        token = tokenize("foo")[0]
        assert str(token.location) == "<test>:1:1"

    def test_unknown_character(self):
        """Characters outside the language become UNKNOWN tokens."""
        tokens = tokenize("@")
        assert tokens[0].type == TokenType.UNKNOWN
        assert tokens[0].lexeme == "@"

    def test_undecodable_byte_is_unknown(self):
        """A surrogate-escaped byte is an UNKNOWN token with a readable repr."""
        token = tokenize("\udcff")[0]
        assert token.type == TokenType.UNKNOWN
        assert repr(token) == "Token(UNKNOWN, '\\udcff', 1:1)"

    def test_nul_terminates_input(self):
        """A NUL character ends the input."""
        assert types("1\0 2") == [TokenType.INTEGER_LITERAL]


# =============================================================================
# Identifier and Keyword Tests
# =============================================================================

class TestIdentifiers:
    """Test identifier scanning and keyword lookup."""

    def test_identifier_with_underscore_and_digits(self):
        """Identifiers may contain underscores and digits after the start."""
        tokens = tokenize("_count1")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].lexeme == "_count1"

    @pytest.mark.parametrize("word,token_type", [
        ("int", TokenType.INT),
        ("float", TokenType.FLOAT),
        ("char", TokenType.CHAR),
        ("bool", TokenType.BOOL),
        ("void", TokenType.VOID),
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("while", TokenType.WHILE),
        ("for", TokenType.FOR),
        ("return", TokenType.RETURN),
        ("break", TokenType.BREAK),
        ("continue", TokenType.CONTINUE),
        ("true", TokenType.TRUE),
        ("false", TokenType.FALSE),
        ("null", TokenType.NULL),
    ])
    def test_keywords(self, word, token_type):
        """Every keyword is reclassified from an identifier."""
        assert types(word) == [token_type]

    def test_keywords_are_case_sensitive(self):
        """'Int' is an ordinary identifier."""
        assert types("Int") == [TokenType.IDENTIFIER]

    def test_keyword_prefix_is_identifier(self):
        """'integer' is not the 'int' keyword."""
        assert types("integer") == [TokenType.IDENTIFIER]

    def test_type_keyword_helper(self):
        """is_type_keyword() is true only for declarable types."""
        int_token, if_token = tokenize("int if")
        assert int_token.is_type_keyword()
        assert not if_token.is_type_keyword()


# =============================================================================
# Number Tests
# =============================================================================

class TestNumbers:
    """Test integer and float literal scanning."""

    def test_integer(self):
        """Decimal integers carry their value."""
        token = tokenize("12345")[0]
        assert token.type == TokenType.INTEGER_LITERAL
        assert token.value == 12345

    def test_float(self):
        """A single '.' makes a float literal."""
        token = tokenize("3.14")[0]
        assert token.type == TokenType.FLOAT_LITERAL
        assert token.value == pytest.approx(3.14)

    def test_trailing_dot_is_float(self):
        """'3.' is the float 3.0."""
        token = tokenize("3.")[0]
        assert token.type == TokenType.FLOAT_LITERAL
        assert token.value == 3.0

    def test_second_dot_ends_number(self):
        """'1.2.3' is a float, a dot and an integer."""
        assert types("1.2.3") == [
            TokenType.FLOAT_LITERAL, TokenType.DOT, TokenType.INTEGER_LITERAL,
        ]

    def test_number_then_identifier(self):
        """Digits stop at the first letter."""
        assert types("2x") == [TokenType.INTEGER_LITERAL, TokenType.IDENTIFIER]


# =============================================================================
# String and Character Literal Tests
# =============================================================================

class TestStrings:
    """Test string literal scanning."""

    def test_simple_string(self):
        """The value excludes the quotes, the lexeme keeps them."""
        token = tokenize('"hello"')[0]
        assert token.type == TokenType.STRING_LITERAL
        assert token.value == "hello"
        assert token.lexeme == '"hello"'

    def test_escape_sequences(self):
        """Standard escapes are decoded."""
        token = tokenize(r'"a\nb\tc\\d\"e"')[0]
        assert token.value == 'a\nb\tc\\d"e'

    def test_unknown_escape_maps_to_itself(self):
        r"""'\q' decodes to 'q'."""
        assert tokenize(r'"\q"')[0].value == "q"

    def test_unterminated_string(self):
        """A missing closing quote sets a sticky lexical error."""
        tokenizer = Tokenizer('"abc')
        token = tokenizer.next_token()

        assert token.type == TokenType.STRING_LITERAL
        assert token.value == "abc"
        assert tokenizer.had_error
        assert isinstance(tokenizer.last_error, UnterminatedStringError)
        assert tokenizer.last_error.kind == ErrorKind.LEXICAL
        assert tokenizer.last_error.message == "Unterminated string literal"

    def test_error_is_sticky(self):
        """Later good tokens do not clear the error flag."""
        tokenizer = Tokenizer('"abc')
        list(tokenizer.tokenize())
        tokenizer.next_token()
        assert tokenizer.had_error

    def test_clear_error(self):
        """clear_error() resets the flag and the diagnostic."""
        tokenizer = Tokenizer('"abc')
        tokenizer.next_token()
        tokenizer.clear_error()
        assert not tokenizer.had_error
        assert tokenizer.last_error is None


class TestCharacters:
    """Test character literal scanning."""

    def test_simple_char(self):
        """'a' is a CHAR_LITERAL with value 'a'."""
        token = tokenize("'a'")[0]
        assert token.type == TokenType.CHAR_LITERAL
        assert token.value == "a"

    def test_escaped_char(self):
        r"""'\n' decodes to a newline."""
        assert tokenize(r"'\n'")[0].value == "\n"

    def test_escaped_quote(self):
        r"""'\'' is a single quote character."""
        assert tokenize(r"'\''")[0].value == "'"

    def test_unterminated_char(self):
        """More than one character before the quote is an error."""
        tokenizer = Tokenizer("'ab'")
        token = tokenizer.next_token()
        assert token.type == TokenType.UNKNOWN
        assert isinstance(tokenizer.last_error, UnterminatedCharError)

    def test_char_at_end_of_input(self):
        """A lone quote at the end of input is an error."""
        tokenizer = Tokenizer("'")
        assert tokenizer.next_token().type == TokenType.UNKNOWN
        assert tokenizer.had_error


# =============================================================================
# Operator Tests
# =============================================================================

class TestOperators:
    """Test operator and delimiter recognition."""

    @pytest.mark.parametrize("text,token_type", [
        ("==", TokenType.EQUAL),
        ("!=", TokenType.NOT_EQUAL),
        ("<=", TokenType.LESS_EQUAL),
        (">=", TokenType.GREATER_EQUAL),
        ("&&", TokenType.LOGICAL_AND),
        ("||", TokenType.LOGICAL_OR),
        ("++", TokenType.INCREMENT),
        ("--", TokenType.DECREMENT),
        ("<<", TokenType.LEFT_SHIFT),
        (">>", TokenType.RIGHT_SHIFT),
    ])
    def test_two_char_operators(self, text, token_type):
        """Two-character operators win over their one-character prefixes."""
        assert types(text) == [token_type]

    def test_single_char_operators(self):
        """Arithmetic, comparison and bitwise single characters."""
        assert types("= + - * / % < > ! & | ^ ~") == [
            TokenType.ASSIGN, TokenType.PLUS, TokenType.MINUS,
            TokenType.MULTIPLY, TokenType.DIVIDE, TokenType.MODULO,
            TokenType.LESS, TokenType.GREATER, TokenType.LOGICAL_NOT,
            TokenType.BITWISE_AND, TokenType.BITWISE_OR, TokenType.BITWISE_XOR,
            TokenType.BITWISE_NOT,
        ]

    def test_delimiters(self):
        """All delimiter characters."""
        assert types("( ) { } [ ] ; , . : ?") == [
            TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACE,
            TokenType.RBRACE, TokenType.LBRACKET, TokenType.RBRACKET,
            TokenType.SEMICOLON, TokenType.COMMA, TokenType.DOT,
            TokenType.COLON, TokenType.QUESTION,
        ]

    def test_no_spaces_needed(self):
        """'a<=b' splits into three tokens."""
        assert types("a<=b") == [
            TokenType.IDENTIFIER, TokenType.LESS_EQUAL, TokenType.IDENTIFIER,
        ]


# =============================================================================
# Newline and Position Tests
# =============================================================================

class TestNewlinesAndPositions:
    """Test newline tokens and line/column tracking."""

    def test_newline_is_a_token(self):
        """'\\n' produces a NEWLINE token."""
        assert types("1\n2") == [
            TokenType.INTEGER_LITERAL, TokenType.NEWLINE, TokenType.INTEGER_LITERAL,
        ]

    def test_line_and_column_after_newline(self):
        """Columns restart at 1 on each line."""
        tokens = tokenize("a\n  b")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (1, 2)
        assert (tokens[2].line, tokens[2].column) == (2, 3)

    def test_tab_counts_one_column(self):
        """A tab advances the column by one."""
        assert tokenize("\tx")[0].column == 2

    def test_get_source_line(self):
        """Source lines are available for error context."""
        tokenizer = Tokenizer("first\nsecond")
        assert tokenizer.get_source_line(2) == "second"
        assert tokenizer.get_source_line(3) is None

    def test_crlf_line_endings(self):
        """Carriage returns are whitespace and never reach source lines."""
        assert types("1\r\n2") == [
            TokenType.INTEGER_LITERAL, TokenType.NEWLINE, TokenType.INTEGER_LITERAL,
        ]
        tokenizer = Tokenizer("first\r\nsecond\r\n")
        assert tokenizer.get_source_line(1) == "first"
        assert tokenizer.get_source_line(2) == "second"


# =============================================================================
# Lookahead Tests
# =============================================================================

class TestPeek:
    """Test non-consuming lookahead."""

    def test_peek_does_not_consume(self):
        """peek_token() returns the token next_token() will return."""
        tokenizer = Tokenizer("a b")
        peeked = tokenizer.peek_token()
        assert peeked == tokenizer.next_token()
        assert tokenizer.next_token().lexeme == "b"

    def test_peek_does_not_report_errors(self):
        """Peeking at a bad literal leaves the error state untouched."""
        tokenizer = Tokenizer('"abc')
        tokenizer.peek_token()
        assert not tokenizer.had_error
        tokenizer.next_token()
        assert tokenizer.had_error

    def test_tokens_are_immutable(self):
        """Token is a frozen dataclass."""
        token = Token(TokenType.IDENTIFIER, "x", 1, 1)
        with pytest.raises(AttributeError):
            token.lexeme = "y"
