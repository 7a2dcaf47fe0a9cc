"""
Precedence-Climbing Expression Parser
=====================================

This module turns the token stream from the Tokenizer into an AST. Binary
operators are parsed by precedence climbing: a primary expression is read,
then operators are folded in while their precedence is at least the
current threshold. The right-hand side of an operator is parsed with the
threshold raised by one, which makes equal-precedence chains associate to
the left. Assignment is the exception and associates to the right.

Grammar (Simplified EBNF)
-------------------------
program     ::= (item (NEWLINE | ';'))* EOF
item        ::= declaration | expression
declaration ::= type_kw IDENTIFIER ('=' expression)?
type_kw     ::= 'int' | 'float' | 'char' | 'bool' | 'void'
expression  ::= unary (binop unary)*          (precedence climbing)
unary       ::= ('-' | '!' | '~') unary | primary
primary     ::= INTEGER | FLOAT | STRING | CHAR | IDENTIFIER
              | 'true' | 'false' | '(' expression ')'

Operator Precedence (lowest to highest)
---------------------------------------
1.  assignment     =        (right associative)
2.  logical_or     ||
3.  logical_and    &&
4.  equality       == !=
5.  relational     < <= > >=
6.  additive       + -
7.  multiplicative * / %
8.  shift          << >>
9.  bitwise_and    &
10. bitwise_xor    ^
11. bitwise_or     |

Error Policy
------------
The parser never raises for bad input. An unexpected token or a missing
')' produces an ErrorNode, sets the sticky ``had_error`` flag and keeps
the diagnostic in ``last_error``. Parsing stops at the first error.

Example Usage
-------------
>>> from exprc.lang.parser import parse_expression
>>> from exprc.lang.ast import to_sexpr
>>> to_sexpr(parse_expression("1 + 2 * 3"))
'(+ 1 (* 2 3))'
"""

import logging
from typing import Optional

from exprc.lang.ast import (
    ASTNode,
    AssignmentExpression,
    BinaryExpression,
    ErrorNode,
    Identifier,
    Literal,
    LiteralKind,
    Program,
    UnaryExpression,
    VariableDeclaration,
    to_sexpr,
)
from exprc.lang.errors import (
    CompilerError,
    DiagnosticState,
    ExprSyntaxError,
    MissingTokenError,
    UnexpectedTokenError,
)
from exprc.lang.lexer import Token, Tokenizer, TokenType

logger = logging.getLogger(__name__)


# =============================================================================
# Operator Tables
# =============================================================================

BINARY_PRECEDENCE: dict[TokenType, int] = {
    TokenType.ASSIGN: 1,
    TokenType.LOGICAL_OR: 2,
    TokenType.LOGICAL_AND: 3,
    TokenType.EQUAL: 4,
    TokenType.NOT_EQUAL: 4,
    TokenType.LESS: 5,
    TokenType.LESS_EQUAL: 5,
    TokenType.GREATER: 5,
    TokenType.GREATER_EQUAL: 5,
    TokenType.PLUS: 6,
    TokenType.MINUS: 6,
    TokenType.MULTIPLY: 7,
    TokenType.DIVIDE: 7,
    TokenType.MODULO: 7,
    TokenType.LEFT_SHIFT: 8,
    TokenType.RIGHT_SHIFT: 8,
    TokenType.BITWISE_AND: 9,
    TokenType.BITWISE_XOR: 10,
    TokenType.BITWISE_OR: 11,
}

UNARY_OPERATORS = frozenset({
    TokenType.MINUS,
    TokenType.LOGICAL_NOT,
    TokenType.BITWISE_NOT,
})

LITERAL_KINDS: dict[TokenType, LiteralKind] = {
    TokenType.INTEGER_LITERAL: LiteralKind.INT,
    TokenType.FLOAT_LITERAL: LiteralKind.FLOAT,
    TokenType.STRING_LITERAL: LiteralKind.STRING,
    TokenType.CHAR_LITERAL: LiteralKind.CHAR,
}


def get_precedence(token_type: TokenType) -> int:
    """Return the binding strength of a binary operator, 0 for non-operators."""
    return BINARY_PRECEDENCE.get(token_type, 0)


# =============================================================================
# Parser Class
# =============================================================================

class Parser(DiagnosticState):
    """
    Expression parser holding the current token and one token of lookahead.

    Every consumption shifts the lookahead into ``current`` and pulls a new
    lookahead from the tokenizer.

    Attributes:
        tokenizer: Token source
        current: Token being examined
        lookahead: The token after ``current``
    """

    def __init__(self, tokenizer: Tokenizer):
        """
        Initialize the parser and prime both token slots.

        Args:
            tokenizer: The token source to pull from
        """
        super().__init__()
        self.tokenizer = tokenizer
        self.filename = tokenizer.filename

        # Inside parentheses newlines never end an item
        self._paren_depth = 0
        # Newlines separate items while parsing a program
        self._line_mode = False

        self.current: Token = tokenizer.next_token()
        self.lookahead: Token = tokenizer.next_token()

    # =========================================================================
    # Public Interface
    # =========================================================================

    def parse(self) -> ASTNode:
        """
        Parse a single expression.

        Returns:
            The expression tree, or an ErrorNode when parsing failed.
            Never returns None. Tokens after the expression are left
            unconsumed; see expect_end().
        """
        self._skip_newlines()
        if self._check(TokenType.EOF):
            return self._unexpected(self.current, "an expression")

        node = self.parse_expression()
        logger.debug("parsed expression: %s (error=%s)", to_sexpr(node), self.had_error)
        return node

    def parse_program(self) -> Program:
        """
        Parse a sequence of declarations and expressions.

        Items are separated by newlines or ';'. Parsing stops at the first
        error; the returned Program then ends with the ErrorNode.
        """
        program = Program(token=self.current)
        self._line_mode = True
        try:
            while True:
                self._skip_separators()
                if self._check(TokenType.EOF):
                    break

                item = self._parse_item()
                program.add(item)
                if isinstance(item, ErrorNode):
                    break

                if not self._check(TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.EOF):
                    program.add(self._unexpected(self.current, "newline or ';'"))
                    break
        finally:
            self._line_mode = False

        logger.debug("parsed program with %d items", len(program.statements))
        return program

    def parse_expression(self, min_precedence: int = 1) -> ASTNode:
        """
        Parse an expression whose operators bind at least as tightly as
        ``min_precedence``.

        Args:
            min_precedence: Lowest operator precedence accepted at this level

        Returns:
            The folded expression tree or an ErrorNode
        """
        left = self._parse_unary()
        if isinstance(left, ErrorNode):
            return left

        while True:
            self._skip_newlines()
            precedence = get_precedence(self.current.type)
            if precedence == 0 or precedence < min_precedence:
                break

            op_token = self._advance()

            if op_token.type == TokenType.ASSIGN:
                # Right associative: a = b = c is a = (b = c)
                right = self.parse_expression(precedence)
            else:
                right = self.parse_expression(precedence + 1)

            if isinstance(right, ErrorNode):
                return right

            if op_token.type == TokenType.ASSIGN:
                if not isinstance(left, Identifier):
                    return self._error_node(
                        ExprSyntaxError(
                            "invalid assignment target",
                            op_token.location,
                            hint="only a variable name can be assigned to",
                            source_line=self._source_line(op_token),
                        ),
                        op_token,
                    )
                left = AssignmentExpression(op_token, target=left, value=right)
            else:
                left = BinaryExpression(
                    op_token, operator=op_token.lexeme, left=left, right=right
                )

        return left

    def at_end(self) -> bool:
        """True once only newlines and EOF remain."""
        self._skip_newlines(force=True)
        return self._check(TokenType.EOF)

    def expect_end(self) -> Optional[CompilerError]:
        """Record a syntax error if tokens remain after a parsed expression."""
        if self.at_end():
            return None
        error = UnexpectedTokenError(
            self.current.lexeme,
            self.current.location,
            self._source_line(self.current),
            expected="end of input",
        )
        return self._report(error)

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _advance(self) -> Token:
        """Consume the current token and shift the lookahead in."""
        token = self.current
        if token.type != TokenType.EOF:
            self.current = self.lookahead
            self.lookahead = self.tokenizer.next_token()
        return token

    def _check(self, *types: TokenType) -> bool:
        return self.current.type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        """Consume the current token if it is one of the given types."""
        if self._check(*types):
            return self._advance()
        return None

    def _skip_newlines(self, force: bool = False) -> None:
        """Skip NEWLINE tokens unless they currently terminate an item."""
        if self._line_mode and self._paren_depth == 0 and not force:
            return
        while self._check(TokenType.NEWLINE):
            self._advance()

    def _skip_separators(self) -> None:
        while self._match(TokenType.NEWLINE, TokenType.SEMICOLON):
            pass

    def _source_line(self, token: Token) -> Optional[str]:
        return self.tokenizer.get_source_line(token.line)

    # =========================================================================
    # Error Helpers
    # =========================================================================

    def _error_node(self, error: CompilerError, token: Token) -> ErrorNode:
        self._report(error)
        logger.debug("syntax error: %s", error.message)
        return ErrorNode(token, message=error.message)

    def _unexpected(self, token: Token, expected: str) -> ErrorNode:
        return self._error_node(
            UnexpectedTokenError(
                token.lexeme if token.type != TokenType.EOF else "",
                token.location,
                self._source_line(token),
                expected=expected,
            ),
            token,
        )

    # =========================================================================
    # Grammar Rules
    # =========================================================================

    def _parse_item(self) -> ASTNode:
        """Parse one program item: a declaration or an expression."""
        if self.current.is_type_keyword() and self.lookahead.type == TokenType.IDENTIFIER:
            return self._parse_declaration()
        return self.parse_expression()

    def _parse_declaration(self) -> ASTNode:
        type_token = self._advance()
        name_token = self._advance()

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self.parse_expression()
            if isinstance(initializer, ErrorNode):
                return initializer

        return VariableDeclaration(
            name_token,
            type_name=type_token.lexeme,
            name=name_token.lexeme,
            initializer=initializer,
        )

    def _parse_unary(self) -> ASTNode:
        self._skip_newlines()
        if self.current.type in UNARY_OPERATORS:
            op_token = self._advance()
            operand = self._parse_unary()
            if isinstance(operand, ErrorNode):
                return operand
            return UnaryExpression(op_token, operator=op_token.lexeme, operand=operand)
        return self._parse_primary()

    def _parse_primary(self) -> ASTNode:
        token = self.current

        if token.type in LITERAL_KINDS:
            self._advance()
            return Literal(token, literal_kind=LITERAL_KINDS[token.type], value=token.value)

        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return Literal(
                token,
                literal_kind=LiteralKind.BOOL,
                value=1 if token.type == TokenType.TRUE else 0,
            )

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(token, name=token.lexeme)

        if token.type == TokenType.LPAREN:
            return self._parse_parenthesized()

        return self._unexpected(token, "a literal, identifier or '('")

    def _parse_parenthesized(self) -> ASTNode:
        self._advance()  # consume '('
        self._paren_depth += 1
        try:
            expr = self.parse_expression()
            if isinstance(expr, ErrorNode):
                return expr

            self._skip_newlines()
            if not self._check(TokenType.RPAREN):
                closing = self.current
                return self._error_node(
                    MissingTokenError(")", closing.location, self._source_line(closing)),
                    closing,
                )
            self._advance()  # consume ')'
            return expr
        finally:
            self._paren_depth -= 1


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_expression(source: str, filename: str = "<input>") -> ASTNode:
    """
    Parse a single expression from source text.

    Example:
        >>> parse_expression("(1 + 2) * 3").operator
        '*'
    """
    return Parser(Tokenizer(source, filename)).parse()


def parse_source(source: str, filename: str = "<input>") -> Program:
    """Parse a whole program from source text."""
    return Parser(Tokenizer(source, filename)).parse_program()
