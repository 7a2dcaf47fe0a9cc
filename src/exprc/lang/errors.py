"""
Expression Compiler Error Hierarchy
===================================

Diagnostics produced by the tokenizer, parser, semantic analyzer and code
generator. Pipeline stages do not raise these for malformed input: they
record the most recent one as a sticky diagnostic (see DiagnosticState) and
return a best-effort result. The compiler driver gathers the recorded
diagnostics and raises CompilationFailed once the pipeline stops.

Exception Hierarchy
-------------------
CompilerError (base, kind = ErrorKind)
├── LexicalError - malformed token
│   ├── UnterminatedStringError - missing closing double quote
│   └── UnterminatedCharError - missing closing single quote
├── ExprSyntaxError - parser errors
│   ├── UnexpectedTokenError - token not valid at this position
│   └── MissingTokenError - expected delimiter not found
├── SemanticError - type or symbol problems
│   └── TypeMismatchError - expression has no valid type
├── CodeGenError - code generation failures
│   └── UnsupportedNodeError - node kind has no lowering
├── OutputError - output sink could not be opened or written
├── ResourceError - allocation failure
└── CompilationFailed - aggregate report from the driver
"""

from enum import Enum, auto
from typing import List, Optional

from exprc.errors import ExprcError, SourceLocation


def displayable(text: str) -> str:
    """Escape undecodable source bytes (surrogate escapes) for printing."""
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


class ErrorKind(Enum):
    """Error taxonomy shared by every pipeline stage."""
    LEXICAL = auto()
    SYNTAX = auto()
    SEMANTIC = auto()
    CODE_GENERATION = auto()
    MEMORY = auto()
    IO = auto()

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")


# =============================================================================
# Base Compiler Exception
# =============================================================================

class CompilerError(ExprcError):
    """
    Base exception for all pipeline diagnostics.

    Attributes:
        message: The error description
        kind: Which stage family produced the error
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
        source_line: The actual source text at the error location
    """

    kind: ErrorKind = ErrorKind.SYNTAX

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    @property
    def line(self) -> int:
        """1-based line of the error, or 0 when no location is known."""
        return self.location.line if self.location else 0

    @property
    def column(self) -> int:
        """1-based column of the error, or 0 when no location is known."""
        return self.location.column if self.location else 0

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

            calc.ex:1:5: error: unexpected token ')' in expression
                1 + ) 2
                    ^
            hint: expected a literal, identifier or '('
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        # Source context with caret pointer
        if self.source_line is not None and self.location is not None:
            parts.append(f"    {displayable(self.source_line)}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class CompilationFailed(CompilerError):
    """
    Aggregate compilation error built from an ErrorCollector report.

    The message is an already formatted report and is passed through as-is.
    The individual diagnostics stay available on ``errors``.
    """

    def __init__(self, report: str, errors: Optional[List[CompilerError]] = None):
        self.errors = list(errors or [])
        super().__init__(report)

    def _format_message(self) -> str:
        return self.message


# =============================================================================
# Lexical Errors
# =============================================================================

class LexicalError(CompilerError):
    """Malformed token in the source text."""
    kind = ErrorKind.LEXICAL


class UnterminatedStringError(LexicalError):
    """
    String literal not closed before end of input.

    Example:
        "hello    <- missing closing quote
    """

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "Unterminated string literal",
            location=location,
            hint="add closing '\"' to complete the string",
            source_line=source_line,
        )


class UnterminatedCharError(LexicalError):
    """Character literal not closed after its single character."""

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "Unterminated character literal",
            location=location,
            hint="character literals hold exactly one character, e.g. 'a'",
            source_line=source_line,
        )


# =============================================================================
# Syntax Errors
# =============================================================================

class ExprSyntaxError(CompilerError):
    """Token sequence does not match the expression grammar."""
    kind = ErrorKind.SYNTAX


class UnexpectedTokenError(ExprSyntaxError):
    """
    Token not valid where the parser found it.

    Raised for anything at primary position that is not a literal,
    identifier, boolean keyword, unary operator or opening parenthesis.
    """

    def __init__(
        self,
        lexeme: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        expected: Optional[str] = None,
    ):
        self.lexeme = lexeme
        self.expected = expected
        if lexeme == "\n":
            message = "Unexpected newline in expression"
        elif lexeme:
            message = f"Unexpected token '{displayable(lexeme)}' in expression"
        else:
            message = "Unexpected end of input in expression"
        if location is not None:
            message += f" at line {location.line}, column {location.column}"
        super().__init__(
            message,
            location=location,
            hint=f"expected {expected}" if expected else None,
            source_line=source_line,
        )


class MissingTokenError(ExprSyntaxError):
    """Expected delimiter, usually ')', was not found."""

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        super().__init__(
            f"expected '{expected}'",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Semantic Errors
# =============================================================================

class SemanticError(CompilerError):
    """Type inference or symbol resolution failure."""
    kind = ErrorKind.SEMANTIC


class TypeMismatchError(SemanticError):
    """Operands of an operator do not have compatible types."""

    def __init__(
        self,
        operator: str,
        left_type: str,
        right_type: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.operator = operator
        self.left_type = left_type
        self.right_type = right_type
        super().__init__(
            f"invalid operands to '{operator}' ({left_type} and {right_type})",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class CodeGenError(CompilerError):
    """Assembly could not be produced for a node."""
    kind = ErrorKind.CODE_GENERATION


class UnsupportedNodeError(CodeGenError):
    """Node kind is recognized but has no lowering."""

    def __init__(
        self,
        node_kind: str,
        location: Optional[SourceLocation] = None,
        detail: Optional[str] = None,
    ):
        self.node_kind = node_kind
        message = f"code generation not supported for {node_kind}"
        if detail:
            message += f" ({detail})"
        super().__init__(message, location=location)


class OutputError(CompilerError):
    """The output sink could not be opened or written."""
    kind = ErrorKind.IO


class ResourceError(CompilerError):
    """Allocation failure while running the pipeline."""
    kind = ErrorKind.MEMORY


# =============================================================================
# Sticky Diagnostic State
# =============================================================================

class DiagnosticState:
    """
    Mixin holding a sticky error flag and the most recent diagnostic.

    Stages record errors instead of raising them; only the latest one is
    retained. The flag stays set until clear_error() is called.
    """

    def __init__(self) -> None:
        self.had_error: bool = False
        self.last_error: Optional[CompilerError] = None

    def _report(self, error: CompilerError) -> CompilerError:
        self.had_error = True
        self.last_error = error
        return error

    def clear_error(self) -> None:
        """Reset the sticky error flag and drop the retained diagnostic."""
        self.had_error = False
        self.last_error = None


# =============================================================================
# Error Collection (for multi-error reporting)
# =============================================================================

class ErrorCollector:
    """
    Collects diagnostics from several stages for batch reporting.

    Example:
        collector = ErrorCollector()
        if tokenizer.had_error:
            collector.add(tokenizer.last_error)
        collector.raise_if_errors()
    """

    def __init__(self):
        self.errors: List[CompilerError] = []
        self.warnings: List[str] = []

    def add(self, error: CompilerError) -> None:
        """Add an error to the collection."""
        self.errors.append(error)

    def add_warning(self, message: str, location: Optional[SourceLocation] = None) -> None:
        """Add a warning message."""
        if location:
            self.warnings.append(f"{location}: warning: {message}")
        else:
            self.warnings.append(f"warning: {message}")

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def report(self) -> str:
        """Format all errors and warnings for display."""
        lines = []

        for error in self.errors:
            lines.append(str(error))
            lines.append("")

        for warning in self.warnings:
            lines.append(warning)

        error_word = "error" if len(self.errors) == 1 else "errors"
        warning_word = "warning" if len(self.warnings) == 1 else "warnings"
        lines.append(
            f"\n{len(self.errors)} {error_word}, {len(self.warnings)} {warning_word}"
        )

        return "\n".join(lines)

    def clear(self) -> None:
        self.errors.clear()
        self.warnings.clear()

    def raise_if_errors(self) -> None:
        """Raise CompilationFailed if any errors were collected."""
        if self.has_errors():
            raise CompilationFailed(self.report(), self.errors)
