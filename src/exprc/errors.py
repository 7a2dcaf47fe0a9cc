"""
exprc Error Hierarchy
=====================

This module defines the root of the exception hierarchy for exprc and the
source location type shared by every stage of the pipeline. All exceptions
inherit from ExprcError, allowing callers to catch every toolchain error
with a single except clause if desired.

Exception Hierarchy
-------------------
ExprcError (base)
└── CompilerError (see exprc.lang.errors)
    ├── LexicalError
    ├── ExprSyntaxError
    ├── SemanticError
    ├── CodeGenError
    ├── OutputError
    └── ResourceError

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable. Messages follow this format:

    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass


# =============================================================================
# Base Exception Class
# =============================================================================

class ExprcError(Exception):
    """
    Base exception for all exprc errors.

    Every exception raised by the toolchain inherits from this class:

        try:
            compile_source("1 + 2")
        except ExprcError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Tokens, AST nodes, symbols and diagnostics all carry one of these.
    The frozen design keeps locations from being modified after creation.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"
