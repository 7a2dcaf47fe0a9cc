"""
exprc - Expression Compiler Toolchain
=====================================

This package compiles a small expression language to x86-64 assembly
(Intel syntax). The pipeline has four stages:

    Source → Tokenizer → Parser → SemanticAnalyzer → CodeGenerator → Assembly

Main Components
---------------
- **lang**: tokenizer, parser, AST, semantic analyzer, code generator and
  the compiler driver
- **cli**: the ``exprcc`` command-line compiler

Quick Start
-----------
    >>> from exprc.lang import compile_source
    >>> print(compile_source("int x = 5\\n1 + 2 * 3"))

Or from the shell:
    $ exprcc calc.ex -o calc.s
"""

__version__ = "0.3.0"

from exprc.errors import ExprcError, SourceLocation

__all__ = ["__version__", "ExprcError", "SourceLocation"]
