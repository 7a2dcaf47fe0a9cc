"""
exprc Command-Line Interface
============================

- **exprcc**: expression compiler, source text to x86-64 assembly

Tools are Click applications with consistent exit codes (see errors.py).
"""

__all__ = ["exprcc"]
