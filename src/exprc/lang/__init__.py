"""
Expression Language Pipeline
============================

Tokenizer, precedence-climbing parser, scope-aware semantic analyzer and
stack-machine x86-64 code generator for a small expression language.

Pipeline
--------
    Source → Tokenizer → Parser → AST → SemanticAnalyzer → CodeGenerator

Each stage keeps a sticky ``had_error`` flag and its most recent
diagnostic in ``last_error`` instead of raising. The Compiler driver
collects them and raises CompilationFailed.

Usage
-----
>>> from exprc.lang import compile_source
>>> asm = compile_source("5 + 3")
>>> "add     rax, rbx" in asm
True

Language Subset
---------------
Parsed:
- int, float, string, char and bool literals, identifiers
- binary operators with C-like precedence, assignment, unary - ! ~
- declarations: int x = expr (one per line or separated by ';')

Code generation:
- integer literals, + - *, variable declarations
"""

from exprc.lang.ast import (
    ASTNode,
    ASTPrinter,
    ASTVisitor,
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
from exprc.lang.codegen import CodeGenerator, CodeGenResult, Register, register_name
from exprc.lang.compiler import (
    Compiler,
    CompilerOptions,
    CompilerResult,
    compile_file,
    compile_source,
)
from exprc.lang.errors import (
    CompilationFailed,
    CompilerError,
    ErrorKind,
)
from exprc.lang.lexer import Token, Tokenizer, TokenType
from exprc.lang.parser import Parser, parse_expression, parse_source
from exprc.lang.semantic import (
    DataType,
    SemanticAnalyzer,
    Symbol,
    SymbolKind,
    SymbolTable,
    semantic_analyze,
)

__all__ = [
    # Compiler
    "Compiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_source",
    "compile_file",
    # Stages
    "Tokenizer",
    "Token",
    "TokenType",
    "Parser",
    "parse_expression",
    "parse_source",
    "SemanticAnalyzer",
    "semantic_analyze",
    "SymbolTable",
    "Symbol",
    "SymbolKind",
    "DataType",
    "CodeGenerator",
    "CodeGenResult",
    "Register",
    "register_name",
    # AST
    "ASTNode",
    "Program",
    "Literal",
    "LiteralKind",
    "Identifier",
    "BinaryExpression",
    "UnaryExpression",
    "AssignmentExpression",
    "VariableDeclaration",
    "ErrorNode",
    "ASTVisitor",
    "ASTPrinter",
    "to_sexpr",
    # Errors
    "CompilerError",
    "CompilationFailed",
    "ErrorKind",
]
