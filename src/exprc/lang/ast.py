"""
Expression Abstract Syntax Tree (AST) Definitions
=================================================

This module defines the AST node types built by the parser and consumed
by the semantic analyzer and the code generator.

Node Hierarchy
--------------
ASTNode (base)
├── Program - ordered list of top-level items
├── Expressions
│   ├── Literal - int, float, string, char or bool constant
│   ├── Identifier - variable reference
│   ├── BinaryExpression - a OP b
│   ├── UnaryExpression - OP a
│   ├── AssignmentExpression - target = value
│   └── CallExpression - f(args) (declared, never produced)
├── Declarations
│   ├── VariableDeclaration - TYPE NAME [= initializer]
│   ├── Parameter - function parameter (declared, never produced)
│   └── FunctionDeclaration - (declared, never produced)
├── Statements (declared, never produced)
│   ├── BlockStatement
│   ├── ExpressionStatement
│   ├── ReturnStatement
│   ├── IfStatement
│   └── WhileStatement
└── ErrorNode - placeholder returned when parsing fails

Design Notes
------------
- All nodes are dataclasses; each owns its children directly
- Program keeps its items in an explicit list, navigated by index
- Each node keeps the token it was built from for diagnostics
- Nodes are not mutated structurally after the parser builds them
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional

from exprc.errors import SourceLocation
from exprc.lang.lexer import Token


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        token: The token this node was built from (None for synthetic nodes)
    """
    token: Optional[Token]

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.token.location if self.token is not None else None


@dataclass
class Expression(ASTNode):
    """Base class for nodes that produce a value."""
    pass


@dataclass
class Statement(ASTNode):
    """Base class for statement nodes."""
    pass


# =============================================================================
# Program Structure
# =============================================================================

@dataclass
class Program(ASTNode):
    """
    Root of a parsed source file.

    Attributes:
        statements: Top-level items in source order
    """
    statements: list[ASTNode] = field(default_factory=list)

    def add(self, node: ASTNode) -> None:
        self.statements.append(node)


@dataclass
class ErrorNode(ASTNode):
    """
    Stand-in for a subtree the parser could not build.

    Attributes:
        message: Short description of what went wrong
    """
    message: str = ""


# =============================================================================
# Expressions
# =============================================================================

class LiteralKind(Enum):
    """Kind of constant held by a Literal node."""
    INT = auto()
    FLOAT = auto()
    STRING = auto()
    CHAR = auto()
    BOOL = auto()


@dataclass
class Literal(Expression):
    """
    Constant value.

    ``true``/``false`` are BOOL literals with value 1/0.

    Attributes:
        literal_kind: What sort of constant this is
        value: The parsed payload (int, float or str)
    """
    literal_kind: LiteralKind = LiteralKind.INT
    value: Any = None


@dataclass
class Identifier(Expression):
    """Reference to a named symbol."""
    name: str = ""


@dataclass
class BinaryExpression(Expression):
    """
    Binary operation (left OP right).

    Attributes:
        operator: Operator text, e.g. "+" or "=="
        left: Left operand expression
        right: Right operand expression
    """
    operator: str = ""
    left: Optional[Expression] = None
    right: Optional[Expression] = None


@dataclass
class UnaryExpression(Expression):
    """Prefix operation (OP operand) for -, ! and ~."""
    operator: str = ""
    operand: Optional[Expression] = None


@dataclass
class AssignmentExpression(Expression):
    """
    Assignment (target = value).

    Attributes:
        target: The assigned-to expression, normally an Identifier
        value: The value to assign
    """
    target: Optional[Expression] = None
    value: Optional[Expression] = None


@dataclass
class CallExpression(Expression):
    """Function call. Reserved; the parser never builds one."""
    function_name: str = ""
    arguments: list[Expression] = field(default_factory=list)


# =============================================================================
# Declarations
# =============================================================================

@dataclass
class VariableDeclaration(Statement):
    """
    Variable declaration (TYPE NAME [= initializer]).

    Attributes:
        type_name: Declared type as written ("int", "float", ...)
        name: Variable name
        initializer: Optional initial value
        is_mutable: Whether later assignment is allowed
    """
    type_name: str = ""
    name: str = ""
    initializer: Optional[Expression] = None
    is_mutable: bool = True


@dataclass
class Parameter(ASTNode):
    """Function parameter. Reserved."""
    type_name: str = ""
    name: str = ""


@dataclass
class FunctionDeclaration(Statement):
    """Function definition. Reserved; the parser never builds one."""
    return_type: str = ""
    name: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    body: Optional["BlockStatement"] = None


# =============================================================================
# Statements (reserved)
# =============================================================================

@dataclass
class BlockStatement(Statement):
    statements: list[ASTNode] = field(default_factory=list)


@dataclass
class ExpressionStatement(Statement):
    expression: Optional[Expression] = None


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None


@dataclass
class IfStatement(Statement):
    condition: Optional[Expression] = None
    then_branch: Optional[Statement] = None
    else_branch: Optional[Statement] = None


@dataclass
class WhileStatement(Statement):
    condition: Optional[Expression] = None
    body: Optional[Statement] = None


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Dispatches to ``visit_<ClassName>`` and falls back to generic_visit,
    which walks every child node.

    Usage:
        class LiteralCounter(ASTVisitor):
            def __init__(self):
                self.count = 0

            def visit_Literal(self, node):
                self.count += 1

        counter = LiteralCounter()
        counter.visit(program)
    """

    def visit(self, node: ASTNode) -> Any:
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        """Visit all children of the node."""
        for field_name, field_value in node.__dict__.items():
            if isinstance(field_value, ASTNode):
                self.visit(field_value)
            elif isinstance(field_value, list):
                for item in field_value:
                    if isinstance(item, ASTNode):
                        self.visit(item)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging.

    Produces one line per declaration or top-level expression, with
    expressions written in prefix form.

    Usage:
        printer = ASTPrinter()
        print(printer.print(ast))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the AST and return as string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def visit_Program(self, node: Program):
        self._emit(f"Program ({len(node.statements)} items)")
        self.indent_level += 1
        for item in node.statements:
            self.visit(item)
        self.indent_level -= 1

    def visit_VariableDeclaration(self, node: VariableDeclaration):
        init = f" = {to_sexpr(node.initializer)}" if node.initializer else ""
        self._emit(f"Variable: {node.type_name} {node.name}{init}")

    def visit_ErrorNode(self, node: ErrorNode):
        self._emit(f"Error: {node.message}")

    def generic_visit(self, node: ASTNode) -> None:
        if isinstance(node, Expression):
            self._emit(f"Expr: {to_sexpr(node)}")
        else:
            self._emit(f"<{type(node).__name__}>")


def to_sexpr(node: Optional[ASTNode]) -> str:
    """
    Render an expression tree in prefix form.

    Example:
        ``1 + 2 * 3`` renders as ``(+ 1 (* 2 3))``.
    """
    if node is None:
        return ""
    if isinstance(node, Literal):
        if node.literal_kind == LiteralKind.STRING:
            return f'"{node.value}"'
        if node.literal_kind == LiteralKind.CHAR:
            return f"'{node.value}'"
        if node.literal_kind == LiteralKind.BOOL:
            return "true" if node.value else "false"
        return str(node.value)
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, BinaryExpression):
        return f"({node.operator} {to_sexpr(node.left)} {to_sexpr(node.right)})"
    if isinstance(node, UnaryExpression):
        return f"({node.operator} {to_sexpr(node.operand)})"
    if isinstance(node, AssignmentExpression):
        return f"(= {to_sexpr(node.target)} {to_sexpr(node.value)})"
    if isinstance(node, CallExpression):
        args = " ".join(to_sexpr(a) for a in node.arguments)
        return f"(call {node.function_name} {args})".replace(" )", ")")
    if isinstance(node, ErrorNode):
        return "<error>"
    return f"<{type(node).__name__}>"
