"""
Semantic Analyzer
=================

This module resolves identifiers against a stack of lexical scopes and
infers the type of each expression. It does not rewrite the tree.

Scopes
------
The analyzer owns an ordered stack of SymbolTables. The global table sits
at index 0 with scope level 0; ``enter_scope`` pushes a table one level
deeper whose parent is the current table, and ``exit_scope`` pops it again.
The global table is never popped.

Lookup scans the current table in insertion order (first match wins) and
then walks the parent chain.

Type Rules
----------
| Expression                         | Type                    |
|------------------------------------|-------------------------|
| integer / float / string literal   | int / float / string    |
| char literal                       | char                    |
| true, false                        | bool                    |
| identifier bound to a variable     | its declared type name  |
| comparison (== != < <= > >=)       | bool, any operands      |
| same int or float on both sides    | that type               |
| logical (&& ||)                    | bool                    |
| any other binary expression        | error                   |

Comparisons are accepted whatever their operand types, so ``"a" < true``
is a bool-typed expression.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
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
)
from exprc.lang.errors import DiagnosticState, SemanticError, TypeMismatchError

logger = logging.getLogger(__name__)


# =============================================================================
# Types and Symbols
# =============================================================================

class DataType(Enum):
    """Inferred type of an expression."""
    INT = auto()
    FLOAT = auto()
    STRING = auto()
    CHAR = auto()
    BOOL = auto()
    VOID = auto()
    UNKNOWN = auto()
    ERROR = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_numeric(self) -> bool:
        return self in (DataType.INT, DataType.FLOAT)


# Exact spellings only; anything else resolves to UNKNOWN
TYPE_NAMES: dict[str, DataType] = {
    "int": DataType.INT,
    "float": DataType.FLOAT,
    "string": DataType.STRING,
    "bool": DataType.BOOL,
    "void": DataType.VOID,
}

LITERAL_TYPES: dict[LiteralKind, DataType] = {
    LiteralKind.INT: DataType.INT,
    LiteralKind.FLOAT: DataType.FLOAT,
    LiteralKind.STRING: DataType.STRING,
    LiteralKind.CHAR: DataType.CHAR,
    LiteralKind.BOOL: DataType.BOOL,
}

COMPARISON_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">="})
LOGICAL_OPERATORS = frozenset({"&&", "||"})


def type_from_name(type_name: Optional[str]) -> DataType:
    """Map a declared type name to a DataType (exact match)."""
    return TYPE_NAMES.get(type_name or "", DataType.UNKNOWN)


class SymbolKind(Enum):
    VARIABLE = auto()
    FUNCTION = auto()
    PARAMETER = auto()

    def __str__(self) -> str:
        return self.name


@dataclass
class Symbol:
    """
    A named declaration.

    Which payload fields are meaningful depends on ``kind``:
    VARIABLE uses type_name and is_mutable, FUNCTION uses return_type and
    parameters, PARAMETER uses type_name and position.

    Attributes:
        name: Declared name
        kind: What sort of declaration this is
        scope_level: Level of the table holding the symbol (set on add)
        line: 1-based declaration line
        column: 1-based declaration column
    """
    name: str
    kind: SymbolKind
    type_name: str = ""
    is_mutable: bool = True
    return_type: str = ""
    parameters: list["Symbol"] = field(default_factory=list)
    position: int = 0
    scope_level: int = 0
    line: int = 0
    column: int = 0

    @classmethod
    def variable(
        cls, name: str, type_name: str, is_mutable: bool = True, line: int = 0, column: int = 0
    ) -> "Symbol":
        return cls(name, SymbolKind.VARIABLE, type_name=type_name,
                   is_mutable=is_mutable, line=line, column=column)

    @classmethod
    def function(
        cls, name: str, return_type: str, parameters: Optional[list["Symbol"]] = None,
        line: int = 0, column: int = 0,
    ) -> "Symbol":
        return cls(name, SymbolKind.FUNCTION, return_type=return_type,
                   parameters=list(parameters or []), line=line, column=column)

    @classmethod
    def parameter(
        cls, name: str, type_name: str, position: int, line: int = 0, column: int = 0
    ) -> "Symbol":
        return cls(name, SymbolKind.PARAMETER, type_name=type_name,
                   position=position, line=line, column=column)


class SymbolTable:
    """
    One lexical scope: an insertion-ordered list of symbols.

    Duplicate names are allowed; lookups return the first one added.
    """

    def __init__(self, scope_level: int = 0, parent: Optional["SymbolTable"] = None):
        self.symbols: list[Symbol] = []
        self.scope_level = scope_level
        self.parent = parent

    def add(self, symbol: Symbol) -> Symbol:
        """Add a symbol, stamping it with this table's scope level."""
        symbol.scope_level = self.scope_level
        self.symbols.append(symbol)
        return symbol

    def lookup(self, name: str) -> Optional[Symbol]:
        """Find a symbol here first, then in the enclosing scopes."""
        found = self.lookup_local(name)
        if found is not None:
            return found
        return self.lookup_global(name)

    def lookup_local(self, name: str) -> Optional[Symbol]:
        for symbol in self.symbols:
            if symbol.name == name:
                return symbol
        return None

    def lookup_global(self, name: str) -> Optional[Symbol]:
        """Search the parent chain only."""
        if self.parent is None:
            return None
        return self.parent.lookup(name)

    def __len__(self) -> int:
        return len(self.symbols)

    def __repr__(self) -> str:
        return f"SymbolTable(level={self.scope_level}, symbols={len(self.symbols)})"


# =============================================================================
# Semantic Analyzer
# =============================================================================

class SemanticAnalyzer(DiagnosticState):
    """
    Scope-aware type inference over the AST.

    Attributes:
        scopes: Every live SymbolTable, global table first
        had_error: Sticky flag set by a failed analysis
        last_error: Most recent semantic diagnostic
    """

    def __init__(self):
        super().__init__()
        self.scopes: list[SymbolTable] = [SymbolTable(0)]

    @property
    def current_scope(self) -> SymbolTable:
        return self.scopes[-1]

    @property
    def global_scope(self) -> SymbolTable:
        return self.scopes[0]

    # =========================================================================
    # Scope Management
    # =========================================================================

    def enter_scope(self) -> SymbolTable:
        """Push a new scope nested in the current one and return it."""
        scope = SymbolTable(self.current_scope.scope_level + 1, parent=self.current_scope)
        self.scopes.append(scope)
        logger.debug("entered scope level %d", scope.scope_level)
        return scope

    def exit_scope(self) -> None:
        """Pop the current scope. Does nothing at global level."""
        if len(self.scopes) <= 1:
            return
        scope = self.scopes.pop()
        logger.debug("exited scope level %d", scope.scope_level)

    def lookup(self, name: str) -> Optional[Symbol]:
        return self.current_scope.lookup(name)

    def declare_variable(
        self,
        name: str,
        type_name: str,
        is_mutable: bool = True,
        line: int = 0,
        column: int = 0,
    ) -> Symbol:
        """Register a variable in the current scope."""
        return self.current_scope.add(
            Symbol.variable(name, type_name, is_mutable, line, column)
        )

    # =========================================================================
    # Type Inference
    # =========================================================================

    def get_type(self, node: Optional[ASTNode]) -> DataType:
        """
        Infer the type of an expression node.

        Pure with respect to the tree; depends only on the node and the
        current scope chain.
        """
        if node is None or isinstance(node, ErrorNode):
            return DataType.ERROR

        if isinstance(node, Literal):
            return LITERAL_TYPES.get(node.literal_kind, DataType.UNKNOWN)

        if isinstance(node, Identifier):
            symbol = self.lookup(node.name)
            if symbol is not None and symbol.kind == SymbolKind.VARIABLE:
                return type_from_name(symbol.type_name)
            return DataType.UNKNOWN

        if isinstance(node, BinaryExpression):
            return self._binary_type(
                node.operator, self.get_type(node.left), self.get_type(node.right)
            )

        if isinstance(node, UnaryExpression):
            return self._unary_type(node.operator, self.get_type(node.operand))

        if isinstance(node, AssignmentExpression):
            if self.check_assignment(node.target, node.value):
                return self.get_type(node.target)
            return DataType.ERROR

        return DataType.UNKNOWN

    @staticmethod
    def _binary_type(operator: str, left: DataType, right: DataType) -> DataType:
        if operator in COMPARISON_OPERATORS:
            return DataType.BOOL
        if left == right and left.is_numeric:
            return left
        if operator in LOGICAL_OPERATORS:
            return DataType.BOOL
        return DataType.ERROR

    @staticmethod
    def _unary_type(operator: str, operand: DataType) -> DataType:
        if operator == "-" and operand.is_numeric:
            return operand
        if operator == "~" and operand == DataType.INT:
            return DataType.INT
        if operator == "!" and operand == DataType.BOOL:
            return DataType.BOOL
        return DataType.ERROR

    # =========================================================================
    # Validity Checks
    # =========================================================================

    def check_binary_operation(
        self, left: ASTNode, right: ASTNode, operator: str
    ) -> bool:
        """
        Decide whether ``left OP right`` is acceptable.

        Same numeric types on both sides are always accepted, comparisons
        are accepted for any operands, and logical operators need two bools.
        """
        left_type = self.get_type(left)
        right_type = self.get_type(right)

        if left_type.is_numeric and left_type == right_type:
            return True
        if operator in COMPARISON_OPERATORS:
            return True
        if operator in LOGICAL_OPERATORS:
            return left_type == DataType.BOOL and right_type == DataType.BOOL
        return False

    def check_assignment(self, target: ASTNode, value: ASTNode) -> bool:
        """Assignment needs identical types, neither of them an error."""
        target_type = self.get_type(target)
        value_type = self.get_type(value)
        return target_type == value_type and target_type != DataType.ERROR

    # =========================================================================
    # Analysis Drivers
    # =========================================================================

    def analyze(self, node: ASTNode) -> bool:
        """
        Analyze a tree and report whether it is well typed.

        For an expression this is ``get_type(node) is not ERROR``. A Program
        is analyzed item by item, registering each declared variable in the
        current scope. Failure records a semantic diagnostic.
        """
        if isinstance(node, Program):
            return self.analyze_program(node)

        if self.get_type(node) != DataType.ERROR:
            return True

        self._report(self._explain(node))
        return False

    def analyze_program(self, program: Program) -> bool:
        ok = True
        for item in program.statements:
            if isinstance(item, VariableDeclaration):
                ok = self._analyze_declaration(item) and ok
            elif self.get_type(item) == DataType.ERROR:
                self._report(self._explain(item))
                ok = False
        logger.debug("analyzed program: ok=%s, %d globals", ok, len(self.current_scope))
        return ok

    def _analyze_declaration(self, decl: VariableDeclaration) -> bool:
        ok = True
        if decl.initializer is not None:
            declared = type_from_name(decl.type_name)
            actual = self.get_type(decl.initializer)
            if actual == DataType.ERROR:
                self._report(self._explain(decl.initializer))
                ok = False
            elif (
                declared != DataType.UNKNOWN
                and actual != DataType.UNKNOWN
                and declared != actual
            ):
                self._report(SemanticError(
                    f"cannot initialize '{decl.name}' of type {declared} with {actual}",
                    decl.location,
                ))
                ok = False

        location = decl.location
        self.declare_variable(
            decl.name,
            decl.type_name,
            decl.is_mutable,
            line=location.line if location else 0,
            column=location.column if location else 0,
        )
        return ok

    def _explain(self, node: ASTNode) -> SemanticError:
        """Build a diagnostic pointing at the innermost ill-typed node."""
        if isinstance(node, BinaryExpression):
            left_type = self.get_type(node.left)
            right_type = self.get_type(node.right)
            if left_type == DataType.ERROR:
                return self._explain(node.left)
            if right_type == DataType.ERROR:
                return self._explain(node.right)
            return TypeMismatchError(
                node.operator, str(left_type), str(right_type), node.location
            )
        if isinstance(node, UnaryExpression):
            if self.get_type(node.operand) == DataType.ERROR:
                return self._explain(node.operand)
            return SemanticError(
                f"invalid operand to unary '{node.operator}' "
                f"({self.get_type(node.operand)})",
                node.location,
            )
        if isinstance(node, AssignmentExpression):
            return TypeMismatchError(
                "=",
                str(self.get_type(node.target)),
                str(self.get_type(node.value)),
                node.location,
            )
        return SemanticError("expression has no valid type", node.location)


def semantic_analyze(node: ASTNode, analyzer: Optional[SemanticAnalyzer] = None) -> bool:
    """Analyze ``node`` with a fresh analyzer unless one is supplied."""
    return (analyzer or SemanticAnalyzer()).analyze(node)
