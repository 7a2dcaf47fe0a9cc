# =============================================================================
# test_semantic.py - Semantic Analyzer Unit Tests
# =============================================================================
# Tests for scope management, symbol lookup and type inference.
#
# Test coverage includes:
#   - Literal and identifier types
#   - Binary, unary and assignment typing rules
#   - Scope stack: nesting, shadowing, global-level exit
#   - Program analysis: declarations and initializer checks
#   - Diagnostics for ill-typed expressions
# =============================================================================

import pytest
from exprc.lang.ast import Identifier
from exprc.lang.errors import ErrorKind, SemanticError, TypeMismatchError
from exprc.lang.parser import parse_expression, parse_source
from exprc.lang.semantic import (
    DataType,
    SemanticAnalyzer,
    Symbol,
    SymbolKind,
    SymbolTable,
    semantic_analyze,
    type_from_name,
)


@pytest.fixture
def analyzer():
    return SemanticAnalyzer()


def type_of(analyzer: SemanticAnalyzer, source: str) -> DataType:
    return analyzer.get_type(parse_expression(source))


# =============================================================================
# Type Inference Tests
# =============================================================================

class TestLiteralTypes:
    """Test literal typing."""

    @pytest.mark.parametrize("source,expected", [
        ("1", DataType.INT),
        ("1.5", DataType.FLOAT),
        ('"s"', DataType.STRING),
        ("'c'", DataType.CHAR),
        ("true", DataType.BOOL),
        ("false", DataType.BOOL),
    ])
    def test_literal(self, analyzer, source, expected):
        """Each literal kind has a fixed type."""
        assert type_of(analyzer, source) == expected

    def test_none_is_error(self, analyzer):
        """A missing node has the error type."""
        assert analyzer.get_type(None) == DataType.ERROR

    def test_type_names(self):
        """Type names map by exact spelling only."""
        assert type_from_name("int") == DataType.INT
        assert type_from_name("string") == DataType.STRING
        assert type_from_name("Int") == DataType.UNKNOWN
        assert type_from_name("integer") == DataType.UNKNOWN
        assert str(DataType.FLOAT) == "float"


class TestBinaryTypes:
    """Test binary expression typing."""

    def test_int_arithmetic(self, analyzer):
        """int + int is int."""
        assert type_of(analyzer, "1 + 2 * 3") == DataType.INT

    def test_float_arithmetic(self, analyzer):
        """float * float is float."""
        assert type_of(analyzer, "1.0 * 2.0") == DataType.FLOAT

    def test_mixed_arithmetic_is_error(self, analyzer):
        """int + float is not allowed."""
        assert type_of(analyzer, "1 + 2.0") == DataType.ERROR

    def test_string_arithmetic_is_error(self, analyzer):
        """Strings do not add."""
        assert type_of(analyzer, '"a" + "b"') == DataType.ERROR

    @pytest.mark.parametrize("op", ["==", "!=", "<", "<=", ">", ">="])
    def test_comparison_is_bool(self, analyzer, op):
        """Comparisons of ints are bool."""
        assert type_of(analyzer, f"1 {op} 2") == DataType.BOOL

    def test_comparison_of_any_types(self, analyzer):
        """Comparisons accept mismatched operands."""
        assert type_of(analyzer, '"a" < true') == DataType.BOOL

    def test_logical_is_bool(self, analyzer):
        """true && false is bool."""
        assert type_of(analyzer, "true && false") == DataType.BOOL

    def test_deterministic(self, analyzer):
        """The same node always gets the same type."""
        node = parse_expression("(1 + 2) * 3 == 9")
        assert analyzer.get_type(node) == analyzer.get_type(node) == DataType.BOOL


class TestUnaryAndAssignment:
    """Test prefix operators and assignment typing."""

    def test_negate_number(self, analyzer):
        """-x keeps the numeric type."""
        assert type_of(analyzer, "-1.5") == DataType.FLOAT

    def test_bitwise_not_int(self, analyzer):
        """~ needs an int."""
        assert type_of(analyzer, "~1") == DataType.INT
        assert type_of(analyzer, "~1.5") == DataType.ERROR

    def test_logical_not(self, analyzer):
        """! needs a bool."""
        assert type_of(analyzer, "!true") == DataType.BOOL
        assert type_of(analyzer, "!1") == DataType.ERROR

    def test_assignment_same_type(self, analyzer):
        """Assigning an int to an int variable is int."""
        analyzer.declare_variable("x", "int")
        assert type_of(analyzer, "x = 1") == DataType.INT

    def test_assignment_mismatch(self, analyzer):
        """Assigning a float to an int variable is an error."""
        analyzer.declare_variable("x", "int")
        assert type_of(analyzer, "x = 1.5") == DataType.ERROR


# =============================================================================
# Identifier and Scope Tests
# =============================================================================

class TestScopes:
    """Test the scope stack and symbol lookup."""

    def test_undeclared_identifier(self, analyzer):
        """Unknown names have the unknown type."""
        assert type_of(analyzer, "y") == DataType.UNKNOWN

    def test_declared_variable(self, analyzer):
        """A variable's type comes from its declared type name."""
        analyzer.declare_variable("x", "float")
        assert type_of(analyzer, "x") == DataType.FLOAT

    def test_unrecognized_type_name(self, analyzer):
        """A variable declared with an unknown type name is unknown."""
        analyzer.declare_variable("x", "integer")
        assert type_of(analyzer, "x") == DataType.UNKNOWN

    def test_function_symbol_is_unknown(self, analyzer):
        """Only variables give identifiers a type."""
        analyzer.current_scope.add(Symbol.function("f", "int"))
        assert analyzer.get_type(Identifier(None, name="f")) == DataType.UNKNOWN

    def test_enter_scope(self, analyzer):
        """A new scope is one level deeper with the old scope as parent."""
        outer = analyzer.current_scope
        inner = analyzer.enter_scope()
        assert inner.scope_level == 1
        assert inner.parent is outer
        assert analyzer.current_scope is inner

    def test_shadowing(self, analyzer):
        """An inner declaration hides the outer one until the scope exits."""
        analyzer.declare_variable("x", "int")
        analyzer.enter_scope()
        analyzer.declare_variable("x", "float")
        assert type_of(analyzer, "x") == DataType.FLOAT

        analyzer.exit_scope()
        assert type_of(analyzer, "x") == DataType.INT

    def test_outer_symbol_visible(self, analyzer):
        """Lookup walks to enclosing scopes."""
        analyzer.declare_variable("x", "int")
        analyzer.enter_scope()
        assert type_of(analyzer, "x") == DataType.INT

    def test_exit_global_scope_is_noop(self, analyzer):
        """The global scope is never popped."""
        analyzer.exit_scope()
        analyzer.exit_scope()
        assert len(analyzer.scopes) == 1
        assert analyzer.current_scope is analyzer.global_scope

    def test_symbol_scope_level(self, analyzer):
        """Symbols are stamped with the level of their table."""
        analyzer.enter_scope()
        analyzer.enter_scope()
        symbol = analyzer.declare_variable("x", "int", line=3, column=5)
        assert symbol.scope_level == 2
        assert symbol.kind == SymbolKind.VARIABLE
        assert (symbol.line, symbol.column) == (3, 5)

    def test_inner_symbol_gone_after_exit(self, analyzer):
        """Locals disappear with their scope, globals stay visible."""
        analyzer.declare_variable("count", "int")
        analyzer.enter_scope()
        analyzer.declare_variable("local", "int")
        assert analyzer.current_scope.lookup_local("local") is not None
        assert analyzer.lookup("count") is not None

        analyzer.exit_scope()
        assert analyzer.lookup("local") is None
        assert analyzer.current_scope.scope_level == 0

    def test_first_declaration_wins(self, analyzer):
        """Duplicate names in one scope resolve to the earliest."""
        analyzer.declare_variable("x", "int")
        analyzer.declare_variable("x", "float")
        assert type_of(analyzer, "x") == DataType.INT


class TestSymbolTable:
    """Test SymbolTable directly."""

    def test_local_and_global_lookup(self):
        """lookup_local ignores parents, lookup_global ignores self."""
        outer = SymbolTable(0)
        outer.add(Symbol.variable("a", "int"))
        inner = SymbolTable(1, parent=outer)
        inner.add(Symbol.variable("b", "bool"))

        assert inner.lookup_local("a") is None
        assert inner.lookup_global("a").name == "a"
        assert inner.lookup_global("b") is None
        assert inner.lookup("b").type_name == "bool"
        assert len(inner) == 1

    def test_parameter_symbol(self):
        """Parameter symbols keep their position."""
        symbol = Symbol.parameter("n", "int", position=2)
        assert symbol.kind == SymbolKind.PARAMETER
        assert symbol.position == 2
        assert str(symbol.kind) == "PARAMETER"


# =============================================================================
# Binary Operation Checks
# =============================================================================

class TestCheckBinaryOperation:
    """Test check_binary_operation acceptance rules."""

    @pytest.mark.parametrize("left,right,op,expected", [
        ("1", "2", "+", True),
        ("1.0", "2.0", "-", True),
        ("1", "2.0", "+", False),
        ('"a"', "1", "==", True),
        ("true", "false", "&&", True),
        ("true", "1", "||", False),
        ('"a"', '"b"', "+", False),
    ])
    def test_rules(self, analyzer, left, right, op, expected):
        """Numeric pairs, comparisons and bool logic are accepted."""
        result = analyzer.check_binary_operation(
            parse_expression(left), parse_expression(right), op
        )
        assert result is expected

    def test_check_assignment(self, analyzer):
        """Assignment needs identical, non-error types."""
        analyzer.declare_variable("s", "string")
        target = parse_expression("s")
        assert analyzer.check_assignment(target, parse_expression('"x"'))
        assert not analyzer.check_assignment(target, parse_expression("1"))


# =============================================================================
# Analysis Tests
# =============================================================================

class TestAnalyze:
    """Test whole-tree analysis and diagnostics."""

    def test_well_typed_expression(self, analyzer):
        """A valid expression analyzes cleanly."""
        assert analyzer.analyze(parse_expression("1 + 2"))
        assert not analyzer.had_error

    def test_type_mismatch_reported(self, analyzer):
        """An ill-typed expression records a TypeMismatchError."""
        assert not analyzer.analyze(parse_expression("1 + 2.0"))
        assert analyzer.had_error
        error = analyzer.last_error
        assert isinstance(error, TypeMismatchError)
        assert error.kind == ErrorKind.SEMANTIC
        assert error.message == "invalid operands to '+' (int and float)"

    def test_innermost_error_reported(self, analyzer):
        """The diagnostic points at the first ill-typed subexpression."""
        analyzer.analyze(parse_expression("(1 + 2.0) * 3"))
        assert analyzer.last_error.operator == "+"

    def test_program_declares_variables(self, analyzer):
        """Declarations are registered for later items."""
        assert analyzer.analyze(parse_source("int x = 5\nx + 1"))
        assert analyzer.lookup("x").type_name == "int"

    def test_initializer_mismatch(self, analyzer):
        """Initializers must match the declared type."""
        assert not analyzer.analyze(parse_source("int x = 2.5"))
        assert isinstance(analyzer.last_error, SemanticError)
        assert analyzer.last_error.message == (
            "cannot initialize 'x' of type int with float"
        )
        # Declared anyway, so later uses resolve
        assert analyzer.lookup("x") is not None

    def test_unknown_declared_type_not_checked(self, analyzer):
        """'char' has no semantic type, so any initializer is accepted."""
        assert analyzer.analyze(parse_source("char c = 'a'"))

    def test_program_continues_after_error(self, analyzer):
        """Every item is analyzed even after a failure."""
        assert not analyzer.analyze(parse_source("1 + 2.0\nint y = 3"))
        assert analyzer.lookup("y") is not None

    def test_semantic_analyze_helper(self):
        """The helper uses a fresh analyzer by default."""
        assert semantic_analyze(parse_expression("1 < 2"))
        assert not semantic_analyze(parse_expression('"a" * 2'))
