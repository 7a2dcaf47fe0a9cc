"""
x86-64 Stack-Machine Code Generator
===================================

This module lowers the AST to Intel-syntax x86-64 assembly text. Every
program is wrapped in one synthetic ``_main`` routine:

        .section .data
        .section .text
        .global _main
    _main:
        push    rbp
        mov     rbp, rsp
        ; ... generated body ...
        mov     rsp, rbp
        pop     rbp
        ret

Expression Lowering
-------------------
Expressions are evaluated depth-first into the accumulator (rax):

- integer literal      ``mov rax, N``
- binary ``l OP r``    eval l; ``push rax``; eval r; ``pop rbx``; combine
    ``+``  ``add rax, rbx``
    ``-``  ``sub rbx, rax`` then ``mov rax, rbx``
    ``*``  ``imul rax, rbx``

Any other node or operator reports UNSUPPORTED_NODE. An expression is
generated into a scratch buffer first and written to the output only when
the whole subtree succeeded, so a failed node leaves no partial code.

Variable declarations reserve a fixed 8-byte slot below the frame pointer.
Slots are never reused: ``stack_offset`` only grows.

Error Reporting
---------------
Operations return a CodeGenResult. Failures also set the sticky
``had_error`` flag and keep a message (at most 256 characters) in
``last_error``.
"""

import logging
from enum import Enum, IntEnum, auto
from pathlib import Path
from typing import Optional, TextIO, Union

from exprc.lang.ast import (
    ASTNode,
    BinaryExpression,
    Literal,
    LiteralKind,
    Program,
    VariableDeclaration,
)
from exprc.lang.errors import (
    CodeGenError,
    CompilerError,
    OutputError,
    UnsupportedNodeError,
)
from exprc.lang.semantic import SymbolTable

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 256
SLOT_SIZE = 8


# =============================================================================
# Registers and Results
# =============================================================================

class Register(IntEnum):
    """General-purpose registers in allocation order. COUNT is a sentinel."""
    RAX = 0
    RBX = auto()
    RCX = auto()
    RDX = auto()
    RSI = auto()
    RDI = auto()
    R8 = auto()
    R9 = auto()
    R10 = auto()
    R11 = auto()
    R12 = auto()
    R13 = auto()
    R14 = auto()
    R15 = auto()
    RBP = auto()
    RSP = auto()
    COUNT = auto()

    def __str__(self) -> str:
        return register_name(self)


def register_name(reg: Register) -> str:
    """Assembly spelling of a register ("rax", "r8", ...)."""
    if reg == Register.COUNT:
        return "unknown"
    return reg.name.lower()


class CodeGenResult(Enum):
    SUCCESS = auto()
    NULL_ANALYZER = auto()        # no output sink
    NULL_AST = auto()
    UNSUPPORTED_NODE = auto()
    SYMBOL_NOT_FOUND = auto()
    TYPE_MISMATCH = auto()
    INVALID_EXPRESSION = auto()
    IO_ERROR = auto()

    def __bool__(self) -> bool:
        return self is CodeGenResult.SUCCESS


BINARY_LOWERING: dict[str, tuple[tuple[str, str], ...]] = {
    "+": (("add", "rax, rbx"),),
    "-": (("sub", "rbx, rax"), ("mov", "rax, rbx")),
    "*": (("imul", "rax, rbx"),),
}


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Emits assembly for a parsed (optionally analyzed) tree.

    Usage:
        with CodeGenerator(analyzer.current_scope) as gen:
            result = gen.generate(ast, "out.s")

    Attributes:
        symbol_table: Scope information, read only
        stack_offset: Bytes of locals reserved so far
        used_registers: In-use flag per allocatable register
        had_error: Sticky failure flag
        last_error: Most recent failure message ("" when none)
        last_diagnostic: Structured form of the most recent failure
    """

    def __init__(self, symbol_table: Optional[SymbolTable] = None):
        self.symbol_table = symbol_table

        self._output: Optional[TextIO] = None
        self._owns_output = False
        # Lines of the expression being generated, None when writing directly
        self._pending: Optional[list[str]] = None

        self.had_error = False
        self.last_error = ""
        self.last_diagnostic: Optional[CompilerError] = None

        self.stack_offset = 0
        self.used_registers = [False] * Register.COUNT
        self.label_counter = 0
        self.temp_counter = 0

    def __enter__(self) -> "CodeGenerator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Output Sink
    # =========================================================================

    def set_output(self, path: Union[str, Path]) -> CodeGenResult:
        """Open ``path`` for writing, replacing any previous sink."""
        self.close()
        try:
            self._output = open(path, "w", encoding="utf-8")
        except OSError as e:
            self.error("Failed to open output file: %s", str(path))
            self.last_diagnostic = OutputError(self.last_error, hint=e.strerror)
            logger.debug("cannot open %s: %s", path, e)
            return CodeGenResult.IO_ERROR
        self._owns_output = True
        return CodeGenResult.SUCCESS

    def set_output_stream(self, stream: TextIO) -> CodeGenResult:
        """Write to an already open text stream. The caller keeps ownership."""
        self.close()
        self._output = stream
        self._owns_output = False
        return CodeGenResult.SUCCESS

    def close(self) -> None:
        if self._output is not None and self._owns_output:
            self._output.close()
        self._output = None
        self._owns_output = False

    # =========================================================================
    # Emission Helpers
    # =========================================================================

    def _write(self, line: str) -> None:
        if self._pending is not None:
            self._pending.append(line)
            return
        self._output.write(line + "\n")
        self._output.flush()

    def _checked(self) -> CodeGenResult:
        if self._output is None:
            return CodeGenResult.NULL_ANALYZER
        return CodeGenResult.SUCCESS

    def emit_prologue(self) -> CodeGenResult:
        result = self._checked()
        if result:
            self._write("    .section .data")
            self._write("    .section .text")
            self._write("    .global _main")
            self._write("_main:")
            self.emit_instruction("push", "rbp")
            self.emit_instruction("mov", "rbp, rsp")
        return result

    def emit_epilogue(self) -> CodeGenResult:
        result = self._checked()
        if result:
            self.emit_instruction("mov", "rsp, rbp")
            self.emit_instruction("pop", "rbp")
            self.emit_instruction("ret")
        return result

    def emit_instruction(self, mnemonic: str, operands: Optional[str] = None) -> CodeGenResult:
        """Emit ``mnemonic operands`` with the mnemonic padded to 7 columns."""
        result = self._checked()
        if result:
            if operands:
                self._write(f"    {mnemonic:<7} {operands}")
            else:
                self._write(f"    {mnemonic}")
        return result

    def emit_comment(self, text: str) -> CodeGenResult:
        result = self._checked()
        if result:
            self._write(f"    # {text}")
        return result

    def emit_label(self, name: str) -> CodeGenResult:
        result = self._checked()
        if result:
            self._write(f"{name}:")
        return result

    def new_label(self, prefix: str = "L") -> str:
        """Generate a unique label."""
        self.label_counter += 1
        return f".{prefix}{self.label_counter}"

    def new_temp(self) -> str:
        self.temp_counter += 1
        return f"t{self.temp_counter}"

    # =========================================================================
    # Registers and Stack
    # =========================================================================

    def allocate_register(self) -> Register:
        """
        Claim the first free register, RAX through R15.

        Returns Register.COUNT when every register is in use.
        """
        for reg in Register:
            if reg >= Register.RBP:
                break
            if not self.used_registers[reg]:
                self.used_registers[reg] = True
                return reg
        return Register.COUNT

    def free_register(self, reg: Register) -> None:
        if 0 <= reg < Register.COUNT:
            self.used_registers[reg] = False

    def push_stack(self, size: int) -> CodeGenResult:
        """Reserve ``size`` bytes below the stack pointer."""
        result = self._checked()
        if result:
            self.stack_offset += size
            self.emit_instruction("sub", f"rsp, {size}")
        return result

    def pop_stack(self, size: int) -> CodeGenResult:
        result = self._checked()
        if result:
            self.stack_offset -= size
            self.emit_instruction("add", f"rsp, {size}")
        return result

    # =========================================================================
    # Errors
    # =========================================================================

    def error(self, fmt: str, *args) -> None:
        """Record a printf-style message, truncated to 256 characters."""
        message = fmt % args if args else fmt
        self.had_error = True
        self.last_error = message[:MAX_ERROR_LENGTH]
        self.last_diagnostic = CodeGenError(self.last_error)

    def clear_error(self) -> None:
        self.had_error = False
        self.last_error = ""
        self.last_diagnostic = None

    def _unsupported(self, node: ASTNode, detail: Optional[str] = None) -> CodeGenResult:
        diagnostic = UnsupportedNodeError(type(node).__name__, node.location, detail)
        self.error("%s", diagnostic.message)
        self.last_diagnostic = diagnostic
        logger.debug("unsupported node: %s", diagnostic.message)
        return CodeGenResult.UNSUPPORTED_NODE

    # =========================================================================
    # Expression Generation
    # =========================================================================

    def generate_expression(self, node: Optional[ASTNode]) -> CodeGenResult:
        """
        Generate code leaving the value of ``node`` in rax.

        Nothing is written for a node that fails part way through.
        """
        if self._output is None:
            return CodeGenResult.NULL_ANALYZER
        if node is None:
            return CodeGenResult.NULL_AST
        return self._atomic(self._dispatch_expression, node)

    def _atomic(self, generate, node: ASTNode) -> CodeGenResult:
        """Run ``generate`` into a scratch buffer and commit it only on success."""
        if self._pending is not None:
            return generate(node)

        self._pending = []
        try:
            result = generate(node)
            lines = self._pending
        finally:
            self._pending = None

        if result:
            for line in lines:
                self._write(line)
        return result

    def _dispatch_expression(self, node: ASTNode) -> CodeGenResult:
        if isinstance(node, Literal):
            return self.generate_literal(node)
        if isinstance(node, BinaryExpression):
            return self.generate_binary(node)
        return self._unsupported(node)

    def generate_literal(self, node: Literal) -> CodeGenResult:
        if self._output is None:
            return CodeGenResult.NULL_ANALYZER
        if not isinstance(node, Literal):
            return self._unsupported(node)
        if node.literal_kind != LiteralKind.INT:
            return self._unsupported(node, f"{node.literal_kind.name.lower()} literal")

        return self.emit_instruction("mov", f"rax, {node.value}")

    def generate_binary(self, node: BinaryExpression) -> CodeGenResult:
        if self._output is None:
            return CodeGenResult.NULL_ANALYZER
        if not isinstance(node, BinaryExpression):
            return self._unsupported(node)

        # Checked first so an unknown operator emits nothing
        if node.operator not in BINARY_LOWERING:
            return self._unsupported(node, f"operator '{node.operator}'")
        return self._atomic(self._generate_binary, node)

    def _generate_binary(self, node: BinaryExpression) -> CodeGenResult:
        result = self.generate_expression(node.left)
        if not result:
            return result
        self.emit_instruction("push", "rax")

        result = self.generate_expression(node.right)
        if not result:
            return result
        self.emit_instruction("pop", "rbx")

        for mnemonic, operands in BINARY_LOWERING[node.operator]:
            self.emit_instruction(mnemonic, operands)
        return CodeGenResult.SUCCESS

    # =========================================================================
    # Declarations and Programs
    # =========================================================================

    def generate_variable_declaration(self, node: VariableDeclaration) -> CodeGenResult:
        """Reserve an 8-byte slot and store the initializer, if any, in it."""
        if self._output is None:
            return CodeGenResult.NULL_ANALYZER
        if not isinstance(node, VariableDeclaration):
            return self._unsupported(node)
        return self._atomic(self._generate_declaration, node)

    def _generate_declaration(self, node: VariableDeclaration) -> CodeGenResult:
        offset = self.stack_offset + SLOT_SIZE
        self.emit_instruction("sub", f"rsp, {SLOT_SIZE}")

        if node.initializer is not None:
            result = self.generate_expression(node.initializer)
            if not result:
                return result
            self.emit_instruction("mov", f"[rbp-{offset}], rax")

        self.stack_offset = offset
        logger.debug("declared %s at [rbp-%d]", node.name, offset)
        return CodeGenResult.SUCCESS

    def generate_program(self, node: Optional[ASTNode], comment: Optional[str] = None) -> CodeGenResult:
        """
        Generate the whole ``_main`` routine.

        A Program has each item generated in order; any other node is
        treated as a single expression. On failure the epilogue is not
        emitted.

        Args:
            node: Root of the tree
            comment: Optional text emitted as a comment after the prologue
        """
        if self._output is None:
            return CodeGenResult.NULL_ANALYZER
        if node is None:
            return CodeGenResult.NULL_AST

        result = self.emit_prologue()
        if not result:
            return result
        if comment:
            self.emit_comment(comment)

        if isinstance(node, Program):
            for item in node.statements:
                if isinstance(item, VariableDeclaration):
                    result = self.generate_variable_declaration(item)
                else:
                    result = self.generate_expression(item)
                if not result:
                    return result
        else:
            result = self.generate_expression(node)
            if not result:
                return result

        return self.emit_epilogue()

    def generate(self, ast: Optional[ASTNode], output_path: Union[str, Path]) -> CodeGenResult:
        """Open ``output_path`` and generate the program into it."""
        if ast is None:
            return CodeGenResult.NULL_AST

        result = self.set_output(output_path)
        if not result:
            return result

        try:
            return self.generate_program(ast)
        except OSError as e:
            self.error("Failed to write output file: %s", str(output_path))
            self.last_diagnostic = OutputError(self.last_error, hint=e.strerror)
            return CodeGenResult.IO_ERROR
