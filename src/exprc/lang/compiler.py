"""
Expression Compiler Driver
==========================

This module runs the complete pipeline:

    Source → Tokenizer → Parser → SemanticAnalyzer → CodeGenerator → Assembly

Usage
-----
Command line:
    $ exprcc calc.ex -o calc.s

Programmatic:
    >>> from exprc.lang import compile_source
    >>> print(compile_source("1 + 2 * 3"))

Error Handling
--------------
The individual stages never raise for bad input; each keeps a sticky
diagnostic. The driver collects those diagnostics after each stage and
stops the pipeline at the first stage that failed. With
``raise_on_error`` (the default) the collected report is raised as
CompilationFailed; otherwise the failed CompilerResult is returned.

Semantic failures only stop compilation when ``strict_types`` is set;
otherwise they are recorded as warnings.

Configuration
-------------
CompilerOptions can be built from environment variables with
CompilerOptions.from_env():

    EXPRC_ANALYZE         run the semantic analyzer (default on)
    EXPRC_STRICT_TYPES    treat type errors as fatal (default off)
    EXPRC_PROGRAM_MODE    parse declarations and statements (default on)
    EXPRC_EMIT_COMMENTS   echo the source as a comment (default off)
"""

import io
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Union

from exprc.lang.ast import ASTNode
from exprc.lang.codegen import CodeGenerator, CodeGenResult
from exprc.lang.errors import (
    CompilerError,
    ErrorCollector,
    OutputError,
    ResourceError,
)
from exprc.lang.lexer import Token, Tokenizer
from exprc.lang.parser import Parser
from exprc.lang.semantic import SemanticAnalyzer

logger = logging.getLogger(__name__)

TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in TRUTHY


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        analyze: Run the semantic analyzer before code generation
        strict_types: Stop compilation when semantic analysis fails
        program_mode: Parse a sequence of declarations and expressions
            instead of a single expression
        emit_comments: Emit the source text as a comment after the prologue
        raise_on_error: Raise CompilationFailed instead of returning a
            failed result
        parse_only: Stop after parsing (token and tree dumps)
    """
    analyze: bool = True
    strict_types: bool = False
    program_mode: bool = True
    emit_comments: bool = False
    raise_on_error: bool = True
    parse_only: bool = False

    @classmethod
    def from_env(cls) -> "CompilerOptions":
        """Create options from EXPRC_* environment variables."""
        defaults = cls()
        return cls(
            analyze=_env_flag("EXPRC_ANALYZE", defaults.analyze),
            strict_types=_env_flag("EXPRC_STRICT_TYPES", defaults.strict_types),
            program_mode=_env_flag("EXPRC_PROGRAM_MODE", defaults.program_mode),
            emit_comments=_env_flag("EXPRC_EMIT_COMMENTS", defaults.emit_comments),
        )


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        success: True if no errors were collected
        assembly: Generated assembly text
        ast: Parsed tree (may end in an ErrorNode on failure)
        tokens: Every token of the source, EOF included
        type_ok: Outcome of semantic analysis (None when skipped)
        codegen_result: Final code generator result
        errors: Collected diagnostics
        warnings: Collected warning messages
    """
    filename: str = ""
    success: bool = False
    assembly: str = ""
    ast: Optional[ASTNode] = None
    tokens: list[Token] = field(default_factory=list)
    type_ok: Optional[bool] = None
    codegen_result: Optional[CodeGenResult] = None
    errors: list[CompilerError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def token_count(self) -> int:
        return len(self.tokens)


class Compiler:
    """
    Runs the four pipeline stages over a source text.

    Example:
        compiler = Compiler()
        result = compiler.compile_source("int x = 5\\n2 * 3")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()
        self._errors = ErrorCollector()

    def compile_source(
        self,
        source: str,
        filename: str = "<input>",
        output: Optional[Union[str, Path]] = None,
    ) -> CompilerResult:
        """
        Compile source text to assembly.

        Args:
            source: Source text
            filename: Source filename for diagnostics
            output: Optional path the assembly is written to

        Returns:
            CompilerResult with the assembly and diagnostics

        Raises:
            CompilationFailed: If compilation fails and raise_on_error is set
        """
        self._errors.clear()
        result = CompilerResult(filename=filename)

        try:
            self._run(source, filename, output, result)
        except MemoryError:
            self._errors.add(ResourceError("out of memory while compiling"))

        result.errors = list(self._errors.errors)
        result.warnings = list(self._errors.warnings)
        result.success = not self._errors.has_errors()

        logger.debug(
            "%s: success=%s, %d errors, %d warnings",
            filename, result.success, len(result.errors), len(result.warnings),
        )

        if not result.success and self.options.raise_on_error:
            self._errors.raise_if_errors()
        return result

    def compile_file(
        self, filepath: Union[str, Path], output: Optional[Union[str, Path]] = None
    ) -> CompilerResult:
        """
        Compile a source file.

        Raises:
            FileNotFoundError: If the source file does not exist
            CompilationFailed: If compilation fails and raise_on_error is set
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        # Undecodable bytes survive as surrogates and tokenize as UNKNOWN
        source = path.read_text(encoding="utf-8", errors="surrogateescape")
        return self.compile_source(source, str(filepath), output)

    # =========================================================================
    # Pipeline Stages
    # =========================================================================

    def _run(
        self,
        source: str,
        filename: str,
        output: Optional[Union[str, Path]],
        result: CompilerResult,
    ) -> None:
        result.tokens = self._lex(source, filename)

        # Stages 1 + 2: the parser pulls tokens on demand
        tokenizer = Tokenizer(source, filename)
        parser = Parser(tokenizer)
        if self.options.program_mode:
            ast = parser.parse_program()
        else:
            ast = parser.parse()
            if not parser.had_error:
                parser.expect_end()
        result.ast = ast

        if tokenizer.had_error:
            self._errors.add(tokenizer.last_error)
        if parser.had_error:
            self._errors.add(parser.last_error)
        if self._errors.has_errors() or self.options.parse_only:
            return

        # Stage 3: semantic analysis
        analyzer = SemanticAnalyzer()
        if self.options.analyze:
            result.type_ok = analyzer.analyze(ast)
            if not result.type_ok:
                if self.options.strict_types:
                    self._errors.add(analyzer.last_error)
                    return
                error = analyzer.last_error
                self._errors.add_warning(error.message, error.location)

        # Stage 4: code generation
        comment = None
        if self.options.emit_comments:
            comment = "; ".join(source.strip().splitlines())
        buffer = io.StringIO()
        with CodeGenerator(analyzer.current_scope) as generator:
            generator.set_output_stream(buffer)
            result.codegen_result = generator.generate_program(ast, comment=comment)
            if not result.codegen_result:
                self._errors.add(generator.last_diagnostic)
                return

        result.assembly = buffer.getvalue()

        if output is not None:
            self._write_output(result.assembly, output)

    def _lex(self, source: str, filename: str) -> list[Token]:
        """Tokenize the whole source, for token counts and dumps."""
        return list(Tokenizer(source, filename).tokenize())

    def _write_output(self, assembly: str, output: Union[str, Path]) -> None:
        try:
            Path(output).write_text(assembly, encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            self._errors.add(
                OutputError(f"Failed to open output file: {output}", hint=e.strerror)
            )


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_source(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile source text and return the assembly.

    Raises:
        CompilationFailed: If compilation fails

    Example:
        >>> asm = compile_source("int x = 2 * 21")
        >>> "mov     [rbp-8], rax" in asm
        True
    """
    options = replace(options or CompilerOptions(), raise_on_error=True)
    return Compiler(options).compile_source(source, filename).assembly


def compile_file(
    filepath: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile a source file, optionally writing the assembly to ``output_path``.

    Raises:
        CompilationFailed: If compilation fails
        FileNotFoundError: If the source file does not exist
    """
    options = replace(options or CompilerOptions(), raise_on_error=True)
    return Compiler(options).compile_file(filepath, output_path).assembly
