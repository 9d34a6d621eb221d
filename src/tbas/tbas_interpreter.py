"""TBAS interpreter context: all session state plus the fetch-execute loop."""

import logging
import re
import sys
from typing import Dict, List, Tuple

from tbas.tbas_ast import TBASASTCall, TBASASTNode
from tbas.tbas_binder_stack import TBASBinderStack
from tbas.tbas_builtin_registry import TBASBuiltinRegistry
from tbas.tbas_closure_converter import TBASClosureConverter
from tbas.tbas_config import TBASConfig
from tbas.tbas_console import (
    TBASConsole, TBASFileStore, TBASMemoryBus, TBASMemoryFileStore, TBASStdioConsole, TBASUnavailableMemoryBus
)
from tbas.tbas_elaborator import TBASElaborator
from tbas.tbas_environment import TBASVariableTable
from tbas.tbas_error import (
    TBASError, TBASOutOfMemoryError, TBASUnresolvedReferenceError, ErrorMessageBuilder
)
from tbas.tbas_evaluator import IMMEDIATE_LINE, TBASEvaluator
from tbas.tbas_function_group import TBASCallContext
from tbas.tbas_lexer import TBASLexer
from tbas.tbas_parser import TBASParser
from tbas.tbas_program import TBASProgramStore
from tbas.tbas_statements import TBASLoopFrame
from tbas.tbas_value import (
    TBASValue, TBASReference, TBASArrayIndexRef, TBASAssignment, TBASJump, TBASOperand, NULL
)


ProgramTrees = Dict[int, List[TBASASTNode | None]]


class TBASInterpreter:
    """
    One interpreter session.

    Owns the program store, variables, control stacks, DATA sequence and labels, and runs
    programs one (line, statement) step at a time. Nothing is shared between instances.
    """

    PRESCAN_STATEMENTS = frozenset({"DATA", "LABEL"})

    REM_LINE = re.compile(r"\s*REM\b", re.IGNORECASE)

    # Python frames used by one nested closure call, for sizing the interpreter recursion limit
    PYTHON_FRAMES_PER_CALL = 12

    def __init__(
        self,
        config: TBASConfig | None = None,
        console: TBASConsole | None = None,
        file_store: TBASFileStore | None = None,
        memory_bus: TBASMemoryBus | None = None
    ) -> None:
        """
        Initialize interpreter.

        Args:
            config: Session settings; defaults are used when omitted
            console: Console for PRINT, INPUT and the REPL
            file_store: Storage for SAVE, LOAD and CATALOG
            memory_bus: Raw memory for PEEK, POKE and PLOT
        """
        self.config = config or TBASConfig()
        self.console = console or TBASStdioConsole()
        self.file_store = file_store or TBASMemoryFileStore()
        self.memory_bus = memory_bus or TBASUnavailableMemoryBus()

        self.program = TBASProgramStore()
        self.variables = TBASVariableTable()
        self.binder_stack = TBASBinderStack(self.config.max_recursion_depth)
        required_limit = self.config.max_recursion_depth * self.PYTHON_FRAMES_PER_CALL + 1000
        if sys.getrecursionlimit() < required_limit:
            sys.setrecursionlimit(required_limit)
        self.gosub_stack: List[Tuple[int, int]] = []
        self.for_stack: List[TBASLoopFrame] = []
        self.labels: Dict[str, int] = {}
        self.data: List[TBASValue] = []
        self.data_cursor = 0

        self.index_base = self.config.index_base
        self.debug = self.config.debug
        self.trace = self.config.trace
        self.production = self.config.production
        self.prescanning = False

        self.lexer = TBASLexer()
        self.elaborator = TBASElaborator()
        self.closure_converter = TBASClosureConverter()
        self.registry = TBASBuiltinRegistry(self)
        self.parser = TBASParser(self.registry.names())
        self.evaluator = TBASEvaluator(self)

        self._logger = logging.getLogger("TBASInterpreter")

    def new(self, clear_program: bool = False) -> None:
        """
        Reset the session state.

        Args:
            clear_program: Also discard the stored program
        """
        self.variables.clear()
        self.labels.clear()
        self.data.clear()
        self.data_cursor = 0
        self.index_base = self.config.index_base
        self._unwind()
        if clear_program:
            self.program.clear()

    def _unwind(self) -> None:
        self.binder_stack.reset()
        self.gosub_stack.clear()
        self.for_stack.clear()

    # Parsing

    def parse_line(self, line_number: int | None, text: str) -> List[TBASASTNode | None]:
        """
        Lex, elaborate, parse and closure-convert one source line.

        Args:
            line_number: Program line number, or None for immediate-mode input
            text: Source text without its line number

        Returns:
            One converted tree per statement; None marks a REM statement

        Raises:
            TBASSyntaxError: If the line cannot be tokenized or parsed
        """
        if self.REM_LINE.match(text):
            return []

        tokens = self.elaborator.elaborate(self.lexer.tokenize(text, line_number))
        trees = [self.closure_converter.prune(tree) for tree in self.parser.parse_line(line_number, tokens)]
        if self.debug:
            for i, tree in enumerate(trees):
                self._logger.debug("Line %s:%d parsed as %s", line_number, i, tree.describe() if tree else "REM")

        return trees

    def _parse_program(self) -> ProgramTrees:
        return {number: self.parse_line(number, text) for number, text in self.program.lines()}

    # Running

    def run(self) -> None:
        """
        Run the stored program from the start.

        Resets the session, parses every line, prescans DATA and LABEL statements, then executes
        from line 1 until the program ends, END runs or the terminate poll fires.

        Raises:
            TBASError: If parsing or execution fails; control stacks are left empty
        """
        self.new(clear_program=False)
        self._logger.info("RUN with %d stored lines", len(self.program))
        trees = self._parse_program()
        self._prescan(trees)
        self._execute_from(trees, 1, 0)
        self._logger.info("RUN finished")

    def _prescan(self, trees: ProgramTrees) -> None:
        self.prescanning = True
        try:
            for number in sorted(trees):
                for i, tree in enumerate(trees[number]):
                    if isinstance(tree, TBASASTCall) and tree.target_name() in self.PRESCAN_STATEMENTS:
                        self.evaluator.execute(number, i, tree)

        except TBASError:
            self._unwind()
            raise

        finally:
            self.prescanning = False

        self._logger.debug("Prescan found labels %s and %d DATA values", self.labels, len(self.data))

    def _execute_from(self, trees: ProgramTrees, line: int, statement: int) -> TBASValue:
        """
        Run statements from (line, statement) until the program ends.

        When trees holds an immediate-mode line, execution stops once that line runs out. The
        stored program is parsed the first time a jump leaves the immediate line.

        Returns:
            Value of the last immediate-mode statement executed
        """
        line_count = self.program.line_count()
        interval = max(self.config.terminate_poll_interval, 1)
        program_parsed = IMMEDIATE_LINE not in trees
        executed = 0
        value: TBASValue = NULL
        try:
            while line == IMMEDIATE_LINE or 0 <= line < line_count:
                statements = trees.get(line)
                if statements is None or statement >= len(statements):
                    if line == IMMEDIATE_LINE:
                        break

                    line += 1
                    statement = 0
                    continue

                current = line
                tree = statements[statement]
                if self.trace and line != IMMEDIATE_LINE:
                    self._logger.info("[BASIC] Line %d", line)

                if tree is None:
                    statement += 1

                else:
                    result = self.evaluator.execute(line, statement, tree)
                    if line == IMMEDIATE_LINE:
                        value = result.value

                    line, statement = result.next_line, result.next_statement
                    if not program_parsed and 0 <= line < line_count:
                        trees = {**self._parse_program(), IMMEDIATE_LINE: trees[IMMEDIATE_LINE]}
                        program_parsed = True

                executed += 1
                if executed % interval == 0 and self.console.should_terminate():
                    self._logger.warning("Program interrupted in line %d", current)
                    self.console.print("Break\n" if current == IMMEDIATE_LINE else f"Break in {current}\n")
                    break

        except TBASError as e:
            self._logger.error("Program stopped: %s", e.summary())
            self._logger.debug("Full error", exc_info=True)
            self._unwind()
            raise

        self.binder_stack.reset()
        return value

    def execute_immediate(self, text: str) -> TBASValue:
        """
        Parse and execute a line typed without a line number.

        The line runs with its own program counter, so loops and GOSUB returns within it work
        as they do in a stored line. A jump into the program continues running the stored
        program from the jump target without resetting variables.

        Args:
            text: Source line

        Returns:
            Value of the last statement executed on the typed line

        Raises:
            TBASError: If the line fails; the session's control stacks are left empty
        """
        trees = self.parse_line(None, text)
        return self._execute_from({IMMEDIATE_LINE: trees}, IMMEDIATE_LINE, 0)

    # Names and memory

    def resolve(self, operand: TBASOperand) -> TBASValue:
        """
        Turn an evaluator operand into a value.

        References are looked up, array handles read, assignment records yield the assigned value
        and jumps yield their carried value.
        """
        if isinstance(operand, TBASReference):
            return self.resolve_name(operand.name)

        if isinstance(operand, TBASArrayIndexRef):
            return operand.get()

        if isinstance(operand, TBASAssignment):
            return operand.value

        if isinstance(operand, TBASJump):
            return operand.carried

        return operand

    def resolve_name(self, name: str) -> TBASValue:
        """
        Look a name up as a constant, then a builtin, then a variable.

        Raises:
            TBASUnresolvedReferenceError: If the name is bound to nothing
        """
        key = name.upper()
        if self.variables.is_constant(key):
            value = self.variables.lookup(key)
            assert value is not None
            return value

        builtin = self.registry.lookup(key)
        if builtin is not None:
            return self.evaluator.builtin_closure(builtin)

        value = self.variables.lookup(key)
        if value is not None:
            return value

        raise TBASUnresolvedReferenceError(
            f"Unresolved reference {key}",
            received=key,
            suggestion=ErrorMessageBuilder.did_you_mean(key, self.variables.names() + self.registry.keyword_names())
        )

    def assign(self, name: str, value: TBASValue) -> None:
        """
        Bind a variable, enforcing the scratch-memory budget.

        Raises:
            TBASAssignmentToConstantError: If the name is a constant
            TBASOutOfMemoryError: If the binding would exceed the budget
        """
        used = self.variables.footprint_with(name, value) + self.program.footprint()
        if used > self.config.memory_size:
            raise TBASOutOfMemoryError(
                "Out of memory",
                received=f"{used} bytes needed",
                expected=f"at most {self.config.memory_size} bytes"
            )

        self.variables.define(name, value)

    def memory_used(self) -> int:
        """Scratch memory used by variables and the stored program."""
        return self.variables.footprint() + self.program.footprint()

    def memory_free(self) -> int:
        """Scratch memory left, as FRE reports it."""
        return self.config.memory_size - self.memory_used()

    def call_function(self, function: TBASValue, args: List[TBASValue], context: TBASCallContext | None = None) -> TBASValue:
        """Call a closure or function sequence from a builtin."""
        return self.evaluator.call_function(function, args, context)
