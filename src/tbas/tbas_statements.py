"""Statement builtins for TBAS: assignment, loops, jumps, DATA, options and console I/O."""

from dataclasses import dataclass, replace
import logging
import re
import sys
from typing import TYPE_CHECKING, Any, Callable, Dict, List

from tbas.tbas_error import (
    TBASBadFunctionCallError, TBASDuplicateDefinitionError, TBASNextWithoutForError,
    TBASNoGosubToReturnError, TBASOutOfDataError, TBASSyntaxError, TBASTypeMismatchError,
    TBASUnresolvedReferenceError
)
from tbas.tbas_function_group import TBASCallContext, TBASFunctionGroup
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASNull, TBASArray, TBASGenerator, TBASClosure, TBASMonad,
    TBASReference, TBASArrayIndexRef, TBASAssignment, TBASJump, NULL
)

if TYPE_CHECKING:
    from tbas.tbas_interpreter import TBASInterpreter


TERMINAL_LINE = sys.maxsize

FRAMEBUFFER_BASE = 1048576
FRAMEBUFFER_WIDTH = 560

KEYBOARD_LATCH = -40
KEYBOARD_FIRST_KEY = -41
KEYBOARD_KEY_COUNT = 8

_NUMERIC_INPUT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass
class TBASLoopFrame:
    """
    One active FOR or FOREACH loop.

    For FOR loops source is the generator; for FOREACH loops it is the list of elements not
    yet visited.
    """
    name: str
    source: TBASGenerator | List[TBASValue]
    line: int
    statement: int


class TBASStatementFunctions(TBASFunctionGroup):
    """Builtins that act on interpreter state rather than computing values."""

    def __init__(self, interpreter: "TBASInterpreter") -> None:
        """
        Initialize statement functions.

        Args:
            interpreter: Interpreter whose state these statements change
        """
        self._interpreter = interpreter
        self._logger = logging.getLogger("TBASStatementFunctions")

    def get_functions(self) -> Dict[str, Callable]:
        """Return dictionary of statement implementations."""
        return {
            # Assignment and loops
            '=': self._builtin_assign,
            'IN': self._builtin_in,
            'FOR': self._builtin_for,
            'FOREACH': self._builtin_foreach,
            'NEXT': self._builtin_next,

            # Jumps
            'GOTO': self._builtin_goto,
            'GOSUB': self._builtin_gosub,
            'RETURN': self._builtin_return,
            'END': self._builtin_end,

            # Program data
            'DATA': self._builtin_data,
            'READ': self._builtin_read,
            'DGET': self._builtin_dget,
            'RESTORE': self._builtin_restore,
            'LABEL': self._builtin_label,
            'CLEAR': self._builtin_clear,

            # Options
            'OPTIONBASE': self._builtin_option_base,
            'OPTIONDEBUG': self._builtin_option_debug,
            'OPTIONTRACE': self._builtin_option_trace,

            # Sequencing
            'DO': self._builtin_do,
            'TEST': self._builtin_test,

            # Console
            'PRINT': self._builtin_print,
            'EMIT': self._builtin_emit,
            'INPUT': self._builtin_input,
            'CIN': self._builtin_cin,
            'CLS': self._builtin_cls,
            'GOTOYX': self._builtin_gotoyx,
            'TEXTFORE': self._builtin_textfore,
            'TEXTBACK': self._builtin_textback,

            # Memory bus
            'POKE': self._builtin_poke,
            'PEEK': self._builtin_peek,
            'PLOT': self._builtin_plot,
            'GETKEYSDOWN': self._builtin_getkeysdown,

            # Debugging
            'PRINTMONAD': self._builtin_printmonad,
            'RESOLVE': self._builtin_resolve,
            'RESOLVEVAR': self._builtin_resolvevar,
        }

    def _store(self, target: Any, value: TBASValue, context: TBASCallContext) -> str:
        """
        Write a value through a variable reference or array element handle.

        Returns:
            The name written to, for the assignment record
        """
        if isinstance(target, TBASReference):
            self._interpreter.assign(target.name, value)
            return target.name

        if isinstance(target, TBASArrayIndexRef):
            target.set(value)
            return target.name

        raise TBASSyntaxError(
            f"Cannot assign to {self._describe_type(target)}",
            expected=f"a variable or array element on the left of {context.name}"
        )

    # Assignment and loops

    def _builtin_assign(self, args: List[Any], context: TBASCallContext) -> Any:
        target, operand = args
        value = self._interpreter.resolve(operand)
        if isinstance(value, TBASClosure) and not value.name and isinstance(target, TBASReference):
            value = replace(value, name=target.name)

        name = self._store(target, value, context)
        return TBASAssignment(name, value)

    def _builtin_in(self, args: List[Any], context: TBASCallContext) -> Any:
        target, operand = args
        if not isinstance(target, TBASReference):
            raise TBASSyntaxError("IN needs a variable name on its left", received=self._describe_type(target))

        return TBASAssignment(target.name, self._interpreter.resolve(operand))

    def _loop_assignment(self, args: List[Any], context: TBASCallContext) -> TBASAssignment:
        if len(args) != 1 or not isinstance(args[0], TBASAssignment):
            raise TBASSyntaxError(
                f"Malformed {context.name}",
                expected="FOR I = 1 TO 10 or FOREACH X IN A"
            )

        return args[0]

    def _builtin_for(self, args: List[Any], context: TBASCallContext) -> Any:
        assignment = self._loop_assignment(args, context)
        generator = assignment.value
        if not isinstance(generator, TBASGenerator):
            raise TBASTypeMismatchError(
                "Type mismatch",
                received=self._describe_type(generator),
                expected="a range, e.g. FOR I = 1 TO 10"
            )

        loop_generator = TBASGenerator(generator.start, generator.end, generator.step)
        self._interpreter.assign(assignment.name, TBASNumber(loop_generator.start))
        self._interpreter.for_stack.append(
            TBASLoopFrame(assignment.name, loop_generator, context.line, context.statement)
        )
        return NULL

    def _builtin_foreach(self, args: List[Any], context: TBASCallContext) -> Any:
        assignment = self._loop_assignment(args, context)
        remaining = self._sequence(assignment.value, context)
        first = remaining.pop(0) if remaining else NULL
        self._interpreter.assign(assignment.name, first)
        self._interpreter.for_stack.append(
            TBASLoopFrame(assignment.name, remaining, context.line, context.statement)
        )
        return NULL

    def _builtin_next(self, args: List[Any], context: TBASCallContext) -> Any:
        for_stack = self._interpreter.for_stack
        if not for_stack:
            raise TBASNextWithoutForError("NEXT without FOR")

        frame = for_stack[-1]
        if args and not isinstance(args[0], TBASNull):
            named = args[0]
            if not isinstance(named, TBASReference) or named.name != frame.name:
                name = named.name if isinstance(named, TBASReference) else self._describe_type(named)
                raise TBASNextWithoutForError(
                    f"NEXT '{name}' without FOR",
                    context=f"the innermost loop is over {frame.name}"
                )

        self._logger.debug("Looping %s", frame.name)
        if isinstance(frame.source, TBASGenerator):
            current = self._interpreter.resolve(TBASReference(frame.name))
            following = frame.source.advance(self._number(current, context))
            if following is not None:
                self._interpreter.assign(frame.name, TBASNumber(following))
                return TBASJump(frame.line, frame.statement + 1, context.line)

            self._interpreter.assign(frame.name, TBASNumber(frame.source.current))

        elif frame.source:
            self._interpreter.assign(frame.name, frame.source.pop(0))
            return TBASJump(frame.line, frame.statement + 1, context.line)

        for_stack.pop()
        return NULL

    # Jumps

    def _jump_target(self, operand: Any, context: TBASCallContext) -> int:
        if isinstance(operand, TBASReference):
            line = self._interpreter.labels.get(operand.name)
            if line is not None:
                return line

        target = self._interpreter.resolve(operand)
        if not isinstance(target, TBASNumber):
            raise TBASTypeMismatchError(
                "Type mismatch",
                received=self._describe_type(target),
                expected=f"a line number or label for {context.name}"
            )

        line = int(target.value)
        if line < 0:
            raise TBASSyntaxError(f"{context.name} to negative line {line}")

        return line

    def _builtin_goto(self, args: List[Any], context: TBASCallContext) -> Any:
        return TBASJump(self._jump_target(args[0], context), 0, context.line)

    def _builtin_gosub(self, args: List[Any], context: TBASCallContext) -> Any:
        line = self._jump_target(args[0], context)
        self._interpreter.gosub_stack.append((context.line, context.statement + 1))
        return TBASJump(line, 0, context.line)

    def _builtin_return(self, args: List[Any], context: TBASCallContext) -> Any:
        if not self._interpreter.gosub_stack:
            raise TBASNoGosubToReturnError("RETURN without GOSUB")

        line, statement = self._interpreter.gosub_stack.pop()
        return TBASJump(line, statement, context.line)

    def _builtin_end(self, args: List[Any], context: TBASCallContext) -> Any:
        self._logger.info("Program terminated in %d", context.line)
        return TBASJump(TERMINAL_LINE, 0, context.line)

    # Program data

    def _builtin_data(self, args: List[Any], context: TBASCallContext) -> Any:
        if self._interpreter.prescanning:
            self._interpreter.data.extend(args)

        return NULL

    def _next_data(self) -> TBASValue:
        interpreter = self._interpreter
        if interpreter.data_cursor >= len(interpreter.data):
            raise TBASOutOfDataError("Out of DATA", context=f"{len(interpreter.data)} DATA values were read")

        value = interpreter.data[interpreter.data_cursor]
        interpreter.data_cursor += 1
        return value

    def _builtin_read(self, args: List[Any], context: TBASCallContext) -> Any:
        value = self._next_data()
        name = self._store(args[0], value, context)
        return TBASAssignment(name, value)

    def _builtin_dget(self, args: List[Any], context: TBASCallContext) -> Any:
        return self._next_data()

    def _builtin_restore(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.data_cursor = 0
        return NULL

    def _builtin_label(self, args: List[Any], context: TBASCallContext) -> Any:
        if not self._interpreter.prescanning:
            return NULL

        if not args or not isinstance(args[0], TBASReference):
            raise TBASSyntaxError("empty LABEL", expected="LABEL name")

        name = args[0].name
        if name in self._interpreter.labels:
            raise TBASDuplicateDefinitionError(
                f"Duplicate definition on {name}",
                context=f"label already defined on line {self._interpreter.labels[name]}"
            )

        self._interpreter.labels[name] = context.line
        return NULL

    def _builtin_clear(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.variables.clear()
        return NULL

    # Options

    def _flag(self, args: List[Any], context: TBASCallContext) -> int:
        value = self._integer(args[0], context)
        if value not in (0, 1):
            raise TBASSyntaxError(f"{context.name} must be 0 or 1", received=str(value))

        return value

    def _builtin_option_base(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.index_base = self._flag(args, context)
        return NULL

    def _builtin_option_debug(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.debug = self._flag(args, context) == 1
        return NULL

    def _builtin_option_trace(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.trace = self._flag(args, context) == 1
        return NULL

    # Sequencing

    def _builtin_do(self, args: List[Any], context: TBASCallContext) -> Any:
        return args[-1] if args else NULL

    def _builtin_test(self, args: List[Any], context: TBASCallContext) -> Any:
        return args[0]

    # Console

    def _write_arguments(self, args: List[Any], context: TBASCallContext, emit: bool) -> None:
        console = self._interpreter.console
        if not args:
            console.print("\n")
            return

        for i, value in enumerate(args):
            if i > 0 and i - 1 < len(context.separators) and context.separators[i - 1] == ",":
                console.print("\t")

            if emit and isinstance(value, TBASNumber):
                console.print(chr(int(value.value)))

            else:
                console.print(value.describe())

        if not isinstance(args[-1], TBASNull):
            console.print("\n")

    def _builtin_print(self, args: List[Any], context: TBASCallContext) -> Any:
        self._write_arguments(args, context, emit=False)
        return NULL

    def _builtin_emit(self, args: List[Any], context: TBASCallContext) -> Any:
        self._write_arguments(args, context, emit=True)
        return NULL

    def _read_value(self) -> TBASValue:
        text = self._interpreter.console.read_line().strip()
        if _NUMERIC_INPUT.match(text):
            return TBASNumber(float(text))

        return TBASString(text)

    def _builtin_input(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.console.print("? ")
        value = self._read_value()
        name = self._store(args[0], value, context)
        return TBASAssignment(name, value)

    def _builtin_cin(self, args: List[Any], context: TBASCallContext) -> Any:
        return TBASString(self._interpreter.console.read_line().strip())

    def _builtin_cls(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.console.clear()
        return NULL

    def _builtin_gotoyx(self, args: List[Any], context: TBASCallContext) -> Any:
        offset = 1 - self._interpreter.index_base
        row = self._integer(args[0], context) + offset
        column = self._integer(args[1], context) + offset
        self._interpreter.console.print(f"\x1b[{row};{column}H")
        return NULL

    def _builtin_textfore(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.console.print(f"\x1b[38;5;{self._integer(args[0], context)}m")
        return NULL

    def _builtin_textback(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.console.print(f"\x1b[48;5;{self._integer(args[0], context)}m")
        return NULL

    # Memory bus

    def _builtin_poke(self, args: List[Any], context: TBASCallContext) -> Any:
        self._interpreter.memory_bus.poke(self._integer(args[0], context), self._integer(args[1], context))
        return NULL

    def _builtin_peek(self, args: List[Any], context: TBASCallContext) -> Any:
        return TBASNumber(float(self._interpreter.memory_bus.peek(self._integer(args[0], context))))

    def _builtin_plot(self, args: List[Any], context: TBASCallContext) -> Any:
        x = self._integer(args[0], context)
        y = self._integer(args[1], context)
        if not 0 <= x < FRAMEBUFFER_WIDTH or y < 0:
            raise TBASBadFunctionCallError(f"PLOT position ({x}, {y}) is off screen")

        self._interpreter.memory_bus.poke(FRAMEBUFFER_BASE + y * FRAMEBUFFER_WIDTH + x, self._integer(args[2], context))
        return NULL

    def _builtin_getkeysdown(self, args: List[Any], context: TBASCallContext) -> Any:
        bus = self._interpreter.memory_bus
        bus.poke(KEYBOARD_LATCH, 255)
        return TBASArray([
            TBASNumber(float(bus.peek(KEYBOARD_FIRST_KEY - k))) for k in range(KEYBOARD_KEY_COUNT)
        ])

    # Debugging

    def _builtin_printmonad(self, args: List[Any], context: TBASCallContext) -> Any:
        monad = args[0]
        if not isinstance(monad, TBASMonad):
            raise TBASTypeMismatchError("Type mismatch", received=self._describe_type(monad), expected="a monad")

        self._interpreter.console.print(monad.describe() + "\n")
        return NULL

    def _builtin_resolve(self, args: List[Any], context: TBASCallContext) -> Any:
        value = args[0]
        if isinstance(value, TBASClosure):
            self._interpreter.console.print(f"{context.line} RESOLVE PRINTTREE\n")

        self._interpreter.console.print(value.describe() + "\n")
        return value

    def _builtin_resolvevar(self, args: List[Any], context: TBASCallContext) -> Any:
        reference = args[0]
        if not isinstance(reference, TBASReference):
            raise TBASSyntaxError("RESOLVEVAR needs a variable name", received=self._describe_type(reference))

        value = self._interpreter.variables.lookup(reference.name)
        if value is None:
            raise TBASUnresolvedReferenceError(f"Undefined variable: {reference.name}")

        self._interpreter.console.print(f"type: {value.type_name()}, value: {value.describe()}\n")
        return value
