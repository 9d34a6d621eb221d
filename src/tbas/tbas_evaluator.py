"""Tree-walking evaluator for TBAS statements."""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Sequence, Tuple

from tbas.tbas_ast import (
    TBASASTNode, TBASASTNull, TBASASTNumber, TBASASTString, TBASASTBoolean, TBASASTIdent, TBASASTOp,
    TBASASTCall, TBASASTArray, TBASASTTupleParams, TBASASTLambda, TBASASTArgRef, TBASASTIf, TBASASTOn,
    TBASASTValue
)
from tbas.tbas_builtin_registry import TBASBuiltin
from tbas.tbas_error import (
    TBASError, TBASBadFunctionCallError, TBASDivisionByZeroError, TBASRecursionLimitError,
    TBASSubscriptOutOfRangeError, TBASSyntaxError, TBASTypeMismatchError
)
from tbas.tbas_function_group import TBASCallContext, is_truthy
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASBoolean, TBASArray, TBASClosure, TBASMonad, TBASFunSeq,
    TBASReference, TBASArrayIndexRef, TBASJump, TBASOperand, NULL
)

if TYPE_CHECKING:
    from tbas.tbas_interpreter import TBASInterpreter


IMMEDIATE_LINE = -1


@dataclass(frozen=True)
class TBASExecResult:
    """Outcome of one statement: its value and where execution continues."""
    value: TBASValue
    next_line: int
    next_statement: int


class TBASEvaluator:
    """
    Executes converted statement trees against an interpreter's state.

    Identifiers evaluate to unresolved references so that builtins such as '=' and READ can
    write to them; everything else resolves operands before use.
    """

    def __init__(self, interpreter: "TBASInterpreter") -> None:
        """
        Initialize evaluator.

        Args:
            interpreter: Interpreter holding variables, stacks and the builtin registry
        """
        self._interpreter = interpreter
        self._line = IMMEDIATE_LINE
        self._statement = 0
        self._builtin_closures: Dict[str, TBASClosure] = {}
        self._logger = logging.getLogger("TBASEvaluator")

    def execute(self, line: int, statement: int, node: TBASASTNode) -> TBASExecResult:
        """
        Execute one statement.

        Args:
            line: Line number the statement belongs to, or IMMEDIATE_LINE
            statement: Index of the statement within its line
            node: Converted statement tree

        Returns:
            The statement's value and the next program counter

        Raises:
            TBASError: If the statement fails; the error carries the line number
        """
        self._line = line
        self._statement = statement
        try:
            operand = self._evaluate(node)
            if isinstance(operand, TBASJump):
                self._logger.debug("Jump from %d to %d:%d", line, operand.target_line, operand.target_statement)
                return TBASExecResult(operand.carried, operand.target_line, operand.target_statement)

            return TBASExecResult(self._interpreter.resolve(operand), line, statement + 1)

        except TBASError as e:
            raise e.with_location(line, statement)

        except RecursionError as e:
            raise TBASRecursionLimitError(
                "Recursion limit exceeded",
                context=self._interpreter.binder_stack.format_stack_trace(),
                suggestion="Check that the recursion has a base case"
            ).with_location(line, statement) from e

        except OverflowError as e:
            raise TBASDivisionByZeroError("Division by zero", context=str(e)).with_location(line, statement) from e

        except ValueError as e:
            raise TBASBadFunctionCallError(str(e)).with_location(line, statement) from e

    def _evaluate(self, node: TBASASTNode) -> TBASOperand:
        # Literals
        if isinstance(node, TBASASTNull):
            return NULL

        if isinstance(node, TBASASTNumber):
            return TBASNumber(node.value)

        if isinstance(node, TBASASTString):
            return TBASString(node.value)

        if isinstance(node, TBASASTBoolean):
            return TBASBoolean(node.value)

        if isinstance(node, TBASASTValue):
            return node.value

        # Names
        if isinstance(node, TBASASTIdent):
            return TBASReference(node.name)

        if isinstance(node, TBASASTArgRef):
            return self._interpreter.binder_stack.lookup(node.depth, node.index)

        # Functions
        if isinstance(node, TBASASTLambda):
            return TBASClosure(len(node.params.names), node.body, self._interpreter.binder_stack.snapshot())

        if isinstance(node, TBASASTTupleParams):
            raise TBASSyntaxError(
                "Parameter list without a function body",
                received=node.describe(),
                expected=f"{node.describe()} ~> expression"
            )

        if isinstance(node, TBASASTArray):
            return TBASArray([self._interpreter.resolve(self._evaluate(element)) for element in node.elements])

        # Control flow
        if isinstance(node, TBASASTIf):
            return self._evaluate_if(node)

        if isinstance(node, TBASASTOn):
            return self._evaluate_on(node)

        # Applications
        if isinstance(node, TBASASTOp):
            builtin = self._interpreter.registry.lookup(node.op)
            if builtin is None:
                raise TBASSyntaxError(f"Unknown operator '{node.op}'")

            return self._call_builtin(builtin, node.operands, ())

        if isinstance(node, TBASASTCall):
            return self._evaluate_call(node)

        raise TBASSyntaxError(f"Cannot evaluate {type(node).__name__}", received=node.describe())

    def _evaluate_if(self, node: TBASASTIf) -> TBASOperand:
        condition = self._interpreter.resolve(self._evaluate(node.condition))
        if is_truthy(condition):
            return self._evaluate(node.then_branch)

        if node.else_branch is not None:
            return self._evaluate(node.else_branch)

        return NULL

    def _evaluate_on(self, node: TBASASTOn) -> TBASOperand:
        test = self._interpreter.resolve(self._evaluate(node.test))
        if not isinstance(test, TBASNumber):
            raise TBASTypeMismatchError(
                "Type mismatch",
                received=f"{test.type_name()} {test.describe()!r}",
                expected=f"a number for ON ... {node.kind}"
            )

        position = int(test.value) - self._interpreter.index_base
        if not 0 <= position < len(node.targets):
            return NULL

        builtin = self._interpreter.registry.lookup(node.kind)
        assert builtin is not None
        return self._invoke(builtin, [self._evaluate(node.targets[position])], ())

    def _evaluate_call(self, node: TBASASTCall) -> TBASOperand:
        name = node.target_name()
        if name is not None:
            builtin = self._interpreter.registry.lookup(name)
            if builtin is not None:
                return self._call_builtin(builtin, node.args, node.separators)

            callee: TBASOperand = TBASReference(name)

        else:
            assert isinstance(node.target, TBASASTNode)
            callee = self._evaluate(node.target)
            name = callee.name if isinstance(callee, TBASArrayIndexRef) else node.target.describe()

        args = [self._interpreter.resolve(self._evaluate(arg)) for arg in node.args]

        if isinstance(callee, TBASArrayIndexRef) and isinstance(callee.get(), TBASArray):
            return self._index(callee.array, callee.path, args, name)

        return self.apply(self._interpreter.resolve(callee), args, name)

    def _check_enabled(self, builtin: TBASBuiltin) -> None:
        if builtin.debug_only and not self._interpreter.debug:
            raise TBASSyntaxError(f"{builtin.name} is only available with OPTIONDEBUG 1")

        if builtin.not_production and self._interpreter.production:
            raise TBASSyntaxError(f"{builtin.name} is not available in production mode")

    def _call_builtin(
        self,
        builtin: TBASBuiltin,
        arg_nodes: Sequence[TBASASTNode],
        separators: Tuple[str, ...]
    ) -> TBASOperand:
        self._check_enabled(builtin)
        operands = [self._evaluate(arg) for arg in arg_nodes]
        return self._invoke(builtin, operands, separators)

    def _invoke(self, builtin: TBASBuiltin, operands: List[TBASOperand], separators: Tuple[str, ...]) -> TBASOperand:
        if builtin.arity is not None and len(operands) != builtin.arity:
            raise TBASSyntaxError(
                f"{builtin.name} takes {builtin.arity} argument{'s' if builtin.arity != 1 else ''}, "
                f"got {len(operands)}"
            )

        args: List[Any] = operands if builtin.raw_args else [self._interpreter.resolve(op) for op in operands]
        context = TBASCallContext(builtin.name, self._line, self._statement, separators)
        return builtin.impl(args, context)

    def builtin_closure(self, builtin: TBASBuiltin) -> TBASClosure:
        """
        Wrap a builtin as a closure so it can be passed as a value, e.g. MAP(SQR, A).

        Raises:
            TBASTypeMismatchError: If the builtin is variadic
            TBASSyntaxError: If the builtin is disabled in the current mode
        """
        self._check_enabled(builtin)
        if builtin.arity is None:
            raise TBASTypeMismatchError(
                f"{builtin.name} takes a variable number of arguments and cannot be used as a value"
            )

        closure = self._builtin_closures.get(builtin.name)
        if closure is None:
            params = tuple(TBASASTArgRef(0, i) for i in range(builtin.arity))
            closure = TBASClosure(builtin.arity, TBASASTCall(builtin.name, params), name=builtin.name)
            self._builtin_closures[builtin.name] = closure

        return closure

    def _index(self, array: TBASArray, path: Tuple[int, ...], args: List[TBASValue], name: str) -> TBASArrayIndexRef:
        """Extend an array element path by one subscript per argument, checking bounds."""
        if not args:
            raise TBASSyntaxError(f'Missing subscript for "{name}"')

        target = array
        for index in path:
            element = target.elements[index]
            assert isinstance(element, TBASArray)
            target = element

        new_path = list(path)
        for k, arg in enumerate(args):
            if not isinstance(arg, TBASNumber):
                raise TBASTypeMismatchError(
                    "Type mismatch",
                    received=f"{arg.type_name()} {arg.describe()!r}",
                    expected=f'a numeric subscript for "{name}"'
                )

            index = int(arg.value) - self._interpreter.index_base
            if not 0 <= index < len(target.elements):
                raise TBASSubscriptOutOfRangeError(name, int(arg.value), len(target.elements))

            new_path.append(index)
            if k < len(args) - 1:
                element = target.elements[index]
                if not isinstance(element, TBASArray):
                    raise TBASTypeMismatchError(f"\"{name}\" has fewer dimensions than subscripts", received=str(len(args)))

                target = element

        return TBASArrayIndexRef(array, tuple(new_path), name)

    def apply(self, callee: TBASValue, args: List[TBASValue], name: str = "") -> TBASOperand:
        """
        Apply a resolved value to already evaluated arguments.

        Closures and function sequences are called, arrays are indexed and monads are unwrapped.
        A non-callable value applied to no arguments is returned unchanged.

        Raises:
            TBASTypeMismatchError: If the value cannot be applied to arguments
        """
        if isinstance(callee, (TBASClosure, TBASFunSeq)):
            return self.call_function(callee, args)

        if isinstance(callee, TBASArray) and args:
            return self._index(callee, (), args, name)

        if isinstance(callee, TBASMonad):
            return callee.unwrap()

        if not args:
            return callee

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=f"{callee.type_name()} {callee.describe()!r}",
            expected=f"a function or array to call {name}" if name else "a function or array"
        )

    def call_function(self, function: TBASValue, args: List[TBASValue], context: TBASCallContext | None = None) -> TBASValue:
        """
        Call a closure or function sequence.

        Args:
            function: The callable value
            args: Argument values
            context: Calling builtin, if any, for error messages

        Returns:
            The call's resolved result

        Raises:
            TBASBadFunctionCallError: If the value is not callable
        """
        if isinstance(function, TBASClosure):
            with self._interpreter.binder_stack.call(function, tuple(args)):
                return self._interpreter.resolve(self._evaluate(function.body))

        if isinstance(function, TBASFunSeq):
            value = args[0] if args else NULL
            for step in function.functions:
                value = self.call_function(step, [value], context)

            return value

        caller = f" in {context.name}" if context is not None else ""
        raise TBASBadFunctionCallError(
            f"Not a function{caller}",
            received=f"{function.type_name()} {function.describe()!r}"
        )
