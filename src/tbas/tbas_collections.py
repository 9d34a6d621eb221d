"""String, array, higher-order and monadic builtins for TBAS."""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Tuple

from tbas.tbas_error import TBASBadFunctionCallError, TBASTypeMismatchError
from tbas.tbas_function_group import TBASCallContext, TBASFunctionGroup, is_callable, is_truthy
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASArray, TBASGenerator, TBASClosure, TBASMonad, TBASListMonad,
    TBASMemoMonad, TBASFunSeq, NULL
)

if TYPE_CHECKING:
    from tbas.tbas_interpreter import TBASInterpreter


class TBASCollectionFunctions(TBASFunctionGroup):
    """String, array, higher-order and monadic builtins."""

    def __init__(self, interpreter: "TBASInterpreter") -> None:
        """
        Initialize collection functions.

        Args:
            interpreter: Interpreter used to call function arguments
        """
        self._interpreter = interpreter

    def get_functions(self) -> Dict[str, Callable]:
        """Return dictionary of collection function implementations."""
        return {
            # Strings
            'LEFT': self._builtin_left,
            'RIGHT': self._builtin_right,
            'MID': self._builtin_mid,
            'SPC': self._builtin_spc,
            'CHR': self._builtin_chr,

            # Arrays
            'DIM': self._builtin_dim,
            'LEN': self._builtin_len,
            'HEAD': self._builtin_head,
            'TAIL': self._builtin_tail,
            'INIT': self._builtin_init,
            'LAST': self._builtin_last,
            '!': self._builtin_cons,
            '~': self._builtin_snoc,
            '#': self._builtin_concat,

            # Higher-order
            'MAP': self._builtin_map,
            'FOLD': self._builtin_fold,
            'FILTER': self._builtin_filter,
            '.': self._builtin_compose,
            '$': self._builtin_apply,
            '~<': self._builtin_curry,
            'REDUCE': self._builtin_reduce,

            # Monads
            'MRET': self._builtin_mret,
            'MLIST': self._builtin_mlist,
            'MJOIN': self._builtin_mjoin,
            '>>=': self._builtin_bind,
            '>>~': self._builtin_then,

            # Introspection
            'TYPEOF': self._builtin_typeof,
        }

    # Strings

    def _builtin_left(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        text = self._string(args[0], context)
        count = max(self._integer(args[1], context), 0)
        return TBASString(text[:count])

    def _builtin_right(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        text = self._string(args[0], context)
        count = max(self._integer(args[1], context), 0)
        return TBASString(text[len(text) - count:] if count else "")

    def _builtin_mid(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        text = self._string(args[0], context)
        start = max(self._integer(args[1], context) - self._interpreter.index_base, 0)
        count = max(self._integer(args[2], context), 0)
        return TBASString(text[start:start + count])

    def _builtin_spc(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASString(" " * max(self._integer(args[0], context), 0))

    def _builtin_chr(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        code = self._integer(args[0], context)
        try:
            return TBASString(chr(code))

        except ValueError as e:
            raise TBASBadFunctionCallError(f"CHR code {code} is out of range") from e

    # Arrays

    def _builtin_dim(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        sizes = [self._integer(arg, context) for arg in args]
        if not sizes or any(size < 0 for size in sizes):
            raise TBASBadFunctionCallError("DIM needs non-negative dimensions", received=str(sizes))

        def build(level: int) -> TBASArray:
            if level == len(sizes) - 1:
                return TBASArray([TBASNumber(0.0) for _ in range(sizes[level])])

            return TBASArray([build(level + 1) for _ in range(sizes[level])])

        return build(0)

    def _builtin_len(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        value = args[0]
        if isinstance(value, TBASString):
            return TBASNumber(float(len(value.value)))

        return TBASNumber(float(len(self._sequence(value, context))))

    def _non_empty(self, value: Any, context: TBASCallContext) -> List[TBASValue] | str:
        if isinstance(value, TBASString):
            items: List[TBASValue] | str = value.value

        else:
            items = self._sequence(value, context)

        if len(items) == 0:
            raise TBASBadFunctionCallError(f"{context.name} of an empty list")

        return items

    def _builtin_head(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        items = self._non_empty(args[0], context)
        return TBASString(items[0]) if isinstance(items, str) else items[0]

    def _builtin_last(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        items = self._non_empty(args[0], context)
        return TBASString(items[-1]) if isinstance(items, str) else items[-1]

    def _builtin_tail(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        if isinstance(args[0], TBASString):
            return TBASString(args[0].value[1:])

        return TBASArray(self._sequence(args[0], context)[1:])

    def _builtin_init(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        if isinstance(args[0], TBASString):
            return TBASString(args[0].value[:-1])

        return TBASArray(self._sequence(args[0], context)[:-1])

    def _builtin_cons(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        head, tail = args
        if isinstance(tail, TBASListMonad):
            return TBASListMonad((head,) + tail.elements)

        if isinstance(tail, TBASArray):
            return TBASArray([head] + tail.elements)

        raise TBASTypeMismatchError("Type mismatch", received=self._describe_type(tail), expected="an array after '!'")

    def _builtin_snoc(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        init, last = args
        if isinstance(init, TBASListMonad):
            return TBASListMonad(init.elements + (last,))

        if isinstance(init, TBASArray):
            return TBASArray(init.elements + [last])

        raise TBASTypeMismatchError("Type mismatch", received=self._describe_type(init), expected="an array before '~'")

    def _builtin_concat(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left, right = args
        if isinstance(left, TBASListMonad) and isinstance(right, TBASListMonad):
            return TBASListMonad(left.elements + right.elements)

        if isinstance(left, TBASArray) and isinstance(right, TBASArray):
            return TBASArray(left.elements + right.elements)

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=f"{self._describe_type(left)} # {self._describe_type(right)}",
            expected="two arrays or two list monads"
        )

    # Higher-order

    def _builtin_map(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        function = self._require_callable(args[0], context)
        items = self._sequence(args[1], context)
        return TBASArray([self._interpreter.call_function(function, [item], context) for item in items])

    def _builtin_fold(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        function = self._require_callable(args[0], context)
        accumulator = args[1]
        for item in self._sequence(args[2], context):
            accumulator = self._interpreter.call_function(function, [accumulator, item], context)

        return accumulator

    def _builtin_filter(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        function = self._require_callable(args[0], context)
        items = self._sequence(args[1], context)
        return TBASArray([
            item for item in items if is_truthy(self._interpreter.call_function(function, [item], context))
        ])

    def _function_chain(self, value: Any, context: TBASCallContext) -> Tuple[TBASValue, ...]:
        if isinstance(value, TBASFunSeq):
            return value.functions

        return (self._require_callable(value, context),)

    def _builtin_compose(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        outer, inner = args
        return TBASFunSeq(self._function_chain(inner, context) + self._function_chain(outer, context))

    def _builtin_apply(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        function = self._require_callable(args[0], context)
        return self._interpreter.call_function(function, [args[1]], context)

    def _builtin_curry(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        function, value = args
        if not isinstance(function, TBASClosure):
            raise TBASBadFunctionCallError(
                "'~<' needs a function on its left",
                received=self._describe_type(function)
            )

        return self._interpreter.closure_converter.curry(function, value)

    def _builtin_reduce(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return self._require_callable(args[0], context)

    # Monads

    def _builtin_mret(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASMemoMonad(args[0])

    def _builtin_mlist(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        value = args[0]
        if isinstance(value, (TBASArray, TBASGenerator)):
            return TBASListMonad(tuple(self._sequence(value, context)))

        return TBASListMonad((value,))

    def _builtin_mjoin(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        monad = args[0]
        if not isinstance(monad, TBASMonad):
            raise TBASTypeMismatchError("Type mismatch", received=self._describe_type(monad), expected="a monad")

        return monad.unwrap()

    def _builtin_bind(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        monad, function = args
        if not isinstance(monad, TBASMonad):
            raise TBASBadFunctionCallError(
                "left-hand side of '>>=' is not a monad",
                received=self._describe_type(monad)
            )

        if not is_callable(function):
            raise TBASBadFunctionCallError(
                "right-hand side of '>>=' is not a function",
                received=self._describe_type(function)
            )

        result = self._interpreter.call_function(function, [monad.unwrap()], context)
        if not isinstance(result, TBASMonad):
            raise TBASBadFunctionCallError(
                "right-hand function did not return a monad",
                received=self._describe_type(result)
            )

        return result

    def _builtin_then(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        first, second = args
        for side in (first, second):
            if not isinstance(side, TBASMonad):
                raise TBASBadFunctionCallError("'>>~' needs a monad on both sides", received=self._describe_type(side))

        return second

    # Introspection

    def _builtin_typeof(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        value = args[0] if args else NULL
        return TBASString(value.type_name())
