"""Shared argument handling for groups of TBAS builtin functions."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from tbas.tbas_error import TBASBadFunctionCallError, TBASTypeMismatchError
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASBoolean, TBASNull, TBASArray, TBASGenerator, TBASClosure,
    TBASListMonad, TBASFunSeq
)


@dataclass(frozen=True)
class TBASCallContext:
    """Where a builtin is being called from."""
    name: str
    line: int
    statement: int
    separators: Tuple[str, ...] = ()


def is_truthy(value: TBASValue) -> bool:
    """Truth value used by IF, TEST, NOT and FILTER."""
    if isinstance(value, TBASBoolean):
        return value.value

    if isinstance(value, TBASNumber):
        return value.value != 0

    if isinstance(value, TBASString):
        return value.value != ""

    return not isinstance(value, TBASNull)


def is_callable(value: Any) -> bool:
    """Check for a closure or composed function sequence."""
    return isinstance(value, (TBASClosure, TBASFunSeq))


class TBASFunctionGroup:
    """Base class for a group of builtin implementations."""

    def get_functions(self) -> Dict[str, Callable]:
        """Return dictionary of function implementations keyed by builtin name."""
        raise NotImplementedError

    def _number(self, value: Any, context: TBASCallContext) -> float:
        """Extract a number, raising a type mismatch for anything else."""
        if isinstance(value, TBASNumber):
            return value.value

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=self._describe_type(value),
            expected=f"a number for {context.name}"
        )

    def _integer(self, value: Any, context: TBASCallContext) -> int:
        """Extract a number truncated to an integer."""
        return int(self._number(value, context))

    def _string(self, value: Any, context: TBASCallContext) -> str:
        if isinstance(value, TBASString):
            return value.value

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=self._describe_type(value),
            expected=f"a string for {context.name}"
        )

    def _boolean(self, value: Any, context: TBASCallContext) -> bool:
        if isinstance(value, TBASBoolean):
            return value.value

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=self._describe_type(value),
            expected=f"a boolean for {context.name}"
        )

    def _sequence(self, value: Any, context: TBASCallContext) -> List[TBASValue]:
        """Extract the elements of an array, list monad or generator."""
        if isinstance(value, TBASArray):
            return list(value.elements)

        if isinstance(value, TBASGenerator):
            return value.to_list()

        if isinstance(value, TBASListMonad):
            return list(value.elements)

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=self._describe_type(value),
            expected=f"an array or generator for {context.name}"
        )

    def _require_callable(self, value: Any, context: TBASCallContext) -> TBASValue:
        if is_callable(value):
            return value

        raise TBASBadFunctionCallError(
            f"{context.name} needs a function",
            received=self._describe_type(value),
            expected="a function, e.g. [X] ~> X * 2"
        )

    @staticmethod
    def _describe_type(value: Any) -> str:
        if isinstance(value, TBASValue):
            return f"{value.type_name()} {value.describe()!r}"

        return type(value).__name__
