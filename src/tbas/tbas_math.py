"""Arithmetic, comparison, bitwise and mathematical builtins for TBAS."""

import math
import random
from typing import Any, Callable, Dict, List

from tbas.tbas_error import TBASBadFunctionCallError, TBASDivisionByZeroError, TBASTypeMismatchError
from tbas.tbas_function_group import TBASCallContext, TBASFunctionGroup, is_truthy
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASBoolean, TBASGenerator, TRUE, FALSE
)


def _to_int32(value: float) -> int:
    result = int(value) & 0xFFFFFFFF
    return result - 0x100000000 if result & 0x80000000 else result


def _to_uint32(value: float) -> int:
    return int(value) & 0xFFFFFFFF


class TBASMathFunctions(TBASFunctionGroup):
    """Numeric builtins; all operate on floating point numbers."""

    def __init__(self, seed: int | None = None) -> None:
        """
        Initialize math functions.

        Args:
            seed: Optional seed for RND
        """
        self._random = random.Random(seed)
        self._last_random = self._random.random()

    def get_functions(self) -> Dict[str, Callable]:
        """Return dictionary of mathematical function implementations."""
        return {
            # Arithmetic operators
            '+': self._builtin_plus,
            '-': self._builtin_minus,
            '*': self._builtin_star,
            '/': self._builtin_slash,
            '\\': self._builtin_backslash,
            'MOD': self._builtin_mod,
            '^': self._builtin_caret,
            'UNARYMINUS': self._builtin_unary_minus,
            'UNARYPLUS': self._builtin_unary_plus,

            # Bitwise operators
            '<<': self._builtin_shift_left,
            '>>': self._builtin_shift_right,
            'BAND': self._builtin_band,
            'BOR': self._builtin_bor,
            'BXOR': self._builtin_bxor,
            'UNARYBNOT': self._builtin_bnot,

            # Boolean operators
            'AND': self._builtin_and,
            'OR': self._builtin_or,
            'UNARYLOGICNOT': self._builtin_not,

            # Comparison operators
            '==': self._builtin_eq,
            '<>': self._builtin_ne,
            '><': self._builtin_ne,
            '<': self._builtin_lt,
            '>': self._builtin_gt,
            '<=': self._builtin_le,
            '=<': self._builtin_le,
            '>=': self._builtin_ge,
            '=>': self._builtin_ge,
            'MIN': self._builtin_min,
            'MAX': self._builtin_max,

            # Generators
            'TO': self._builtin_to,
            'STEP': self._builtin_step,

            # Mathematical functions
            'ABS': self._unary(abs),
            'SGN': self._unary(lambda x: (x > 0) - (x < 0)),
            'INT': self._unary(math.floor),
            'FLOOR': self._unary(math.floor),
            'FIX': self._unary(math.trunc),
            'CEIL': self._unary(math.ceil),
            'ROUND': self._unary(lambda x: math.floor(x + 0.5)),
            'SQR': self._unary(math.sqrt),
            'CBR': self._unary(lambda x: math.copysign(abs(x) ** (1.0 / 3.0), x)),
            'EXP': self._unary(math.exp),
            'LOG': self._unary(math.log),
            'SIN': self._unary(math.sin),
            'COS': self._unary(math.cos),
            'TAN': self._unary(math.tan),
            'ASN': self._unary(math.asin),
            'ACO': self._unary(math.acos),
            'ATN': self._unary(math.atan),
            'SINH': self._unary(math.sinh),
            'COSH': self._unary(math.cosh),
            'TANH': self._unary(math.tanh),
            'RND': self._builtin_rnd,
        }

    def _unary(self, function: Callable[[float], float]) -> Callable[[List[Any], TBASCallContext], TBASValue]:
        """Wrap a one-argument Python math function as a builtin."""
        def builtin(args: List[Any], context: TBASCallContext) -> TBASValue:
            value = self._number(args[0], context)
            try:
                return TBASNumber(float(function(value)))

            except ValueError as e:
                raise TBASBadFunctionCallError(
                    f"{context.name} is undefined for {value}",
                    received=str(value)
                ) from e

            except OverflowError as e:
                raise TBASDivisionByZeroError("Division by zero", context=f"{context.name} overflowed") from e

        return builtin

    # Arithmetic operators

    def _builtin_plus(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left, right = args
        if isinstance(left, TBASNumber) and isinstance(right, TBASNumber):
            return TBASNumber(left.value + right.value)

        if isinstance(left, TBASString) or isinstance(right, TBASString):
            return TBASString(left.describe() + right.describe())

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=f"{self._describe_type(left)} + {self._describe_type(right)}",
            expected="two numbers, or a string on either side"
        )

    def _builtin_minus(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(self._number(args[0], context) - self._number(args[1], context))

    def _builtin_star(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(self._number(args[0], context) * self._number(args[1], context))

    def _divisor(self, value: Any, context: TBASCallContext) -> float:
        divisor = self._number(value, context)
        if divisor == 0:
            raise TBASDivisionByZeroError("Division by zero", context=f"right operand of '{context.name}' is 0")

        return divisor

    def _builtin_slash(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left = self._number(args[0], context)
        return TBASNumber(left / self._divisor(args[1], context))

    def _builtin_backslash(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left = self._number(args[0], context)
        return TBASNumber(float(math.trunc(left / self._divisor(args[1], context))))

    def _builtin_mod(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left = self._number(args[0], context)
        return TBASNumber(math.fmod(left, self._divisor(args[1], context)))

    def _builtin_caret(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        base = self._number(args[0], context)
        exponent = self._number(args[1], context)
        if base == 0 and exponent < 0:
            raise TBASDivisionByZeroError("Division by zero", context=f"0 ^ {exponent}")

        try:
            result = math.pow(base, exponent)

        except ValueError as e:
            raise TBASBadFunctionCallError(f"{base} ^ {exponent} is not a number") from e

        except OverflowError as e:
            raise TBASDivisionByZeroError("Division by zero", context=f"{base} ^ {exponent} overflowed") from e

        return TBASNumber(result)

    def _builtin_unary_minus(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(-self._number(args[0], context))

    def _builtin_unary_plus(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(self._number(args[0], context))

    # Bitwise operators

    def _builtin_shift_left(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        value = self._number(args[0], context)
        count = _to_uint32(self._number(args[1], context)) & 31
        return TBASNumber(float(_to_int32(_to_uint32(value) << count)))

    def _builtin_shift_right(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        value = self._number(args[0], context)
        count = _to_uint32(self._number(args[1], context)) & 31
        return TBASNumber(float(_to_uint32(value) >> count))

    def _builtin_band(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(float(_to_int32(self._number(args[0], context)) & _to_int32(self._number(args[1], context))))

    def _builtin_bor(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(float(_to_int32(self._number(args[0], context)) | _to_int32(self._number(args[1], context))))

    def _builtin_bxor(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(float(_to_int32(self._number(args[0], context)) ^ _to_int32(self._number(args[1], context))))

    def _builtin_bnot(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(float(~_to_int32(self._number(args[0], context))))

    # Boolean operators

    def _builtin_and(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left = self._boolean(args[0], context)
        right = self._boolean(args[1], context)
        return TRUE if left and right else FALSE

    def _builtin_or(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left = self._boolean(args[0], context)
        right = self._boolean(args[1], context)
        return TRUE if left or right else FALSE

    def _builtin_not(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return FALSE if is_truthy(args[0]) else TRUE

    # Comparison operators

    def _equal(self, left: TBASValue, right: TBASValue) -> bool:
        """Loose equality: a number equals a string holding the same number."""
        if isinstance(left, TBASNumber) and isinstance(right, TBASString):
            left, right = right, left

        if isinstance(left, TBASString) and isinstance(right, TBASNumber):
            try:
                return float(left.value) == right.value

            except ValueError:
                return False

        return left == right

    def _builtin_eq(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TRUE if self._equal(args[0], args[1]) else FALSE

    def _builtin_ne(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return FALSE if self._equal(args[0], args[1]) else TRUE

    def _ordered(self, args: List[Any], context: TBASCallContext) -> tuple:
        left, right = args
        if isinstance(left, TBASNumber) and isinstance(right, TBASNumber):
            return left.value, right.value

        if isinstance(left, TBASString) and isinstance(right, TBASString):
            return left.value, right.value

        raise TBASTypeMismatchError(
            "Type mismatch",
            received=f"{self._describe_type(left)} {context.name} {self._describe_type(right)}",
            expected="two numbers or two strings"
        )

    def _builtin_lt(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left, right = self._ordered(args, context)
        return TRUE if left < right else FALSE

    def _builtin_gt(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left, right = self._ordered(args, context)
        return TRUE if left > right else FALSE

    def _builtin_le(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left, right = self._ordered(args, context)
        return TRUE if left <= right else FALSE

    def _builtin_ge(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        left, right = self._ordered(args, context)
        return TRUE if left >= right else FALSE

    def _builtin_min(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(min(self._number(args[0], context), self._number(args[1], context)))

    def _builtin_max(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASNumber(max(self._number(args[0], context), self._number(args[1], context)))

    # Generators

    def _builtin_to(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        return TBASGenerator(self._number(args[0], context), self._number(args[1], context))

    def _builtin_step(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        generator = args[0]
        if not isinstance(generator, TBASGenerator):
            raise TBASTypeMismatchError(
                "Type mismatch",
                received=self._describe_type(generator),
                expected="a generator, e.g. 1 TO 10 STEP 2"
            )

        step = self._number(args[1], context)
        if step == 0:
            raise TBASBadFunctionCallError("STEP cannot be 0")

        return TBASGenerator(generator.start, generator.end, step)

    def _builtin_rnd(self, args: List[Any], context: TBASCallContext) -> TBASValue:
        if self._number(args[0], context) != 0:
            self._last_random = self._random.random()

        return TBASNumber(self._last_random)
