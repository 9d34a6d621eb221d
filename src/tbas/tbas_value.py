"""TBAS value hierarchy - runtime values and evaluator operands."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import math
from typing import Any, List, Tuple, Union

from tbas.tbas_ast import TBASASTNode


def format_number(value: float) -> str:
    """Format a number the way BASIC prints it."""
    if math.isnan(value):
        return "NaN"

    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"

    if value == int(value) and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        power = int(exponent)
        return f"{mantissa}e{'+' if power >= 0 else '-'}{abs(power)}"

    return text


class TBASValue(ABC):
    """Abstract base class for all TBAS runtime values."""

    @abstractmethod
    def to_python(self) -> Any:
        """Convert to Python value for operations."""

    @abstractmethod
    def type_name(self) -> str:
        """Return TBAS type name, as reported by TYPEOF."""

    @abstractmethod
    def describe(self) -> str:
        """Describe the value the way PRINT shows it."""


@dataclass(frozen=True)
class TBASNumber(TBASValue):
    """Represents numeric values; all numbers are floating point."""
    value: float

    def to_python(self) -> float:
        return self.value

    def type_name(self) -> str:
        return "num"

    def describe(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class TBASString(TBASValue):
    """Represents string values."""
    value: str

    def to_python(self) -> str:
        return self.value

    def type_name(self) -> str:
        return "string"

    def describe(self) -> str:
        return self.value


@dataclass(frozen=True)
class TBASBoolean(TBASValue):
    """Represents boolean values."""
    value: bool

    def to_python(self) -> bool:
        return self.value

    def type_name(self) -> str:
        return "bool"

    def describe(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class TBASNull(TBASValue):
    """The absent value, e.g. an empty argument or UNDEFINED."""

    def to_python(self) -> None:
        return None

    def type_name(self) -> str:
        return "null"

    def describe(self) -> str:
        return ""


@dataclass
class TBASArray(TBASValue):
    """
    Represents arrays, possibly nested.

    Arrays are the only mutable values: element assignment writes through shared references.
    """
    elements: List[TBASValue] = field(default_factory=list)

    def to_python(self) -> List[Any]:
        return [element.to_python() for element in self.elements]

    def type_name(self) -> str:
        return "array"

    def describe(self) -> str:
        return ",".join(element.describe() for element in self.elements)


@dataclass
class TBASGenerator(TBASValue):
    """A numeric range produced by TO and STEP."""
    start: float
    end: float
    step: float = 1.0
    current: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        self.current = self.start

    def _sign(self) -> int:
        return 1 if self.step > 0 else -1

    def advance(self, current: float) -> float | None:
        """
        Step the generator on from a (possibly reassigned) loop variable value.

        Args:
            current: The loop variable's value as the loop body left it

        Returns:
            The next value, or None once the range is exhausted
        """
        self.current = current + self.step
        sign = self._sign()
        if self.current * sign <= self.end * sign:
            return self.current

        return None

    def to_list(self) -> List[TBASValue]:
        """Materialize the full range."""
        values: List[TBASValue] = []
        sign = self._sign()
        value = self.start
        while value * sign <= self.end * sign:
            values.append(TBASNumber(value))
            value += self.step

        return values

    def to_python(self) -> List[float]:
        return [number.to_python() for number in self.to_list()]

    def type_name(self) -> str:
        return "generator"

    def describe(self) -> str:
        text = f"Generator: {format_number(self.start)} to {format_number(self.end)}"
        if self.step != 1:
            text += f" step {format_number(self.step)}"

        return text


@dataclass(frozen=True)
class TBASClosure(TBASValue):
    """
    A user-defined function.

    The body refers to its own parameters as TBASASTArgRef(0, i); deeper references read the
    captured binder frames of the scope the closure was created in.
    """
    arity: int
    body: TBASASTNode
    captured: Tuple[Tuple[TBASValue, ...], ...] = ()
    name: str = field(default="", compare=False)

    def to_python(self) -> "TBASClosure":
        return self

    def type_name(self) -> str:
        return "usrdefun"

    def describe(self) -> str:
        params = ", ".join(f"$0_{i}" for i in range(self.arity))
        return f"[{params}] ~> {self.body.describe()}"


class TBASMonad(TBASValue):
    """Base class for the three monad variants."""

    monad_type = ""

    @abstractmethod
    def unwrap(self) -> TBASValue:
        """Return the wrapped value, as MJOIN does."""

    def type_name(self) -> str:
        return f"{self.monad_type}-monad"

    def describe(self) -> str:
        return f"M[{self.monad_type}]({self.unwrap().describe()})"


@dataclass(frozen=True)
class TBASListMonad(TBASMonad):
    """List monad over an ordered sequence."""
    elements: Tuple[TBASValue, ...] = ()

    monad_type = "list"

    def unwrap(self) -> TBASValue:
        return TBASArray(list(self.elements))

    def to_python(self) -> List[Any]:
        return [element.to_python() for element in self.elements]


@dataclass(frozen=True)
class TBASMemoMonad(TBASMonad):
    """Value monad holding a single value."""
    value: TBASValue

    monad_type = "value"

    def unwrap(self) -> TBASValue:
        return self.value

    def to_python(self) -> Any:
        return self.value.to_python()


@dataclass(frozen=True)
class TBASFunSeq(TBASMonad):
    """A composed chain of callables, applied first to last."""
    functions: Tuple[TBASValue, ...] = ()

    monad_type = "funseq"

    def unwrap(self) -> TBASValue:
        return TBASArray(list(self.functions))

    def to_python(self) -> "TBASFunSeq":
        return self


@dataclass(frozen=True)
class TBASReference:
    """An identifier that has not been resolved yet; lvalue-taking builtins read its name."""
    name: str


@dataclass(frozen=True)
class TBASArrayIndexRef:
    """A lazily-addressed array element, readable and writable through its base array."""
    array: TBASArray
    path: Tuple[int, ...]
    name: str

    def _parent(self) -> TBASArray:
        target = self.array
        for index in self.path[:-1]:
            element = target.elements[index]
            assert isinstance(element, TBASArray)
            target = element

        return target

    def get(self) -> TBASValue:
        """Read the addressed element."""
        return self._parent().elements[self.path[-1]]

    def set(self, value: TBASValue) -> None:
        """Write the addressed element."""
        self._parent().elements[self.path[-1]] = value


@dataclass(frozen=True)
class TBASAssignment:
    """Result of '=' and IN: the target name and the value bound to it."""
    name: str
    value: TBASValue


@dataclass(frozen=True)
class TBASJump:
    """A control transfer requested by a builtin."""
    target_line: int
    target_statement: int
    from_line: int
    carried: TBASValue = field(default_factory=TBASNull)


TBASOperand = Union[TBASValue, TBASReference, TBASArrayIndexRef, TBASAssignment, TBASJump]

NULL = TBASNull()
TRUE = TBASBoolean(True)
FALSE = TBASBoolean(False)
