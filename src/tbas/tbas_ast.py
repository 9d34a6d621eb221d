"""TBAS AST node hierarchy.

Nodes are immutable. The parser builds a fresh tree per statement, and the closure converter and
currying always build new trees rather than rewriting published ones. Unmodified subtrees are
shared between the old and new trees.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from tbas.tbas_value import TBASValue


def _format_number(value: float) -> str:
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))

    return repr(value)


@dataclass(frozen=True)
class TBASASTNode(ABC):
    """
    Abstract base class for all TBAS AST nodes.

    The column field is keyword-only and excluded from equality so that structurally identical
    trees compare equal regardless of where they were written.
    """
    column: int | None = field(default=None, kw_only=True, compare=False)

    @abstractmethod
    def describe(self) -> str:
        """Render the node as BASIC-like source text."""


@dataclass(frozen=True)
class TBASASTNull(TBASASTNode):
    """An empty expression, e.g. a missing argument."""

    def describe(self) -> str:
        return ""


@dataclass(frozen=True)
class TBASASTNumber(TBASASTNode):
    """Numeric literal."""
    value: float

    def describe(self) -> str:
        return _format_number(self.value)


@dataclass(frozen=True)
class TBASASTString(TBASASTNode):
    """String literal."""
    value: str

    def describe(self) -> str:
        return f'"{self.value}"'


@dataclass(frozen=True)
class TBASASTBoolean(TBASASTNode):
    """Boolean literal."""
    value: bool

    def describe(self) -> str:
        return "TRUE" if self.value else "FALSE"


@dataclass(frozen=True)
class TBASASTIdent(TBASASTNode):
    """Identifier, resolved at evaluation time."""
    name: str

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True)
class TBASASTOp(TBASASTNode):
    """Unary or binary operator application."""
    op: str
    operands: Tuple[TBASASTNode, ...]

    def describe(self) -> str:
        if len(self.operands) == 1:
            return f"{self.op}({self.operands[0].describe()})"

        left, right = self.operands
        return f"({left.describe()} {self.op} {right.describe()})"


@dataclass(frozen=True)
class TBASASTCall(TBASASTNode):
    """Function call; the target is a name or a subtree producing a callable."""
    target: "str | TBASASTNode"
    args: Tuple[TBASASTNode, ...] = ()
    separators: Tuple[str, ...] = ()

    def target_name(self) -> str | None:
        """Return the called name, or None when the target is a subtree."""
        return self.target if isinstance(self.target, str) else None

    def describe(self) -> str:
        head = self.target if isinstance(self.target, str) else f"({self.target.describe()})"
        return f"{head}({', '.join(arg.describe() for arg in self.args)})"


@dataclass(frozen=True)
class TBASASTArray(TBASASTNode):
    """Curly-brace array literal."""
    elements: Tuple[TBASASTNode, ...]

    def describe(self) -> str:
        return "{" + ", ".join(element.describe() for element in self.elements) + "}"


@dataclass(frozen=True)
class TBASASTTupleParams(TBASASTNode):
    """Lambda parameter name list."""
    names: Tuple[str, ...]

    def describe(self) -> str:
        return "[" + ", ".join(self.names) + "]"


@dataclass(frozen=True)
class TBASASTLambda(TBASASTNode):
    """Lambda expression; after closure conversion its body refers to parameters by TBASASTArgRef."""
    params: TBASASTTupleParams
    body: TBASASTNode

    def describe(self) -> str:
        return f"{self.params.describe()} ~> {self.body.describe()}"


@dataclass(frozen=True)
class TBASASTArgRef(TBASASTNode):
    """Reference to a lambda parameter by (binder distance, position in frame)."""
    depth: int
    index: int

    def describe(self) -> str:
        return f"${self.depth}_{self.index}"


@dataclass(frozen=True)
class TBASASTIf(TBASASTNode):
    """IF cond THEN a [ELSE b], in statement or expression position."""
    condition: TBASASTNode
    then_branch: TBASASTNode
    else_branch: TBASASTNode | None = None

    def describe(self) -> str:
        text = f"IF {self.condition.describe()} THEN {self.then_branch.describe()}"
        if self.else_branch is not None:
            text += f" ELSE {self.else_branch.describe()}"

        return text


@dataclass(frozen=True)
class TBASASTOn(TBASASTNode):
    """Computed jump: ON test GOTO|GOSUB target, target, ..."""
    kind: str
    test: TBASASTNode
    targets: Tuple[TBASASTNode, ...]

    def describe(self) -> str:
        targets = ", ".join(target.describe() for target in self.targets)
        return f"ON {self.test.describe()} {self.kind} {targets}"


@dataclass(frozen=True)
class TBASASTDefun(TBASASTNode):
    """DEFUN name(params) = body, before closure conversion."""
    name: str
    params: TBASASTTupleParams
    body: TBASASTNode

    def describe(self) -> str:
        return f"DEFUN {self.name}({', '.join(self.params.names)}) = {self.body.describe()}"


@dataclass(frozen=True)
class TBASASTValue(TBASASTNode):
    """A runtime value spliced into a tree, e.g. an argument fixed by currying."""
    value: "TBASValue"

    def describe(self) -> str:
        return self.value.describe()
