"""Token states and token representation for TBAS source lines."""

from dataclasses import dataclass
from enum import Enum


class TBASTokenState(Enum):
    """Lexical state a token was produced in."""
    LITERAL = "lit"
    NUMBER = "num"
    QUOTED = "qot"
    OPERATOR = "op"
    PAREN = "paren"
    SEPARATOR = "sep"
    BOOLEAN = "bool"
    SEQUENCE = "seq"


@dataclass(frozen=True)
class TBASToken:
    """Represents a single token in a TBAS source line."""
    text: str
    state: TBASTokenState
    column: int = 0

    def is_literal(self, text: str | None = None) -> bool:
        """Check for a literal token, optionally with the given upper-cased text."""
        if self.state != TBASTokenState.LITERAL:
            return False

        return text is None or self.text.upper() == text

    def is_paren(self, text: str) -> bool:
        """Check for the given bracket character."""
        return self.state == TBASTokenState.PAREN and self.text == text

    def __repr__(self) -> str:
        return f"TBASToken({self.state.name}, {self.text!r}, col={self.column})"
