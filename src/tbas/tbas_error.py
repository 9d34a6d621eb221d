"""Exception classes for TBAS (Terran BASIC) with detailed context."""

from typing import List, Optional
import difflib


class TBASError(Exception):
    """Base exception for TBAS errors with detailed context information."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        statement: Optional[int] = None,
        context: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        suggestion: Optional[str] = None
    ):
        """
        Initialize detailed error.

        Args:
            message: Core error description
            line: Program line number where the error occurred
            statement: Statement index within the line
            context: Additional context information
            expected: What was expected
            received: What was actually received
            suggestion: Suggestion for fixing the error
        """
        self.message = message
        self.line = line
        self.statement = statement
        self.context = context
        self.expected = expected
        self.received = received
        self.suggestion = suggestion

        super().__init__(self._format_detailed_message())

    def _format_detailed_message(self) -> str:
        """Format the error message with all available details."""
        parts = [f"Error: {self.message}"]

        if self.line is not None:
            if self.statement is not None:
                parts.append(f"Line: {self.line}:{self.statement}")

            else:
                parts.append(f"Line: {self.line}")

        if self.received:
            parts.append(f"Received: {self.received}")

        if self.expected:
            parts.append(f"Expected: {self.expected}")

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")

        return "\n".join(parts)

    def with_location(self, line: int, statement: Optional[int] = None) -> "TBASError":
        """
        Attach a line (and statement) to an error raised without one.

        Negative line numbers mark immediate-mode input and are not recorded.

        Args:
            line: Program line number
            statement: Statement index within the line

        Returns:
            This error, updated in place
        """
        if self.line is None and line >= 0:
            self.line = line
            self.statement = statement
            self.args = (self._format_detailed_message(),)

        return self

    def summary(self) -> str:
        """One-line diagnostic in the style printed by the REPL."""
        if self.line is None:
            return self.message

        return f"{self.message} in {self.line}"


class TBASSyntaxError(TBASError):
    """Tokenizer or parser failure, malformed statement, or wrong argument count."""

    def summary(self) -> str:
        where = "" if self.line is None else f" in {self.line}"
        if self.message:
            return f"Syntax error{where}: {self.message}"

        return f"Syntax error{where}"


class TBASParseMismatch(TBASSyntaxError):
    """A parser alternative did not match; the parser tries the next one."""


class TBASNumberFormatError(TBASSyntaxError):
    """Malformed numeric literal."""

    def summary(self) -> str:
        where = "" if self.line is None else f" in {self.line}"
        return f"Illegal number format{where}: {self.message}"


class TBASTypeMismatchError(TBASError):
    """Operand of the wrong type."""


class TBASDivisionByZeroError(TBASError):
    """Division by zero or an infinite arithmetic result."""


class TBASUnresolvedReferenceError(TBASError):
    """Identifier not bound as a variable, builtin or parameter."""


class TBASSubscriptOutOfRangeError(TBASError):
    """Array index out of bounds."""

    def __init__(self, array_name: str, index: object, length: int, line: Optional[int] = None):
        self.array_name = array_name
        self.index = index
        self.length = length
        super().__init__(
            f'Subscript out of range for "{array_name}" (index: {index}, len: {length})',
            line=line,
            received=f"index {index}",
            expected=f"an index within an array of length {length}"
        )


class TBASOutOfDataError(TBASError):
    """READ or DGET past the end of the DATA sequence."""


class TBASNextWithoutForError(TBASError):
    """NEXT executed with no matching FOR."""


class TBASNoGosubToReturnError(TBASError):
    """RETURN executed with an empty GOSUB stack."""


class TBASDuplicateDefinitionError(TBASError):
    """A name was defined twice where only one definition is allowed."""


class TBASAssignmentToConstantError(TBASError):
    """Assignment to one of the built-in constants."""


class TBASOutOfMemoryError(TBASError):
    """Scratch-memory budget exceeded."""


class TBASBadFunctionCallError(TBASError):
    """Wrong monad or callable shape passed to a higher-order or monadic builtin."""

    def summary(self) -> str:
        where = "" if self.line is None else f" in {self.line}"
        return f"Illegal function call{where}: {self.message}"


class TBASRecursionLimitError(TBASError):
    """Closure calls nested deeper than the configured limit."""


class TBASNoSuchFileError(TBASError):
    """LOAD or CATALOG target does not exist."""


class TBASMissingOperandError(TBASError):
    """A REPL command was given too few operands."""


class ErrorMessageBuilder:
    """Helper class for building detailed error messages."""

    @staticmethod
    def suggest_similar_names(target: str, available_names: List[str], max_suggestions: int = 3) -> List[str]:
        """Suggest similar names using fuzzy matching."""
        if not target or not available_names:
            return []

        return difflib.get_close_matches(target, available_names, n=max_suggestions, cutoff=0.6)

    @staticmethod
    def did_you_mean(target: str, available_names: List[str]) -> Optional[str]:
        """Build a 'Did you mean' suggestion, or None if nothing is close."""
        similar = ErrorMessageBuilder.suggest_similar_names(target, available_names)
        if not similar:
            return None

        return f"Did you mean: {', '.join(similar)}?"
