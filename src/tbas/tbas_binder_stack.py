"""Lambda-binding stack for TBAS closure calls."""

from contextlib import contextmanager
from typing import Iterator, List, Tuple

from tbas.tbas_error import TBASRecursionLimitError, TBASUnresolvedReferenceError
from tbas.tbas_value import TBASClosure, TBASValue


Frame = Tuple[TBASValue, ...]


class TBASBinderStack:
    """
    Stack of parameter frames for closure calls.

    While a closure runs, the stack holds the frames captured when the closure was created with
    the call's own argument frame on top, so TBASASTArgRef(depth, index) reads
    frames[-1 - depth][index].
    """

    def __init__(self, max_depth: int = 1000) -> None:
        """
        Initialize empty binder stack.

        Args:
            max_depth: Maximum number of nested closure calls
        """
        self.max_depth = max_depth
        self.frames: List[Frame] = []
        self._calls: List[str] = []

    @property
    def depth(self) -> int:
        """Number of closure calls currently active."""
        return len(self._calls)

    @contextmanager
    def call(self, closure: TBASClosure, arguments: Frame) -> Iterator[None]:
        """
        Run a block with a closure's frames installed.

        The previous frames are restored on every exit path.

        Args:
            closure: The closure being called
            arguments: Already evaluated argument values

        Raises:
            TBASRecursionLimitError: If the call would exceed max_depth
        """
        if len(self._calls) >= self.max_depth:
            raise TBASRecursionLimitError(
                f"Recursion limit of {self.max_depth} nested calls exceeded",
                context=self.format_stack_trace(),
                suggestion="Check that the recursion has a base case"
            )

        saved = self.frames
        self.frames = list(closure.captured) + [arguments]
        self._calls.append(closure.name or "usrdefun")
        try:
            yield

        finally:
            self._calls.pop()
            self.frames = saved

    def lookup(self, depth: int, index: int) -> TBASValue:
        """
        Read a parameter by (depth, index).

        Raises:
            TBASUnresolvedReferenceError: If no such frame or parameter exists
        """
        if depth < 0 or depth >= len(self.frames):
            raise TBASUnresolvedReferenceError(
                "Unresolved reference",
                received=f"parameter reference ${depth}_{index}",
                context=f"only {len(self.frames)} enclosing parameter frames are active"
            )

        frame = self.frames[-1 - depth]
        if index < 0 or index >= len(frame):
            raise TBASUnresolvedReferenceError(
                "Unresolved reference",
                received=f"parameter reference ${depth}_{index}",
                context=f"the function was given {len(frame)} arguments"
            )

        return frame[index]

    def snapshot(self) -> Tuple[Frame, ...]:
        """Capture the current frames for a closure created here."""
        return tuple(self.frames)

    def reset(self) -> None:
        """Drop every frame."""
        self.frames = []
        self._calls = []

    def format_stack_trace(self, max_frames: int = 10) -> str:
        """
        Format the active calls for error messages.

        Args:
            max_frames: Maximum number of calls to include

        Returns:
            Formatted stack trace string
        """
        if not self._calls:
            return "  (no function calls)"

        lines = []
        shown = self._calls[-max_frames:]
        if len(self._calls) > max_frames:
            lines.append(f"  ... ({len(self._calls) - max_frames} more calls)")

        for i, name in enumerate(shown):
            lines.append("  " + "  " * i + name)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"TBASBinderStack(depth={self.depth}, frames={len(self.frames)})"
