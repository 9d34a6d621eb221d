"""Host collaborators used by the interpreter: console, file store and memory bus."""

from abc import ABC, abstractmethod
from collections import deque
import logging
import os
from pathlib import Path
import sys
from typing import Deque, Dict, Iterable, List

from tbas.tbas_error import TBASBadFunctionCallError


class TBASConsole(ABC):
    """Line-oriented console used by PRINT, INPUT and the REPL."""

    @abstractmethod
    def print(self, text: str) -> None:
        """Write text without adding a newline."""

    @abstractmethod
    def read_line(self) -> str:
        """Read one line of input, without its newline."""

    def clear(self) -> None:
        """Clear the screen and home the cursor."""
        self.print("\x1b[2J\x1b[H")

    def should_terminate(self) -> bool:
        """Polled between statements; True stops the running program."""
        return False


class TBASStdioConsole(TBASConsole):
    """Console on the process's standard streams."""

    def print(self, text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    def read_line(self) -> str:
        line = sys.stdin.readline()
        if not line:
            raise EOFError("end of input")

        return line.rstrip("\r\n")


class TBASBufferedConsole(TBASConsole):
    """Console that records output and replays queued input lines."""

    def __init__(self, input_lines: Iterable[str] = ()) -> None:
        self._output: List[str] = []
        self._input: Deque[str] = deque(input_lines)
        self._terminate = False

    @property
    def output(self) -> str:
        """Everything printed so far."""
        return "".join(self._output)

    def lines(self) -> List[str]:
        """Printed output split into lines."""
        return self.output.splitlines()

    def feed(self, *lines: str) -> None:
        """Queue lines for read_line."""
        self._input.extend(lines)

    def reset_output(self) -> None:
        """Forget everything printed so far."""
        self._output.clear()

    def request_terminate(self) -> None:
        """Make the next terminate poll return True."""
        self._terminate = True

    def print(self, text: str) -> None:
        self._output.append(text)

    def read_line(self) -> str:
        if not self._input:
            raise EOFError("no queued input")

        return self._input.popleft()

    def should_terminate(self) -> bool:
        if self._terminate:
            self._terminate = False
            return True

        return False


class TBASFileStore(ABC):
    """Whole-file storage used by SAVE, LOAD and CATALOG."""

    @abstractmethod
    def read(self, path: str) -> str | None:
        """Return the file's content, or None if it does not exist."""

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        """Replace the file's content."""

    @abstractmethod
    def list(self, path: str) -> List[str] | None:
        """List a directory, or None if it does not exist."""


class TBASDirectoryFileStore(TBASFileStore):
    """File store rooted at a host directory."""

    def __init__(self, root: str) -> None:
        self._root = Path(root)
        self._logger = logging.getLogger("TBASDirectoryFileStore")

    def _resolve(self, path: str) -> Path:
        relative = path.replace("\\", "/").lstrip("/")
        return self._root / relative

    def read(self, path: str) -> str | None:
        target = self._resolve(path)
        if not target.is_file():
            return None

        self._logger.debug("Reading %s", target)
        return target.read_text(encoding="utf-8")

    def write(self, path: str, content: str) -> None:
        target = self._resolve(path)
        os.makedirs(target.parent, exist_ok=True)
        self._logger.debug("Writing %s", target)
        target.write_text(content, encoding="utf-8")

    def list(self, path: str) -> List[str] | None:
        target = self._resolve(path)
        if not target.is_dir():
            return None

        return sorted(entry.name + ("/" if entry.is_dir() else "") for entry in target.iterdir())


class TBASMemoryFileStore(TBASFileStore):
    """File store held in a dictionary, keyed by path."""

    def __init__(self, files: Dict[str, str] | None = None) -> None:
        self.files: Dict[str, str] = dict(files or {})

    def read(self, path: str) -> str | None:
        return self.files.get(path)

    def write(self, path: str, content: str) -> None:
        self.files[path] = content

    def list(self, path: str) -> List[str] | None:
        prefix = path.replace("\\", "/").strip("/")
        if not prefix:
            return sorted(self.files)

        names = [name[len(prefix) + 1:] for name in self.files if name.startswith(prefix + "/")]
        return sorted(names) if names else None


class TBASMemoryBus(ABC):
    """Raw memory peek/poke used by PEEK, POKE, PLOT and GETKEYSDOWN."""

    @abstractmethod
    def peek(self, address: int) -> int:
        """Read one byte."""

    @abstractmethod
    def poke(self, address: int, value: int) -> None:
        """Write one byte."""


class TBASUnavailableMemoryBus(TBASMemoryBus):
    """Memory bus for hosts without hardware access; every access fails."""

    def peek(self, address: int) -> int:
        raise TBASBadFunctionCallError(f"memory bus not available (PEEK {address})")

    def poke(self, address: int, value: int) -> None:
        raise TBASBadFunctionCallError(f"memory bus not available (POKE {address})")


class TBASSparseMemoryBus(TBASMemoryBus):
    """Memory bus backed by a dictionary; unwritten addresses read as zero."""

    def __init__(self) -> None:
        self.memory: Dict[int, int] = {}

    def peek(self, address: int) -> int:
        return self.memory.get(address, 0)

    def poke(self, address: int, value: int) -> None:
        self.memory[address] = value & 0xFF
