"""REPL command processor for TBAS: RUN, LIST, SAVE, LOAD and friends."""

import logging
from typing import Callable, Dict, List, Tuple

from tbas.tbas_error import (
    TBASBadFunctionCallError, TBASMissingOperandError, TBASNoSuchFileError, TBASSyntaxError
)
from tbas.tbas_interpreter import TBASInterpreter


class TBASCommandProcessor:
    """Processes REPL commands typed without a line number."""

    UNSAVED_WARNING = "Unsaved program will be lost, are you sure? (type 'yes' to confirm)"

    def __init__(self, interpreter: TBASInterpreter) -> None:
        """
        Initialize the command processor.

        Args:
            interpreter: Interpreter session the commands act on
        """
        self._interpreter = interpreter
        self.commands: Dict[str, Callable[[List[str]], None]] = {}
        self._register_commands()
        self._pending: Tuple[str, List[str]] | None = None
        self._confirmed = False
        self.exit_requested = False
        self._logger = logging.getLogger("TBASCommandProcessor")

    def _register_commands(self) -> None:
        """Register all available commands."""
        self.commands = {
            "RUN": self._cmd_run,
            "LIST": self._cmd_list,
            "NEW": self._cmd_new,
            "RENUM": self._cmd_renum,
            "DELETE": self._cmd_delete,
            "SAVE": self._cmd_save,
            "LOAD": self._cmd_load,
            "YES": self._cmd_yes,
            "FRE": self._cmd_fre,
            "TRON": self._cmd_tron,
            "TROFF": self._cmd_troff,
            "CLS": self._cmd_cls,
            "SYSTEM": self._cmd_system,
            "CATALOG": self._cmd_catalog,
        }

    def is_command(self, text: str) -> bool:
        """Check whether a line starts with a command word."""
        words = text.split()
        return bool(words) and words[0].upper() in self.commands

    def process_command(self, text: str) -> None:
        """
        Run one command line.

        Args:
            text: Command word followed by space or comma separated arguments

        Raises:
            TBASSyntaxError: If the command is not recognized or its arguments are malformed
            TBASError: Whatever the command itself raises, e.g. a RUN-time error
        """
        words = [word.strip('"') for word in text.replace(",", " ").split()]
        if not words:
            return

        name = words[0].upper()
        if name not in self.commands:
            self._logger.warning("Unknown command attempted: %s", name)
            raise TBASSyntaxError(f"Unknown command {name}")

        self._logger.debug("Executing command: %s", name)
        self.commands[name](words[1:])

    def _print(self, text: str) -> None:
        self._interpreter.console.print(text + "\n")

    @staticmethod
    def _line_number(text: str) -> int:
        if not text.isdigit():
            raise TBASBadFunctionCallError(f"'{text}' is not a line number")

        return int(text)

    def _cmd_run(self, args: List[str]) -> None:
        self._interpreter.run()

    def _cmd_list(self, args: List[str]) -> None:
        program = self._interpreter.program
        start = None
        end = None
        if args:
            start = self._line_number(args[0])

        if len(args) > 1:
            if args[1] == ".":
                end = program.last_line() or 0

            else:
                end = self._line_number(args[1])

        for line in program.listing(start, end):
            self._print(line)

    def _cmd_new(self, args: List[str]) -> None:
        self._interpreter.new(clear_program=True)

    def _cmd_renum(self, args: List[str]) -> None:
        mapping = self._interpreter.program.renumber()
        self._logger.debug("Renumbered %d lines", len(mapping))

    def _cmd_delete(self, args: List[str]) -> None:
        if len(args) not in (1, 2):
            raise TBASSyntaxError("DELETE needs a line or a range", expected="DELETE start [end]")

        start = self._line_number(args[0])
        end = self._line_number(args[1]) if len(args) == 2 else None
        self._interpreter.program.delete(start, end)

    def _cmd_save(self, args: List[str]) -> None:
        if not args:
            raise TBASMissingOperandError("Missing operand", expected="SAVE filename")

        path = args[0]
        if not path.upper().endswith(".BAS"):
            path += ".bas"

        self._interpreter.file_store.write(path, self._interpreter.program.serialize())
        self._logger.info("Saved program to %s", path)

    def _cmd_load(self, args: List[str]) -> None:
        if not args:
            raise TBASMissingOperandError("Missing operand", expected="LOAD filename")

        interpreter = self._interpreter
        if not self._confirmed and not interpreter.program.is_empty():
            self._pending = ("LOAD", list(args))
            self._print(self.UNSAVED_WARNING)
            return

        path = args[0]
        content = None
        for candidate in (path, path + ".BAS", path + ".bas"):
            content = interpreter.file_store.read(candidate)
            if content is not None:
                path = candidate
                break

        if content is None:
            raise TBASNoSuchFileError("No such file", received=args[0])

        interpreter.new(clear_program=True)
        interpreter.program.deserialize(content)
        self._logger.info("Loaded %d lines from %s", len(interpreter.program), path)

    def _cmd_yes(self, args: List[str]) -> None:
        if self._pending is None:
            raise TBASSyntaxError("nothing to confirm!")

        name, pending_args = self._pending
        self._pending = None
        self._confirmed = True
        try:
            self.commands[name](pending_args)

        finally:
            self._confirmed = False

    def _cmd_fre(self, args: List[str]) -> None:
        self._print(str(self._interpreter.memory_free()))

    def _cmd_tron(self, args: List[str]) -> None:
        self._interpreter.trace = True

    def _cmd_troff(self, args: List[str]) -> None:
        self._interpreter.trace = False

    def _cmd_cls(self, args: List[str]) -> None:
        self._interpreter.console.clear()

    def _cmd_system(self, args: List[str]) -> None:
        self._logger.info("SYSTEM command received")
        self.exit_requested = True

    def _cmd_catalog(self, args: List[str]) -> None:
        path = args[0] if args else "/"
        entries = self._interpreter.file_store.list(path)
        if entries is None:
            raise TBASNoSuchFileError("No such file", received=path)

        for entry in entries:
            self._print(entry)
