"""Main TBAS (Terran BASIC) class: the REPL surface over one interpreter session."""

import logging
import re
from typing import Any

from tbas.tbas_commands import TBASCommandProcessor
from tbas.tbas_config import TBASConfig
from tbas.tbas_console import TBASConsole, TBASFileStore, TBASMemoryBus
from tbas.tbas_error import TBASError, TBASOutOfMemoryError
from tbas.tbas_interpreter import TBASInterpreter


class TBAS:
    """
    Terran BASIC session with a line-numbered program and an immediate mode.

    Input is handled the way the REPL sees it:
    - "<digits> <statement>" stores or replaces a program line ("<digits>" alone deletes it)
    - a line starting with a command word (RUN, LIST, SAVE, ...) runs that command
    - anything else is executed immediately against the same session state
    """

    _PROGRAM_LINE = re.compile(r"^(\d+)(?:\s+(.*))?$")

    def __init__(
        self,
        config: TBASConfig | None = None,
        console: TBASConsole | None = None,
        file_store: TBASFileStore | None = None,
        memory_bus: TBASMemoryBus | None = None
    ) -> None:
        """
        Initialize a TBAS session.

        Args:
            config: Session settings
            console: Console for program and REPL output
            file_store: Storage for SAVE, LOAD and CATALOG
            memory_bus: Raw memory for PEEK, POKE and PLOT
        """
        self.interpreter = TBASInterpreter(config, console, file_store, memory_bus)
        self.commands = TBASCommandProcessor(self.interpreter)
        self._logger = logging.getLogger("TBAS")

    @property
    def console(self) -> TBASConsole:
        return self.interpreter.console

    @property
    def exit_requested(self) -> bool:
        """True once SYSTEM has been entered."""
        return self.commands.exit_requested

    def submit_line(self, text: str) -> bool:
        """
        Handle one line of REPL input.

        Errors are reported on the console as one-line diagnostics rather than raised.

        Args:
            text: The input line

        Returns:
            False once the session should end, otherwise True
        """
        line = text.strip()
        if not line:
            return True

        try:
            match = self._PROGRAM_LINE.match(line)
            if match:
                self.store_line(int(match.group(1)), match.group(2) or "")
                return True

            if self.commands.is_command(line):
                self.commands.process_command(line)

            else:
                self.interpreter.execute_immediate(line)

        except TBASError as e:
            self._logger.debug("Input %r failed", line, exc_info=True)
            self.console.print(e.summary() + "\n")

        if self.exit_requested:
            return False

        self.console.print(self.interpreter.config.prompt + "\n")
        return True

    def store_line(self, line_number: int, text: str) -> None:
        """
        Store a program line, keeping within the scratch-memory budget.

        Raises:
            TBASOutOfMemoryError: If the program would no longer fit
        """
        program = self.interpreter.program
        previous = program.get(line_number)
        program.store(line_number, text)
        if self.interpreter.memory_free() < 0:
            program.store(line_number, previous or "")
            raise TBASOutOfMemoryError("Out of memory", context=f"storing line {line_number}")

    def load_program(self, source: str) -> None:
        """
        Replace the stored program with source text of "<line> <statement>" lines.

        Raises:
            TBASSyntaxError: If a line has no line number
        """
        self.interpreter.new(clear_program=True)
        self.interpreter.program.deserialize(source)

    def run_program(self, source: str) -> None:
        """
        Load and run a program.

        Raises:
            TBASError: If the program fails to parse or run
        """
        self.load_program(source)
        self.interpreter.run()

    def execute(self, text: str) -> Any:
        """
        Execute an immediate-mode line and return its value as a Python value.

        Args:
            text: One or more ':'-separated statements, e.g. "X = 5 : X * 2"

        Returns:
            Value of the last statement, converted to Python types

        Raises:
            TBASError: If the line fails to parse or run
        """
        return self.interpreter.execute_immediate(text).to_python()
