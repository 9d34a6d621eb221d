"""Tests for the TBAS REPL surface: line entry, commands, program store and configuration."""

import json
import logging

import pytest

from tbas import (
    TBAS, TBASConfig, TBASBufferedConsole, TBASMemoryFileStore, TBASSparseMemoryBus, TBASProgramStore,
    TBASDirectoryFileStore, TBASSyntaxError, TBASMissingOperandError, TBASNoSuchFileError
)


@pytest.fixture
def files():
    """A file store shared between a session and the test."""
    return TBASMemoryFileStore({
        "game.bas": '10 PRINT "LOADED"\n',
        "demo.bas": "10 END\n",
    })


@pytest.fixture
def session(files):
    """A session whose SAVE, LOAD and CATALOG use the shared file store."""
    return TBAS(TBASConfig(), TBASBufferedConsole(), files, TBASSparseMemoryBus())


class TestTBASLineEntry:
    """Test how REPL input lines are routed."""

    def test_numbered_line_is_stored_silently(self, tbas, helpers):
        """Test storing a program line prints nothing, not even the prompt."""
        assert helpers.submit(tbas, '10 PRINT "HI"') == []
        assert tbas.interpreter.program.get(10) == 'PRINT "HI"'

    def test_line_number_alone_deletes(self, tbas, helpers):
        """Test entering just a line number removes that line."""
        helpers.submit(tbas, '10 PRINT "HI"', "10")
        assert tbas.interpreter.program.is_empty()

    def test_immediate_statement(self, tbas, helpers):
        """Test a line without a number runs at once and is followed by the prompt."""
        assert helpers.submit(tbas, "PRINT 1 + 2") == ["3", "Ok"]

    def test_blank_line(self, tbas, helpers):
        """Test blank input does nothing."""
        assert tbas.submit_line("   ") is True
        assert helpers.submit(tbas) == []

    def test_errors_are_printed_not_raised(self, tbas, helpers):
        """Test a failing line prints its one-line summary and the prompt."""
        assert helpers.submit(tbas, "FOO") == ["Unresolved reference FOO", "Ok"]

    def test_immediate_state_persists(self, tbas, helpers):
        """Test immediate-mode variables stay bound between lines."""
        assert helpers.submit(tbas, "X = 20", "PRINT X + 1") == ["Ok", "21", "Ok"]

    def test_line_too_large_for_memory(self, tbas_custom, helpers):
        """Test a line that would exceed scratch memory is rejected and not stored."""
        tbas = tbas_custom(memory_size=64)
        output = helpers.submit(tbas, '10 PRINT "' + "A" * 80 + '"')
        assert output == ["Out of memory", "Ok"]
        assert tbas.interpreter.program.is_empty()

    def test_rejected_line_keeps_previous_text(self, tbas_custom, helpers):
        """Test replacing a line with one that does not fit keeps the old text."""
        tbas = tbas_custom(memory_size=64)
        helpers.submit(tbas, "10 END", '10 PRINT "' + "A" * 80 + '"')
        assert tbas.interpreter.program.get(10) == "END"

    def test_variable_too_large_for_memory(self, tbas_custom, helpers):
        """Test assigning a value larger than scratch memory."""
        tbas = tbas_custom(memory_size=64)
        assert helpers.submit(tbas, 'X = "' + "A" * 100 + '"') == ["Out of memory", "Ok"]
        assert tbas.interpreter.variables.lookup("X") is None


class TestTBASCommands:
    """Test the REPL commands."""

    def test_run(self, tbas, helpers):
        """Test RUN prints program output then the prompt."""
        assert helpers.submit(tbas, '10 PRINT "HI"', "RUN") == ["HI", "Ok"]

    def test_run_error(self, tbas, helpers):
        """Test a runtime error is reported with its line."""
        assert helpers.submit(tbas, "10 PRINT 1 / 0", "RUN") == ["Division by zero in 10", "Ok"]

    def test_commands_are_case_insensitive(self, tbas, helpers):
        """Test lower-case command words."""
        assert helpers.submit(tbas, '10 PRINT "HI"', "run") == ["HI", "Ok"]

    def test_list(self, tbas, helpers):
        """Test LIST shows every line with right-aligned line numbers."""
        output = helpers.submit(tbas, "20 END", '10 PRINT "HI"', "100 REM", "LIST")
        assert output == [' 10 PRINT "HI"', " 20 END", "100 REM", "Ok"]

    def test_list_one_line(self, tbas, helpers):
        """Test LIST with one line number lists only that line."""
        output = helpers.submit(tbas, "10 X = 1", "20 Y = 2", "30 Z = 3", "LIST 20")
        assert output == [" 20 Y = 2", "Ok"]

    def test_list_range(self, tbas, helpers):
        """Test LIST with a range, including '.' for the last line."""
        helpers.submit(tbas, "10 X = 1", "20 Y = 2", "30 Z = 3")
        assert helpers.submit(tbas, "LIST 10, 20") == [" 10 X = 1", " 20 Y = 2", "Ok"]
        tbas.console.reset_output()
        assert helpers.submit(tbas, "LIST 20 .") == [" 20 Y = 2", " 30 Z = 3", "Ok"]

    def test_list_bad_line_number(self, tbas, helpers):
        """Test LIST rejects arguments that are not line numbers."""
        assert helpers.submit(tbas, "LIST TEN") == ["Illegal function call: 'TEN' is not a line number", "Ok"]

    def test_new(self, tbas, helpers):
        """Test NEW clears the program and variables."""
        helpers.submit(tbas, "10 END", "X = 1", "NEW")
        assert tbas.interpreter.program.is_empty()
        assert tbas.interpreter.variables.lookup("X") is None

    def test_delete(self, tbas, helpers):
        """Test DELETE of a single line and of a range."""
        helpers.submit(tbas, "10 A = 1", "20 B = 2", "30 C = 3", "40 D = 4", "DELETE 40", "DELETE 10 20")
        assert tbas.interpreter.program.lines() == [(30, "C = 3")]

    def test_delete_needs_arguments(self, tbas, helpers):
        """Test DELETE without a line."""
        assert helpers.submit(tbas, "DELETE") == ["Syntax error: DELETE needs a line or a range", "Ok"]

    def test_renum(self, tbas, helpers):
        """Test RENUM renumbers lines and rewrites jump targets."""
        helpers.submit(tbas, "5 GOTO 7", "7 END", "RENUM")
        assert tbas.interpreter.program.lines() == [(10, "GOTO 20"), (20, "END")]

    def test_renum_on_goto_targets(self, tbas, helpers):
        """Test RENUM rewrites every target of ON ... GOTO and the program still runs."""
        output = helpers.submit(tbas, "1 ON 1 GOTO 5, 7", '5 PRINT "A" : END', '7 PRINT "B"', "RENUM", "RUN")
        assert tbas.interpreter.program.get(10) == "ON 1 GOTO 20, 30"
        assert output == ["Ok", "B", "Ok"]

    def test_save(self, session, files, helpers):
        """Test SAVE writes the listing and adds the .bas extension."""
        helpers.submit(session, '10 PRINT "HI"', 'SAVE "prog"')
        assert files.files["prog.bas"] == '10 PRINT "HI"\n'

    def test_save_keeps_extension(self, session, files, helpers):
        """Test SAVE does not add a second extension."""
        helpers.submit(session, "10 END", "SAVE PROG.BAS")
        assert "PROG.BAS" in files.files

    def test_save_needs_a_name(self, tbas):
        """Test SAVE without a file name."""
        with pytest.raises(TBASMissingOperandError):
            tbas.commands.process_command("SAVE")

    def test_load_into_empty_session(self, session, helpers):
        """Test LOAD finds a file without its extension."""
        assert helpers.submit(session, "LOAD game", "RUN") == ["Ok", "LOADED", "Ok"]

    def test_load_asks_before_replacing(self, session, helpers):
        """Test LOAD over an unsaved program waits for YES."""
        output = helpers.submit(session, "10 END", "LOAD game")
        assert output == [session.commands.UNSAVED_WARNING, "Ok"]
        assert session.interpreter.program.lines() == [(10, "END")]

        session.console.reset_output()
        assert helpers.submit(session, "YES", "RUN") == ["Ok", "LOADED", "Ok"]

    def test_yes_without_pending_command(self, tbas, helpers):
        """Test YES with nothing to confirm is a syntax error."""
        assert helpers.submit(tbas, "YES") == ["Syntax error: nothing to confirm!", "Ok"]

    def test_load_missing_file(self, session, helpers):
        """Test LOAD of a file that does not exist."""
        assert helpers.submit(session, 'LOAD "nothing"') == ["No such file", "Ok"]

    def test_load_missing_file_raises(self, session):
        """Test the command processor raises for a missing file."""
        with pytest.raises(TBASNoSuchFileError):
            session.commands.process_command("LOAD nothing")

    def test_fre(self, tbas, helpers):
        """Test FRE reports memory left after the program and variables."""
        assert helpers.submit(tbas, "FRE") == ["65536", "Ok"]
        tbas.console.reset_output()
        assert helpers.submit(tbas, "10 PRINT 1", "X = 5", "FRE") == ["Ok", str(65536 - 10 - 8), "Ok"]

    def test_catalog(self, session, helpers):
        """Test CATALOG lists the file store."""
        assert helpers.submit(session, "CATALOG") == ["demo.bas", "game.bas", "Ok"]

    def test_catalog_missing_directory(self, session, helpers):
        """Test CATALOG of a directory that does not exist."""
        assert helpers.submit(session, "CATALOG /missing") == ["No such file", "Ok"]

    def test_cls(self, tbas):
        """Test CLS clears the screen."""
        tbas.submit_line("CLS")
        assert tbas.console.output == "\x1b[2J\x1b[HOk\n"

    def test_tron_logs_line_numbers(self, tbas, helpers, caplog):
        """Test TRON logs each line as it runs without printing it."""
        caplog.set_level(logging.INFO, logger="TBASInterpreter")
        output = helpers.submit(tbas, "TRON", "10 X = 1", "20 END", "RUN")
        assert output == ["Ok", "Ok"]
        assert "[BASIC] Line 10" in caplog.messages
        assert "[BASIC] Line 20" in caplog.messages

    def test_troff(self, tbas, helpers, caplog):
        """Test TROFF stops the trace."""
        caplog.set_level(logging.INFO, logger="TBASInterpreter")
        helpers.submit(tbas, "TRON", "TROFF", "10 END", "RUN")
        assert not any(message.startswith("[BASIC]") for message in caplog.messages)

    def test_system(self, tbas):
        """Test SYSTEM ends the session without printing the prompt."""
        assert tbas.submit_line("SYSTEM") is False
        assert tbas.exit_requested
        assert tbas.console.output == ""

    def test_unknown_command(self, tbas):
        """Test the command processor rejects words it does not know."""
        with pytest.raises(TBASSyntaxError, match="Unknown command FROB"):
            tbas.commands.process_command("FROB")

    def test_is_command(self, tbas):
        """Test command detection only looks at the first word."""
        assert tbas.commands.is_command("list 10")
        assert not tbas.commands.is_command("PRINT LIST")


class TestTBASProgramStore:
    """Test the line-numbered program store."""

    def test_store_and_replace(self):
        """Test storing keeps lines sorted and replaces existing numbers."""
        program = TBASProgramStore()
        program.store(20, "END")
        program.store(10, "X = 1")
        program.store(10, "X = 2")
        assert program.lines() == [(10, "X = 2"), (20, "END")]
        assert len(program) == 2

    def test_empty_text_deletes(self):
        """Test storing blank text removes the line."""
        program = TBASProgramStore()
        program.store(10, "END")
        program.store(10, "  ")
        assert program.is_empty()

    def test_line_count_is_past_last_line(self):
        """Test line_count is one more than the highest line number."""
        program = TBASProgramStore()
        assert program.line_count() == 0
        program.store(30, "END")
        assert program.last_line() == 30
        assert program.line_count() == 31

    def test_delete_range(self):
        """Test deleting an inclusive range."""
        program = TBASProgramStore()
        for number in (10, 20, 30, 40):
            program.store(number, "END")

        assert program.delete(15, 30) == 2
        assert [number for number, _ in program.lines()] == [10, 40]

    def test_renumber_leaves_unknown_targets(self):
        """Test RENUM only rewrites targets that are stored lines."""
        program = TBASProgramStore()
        program.store(3, "GOSUB 9 : GOTO 500")
        program.store(9, "RETURN")
        mapping = program.renumber()
        assert mapping == {3: 10, 9: 20}
        assert program.get(10) == "GOSUB 20 : GOTO 500"

    def test_renumber_on_gosub_list(self):
        """Test RENUM rewrites each line number in an ON ... GOSUB target list."""
        program = TBASProgramStore()
        program.store(3, "ON X GOSUB 5,7 : END")
        program.store(5, "RETURN")
        program.store(7, "RETURN")
        program.renumber()
        assert program.get(10) == "ON X GOSUB 20,30 : END"

    def test_serialize(self):
        """Test serialized programs list lines in order."""
        program = TBASProgramStore()
        program.store(20, "END")
        program.store(10, 'PRINT "A"')
        assert program.serialize() == '10 PRINT "A"\n20 END\n'

    def test_deserialize(self):
        """Test loading skips blank lines and replaces the old program."""
        program = TBASProgramStore()
        program.store(99, "END")
        program.deserialize('10 PRINT "A"\n\n20 END\n')
        assert program.lines() == [(10, 'PRINT "A"'), (20, "END")]

    def test_deserialize_rejects_unnumbered_lines(self):
        """Test a line without a number."""
        with pytest.raises(TBASSyntaxError, match="Illegal program line"):
            TBASProgramStore().deserialize('PRINT "A"')

    def test_footprint(self):
        """Test the footprint counts line numbers, spaces and text."""
        program = TBASProgramStore()
        program.store(10, "PRINT 1")
        assert program.footprint() == 10

    def test_negative_line_number(self):
        """Test negative line numbers are rejected."""
        with pytest.raises(TBASSyntaxError):
            TBASProgramStore().store(-5, "END")


class TestTBASDirectoryFileStore:
    """Test the host directory file store."""

    def test_write_read_and_list(self, tmp_path):
        """Test files written under the root can be read back and listed."""
        store = TBASDirectoryFileStore(str(tmp_path))
        store.write("games/hangman.bas", "10 END\n")

        assert store.read("/games/hangman.bas") == "10 END\n"
        assert store.list("/") == ["games/"]
        assert store.list("games") == ["hangman.bas"]

    def test_missing_entries(self, tmp_path):
        """Test missing files and directories read as None."""
        store = TBASDirectoryFileStore(str(tmp_path))
        assert store.read("nothing.bas") is None
        assert store.list("nowhere") is None

    def test_session_save_and_load(self, tmp_path, helpers):
        """Test a program saved by one session loads into another."""
        store = TBASDirectoryFileStore(str(tmp_path))
        first = TBAS(TBASConfig(), TBASBufferedConsole(), store)
        helpers.submit(first, '10 PRINT "SAVED"', "SAVE keep")
        assert (tmp_path / "keep.bas").read_text(encoding="utf-8") == '10 PRINT "SAVED"\n'

        second = TBAS(TBASConfig(), TBASBufferedConsole(), store)
        assert helpers.submit(second, "LOAD keep", "RUN") == ["Ok", "SAVED", "Ok"]


class TestTBASConfig:
    """Test settings defaults and JSON persistence."""

    def test_defaults(self):
        """Test the default settings."""
        config = TBASConfig()
        assert config.debug is False
        assert config.production is True
        assert config.index_base == 0
        assert config.memory_size == 65536
        assert config.prompt == "Ok"

    def test_save_and_load(self, tmp_path):
        """Test settings survive a save and load."""
        path = tmp_path / "settings" / "tbas.json"
        TBASConfig(debug=True, index_base=1, prompt="READY").save(str(path))

        loaded = TBASConfig.load(str(path))
        assert loaded.debug is True
        assert loaded.index_base == 1
        assert loaded.prompt == "READY"

    def test_load_partial_file(self, tmp_path):
        """Test missing keys keep their defaults and unknown keys are ignored."""
        path = tmp_path / "tbas.json"
        path.write_text(json.dumps({"memory_size": 1024, "colour": "green"}), encoding="utf-8")

        loaded = TBASConfig.load(str(path))
        assert loaded.memory_size == 1024
        assert loaded.max_recursion_depth == 1000
        assert not hasattr(loaded, "colour")

    def test_load_invalid_json(self, tmp_path):
        """Test a malformed settings file."""
        path = tmp_path / "tbas.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            TBASConfig.load(str(path))

    def test_custom_prompt(self, tbas_custom, helpers):
        """Test the REPL prints the configured prompt."""
        tbas = tbas_custom(prompt="READY")
        assert helpers.submit(tbas, "PRINT 1") == ["1", "READY"]
