"""Lexer for TBAS source lines, a character-level finite-state machine."""

from typing import List

from tbas.tbas_error import TBASNumberFormatError, TBASSyntaxError
from tbas.tbas_token import TBASToken, TBASTokenState


class TBASLexer:
    """
    Lexes a single TBAS source line into tokens.

    Every operator character becomes its own token; multi-character operators are fused later
    by the elaborator.
    """

    ONE_CHAR_OPERATORS = frozenset("!~#<=>*+-/^:$.@\\%|`")
    PARENS = frozenset("()[]{}")
    SEPARATORS = frozenset(",;")
    NUMERIC_SEPARATORS = frozenset(".BXbx")
    DIGITS = frozenset("0123456789")
    NUMBER_CHARS = frozenset("0123456789_")
    NUMBER_SUFFIX_CHARS = frozenset("0123456789_ABCDEFabcdef")
    SPACES = frozenset(" \t")

    _FLUSH_STATES = {
        "lit": TBASTokenState.LITERAL,
        "num": TBASTokenState.NUMBER,
        "n2": TBASTokenState.NUMBER,
        "op": TBASTokenState.OPERATOR,
        "paren": TBASTokenState.PAREN,
        "sep": TBASTokenState.SEPARATOR,
    }

    def __init__(self) -> None:
        self._tokens: List[TBASToken] = []
        self._buffer = ""
        self._start = 0
        self._mode = "limbo"

    def tokenize(self, line: str, line_number: int | None = None) -> List[TBASToken]:
        """
        Tokenize one source line.

        Args:
            line: The source text, without its line number
            line_number: Program line number, used for error reporting

        Returns:
            List of tokens, each carrying its lexical state

        Raises:
            TBASNumberFormatError: If a numeric separator is not followed by a digit run
            TBASSyntaxError: If a string literal is not terminated
        """
        self._tokens = []
        self._buffer = ""
        self._start = 0
        self._mode = "limbo"

        for column, char in enumerate(line):
            mode = self._mode

            if mode == "qot":
                if char == '"':
                    self._tokens.append(TBASToken(self._buffer, TBASTokenState.QUOTED, self._start))
                    self._buffer = ""
                    self._mode = "quote_end"
                    continue

                self._buffer += char
                continue

            if mode == "lit":
                if self._ends_literal(char):
                    self._flush()
                    self._begin(char, column)
                    continue

                self._buffer += char
                continue

            if mode == "num":
                if char in self.NUMBER_CHARS:
                    self._buffer += char
                    continue

                if char in self.NUMERIC_SEPARATORS:
                    self._buffer += char
                    self._mode = "nsep"
                    continue

                self._flush()
                self._begin(char, column)
                continue

            if mode == "nsep":
                if char not in self.NUMBER_SUFFIX_CHARS:
                    raise TBASNumberFormatError(
                        f"'{self._buffer + char}'",
                        line=line_number,
                        received=f"'{char}' after numeric separator",
                        expected="a digit run after '.', 'x' or 'b'",
                        context=line
                    )

                self._buffer += char
                self._mode = "n2"
                continue

            if mode == "n2":
                if char in self.NUMBER_SUFFIX_CHARS:
                    self._buffer += char
                    continue

                self._flush()
                self._begin(char, column)
                continue

            # limbo, quote_end, op, paren and sep never extend their buffer
            self._flush()
            self._begin(char, column)

        if self._mode == "qot":
            raise TBASSyntaxError(
                "Unterminated string literal",
                line=line_number,
                received=f'"{self._buffer}',
                suggestion='Close the string with a double quote (")',
                context=line
            )

        if self._mode == "nsep":
            raise TBASNumberFormatError(
                f"'{self._buffer}'",
                line=line_number,
                expected="a digit run after the numeric separator",
                context=line
            )

        self._flush()
        return self._tokens

    def _ends_literal(self, char: str) -> bool:
        """Check whether a character terminates a literal run."""
        return (
            char == '"' or char in self.SPACES or char in self.PARENS
            or char in self.SEPARATORS or char in self.ONE_CHAR_OPERATORS
        )

    def _flush(self) -> None:
        """Emit the current buffer as a token in the current mode's state."""
        state = self._FLUSH_STATES.get(self._mode)
        if state is not None and self._buffer:
            self._tokens.append(TBASToken(self._buffer, state, self._start))

        self._buffer = ""

    def _begin(self, char: str, column: int) -> None:
        """Start a new token (or skip whitespace) at the given character."""
        self._start = column
        if char == '"':
            self._start = column + 1
            self._mode = "qot"
            self._buffer = ""

        elif char in self.SPACES:
            self._mode = "limbo"
            self._buffer = ""

        elif char in self.PARENS:
            self._mode = "paren"
            self._buffer = char

        elif char in self.SEPARATORS:
            self._mode = "sep"
            self._buffer = char

        elif char in self.ONE_CHAR_OPERATORS:
            self._mode = "op"
            self._buffer = char

        elif char in self.DIGITS:
            self._mode = "num"
            self._buffer = char

        else:
            self._mode = "lit"
            self._buffer = char
