"""Shared fixtures and utilities for TBAS tests."""

import pytest
from typing import Any, List

from tbas import TBAS, TBASConfig, TBASBufferedConsole, TBASMemoryFileStore, TBASSparseMemoryBus


@pytest.fixture
def tbas():
    """Create a fresh TBAS session with a recording console for each test."""
    return TBAS(TBASConfig(), TBASBufferedConsole(), TBASMemoryFileStore(), TBASSparseMemoryBus())


@pytest.fixture
def tbas_custom():
    """Factory for TBAS sessions with custom configuration."""
    def _create_tbas(input_lines: List[str] | None = None, **settings: Any) -> TBAS:
        return TBAS(
            TBASConfig(**settings),
            TBASBufferedConsole(input_lines or []),
            TBASMemoryFileStore(),
            TBASSparseMemoryBus()
        )
    return _create_tbas


class TBASTestHelpers:
    """Helper utilities for TBAS testing."""

    @staticmethod
    def run_program(tbas: TBAS, *lines: str) -> str:
        """Load the given program lines, run them and return everything printed."""
        tbas.run_program("\n".join(lines))
        return tbas.console.output

    @staticmethod
    def assert_output(tbas: TBAS, lines: List[str], expected: str) -> None:
        """Assert that running a program prints exactly the expected text."""
        output = TBASTestHelpers.run_program(tbas, *lines)
        assert output == expected, f"Expected output {expected!r}, got {output!r}"

    @staticmethod
    def assert_evaluates_to(tbas: TBAS, text: str, expected: Any) -> None:
        """Assert that an immediate-mode line evaluates to the expected Python value."""
        result = tbas.execute(text)
        assert result == expected, f"Expected {expected!r} from {text!r}, got {result!r}"

    @staticmethod
    def submit(tbas: TBAS, *lines: str) -> List[str]:
        """Feed lines to the REPL and return the printed output split into lines."""
        for line in lines:
            tbas.submit_line(line)

        return tbas.console.lines()


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return TBASTestHelpers
